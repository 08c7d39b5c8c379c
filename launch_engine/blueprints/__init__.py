"""
Launch Orchestration Engine
Blueprint registry.

    health_bp    /api/v1/health   readiness / liveness checks
    launch_bp    /api/v1/launch   documents, projects, phases, checklist, surfacing
    tracking_bp  /api/v1/launch   posting, content, metrics, check-ins, reporting
"""
