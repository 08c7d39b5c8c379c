"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in launch_engine/__init__.py with no default
limits; this module applies limits per route category. Surfacing carries its
own tighter per-route limit (SURFACE_RATE_LIMIT) because every call fans out
to the external task service.

Usage:
    from launch_engine.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "120/minute"
READ_LIMIT = "300/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - launch endpoints:    120/minute (documents, projects, checklist)
        - tracking endpoints:  300/minute (posts, metrics, reporting reads)
        - surfacing:           SURFACE_RATE_LIMIT, set on the route itself
        - health check:        exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("launch")
    if bp:
        limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("tracking")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — launch: %s, tracking: %s, surfacing: %s",
        WRITE_LIMIT, READ_LIMIT, app.config.get("SURFACE_RATE_LIMIT"),
    )
