"""
Launch API request timing.

Every response carries X-Request-ID and X-Request-Duration-Ms. Each logged
request record is tagged with the launch entities the route addressed
(project_id, item_id, document_id) so JSON logs can be filtered per launch.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Health checks are polled constantly; they get headers but no log line.
_QUIET_PATHS = frozenset({"/api/v1/health/live", "/api/v1/health/ready"})

SLOW_THRESHOLD_MS = 1000

# URL rule variable -> log record attribute
_SCOPE_ARGS = (
    ("project_id", "project_id"),
    ("item_id", "item_id"),
    ("doc_id", "document_id"),
)


def launch_scope() -> dict:
    """Launch entity ids addressed by the current request.

    Route variables win; ``?project_id=`` covers the cross-project reports.
    Keys with no value are left out.
    """
    view_args = request.view_args or {}
    scope = {attr: view_args[arg] for arg, attr in _SCOPE_ARGS if view_args.get(arg)}
    if "project_id" not in scope and request.args.get("project_id"):
        scope["project_id"] = request.args["project_id"]
    return scope


def _level_for(status: int, duration_ms: float) -> tuple[int, str]:
    if status >= 500:
        return logging.ERROR, "Launch API error"
    if duration_ms > SLOW_THRESHOLD_MS:
        return logging.WARNING, "Slow launch API call"
    return logging.DEBUG, "Launch API call"


def init_request_timing(app: Flask):
    """Stamp each request with an id and start time, log it on the way out."""

    @app.before_request
    def _stamp_request():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_request(response):
        started = getattr(g, "request_start", None)
        if started is None:
            return response

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"
        response.headers["X-Request-ID"] = g.get("request_id", "")
        if request.path in _QUIET_PATHS:
            return response

        level, label = _level_for(response.status_code, elapsed)
        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": round(elapsed, 1),
            "remote_addr": request.remote_addr,
            "request_id": g.get("request_id", ""),
            **launch_scope(),
        }
        logger.log(level, "%s: %s %s -> %d (%.0fms)",
                   label, request.method, request.path, response.status_code, elapsed, extra=extra)
        return response
