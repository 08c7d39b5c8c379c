"""Launch tracking and reporting blueprint.

Endpoint groups
───────────────
  Posting     POST /launch/projects/<pid>/posts       Log posts, returns new streak
              GET  /launch/projects/<pid>/streaks     Streak + totals per platform
  Content     POST /launch/projects/<pid>/batches     Log content batch
              GET  /launch/projects/<pid>/buffer      Content buffer (?platform=)
  Metrics     POST /launch/projects/<pid>/metrics     Log metrics {type: {name: value}}
              GET  /launch/projects/<pid>/metrics     History (?metric_type=&days=)
  Check-ins   POST /launch/projects/<pid>/checkins    Record weekly check-in
              GET  /launch/projects/<pid>/checkins    Recent check-ins (?count=)
  Reporting   GET  /launch/projects/<pid>/status      Full status
              GET  /launch/overview                   Unfinished launches
              GET  /launch/health                     Momentum (?project_id=&owner=)
"""

import logging

from flask import Blueprint, jsonify, request

from launch_engine.services import launch_reporting, launch_tracking_service, streak_tracker
from launch_engine.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

tracking_bp = Blueprint("tracking", __name__, url_prefix="/api/v1/launch")
register_error_handlers(tracking_bp)


def _current_user() -> str:
    return request.headers.get("X-User", "system")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ══════════════════════════════════════════════════════════════════
# 1.  Posting & content
# ══════════════════════════════════════════════════════════════════

@tracking_bp.route("/projects/<project_id>/posts", methods=["POST"])
def log_post(project_id):
    data = _json_body()
    if not data.get("platform"):
        return api_error(E.VALIDATION_REQUIRED, "platform is required")
    post_count = data.get("post_count", 1)
    if isinstance(post_count, bool) or not isinstance(post_count, int):
        return api_error(E.VALIDATION_INVALID, "post_count must be an integer")
    result = streak_tracker.log_post(
        project_id,
        data["platform"],
        post_count=post_count,
        post_date=data.get("post_date"),
        notes=data.get("notes"),
        owner=_current_user(),
    )
    return jsonify(result), 201


@tracking_bp.route("/projects/<project_id>/streaks", methods=["GET"])
def list_streaks(project_id):
    return jsonify({"items": streak_tracker.posting_streaks(project_id)})


@tracking_bp.route("/projects/<project_id>/batches", methods=["POST"])
def log_batch(project_id):
    result = streak_tracker.log_content_batch(project_id, _json_body(), owner=_current_user())
    return jsonify(result), 201


@tracking_bp.route("/projects/<project_id>/buffer", methods=["GET"])
def get_buffer(project_id):
    return jsonify(streak_tracker.content_buffer(project_id, request.args.get("platform", "tiktok")))


# ══════════════════════════════════════════════════════════════════
# 2.  Metrics & check-ins
# ══════════════════════════════════════════════════════════════════

@tracking_bp.route("/projects/<project_id>/metrics", methods=["POST"])
def log_metrics(project_id):
    data = _json_body()
    if not isinstance(data.get("metrics"), dict):
        return api_error(E.VALIDATION_REQUIRED, "metrics object is required")
    rows = launch_tracking_service.log_metrics(
        project_id,
        data["metrics"],
        recorded_date=data.get("recorded_date"),
        notes=data.get("notes"),
        owner=_current_user(),
    )
    return jsonify({"items": rows, "total": len(rows)}), 201


@tracking_bp.route("/projects/<project_id>/metrics", methods=["GET"])
def metrics_history(project_id):
    rows = launch_tracking_service.metrics_history(
        project_id,
        metric_type=request.args.get("metric_type"),
        days=request.args.get("days", 30, type=int),
    )
    return jsonify({"items": rows, "total": len(rows)})


@tracking_bp.route("/projects/<project_id>/checkins", methods=["POST"])
def record_checkin(project_id):
    result = launch_tracking_service.record_checkin(project_id, _json_body(), owner=_current_user())
    return jsonify(result), 201


@tracking_bp.route("/projects/<project_id>/checkins", methods=["GET"])
def checkin_history(project_id):
    rows = launch_tracking_service.checkin_history(project_id, count=request.args.get("count", 4, type=int))
    return jsonify({"items": rows, "total": len(rows)})


# ══════════════════════════════════════════════════════════════════
# 3.  Reporting
# ══════════════════════════════════════════════════════════════════

@tracking_bp.route("/projects/<project_id>/status", methods=["GET"])
def project_status(project_id):
    return jsonify(launch_reporting.launch_status(project_id))


@tracking_bp.route("/overview", methods=["GET"])
def overview():
    items = launch_reporting.launch_overview(owner=request.args.get("owner"))
    return jsonify({"items": items, "total": len(items)})


@tracking_bp.route("/health", methods=["GET"])
def health():
    items = launch_reporting.launch_health(
        project_id=request.args.get("project_id"),
        owner=request.args.get("owner"),
    )
    return jsonify({"items": items, "total": len(items)})
