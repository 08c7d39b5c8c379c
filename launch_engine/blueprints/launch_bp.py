"""Launch documents, projects and checklist blueprint.

Endpoint groups
───────────────
  Documents   POST /launch/documents/parse                   Parse markup (no write)
              POST /launch/documents                         Register document
              GET  /launch/documents                         List documents
              GET  /launch/documents/<did>                   View document
              PUT  /launch/documents/<did>                   Replace markup, bump version
  Projects    POST /launch/projects                          Compose project from documents
              GET  /launch/projects/<pid>                    Project + phase summary
              POST /launch/projects/<pid>/advance            Advance phase (gated)
              POST /launch/projects/<pid>/complete           Complete launch (no gating)
              POST /launch/projects/<pid>/reset              Reset to setup
              POST /launch/projects/<pid>/surface            Surface items as external tasks
              GET  /launch/projects/<pid>/streak?platform=   Posting streak
  Checklist   GET  /launch/projects/<pid>/checklist          List items
              POST /launch/projects/<pid>/checklist          Add manual item
              GET  /launch/projects/<pid>/markup             Export checklist markup
              POST /launch/checklist/<iid>/complete          Complete item
              POST /launch/checklist/<iid>/handoff           Hand off item
              POST /launch/checklist/<iid>/reclaim           Reclaim item

The acting user comes from the X-User header (default "system").
"""

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from launch_engine import limiter
from launch_engine.models.launch import LaunchProject
from launch_engine.services import (
    checklist_service,
    document_service,
    phase_state_machine,
    project_composer,
    streak_tracker,
    task_surfacer,
)
from launch_engine.services.launch_parser import parse_document
from launch_engine.utils.errors import E, api_error, register_error_handlers
from launch_engine.utils.helpers import get_or_raise

logger = logging.getLogger(__name__)

launch_bp = Blueprint("launch", __name__, url_prefix="/api/v1/launch")
register_error_handlers(launch_bp)


def _current_user() -> str:
    return request.headers.get("X-User", "system")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _bool_arg(value, default=False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes")


# ══════════════════════════════════════════════════════════════════
# 1.  Documents
# ══════════════════════════════════════════════════════════════════

@launch_bp.route("/documents/parse", methods=["POST"])
def parse_markup():
    """Parse markup and return phases and items without storing anything."""
    data = _json_body()
    content = data.get("content")
    if not isinstance(content, str):
        return api_error(E.VALIDATION_REQUIRED, "content is required")
    parsed = parse_document(content)
    return jsonify(parsed.to_dict())


@launch_bp.route("/documents", methods=["POST"])
def create_document():
    data = _json_body()
    for field in ("name", "doc_type", "content"):
        if not isinstance(data.get(field), str) or not data[field].strip():
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
    result = document_service.add_document(
        data["name"], data["doc_type"], data["content"], description=data.get("description"),
    )
    return jsonify(result), 201


@launch_bp.route("/documents", methods=["GET"])
def list_documents():
    docs = document_service.list_documents(request.args.get("doc_type"))
    return jsonify({"items": docs, "total": len(docs)})


@launch_bp.route("/documents/<doc_id>", methods=["GET"])
def view_document(doc_id):
    return jsonify(document_service.view_document(doc_id=doc_id))


@launch_bp.route("/documents/<doc_id>", methods=["PUT"])
def update_document(doc_id):
    data = _json_body()
    if not isinstance(data.get("content"), str):
        return api_error(E.VALIDATION_REQUIRED, "content is required")
    result = document_service.update_document(doc_id, data["content"], version=data.get("version"))
    return jsonify(result)


# ══════════════════════════════════════════════════════════════════
# 2.  Projects & phases
# ══════════════════════════════════════════════════════════════════

@launch_bp.route("/projects", methods=["POST"])
def create_project():
    data = _json_body()
    doc_ids = data.get("doc_ids")
    if not isinstance(doc_ids, list) or not doc_ids:
        return api_error(E.VALIDATION_REQUIRED, "doc_ids must be a non-empty list")
    meta = {
        "title": data.get("title"),
        "genre": data.get("genre"),
        "shared": _bool_arg(data.get("shared")),
        "owner": _current_user(),
    }
    project = project_composer.create_project(doc_ids, data.get("target_launch_date"), meta)
    result = project.to_dict()
    result["phases"] = phase_state_machine.project_phase_summary(project.id)
    return jsonify(result), 201


@launch_bp.route("/projects/<project_id>", methods=["GET"])
def get_project(project_id):
    project = get_or_raise(LaunchProject, project_id)
    result = project.to_dict()
    result["phases"] = phase_state_machine.project_phase_summary(project.id)
    return jsonify(result)


@launch_bp.route("/projects/<project_id>/advance", methods=["POST"])
def advance_project(project_id):
    project = phase_state_machine.advance_phase(project_id)
    return jsonify(project.to_dict())


@launch_bp.route("/projects/<project_id>/complete", methods=["POST"])
def complete_project(project_id):
    project = phase_state_machine.complete_project(project_id)
    return jsonify(project.to_dict())


@launch_bp.route("/projects/<project_id>/reset", methods=["POST"])
def reset_project(project_id):
    data = _json_body()
    keep_metrics = _bool_arg(data.get("keep_metrics"), default=True)
    project = phase_state_machine.reset_project(project_id, keep_metrics=keep_metrics)
    return jsonify(project.to_dict())


@launch_bp.route("/projects/<project_id>/surface", methods=["POST"])
@limiter.limit(lambda: current_app.config["SURFACE_RATE_LIMIT"])
def surface_project_tasks(project_id):
    data = _json_body()
    count = data.get("count", current_app.config["SURFACE_DEFAULT_COUNT"])
    if isinstance(count, bool) or not isinstance(count, int):
        return api_error(E.VALIDATION_INVALID, "count must be an integer")
    items = task_surfacer.surface_tasks(project_id, count)
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)})


@launch_bp.route("/projects/<project_id>/streak", methods=["GET"])
def project_streak(project_id):
    platform = request.args.get("platform")
    if not platform:
        return api_error(E.VALIDATION_REQUIRED, "platform query parameter is required")
    streak = streak_tracker.get_streak(project_id, platform)
    return jsonify({"project_id": project_id, "platform": platform.lower(), "streak": streak})


# ══════════════════════════════════════════════════════════════════
# 3.  Checklist
# ══════════════════════════════════════════════════════════════════

@launch_bp.route("/projects/<project_id>/checklist", methods=["GET"])
def list_checklist(project_id):
    items = checklist_service.list_checklist(
        project_id,
        phase=request.args.get("phase"),
        section=request.args.get("section"),
        status=request.args.get("status", "all"),
    )
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)})


@launch_bp.route("/projects/<project_id>/checklist", methods=["POST"])
def add_checklist_item(project_id):
    data = _json_body()
    if not isinstance(data.get("item_text"), str) or not data["item_text"].strip():
        return api_error(E.VALIDATION_REQUIRED, "item_text is required")
    item = checklist_service.add_checklist_item(project_id, data)
    return jsonify(item.to_dict()), 201


@launch_bp.route("/projects/<project_id>/markup", methods=["GET"])
def export_markup(project_id):
    markup = checklist_service.export_markup(project_id)
    return Response(markup, mimetype="text/markdown")


@launch_bp.route("/checklist/<item_id>/complete", methods=["POST"])
def complete_item(item_id):
    item = phase_state_machine.complete_checklist_item(item_id)
    return jsonify(item.to_dict())


@launch_bp.route("/checklist/<item_id>/handoff", methods=["POST"])
def hand_off_item(item_id):
    data = _json_body()
    if not isinstance(data.get("handed_to"), str) or not data["handed_to"].strip():
        return api_error(E.VALIDATION_REQUIRED, "handed_to is required")
    item = checklist_service.hand_off_item(item_id, data["handed_to"], notes=data.get("notes"))
    return jsonify(item.to_dict())


@launch_bp.route("/checklist/<item_id>/reclaim", methods=["POST"])
def reclaim_item(item_id):
    item = checklist_service.reclaim_item(item_id)
    return jsonify(item.to_dict())
