"""
Launch reporting — read-only views over projects, checklists and tracking.

    launch_status    one project: phase position, progress, current-phase
                     sections, active linked items, latest metrics, streaks
    launch_overview  every unfinished project with its completion percentage
    launch_health    momentum per project from days since the last completion

Health bands (days since the last completed item):
    on_track  < 4
    slowing   4 – 6
    stalled   ≥ 7, or nothing completed yet
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import case, func, or_

from launch_engine.models import db
from launch_engine.models.launch import (
    STATUS_COMPLETE,
    ChecklistItem,
    LaunchProject,
)
from launch_engine.models.tracking import LaunchMetric
from launch_engine.services.checklist_service import waiting_on_others
from launch_engine.services.phase_state_machine import project_phase_summary
from launch_engine.services.streak_tracker import posting_streaks
from launch_engine.services.task_surfacer import priority_tier
from launch_engine.utils.helpers import get_or_raise

logger = logging.getLogger(__name__)

HEALTH_SLOWING_DAYS = 4
HEALTH_STALLED_DAYS = 7
NEXT_ITEMS_LIMIT = 5


def _pct(done: int, total: int) -> float:
    return round(done / total * 100, 1) if total else 0.0


def _progress(project_id: str) -> dict:
    total, done = (
        db.session.query(
            func.count(ChecklistItem.id),
            func.sum(case((ChecklistItem.completed.is_(True), 1), else_=0)),
        )
        .filter(ChecklistItem.project_id == project_id)
        .one()
    )
    done = int(done or 0)
    return {"total": total, "completed": done, "percent": _pct(done, total)}


def _section_breakdown(project: LaunchProject) -> list[dict]:
    sections: dict[str, dict] = {}
    items = (
        ChecklistItem.query
        .filter_by(project_id=project.id, phase=project.current_phase)
        .order_by(ChecklistItem.sort_order)
        .all()
    )
    for item in items:
        name = item.section or "General"
        entry = sections.setdefault(name, {"section": name, "total": 0, "completed": 0})
        entry["total"] += 1
        entry["completed"] += int(item.completed)
    return list(sections.values())


def _latest_metric_values(project_id: str) -> dict:
    """Latest value per "type.name" key across the project's metric history."""
    latest: dict[str, dict] = {}
    rows = (
        LaunchMetric.query
        .filter_by(project_id=project_id)
        .order_by(LaunchMetric.recorded_date.desc(), LaunchMetric.created_at.desc())
        .all()
    )
    for m in rows:
        key = f"{m.metric_type}.{m.metric_name}"
        if key not in latest:
            latest[key] = {"value": m.value, "recorded_date": m.recorded_date.isoformat()}
    return latest


def launch_status(project_id: str) -> dict:
    project = get_or_raise(LaunchProject, project_id)
    phases = project_phase_summary(project.id)
    names = [p["phase"] for p in phases]
    position = names.index(project.current_phase) + 1 if project.current_phase in names else None

    active = (
        ChecklistItem.query
        .filter(
            ChecklistItem.project_id == project.id,
            ChecklistItem.completed.is_(False),
            ChecklistItem.linked_task_id.isnot(None),
        )
        .order_by(ChecklistItem.sort_order)
        .all()
    )

    return {
        "project": project.to_dict(),
        "phase_position": position,
        "phase_count": len(names),
        "phases": phases,
        "progress": _progress(project.id),
        "current_sections": _section_breakdown(project),
        "active_items": [i.to_dict() for i in active],
        "latest_metrics": _latest_metric_values(project.id),
        "streaks": posting_streaks(project.id),
    }


def launch_overview(owner: str | None = None) -> list[dict]:
    q = LaunchProject.query.filter(LaunchProject.status != STATUS_COMPLETE)
    if owner:
        q = q.filter(or_(LaunchProject.owner == owner, LaunchProject.shared.is_(True)))
    result = []
    for project in q.order_by(LaunchProject.target_launch_date, LaunchProject.created_at).all():
        progress = _progress(project.id)
        result.append({
            "id": project.id,
            "title": project.title,
            "owner": project.owner,
            "status": project.status,
            "current_phase": project.current_phase,
            "target_launch_date": project.target_launch_date.isoformat() if project.target_launch_date else None,
            "days_to_launch": project.days_to_launch(),
            "total_items": progress["total"],
            "completed_items": progress["completed"],
            "completion_percent": progress["percent"],
        })
    return result


def health_band(days_idle: int | None) -> str:
    if days_idle is None or days_idle >= HEALTH_STALLED_DAYS:
        return "stalled"
    if days_idle >= HEALTH_SLOWING_DAYS:
        return "slowing"
    return "on_track"


def _days_since_last_completion(project_id: str, now: datetime) -> int | None:
    last = (
        db.session.query(func.max(ChecklistItem.completed_at))
        .filter(ChecklistItem.project_id == project_id, ChecklistItem.completed.is_(True))
        .scalar()
    )
    if last is None:
        return None
    if last.tzinfo is None:
        # SQLite hands back naive values; they were written as UTC.
        last = last.replace(tzinfo=timezone.utc)
    return (now.date() - last.date()).days


def _next_items(project: LaunchProject) -> list[ChecklistItem]:
    open_items = (
        ChecklistItem.query
        .filter(
            ChecklistItem.project_id == project.id,
            ChecklistItem.phase == project.current_phase,
            ChecklistItem.completed.is_(False),
            ChecklistItem.handed_to.is_(None),
        )
        .order_by(ChecklistItem.sort_order)
        .all()
    )
    return sorted(open_items, key=priority_tier)[:NEXT_ITEMS_LIMIT]


def launch_health(project_id: str | None = None, owner: str | None = None, now: datetime | None = None) -> list[dict]:
    """Momentum report for one project, or every unfinished project."""
    now = now or datetime.now(timezone.utc)
    if project_id:
        projects = [get_or_raise(LaunchProject, project_id)]
    else:
        q = LaunchProject.query.filter(LaunchProject.status != STATUS_COMPLETE)
        if owner:
            q = q.filter(LaunchProject.owner == owner)
        projects = q.order_by(LaunchProject.created_at).all()

    report = []
    for project in projects:
        idle = _days_since_last_completion(project.id, now)
        report.append({
            "project_id": project.id,
            "title": project.title,
            "status": project.status,
            "current_phase": project.current_phase,
            "days_since_last_completion": idle,
            "health": health_band(idle),
            "waiting_on_others": [i.to_dict() for i in waiting_on_others(project.id)],
            "next_items": [i.to_dict() for i in _next_items(project)],
        })
    logger.debug("Health computed for %d project(s)", len(report))
    return report
