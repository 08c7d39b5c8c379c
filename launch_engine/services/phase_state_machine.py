"""
Launch phase state machine — service layer.

Lifecycle:
    setup ──advance──▶ <phase-1 slug> ──advance──▶ ... <phase-n slug>
      ▲                                                     │
      └────────────────────── reset ◀──────────── complete ─┘  (complete from any state)

Gating:
    advance_phase  — blocked while any CRITICAL item in the current phase is open
    complete_project — unconditional override, no gating

Phase order is derived from the checklist itself (phases ordered by their
lowest sort_order), so it always matches what the composer persisted.

Completing an item pushes completion to its linked external task. The reverse
direction is intentionally not synced: finishing the external task leaves the
checklist item open.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import case, func

from launch_engine.core.exceptions import (
    AlreadyFinalError,
    PhaseBlockedError,
    StateError,
    TaskCreationError,
)
from launch_engine.models import db
from launch_engine.models.launch import (
    STATUS_COMPLETE,
    STATUS_SETUP,
    ChecklistItem,
    LaunchProject,
    phase_slug,
)
from launch_engine.models.tracking import (
    ContentBatch,
    LaunchCheckin,
    LaunchMetric,
    PostingLogEntry,
)
from launch_engine.utils.helpers import commit_or_raise, get_or_raise

logger = logging.getLogger(__name__)


# ── Phase order ──────────────────────────────────────────────────────────────


def phase_order(project_id: str) -> list[str]:
    """Phases present in the project's checklist, ordered by minimum sort_order."""
    rows = (
        db.session.query(ChecklistItem.phase, func.min(ChecklistItem.sort_order).label("first"))
        .filter(ChecklistItem.project_id == project_id)
        .group_by(ChecklistItem.phase)
        .order_by("first")
        .all()
    )
    return [row.phase for row in rows]


def blocking_items(project_id: str, phase: str) -> list[ChecklistItem]:
    """Incomplete CRITICAL items in ``phase``, in checklist order."""
    open_items = (
        ChecklistItem.query
        .filter_by(project_id=project_id, phase=phase, completed=False)
        .order_by(ChecklistItem.sort_order)
        .all()
    )
    return [i for i in open_items if i.is_critical]


# ── Transitions ──────────────────────────────────────────────────────────────


def advance_phase(project_id: str) -> LaunchProject:
    """Move the project to its next phase.

    Raises:
        NotFoundError: unknown project.
        PhaseBlockedError: open CRITICAL items in the current phase.
        AlreadyFinalError: the current phase is the last one.
        StateError: the launch is complete (only reset_project reopens it), or
            the current phase no longer exists in the checklist.
    """
    project = get_or_raise(LaunchProject, project_id)
    current = project.current_phase
    if project.status == STATUS_COMPLETE:
        raise StateError(
            "Launch is complete; reset it before advancing",
            details={"status": project.status, "current_phase": current},
        )

    blockers = blocking_items(project.id, current)
    if blockers:
        logger.info(
            "Advance blocked project=%s phase=%s blockers=%d",
            project.id, current, len(blockers),
        )
        raise PhaseBlockedError(current, [i.item_text for i in blockers])

    phases = phase_order(project.id)
    if current not in phases:
        raise StateError(
            f"Current phase '{current}' is not in the checklist",
            details={"current_phase": current, "phases": phases},
        )
    idx = phases.index(current)
    if idx == len(phases) - 1:
        raise AlreadyFinalError(current)

    next_phase = phases[idx + 1]
    old_status = project.status
    project.current_phase = next_phase
    project.status = phase_slug(next_phase)
    commit_or_raise("advance_phase")
    logger.info(
        "LaunchProject advanced id=%s %s → %s (status %s → %s)",
        project.id, current, next_phase, old_status, project.status,
    )
    return project


def complete_project(project_id: str) -> LaunchProject:
    """Mark the launch complete regardless of phase or open items."""
    project = get_or_raise(LaunchProject, project_id)
    old_status = project.status
    project.status = STATUS_COMPLETE
    commit_or_raise("complete_project")
    logger.info("LaunchProject completed id=%s (was %s)", project.id, old_status)
    return project


def reset_project(project_id: str, keep_metrics: bool = True) -> LaunchProject:
    """Put a project back to ``setup`` with every checklist item open.

    Clears completion, task links and hand-offs. With ``keep_metrics=False``
    the project's metrics, posting log, content batches and check-ins are
    deleted too; that part cannot be undone.
    """
    project = get_or_raise(LaunchProject, project_id)
    phases = phase_order(project.id)

    ChecklistItem.query.filter_by(project_id=project.id).update(
        {
            ChecklistItem.completed: False,
            ChecklistItem.completed_at: None,
            ChecklistItem.linked_task_id: None,
            ChecklistItem.handed_to: None,
            ChecklistItem.handed_at: None,
        },
        synchronize_session="fetch",
    )

    deleted = 0
    if not keep_metrics:
        for model in (LaunchMetric, PostingLogEntry, ContentBatch, LaunchCheckin):
            deleted += model.query.filter_by(project_id=project.id).delete(synchronize_session=False)

    project.status = STATUS_SETUP
    if phases:
        project.current_phase = phases[0]
    project.updated_at = datetime.now(timezone.utc)
    commit_or_raise("reset_project")
    logger.info(
        "LaunchProject reset id=%s keep_metrics=%s tracking_rows_deleted=%d",
        project.id, keep_metrics, deleted,
    )
    return project


# ── Item completion ──────────────────────────────────────────────────────────


def complete_checklist_item(item_id: str, task_creator=None) -> ChecklistItem:
    """Mark a checklist item done and push completion to its linked task.

    The item is committed first; a failure to close the external task is
    logged and does not undo the completion.
    """
    item = get_or_raise(ChecklistItem, item_id)
    now = datetime.now(timezone.utc)

    item.completed = True
    item.completed_at = now
    item.handed_to = None
    item.handed_at = None
    item.project.updated_at = now
    commit_or_raise("complete_checklist_item")
    logger.info("ChecklistItem completed id=%s project=%s", item.id, item.project_id)

    if item.linked_task_id:
        if task_creator is None:
            from launch_engine.integrations import get_task_creator
            task_creator = get_task_creator()
        try:
            task_creator.mark_done(item.linked_task_id)
        except TaskCreationError as exc:
            logger.warning(
                "Could not mark linked task done item=%s task=%s: %s",
                item.id, item.linked_task_id, exc,
            )
    return item


# ── Summary ──────────────────────────────────────────────────────────────────


def project_phase_summary(project_id: str) -> list[dict]:
    """Per-phase item totals in phase order."""
    project = get_or_raise(LaunchProject, project_id)
    rows = (
        db.session.query(
            ChecklistItem.phase,
            func.min(ChecklistItem.sort_order).label("first"),
            func.count(ChecklistItem.id).label("total"),
            func.sum(case((ChecklistItem.completed.is_(True), 1), else_=0)).label("done"),
        )
        .filter(ChecklistItem.project_id == project.id)
        .group_by(ChecklistItem.phase)
        .order_by("first")
        .all()
    )
    return [
        {
            "phase": row.phase,
            "slug": phase_slug(row.phase),
            "total": row.total,
            "completed": int(row.done or 0),
            "current": row.phase == project.current_phase,
        }
        for row in rows
    ]
