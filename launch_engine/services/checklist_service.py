"""
Checklist maintenance — service layer.

Listing, manual additions, hand-offs and markup export for a project's
checklist. Phase gating and completion live in phase_state_machine.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func

from launch_engine.core.exceptions import StateError, ValidationError
from launch_engine.models import db
from launch_engine.models.launch import RECURRENCES, ChecklistItem, LaunchProject
from launch_engine.services.launch_parser import ParsedItem, render_markup, split_tokens
from launch_engine.services.phase_state_machine import phase_order
from launch_engine.utils.helpers import commit_or_raise, get_or_raise

logger = logging.getLogger(__name__)

ITEM_STATUSES = ("all", "open", "done")


def list_checklist(
    project_id: str,
    phase: str | None = None,
    section: str | None = None,
    status: str = "all",
) -> list[ChecklistItem]:
    get_or_raise(LaunchProject, project_id)
    if status not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of {list(ITEM_STATUSES)}", details={"status": status})

    q = ChecklistItem.query.filter_by(project_id=project_id)
    if phase:
        q = q.filter(ChecklistItem.phase == phase)
    if section:
        q = q.filter(ChecklistItem.section == section)
    if status == "open":
        q = q.filter(ChecklistItem.completed.is_(False))
    elif status == "done":
        q = q.filter(ChecklistItem.completed.is_(True))
    return q.order_by(ChecklistItem.sort_order).all()


def add_checklist_item(project_id: str, data: dict) -> ChecklistItem:
    """Add a manual item at the end of its phase.

    Bracketed tokens in ``item_text`` are read the same way the markup parser
    reads them; explicit ``tags``/``due_offset``/``recurrence`` fields win.
    Items after the insertion point move down one place so sort_order stays
    unique. A phase the checklist does not have yet is appended last.
    """
    project = get_or_raise(LaunchProject, project_id)
    phase = (data.get("phase") or project.current_phase or "").strip()
    if not phase:
        raise ValidationError("phase is required", details={"phase": "required"})

    text, tags, due_offset, recurrence = split_tokens((data.get("item_text") or "").strip())
    if not text:
        raise ValidationError("item_text is required", details={"item_text": "required"})

    extra_tags = [str(t).upper() for t in (data.get("tags") or [])]
    tags = list(dict.fromkeys(list(tags) + extra_tags))
    if data.get("due_offset") is not None:
        try:
            due_offset = int(data["due_offset"])
        except (TypeError, ValueError) as exc:
            raise ValidationError("due_offset must be an integer", details={"due_offset": data["due_offset"]}) from exc
    if data.get("recurrence"):
        recurrence = str(data["recurrence"]).lower()
        if recurrence not in RECURRENCES:
            raise ValidationError(
                f"recurrence must be one of {sorted(RECURRENCES)}", details={"recurrence": recurrence},
            )

    last_in_phase = (
        db.session.query(func.max(ChecklistItem.sort_order))
        .filter(ChecklistItem.project_id == project.id, ChecklistItem.phase == phase)
        .scalar()
    )
    if last_in_phase is None:
        last = (
            db.session.query(func.max(ChecklistItem.sort_order))
            .filter(ChecklistItem.project_id == project.id)
            .scalar()
        )
        position = 0 if last is None else last + 1
    else:
        position = last_in_phase + 1
        ChecklistItem.query.filter(
            ChecklistItem.project_id == project.id,
            ChecklistItem.sort_order >= position,
        ).update({ChecklistItem.sort_order: ChecklistItem.sort_order + 1}, synchronize_session=False)

    item = ChecklistItem(
        project_id=project.id,
        source_document_id=None,
        phase=phase,
        section=(data.get("section") or None),
        item_text=text,
        sort_order=position,
        tags=tags,
        due_offset=due_offset,
        recurrence=recurrence,
        notes=data.get("notes"),
    )
    db.session.add(item)
    commit_or_raise("add_checklist_item")
    logger.info(
        "ChecklistItem added id=%s project=%s phase=%s sort_order=%d",
        item.id, project.id, phase, position,
    )
    return item


def hand_off_item(item_id: str, handed_to: str, notes: str | None = None) -> ChecklistItem:
    """Assign an open item to someone else; surfacing skips it until reclaimed."""
    handed_to = (handed_to or "").strip()
    if not handed_to:
        raise ValidationError("handed_to is required", details={"handed_to": "required"})
    item = get_or_raise(ChecklistItem, item_id)
    if item.completed:
        raise StateError("Cannot hand off a completed item", details={"item_id": item.id})

    item.handed_to = handed_to
    item.handed_at = datetime.now(timezone.utc)
    if notes:
        item.notes = notes
    commit_or_raise("hand_off_item")
    logger.info("ChecklistItem handed off id=%s to=%s", item.id, handed_to)
    return item


def reclaim_item(item_id: str) -> ChecklistItem:
    """Take a handed-off item back. Reclaiming an item nobody holds is a no-op."""
    item = get_or_raise(ChecklistItem, item_id)
    if item.handed_to is None:
        return item
    previous = item.handed_to
    item.handed_to = None
    item.handed_at = None
    commit_or_raise("reclaim_item")
    logger.info("ChecklistItem reclaimed id=%s from=%s", item.id, previous)
    return item


def waiting_on_others(project_id: str) -> list[ChecklistItem]:
    """Open items currently handed off, oldest hand-off first."""
    return (
        ChecklistItem.query
        .filter(
            ChecklistItem.project_id == project_id,
            ChecklistItem.completed.is_(False),
            ChecklistItem.handed_to.isnot(None),
        )
        .order_by(ChecklistItem.handed_at)
        .all()
    )


def export_markup(project_id: str) -> str:
    """Render the project's checklist back into markup.

    Completion, links and hand-offs are project state, not template content,
    so every item is written as an open box.
    """
    get_or_raise(LaunchProject, project_id)
    items = ChecklistItem.query.filter_by(project_id=project_id).order_by(ChecklistItem.sort_order).all()
    parsed = [
        ParsedItem(
            phase=i.phase,
            section=i.section,
            item_text=i.item_text,
            sort_order=i.sort_order,
            tags=tuple(i.tags or ()),
            due_offset=i.due_offset,
            recurrence=i.recurrence,
        )
        for i in items
    ]
    return render_markup(phase_order(project_id), parsed)
