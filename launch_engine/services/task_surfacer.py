"""
Task surfacing — promotes checklist items into external tasks.

Selection (current phase only):
    candidates = open, unlinked, not handed off
    order      = CRITICAL → PRIORITY:HIGH → everything else, then sort_order

Each selected item gets one TaskCreator.create_task call and is then linked
with a compare-and-set on ``linked_task_id IS NULL``. Surfacing is best-effort
per item: a failed creation or a lost link race skips that item and the rest
of the batch continues. Because linked items are never reselected, repeated
calls return disjoint batches until items are completed or the project reset.
"""

import logging

from flask import current_app

from launch_engine.core.exceptions import TaskCreationError, ValidationError
from launch_engine.models import db
from launch_engine.models.launch import (
    TAG_CRITICAL,
    TAG_PRIORITY_HIGH,
    ChecklistItem,
    LaunchProject,
)
from launch_engine.utils.helpers import commit_or_raise, get_or_raise

logger = logging.getLogger(__name__)

PRIORITY_CRITICAL = 5
PRIORITY_HIGH = 4
PRIORITY_NORMAL = 3


def priority_tier(item: ChecklistItem) -> int:
    if item.has_tag(TAG_CRITICAL):
        return 0
    if item.has_tag(TAG_PRIORITY_HIGH):
        return 1
    return 2


def task_priority(item: ChecklistItem) -> int:
    """External task priority for an item: 5 CRITICAL, 4 PRIORITY:HIGH, else 3."""
    return (PRIORITY_CRITICAL, PRIORITY_HIGH, PRIORITY_NORMAL)[priority_tier(item)]


def task_notes(project: LaunchProject, item: ChecklistItem) -> str:
    return (
        f"From launch: {project.title}\n"
        f"Phase: {item.phase}\n"
        f"Section: {item.section or 'General'}"
    )


def select_candidates(project: LaunchProject, count: int) -> list[ChecklistItem]:
    """Pick the next ``count`` surfaceable items of the current phase."""
    open_items = (
        ChecklistItem.query
        .filter(
            ChecklistItem.project_id == project.id,
            ChecklistItem.phase == project.current_phase,
            ChecklistItem.completed.is_(False),
            ChecklistItem.linked_task_id.is_(None),
            ChecklistItem.handed_to.is_(None),
        )
        .order_by(ChecklistItem.sort_order)
        .all()
    )
    # sorted() is stable, so sort_order survives inside each tier
    return sorted(open_items, key=priority_tier)[:count]


def _link(item_id: str, task_id: str) -> bool:
    """Set linked_task_id only if it is still NULL. Returns True if this call won."""
    updated = (
        ChecklistItem.query
        .filter(ChecklistItem.id == item_id, ChecklistItem.linked_task_id.is_(None))
        .update({ChecklistItem.linked_task_id: task_id}, synchronize_session=False)
    )
    commit_or_raise("surface_tasks.link")
    return updated == 1


def surface_tasks(project_id: str, count: int | None = None, task_creator=None) -> list[ChecklistItem]:
    """Create external tasks for the next actionable items of a project.

    Args:
        project_id: LaunchProject id.
        count: How many items to surface (default SURFACE_DEFAULT_COUNT,
            capped at SURFACE_MAX_COUNT).
        task_creator: TaskCreator to use; defaults to the app's.

    Returns:
        The items that were created and linked, in selection order.

    Raises:
        NotFoundError: unknown project.
        ValidationError: count below 1.
    """
    if count is None:
        count = current_app.config.get("SURFACE_DEFAULT_COUNT", 5)
    if count < 1:
        raise ValidationError("count must be at least 1", details={"count": count})
    count = min(count, current_app.config.get("SURFACE_MAX_COUNT", 50))

    if task_creator is None:
        from launch_engine.integrations import get_task_creator
        task_creator = get_task_creator()

    project = get_or_raise(LaunchProject, project_id)
    title = project.title
    selected = select_candidates(project, count)

    surfaced: list[ChecklistItem] = []
    for item in selected:
        item_id = item.id
        try:
            task_id = task_creator.create_task(
                title=item.item_text,
                priority=task_priority(item),
                notes=task_notes(project, item),
                project=title,
            )
        except TaskCreationError as exc:
            logger.warning(
                "Surfacing skipped item=%s project=%s: %s", item_id, project_id, exc,
            )
            continue

        if not _link(item_id, task_id):
            logger.warning(
                "Surfacing lost link race item=%s project=%s; external task %s is orphaned",
                item_id, project_id, task_id,
            )
            continue

        surfaced.append(db.session.get(ChecklistItem, item_id))

    logger.info(
        "Surfaced %d/%d item(s) project=%s phase=%s",
        len(surfaced), len(selected), project_id, project.current_phase,
    )
    return surfaced
