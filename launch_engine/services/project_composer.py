"""
Project composition — turns registered launch documents into a live project.

Two layers:
    merge_documents()  pure merge of parsed documents into one ordered checklist
    create_project()   loads documents, merges, and persists the project and
                       its checklist in a single commit

Ordering rules:
    - Canonical phase order is the union of each document's phases, in the
      order they are first encountered across the document list.
    - Items are stable-sorted by (canonical phase index, per-document order),
      so equal keys from different documents keep document-list order.
    - The merged list is renumbered 0..N-1 as the project's global sort_order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from launch_engine.core.exceptions import NotFoundError, ValidationError
from launch_engine.models import db
from launch_engine.models.launch import (
    STATUS_SETUP,
    ChecklistItem,
    LaunchDocument,
    LaunchProject,
)
from launch_engine.services.launch_parser import ParsedDocument, parse_document
from launch_engine.utils.helpers import commit_or_raise, parse_date_input

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComposedItem:
    source_document_id: str | None
    phase: str
    section: str | None
    item_text: str
    sort_order: int
    tags: tuple[str, ...]
    due_offset: int | None
    recurrence: str | None


@dataclass(frozen=True)
class ComposedChecklist:
    phases: tuple[str, ...]
    items: tuple[ComposedItem, ...]


def merge_documents(parsed_docs: Sequence[tuple[str | None, ParsedDocument]]) -> ComposedChecklist:
    """Merge parsed documents into one globally ordered checklist.

    Args:
        parsed_docs: (source_document_id, ParsedDocument) pairs in the order
            the caller listed the documents.
    """
    phases: list[str] = []
    tagged = []
    for doc_id, parsed in parsed_docs:
        for phase in parsed.phases:
            if phase not in phases:
                phases.append(phase)
        tagged.extend((doc_id, item) for item in parsed.items)

    phase_index = {phase: i for i, phase in enumerate(phases)}
    ordered = sorted(tagged, key=lambda pair: (phase_index[pair[1].phase], pair[1].sort_order))

    items = tuple(
        ComposedItem(
            source_document_id=doc_id,
            phase=item.phase,
            section=item.section,
            item_text=item.item_text,
            sort_order=position,
            tags=item.tags,
            due_offset=item.due_offset,
            recurrence=item.recurrence,
        )
        for position, (doc_id, item) in enumerate(ordered)
    )
    return ComposedChecklist(phases=tuple(phases), items=items)


def _load_documents(doc_ids: Sequence[str]) -> list[LaunchDocument]:
    docs = []
    for doc_id in doc_ids:
        doc = db.session.get(LaunchDocument, doc_id)
        if doc is None:
            raise NotFoundError(resource="LaunchDocument", resource_id=doc_id)
        docs.append(doc)
    return docs


def create_project(
    doc_ids: Sequence[str],
    target_date=None,
    meta: dict | None = None,
) -> LaunchProject:
    """Compose a new launch project from registered documents.

    Args:
        doc_ids: LaunchDocument ids, in priority order. Repeats are ignored.
        target_date: Optional target launch date (date or ISO string).
        meta: Optional {"title", "genre", "shared", "owner"}. Title defaults to
            the first document's name.

    Returns:
        The persisted LaunchProject in ``setup`` status.

    Raises:
        ValidationError: empty doc list or unparseable target_date.
        NotFoundError: any doc id is unknown. Nothing is written.
        StoreError: the commit failed. Nothing is written.
    """
    meta = meta or {}
    doc_ids = list(dict.fromkeys(doc_ids or []))
    if not doc_ids:
        raise ValidationError("At least one launch document is required", details={"doc_ids": "required"})

    try:
        target = parse_date_input(target_date)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"target_launch_date": target_date}) from exc

    docs = _load_documents(doc_ids)
    composed = merge_documents([(doc.id, parse_document(doc.content)) for doc in docs])

    project = LaunchProject(
        owner=meta.get("owner") or "system",
        title=(meta.get("title") or docs[0].name).strip(),
        genre=meta.get("genre"),
        source_document_ids=doc_ids,
        target_launch_date=target,
        status=STATUS_SETUP,
        current_phase=composed.phases[0],
        shared=bool(meta.get("shared", False)),
    )
    db.session.add(project)
    db.session.flush()

    for item in composed.items:
        db.session.add(ChecklistItem(
            project_id=project.id,
            source_document_id=item.source_document_id,
            phase=item.phase,
            section=item.section,
            item_text=item.item_text,
            sort_order=item.sort_order,
            tags=list(item.tags),
            due_offset=item.due_offset,
            recurrence=item.recurrence,
        ))

    commit_or_raise("create_project")
    logger.info(
        "LaunchProject created id=%s docs=%d items=%d phases=%s",
        project.id, len(docs), len(composed.items), " → ".join(composed.phases),
    )
    return project
