"""
Launch document registry — service layer.

Stores checklist markup templates. A document is only accepted when its
markup parses to at least one phase, so every registered document can seed a
project. Content edits replace the markup and bump the version string.
"""

import logging
import re

from launch_engine.core.exceptions import NotFoundError, ValidationError
from launch_engine.models import db
from launch_engine.models.launch import DOC_TYPES, LaunchDocument
from launch_engine.services.launch_parser import parse_document
from launch_engine.utils.helpers import commit_or_raise, get_or_raise

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"\d+(?:\.\d+)?")


def _summary(doc: LaunchDocument, parsed) -> dict:
    d = doc.to_dict()
    d["phases"] = list(parsed.phases)
    d["item_count"] = len(parsed.items)
    return d


def next_version(current: str | None) -> str:
    """Bump a "major.minor" version string by 0.1 ("1.0" → "1.1", "1.9" → "2.0").

    Only the leading number is read, so "2.0-draft" becomes "2.1".
    """
    match = _VERSION_RE.match(current or "")
    base = float(match.group(0)) if match else 1.0
    return f"{base + 0.1:.1f}"


def add_document(name: str, doc_type: str, content: str, description: str | None = None) -> dict:
    """Register a new checklist document at version 1.0.

    Raises:
        ValidationError: blank name or unknown doc_type.
        InvalidDocumentError: markup has no phases.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if doc_type not in DOC_TYPES:
        raise ValidationError(
            f"doc_type must be one of {sorted(DOC_TYPES)}", details={"doc_type": doc_type},
        )
    parsed = parse_document(content)

    doc = LaunchDocument(
        name=name,
        doc_type=doc_type,
        description=description,
        content=content,
        version="1.0",
    )
    db.session.add(doc)
    commit_or_raise("add_document")
    logger.info(
        "LaunchDocument created id=%s name=%s phases=%d items=%d",
        doc.id, name[:200], len(parsed.phases), len(parsed.items),
    )
    return _summary(doc, parsed)


def list_documents(doc_type: str | None = None) -> list[dict]:
    q = LaunchDocument.query
    if doc_type:
        q = q.filter_by(doc_type=doc_type)
    return [d.to_dict() for d in q.order_by(LaunchDocument.name).all()]


def find_document(doc_id: str | None = None, name: str | None = None) -> LaunchDocument:
    """Look a document up by id, or by a case-insensitive name fragment."""
    if doc_id:
        return get_or_raise(LaunchDocument, doc_id)
    if name:
        doc = (
            LaunchDocument.query
            .filter(LaunchDocument.name.ilike(f"%{name}%"))
            .order_by(LaunchDocument.name)
            .first()
        )
        if doc:
            return doc
    raise NotFoundError(resource="LaunchDocument", resource_id=name)


def view_document(doc_id: str | None = None, name: str | None = None) -> dict:
    doc = find_document(doc_id, name)
    d = _summary(doc, parse_document(doc.content))
    d["content"] = doc.content
    return d


def update_document(doc_id: str, content: str, version: str | None = None) -> dict:
    """Replace a document's markup.

    The version is bumped by 0.1 unless an explicit one is supplied. Projects
    already composed from the document keep their checklist rows.

    Raises:
        NotFoundError: unknown doc_id.
        InvalidDocumentError: new markup has no phases.
    """
    doc = get_or_raise(LaunchDocument, doc_id)
    parsed = parse_document(content)

    doc.content = content
    doc.version = version or next_version(doc.version)
    commit_or_raise("update_document")
    logger.info("LaunchDocument updated id=%s version=%s", doc.id, doc.version)
    return _summary(doc, parsed)
