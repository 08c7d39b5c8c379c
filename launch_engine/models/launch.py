"""
Launch Orchestration Engine — checklist domain models.

Models:
    1. LaunchDocument   — versioned checklist markup template
    2. LaunchProject    — a live launch composed from one or more documents
    3. ChecklistItem    — one actionable line of a project's merged checklist

The markup itself is never persisted in parsed form; ChecklistItem rows are
the materialised result of composing documents at project creation time.
"""

import uuid
from datetime import datetime, timedelta, timezone

from launch_engine.models import db


def _uuid():
    """Generate a new UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


DOC_TYPES = {"engine", "playbook", "operations"}

STATUS_SETUP = "setup"
STATUS_COMPLETE = "complete"

RECURRENCES = {"daily", "weekly"}

TAG_CRITICAL = "CRITICAL"
TAG_PRIORITY_HIGH = "PRIORITY:HIGH"


def phase_slug(phase: str) -> str:
    """Project status for a phase: lower-cased, whitespace runs become '-'."""
    return "-".join(phase.lower().split())


# ═════════════════════════════════════════════════════════════════════════════
# 1. LaunchDocument
# ═════════════════════════════════════════════════════════════════════════════

class LaunchDocument(db.Model):
    """Checklist markup template (engine, playbook or operations doc).

    Treated as immutable content per version: edits replace ``content`` and
    bump ``version`` rather than patching individual items.
    """

    __tablename__ = "launch_documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False, index=True)
    doc_type = db.Column(
        db.String(20), nullable=False,
        comment="engine | playbook | operations",
    )
    description = db.Column(db.Text, nullable=True)
    content = db.Column(db.Text, nullable=False)
    version = db.Column(db.String(20), nullable=False, default="1.0")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self, include_content=False):
        d = {
            "id": self.id,
            "name": self.name,
            "doc_type": self.doc_type,
            "description": self.description,
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_content:
            d["content"] = self.content
        return d

    def __repr__(self):
        return f"<LaunchDocument {self.id}: {self.name} v{self.version}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. LaunchProject
# ═════════════════════════════════════════════════════════════════════════════

class LaunchProject(db.Model):
    """A launch in progress.

    ``status`` moves setup → <phase slug>... → complete. ``current_phase`` is
    always one of the phases present in the project's checklist.
    """

    __tablename__ = "launch_projects"
    __table_args__ = (
        db.Index("ix_launch_projects_owner_status", "owner", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    owner = db.Column(db.String(100), nullable=False, default="system")
    title = db.Column(db.String(200), nullable=False)
    genre = db.Column(db.String(100), nullable=True)
    source_document_ids = db.Column(db.JSON, nullable=False, default=list)
    target_launch_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(100), nullable=False, default=STATUS_SETUP)
    current_phase = db.Column(db.String(200), nullable=True)
    shared = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    items = db.relationship(
        "ChecklistItem", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ChecklistItem.sort_order",
    )

    def days_to_launch(self, today=None):
        """Whole days until the target date, negative once it has passed."""
        if not self.target_launch_date:
            return None
        today = today or _utcnow().date()
        return (self.target_launch_date - today).days

    def to_dict(self):
        return {
            "id": self.id,
            "owner": self.owner,
            "title": self.title,
            "genre": self.genre,
            "source_document_ids": list(self.source_document_ids or []),
            "target_launch_date": _iso(self.target_launch_date),
            "days_to_launch": self.days_to_launch(),
            "status": self.status,
            "current_phase": self.current_phase,
            "shared": self.shared,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<LaunchProject {self.id}: {self.title} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 3. ChecklistItem
# ═════════════════════════════════════════════════════════════════════════════

class ChecklistItem(db.Model):
    """One checklist line bound to a project.

    ``sort_order`` is unique per project and follows (phase order, document
    order). ``linked_task_id`` is owned by the task surfacer and is only ever
    written while NULL.
    """

    __tablename__ = "launch_checklist_items"
    __table_args__ = (
        db.Index("ix_launch_items_project_phase", "project_id", "phase"),
        db.Index("ix_launch_items_project_order", "project_id", "sort_order"),
        db.Index("ix_launch_items_task", "linked_task_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("launch_projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    source_document_id = db.Column(
        db.String(36), db.ForeignKey("launch_documents.id", ondelete="SET NULL"),
        nullable=True, comment="NULL for manually added items",
    )
    phase = db.Column(db.String(200), nullable=False)
    section = db.Column(db.String(200), nullable=True)
    item_text = db.Column(db.Text, nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    tags = db.Column(db.JSON, nullable=False, default=list)
    due_offset = db.Column(db.Integer, nullable=True, comment="Days relative to launch date")
    recurrence = db.Column(db.String(10), nullable=True, comment="daily | weekly")

    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    linked_task_id = db.Column(db.String(64), nullable=True)
    handed_to = db.Column(db.String(100), nullable=True)
    handed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    def has_tag(self, tag: str) -> bool:
        return tag in (self.tags or [])

    @property
    def is_critical(self) -> bool:
        return self.has_tag(TAG_CRITICAL)

    def due_date(self, target_launch_date):
        """Absolute due date once the project has a target launch date."""
        if self.due_offset is None or target_launch_date is None:
            return None
        return target_launch_date + timedelta(days=self.due_offset)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "source_document_id": self.source_document_id,
            "phase": self.phase,
            "section": self.section,
            "item_text": self.item_text,
            "sort_order": self.sort_order,
            "tags": list(self.tags or []),
            "due_offset": self.due_offset,
            "recurrence": self.recurrence,
            "completed": self.completed,
            "completed_at": _iso(self.completed_at),
            "linked_task_id": self.linked_task_id,
            "handed_to": self.handed_to,
            "handed_at": _iso(self.handed_at),
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<ChecklistItem {self.sort_order}: {self.item_text[:40]}>"
