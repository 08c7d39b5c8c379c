"""
Launch Orchestration Engine — tracking models.

Per-project logs that run alongside the checklist:
    PostingLogEntry — dated post counts per platform (feeds streaks)
    ContentBatch    — content production batches (feeds the content buffer)
    LaunchMetric    — free-form typed metric readings
    LaunchCheckin   — weekly accountability check-ins

All rows cascade with their LaunchProject and are wiped by a reset that does
not keep metrics.
"""

import uuid
from datetime import datetime, timezone

from launch_engine.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


DEFAULT_PLATFORMS = ("tiktok", "email", "substack", "instagram", "youtube")


class PostingLogEntry(db.Model):
    __tablename__ = "launch_posting_log"
    __table_args__ = (
        db.Index("ix_launch_posting_project_platform_date", "project_id", "platform", "post_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("launch_projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    owner = db.Column(db.String(100), nullable=False, default="system")
    post_date = db.Column(db.Date, nullable=False)
    platform = db.Column(db.String(30), nullable=False)
    post_count = db.Column(db.Integer, nullable=False, default=1)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "owner": self.owner,
            "post_date": _iso(self.post_date),
            "platform": self.platform,
            "post_count": self.post_count,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<PostingLogEntry {self.platform} {self.post_date} x{self.post_count}>"


class ContentBatch(db.Model):
    __tablename__ = "launch_content_batches"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("launch_projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    owner = db.Column(db.String(100), nullable=False, default="system")
    batch_date = db.Column(db.Date, nullable=False)
    platform = db.Column(db.String(30), nullable=False, default="tiktok")
    videos_scripted = db.Column(db.Integer, nullable=False, default=0)
    videos_filmed = db.Column(db.Integer, nullable=False, default=0)
    videos_edited = db.Column(db.Integer, nullable=False, default=0)
    videos_scheduled = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "owner": self.owner,
            "batch_date": _iso(self.batch_date),
            "platform": self.platform,
            "videos_scripted": self.videos_scripted,
            "videos_filmed": self.videos_filmed,
            "videos_edited": self.videos_edited,
            "videos_scheduled": self.videos_scheduled,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }


class LaunchMetric(db.Model):
    __tablename__ = "launch_metrics"
    __table_args__ = (
        db.Index("ix_launch_metrics_project_date", "project_id", "recorded_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("launch_projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    owner = db.Column(db.String(100), nullable=False, default="system")
    recorded_date = db.Column(db.Date, nullable=False)
    metric_type = db.Column(db.String(50), nullable=False)
    metric_name = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "recorded_date": _iso(self.recorded_date),
            "metric_type": self.metric_type,
            "metric_name": self.metric_name,
            "value": self.value,
            "notes": self.notes,
        }


class LaunchCheckin(db.Model):
    """Weekly accountability check-in with a snapshot of the latest metrics."""

    __tablename__ = "launch_checkins"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("launch_projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    owner = db.Column(db.String(100), nullable=False, default="system")
    week_number = db.Column(db.Integer, nullable=False)
    checkin_date = db.Column(db.Date, nullable=False)
    wins = db.Column(db.Text, nullable=True)
    struggles = db.Column(db.Text, nullable=True)
    patterns = db.Column(db.Text, nullable=True)
    next_week_focus = db.Column(db.Text, nullable=True)
    metrics_snapshot = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "owner": self.owner,
            "week_number": self.week_number,
            "checkin_date": _iso(self.checkin_date),
            "wins": self.wins,
            "struggles": self.struggles,
            "patterns": self.patterns,
            "next_week_focus": self.next_week_focus,
            "metrics_snapshot": self.metrics_snapshot or [],
            "created_at": _iso(self.created_at),
        }
