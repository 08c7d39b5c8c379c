"""launch_engine_tables

Create launch documents, projects, checklist items and the tracking tables
(posting log, content batches, metrics, check-ins).

Revision ID: 4c1e0a9b7d21
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "4c1e0a9b7d21"
down_revision = None
branch_labels = None
depends_on = None


def _project_fk():
    return sa.ForeignKeyConstraint(["project_id"], ["launch_projects.id"], ondelete="CASCADE")


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "launch_documents" not in existing_tables:
        op.create_table(
            "launch_documents",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("doc_type", sa.String(length=20), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("version", sa.String(length=20), nullable=False, server_default="1.0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_documents_name", "launch_documents", ["name"])

    if "launch_projects" not in existing_tables:
        op.create_table(
            "launch_projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("owner", sa.String(length=100), nullable=False, server_default="system"),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("genre", sa.String(length=100), nullable=True),
            sa.Column("source_document_ids", sa.JSON(), nullable=False),
            sa.Column("target_launch_date", sa.Date(), nullable=True),
            sa.Column("status", sa.String(length=100), nullable=False, server_default="setup"),
            sa.Column("current_phase", sa.String(length=200), nullable=True),
            sa.Column("shared", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_projects_owner_status", "launch_projects", ["owner", "status"])

    if "launch_checklist_items" not in existing_tables:
        op.create_table(
            "launch_checklist_items",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("source_document_id", sa.String(length=36), nullable=True),
            sa.Column("phase", sa.String(length=200), nullable=False),
            sa.Column("section", sa.String(length=200), nullable=True),
            sa.Column("item_text", sa.Text(), nullable=False),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("tags", sa.JSON(), nullable=False),
            sa.Column("due_offset", sa.Integer(), nullable=True),
            sa.Column("recurrence", sa.String(length=10), nullable=True),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("linked_task_id", sa.String(length=64), nullable=True),
            sa.Column("handed_to", sa.String(length=100), nullable=True),
            sa.Column("handed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            _project_fk(),
            sa.ForeignKeyConstraint(["source_document_id"], ["launch_documents.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_checklist_items_project_id", "launch_checklist_items", ["project_id"])
        op.create_index("ix_launch_items_project_phase", "launch_checklist_items", ["project_id", "phase"])
        op.create_index("ix_launch_items_project_order", "launch_checklist_items", ["project_id", "sort_order"])
        op.create_index("ix_launch_items_task", "launch_checklist_items", ["linked_task_id"])

    if "launch_posting_log" not in existing_tables:
        op.create_table(
            "launch_posting_log",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("owner", sa.String(length=100), nullable=False, server_default="system"),
            sa.Column("post_date", sa.Date(), nullable=False),
            sa.Column("platform", sa.String(length=30), nullable=False),
            sa.Column("post_count", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_posting_log_project_id", "launch_posting_log", ["project_id"])
        op.create_index(
            "ix_launch_posting_project_platform_date",
            "launch_posting_log",
            ["project_id", "platform", "post_date"],
        )

    if "launch_content_batches" not in existing_tables:
        op.create_table(
            "launch_content_batches",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("owner", sa.String(length=100), nullable=False, server_default="system"),
            sa.Column("batch_date", sa.Date(), nullable=False),
            sa.Column("platform", sa.String(length=30), nullable=False, server_default="tiktok"),
            sa.Column("videos_scripted", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("videos_filmed", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("videos_edited", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("videos_scheduled", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_content_batches_project_id", "launch_content_batches", ["project_id"])

    if "launch_metrics" not in existing_tables:
        op.create_table(
            "launch_metrics",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("owner", sa.String(length=100), nullable=False, server_default="system"),
            sa.Column("recorded_date", sa.Date(), nullable=False),
            sa.Column("metric_type", sa.String(length=50), nullable=False),
            sa.Column("metric_name", sa.String(length=100), nullable=False),
            sa.Column("value", sa.Float(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_metrics_project_id", "launch_metrics", ["project_id"])
        op.create_index("ix_launch_metrics_project_date", "launch_metrics", ["project_id", "recorded_date"])

    if "launch_checkins" not in existing_tables:
        op.create_table(
            "launch_checkins",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("owner", sa.String(length=100), nullable=False, server_default="system"),
            sa.Column("week_number", sa.Integer(), nullable=False),
            sa.Column("checkin_date", sa.Date(), nullable=False),
            sa.Column("wins", sa.Text(), nullable=True),
            sa.Column("struggles", sa.Text(), nullable=True),
            sa.Column("patterns", sa.Text(), nullable=True),
            sa.Column("next_week_focus", sa.Text(), nullable=True),
            sa.Column("metrics_snapshot", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_launch_checkins_project_id", "launch_checkins", ["project_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "launch_checkins",
        "launch_metrics",
        "launch_content_batches",
        "launch_posting_log",
        "launch_checklist_items",
        "launch_projects",
        "launch_documents",
    ):
        if table in existing_tables:
            op.drop_table(table)
