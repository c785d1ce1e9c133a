"""workflow_board_tables

Creates the workflow board schema:
  - users, projects, project_members       — identity and project scope
  - project_stages                          — typed, ordered board columns
  - project_tasks, project_incidents,
    resource_requests                       — movable work items
  - task_activities, incident_activities,
    resource_request_events                 — append-only history
  - resource_request_comments               — request discussion

Tables created conditionally (IF NOT EXISTS semantics) so the revision can
be stamped onto a development database that already ran db.create_all().

Revision ID: 7c1e4a9b2d30
Revises:
Create Date: 2026-10-19 09:12:44.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '7c1e4a9b2d30'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _placement():
    return [
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("stage_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["stage_id"], ["project_stages.id"], ondelete="SET NULL"),
    ]


def _placement_indexes(table_name):
    op.create_index(f"ix_{table_name}_project_id", table_name, ["project_id"])
    op.create_index(f"ix_{table_name}_stage_id", table_name, ["stage_id"])


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    # ── Identity & scope ─────────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=True),
            sa.Column("avatar_url", sa.String(length=500), nullable=True),
            sa.Column("role", sa.String(length=30), nullable=False,
                      comment="SUPER_ADMIN | ADMIN | SALES_MANAGER | SALES_REP | ..."),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "projects" not in existing:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False),
            sa.Column("owner_id", sa.Integer(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )

    if "project_members" not in existing:
        op.create_table(
            "project_members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("role", sa.String(length=50), nullable=False),
            sa.Column("is_external", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "user_id", name="uq_project_member"),
        )
        op.create_index("ix_project_members_user", "project_members", ["user_id"])

    # ── Stages ───────────────────────────────────────────────────────────
    if "project_stages" not in existing:
        op.create_table(
            "project_stages",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("color", sa.String(length=20), nullable=False),
            sa.Column("order", sa.Integer(), nullable=False),
            sa.Column("stage_type", sa.String(length=20), nullable=False,
                      comment="TASK | INCIDENT | RESOURCE"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_project_stages_project_type_order", "project_stages",
            ["project_id", "stage_type", "order"],
        )

    # ── Work items ───────────────────────────────────────────────────────
    if "project_tasks" not in existing:
        op.create_table(
            "project_tasks",
            sa.Column("id", sa.Integer(), nullable=False),
            *_placement(),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("priority", sa.String(length=20), nullable=False),
            sa.Column("assigned_to", sa.Integer(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["assigned_to"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        _placement_indexes("project_tasks")

    if "project_incidents" not in existing:
        op.create_table(
            "project_incidents",
            sa.Column("id", sa.Integer(), nullable=False),
            *_placement(),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("severity", sa.String(length=20), nullable=False),
            sa.Column("source", sa.String(length=20), nullable=False),
            sa.Column("reported_by", sa.Integer(), nullable=True),
            sa.Column("assigned_to", sa.Integer(), nullable=True),
            sa.Column("related_task_id", sa.Integer(), nullable=True,
                      comment="Cross-reference only, not ownership"),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["reported_by"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["assigned_to"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["related_task_id"], ["project_tasks.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        _placement_indexes("project_incidents")

    if "resource_requests" not in existing:
        op.create_table(
            "resource_requests",
            sa.Column("id", sa.Integer(), nullable=False),
            *_placement(),
            sa.Column("task_id", sa.Integer(), nullable=True),
            sa.Column("incident_id", sa.Integer(), nullable=True),
            sa.Column("requested_by", sa.Integer(), nullable=True),
            sa.Column("approved_by", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("details", sa.Text(), nullable=True),
            sa.Column("sku", sa.String(length=100), nullable=True),
            sa.Column("quantity", sa.Float(), nullable=False),
            sa.Column("unit", sa.String(length=30), nullable=False),
            sa.Column("needed_by", sa.Date(), nullable=True),
            sa.Column("assigned_team", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("priority", sa.String(length=20), nullable=False),
            sa.Column("estimated_cost", sa.Float(), nullable=True),
            sa.Column("currency", sa.String(length=3), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["task_id"], ["project_tasks.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["incident_id"], ["project_incidents.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["requested_by"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["approved_by"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        _placement_indexes("resource_requests")

    # ── History & discussion ─────────────────────────────────────────────
    if "task_activities" not in existing:
        op.create_table(
            "task_activities",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("task_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("detail", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["task_id"], ["project_tasks.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_task_activities_task", "task_activities", ["task_id"])

    if "incident_activities" not in existing:
        op.create_table(
            "incident_activities",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("incident_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=False,
                      comment="COMMENT | STATUS_CHANGE | ASSIGNMENT | ATTACHMENT"),
            sa.Column("detail", sa.JSON(), nullable=True, comment='{"message": ...}'),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["incident_id"], ["project_incidents.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_incident_activities_incident", "incident_activities", ["incident_id"])

    if "resource_request_events" not in existing:
        op.create_table(
            "resource_request_events",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("request_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["request_id"], ["resource_requests.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_resource_request_events_request", "resource_request_events", ["request_id"])

    if "resource_request_comments" not in existing:
        op.create_table(
            "resource_request_comments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("request_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["request_id"], ["resource_requests.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_resource_request_comments_request", "resource_request_comments", ["request_id"],
        )


def downgrade():
    for table in (
        "resource_request_comments",
        "resource_request_events",
        "incident_activities",
        "task_activities",
        "resource_requests",
        "project_incidents",
        "project_tasks",
        "project_stages",
        "project_members",
        "projects",
        "users",
    ):
        op.drop_table(table)
