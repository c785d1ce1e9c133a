"""
Workflow board models.

Models:
    - Stage: ordered, typed column on a project's board
    - Task, Incident, ResourceRequest: the three movable work item kinds

Every item kind shares ``PlacementMixin``: an immutable ``project_id``, a
nullable ``stage_id`` (NULL = backlog / not on the board) and a class-level
``kind`` naming the only stage type it may be placed on.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import declared_attr

from workboard.models import db

# ── Shared constants ─────────────────────────────────────────────────────

STAGE_TYPES = {"TASK", "INCIDENT", "RESOURCE"}
DEFAULT_STAGE_TYPE = "TASK"
DEFAULT_STAGE_COLOR = "#6366F1"

TASK_STATUSES = {"PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED", "OVERDUE"}
TASK_PRIORITIES = {"LOW", "MEDIUM", "HIGH", "URGENT"}

INCIDENT_STATUSES = {"NEW", "IN_PROGRESS", "RESOLVED", "CLOSED"}
INCIDENT_SEVERITIES = {"LOW", "MEDIUM", "HIGH", "CRITICAL"}
INCIDENT_SOURCES = {"INTERNAL", "CLIENT", "QA", "REGULATORY", "OTHER"}

REQUEST_STATUSES = {"DRAFT", "SUBMITTED", "APPROVED", "DECLINED", "FULFILLED", "CANCELLED"}
REQUEST_PRIORITIES = {"LOW", "NORMAL", "HIGH", "URGENT"}
REQUEST_TEAMS = {"WAREHOUSE", "PURCHASING", "FACILITIES", "IT", "HR", "FINANCE", "OTHER"}


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def _user_summary(user):
    return user.to_summary() if user else None


class Stage(db.Model):
    """
    A column on a project's board.

    ``order`` is the sort key within ``(project_id, stage_type)``; new stages
    are appended at max + 1 by the stage service.
    """

    __tablename__ = "project_stages"
    __table_args__ = (
        db.Index("ix_project_stages_project_type_order", "project_id", "stage_type", "order"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.String(120), nullable=False)
    color = db.Column(db.String(20), nullable=False, default=DEFAULT_STAGE_COLOR)
    order = db.Column(db.Integer, nullable=False, default=0)
    stage_type = db.Column(
        db.String(20), nullable=False, default=DEFAULT_STAGE_TYPE,
        comment="TASK | INCIDENT | RESOURCE",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    tasks = db.relationship("Task", backref="stage", lazy="dynamic")
    incidents = db.relationship("Incident", backref="stage", lazy="dynamic")
    resource_requests = db.relationship("ResourceRequest", backref="stage", lazy="dynamic")

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color, "order": self.order}

    def to_dict(self, include_counts=True) -> dict:
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "color": self.color,
            "order": self.order,
            "stage_type": self.stage_type,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_counts:
            # Resource requests are not counted; board columns only show
            # task and incident totals.
            result["_count"] = {
                "tasks": self.tasks.count(),
                "incidents": self.incidents.count(),
            }
        return result

    def __repr__(self):
        return f"<Stage {self.id}: {self.name} ({self.stage_type})>"


class PlacementMixin:
    """Columns shared by every item kind that can sit on a stage."""

    kind = None

    @declared_attr
    def project_id(cls):
        return db.Column(
            db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False, index=True,
        )

    @declared_attr
    def stage_id(cls):
        return db.Column(
            db.Integer, db.ForeignKey("project_stages.id", ondelete="SET NULL"),
            nullable=True, index=True,
        )

    @declared_attr
    def created_at(cls):
        return db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @declared_attr
    def updated_at(cls):
        return db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def placement(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "project_id": self.project_id,
            "stage_id": self.stage_id,
            "status": self.status,
        }


class Task(PlacementMixin, db.Model):
    __tablename__ = "project_tasks"

    kind = "TASK"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    priority = db.Column(db.String(20), nullable=False, default="MEDIUM")
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    due_date = db.Column(db.Date, nullable=True)

    assignee = db.relationship("User", foreign_keys=[assigned_to])
    creator = db.relationship("User", foreign_keys=[created_by])
    activities = db.relationship(
        "TaskActivity", backref="task", lazy="dynamic",
        cascade="all, delete-orphan", order_by="TaskActivity.id",
    )

    def to_dict(self) -> dict:
        return {
            **self.placement(),
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "due_date": _iso(self.due_date),
            "assignee": _user_summary(self.assignee),
            "creator": _user_summary(self.creator),
            "stage": self.stage.to_summary() if self.stage else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_reference(self) -> dict:
        return {"id": self.id, "title": self.title, "status": self.status}

    def __repr__(self):
        return f"<Task {self.id}: {self.title}>"


class Incident(PlacementMixin, db.Model):
    __tablename__ = "project_incidents"

    kind = "INCIDENT"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="NEW")
    severity = db.Column(db.String(20), nullable=False, default="MEDIUM")
    source = db.Column(db.String(20), nullable=False, default="INTERNAL")
    reported_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    related_task_id = db.Column(
        db.Integer, db.ForeignKey("project_tasks.id", ondelete="SET NULL"), nullable=True,
        comment="Cross-reference only, not ownership",
    )
    due_date = db.Column(db.Date, nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    reporter = db.relationship("User", foreign_keys=[reported_by])
    assignee = db.relationship("User", foreign_keys=[assigned_to])
    related_task = db.relationship("Task", foreign_keys=[related_task_id])
    activities = db.relationship(
        "IncidentActivity", backref="incident", lazy="dynamic",
        cascade="all, delete-orphan", order_by="IncidentActivity.id",
    )

    def to_dict(self, include_activity=False) -> dict:
        result = {
            **self.placement(),
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "source": self.source,
            "reported_by": self.reported_by,
            "assigned_to": self.assigned_to,
            "related_task_id": self.related_task_id,
            "due_date": _iso(self.due_date),
            "resolved_at": _iso(self.resolved_at),
            "reporter": _user_summary(self.reporter),
            "assignee": _user_summary(self.assignee),
            "stage": self.stage.to_summary() if self.stage else None,
            "related_task": self.related_task.to_reference() if self.related_task else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_activity:
            result["activities"] = [a.to_dict() for a in self.activities]
        return result

    def to_reference(self) -> dict:
        return {"id": self.id, "title": self.title, "status": self.status}

    def __repr__(self):
        return f"<Incident {self.id}: {self.title}>"


class ResourceRequest(PlacementMixin, db.Model):
    __tablename__ = "resource_requests"

    kind = "RESOURCE"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("project_tasks.id", ondelete="SET NULL"), nullable=True)
    incident_id = db.Column(
        db.Integer, db.ForeignKey("project_incidents.id", ondelete="SET NULL"), nullable=True
    )
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    title = db.Column(db.String(300), nullable=False)
    details = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(100), nullable=True)
    quantity = db.Column(db.Float, nullable=False, default=1)
    unit = db.Column(db.String(30), nullable=False, default="unit")
    needed_by = db.Column(db.Date, nullable=True)
    assigned_team = db.Column(db.String(20), nullable=False, default="WAREHOUSE")
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    priority = db.Column(db.String(20), nullable=False, default="NORMAL")
    estimated_cost = db.Column(db.Float, nullable=True)
    currency = db.Column(db.String(3), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    fulfilled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    requester = db.relationship("User", foreign_keys=[requested_by])
    approver = db.relationship("User", foreign_keys=[approved_by])
    task = db.relationship("Task", foreign_keys=[task_id])
    incident = db.relationship("Incident", foreign_keys=[incident_id])
    events = db.relationship(
        "ResourceRequestEvent", backref="request", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ResourceRequestEvent.id",
    )
    comments = db.relationship(
        "ResourceRequestComment", backref="request", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ResourceRequestComment.id",
    )

    def to_dict(self, include_history=False) -> dict:
        result = {
            **self.placement(),
            "task_id": self.task_id,
            "incident_id": self.incident_id,
            "requested_by": self.requested_by,
            "approved_by": self.approved_by,
            "title": self.title,
            "details": self.details,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit": self.unit,
            "needed_by": _iso(self.needed_by),
            "assigned_team": self.assigned_team,
            "priority": self.priority,
            "estimated_cost": self.estimated_cost,
            "currency": self.currency,
            "approved_at": _iso(self.approved_at),
            "fulfilled_at": _iso(self.fulfilled_at),
            "requester": _user_summary(self.requester),
            "approver": _user_summary(self.approver),
            "task": self.task.to_reference() if self.task else None,
            "incident": self.incident.to_reference() if self.incident else None,
            "stage": self.stage.to_summary() if self.stage else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_history:
            result["status_history"] = [e.to_dict() for e in self.events]
        return result

    def __repr__(self):
        return f"<ResourceRequest {self.id}: {self.title} [{self.status}]>"


# kind → model, used by the move and item services
ITEM_MODELS = {
    Task.kind: Task,
    Incident.kind: Incident,
    ResourceRequest.kind: ResourceRequest,
}
