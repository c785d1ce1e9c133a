"""
Activity / event models — append-only history per work item.

Models:
    - TaskActivity: one row per task state change
    - IncidentActivity: one row per incident state change or note
    - ResourceRequestEvent: status history of a resource request
    - ResourceRequestComment: threaded discussion on a resource request

The three history tables are never updated or deleted by the board;
rows disappear only when their parent item is deleted. Comments are the
one mutable record here (author or elevated role may edit/delete).
"""

from datetime import datetime, timezone

from workboard.models import db

ACTIVITY_TYPES = {"COMMENT", "STATUS_CHANGE", "ASSIGNMENT", "ATTACHMENT"}


def _utcnow():
    return datetime.now(timezone.utc)


class _ActivityMixin:
    """Shared shape of task and incident activity rows."""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "detail": self.detail or {},
            "user": self.user.to_summary() if self.user else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class TaskActivity(_ActivityMixin, db.Model):
    __tablename__ = "task_activities"
    __table_args__ = (db.Index("ix_task_activities_task", "task_id"),)

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("project_tasks.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = db.Column(db.String(30), nullable=False, default="COMMENT")
    detail = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {"task_id": self.task_id, **super().to_dict()}


class IncidentActivity(_ActivityMixin, db.Model):
    __tablename__ = "incident_activities"
    __table_args__ = (db.Index("ix_incident_activities_incident", "incident_id"),)

    id = db.Column(db.Integer, primary_key=True)
    incident_id = db.Column(
        db.Integer, db.ForeignKey("project_incidents.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = db.Column(
        db.String(30), nullable=False, default="COMMENT",
        comment="COMMENT | STATUS_CHANGE | ASSIGNMENT | ATTACHMENT",
    )
    detail = db.Column(db.JSON, nullable=True, comment='{"message": ...}')
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {"incident_id": self.incident_id, **super().to_dict()}

    def __repr__(self):
        return f"<IncidentActivity {self.id}: {self.type} on incident {self.incident_id}>"


class ResourceRequestEvent(db.Model):
    """Status history row; ``status`` is the request status at event time."""

    __tablename__ = "resource_request_events"
    __table_args__ = (db.Index("ix_resource_request_events_request", "request_id"),)

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer, db.ForeignKey("resource_requests.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = db.Column(db.String(20), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "status": self.status,
            "notes": self.notes,
            "user": self.user.to_summary() if self.user else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ResourceRequestEvent {self.id}: {self.status} on request {self.request_id}>"


class ResourceRequestComment(db.Model):
    __tablename__ = "resource_request_comments"
    __table_args__ = (db.Index("ix_resource_request_comments_request", "request_id"),)

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer, db.ForeignKey("resource_requests.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "content": self.content,
            "user": self.user.to_summary() if self.user else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ResourceRequestComment {self.id} on request {self.request_id}>"
