"""Activity / event log — append-only history for tasks, incidents and requests.

Writers here only ``add`` to the session; the caller's unit of work
commits the history row together with the change it describes. Nothing in
this module updates or deletes a history row.
"""
import logging

from workboard.models import db
from workboard.models.activity import (
    ACTIVITY_TYPES,
    IncidentActivity,
    ResourceRequestEvent,
    TaskActivity,
)
from workboard.models.workflow import Incident, ResourceRequest, Task
from workboard.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)

REMOVED_FROM_STAGE = "Removed from stage"


def stage_change_message(stage) -> str:
    """Human-readable note for a placement change; ``stage`` None means unstaged."""
    if stage is None:
        return REMOVED_FROM_STAGE
    return f"Moved to stage: {stage.name}"


# ── Writers ──────────────────────────────────────────────────────────────


def _check_type(activity_type):
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {activity_type}")


def record_task_activity(task, user_id, activity_type, message):
    _check_type(activity_type)
    entry = TaskActivity(
        task_id=task.id, user_id=user_id, type=activity_type, detail={"message": message},
    )
    db.session.add(entry)
    return entry


def record_incident_activity(incident, user_id, activity_type, message):
    _check_type(activity_type)
    entry = IncidentActivity(
        incident_id=incident.id, user_id=user_id, type=activity_type, detail={"message": message},
    )
    db.session.add(entry)
    return entry


def record_request_event(request, user_id, notes, status=None):
    """Append a status-history row; ``status`` defaults to the request's current status."""
    entry = ResourceRequestEvent(
        request_id=request.id,
        user_id=user_id,
        status=status or request.status,
        notes=notes,
    )
    db.session.add(entry)
    return entry


def record_stage_change(item, stage, user_id):
    """Append the audit row for a move of ``item`` onto ``stage`` (or off any stage)."""
    message = stage_change_message(stage)
    if item.kind == Incident.kind:
        return record_incident_activity(item, user_id, "STATUS_CHANGE", message)
    if item.kind == ResourceRequest.kind:
        return record_request_event(item, user_id, message)
    return record_task_activity(item, user_id, "STATUS_CHANGE", message)


# ── Readers (oldest first) ───────────────────────────────────────────────


def list_task_activity(project_id, task_id):
    task = get_scoped(Task, task_id, project_id=project_id, resource="Task")
    return task.activities.all()


def list_incident_activity(project_id, incident_id):
    incident = get_scoped(Incident, incident_id, project_id=project_id, resource="Incident")
    return incident.activities.all()


def list_request_events(project_id, request_id):
    request = get_scoped(
        ResourceRequest, request_id, project_id=project_id, resource="Resource request",
    )
    return request.events.all()
