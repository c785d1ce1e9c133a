"""Workflow item store — tasks, incidents and resource requests.

Transaction policy: every mutation runs inside ``unit_of_work()``. All
input is parsed and validated before the first ``add``; cross-references
are checked against the same project.

Extracted operations:
- list_tasks / list_incidents / list_resource_requests
- get_task / get_incident / get_resource_request
- create_task / create_incident (+ "Incident created" activity)
- create_resource_request (+ DRAFT "Resource request created" event)
- update_resource_request_status (+ one "Status changed to X" event)
- update_incident / update_resource_request: partial edits with change
  tracking; delete_incident / delete_resource_request

``project_id`` never changes after creation. A ``stage_id`` change in an
edit goes through ``move_service.resolve_stage`` / ``place``, so it gets
the same typed-stage check and audit row as a move.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import case, select

from workboard.core.exceptions import NotFoundError, ValidationError
from workboard.models import db
from workboard.models.auth import User
from workboard.models.project import Project
from workboard.models.workflow import (
    INCIDENT_SEVERITIES,
    INCIDENT_SOURCES,
    INCIDENT_STATUSES,
    REQUEST_PRIORITIES,
    REQUEST_STATUSES,
    REQUEST_TEAMS,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Incident,
    ResourceRequest,
    Task,
)
from workboard.services import activity_service, move_service
from workboard.services.helpers.scoped_queries import get_scoped, get_scoped_or_none
from workboard.services.helpers.unit_of_work import unit_of_work
from workboard.utils.helpers import parse_date, parse_datetime, parse_float, parse_int, pick

logger = logging.getLogger(__name__)

_TASK_PRIORITY_RANK = {"LOW": 0, "MEDIUM": 1, "HIGH": 2, "URGENT": 3}
_TITLE_MAX = 300


def _utcnow():
    return datetime.now(timezone.utc)


# ── Input parsing ────────────────────────────────────────────────────────


def _present(data, *keys):
    return any(key in data for key in keys)


def _require_title(data):
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required", details={"title": "required"})
    if len(title.strip()) > _TITLE_MAX:
        raise ValidationError(f"Title must be at most {_TITLE_MAX} characters", details={"title": _TITLE_MAX})
    return title.strip()


def _text(data, keys, label, max_length=None):
    """Optional free-text field; empty means None, non-strings are rejected."""
    value = pick(data, *keys)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a string", details={keys[-1]: "string"})
    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{label} must be at most {max_length} characters", details={keys[-1]: max_length},
        )
    return value


def _currency(data):
    value = _text(data, ("currency",), "Currency")
    if value is None:
        return None
    if len(value) != 3 or not value.isalpha():
        raise ValidationError("Currency must be a 3-letter code", details={"currency": value})
    return value.upper()


def _enum(data, keys, allowed, default, label):
    value = pick(data, *keys)
    if value in (None, ""):
        return default
    if not isinstance(value, str) or value not in allowed:
        raise ValidationError(f"Invalid {label}: {value!r}", details={keys[-1]: sorted(allowed)})
    return value


def _parsed(parser, data, *keys):
    raw = pick(data, *keys)
    try:
        return parser(raw)
    except ValueError as exc:
        raise ValidationError(str(exc), details={keys[-1]: raw}) from exc


def _quantity(data):
    quantity = _parsed(parse_float, data, "quantity")
    if quantity is not None and quantity <= 0:
        raise ValidationError("Quantity must be greater than zero", details={"quantity": quantity})
    return quantity


def _require_project(project_id):
    if db.session.get(Project, project_id) is None:
        raise NotFoundError(resource="Project", resource_id=project_id)


def _check_user(user_id, field):
    if user_id is not None and db.session.get(User, user_id) is None:
        raise ValidationError(f"Unknown user for {field}", details={field: user_id})


def _check_reference(model, item_id, project_id, label, field):
    if item_id is None:
        return
    if get_scoped_or_none(model, item_id, project_id=project_id) is None:
        raise ValidationError(f"Invalid {label} for this project", details={field: item_id})


def _actor_id(actor):
    return actor.id if actor is not None else None


# ── Queries ──────────────────────────────────────────────────────────────


def list_tasks(project_id):
    """Tasks by priority (most urgent first), then due date, then newest."""
    priority_rank = case(_TASK_PRIORITY_RANK, value=Task.priority, else_=0)
    stmt = (
        select(Task)
        .where(Task.project_id == project_id)
        .order_by(
            priority_rank.desc(),
            Task.due_date.is_(None),
            Task.due_date.asc(),
            Task.created_at.desc(),
            Task.id.desc(),
        )
    )
    return list(db.session.execute(stmt).scalars())


def list_incidents(project_id):
    stmt = (
        select(Incident)
        .where(Incident.project_id == project_id)
        .order_by(Incident.created_at.desc(), Incident.id.desc())
    )
    return list(db.session.execute(stmt).scalars())


def list_resource_requests(project_id):
    stmt = (
        select(ResourceRequest)
        .where(ResourceRequest.project_id == project_id)
        .order_by(ResourceRequest.created_at.desc(), ResourceRequest.id.desc())
    )
    return list(db.session.execute(stmt).scalars())


def get_task(project_id, task_id):
    return get_scoped(Task, task_id, project_id=project_id, resource="Task")


def get_incident(project_id, incident_id):
    return get_scoped(Incident, incident_id, project_id=project_id, resource="Incident")


def get_resource_request(project_id, request_id):
    return get_scoped(
        ResourceRequest, request_id, project_id=project_id, resource="Resource request",
    )


# ── Task ─────────────────────────────────────────────────────────────────


def create_task(project_id, data, actor):
    """Create a task, optionally placed on a TASK stage.

    Returns:
        Task instance (committed).
    """
    title = _require_title(data)
    description = _text(data, ("description",), "Description")
    status = _enum(data, ("status",), TASK_STATUSES, "PENDING", "status")
    priority = _enum(data, ("priority",), TASK_PRIORITIES, "MEDIUM", "priority")
    assigned_to = _parsed(parse_int, data, "assignedTo", "assigned_to")
    stage_id = _parsed(parse_int, data, "stageId", "stage_id")
    due_date = _parsed(parse_date, data, "dueDate", "due_date")
    user_id = _actor_id(actor)

    with unit_of_work() as session:
        _require_project(project_id)
        _check_user(assigned_to, "assigned_to")
        move_service.resolve_stage(project_id, Task.kind, stage_id)

        task = Task(
            project_id=project_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            assigned_to=assigned_to,
            created_by=user_id,
            stage_id=stage_id,
            due_date=due_date,
        )
        session.add(task)
        session.flush()

    logger.info("Task %s created in project %s by user %s", task.id, project_id, user_id)
    return task


# ── Incident ─────────────────────────────────────────────────────────────


def create_incident(project_id, data, actor):
    """Create an incident and its opening "Incident created" activity.

    Returns:
        Incident instance (committed).
    """
    title = _require_title(data)
    description = _text(data, ("description",), "Description")
    severity = _enum(data, ("severity",), INCIDENT_SEVERITIES, "MEDIUM", "severity")
    source = _enum(data, ("source",), INCIDENT_SOURCES, "INTERNAL", "source")
    assigned_to = _parsed(parse_int, data, "assignedTo", "assigned_to")
    stage_id = _parsed(parse_int, data, "stageId", "stage_id")
    related_task_id = _parsed(parse_int, data, "relatedTaskId", "related_task_id")
    due_date = _parsed(parse_date, data, "dueDate", "due_date")
    user_id = _actor_id(actor)

    with unit_of_work() as session:
        _require_project(project_id)
        _check_user(assigned_to, "assigned_to")
        move_service.resolve_stage(project_id, Incident.kind, stage_id)
        _check_reference(Task, related_task_id, project_id, "task", "related_task_id")

        incident = Incident(
            project_id=project_id,
            title=title,
            description=description,
            severity=severity,
            source=source,
            reported_by=user_id,
            assigned_to=assigned_to,
            stage_id=stage_id,
            related_task_id=related_task_id,
            due_date=due_date,
        )
        session.add(incident)
        session.flush()
        activity_service.record_incident_activity(incident, user_id, "COMMENT", "Incident created")

    logger.info(
        "Incident %s created in project %s by user %s (severity=%s)",
        incident.id, project_id, user_id, severity,
    )
    return incident


def update_incident(project_id, incident_id, data, actor):
    """Apply a partial edit; only keys present in ``data`` change.

    Tracked changes append one activity row each: STATUS_CHANGE
    "Status changed from X to Y", ASSIGNMENT "Assignment changed", and the
    move row for a stage change. Moving to RESOLVED or CLOSED stamps
    ``resolved_at`` unless the body sets it or it is already set.
    """
    title = _require_title(data) if "title" in data else None
    status = _enum(data, ("status",), INCIDENT_STATUSES, None, "status")
    severity = _enum(data, ("severity",), INCIDENT_SEVERITIES, None, "severity")
    source = _enum(data, ("source",), INCIDENT_SOURCES, None, "source")

    fields = {}
    if "description" in data:
        fields["description"] = _text(data, ("description",), "Description")
    if _present(data, "assignedTo", "assigned_to"):
        fields["assigned_to"] = _parsed(parse_int, data, "assignedTo", "assigned_to")
    if _present(data, "relatedTaskId", "related_task_id"):
        fields["related_task_id"] = _parsed(parse_int, data, "relatedTaskId", "related_task_id")
    if _present(data, "dueDate", "due_date"):
        fields["due_date"] = _parsed(parse_date, data, "dueDate", "due_date")
    if _present(data, "resolvedAt", "resolved_at"):
        fields["resolved_at"] = _parsed(parse_datetime, data, "resolvedAt", "resolved_at")
    moving = _present(data, "stageId", "stage_id")
    stage_id = _parsed(parse_int, data, "stageId", "stage_id") if moving else None
    user_id = _actor_id(actor)

    with unit_of_work():
        incident = get_incident(project_id, incident_id)
        _check_user(fields.get("assigned_to"), "assigned_to")
        _check_reference(Task, fields.get("related_task_id"), project_id, "task", "related_task_id")
        stage = move_service.resolve_stage(project_id, Incident.kind, stage_id) if moving else None

        previous_status = incident.status
        previous_assignee = incident.assigned_to
        if title is not None:
            incident.title = title
        if severity is not None:
            incident.severity = severity
        if source is not None:
            incident.source = source
        for name, value in fields.items():
            setattr(incident, name, value)

        if status is not None and status != previous_status:
            incident.status = status
            if status in ("RESOLVED", "CLOSED") and incident.resolved_at is None:
                incident.resolved_at = _utcnow()
            activity_service.record_incident_activity(
                incident, user_id, "STATUS_CHANGE",
                f"Status changed from {previous_status} to {status}",
            )
        if "assigned_to" in fields and fields["assigned_to"] != previous_assignee:
            activity_service.record_incident_activity(
                incident, user_id, "ASSIGNMENT", "Assignment changed",
            )
        if moving and stage_id != incident.stage_id:
            move_service.place(incident, stage, user_id)

    logger.info("Incident %s updated in project %s by user %s", incident_id, project_id, user_id)
    return incident


def delete_incident(project_id, incident_id, actor):
    """Delete an incident with its activity; requests citing it keep a NULL reference."""
    with unit_of_work() as session:
        incident = get_incident(project_id, incident_id)
        session.delete(incident)

    logger.info(
        "Incident %s deleted from project %s by user %s", incident_id, project_id, _actor_id(actor),
    )


# ── Resource request ─────────────────────────────────────────────────────


def create_resource_request(project_id, data, actor):
    """Create a DRAFT resource request and its first status-history event.

    Returns:
        ResourceRequest instance (committed).
    """
    title = _require_title(data)
    details = _text(data, ("details",), "Details")
    sku = _text(data, ("sku",), "SKU", max_length=100)
    unit = _text(data, ("unit",), "Unit", max_length=30)
    currency = _currency(data)
    assigned_team = _enum(data, ("assignedTeam", "assigned_team"), REQUEST_TEAMS, "WAREHOUSE", "team")
    priority = _enum(data, ("priority",), REQUEST_PRIORITIES, "NORMAL", "priority")
    quantity = _quantity(data)
    estimated_cost = _parsed(parse_float, data, "estimatedCost", "estimated_cost")
    needed_by = _parsed(parse_date, data, "neededBy", "needed_by")
    stage_id = _parsed(parse_int, data, "stageId", "stage_id")
    task_id = _parsed(parse_int, data, "taskId", "task_id")
    incident_id = _parsed(parse_int, data, "incidentId", "incident_id")
    user_id = _actor_id(actor)

    with unit_of_work() as session:
        _require_project(project_id)
        move_service.resolve_stage(project_id, ResourceRequest.kind, stage_id)
        _check_reference(Task, task_id, project_id, "task", "task_id")
        _check_reference(Incident, incident_id, project_id, "incident", "incident_id")

        request = ResourceRequest(
            project_id=project_id,
            title=title,
            details=details,
            sku=sku,
            quantity=quantity or 1,
            unit=unit or "unit",
            needed_by=needed_by,
            assigned_team=assigned_team,
            priority=priority,
            estimated_cost=estimated_cost,
            currency=currency,
            requested_by=user_id,
            task_id=task_id,
            incident_id=incident_id,
            stage_id=stage_id,
            status="DRAFT",
        )
        session.add(request)
        session.flush()
        activity_service.record_request_event(request, user_id, "Resource request created")

    logger.info("Resource request %s created in project %s by user %s", request.id, project_id, user_id)
    return request


def _require_request_status(status):
    if not isinstance(status, str) or status not in REQUEST_STATUSES:
        raise ValidationError(f"Invalid status: {status!r}", details={"status": sorted(REQUEST_STATUSES)})
    return status


def _parse_approver(approved_by):
    try:
        return parse_int(approved_by)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"approved_by": approved_by}) from exc


def _apply_status(request, status, approved_by, user_id):
    """Set a new status with its bookkeeping and write its history event."""
    request.status = status
    if status == "APPROVED":
        request.approved_by = approved_by or user_id
        request.approved_at = _utcnow()
    elif status == "FULFILLED":
        request.fulfilled_at = _utcnow()
    elif status in ("DECLINED", "CANCELLED"):
        request.approved_by = None
        request.approved_at = None
    activity_service.record_request_event(request, user_id, f"Status changed to {status}", status=status)


def update_resource_request_status(project_id, request_id, status, actor, approved_by=None):
    """Change a request's status, writing exactly one history event on change.

    APPROVED records the approver (``approved_by`` or the actor) and time;
    FULFILLED records the fulfilment time; DECLINED and CANCELLED clear any
    approval. Setting the current status again is a no-op.
    """
    status = _require_request_status(status)
    approved_by = _parse_approver(approved_by)
    user_id = _actor_id(actor)

    with unit_of_work():
        request = get_resource_request(project_id, request_id)
        previous = request.status
        if status == previous:
            return request
        _check_user(approved_by, "approved_by")
        _apply_status(request, status, approved_by, user_id)

    logger.info(
        "Resource request %s status %s -> %s by user %s", request_id, previous, status, user_id,
    )
    return request


def update_resource_request(project_id, request_id, data, actor):
    """Apply a partial edit; only keys present in ``data`` change.

    A status change follows ``update_resource_request_status`` (one
    "Status changed to X" event); a stage change appends the move event.
    Other field edits are not recorded in the history.
    """
    title = _require_title(data) if "title" in data else None
    assigned_team = _enum(data, ("assignedTeam", "assigned_team"), REQUEST_TEAMS, None, "team")
    priority = _enum(data, ("priority",), REQUEST_PRIORITIES, None, "priority")
    status = _require_request_status(data["status"]) if data.get("status") is not None else None
    approved_by = _parse_approver(pick(data, "approvedBy", "approved_by"))

    fields = {}
    if "details" in data:
        fields["details"] = _text(data, ("details",), "Details")
    if "sku" in data:
        fields["sku"] = _text(data, ("sku",), "SKU", max_length=100)
    if "unit" in data:
        fields["unit"] = _text(data, ("unit",), "Unit", max_length=30) or "unit"
    if "currency" in data:
        fields["currency"] = _currency(data)
    if "quantity" in data:
        fields["quantity"] = _quantity(data) or 1
    if _present(data, "estimatedCost", "estimated_cost"):
        fields["estimated_cost"] = _parsed(parse_float, data, "estimatedCost", "estimated_cost")
    if _present(data, "neededBy", "needed_by"):
        fields["needed_by"] = _parsed(parse_date, data, "neededBy", "needed_by")
    if _present(data, "taskId", "task_id"):
        fields["task_id"] = _parsed(parse_int, data, "taskId", "task_id")
    if _present(data, "incidentId", "incident_id"):
        fields["incident_id"] = _parsed(parse_int, data, "incidentId", "incident_id")
    moving = _present(data, "stageId", "stage_id")
    stage_id = _parsed(parse_int, data, "stageId", "stage_id") if moving else None
    user_id = _actor_id(actor)

    with unit_of_work():
        request = get_resource_request(project_id, request_id)
        _check_reference(Task, fields.get("task_id"), project_id, "task", "task_id")
        _check_reference(Incident, fields.get("incident_id"), project_id, "incident", "incident_id")
        _check_user(approved_by, "approved_by")
        stage = move_service.resolve_stage(project_id, ResourceRequest.kind, stage_id) if moving else None

        previous_status = request.status
        if title is not None:
            request.title = title
        if assigned_team is not None:
            request.assigned_team = assigned_team
        if priority is not None:
            request.priority = priority
        for name, value in fields.items():
            setattr(request, name, value)

        if status is not None and status != previous_status:
            _apply_status(request, status, approved_by, user_id)
        if moving and stage_id != request.stage_id:
            move_service.place(request, stage, user_id)

    logger.info("Resource request %s updated in project %s by user %s", request_id, project_id, user_id)
    return request


def delete_resource_request(project_id, request_id, actor):
    """Delete a request together with its status history and comments."""
    with unit_of_work() as session:
        request = get_resource_request(project_id, request_id)
        session.delete(request)

    logger.info(
        "Resource request %s deleted from project %s by user %s",
        request_id, project_id, _actor_id(actor),
    )
