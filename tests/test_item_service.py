"""
Tests for workboard/services/item_service.py

Scenarios covered:
  1. Task creation defaults, list ordering, and no creation history
  2. Incident creation writes "Incident created"; list newest first
  3. Resource request creation: DRAFT + first event, quantity and reference checks
  4. Resource request status changes: approval bookkeeping, one event per change
  5. Stage placement at creation respects type and project
  6. Incident edits: change tracking, resolved_at, typed stage check, delete
  7. Resource request edits: status bookkeeping, stage event, field checks, delete
"""

from datetime import date, datetime, timezone

import pytest

from workboard.core.exceptions import NotFoundError, ValidationError
from workboard.models import db
from workboard.models.activity import IncidentActivity, ResourceRequestEvent, TaskActivity
from workboard.models.workflow import Incident, ResourceRequest, Task
from workboard.services import item_service


# ── 1. Tasks ─────────────────────────────────────────────────────────────────


class TestTasks:
    def test_create_defaults(self, project, author):
        task = item_service.create_task(project.id, {"title": " Label racks "}, author)

        assert task.title == "Label racks"
        assert (task.status, task.priority) == ("PENDING", "MEDIUM")
        assert task.created_by == author.id
        assert task.stage_id is None
        assert TaskActivity.query.count() == 0

    def test_missing_title_rejected(self, project, author):
        with pytest.raises(ValidationError, match="Title is required"):
            item_service.create_task(project.id, {"title": ""}, author)
        assert Task.query.count() == 0

    def test_unknown_priority_rejected(self, project, author):
        with pytest.raises(ValidationError):
            item_service.create_task(project.id, {"title": "x", "priority": "SOMEDAY"}, author)

    def test_bad_due_date_rejected(self, project, author):
        with pytest.raises(ValidationError):
            item_service.create_task(project.id, {"title": "x", "dueDate": "tomorrow"}, author)

    def test_unknown_assignee_rejected(self, project, author):
        with pytest.raises(ValidationError):
            item_service.create_task(project.id, {"title": "x", "assignedTo": 999}, author)

    def test_missing_project_not_found(self, author):
        with pytest.raises(NotFoundError):
            item_service.create_task(4040, {"title": "x"}, author)

    def test_list_orders_by_priority_then_due_date(self, project, make_task):
        low = make_task(project.id, title="low", priority="LOW")
        urgent_late = make_task(project.id, title="urgent late", priority="URGENT",
                                due_date=date(2030, 5, 1))
        urgent_soon = make_task(project.id, title="urgent soon", priority="URGENT",
                                due_date=date(2030, 1, 1))
        urgent_undated = make_task(project.id, title="urgent undated", priority="URGENT")

        tasks = item_service.list_tasks(project.id)

        assert [t.id for t in tasks] == [urgent_soon.id, urgent_late.id, urgent_undated.id, low.id]


# ── 2. Incidents ─────────────────────────────────────────────────────────────


class TestIncidents:
    def test_create_writes_opening_activity(self, project, author):
        incident = item_service.create_incident(
            project.id, {"title": "Forklift down", "severity": "HIGH"}, author,
        )

        assert (incident.status, incident.severity, incident.source) == ("NEW", "HIGH", "INTERNAL")
        assert incident.reported_by == author.id
        row = IncidentActivity.query.filter_by(incident_id=incident.id).one()
        assert row.type == "COMMENT"
        assert row.detail == {"message": "Incident created"}

    def test_related_task_must_share_project(self, project, other_project, author, make_task):
        foreign = make_task(other_project.id)
        with pytest.raises(ValidationError, match="Invalid task for this project"):
            item_service.create_incident(
                project.id, {"title": "x", "relatedTaskId": foreign.id}, author,
            )

    def test_list_newest_first(self, project, make_incident):
        older = make_incident(project.id, title="older", created_at=datetime(2030, 1, 1, tzinfo=timezone.utc))
        newer = make_incident(project.id, title="newer", created_at=datetime(2030, 2, 1, tzinfo=timezone.utc))

        assert [i.id for i in item_service.list_incidents(project.id)] == [newer.id, older.id]

    def test_get_foreign_incident_not_found(self, project, other_project, make_incident):
        foreign = make_incident(other_project.id)
        with pytest.raises(NotFoundError):
            item_service.get_incident(project.id, foreign.id)


# ── 3. Resource request creation ─────────────────────────────────────────────


class TestCreateResourceRequest:
    def test_created_as_draft_with_event(self, project, author):
        request = item_service.create_resource_request(
            project.id, {"title": "Shrink wrap", "quantity": "12", "unit": "roll"}, author,
        )

        assert request.status == "DRAFT"
        assert request.quantity == 12.0
        assert request.requested_by == author.id
        event = ResourceRequestEvent.query.filter_by(request_id=request.id).one()
        assert (event.status, event.notes) == ("DRAFT", "Resource request created")

    @pytest.mark.parametrize("quantity", [0, -3, "0"])
    def test_quantity_must_be_positive(self, project, author, quantity):
        with pytest.raises(ValidationError):
            item_service.create_resource_request(
                project.id, {"title": "x", "quantity": quantity}, author,
            )
        assert ResourceRequest.query.count() == 0

    def test_foreign_incident_reference_rejected(
        self, project, other_project, author, make_incident,
    ):
        foreign = make_incident(other_project.id)
        with pytest.raises(ValidationError, match="Invalid incident for this project"):
            item_service.create_resource_request(
                project.id, {"title": "x", "incidentId": foreign.id}, author,
            )
        assert ResourceRequestEvent.query.count() == 0


# ── 4. Resource request status ───────────────────────────────────────────────


class TestRequestStatus:
    def test_approval_records_approver(self, project, admin, make_request):
        request = make_request(project.id, status="SUBMITTED")

        updated = item_service.update_resource_request_status(
            project.id, request.id, "APPROVED", admin,
        )

        assert updated.status == "APPROVED"
        assert updated.approved_by == admin.id
        assert updated.approved_at is not None
        event = ResourceRequestEvent.query.filter_by(request_id=request.id).one()
        assert (event.status, event.notes) == ("APPROVED", "Status changed to APPROVED")

    def test_decline_clears_approval(self, project, admin, make_request):
        request = make_request(project.id, status="APPROVED", approved_by=admin.id)

        updated = item_service.update_resource_request_status(
            project.id, request.id, "DECLINED", admin,
        )

        assert updated.approved_by is None
        assert updated.approved_at is None

    def test_fulfilment_time_recorded(self, project, admin, make_request):
        request = make_request(project.id, status="APPROVED")
        updated = item_service.update_resource_request_status(
            project.id, request.id, "FULFILLED", admin,
        )
        assert updated.fulfilled_at is not None

    def test_same_status_is_noop(self, project, admin, make_request):
        request = make_request(project.id, status="SUBMITTED")

        item_service.update_resource_request_status(project.id, request.id, "SUBMITTED", admin)

        assert ResourceRequestEvent.query.count() == 0

    def test_unknown_status_rejected(self, project, admin, make_request):
        request = make_request(project.id)
        with pytest.raises(ValidationError):
            item_service.update_resource_request_status(project.id, request.id, "LOST", admin)

    def test_stage_untouched_by_status_change(self, project, admin, make_stage, make_request):
        stage = make_stage(project.id, stage_type="RESOURCE")
        request = make_request(project.id, status="SUBMITTED", stage_id=stage.id)

        item_service.update_resource_request_status(project.id, request.id, "APPROVED", admin)

        db.session.expire_all()
        assert db.session.get(ResourceRequest, request.id).stage_id == stage.id


# ── 5. Placement at creation ─────────────────────────────────────────────────


class TestPlacementAtCreation:
    def test_task_on_task_stage(self, project, author, make_stage):
        stage = make_stage(project.id, stage_type="TASK")
        task = item_service.create_task(project.id, {"title": "x", "stageId": stage.id}, author)
        assert task.stage_id == stage.id

    def test_task_on_incident_stage_rejected(self, project, author, make_stage):
        stage = make_stage(project.id, stage_type="INCIDENT")
        with pytest.raises(ValidationError, match="Invalid stage for this project"):
            item_service.create_task(project.id, {"title": "x", "stageId": stage.id}, author)

    def test_request_on_foreign_stage_rejected(self, project, other_project, author, make_stage):
        stage = make_stage(other_project.id, stage_type="RESOURCE")
        with pytest.raises(ValidationError):
            item_service.create_resource_request(
                project.id, {"title": "x", "stage_id": stage.id}, author,
            )


# ── 6. Incident edits ────────────────────────────────────────────────────────


class TestUpdateIncident:
    def test_unchanged_values_write_no_activity(self, project, author, make_incident):
        incident = make_incident(project.id, status="IN_PROGRESS")

        item_service.update_incident(
            project.id, incident.id, {"status": "IN_PROGRESS", "description": "still open"}, author,
        )

        assert incident.description == "still open"
        assert IncidentActivity.query.count() == 0

    def test_explicit_resolved_at_kept(self, project, author, make_incident):
        incident = make_incident(project.id)

        updated = item_service.update_incident(
            project.id, incident.id,
            {"status": "RESOLVED", "resolvedAt": "2030-06-01T08:30:00Z"}, author,
        )

        assert updated.resolved_at.replace(tzinfo=None) == datetime(2030, 6, 1, 8, 30)

    def test_stage_change_uses_move_audit(self, project, author, make_stage, make_incident):
        stage = make_stage(project.id, name="Triage", stage_type="INCIDENT")
        incident = make_incident(project.id)

        updated = item_service.update_incident(project.id, incident.id, {"stageId": stage.id}, author)

        assert updated.stage_id == stage.id
        row = IncidentActivity.query.one()
        assert (row.type, row.detail) == ("STATUS_CHANGE", {"message": "Moved to stage: Triage"})

    def test_unstage_through_edit(self, project, author, make_stage, make_incident):
        stage = make_stage(project.id, stage_type="INCIDENT")
        incident = make_incident(project.id, stage_id=stage.id)

        updated = item_service.update_incident(project.id, incident.id, {"stageId": None}, author)

        assert updated.stage_id is None
        assert IncidentActivity.query.one().detail == {"message": "Removed from stage"}

    def test_foreign_related_task_rejected(
        self, project, other_project, author, make_incident, make_task,
    ):
        incident = make_incident(project.id)
        foreign = make_task(other_project.id)

        with pytest.raises(ValidationError, match="Invalid task for this project"):
            item_service.update_incident(
                project.id, incident.id, {"relatedTaskId": foreign.id}, author,
            )

    def test_blank_title_rejected(self, project, author, make_incident):
        incident = make_incident(project.id)
        with pytest.raises(ValidationError, match="Title is required"):
            item_service.update_incident(project.id, incident.id, {"title": " "}, author)

    def test_delete_removes_activity(self, project, author):
        incident = item_service.create_incident(project.id, {"title": "Leak"}, author)

        item_service.delete_incident(project.id, incident.id, author)

        assert Incident.query.count() == 0
        assert IncidentActivity.query.count() == 0

    def test_delete_foreign_not_found(self, project, other_project, author, make_incident):
        foreign = make_incident(other_project.id)
        with pytest.raises(NotFoundError):
            item_service.delete_incident(project.id, foreign.id, author)


# ── 7. Resource request edits ────────────────────────────────────────────────


class TestUpdateResourceRequest:
    def test_decline_through_edit_clears_approval(self, project, admin, make_request):
        request = make_request(project.id, status="APPROVED", approved_by=admin.id)

        updated = item_service.update_resource_request(
            project.id, request.id, {"status": "DECLINED"}, admin,
        )

        assert updated.approved_by is None
        event = ResourceRequestEvent.query.one()
        assert (event.status, event.notes) == ("DECLINED", "Status changed to DECLINED")

    def test_wrong_stage_type_rejected(self, project, author, make_stage, make_request):
        stage = make_stage(project.id, stage_type="INCIDENT")
        request = make_request(project.id)

        with pytest.raises(ValidationError, match="Invalid stage for this project"):
            item_service.update_resource_request(
                project.id, request.id, {"stageId": stage.id, "title": "Moved?"}, author,
            )

        db.session.expire_all()
        assert db.session.get(ResourceRequest, request.id).title == "Pallets"
        assert ResourceRequestEvent.query.count() == 0

    def test_cleared_optional_fields(self, project, author, make_request):
        request = make_request(project.id, sku="PL-1", currency="USD", unit="box")

        updated = item_service.update_resource_request(
            project.id, request.id, {"sku": "", "currency": None, "unit": ""}, author,
        )

        assert (updated.sku, updated.currency, updated.unit) == (None, None, "unit")

    @pytest.mark.parametrize("body", [
        {"quantity": 0},
        {"currency": "DOLLARS"},
        {"currency": "U5D"},
        {"status": "LOST"},
        {"priority": ["HIGH"]},
        {"incidentId": 1.5},
    ])
    def test_invalid_values_rejected(self, project, author, make_request, body):
        request = make_request(project.id)
        with pytest.raises(ValidationError):
            item_service.update_resource_request(project.id, request.id, body, author)

    def test_delete_foreign_not_found(self, project, other_project, author, make_request):
        foreign = make_request(other_project.id)
        with pytest.raises(NotFoundError):
            item_service.delete_resource_request(project.id, foreign.id, author)
        assert ResourceRequest.query.count() == 1


class TestCurrencyOnCreate:
    def test_code_upper_cased(self, project, author):
        request = item_service.create_resource_request(
            project.id, {"title": "Toner", "currency": "gbp"}, author,
        )
        assert request.currency == "GBP"

    def test_long_code_rejected(self, project, author):
        with pytest.raises(ValidationError, match="3-letter"):
            item_service.create_resource_request(
                project.id, {"title": "Toner", "currency": "POUNDS"}, author,
            )
        assert ResourceRequest.query.count() == 0
