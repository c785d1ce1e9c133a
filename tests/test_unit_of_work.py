"""
Tests for workboard/services/helpers/unit_of_work.py and the 503 mapping.

Scenarios covered:
  1. Commit on success, rollback on any exception
  2. OperationalError / pool timeout become UnavailableError; row write locks
  3. A store failure during a move answers 503 with Retry-After and leaves
     no partial write
"""

import pytest
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from workboard.core.exceptions import UnavailableError
from workboard.models import db
from workboard.models.activity import IncidentActivity
from workboard.models.project import Project
from workboard.models.workflow import Incident, Stage
from workboard.services import activity_service
from workboard.services.helpers.unit_of_work import lock_row, unit_of_work


def _dropped_connection():
    return OperationalError("UPDATE project_incidents", {}, Exception("server closed the connection"))


# ── 1. Commit / rollback ─────────────────────────────────────────────────────


class TestCommitRollback:
    def test_commits_on_success(self, project):
        with unit_of_work() as session:
            session.add(Stage(project_id=project.id, name="Kept", stage_type="TASK", order=0))

        db.session.expire_all()
        assert Stage.query.filter_by(name="Kept").count() == 1

    def test_rolls_back_on_error(self, project):
        with pytest.raises(RuntimeError):
            with unit_of_work() as session:
                session.add(Stage(project_id=project.id, name="Lost", stage_type="TASK", order=0))
                session.flush()
                raise RuntimeError("boom")

        assert Stage.query.filter_by(name="Lost").count() == 0


# ── 2. Store failures ────────────────────────────────────────────────────────


class TestStoreFailures:
    @pytest.mark.parametrize("error", [_dropped_connection(), PoolTimeoutError("pool exhausted")])
    def test_translated_to_unavailable(self, project, error):
        with pytest.raises(UnavailableError):
            with unit_of_work() as session:
                session.add(Stage(project_id=project.id, name="Gone", stage_type="TASK", order=0))
                session.flush()
                raise error

        assert Stage.query.count() == 0

    def test_lock_row_reports_missing_row(self):
        with unit_of_work() as session:
            assert lock_row(session, Project, 4040) is False

    def test_lock_row_leaves_row_untouched(self, project):
        before = (project.name, project.updated_at)

        with unit_of_work() as session:
            assert lock_row(session, Project, project.id) is True

        db.session.expire_all()
        locked = db.session.get(Project, project.id)
        assert (locked.name, locked.updated_at) == before


# ── 3. 503 over HTTP ─────────────────────────────────────────────────────────


def test_move_failure_is_503_without_partial_write(
    client, project, author, auth_headers, make_stage, make_incident, monkeypatch,
):
    stage = make_stage(project.id, stage_type="INCIDENT")
    incident = make_incident(project.id)

    def _fail_after_audit(item, stage_, user_id):
        db.session.add(IncidentActivity(
            incident_id=item.id, user_id=user_id, type="STATUS_CHANGE", detail={"message": "x"},
        ))
        db.session.flush()
        raise _dropped_connection()

    monkeypatch.setattr(activity_service, "record_stage_change", _fail_after_audit)

    res = client.post(
        f"/api/v1/projects/{project.id}/incidents/{incident.id}/move",
        json={"stageId": stage.id}, headers=auth_headers(author),
    )

    assert res.status_code == 503
    assert res.headers["Retry-After"] == "1"
    assert res.get_json()["code"] == "ERR_UNAVAILABLE"
    db.session.expire_all()
    assert db.session.get(Incident, incident.id).stage_id is None
    assert IncidentActivity.query.count() == 0
