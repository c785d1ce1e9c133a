"""
Stage endpoints over HTTP.

Test blocks:
  1. List with _count and stageType filter
  2. Create (201, defaults, validation)
  3. Update / delete / reorder
"""

from workboard.models import db
from workboard.models.workflow import Stage


def _url(project_id, suffix=""):
    return f"/api/v1/projects/{project_id}/stages{suffix}"


# ── 1. List ──────────────────────────────────────────────────────────────────


class TestListStagesApi:
    def test_list_includes_counts(
        self, client, project, author, auth_headers, make_stage, make_task, make_request,
    ):
        stage = make_stage(project.id, name="Doing")
        make_task(project.id, stage_id=stage.id)
        make_request(project.id, stage_id=stage.id)

        res = client.get(_url(project.id), headers=auth_headers(author))

        assert res.status_code == 200
        stages = res.get_json()["stages"]
        assert len(stages) == 1
        assert stages[0]["name"] == "Doing"
        assert stages[0]["_count"] == {"tasks": 1, "incidents": 0}

    def test_stage_type_query_filter(self, client, project, author, auth_headers, make_stage):
        make_stage(project.id, name="Todo", stage_type="TASK")
        make_stage(project.id, name="Triage", stage_type="INCIDENT")

        res = client.get(_url(project.id) + "?stageType=INCIDENT", headers=auth_headers(author))

        assert [s["name"] for s in res.get_json()["stages"]] == ["Triage"]

    def test_empty_project_lists_nothing(self, client, project, author, auth_headers):
        res = client.get(_url(project.id), headers=auth_headers(author))
        assert res.get_json() == {"stages": []}


# ── 2. Create ────────────────────────────────────────────────────────────────


class TestCreateStageApi:
    def test_create_returns_201(self, client, project, author, auth_headers):
        res = client.post(
            _url(project.id), json={"name": "Backlog", "stageType": "INCIDENT"},
            headers=auth_headers(author),
        )

        assert res.status_code == 201
        stage = res.get_json()["stage"]
        assert stage["order"] == 0
        assert stage["color"] == "#6366F1"
        assert stage["stage_type"] == "INCIDENT"
        assert stage["_count"] == {"tasks": 0, "incidents": 0}

    def test_blank_name_is_400(self, client, project, author, auth_headers):
        res = client.post(_url(project.id), json={"name": "  "}, headers=auth_headers(author))
        assert res.status_code == 400
        assert Stage.query.count() == 0

    def test_non_string_stage_type_is_400(self, client, project, author, auth_headers):
        res = client.post(
            _url(project.id), json={"name": "X", "stageType": ["TASK"]}, headers=auth_headers(author),
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
        assert Stage.query.count() == 0

    def test_non_json_body_is_415(self, client, project, author, auth_headers):
        res = client.post(
            _url(project.id), data="Backlog", content_type="text/plain", headers=auth_headers(author),
        )
        assert res.status_code == 415

    def test_array_body_is_400(self, client, project, author, auth_headers):
        res = client.post(_url(project.id), json=["Backlog"], headers=auth_headers(author))
        assert res.status_code == 400


# ── 3. Update / delete / reorder ─────────────────────────────────────────────


class TestMutateStageApi:
    def test_update(self, client, project, author, auth_headers, make_stage):
        stage = make_stage(project.id, name="Old")

        res = client.put(
            _url(project.id, f"/{stage.id}"), json={"name": "New"}, headers=auth_headers(author),
        )

        assert res.status_code == 200
        assert res.get_json()["stage"]["name"] == "New"

    def test_update_foreign_stage_is_404(
        self, client, project, other_project, author, auth_headers, make_stage,
    ):
        foreign = make_stage(other_project.id)
        res = client.put(
            _url(project.id, f"/{foreign.id}"), json={"name": "X"}, headers=auth_headers(author),
        )
        assert res.status_code == 404
        assert res.get_json()["error"] == "Stage not found"

    def test_delete_reports_unstaged(
        self, client, project, author, auth_headers, make_stage, make_incident,
    ):
        stage = make_stage(project.id, stage_type="INCIDENT")
        make_incident(project.id, stage_id=stage.id)

        res = client.delete(_url(project.id, f"/{stage.id}"), headers=auth_headers(author))

        assert res.status_code == 200
        assert res.get_json() == {"success": True, "unstaged": 1}
        db.session.expire_all()
        assert db.session.get(Stage, stage.id) is None

    def test_reorder(self, client, project, author, auth_headers, make_stage):
        a = make_stage(project.id, name="A", order=0)
        b = make_stage(project.id, name="B", order=1)

        res = client.post(
            _url(project.id, "/reorder"),
            json={"stageOrders": [{"stageId": a.id, "order": 1}, {"stageId": b.id, "order": 0}]},
            headers=auth_headers(author),
        )

        assert res.status_code == 200
        assert [s["name"] for s in res.get_json()["stages"]] == ["B", "A"]

    def test_reorder_foreign_ids_is_400(
        self, client, project, other_project, author, auth_headers, make_stage,
    ):
        foreign = make_stage(other_project.id)

        res = client.post(
            _url(project.id, "/reorder"),
            json={"stageOrders": [{"stageId": foreign.id, "order": 3}]},
            headers=auth_headers(author),
        )

        assert res.status_code == 400
        assert res.get_json()["details"]["unknown_stage_ids"] == [foreign.id]
