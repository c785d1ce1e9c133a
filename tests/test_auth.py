"""
Session resolution and project access over HTTP.

Test blocks:
  1. Bearer token handling: missing, expired, tampered, wrong type
  2. Health endpoints need no session
  3. PROJECT_MEMBERSHIP_REQUIRED gate (403 for outsiders, 404 still wins)
  4. JWT service round trip
"""

import jwt
import pytest
from sqlalchemy.exc import OperationalError

from workboard.models import db
from workboard.models.project import ProjectMember
from workboard.services.jwt_service import ALGORITHM, decode_access_token, generate_access_token


def _stages_url(project_id):
    return f"/api/v1/projects/{project_id}/stages"


# ── 1. Bearer tokens ─────────────────────────────────────────────────────────


class TestBearerTokens:
    def test_missing_token_is_401(self, client, project):
        res = client.get(_stages_url(project.id))
        assert res.status_code == 401
        assert res.get_json() == {"error": "Unauthorized", "code": "ERR_UNAUTHORIZED"}

    def test_expired_token_is_401(self, client, project, author):
        token = generate_access_token(author.id, author.role, expires_in=-30)
        res = client.get(_stages_url(project.id), headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_tampered_token_is_401(self, client, project, author):
        token = jwt.encode(
            {"sub": str(author.id), "role": "ADMIN", "type": "access"}, "not-the-secret",
            algorithm=ALGORITHM,
        )
        res = client.get(_stages_url(project.id), headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_non_bearer_scheme_is_401(self, client, project):
        res = client.get(_stages_url(project.id), headers={"Authorization": "Basic YWxhZGRpbjpvcGVu"})
        assert res.status_code == 401

    def test_valid_token_is_200(self, client, project, author, auth_headers):
        res = client.get(_stages_url(project.id), headers=auth_headers(author))
        assert res.status_code == 200


# ── 2. Health ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_ready_without_session(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_reports_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"

    def test_live_hides_database_error_detail(self, client, monkeypatch, caplog):
        def _unreachable(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("could not connect to db.internal:5432"))

        monkeypatch.setattr(db.session, "execute", _unreachable)

        res = client.get("/api/v1/health/live")

        assert res.status_code == 503
        assert res.get_json()["checks"]["database"] == {"status": "error", "detail": "database unreachable"}
        assert "db.internal" not in res.get_data(as_text=True)
        assert "db.internal" in caplog.text

    def test_request_id_header_set(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"


# ── 3. Membership gate ───────────────────────────────────────────────────────


class TestMembershipGate:
    @pytest.fixture(autouse=True)
    def _require_membership(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "PROJECT_MEMBERSHIP_REQUIRED", True)

    def test_outsider_is_403(self, client, project, outsider, auth_headers):
        res = client.get(_stages_url(project.id), headers=auth_headers(outsider))
        assert res.status_code == 403
        assert res.get_json()["error"] == "You do not have access to this project"

    def test_member_is_200(self, client, project, outsider, auth_headers):
        db.session.add(ProjectMember(project_id=project.id, user_id=outsider.id))
        db.session.commit()
        res = client.get(_stages_url(project.id), headers=auth_headers(outsider))
        assert res.status_code == 200

    def test_admin_role_bypasses_membership(self, client, project, admin, auth_headers):
        res = client.get(_stages_url(project.id), headers=auth_headers(admin))
        assert res.status_code == 200

    def test_missing_project_still_404(self, client, outsider, auth_headers):
        res = client.get(_stages_url(31337), headers=auth_headers(outsider))
        assert res.status_code == 404


# ── 4. JWT service ───────────────────────────────────────────────────────────


class TestJwtService:
    def test_round_trip(self, author):
        payload = decode_access_token(generate_access_token(author.id, "SALES_REP"))
        assert payload["sub"] == author.id
        assert payload["role"] == "SALES_REP"
        assert payload["type"] == "access"

    def test_refresh_type_rejected(self, app):
        token = jwt.encode(
            {"sub": "1", "type": "refresh"}, app.config["JWT_SECRET_KEY"], algorithm=ALGORITHM,
        )
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)

    def test_non_numeric_subject_rejected(self, app):
        token = jwt.encode(
            {"sub": "someone", "type": "access"}, app.config["JWT_SECRET_KEY"], algorithm=ALGORITHM,
        )
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)
