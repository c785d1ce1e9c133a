"""
Tests for workboard/services/permission.py

Scenarios covered:
  1. comment.update / comment.delete: author or elevated role only
  2. project.access: owner, creator, member, elevated; outsiders denied
  3. Unknown actions raise, anonymous callers are denied
"""

import pytest

from workboard.auth import SessionUser
from workboard.models import db
from workboard.models.activity import ResourceRequestComment
from workboard.models.project import ProjectMember
from workboard.services.permission import ELEVATED_ROLES, can, is_elevated, is_project_member


@pytest.fixture()
def comment(project, author, make_request):
    request = make_request(project.id)
    row = ResourceRequestComment(request_id=request.id, user_id=author.id, content="hello")
    db.session.add(row)
    db.session.commit()
    return row


# ── 1. Comment ownership ─────────────────────────────────────────────────────


class TestCommentActions:
    @pytest.mark.parametrize("action", ["comment.update", "comment.delete"])
    def test_author_allowed(self, author, comment, action):
        assert can(SessionUser(author.id, "SALES_REP"), action, comment) is True

    @pytest.mark.parametrize("action", ["comment.update", "comment.delete"])
    def test_other_user_denied(self, outsider, comment, action):
        assert can(SessionUser(outsider.id, "SALES_REP"), action, comment) is False

    @pytest.mark.parametrize("role", sorted(ELEVATED_ROLES))
    def test_elevated_roles_allowed(self, outsider, comment, role):
        assert can(SessionUser(outsider.id, role), "comment.delete", comment) is True

    @pytest.mark.parametrize("role", ["SALES_MANAGER", "INVENTORY_MANAGER", "EXECUTIVE_VIEWER", None])
    def test_other_roles_not_elevated(self, role):
        assert is_elevated(SessionUser(1, role)) is False


# ── 2. Project access ────────────────────────────────────────────────────────


class TestProjectAccess:
    def test_owner_allowed(self, admin, project):
        assert can(SessionUser(admin.id, "SALES_REP"), "project.access", project) is True

    def test_member_allowed(self, outsider, project):
        db.session.add(ProjectMember(project_id=project.id, user_id=outsider.id))
        db.session.commit()

        assert is_project_member(outsider.id, project.id) is True
        assert can(SessionUser(outsider.id, "SALES_REP"), "project.access", project) is True

    def test_non_member_denied(self, outsider, project):
        assert can(SessionUser(outsider.id, "SALES_REP"), "project.access", project) is False

    def test_super_admin_allowed(self, outsider, project):
        assert can(SessionUser(outsider.id, "SUPER_ADMIN"), "project.access", project) is True


# ── 3. Edge cases ────────────────────────────────────────────────────────────


def test_unknown_action_raises(author, comment):
    with pytest.raises(ValueError):
        can(SessionUser(author.id, "ADMIN"), "comment.pin", comment)


def test_anonymous_denied(comment):
    assert can(None, "comment.update", comment) is False
