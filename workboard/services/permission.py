"""
Capability checks for the workflow board.

One entry point, ``can(user, action, resource)``, answers every
authorization question the board asks. Callers decide what to do with a
False (services raise ForbiddenError, the project decorator answers 403).

Actions:
    comment.update   author of the comment, or an elevated role
    comment.delete   author of the comment, or an elevated role
    project.access   project owner, creator, member, or an elevated role

Usage:
    from workboard.services.permission import can

    if not can(actor, "comment.delete", comment):
        raise ForbiddenError(action="comment.delete")
"""

import logging

from workboard.models import db
from workboard.models.project import ProjectMember

logger = logging.getLogger(__name__)

ELEVATED_ROLES = frozenset({"SUPER_ADMIN", "ADMIN"})


def is_elevated(user) -> bool:
    return user is not None and user.role in ELEVATED_ROLES


def is_project_member(user_id: int, project_id: int) -> bool:
    """True if a ProjectMember row links the user to the project."""
    return db.session.query(
        ProjectMember.query.filter_by(project_id=project_id, user_id=user_id).exists()
    ).scalar()


def _owns_comment(user, comment) -> bool:
    return comment.user_id == user.id


def _can_access_project(user, project) -> bool:
    if user.id in (project.owner_id, project.created_by):
        return True
    return is_project_member(user.id, project.id)


_OWNERSHIP_CHECKS = {
    "comment.update": _owns_comment,
    "comment.delete": _owns_comment,
    "project.access": _can_access_project,
}


def can(user, action: str, resource) -> bool:
    """
    Decide whether ``user`` may perform ``action`` on ``resource``.

    Args:
        user: Object with ``id`` and ``role`` (SessionUser or User). None
              is never allowed anything.
        action: One of the actions listed in the module docstring.
        resource: The comment or project being acted on.

    Raises:
        ValueError: For an action this module does not know.
    """
    check = _OWNERSHIP_CHECKS.get(action)
    if check is None:
        raise ValueError(f"Unknown action: {action}")
    if user is None:
        return False
    if is_elevated(user):
        return True
    allowed = check(user, resource)
    if not allowed:
        logger.debug("Denied %s on %r for user %s (role=%s)", action, resource, user.id, user.role)
    return allowed
