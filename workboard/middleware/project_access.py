"""
Project Access Middleware — Verifies project access for the session user.

Provides the ``@require_project_access`` decorator. When
``PROJECT_MEMBERSHIP_REQUIRED`` is enabled, the session user must be the
project's owner, its creator, a member, or hold an elevated role.

Usage:
    @bp.route("/projects/<int:project_id>/stages")
    @require_session
    @require_project_access("project_id")
    def list_stages(project_id):
        ...

A project id that does not exist answers 404 whether or not the check is
enabled, so every board route can rely on the project being real.
"""

import functools
import logging

from flask import current_app, request

from workboard.auth import current_session
from workboard.core.exceptions import ForbiddenError, NotFoundError
from workboard.models import db
from workboard.models.project import Project
from workboard.services.permission import can

logger = logging.getLogger(__name__)


def require_project_access(param_name: str = "project_id"):
    """
    Decorator: require the project named by the route parameter to exist
    and, when membership checks are on, to be accessible to the caller.

    Args:
        param_name: Name of the Flask route parameter containing the project ID.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            project_id = kwargs.get(param_name)
            if project_id is None:
                project_id = (request.view_args or {}).get(param_name)
            if project_id is None:
                return f(*args, **kwargs)

            project = db.session.get(Project, project_id)
            if project is None:
                raise NotFoundError(resource="Project", resource_id=project_id)

            if current_app.config.get("PROJECT_MEMBERSHIP_REQUIRED"):
                user = current_session()
                if not can(user, "project.access", project):
                    logger.warning(
                        "User %s denied access to project %s, not a member",
                        user.id if user else None, project_id,
                    )
                    raise ForbiddenError(
                        "You do not have access to this project", action="project.access"
                    )

            return f(*args, **kwargs)
        return decorated
    return decorator
