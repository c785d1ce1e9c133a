"""Comment subsystem — discussion threads on resource requests.

Every lookup is scoped twice: the comment to its request, and the request
to the project in the URL. A comment reached through the wrong project is
reported as not found.

Edit and delete are allowed for the comment's author or an elevated role
(see ``permission.can``). Deleting a comment is permanent and leaves no
history row.
"""
import logging

from workboard.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from workboard.models.activity import ResourceRequestComment
from workboard.models.workflow import ResourceRequest
from workboard.services.helpers.scoped_queries import get_scoped, get_scoped_or_none
from workboard.services.helpers.unit_of_work import unit_of_work
from workboard.services.permission import can

logger = logging.getLogger(__name__)


def _clean_content(content):
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Comment content is required", details={"content": "required"})
    return content.strip()


def _get_request(project_id, request_id):
    return get_scoped(
        ResourceRequest, request_id, project_id=project_id, resource="Resource request",
    )


def _get_comment(project_id, request_id, comment_id):
    _get_request(project_id, request_id)
    comment = get_scoped_or_none(ResourceRequestComment, comment_id, request_id=request_id)
    if comment is None:
        raise NotFoundError(resource="Comment", resource_id=comment_id, project_id=project_id)
    return comment


def _authorize(actor, action, comment):
    if not can(actor, action, comment):
        logger.warning(
            "User %s denied %s on comment %s",
            actor.id if actor else None, action, comment.id,
        )
        raise ForbiddenError(action=action)


# ── Queries ──────────────────────────────────────────────────────────────


def list_comments(project_id, request_id):
    """All comments on the request, oldest first."""
    return _get_request(project_id, request_id).comments.all()


# ── Mutations ────────────────────────────────────────────────────────────


def add_comment(project_id, request_id, content, actor):
    content = _clean_content(content)

    with unit_of_work() as session:
        request = _get_request(project_id, request_id)
        comment = ResourceRequestComment(request_id=request.id, user_id=actor.id, content=content)
        session.add(comment)
        session.flush()

    logger.info("Comment %s added to resource request %s by user %s", comment.id, request_id, actor.id)
    return comment


def update_comment(project_id, request_id, comment_id, content, actor):
    """Replace a comment's content with the trimmed ``content``.

    Raises:
        ValidationError: blank content (checked before any lookup).
        NotFoundError: comment missing, or not under this request and project.
        ForbiddenError: actor is neither the author nor elevated.
    """
    content = _clean_content(content)

    with unit_of_work():
        comment = _get_comment(project_id, request_id, comment_id)
        _authorize(actor, "comment.update", comment)
        comment.content = content

    logger.info("Comment %s updated by user %s", comment_id, actor.id)
    return comment


def delete_comment(project_id, request_id, comment_id, actor):
    """Permanently remove a comment. Same lookup and authorization as update."""
    with unit_of_work() as session:
        comment = _get_comment(project_id, request_id, comment_id)
        _authorize(actor, "comment.delete", comment)
        session.delete(comment)

    logger.info("Comment %s deleted from resource request %s by user %s", comment_id, request_id, actor.id)
