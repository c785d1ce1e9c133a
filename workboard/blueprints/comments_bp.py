"""
Workboard
Comments blueprint — discussion on resource requests.

Endpoints summary:
    COMMENT  /api/v1/projects/<project_id>/resource-requests/<request_id>/comments                 GET, POST
             /api/v1/projects/<project_id>/resource-requests/<request_id>/comments/<comment_id>    PUT, DELETE
"""

import logging

from flask import Blueprint, g, jsonify

from workboard.auth import require_session
from workboard.blueprints import json_body
from workboard.middleware.project_access import require_project_access
from workboard.services import comment_service

logger = logging.getLogger(__name__)

comments_bp = Blueprint("comments", __name__, url_prefix="/api/v1")

_BASE = "/projects/<int:project_id>/resource-requests/<int:request_id>/comments"


@comments_bp.route(_BASE, methods=["GET"])
@require_session
@require_project_access("project_id")
def list_comments(project_id, request_id):
    comments = comment_service.list_comments(project_id, request_id)
    return jsonify({"comments": [c.to_dict() for c in comments]})


@comments_bp.route(_BASE, methods=["POST"])
@require_session
@require_project_access("project_id")
def add_comment(project_id, request_id):
    comment = comment_service.add_comment(
        project_id, request_id, json_body().get("content"), g.session_user,
    )
    return jsonify({"comment": comment.to_dict()}), 201


@comments_bp.route(f"{_BASE}/<int:comment_id>", methods=["PUT"])
@require_session
@require_project_access("project_id")
def update_comment(project_id, request_id, comment_id):
    comment = comment_service.update_comment(
        project_id, request_id, comment_id, json_body().get("content"), g.session_user,
    )
    return jsonify({"comment": comment.to_dict()})


@comments_bp.route(f"{_BASE}/<int:comment_id>", methods=["DELETE"])
@require_session
@require_project_access("project_id")
def delete_comment(project_id, request_id, comment_id):
    comment_service.delete_comment(project_id, request_id, comment_id, g.session_user)
    return jsonify({"success": True})
