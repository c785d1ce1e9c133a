"""
Workboard
Stages blueprint — board columns per project.

Endpoints summary:
    STAGE    /api/v1/projects/<project_id>/stages                 GET, POST
             /api/v1/projects/<project_id>/stages/<stage_id>      PUT, DELETE
             /api/v1/projects/<project_id>/stages/reorder         POST
"""

import logging

from flask import Blueprint, jsonify, request

from workboard.auth import require_session
from workboard.blueprints import json_body
from workboard.middleware.project_access import require_project_access
from workboard.services import stage_service
from workboard.utils.helpers import pick

logger = logging.getLogger(__name__)

stages_bp = Blueprint("stages", __name__, url_prefix="/api/v1")


@stages_bp.route("/projects/<int:project_id>/stages", methods=["GET"])
@require_session
@require_project_access("project_id")
def list_stages(project_id):
    stage_type = request.args.get("stageType") or request.args.get("stage_type")
    stages = stage_service.list_stages(project_id, stage_type=stage_type)
    return jsonify({"stages": [s.to_dict() for s in stages]})


@stages_bp.route("/projects/<int:project_id>/stages", methods=["POST"])
@require_session
@require_project_access("project_id")
def create_stage(project_id):
    data = json_body()
    stage = stage_service.create_stage(
        project_id,
        data.get("name"),
        color=data.get("color"),
        stage_type=pick(data, "stageType", "stage_type"),
    )
    return jsonify({"stage": stage.to_dict()}), 201


@stages_bp.route("/projects/<int:project_id>/stages/reorder", methods=["POST"])
@require_session
@require_project_access("project_id")
def reorder_stages(project_id):
    data = json_body()
    stages = stage_service.reorder_stages(project_id, pick(data, "stageOrders", "stage_orders"))
    return jsonify({"stages": [s.to_dict() for s in stages]})


@stages_bp.route("/projects/<int:project_id>/stages/<int:stage_id>", methods=["PUT"])
@require_session
@require_project_access("project_id")
def update_stage(project_id, stage_id):
    data = json_body()
    stage = stage_service.update_stage(
        project_id,
        stage_id,
        name=data.get("name"),
        color=data.get("color"),
        order=data.get("order"),
    )
    return jsonify({"stage": stage.to_dict()})


@stages_bp.route("/projects/<int:project_id>/stages/<int:stage_id>", methods=["DELETE"])
@require_session
@require_project_access("project_id")
def delete_stage(project_id, stage_id):
    unstaged = stage_service.delete_stage(project_id, stage_id)
    return jsonify({"success": True, "unstaged": unstaged})
