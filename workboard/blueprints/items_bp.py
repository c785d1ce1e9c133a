"""
Workboard
Items blueprint — tasks, incidents and resource requests, and their moves.

Endpoints summary:
    TASK      /api/v1/projects/<project_id>/tasks                               GET, POST
              /api/v1/projects/<project_id>/tasks/<task_id>/move                POST
              /api/v1/projects/<project_id>/tasks/<task_id>/activity            GET

    INCIDENT  /api/v1/projects/<project_id>/incidents                           GET, POST
              /api/v1/projects/<project_id>/incidents/<incident_id>             GET, PUT, DELETE
              /api/v1/projects/<project_id>/incidents/<incident_id>/move        POST

    REQUEST   /api/v1/projects/<project_id>/resource-requests                   GET, POST
              /api/v1/projects/<project_id>/resource-requests/<request_id>      GET, PUT, DELETE
              /api/v1/projects/<project_id>/resource-requests/<request_id>/status  PATCH
              /api/v1/projects/<project_id>/resource-requests/<request_id>/move    POST

Move bodies accept ``stageId`` or ``stage_id``; null or "" removes the item
from its stage.
"""

import logging

from flask import Blueprint, g, jsonify

from workboard.auth import require_session
from workboard.blueprints import json_body
from workboard.middleware.project_access import require_project_access
from workboard.services import activity_service, item_service, move_service
from workboard.utils.helpers import pick

logger = logging.getLogger(__name__)

items_bp = Blueprint("items", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  TASKS
# ═══════════════════════════════════════════════════════════════════════════

@items_bp.route("/projects/<int:project_id>/tasks", methods=["GET"])
@require_session
@require_project_access("project_id")
def list_tasks(project_id):
    tasks = item_service.list_tasks(project_id)
    return jsonify({"tasks": [t.to_dict() for t in tasks]})


@items_bp.route("/projects/<int:project_id>/tasks", methods=["POST"])
@require_session
@require_project_access("project_id")
def create_task(project_id):
    task = item_service.create_task(project_id, json_body(), g.session_user)
    return jsonify({"task": task.to_dict()}), 201


@items_bp.route("/projects/<int:project_id>/tasks/<int:task_id>/move", methods=["POST"])
@require_session
@require_project_access("project_id")
def move_task(project_id, task_id):
    stage_id = move_service.parse_stage_id(json_body())
    task = move_service.move_task(project_id, task_id, stage_id, g.session_user)
    return jsonify({"task": task.to_dict()})


@items_bp.route("/projects/<int:project_id>/tasks/<int:task_id>/activity", methods=["GET"])
@require_session
@require_project_access("project_id")
def list_task_activity(project_id, task_id):
    activities = activity_service.list_task_activity(project_id, task_id)
    return jsonify({"activities": [a.to_dict() for a in activities]})


# ═══════════════════════════════════════════════════════════════════════════
#  INCIDENTS
# ═══════════════════════════════════════════════════════════════════════════

@items_bp.route("/projects/<int:project_id>/incidents", methods=["GET"])
@require_session
@require_project_access("project_id")
def list_incidents(project_id):
    incidents = item_service.list_incidents(project_id)
    return jsonify({"incidents": [i.to_dict() for i in incidents]})


@items_bp.route("/projects/<int:project_id>/incidents", methods=["POST"])
@require_session
@require_project_access("project_id")
def create_incident(project_id):
    incident = item_service.create_incident(project_id, json_body(), g.session_user)
    return jsonify({"incident": incident.to_dict()}), 201


@items_bp.route("/projects/<int:project_id>/incidents/<int:incident_id>", methods=["GET"])
@require_session
@require_project_access("project_id")
def get_incident(project_id, incident_id):
    incident = item_service.get_incident(project_id, incident_id)
    return jsonify({"incident": incident.to_dict(include_activity=True)})


@items_bp.route("/projects/<int:project_id>/incidents/<int:incident_id>", methods=["PUT"])
@require_session
@require_project_access("project_id")
def update_incident(project_id, incident_id):
    incident = item_service.update_incident(project_id, incident_id, json_body(), g.session_user)
    return jsonify({"incident": incident.to_dict()})


@items_bp.route("/projects/<int:project_id>/incidents/<int:incident_id>", methods=["DELETE"])
@require_session
@require_project_access("project_id")
def delete_incident(project_id, incident_id):
    item_service.delete_incident(project_id, incident_id, g.session_user)
    return jsonify({"success": True})


@items_bp.route("/projects/<int:project_id>/incidents/<int:incident_id>/move", methods=["POST"])
@require_session
@require_project_access("project_id")
def move_incident(project_id, incident_id):
    stage_id = move_service.parse_stage_id(json_body())
    incident = move_service.move_incident(project_id, incident_id, stage_id, g.session_user)
    return jsonify({"incident": incident.to_dict()})


# ═══════════════════════════════════════════════════════════════════════════
#  RESOURCE REQUESTS
# ═══════════════════════════════════════════════════════════════════════════

@items_bp.route("/projects/<int:project_id>/resource-requests", methods=["GET"])
@require_session
@require_project_access("project_id")
def list_resource_requests(project_id):
    requests_ = item_service.list_resource_requests(project_id)
    return jsonify({"resourceRequests": [r.to_dict() for r in requests_]})


@items_bp.route("/projects/<int:project_id>/resource-requests", methods=["POST"])
@require_session
@require_project_access("project_id")
def create_resource_request(project_id):
    resource_request = item_service.create_resource_request(project_id, json_body(), g.session_user)
    return jsonify({"resourceRequest": resource_request.to_dict()}), 201


@items_bp.route("/projects/<int:project_id>/resource-requests/<int:request_id>", methods=["GET"])
@require_session
@require_project_access("project_id")
def get_resource_request(project_id, request_id):
    resource_request = item_service.get_resource_request(project_id, request_id)
    return jsonify({"resourceRequest": resource_request.to_dict(include_history=True)})


@items_bp.route("/projects/<int:project_id>/resource-requests/<int:request_id>", methods=["PUT"])
@require_session
@require_project_access("project_id")
def update_resource_request(project_id, request_id):
    resource_request = item_service.update_resource_request(
        project_id, request_id, json_body(), g.session_user,
    )
    return jsonify({"resourceRequest": resource_request.to_dict(include_history=True)})


@items_bp.route("/projects/<int:project_id>/resource-requests/<int:request_id>", methods=["DELETE"])
@require_session
@require_project_access("project_id")
def delete_resource_request(project_id, request_id):
    item_service.delete_resource_request(project_id, request_id, g.session_user)
    return jsonify({"success": True})


@items_bp.route(
    "/projects/<int:project_id>/resource-requests/<int:request_id>/status", methods=["PATCH"]
)
@require_session
@require_project_access("project_id")
def update_resource_request_status(project_id, request_id):
    data = json_body()
    resource_request = item_service.update_resource_request_status(
        project_id,
        request_id,
        data.get("status"),
        g.session_user,
        approved_by=pick(data, "approvedBy", "approved_by"),
    )
    return jsonify({"resourceRequest": resource_request.to_dict(include_history=True)})


@items_bp.route(
    "/projects/<int:project_id>/resource-requests/<int:request_id>/move", methods=["POST"]
)
@require_session
@require_project_access("project_id")
def move_resource_request(project_id, request_id):
    stage_id = move_service.parse_stage_id(json_body())
    resource_request = move_service.move_resource_request(
        project_id, request_id, stage_id, g.session_user,
    )
    return jsonify({"resourceRequest": resource_request.to_dict()})
