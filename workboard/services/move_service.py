"""Move operation — place a work item on a stage, or take it off the board.

Every ``stage_id`` change after creation goes through ``resolve_stage`` and
``place`` here, whether from a move or from an item edit. Each move:

1. loads the item scoped to the project (NotFoundError otherwise),
2. loads the target stage scoped to the project AND to the item's kind
   (ValidationError "Invalid stage for this project" otherwise),
3. sets ``stage_id``,
4. appends exactly one audit row describing the new placement,

with 3 and 4 committed in one unit of work. The item's ``status`` is never
touched. Repeating a move appends another audit row.
"""
import logging

from workboard.core.exceptions import ValidationError
from workboard.models.workflow import ITEM_MODELS, Stage
from workboard.services import activity_service
from workboard.services.helpers.scoped_queries import get_scoped, get_scoped_or_none
from workboard.services.helpers.unit_of_work import unit_of_work
from workboard.utils.helpers import parse_int, pick

logger = logging.getLogger(__name__)

INVALID_STAGE_MESSAGE = "Invalid stage for this project"

_RESOURCE_NAMES = {
    "TASK": "Task",
    "INCIDENT": "Incident",
    "RESOURCE": "Resource request",
}


def parse_stage_id(data):
    """Read the target stage from a move body.

    Accepts ``stageId`` or ``stage_id``. A missing key, ``null`` and the
    empty string all mean "remove from stage".
    """
    raw = pick(data or {}, "stageId", "stage_id")
    try:
        return parse_int(raw)
    except ValueError as exc:
        raise ValidationError(INVALID_STAGE_MESSAGE, details={"stage_id": raw}) from exc


def resolve_stage(project_id, kind, stage_id):
    """Return the stage an item of ``kind`` may be placed on, or None to unstage.

    The stage must belong to ``project_id`` and carry ``stage_type == kind``.
    """
    if stage_id is None:
        return None
    stage = get_scoped_or_none(Stage, stage_id, project_id=project_id, stage_type=kind)
    if stage is None:
        raise ValidationError(INVALID_STAGE_MESSAGE, details={"stage_id": stage_id})
    return stage


def place(item, stage, user_id):
    """Set ``item.stage_id`` and append its audit row; the caller owns the unit of work."""
    item.stage_id = stage.id if stage is not None else None
    return activity_service.record_stage_change(item, stage, user_id)


def move_item(project_id, kind, item_id, stage_id, actor):
    """Move one item of ``kind`` to ``stage_id`` (or unstage it when None).

    Args:
        project_id: Project from the URL; both item and stage must belong to it.
        kind: "TASK", "INCIDENT" or "RESOURCE".
        item_id: Item primary key.
        stage_id: Target stage id, or None to remove from the board.
        actor: Session user recorded on the audit row.

    Returns:
        The moved item, committed.
    """
    model = ITEM_MODELS.get(kind)
    if model is None:
        raise ValidationError(f"Unknown item kind: {kind}")

    user_id = actor.id if actor is not None else None

    with unit_of_work():
        item = get_scoped(model, item_id, project_id=project_id, resource=_RESOURCE_NAMES[kind])

        stage = resolve_stage(project_id, kind, stage_id)
        previous_stage_id = item.stage_id
        place(item, stage, user_id)

    logger.info(
        "%s %s moved from stage %s to stage %s by user %s",
        _RESOURCE_NAMES[kind], item_id, previous_stage_id, stage_id, user_id,
    )
    return item


def move_task(project_id, task_id, stage_id, actor):
    return move_item(project_id, "TASK", task_id, stage_id, actor)


def move_incident(project_id, incident_id, stage_id, actor):
    return move_item(project_id, "INCIDENT", incident_id, stage_id, actor)


def move_resource_request(project_id, request_id, stage_id, actor):
    return move_item(project_id, "RESOURCE", request_id, stage_id, actor)
