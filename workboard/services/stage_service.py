"""Stage registry — board columns per project and stage type.

Transaction policy: every mutation runs inside ``unit_of_work()``, which
owns the commit. Validation happens before the unit of work opens, so a
rejected call never writes.

Operations:
- list_stages: ordered columns with task / incident counts
- create_stage: append at max(order) + 1 under a project row lock
- update_stage, delete_stage (unstages items first), reorder_stages
"""
import logging

from flask import current_app
from sqlalchemy import func, select, update

from workboard.core.exceptions import NotFoundError, ValidationError
from workboard.models import db
from workboard.models.project import Project
from workboard.models.workflow import (
    DEFAULT_STAGE_COLOR,
    DEFAULT_STAGE_TYPE,
    ITEM_MODELS,
    STAGE_TYPES,
    Stage,
)
from workboard.services.helpers.scoped_queries import get_scoped
from workboard.services.helpers.unit_of_work import lock_row, unit_of_work
from workboard.utils.helpers import parse_int, pick

logger = logging.getLogger(__name__)


def _validate_stage_type(stage_type):
    if not isinstance(stage_type, str) or stage_type not in STAGE_TYPES:
        raise ValidationError(
            f"Invalid stage type: {stage_type!r}",
            details={"stage_type": sorted(STAGE_TYPES)},
        )
    return stage_type


def _clean_name(name):
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Stage name is required", details={"name": "required"})
    return name.strip()


def _clean_color(color):
    if color in (None, ""):
        return None
    if not isinstance(color, str) or len(color) > 20:
        raise ValidationError("Stage color must be a short string", details={"color": "invalid"})
    return color


def _default_color():
    return current_app.config.get("DEFAULT_STAGE_COLOR") or DEFAULT_STAGE_COLOR


# ── Queries ──────────────────────────────────────────────────────────────


def list_stages(project_id, stage_type=None):
    """Return the project's stages, ascending by ``order`` then ``id``.

    Optionally narrowed to one stage type.
    """
    stmt = select(Stage).where(Stage.project_id == project_id)
    if stage_type is not None:
        stmt = stmt.where(Stage.stage_type == _validate_stage_type(stage_type))
    stmt = stmt.order_by(Stage.order.asc(), Stage.id.asc())
    return list(db.session.execute(stmt).scalars())


def get_stage(project_id, stage_id):
    return get_scoped(Stage, stage_id, project_id=project_id, resource="Stage")


# ── Mutations ────────────────────────────────────────────────────────────


def create_stage(project_id, name, color=None, stage_type=None):
    """Append a stage to the end of its (project, type) column list.

    The project row is write-locked before the max(order) read, and the
    lock is held until the insert commits, so two concurrent creations
    cannot both pick the same order.

    Returns:
        The committed Stage.
    """
    name = _clean_name(name)
    stage_type = _validate_stage_type(stage_type or DEFAULT_STAGE_TYPE)
    color = _clean_color(color) or _default_color()

    with unit_of_work() as session:
        if not lock_row(session, Project, project_id):
            raise NotFoundError(resource="Project", resource_id=project_id)

        last_order = session.execute(
            select(func.max(Stage.order)).where(
                Stage.project_id == project_id,
                Stage.stage_type == stage_type,
            )
        ).scalar()
        stage = Stage(
            project_id=project_id,
            name=name,
            color=color,
            stage_type=stage_type,
            order=0 if last_order is None else last_order + 1,
        )
        session.add(stage)
        session.flush()

    logger.info(
        "Stage %s '%s' created in project %s (type=%s, order=%s)",
        stage.id, stage.name, project_id, stage.stage_type, stage.order,
    )
    return stage


def update_stage(project_id, stage_id, name=None, color=None, order=None):
    """Rename, recolor or reposition one stage. ``stage_type`` is fixed."""
    if name is not None:
        name = _clean_name(name)
    color = _clean_color(color)
    if order is not None:
        try:
            order = parse_int(order)
        except ValueError as exc:
            raise ValidationError(str(exc), details={"order": "integer"}) from exc
        if order is not None and order < 0:
            raise ValidationError("Stage order must be zero or greater", details={"order": order})

    with unit_of_work():
        stage = get_stage(project_id, stage_id)
        if name is not None:
            stage.name = name
        if color:
            stage.color = color
        if order is not None:
            stage.order = order

    logger.info("Stage %s updated in project %s", stage.id, project_id)
    return stage


def delete_stage(project_id, stage_id):
    """Remove a stage after returning every item on it to the backlog."""
    with unit_of_work() as session:
        stage = get_stage(project_id, stage_id)
        unstaged = 0
        for model in ITEM_MODELS.values():
            result = session.execute(
                update(model)
                .where(model.project_id == project_id, model.stage_id == stage.id)
                .values(stage_id=None)
                .execution_options(synchronize_session="fetch")
            )
            unstaged += result.rowcount or 0
        session.delete(stage)

    logger.info(
        "Stage %s deleted from project %s (%s item(s) unstaged)",
        stage_id, project_id, unstaged,
    )
    return unstaged


def reorder_stages(project_id, stage_orders):
    """Apply a batch of ``{stage_id, order}`` updates atomically.

    Every id must belong to the project; one foreign or unknown id rejects
    the whole batch before anything is written.

    Returns:
        The project's stages in their new order.
    """
    if not isinstance(stage_orders, list) or not stage_orders:
        raise ValidationError("stageOrders must be a non-empty list")

    wanted = {}
    for entry in stage_orders:
        if not isinstance(entry, dict):
            raise ValidationError("Each stageOrders entry must be an object")
        try:
            stage_id = parse_int(pick(entry, "stageId", "stage_id"))
            order = parse_int(entry.get("order"))
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if stage_id is None or order is None:
            raise ValidationError(
                "Each stageOrders entry needs stageId and order",
                details={"entry": entry},
            )
        if order < 0:
            raise ValidationError("Stage order must be zero or greater", details={"entry": entry})
        wanted[stage_id] = order

    with unit_of_work() as session:
        stages = session.execute(
            select(Stage).where(Stage.project_id == project_id, Stage.id.in_(list(wanted)))
        ).scalars().all()
        unknown = sorted(set(wanted) - {s.id for s in stages})
        if unknown:
            raise ValidationError(
                "Stages do not belong to this project",
                details={"unknown_stage_ids": unknown},
            )
        for stage in stages:
            stage.order = wanted[stage.id]

    logger.info("Reordered %s stage(s) in project %s", len(wanted), project_id)
    return list_stages(project_id)
