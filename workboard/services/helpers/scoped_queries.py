"""
Project-scoped query helpers.

Every get-by-id on the board MUST go through these helpers instead of
``db.session.get(Model, pk)``. An unscoped get would let an id that is valid
in project A be read or mutated through project B's URL.

Usage:
    # Scope by project_id (stages, tasks, incidents, resource requests)
    incident = get_scoped(Incident, incident_id, project_id=project_id)

    # Extra column filters narrow the match further
    stage = get_scoped(Stage, stage_id, project_id=project_id, stage_type="INCIDENT")

    # Scope by request_id (comments under one resource request)
    comment = get_scoped_or_none(ResourceRequestComment, cid, request_id=rid)

Scope field resolution:
    Each keyword argument maps directly to a column name on the model. A
    keyword naming a column the model lacks raises ValueError at call time,
    so a typo can never silently turn into an unscoped lookup.
"""

import logging

from sqlalchemy import select

from workboard.core.exceptions import NotFoundError
from workboard.models import db

logger = logging.getLogger(__name__)

# Keywords that count as a real scope. Other keywords (e.g. stage_type) only
# narrow the match and cannot stand in for a scope on their own.
_SCOPE_KWARGS = ("project_id", "request_id")


def get_scoped(model, pk: int, *, resource: str | None = None, **filters):
    """Fetch a single entity by PK with a mandatory scope filter.

    Args:
        model: SQLAlchemy model class with an ``id`` PK column.
        pk: Primary key value to look up.
        resource: Name used in the NotFoundError message. Defaults to the
                  model class name.
        **filters: Column equality filters. At least one of
                   ``project_id`` / ``request_id`` must be given.

    Returns:
        The model instance if found within the given scope.

    Raises:
        ValueError: If no scope filter is supplied or a filter names a
                    column that does not exist on the model.
        NotFoundError: If the entity does not exist OR falls outside the
                       scope. The two cases are intentionally
                       indistinguishable.
    """
    filters = {k: v for k, v in filters.items() if v is not None}

    if not any(k in filters for k in _SCOPE_KWARGS):
        raise ValueError(
            f"{model.__name__} id={pk} requires a scope filter "
            f"({', '.join(_SCOPE_KWARGS)}). Unscoped lookups are forbidden."
        )

    unknown = sorted(k for k in filters if not hasattr(model, k))
    if unknown:
        raise ValueError(
            f"{model.__name__} has no column(s) {unknown}; refusing to run "
            "a lookup that would ignore them."
        )

    stmt = select(model).where(model.id == pk)
    for field, value in filters.items():
        stmt = stmt.where(getattr(model, field) == value)

    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug("get_scoped: %s id=%s not found in scope %s", model.__name__, pk, filters)
        raise NotFoundError(
            resource=resource or model.__name__,
            resource_id=pk,
            project_id=filters.get("project_id"),
        )

    return result


def get_scoped_or_none(model, pk: int, **filters):
    """Same as get_scoped but returns None instead of raising NotFoundError.

    Still enforces the scope requirement (raises ValueError), because a
    silent unscoped lookup is never acceptable regardless of return style.
    """
    try:
        return get_scoped(model, pk, **filters)
    except NotFoundError:
        return None
