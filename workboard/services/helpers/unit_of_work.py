"""
Unit of work — one explicit transactional context per board mutation.

Services open a unit of work around every group of writes that must land
together (an item's new stage and its audit row; a stage's computed order
and its insert). Inside the block, code only ``add``s and ``flush``es; the
context manager owns the single ``commit`` and the ``rollback`` on failure.

    with unit_of_work() as session:
        item.stage_id = stage.id
        session.add(IncidentActivity(...))
    # both rows committed, or neither

Store timeouts and dropped connections are rolled back and re-raised as
``UnavailableError`` so the HTTP layer can answer 503 (retryable) instead
of 500.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from workboard.core.exceptions import UnavailableError
from workboard.models import db

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work():
    """Yield the request-scoped session; commit on success, roll back on error."""
    session = db.session
    try:
        yield session
        session.commit()
    except (OperationalError, PoolTimeoutError) as exc:
        session.rollback()
        logger.warning("Unit of work rolled back, store unavailable: %s", exc)
        raise UnavailableError() from exc
    except Exception:
        session.rollback()
        raise


def lock_row(session, model, row_id):
    """Write-lock one row for the rest of the unit of work.

    Issues a no-op ``UPDATE ... SET updated_at = updated_at`` (``id`` for
    models without a timestamp) as the first statement, which
    takes the row lock on PostgreSQL and the database write lock on SQLite
    (where ``SELECT ... FOR UPDATE`` does not exist and a plain read opens
    no write transaction). Later reads in the same unit of work see every
    write committed before the lock was granted.

    Returns:
        True when the row exists.
    """
    # assigning the column itself also keeps its onupdate default from firing
    column = "updated_at" if hasattr(model, "updated_at") else "id"
    result = session.execute(
        update(model)
        .where(model.id == row_id)
        .values({column: getattr(model, column)})
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)
