"""
Transaction boundary for lifecycle operations.

A lifecycle command's work order mutation, event append and outbox inserts
all go through ``db.session``; wrapping them in ``unit_of_work()`` commits
them together or not at all.
"""
from contextlib import contextmanager

from facilityops.logging_config import get_logger
from facilityops.models import db

logger = get_logger(__name__)


@contextmanager
def unit_of_work():
    """Yield the session; commit on success, roll back on any exception."""
    session = db.session
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.debug("Unit of work rolled back", error_type=type(e).__name__, error=str(e))
        raise

