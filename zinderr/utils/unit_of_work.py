import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from zinderr.extensions import db
from zinderr.utils.exceptions import ServiceError, InvalidState, StorageFailure

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(transition, entity=None):
    """
    Run the block as one database transaction.

    Commits when the block finishes, rolls back on any error. A write based on
    a stale read (version mismatch) or a unique-constraint race comes back as
    ``InvalidState`` with code ``CONFLICT``; any other database error as
    ``StorageFailure``.
    """
    try:
        yield
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except StaleDataError:
        db.session.rollback()
        logger.warning("Concurrent update lost: %s on %s", transition, entity)
        raise InvalidState(
            transition,
            "modified_concurrently",
            message="Someone else already acted on this. Refresh and try again.",
            entity=entity,
            code="CONFLICT",
        )
    except IntegrityError:
        db.session.rollback()
        logger.warning("Integrity conflict: %s on %s", transition, entity)
        raise InvalidState(
            transition,
            "duplicate",
            message="A conflicting record already exists. Refresh and try again.",
            entity=entity,
            code="CONFLICT",
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Storage failure during %s on %s", transition, entity)
        raise StorageFailure()
