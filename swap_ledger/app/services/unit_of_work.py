from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..core.errors import ConstraintViolationError


logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run the block as one unit of work: commit on success, roll back on any error."""
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("unit_of_work.constraint_violation", extra={"error": str(exc.orig)})
        raise ConstraintViolationError(str(exc.orig)) from exc
    except BaseException:
        session.rollback()
        raise
