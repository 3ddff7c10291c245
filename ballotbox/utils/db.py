from contextlib import contextmanager
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import StoreUnavailable


@contextmanager
def atomic(operation: str):
    """Run the block as one unit of work on the request session.

    Commits on success. On any failure the session is rolled back so no
    partial roster/vote mutation survives; store failures surface as
    StoreUnavailable. IntegrityError is re-raised as-is so callers can map
    constraint races to their own domain error.
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("DB error during %s", operation)
        raise StoreUnavailable(f"Failed to {operation}") from exc
    except BaseException:
        db.session.rollback()
        raise
