"""
Translation of data-store failures into API errors
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DataError, SQLAlchemyError, StatementError
from sqlalchemy.orm import Session

from formbuilder.exceptions import APIError

logger = logging.getLogger(__name__)


@contextmanager
def translate_db_errors(db: Session, action: str) -> Iterator[None]:
    """
    Roll back and re-raise data-store errors as APIError

    Malformed values rejected by the store become 400; anything else the
    store raises becomes 500 with "Server error while <action>".
    """
    try:
        yield
    except APIError:
        raise
    except DataError as e:
        db.rollback()
        logger.warning(f"Rejected data while {action}: {e.orig}")
        raise APIError(400, "Invalid data format", debug=str(e.orig))
    except StatementError as e:
        db.rollback()
        if isinstance(e.orig, (ValueError, TypeError)):
            logger.warning(f"Could not bind parameters while {action}: {e.orig}")
            raise APIError(400, "Invalid data format", debug=str(e.orig))
        logger.error(f"Database error while {action}: {str(e)}", exc_info=True)
        raise APIError(500, f"Server error while {action}", debug=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while {action}: {str(e)}", exc_info=True)
        raise APIError(500, f"Server error while {action}", debug=str(e))
