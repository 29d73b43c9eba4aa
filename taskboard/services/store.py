from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..errors import StoreError


@contextmanager
def store_operation(db: Session, message: str):
    """Roll back and re-raise database failures as ``StoreError(message)``."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(message, detail=str(exc)) from exc
