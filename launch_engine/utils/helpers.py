"""Shared service helpers.

get_or_raise:     PK lookup that raises NotFoundError instead of returning None
parse_date_input: strict date parsing (raises ValueError on bad input)
commit_or_raise:  commit the request session, converting store failures to StoreError
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from launch_engine.core.exceptions import NotFoundError, StoreError
from launch_engine.models import db

logger = logging.getLogger(__name__)


def get_or_raise(model, pk, label=None):
    """Fetch a model instance by primary key.

    Raises:
        NotFoundError: when no row has that key.
    """
    obj = db.session.get(model, pk) if pk else None
    if obj is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, YYYY-MM-DDTHH:MM:SS, DD.MM.YYYY, date objects.
    Empty input returns None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = str(value)
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(value, "%d.%m.%Y").date()
    except ValueError as exc:
        raise ValueError(
            "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
        ) from exc


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(operation: str):
    """Commit the current SQLAlchemy session or roll back and raise StoreError.

    Usage::

        db.session.add(project)
        commit_or_raise("create_project")

    Every service write funnels through here so a failed commit never leaves
    a half-applied unit of work in the session.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Store failure during %s", operation)
        raise StoreError(operation, exc) from exc
