"""
Error codes and response helpers shared by the API handlers.

Every response body is an envelope ``{"data": ..., "error": ...}``. Handlers
return ``ok(...)`` on success and raise HTTPException for refusals; the
exception handlers in main.py wrap the detail into the same envelope.
"""
from typing import Any, Dict, NoReturn

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

NOT_FOUND = "not_found"
MISSING_ID = "missing_id"
MISSING_REQUIRED_FIELDS = "missing_required_fields"
INVALID_STATUS = "invalid_status"
INVALID_TRANSITION = "invalid_transition"
INVALID_ACTION = "invalid_action"
CANNOT_REMOVE_SELF = "cannot_remove_self"
CAPTCHA_FAILED = "captcha_failed"


def ok(data: Any = None) -> Dict[str, Any]:
    return {"data": data, "error": None}


def bad_request(detail: Any) -> NoReturn:
    raise HTTPException(status_code=400, detail=detail)


def store_message(exc: SQLAlchemyError) -> str:
    """The database's own message, without SQLAlchemy's statement dump."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def commit(db: Session) -> None:
    """Commit, rolling back before re-raising so the session stays usable."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
