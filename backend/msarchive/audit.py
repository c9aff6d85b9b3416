"""
Store-side audit log.

Every flush that inserts, updates or deletes a row in an audited table
appends one audit_log row per changed object, in the same transaction.
The actor is whatever email the request put in ``session.info["actor_email"]``
(see msarchive.auth.require_admin); public writes have no actor.
"""
import enum
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.base import NO_VALUE

from msarchive.models import AuditLogEntry

ACTOR_KEY = "actor_email"


def set_actor(session: Session, email: Optional[str]) -> None:
    """Record who is responsible for the mutations made through this session."""
    session.info[ACTOR_KEY] = email


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _row_id(state) -> str:
    identity = state.identity or state.mapper.primary_key_from_instance(state.obj())
    return ",".join(str(part) for part in identity)


def _snapshot(state) -> Dict[str, Any]:
    """Loaded column values only; never triggers a lazy load mid-flush."""
    values = {}
    for attr in state.mapper.column_attrs:
        loaded = state.attrs[attr.key].loaded_value
        if loaded is NO_VALUE:
            continue
        values[attr.key] = _jsonable(loaded)
    return values


def _changes(state) -> Dict[str, List[Any]]:
    changes = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if not history.has_changes():
            continue
        old = history.deleted[0] if history.deleted else None
        new = history.added[0] if history.added else None
        if old == new:
            continue
        changes[attr.key] = [_jsonable(old), _jsonable(new)]
    return changes


def _is_audited(obj) -> bool:
    return not isinstance(obj, AuditLogEntry) and hasattr(obj, "__tablename__")


@event.listens_for(Session, "after_flush")
def write_audit_entries(session: Session, flush_context) -> None:
    actor = session.info.get(ACTOR_KEY)
    now = datetime.now(timezone.utc)
    rows = []

    for obj in session.new:
        if _is_audited(obj):
            state = inspect(obj)
            rows.append(("insert", state, _snapshot(state)))

    for obj in session.dirty:
        if not _is_audited(obj) or not session.is_modified(obj, include_collections=False):
            continue
        state = inspect(obj)
        diff = _changes(state)
        if diff:
            rows.append(("update", state, diff))

    for obj in session.deleted:
        if _is_audited(obj):
            state = inspect(obj)
            rows.append(("delete", state, _snapshot(state)))

    if not rows:
        return

    session.connection().execute(
        AuditLogEntry.__table__.insert(),
        [
            {
                "table_name": state.mapper.local_table.name,
                "row_id": _row_id(state),
                "action": action,
                "actor_email": actor,
                "at": now,
                "diff": diff,
            }
            for action, state, diff in rows
        ],
    )
