"""
Publication rules enforced at the store boundary.

Handlers check the publish guard up front so they can answer with a clear
400, but the same rule runs again in a ``before_flush`` hook so nothing that
goes through a Session can persist a published incident below the casualty
threshold. The hook also assigns public codes and the verification stamp
on first publish.
"""
from datetime import datetime, timezone

from sqlalchemy import Integer, cast, event, func, select
from sqlalchemy.orm import Session

from msarchive.models import Incident, Legislation

MIN_PUBLISHABLE_CASUALTIES = 4


class PublishGuardError(ValueError):
    """Raised when an incident would be published with too few casualties."""


def check_publish_guard(fatalities: int, injuries: int) -> None:
    total = (fatalities or 0) + (injuries or 0)
    if total < MIN_PUBLISHABLE_CASUALTIES:
        raise PublishGuardError(
            f"Incident cannot be published: fatalities + injuries must be at least "
            f"{MIN_PUBLISHABLE_CASUALTIES} (got {total})"
        )


def _next_code(session: Session, column, prefix: str, width: int, assigned: dict) -> str:
    # Numeric max of the suffix; the padding width is a minimum, not a cap.
    # Deleted records leave gaps that are never reused.
    if prefix not in assigned:
        suffix = cast(func.substr(column, len(prefix) + 1), Integer)
        with session.no_autoflush:
            highest = session.execute(
                select(func.max(suffix)).where(column.like(f"{prefix}%"))
            ).scalar_one()
        assigned[prefix] = int(highest or 0)
    assigned[prefix] += 1
    return f"{prefix}{assigned[prefix]:0{width}d}"


@event.listens_for(Session, "before_flush")
def apply_publication_rules(session: Session, flush_context, instances) -> None:
    now = datetime.now(timezone.utc)
    assigned = {}

    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, Incident) and obj.is_published:
            check_publish_guard(obj.fatalities, obj.injuries)
            if not obj.incident_code:
                prefix = f"MS-{obj.date.year}-"
                obj.incident_code = _next_code(session, Incident.incident_code, prefix, 4, assigned)
            if obj.last_verified_at is None:
                obj.last_verified_at = now
        elif isinstance(obj, Legislation) and obj.is_published:
            if not obj.law_code:
                prefix = f"{obj.jurisdiction.upper()}-{obj.date.year}-"
                obj.law_code = _next_code(session, Legislation.law_code, prefix, 3, assigned)
            if obj.last_verified_at is None:
                obj.last_verified_at = now
