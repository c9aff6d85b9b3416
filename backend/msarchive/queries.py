"""
Data-access helpers for the public read surface.

Anonymous readers only ever see the filtered views built here: published
incidents that have been verified, published legislation, and suspects of
visible incidents. Request parameters can only narrow these views.
"""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import Integer, and_, case, cast, extract, func, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import Select

from msarchive.models import Incident, Legislation, Suspect
from msarchive.schemas import FEDERAL

INCIDENT_ORDERINGS = {
    "date.desc": (Incident.date.desc(), Incident.id),
    "date.asc": (Incident.date.asc(), Incident.id),
    "fatalities.desc": (Incident.fatalities.desc(), Incident.date.desc()),
    "injuries.desc": (Incident.injuries.desc(), Incident.date.desc()),
}


def visible_incidents() -> Select:
    """v_incidents: published and verified incidents."""
    return select(Incident).where(
        Incident.is_published.is_(True),
        Incident.last_verified_at.isnot(None),
    )


def visible_legislation() -> Select:
    """v_legislation: published legislation."""
    return select(Legislation).where(Legislation.is_published.is_(True))


def list_incidents(
    db: Session,
    state: Optional[str] = None,
    year: Optional[int] = None,
    location_type: Optional[str] = None,
    school_only: bool = False,
    order: str = "date.desc",
    limit: Optional[int] = None,
) -> List[Incident]:
    q = visible_incidents()
    if state:
        q = q.where(Incident.state == state.upper())
    if year:
        q = q.where(Incident.date >= date(year, 1, 1), Incident.date <= date(year, 12, 31))
    if school_only:
        q = q.where(Incident.location_type == "school")
    elif location_type:
        q = q.where(Incident.location_type == location_type)

    q = q.order_by(*INCIDENT_ORDERINGS.get(order, INCIDENT_ORDERINGS["date.desc"]))
    if limit:
        q = q.limit(limit)
    return list(db.execute(q).scalars())


def get_incident(db: Session, incident_id: str) -> Optional[Incident]:
    return db.execute(visible_incidents().where(Incident.id == incident_id)).scalar_one_or_none()


def list_incident_suspects(db: Session, incident_id: str) -> List[Suspect]:
    """v_suspects: suspects of a visible incident, with weapons."""
    visible_ids = visible_incidents().with_only_columns(Incident.id).scalar_subquery()
    q = (
        select(Suspect)
        .options(selectinload(Suspect.weapons))
        .where(Suspect.incident_id == incident_id, Suspect.incident_id.in_(visible_ids))
        .order_by(Suspect.created_at.asc(), Suspect.id.asc())
    )
    return list(db.execute(q).scalars())


def list_legislation(
    db: Session,
    jurisdiction: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Legislation]:
    q = visible_legislation()
    if jurisdiction:
        if jurisdiction.upper() == FEDERAL:
            q = q.where(func.upper(Legislation.jurisdiction) == FEDERAL)
        else:
            q = q.where(Legislation.jurisdiction == jurisdiction.upper())
    if category:
        q = q.where(Legislation.category == category)
    q = q.order_by(Legislation.date.desc(), Legislation.id)
    return list(db.execute(q).scalars())


# ---------------------------------------------------------------------------
# Statistics (recomputed from the filtered incident view on every call)
# ---------------------------------------------------------------------------

def _visible_filter():
    return and_(Incident.is_published.is_(True), Incident.last_verified_at.isnot(None))


def stats_yearly(db: Session) -> List[Dict]:
    year = cast(extract("year", Incident.date), Integer).label("year")
    rows = db.execute(
        select(
            year,
            func.count(Incident.id),
            func.coalesce(func.sum(Incident.fatalities), 0),
            func.coalesce(func.sum(Incident.injuries), 0),
            func.coalesce(func.sum(case((Incident.location_type == "school", 1), else_=0)), 0),
        )
        .where(_visible_filter())
        .group_by(year)
        .order_by(year.desc())
    ).all()
    return [
        {
            "year": int(r[0]),
            "total_incidents": r[1],
            "total_fatalities": int(r[2]),
            "total_injuries": int(r[3]),
            "school_incidents": int(r[4]),
        }
        for r in rows
    ]


def stats_by_state(db: Session) -> List[Dict]:
    incidents = func.count(Incident.id)
    rows = db.execute(
        select(
            Incident.state,
            incidents,
            func.coalesce(func.sum(Incident.fatalities), 0),
            func.coalesce(func.sum(Incident.injuries), 0),
        )
        .where(_visible_filter())
        .group_by(Incident.state)
        .order_by(incidents.desc(), Incident.state)
    ).all()
    return [
        {
            "state": r[0],
            "total_incidents": r[1],
            "total_fatalities": int(r[2]),
            "total_injuries": int(r[3]),
        }
        for r in rows
    ]


def deadliest_incidents(db: Session, limit: int = 10) -> List[Incident]:
    q = (
        visible_incidents()
        .order_by((Incident.fatalities + Incident.injuries).desc(), Incident.fatalities.desc(), Incident.date.desc())
        .limit(limit)
    )
    return list(db.execute(q).scalars())


def monthly_trends(db: Session, months: int = 24) -> List[Dict]:
    """
    Incident counts per calendar month, newest first. Grouped in Python so
    the same code runs on SQLite and PostgreSQL.
    """
    rows = db.execute(
        select(Incident.date, Incident.fatalities, Incident.injuries).where(_visible_filter())
    ).all()

    buckets: Dict[str, Dict] = {}
    for incident_date, fatalities, injuries in rows:
        key = f"{incident_date.year:04d}-{incident_date.month:02d}"
        bucket = buckets.setdefault(
            key, {"month": key, "total_incidents": 0, "total_fatalities": 0, "total_injuries": 0}
        )
        bucket["total_incidents"] += 1
        bucket["total_fatalities"] += fatalities or 0
        bucket["total_injuries"] += injuries or 0

    return [buckets[k] for k in sorted(buckets, reverse=True)[:months]]
