"""
Admin incident management: list, create, replace, publish toggle, delete.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from msarchive.auth import Identity, require_admin
from msarchive.db import get_db
from msarchive.errors import MISSING_ID, NOT_FOUND, bad_request, commit, ok
from msarchive.logging_config import get_logger
from msarchive.models import Incident
from msarchive.publishing import check_publish_guard
from msarchive.schemas import (
    Envelope, IdRequest, IncidentCreate, IncidentOut, IncidentRef, IncidentUpdate, PublishToggle,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/incidents", tags=["admin:incidents"])


def _load(db: Session, incident_id) -> Incident:
    incident = db.get(Incident, str(incident_id))
    if incident is None:
        bad_request(NOT_FOUND)
    return incident


def _ref(incident: Incident) -> IncidentRef:
    return IncidentRef(id=incident.id, incident_code=incident.incident_code)


@router.get("", response_model=Envelope[List[IncidentOut]])
async def list_incidents(
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All incidents including drafts, newest first."""
    rows = db.execute(select(Incident).order_by(Incident.created_at.desc(), Incident.date.desc())).scalars()
    return ok([IncidentOut.model_validate(r) for r in rows])


@router.post("", response_model=Envelope[IncidentRef])
async def create_incident(
    payload: IncidentCreate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.is_published:
        check_publish_guard(payload.fatalities, payload.injuries)

    incident = Incident(**payload.model_dump())
    db.add(incident)
    commit(db)
    db.refresh(incident)

    logger.info(f"{identity.email} created incident {incident.id} (published={incident.is_published})")
    return ok(_ref(incident))


@router.put("", response_model=Envelope[IncidentRef])
async def update_incident(
    payload: IncidentUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Replace every mutable field. The public code is never touched here."""
    if payload.is_published:
        check_publish_guard(payload.fatalities, payload.injuries)

    incident = _load(db, payload.id)
    data = payload.model_dump(exclude={"id"})
    if data["last_verified_at"] is None:
        data.pop("last_verified_at")
    for key, value in data.items():
        setattr(incident, key, value)
    commit(db)
    db.refresh(incident)

    logger.info(f"{identity.email} updated incident {incident.id}")
    return ok(_ref(incident))


@router.patch("", response_model=Envelope[IncidentRef])
async def toggle_incident_publish(
    payload: PublishToggle,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    incident = _load(db, payload.id)
    if payload.is_published:
        check_publish_guard(incident.fatalities, incident.injuries)

    incident.is_published = payload.is_published
    commit(db)
    db.refresh(incident)

    logger.info(f"{identity.email} set incident {incident.id} published={incident.is_published}")
    return ok(_ref(incident))


@router.delete("", response_model=Envelope[IncidentRef])
async def delete_incident(
    payload: IdRequest,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete an incident; its suspects, weapons and histories go with it."""
    if payload.id in (None, ""):
        bad_request(MISSING_ID)

    incident = _load(db, payload.id)
    ref = _ref(incident)
    db.delete(incident)
    commit(db)

    logger.info(f"{identity.email} deleted incident {ref.id}")
    return ok(ref)
