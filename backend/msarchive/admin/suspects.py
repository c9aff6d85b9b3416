"""
Admin suspect management. A suspect is written together with its weapons
and prior history; see msarchive.suspects for the write modes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from msarchive import suspects as suspect_store
from msarchive.auth import Identity, require_admin
from msarchive.config_loader import AppSettings, get_settings
from msarchive.db import get_db
from msarchive.errors import MISSING_ID, NOT_FOUND, bad_request, commit, ok
from msarchive.logging_config import get_logger
from msarchive.models import Suspect
from msarchive.schemas import Envelope, IdRequest, SuspectCreate, SuspectOut, SuspectUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/suspects", tags=["admin:suspects"])


@router.get("", response_model=Envelope)
async def get_suspects(
    suspect_id: Optional[str] = Query(None),
    incident_id: Optional[str] = Query(None),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    ?suspect_id= returns one suspect, ?incident_id= every suspect of an
    incident. Both carry nested weapons and history.
    """
    if suspect_id:
        suspect = suspect_store.get_suspect(db, suspect_id)
        if suspect is None:
            bad_request(NOT_FOUND)
        return ok(SuspectOut.model_validate(suspect).model_dump(mode="json"))

    if incident_id:
        rows = suspect_store.list_suspects(db, incident_id)
        return ok([SuspectOut.model_validate(s).model_dump(mode="json") for s in rows])

    bad_request("suspect_id or incident_id required")


@router.post("", response_model=Envelope[SuspectOut])
async def create_suspect(
    payload: SuspectCreate,
    identity: Identity = Depends(require_admin),
    settings: AppSettings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    if not payload.incident_id:
        bad_request("incident_id required")

    suspect = suspect_store.create_suspect(
        db,
        incident_id=payload.incident_id,
        fields=payload,
        weapons=payload.weapons,
        history=payload.history,
        mode=settings.suspect_write_mode,
    )
    logger.info(f"{identity.email} created suspect {suspect.id} on incident {payload.incident_id}")
    return ok(SuspectOut.model_validate(suspect))


@router.put("", response_model=Envelope[SuspectOut])
async def update_suspect(
    payload: SuspectUpdate,
    identity: Identity = Depends(require_admin),
    settings: AppSettings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """Replace scalar fields and the weapons set, upsert prior history."""
    if not payload.id:
        bad_request(MISSING_ID)

    existing = suspect_store.get_suspect(db, payload.id)
    if existing is None:
        bad_request(NOT_FOUND)

    suspect = suspect_store.update_suspect(
        db,
        existing,
        fields=payload,
        weapons=payload.weapons,
        history=payload.history,
        mode=settings.suspect_write_mode,
    )
    logger.info(f"{identity.email} updated suspect {suspect.id}")
    return ok(SuspectOut.model_validate(suspect))


@router.delete("", response_model=Envelope[dict])
async def delete_suspect(
    payload: IdRequest,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.id in (None, ""):
        bad_request(MISSING_ID)

    suspect = db.get(Suspect, str(payload.id))
    if suspect is None:
        bad_request(NOT_FOUND)
    suspect_id = suspect.id
    db.delete(suspect)
    commit(db)

    logger.info(f"{identity.email} deleted suspect {suspect_id}")
    return ok({"id": suspect_id})
