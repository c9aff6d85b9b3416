"""
Admin legislation management. Same shape as incidents, without the
casualty guard.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from msarchive.auth import Identity, require_admin
from msarchive.db import get_db
from msarchive.errors import MISSING_ID, NOT_FOUND, bad_request, commit, ok
from msarchive.logging_config import get_logger
from msarchive.models import Legislation
from msarchive.schemas import (
    Envelope, IdRequest, LegislationCreate, LegislationOut, LegislationRef, LegislationUpdate, PublishToggle,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/legislation", tags=["admin:legislation"])


def _load(db: Session, legislation_id) -> Legislation:
    law = db.get(Legislation, str(legislation_id))
    if law is None:
        bad_request(NOT_FOUND)
    return law


def _ref(law: Legislation) -> LegislationRef:
    return LegislationRef(id=law.id, law_code=law.law_code)


@router.get("", response_model=Envelope[List[LegislationOut]])
async def list_legislation(
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = db.execute(select(Legislation).order_by(Legislation.created_at.desc(), Legislation.date.desc())).scalars()
    return ok([LegislationOut.model_validate(r) for r in rows])


@router.post("", response_model=Envelope[LegislationRef])
async def create_legislation(
    payload: LegislationCreate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    law = Legislation(**payload.model_dump())
    db.add(law)
    commit(db)
    db.refresh(law)

    logger.info(f"{identity.email} created legislation {law.id} ({law.jurisdiction})")
    return ok(_ref(law))


@router.put("", response_model=Envelope[LegislationRef])
async def update_legislation(
    payload: LegislationUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    law = _load(db, payload.id)
    data = payload.model_dump(exclude={"id"})
    if data["last_verified_at"] is None:
        data.pop("last_verified_at")
    for key, value in data.items():
        setattr(law, key, value)
    commit(db)
    db.refresh(law)

    logger.info(f"{identity.email} updated legislation {law.id}")
    return ok(_ref(law))


@router.patch("", response_model=Envelope[LegislationRef])
async def toggle_legislation_publish(
    payload: PublishToggle,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    law = _load(db, payload.id)
    law.is_published = payload.is_published
    commit(db)
    db.refresh(law)

    logger.info(f"{identity.email} set legislation {law.id} published={law.is_published}")
    return ok(_ref(law))


@router.delete("", response_model=Envelope[LegislationRef])
async def delete_legislation(
    payload: IdRequest,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.id in (None, ""):
        bad_request(MISSING_ID)

    law = _load(db, payload.id)
    ref = _ref(law)
    db.delete(law)
    commit(db)

    logger.info(f"{identity.email} deleted legislation {ref.id}")
    return ok(ref)
