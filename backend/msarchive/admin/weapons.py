"""
Admin access to individual weapon rows of a suspect.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from msarchive.auth import Identity, require_admin
from msarchive.db import get_db
from msarchive.errors import NOT_FOUND, bad_request, commit, ok
from msarchive.logging_config import get_logger
from msarchive.models import SuspectWeapon
from msarchive.schemas import Envelope, IdRequest, WeaponCreate, WeaponOut, WeaponUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/weapons", tags=["admin:weapons"])

WEAPON_ID_REQUIRED = "weapon id required"


def _load(db: Session, weapon_id) -> SuspectWeapon:
    try:
        key = int(weapon_id)
    except (TypeError, ValueError):
        bad_request(NOT_FOUND)
    weapon = db.get(SuspectWeapon, key)
    if weapon is None:
        bad_request(NOT_FOUND)
    return weapon


@router.get("", response_model=Envelope)
async def get_weapons(
    weapon_id: Optional[int] = Query(None),
    suspect_id: Optional[str] = Query(None),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if weapon_id is not None:
        return ok(WeaponOut.model_validate(_load(db, weapon_id)).model_dump())

    if suspect_id:
        rows = db.execute(
            select(SuspectWeapon).where(SuspectWeapon.suspect_id == suspect_id).order_by(SuspectWeapon.id)
        ).scalars()
        return ok([WeaponOut.model_validate(w).model_dump() for w in rows])

    bad_request("suspect_id or weapon_id required")


@router.post("", response_model=Envelope[WeaponOut])
async def create_weapon(
    payload: WeaponCreate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    weapon = SuspectWeapon(**payload.model_dump())
    db.add(weapon)
    commit(db)
    db.refresh(weapon)

    logger.info(f"{identity.email} added weapon {weapon.id} to suspect {weapon.suspect_id}")
    return ok(WeaponOut.model_validate(weapon))


@router.put("", response_model=Envelope[WeaponOut])
async def update_weapon(
    payload: WeaponUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.id is None:
        bad_request(WEAPON_ID_REQUIRED)

    weapon = _load(db, payload.id)
    for key, value in payload.model_dump(exclude={"id"}, exclude_unset=True).items():
        setattr(weapon, key, value)
    commit(db)
    db.refresh(weapon)

    logger.info(f"{identity.email} updated weapon {weapon.id}")
    return ok(WeaponOut.model_validate(weapon))


@router.delete("", response_model=Envelope[dict])
async def delete_weapon(
    payload: IdRequest,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.id in (None, ""):
        bad_request(WEAPON_ID_REQUIRED)

    weapon = _load(db, payload.id)
    weapon_id = weapon.id
    db.delete(weapon)
    commit(db)

    logger.info(f"{identity.email} deleted weapon {weapon_id}")
    return ok({"id": weapon_id})
