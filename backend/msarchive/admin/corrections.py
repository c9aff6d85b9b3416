"""
Admin review of publicly submitted corrections.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from msarchive.auth import Identity, require_admin
from msarchive.config_loader import AppSettings, get_settings
from msarchive.corrections import InvalidStatusError, InvalidTransitionError, apply_review
from msarchive.db import get_db
from msarchive.errors import (
    INVALID_STATUS, INVALID_TRANSITION, MISSING_ID, MISSING_REQUIRED_FIELDS, NOT_FOUND,
    bad_request, commit, ok,
)
from msarchive.logging_config import get_logger
from msarchive.models import Correction
from msarchive.schemas import CorrectionOut, CorrectionReview, CorrectionStatusOut, Envelope, IdRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/corrections", tags=["admin:corrections"])

ALL = "all"


@router.get("", response_model=Envelope[List[CorrectionOut]])
async def list_corrections(
    status: Optional[str] = Query(None, description="pending | reviewed | accepted | rejected | all"),
    type: Optional[str] = Query(None, description="factual_error | missing_info | suggestion | all"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    identity: Identity = Depends(require_admin),
    settings: AppSettings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """Newest first, each with a summary of the record it refers to."""
    q = select(Correction).options(joinedload(Correction.incident), joinedload(Correction.legislation))
    if status and status != ALL:
        q = q.where(Correction.status == status)
    if type and type != ALL:
        q = q.where(Correction.correction_type == type)
    q = q.order_by(Correction.created_at.desc(), Correction.id.desc()).limit(limit or settings.corrections_list_limit)

    rows = db.execute(q).scalars().all()
    return ok([CorrectionOut.model_validate(c) for c in rows])


@router.put("", response_model=Envelope[CorrectionStatusOut])
async def review_correction(
    payload: CorrectionReview,
    identity: Identity = Depends(require_admin),
    settings: AppSettings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    if payload.id is None or not payload.status:
        bad_request(MISSING_REQUIRED_FIELDS)

    correction = db.get(Correction, payload.id)
    if correction is None:
        bad_request(NOT_FOUND)

    previous = correction.status
    try:
        apply_review(
            correction,
            payload.status,
            notes=payload.notes,
            reviewed_by=payload.reviewed_by,
            strict=settings.strict_correction_transitions,
        )
    except InvalidStatusError:
        bad_request(INVALID_STATUS)
    except InvalidTransitionError:
        bad_request(INVALID_TRANSITION)
    commit(db)

    logger.info(f"{identity.email} moved correction {correction.id} {previous} -> {correction.status}")
    return ok(CorrectionStatusOut(id=correction.id, status=correction.status, reviewed_at=correction.reviewed_at))


@router.delete("", response_model=Envelope[dict])
async def delete_correction(
    payload: IdRequest,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.id in (None, ""):
        bad_request(MISSING_ID)

    try:
        correction_id = int(payload.id)
    except (TypeError, ValueError):
        bad_request(NOT_FOUND)
    correction = db.get(Correction, correction_id)
    if correction is None:
        bad_request(NOT_FOUND)
    db.delete(correction)
    commit(db)

    logger.info(f"{identity.email} deleted correction {correction_id}")
    return ok({"id": correction_id})
