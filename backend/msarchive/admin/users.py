"""
Admin allowlist management.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from msarchive.auth import Identity, require_admin
from msarchive.config_loader import AppSettings, get_settings
from msarchive.db import get_db
from msarchive.errors import CANNOT_REMOVE_SELF, INVALID_ACTION, bad_request, commit, ok
from msarchive.logging_config import get_logger
from msarchive.models import AdminAllowlistEntry
from msarchive.schemas import AllowlistEntryOut, AllowlistRequest, Envelope

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin:users"])

ADD = "add"
REMOVE = "remove"


@router.get("", response_model=Envelope[List[AllowlistEntryOut]])
async def list_admins(
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = db.execute(
        select(AdminAllowlistEntry).order_by(AdminAllowlistEntry.created_at.desc(), AdminAllowlistEntry.email)
    ).scalars()
    return ok([AllowlistEntryOut.model_validate(r) for r in rows])


@router.post("", response_model=Envelope[dict])
async def manage_admin(
    payload: AllowlistRequest,
    identity: Identity = Depends(require_admin),
    settings: AppSettings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """
    {action: "add" | "remove", email}. Adding an email that is already on
    the list is refused by the primary key.
    """
    email = str(payload.email).strip().lower()

    if payload.action == ADD:
        db.add(AdminAllowlistEntry(email=email, added_by=identity.email))
        commit(db)
        logger.info(f"{identity.email} added {email} to the admin allowlist")
        return ok({"action": ADD, "email": email})

    if payload.action == REMOVE:
        if email == identity.email and not settings.allow_self_removal:
            bad_request(CANNOT_REMOVE_SELF)
        entry = db.get(AdminAllowlistEntry, email)
        if entry is not None:
            db.delete(entry)
            commit(db)
        logger.info(f"{identity.email} removed {email} from the admin allowlist")
        return ok({"action": REMOVE, "email": email})

    bad_request(INVALID_ACTION)
