"""
Read-only view of the audit log.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from msarchive.auth import Identity, require_admin
from msarchive.db import get_db
from msarchive.errors import ok
from msarchive.models import AuditLogEntry
from msarchive.schemas import AuditLogOut, Envelope

router = APIRouter(prefix="/api/admin/audit", tags=["admin:audit"])


@router.get("", response_model=Envelope[List[AuditLogOut]])
async def list_audit_entries(
    table: Optional[str] = Query(None, description="Filter by table name"),
    action: Optional[str] = Query(None, description="insert | update | delete"),
    actor: Optional[str] = Query(None, description="Filter by actor email"),
    limit: int = Query(500, ge=1, le=5000),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    q = select(AuditLogEntry)
    if table:
        q = q.where(AuditLogEntry.table_name == table)
    if action:
        q = q.where(AuditLogEntry.action == action)
    if actor:
        q = q.where(AuditLogEntry.actor_email == actor.strip().lower())
    q = q.order_by(AuditLogEntry.at.desc(), AuditLogEntry.id.desc()).limit(limit)

    return ok([AuditLogOut.model_validate(r) for r in db.execute(q).scalars()])
