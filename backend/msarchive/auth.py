"""
Request identity and the admin authorization gate.

The session provider issues HS256-signed JWTs carrying an ``email`` claim.
Each request resolves its own Identity from the Authorization header; the
identity is handed to handlers explicitly and stamped on the DB session so
the audit hook can attribute mutations.
"""
import os
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from msarchive.audit import set_actor
from msarchive.db import get_db
from msarchive.logging_config import get_logger
from msarchive.models import AdminAllowlistEntry

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class Identity:
    """Caller resolved from a verified bearer token."""
    email: str
    subject: Optional[str] = None


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Raises:
        JWTError if the token is invalid, expired, or no secret is configured
    """
    secret = os.getenv("AUTH_JWT_SECRET")
    if not secret:
        raise JWTError("AUTH_JWT_SECRET is not configured")

    audience = os.getenv("AUTH_JWT_AUDIENCE")
    return jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        audience=audience,
        # python-jose only checks aud when the claim is present, so require it
        options={"verify_aud": bool(audience), "require_aud": bool(audience)},
    )


def create_access_token(email: str, subject: Optional[str] = None, expires_in_minutes: int = 60) -> str:
    """Issue a token the way the session provider does. Used by tools and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject or email,
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=expires_in_minutes),
    }
    audience = os.getenv("AUTH_JWT_AUDIENCE")
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, os.getenv("AUTH_JWT_SECRET", ""), algorithm=JWT_ALGORITHM)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_identity_optional(request: Request) -> Optional[Identity]:
    """Identity of the caller, or None for anonymous/invalid tokens."""
    token = _bearer_token(request)
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None

    email = payload.get("email")
    if not email:
        return None
    return Identity(email=str(email).strip().lower(), subject=payload.get("sub"))


def is_admin(db: Session, email: str) -> bool:
    return db.get(AdminAllowlistEntry, email.strip().lower()) is not None


async def require_admin(
    identity: Optional[Identity] = Depends(get_identity_optional),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Gate for every administrative operation: the caller must present a valid
    token whose email is on the allowlist. Runs before any handler logic, so
    a refused call never mutates anything.
    """
    if identity is None or not is_admin(db, identity.email):
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    set_actor(db, identity.email)
    return identity
