"""
FastAPI application main entry point.
Public read endpoints, correction intake and the admin routers of the
MS Archive backend.
"""
import os
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

import msarchive.audit  # noqa: F401  registers the audit session hook
import msarchive.publishing  # noqa: F401  registers the publication session hook
from msarchive import queries
from msarchive.admin import audit as admin_audit
from msarchive.admin import corrections as admin_corrections
from msarchive.admin import incidents as admin_incidents
from msarchive.admin import legislation as admin_legislation
from msarchive.admin import suspects as admin_suspects
from msarchive.admin import users as admin_users
from msarchive.admin import weapons as admin_weapons
from msarchive.captcha import TurnstileVerifier
from msarchive.config_loader import AppSettings, get_settings, sync_admins_to_db
from msarchive.corrections import PENDING
from msarchive.db import Base, SessionLocal, engine, get_db
from msarchive.errors import CAPTCHA_FAILED, NOT_FOUND, commit, ok, store_message
from msarchive.export import export_filename, incidents_to_csv
from msarchive.logging_config import get_logger, setup_logging
from msarchive.models import Correction
from msarchive.publishing import PublishGuardError
from msarchive.schemas import (
    CorrectionCreate, Envelope, LocationType, MonthlyTrend, PublicIncidentOut, PublicLegislationOut,
    PublicSuspectOut, StateStats, YearlyStats,
)
from msarchive.suspects import ChildPayloadError

SERVICE_NAME = "MS Archive Backend"
SERVICE_VERSION = "1.0.0"

REQUIRED_TABLES = (
    "incidents", "suspects", "suspect_weapons", "suspect_prior_history",
    "legislation", "corrections", "admin_allowlist", "audit_log",
)


def verify_database_schema():
    """
    Verify that the database schema is up-to-date.

    Returns:
        tuple: (is_valid: bool, message: str)
    """
    existing = set(inspect(engine).get_table_names())
    missing = [t for t in REQUIRED_TABLES if t not in existing]
    if missing:
        return False, f"Missing tables: {', '.join(missing)}. Run 'alembic upgrade head' to create them."
    return True, "Database schema is up-to-date"


# Set up logging
setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
logger = get_logger(__name__)

# Determine environment (dev/prod) for CORS behavior
ENV = os.getenv("ENV", "dev").lower()

# Read explicit frontend origins from env (comma separated)
frontend_origins_env = os.getenv("FRONTEND_ORIGINS", "")
parsed_frontend_origins = [o.strip() for o in frontend_origins_env.split(",") if o.strip()]

base_allowed_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]

# Combine allowed origins (explicit + base)
allowed_origins = list(dict.fromkeys(base_allowed_origins + parsed_frontend_origins))

# Dev-only permissive CORS escape hatch
DEV_PERMISSIVE_CORS = os.getenv("DEV_PERMISSIVE_CORS", "").lower() in ("1", "true", "yes")

# In dev, allow preview deployments via regex (configurable)
cors_allow_origin_regex = None
if ENV == "dev":
    cors_allow_origin_regex = os.getenv("CORS_ALLOW_ORIGIN_REGEX", r"https://.*\.app\.github\.dev")

if ENV == "dev" and DEV_PERMISSIVE_CORS:
    logger.warning("DEV_PERMISSIVE_CORS enabled, allowing all origins. Do NOT enable in production.")
    allow_credentials = False
    allowed_origins = ["*"]
else:
    # A wildcard origin cannot be combined with credentials
    allow_credentials = "*" not in allowed_origins

# Create tables on startup (for development; in prod use migrations)
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown."""
    logger.info(f"Starting {SERVICE_NAME}")

    schema_valid, schema_message = verify_database_schema()
    if not schema_valid:
        logger.error(f"Database schema verification failed: {schema_message}")
        raise RuntimeError(f"Database schema is outdated: {schema_message}")
    logger.info(f"Database schema verification: {schema_message}")

    db = SessionLocal()
    try:
        synced_count = sync_admins_to_db(db)
        logger.info(f"Synced {synced_count} bootstrap admin(s) from configuration")
    except SQLAlchemyError as e:
        logger.warning(f"Failed to sync bootstrap admins: {e}")
    finally:
        db.close()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")


app = FastAPI(
    title=SERVICE_NAME,
    description="Public data API and admin back office for the mass shooting archive",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

logger.info(f"CORS allowed_origins: {allowed_origins}")
logger.info(f"CORS allow_origin_regex: {cors_allow_origin_regex}")
logger.info(f"CORS allow_credentials: {allow_credentials}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_origin_regex=cors_allow_origin_regex,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,  # Cache preflight responses for 1 hour
)

for admin_router in (
    admin_incidents.router,
    admin_suspects.router,
    admin_weapons.router,
    admin_legislation.router,
    admin_corrections.router,
    admin_users.router,
    admin_audit.router,
):
    app.include_router(admin_router)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

def _error(status_code: int, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": None, "error": detail})


def _validation_messages(errors) -> List[str]:
    messages = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "header"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return messages


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(400, _validation_messages(exc.errors()))


@app.exception_handler(PublishGuardError)
async def publish_guard_handler(request: Request, exc: PublishGuardError):
    return _error(400, str(exc))


@app.exception_handler(ChildPayloadError)
async def child_payload_handler(request: Request, exc: ChildPayloadError):
    return _error(400, str(exc))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.warning(f"Store refused {request.method} {request.url.path}: {store_message(exc)}")
    return _error(400, store_message(exc))


# Fallback preflight handler (ensures OPTIONS returns quickly and that middleware can attach headers)
@app.options("/{full_path:path}")
async def preflight(full_path: str, request: Request):
    logger.debug(f"Fallback preflight handler invoked for path={full_path} origin={request.headers.get('origin')}")
    return Response(status_code=204)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "operational",
    }


# ---------------------------------------------------------------------------
# Public read surface
# ---------------------------------------------------------------------------

@app.get("/api/incidents", response_model=Envelope[List[PublicIncidentOut]])
async def get_incidents(
    state: Optional[str] = Query(None, description="Two-letter state code"),
    year: Optional[int] = Query(None, ge=1900, le=2100),
    location_type: Optional[LocationType] = Query(None),
    school_only: bool = Query(False),
    order: str = Query("date.desc", description="date.desc | date.asc | fatalities.desc | injuries.desc"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Published, verified incidents. Parameters only narrow the result."""
    rows = queries.list_incidents(
        db,
        state=state,
        year=year,
        location_type=location_type.value if location_type else None,
        school_only=school_only,
        order=order,
        limit=limit,
    )
    return ok([PublicIncidentOut.model_validate(r) for r in rows])


@app.get("/api/incidents/{incident_id}", response_model=Envelope[PublicIncidentOut])
async def get_incident(incident_id: str, db: Session = Depends(get_db)):
    incident = queries.get_incident(db, incident_id)
    if incident is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok(PublicIncidentOut.model_validate(incident))


@app.get("/api/incidents/{incident_id}/suspects", response_model=Envelope[List[PublicSuspectOut]])
async def get_incident_suspects(incident_id: str, db: Session = Depends(get_db)):
    if queries.get_incident(db, incident_id) is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    rows = queries.list_incident_suspects(db, incident_id)
    return ok([PublicSuspectOut.model_validate(s) for s in rows])


@app.get("/api/legislation", response_model=Envelope[List[PublicLegislationOut]])
async def get_legislation(
    jurisdiction: Optional[str] = Query(None, description="State code or FEDERAL"),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    rows = queries.list_legislation(db, jurisdiction=jurisdiction, category=category)
    return ok([PublicLegislationOut.model_validate(r) for r in rows])


@app.get("/api/legislation/{jurisdiction}", response_model=Envelope[List[PublicLegislationOut]])
async def get_legislation_for_jurisdiction(jurisdiction: str, db: Session = Depends(get_db)):
    rows = queries.list_legislation(db, jurisdiction=jurisdiction)
    return ok([PublicLegislationOut.model_validate(r) for r in rows])


@app.get("/api/stats/yearly", response_model=Envelope[List[YearlyStats]])
async def get_yearly_stats(db: Session = Depends(get_db)):
    return ok(queries.stats_yearly(db))


@app.get("/api/stats/by-state", response_model=Envelope[List[StateStats]])
async def get_state_stats(db: Session = Depends(get_db)):
    return ok(queries.stats_by_state(db))


@app.get("/api/stats/deadliest", response_model=Envelope[List[PublicIncidentOut]])
async def get_deadliest(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return ok([PublicIncidentOut.model_validate(r) for r in queries.deadliest_incidents(db, limit=limit)])


@app.get("/api/stats/monthly", response_model=Envelope[List[MonthlyTrend]])
async def get_monthly_trends(months: int = Query(24, ge=1, le=240), db: Session = Depends(get_db)):
    return ok(queries.monthly_trends(db, months=months))


@app.get("/api/export/incidents.csv")
async def export_incidents_csv(db: Session = Depends(get_db)):
    """The public incident dataset as a CSV download."""
    body = incidents_to_csv(queries.list_incidents(db))
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(date.today())}"'},
    )


# ---------------------------------------------------------------------------
# Public correction intake
# ---------------------------------------------------------------------------

def get_captcha_verifier(settings: AppSettings = Depends(get_settings)) -> TurnstileVerifier:
    """FastAPI dependency; tests override it with a stub verifier."""
    return TurnstileVerifier.from_settings(settings)


@app.post("/api/corrections", response_model=Envelope[dict])
async def submit_correction(
    request: Request,
    verifier: TurnstileVerifier = Depends(get_captcha_verifier),
    db: Session = Depends(get_db),
):
    """
    Anonymous correction submission. The CAPTCHA is checked before the body
    is even parsed; the row is always stored as pending.
    """
    token = request.headers.get("x-turnstile-token")
    remote_ip = request.client.host if request.client else None
    if not await verifier.verify(token, remote_ip=remote_ip):
        raise HTTPException(status_code=400, detail=CAPTCHA_FAILED)

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid JSON body")
    try:
        payload = CorrectionCreate.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    correction = Correction(**payload.model_dump(), status=PENDING)
    db.add(correction)
    commit(db)

    logger.info(f"Correction {correction.id} submitted ({correction.correction_type})")
    return ok({"id": correction.id})
