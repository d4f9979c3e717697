import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request, status, File, Form, UploadFile
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from sqlalchemy import text

from .config import (
    CASE_ID_MAX_ATTEMPTS,
    CORS_ORIGINS,
    MAX_REQUEST_BYTES,
    MAX_UPLOAD_BYTES,
    STRICT_STATUS_TRANSITIONS,
    UPLOAD_DIR,
)
from .database import engine, get_db, dispose_engine
from .errors import (
    InvalidStatusValue,
    InvalidTransitionError,
    NotFoundError,
    PayloadTooLarge,
    ReportPortalError,
    ResourceExhausted,
    ValidationError,
)
from .lifecycle import REQUIRED_FIELDS_MESSAGE, ReportLifecycleService
from .logging_config import configure_logging
from .media import MediaIntake
from .models import models
from .models.report import (
    ReportAdminView,
    ReportCreateResponse,
    ReportListResponse,
    ReportPublicView,
    ReportSummary,
    ReportSubmission,
    StatusUpdateRequest,
)
from .models.user import AdminLoginRequest, AdminLoginResponse, AdminUser
from .report_store import ReportStore
from .auth_utils import verify_password, create_access_token, decode_access_token

configure_logging()
logger = logging.getLogger(__name__)


# -------------------------------------------------------
# FastAPI App Setup
# -------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Before app startup
    models.Base.metadata.create_all(bind=engine)
    logger.info("Report portal started, uploads in %s", os.path.abspath(UPLOAD_DIR))
    yield
    # After app shutdown: drain the connection pool
    dispose_engine()
    logger.info("Connection pool disposed")

app = FastAPI(title="Civic Report Portal", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stored photos are served as /uploads/<generated-name>
os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")


SUBMIT_PATH = "/api/reports"
PAYLOAD_TOO_LARGE = 413

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidStatusValue: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    PayloadTooLarge: PAYLOAD_TOO_LARGE,
    ResourceExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@app.exception_handler(ReportPortalError)
async def handle_report_portal_error(request: Request, exc: ReportPortalError):
    """Admin-facing mapping. Unlisted errors become an opaque 500."""
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return JSONResponse(
                status_code=ERROR_STATUS_CODES[error_type],
                content={"detail": exc.message},
            )
    logger.error("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "failed"})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    """Malformed public submissions get the same opaque 400 as other bad input."""
    if request.method == "POST" and request.url.path == SUBMIT_PATH:
        logger.info("Rejected malformed submission: %s", exc.errors())
        return JSONResponse(status_code=400, content={"ok": False, "error": "invalid input"})
    return await request_validation_exception_handler(request, exc)


@app.middleware("http")
async def limit_submission_size(request: Request, call_next):
    """Turn away oversized submissions by Content-Length before the body is spooled."""
    if request.method == "POST" and request.url.path == SUBMIT_PATH:
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > MAX_REQUEST_BYTES:
            logger.info("Rejected submission of %s bytes", length)
            return JSONResponse(status_code=PAYLOAD_TOO_LARGE, content={"ok": False, "error": "file too large"})
    return await call_next(request)


# -------------------------------------------------------
# Dependencies
# -------------------------------------------------------
def get_media_intake() -> MediaIntake:
    return MediaIntake(UPLOAD_DIR, max_bytes=MAX_UPLOAD_BYTES)


def get_report_store(db: Session = Depends(get_db)) -> ReportStore:
    return ReportStore(db)


def get_lifecycle_service(
    store: ReportStore = Depends(get_report_store),
    media: MediaIntake = Depends(get_media_intake),
) -> ReportLifecycleService:
    return ReportLifecycleService(
        store,
        media,
        max_attempts=CASE_ID_MAX_ATTEMPTS,
        strict_transitions=STRICT_STATUS_TRANSITIONS,
    )


# -------------------------------------------------------
# Root Endpoint
# -------------------------------------------------------
@app.get("/")
def root():
    return {"message": "Civic Report Portal is running."}


# -------------------------------------------------------
#  Health Check Endpoints
# -------------------------------------------------------
@app.get("/health/live", tags=["Health"])
def liveness_check():
    """Liveness probe — confirms app process is alive."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe — verifies DB connectivity."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logger.exception("Readiness check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready",
        )


# -------------------------------------------------------
# PUBLIC: SUBMIT A REPORT
# -------------------------------------------------------
@app.post(SUBMIT_PATH, response_model=ReportCreateResponse, tags=["Reports"])
def submit_report(
    location: Optional[str] = Form(None),
    issue_type: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    citizen_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    service: ReportLifecycleService = Depends(get_lifecycle_service),
):
    """
    Accept a citizen report (multipart form, optional JPG/PNG `photo`)
    and return its tracking case id.
    """
    submission = ReportSubmission(
        location=location,
        issue_type=issue_type,
        description=description,
        citizen_name=citizen_name,
        email=email,
        phone=phone,
    )
    try:
        report = service.submit(
            submission,
            photo_name=photo.filename if photo else None,
            photo_stream=photo.file if photo else None,
        )
    except PayloadTooLarge:
        return JSONResponse(status_code=PAYLOAD_TOO_LARGE, content={"ok": False, "error": "file too large"})
    except ValidationError as e:
        if e.message == REQUIRED_FIELDS_MESSAGE:
            return JSONResponse(status_code=400, content={"error": REQUIRED_FIELDS_MESSAGE})
        return JSONResponse(status_code=400, content={"ok": False, "error": e.message})
    except ResourceExhausted:
        logger.warning("Submission rejected: connection pool exhausted")
        return JSONResponse(status_code=503, content={"ok": False, "error": "busy"})
    except ReportPortalError:
        # IdentifierExhausted / InternalError are already logged by the service
        return JSONResponse(status_code=500, content={"ok": False, "error": "failed"})

    return ReportCreateResponse(ok=True, case_id=report.case_id)


# -------------------------------------------------------
# PUBLIC: TRACK A REPORT
# -------------------------------------------------------
@app.get("/api/reports/{case_id}", response_model=ReportPublicView, tags=["Reports"])
def track_report(case_id: str, service: ReportLifecycleService = Depends(get_lifecycle_service)):
    """Status snapshot for a case id. Contact details are never exposed here."""
    try:
        report = service.track(case_id)
    except ResourceExhausted:
        return JSONResponse(status_code=503, content={"error": "busy"})
    except Exception:
        logger.exception("Tracking lookup failed for %s", case_id)
        return JSONResponse(status_code=500, content={"error": "failed"})

    if report is None:
        return JSONResponse(status_code=404, content={"error": "not found"})
    return ReportPublicView.model_validate(report)


# -------------------------------------------------------
# ADMIN AUTHENTICATION
# -------------------------------------------------------
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login")

def get_current_admin(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> AdminUser:
    """Decode the bearer token and fetch the admin it belongs to."""
    admin_id = decode_access_token(token)
    if admin_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )
    return admin


@app.post("/api/admin/login", response_model=AdminLoginResponse, tags=["Admin"])
def login_admin(payload: AdminLoginRequest, db: Session = Depends(get_db)):
    """Authenticate staff and issue a bearer token."""
    admin = db.query(AdminUser).filter(AdminUser.username == payload.username).first()
    if not admin or not verify_password(payload.password, admin.password_hash):
        logger.info("Failed admin login for %r", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    token = create_access_token(admin.id, admin.username, admin.role)
    return AdminLoginResponse(
        admin_id=admin.id,
        username=admin.username,
        role=admin.role,
        token=token,
    )


# -------------------------------------------------------
# ADMIN: TRIAGE
# -------------------------------------------------------
@app.get("/api/admin/reports", response_model=ReportListResponse, tags=["Admin"])
def list_reports(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ReportLifecycleService = Depends(get_lifecycle_service),
    _admin: AdminUser = Depends(get_current_admin),
):
    """Most recent reports first."""
    reports = service.list_recent(limit=limit, offset=offset)
    return ReportListResponse(
        reports=[ReportSummary.model_validate(r) for r in reports],
        total=service.count(),
    )


@app.get("/api/admin/reports/{report_id}", response_model=ReportAdminView, tags=["Admin"])
def get_report(
    report_id: int,
    service: ReportLifecycleService = Depends(get_lifecycle_service),
    _admin: AdminUser = Depends(get_current_admin),
):
    return service.get_report(report_id)


@app.post("/api/admin/reports/{report_id}/status", response_model=ReportAdminView, tags=["Admin"])
def update_report_status(
    report_id: int,
    body: StatusUpdateRequest,
    service: ReportLifecycleService = Depends(get_lifecycle_service),
    admin: AdminUser = Depends(get_current_admin),
):
    """Move a report to another status. Raises 400 for values outside the workflow."""
    report = service.change_status(report_id, body.status)
    logger.info("Admin %s set %s to %s", admin.username, report.case_id, report.status.value)
    return report
