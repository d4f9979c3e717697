from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


# -------- Enums --------
class ReportStatus(str, Enum):
    """Triage states, in workflow order."""

    NEW = "NEW"
    UNDER_REVIEW = "UNDER_REVIEW"
    VERIFIED = "VERIFIED"
    ACTION_TAKEN = "ACTION_TAKEN"
    CLOSED = "CLOSED"

    @property
    def rank(self) -> int:
        return list(ReportStatus).index(self)


# Column widths of the reports table; submissions longer than these are rejected.
FIELD_LIMITS = {
    "citizen_name": 100,
    "email": 120,
    "phone": 20,
    "location": 255,
    "issue_type": 32,
}


# -------- Requests --------
class ReportSubmission(BaseModel):
    """Text fields of a multipart report submission, as received."""

    location: Optional[str] = None
    issue_type: Optional[str] = None
    description: Optional[str] = None
    citizen_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ReportDraft(BaseModel):
    """A validated submission with its case id, ready to insert."""

    case_id: str
    location: str
    issue_type: str
    description: Optional[str] = None
    citizen_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    image_path: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    # Left untyped so every value, including a missing one, reaches the lifecycle guard
    status: Any = None


# -------- Responses --------
class ReportCreateResponse(BaseModel):
    ok: bool = True
    case_id: str


class ReportPublicView(BaseModel):
    """The only projection exposed to unauthenticated callers."""

    case_id: str
    status: ReportStatus
    issue_type: str
    location: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportSummary(BaseModel):
    id: int
    case_id: str
    issue_type: str
    status: ReportStatus
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportAdminView(ReportSummary):
    citizen_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    image_path: Optional[str] = None
    location: str
    description: Optional[str] = None
    updated_at: Optional[datetime] = None


class ReportListResponse(BaseModel):
    reports: List[ReportSummary]
    total: int
