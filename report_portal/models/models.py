# models.py
from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, Enum
from sqlalchemy.sql import func
from ..database import Base
from .report import ReportStatus
from .user import AdminUser


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(String(32), unique=True, nullable=False, index=True)
    citizen_name = Column(String(100))
    email = Column(String(120))
    phone = Column(String(20))
    image_path = Column(String(255))
    location = Column(String(255), nullable=False)
    description = Column(Text)
    issue_type = Column(String(32), nullable=False)
    status = Column(
        Enum(ReportStatus, name="report_status", validate_strings=True),
        nullable=False,
        default=ReportStatus.NEW,
        server_default=ReportStatus.NEW.value,
    )
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Report {self.case_id} {self.status}>"
