import logging
from contextlib import contextmanager
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from .errors import NotFoundError, ResourceExhausted, UniqueConstraintError
from .models.models import Report
from .models.report import ReportDraft, ReportStatus

logger = logging.getLogger(__name__)


def _is_case_id_violation(exc: IntegrityError) -> bool:
    # SQLite, PostgreSQL and MySQL all name the column or its index in the message
    return "case_id" in str(exc.orig).lower()


class ReportStore:
    """Persistence for Report rows over one request-scoped session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _unit(self):
        try:
            yield
        except PoolTimeoutError as exc:
            self.db.rollback()
            raise ResourceExhausted() from exc
        except Exception:
            self.db.rollback()
            raise

    def insert(self, draft: ReportDraft) -> Report:
        """
        Create a report. Status always starts at NEW and created_at is set
        by the database. A taken case_id raises UniqueConstraintError.
        """
        report = Report(**draft.model_dump(), status=ReportStatus.NEW)
        with self._unit():
            self.db.add(report)
            try:
                self.db.commit()
            except IntegrityError as exc:
                if _is_case_id_violation(exc):
                    self.db.rollback()
                    raise UniqueConstraintError() from exc
                raise
            self.db.refresh(report)
        return report

    def find_by_case_id(self, case_id: str) -> Optional[Report]:
        with self._unit():
            return self.db.query(Report).filter(Report.case_id == case_id).first()

    def find_by_id(self, report_id: int) -> Optional[Report]:
        with self._unit():
            return self.db.query(Report).filter(Report.id == report_id).first()

    def list_recent(self, limit: int = 100, offset: int = 0) -> List[Report]:
        """Newest first. A best-effort snapshot, not a consistent read."""
        with self._unit():
            return (
                self.db.query(Report)
                .order_by(Report.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )

    def count(self) -> int:
        with self._unit():
            return self.db.query(Report).count()

    def update_status(
        self,
        report_id: int,
        new_status: ReportStatus,
        check: Optional[Callable[[ReportStatus, ReportStatus], None]] = None,
    ) -> Report:
        """
        Set the status of one report under a row lock.

        `check(current, target)` may raise to veto the transition; the row
        is left untouched in that case.
        """
        with self._unit():
            report = (
                self.db.query(Report)
                .filter(Report.id == report_id)
                .with_for_update()
                .first()
            )
            if report is None:
                raise NotFoundError("Report not found")

            previous = report.status
            if check is not None:
                check(previous, new_status)

            report.status = new_status
            self.db.commit()
            self.db.refresh(report)

        logger.info("Report %s status %s -> %s", report.case_id, previous.value, new_status.value)
        return report
