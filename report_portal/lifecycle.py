import logging
from typing import Any, BinaryIO, Callable, List, Optional

from .case_ids import generate_case_id, is_well_formed
from .errors import (
    IdentifierExhausted,
    InternalError,
    InvalidStatusValue,
    InvalidTransitionError,
    NotFoundError,
    ReportPortalError,
    UniqueConstraintError,
    ValidationError,
)
from .media import MediaIntake
from .models.models import Report
from .models.report import FIELD_LIMITS, ReportDraft, ReportStatus, ReportSubmission
from .report_store import ReportStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "location and issue_type required"


def check_transition(current: ReportStatus, target: ReportStatus, strict: bool = False):
    """
    Decide whether a report may move from `current` to `target`.

    Any move is allowed by default. In strict mode a report can only stay
    put or move forward through the workflow.
    """
    if strict and target.rank < current.rank:
        raise InvalidTransitionError(
            f"Cannot move report from {current.value} back to {target.value}"
        )


def parse_status(raw: Any) -> ReportStatus:
    if not isinstance(raw, str):
        raise InvalidStatusValue()
    try:
        return ReportStatus(raw)
    except ValueError:
        raise InvalidStatusValue() from None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ReportLifecycleService:
    """
    Turns citizen submissions into tracked reports and applies
    administrative status changes.
    """

    def __init__(
        self,
        store: ReportStore,
        media: MediaIntake,
        id_generator: Callable[[], str] = generate_case_id,
        max_attempts: int = 5,
        strict_transitions: bool = False,
    ):
        self.store = store
        self.media = media
        self.id_generator = id_generator
        self.max_attempts = max_attempts
        self.strict_transitions = strict_transitions

    # -------------------------------------------------------
    # Submission
    # -------------------------------------------------------
    def _validate(self, submission: ReportSubmission) -> dict:
        fields = {name: _clean(value) for name, value in submission.model_dump().items()}
        if not fields["location"] or not fields["issue_type"]:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        for name, limit in FIELD_LIMITS.items():
            if fields[name] is not None and len(fields[name]) > limit:
                raise ValidationError(f"{name} must be at most {limit} characters")
        return fields

    def _insert_with_retry(self, fields: dict, image_path: Optional[str]) -> Report:
        for attempt in range(1, self.max_attempts + 1):
            draft = ReportDraft(case_id=self.id_generator(), image_path=image_path, **fields)
            try:
                return self.store.insert(draft)
            except UniqueConstraintError:
                logger.warning(
                    "Case id %s already taken (attempt %d/%d)",
                    draft.case_id, attempt, self.max_attempts,
                )
        logger.error("Gave up allocating a case id after %d attempts", self.max_attempts)
        raise IdentifierExhausted()

    def submit(
        self,
        submission: ReportSubmission,
        photo_name: Optional[str] = None,
        photo_stream: Optional[BinaryIO] = None,
    ) -> Report:
        """
        Validate, store the photo, allocate a case id and insert the report.

        Required fields are checked before anything touches disk or the
        database. If the report cannot be created after the photo was
        stored, the photo is deleted again.
        """
        fields = self._validate(submission)

        image_path = None
        try:
            image_path = self.media.store(photo_name, photo_stream)
            report = self._insert_with_retry(fields, image_path)
        except ReportPortalError:
            self.media.discard(image_path)
            raise
        except Exception as exc:
            self.media.discard(image_path)
            logger.exception("Unexpected failure while creating report")
            raise InternalError() from exc

        logger.info("Created report %s (issue_type=%s)", report.case_id, report.issue_type)
        return report

    # -------------------------------------------------------
    # Lookups
    # -------------------------------------------------------
    def track(self, case_id: str) -> Optional[Report]:
        """Public lookup. Unknown and malformed ids both yield None."""
        if not is_well_formed(case_id):
            return None
        return self.store.find_by_case_id(case_id)

    def get_report(self, report_id: int) -> Report:
        report = self.store.find_by_id(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    def list_recent(self, limit: int = 100, offset: int = 0) -> List[Report]:
        return self.store.list_recent(limit=limit, offset=offset)

    def count(self) -> int:
        return self.store.count()

    # -------------------------------------------------------
    # Status changes
    # -------------------------------------------------------
    def _check(self, current: ReportStatus, target: ReportStatus):
        check_transition(current, target, strict=self.strict_transitions)

    def change_status(self, report_id: int, raw_status: Any) -> Report:
        target = parse_status(raw_status)
        return self.store.update_status(report_id, target, check=self._check)
