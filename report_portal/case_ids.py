import re
import secrets
from datetime import datetime, timezone
from typing import Optional

CASE_ID_PREFIX = "REP"
SUFFIX_SPACE = 1_000_000
CASE_ID_PATTERN = re.compile(r"REP\d{4}\d{6}", re.ASCII)


def generate_case_id(now: Optional[datetime] = None) -> str:
    """
    Return a public tracking code like REP2025004217.

    The suffix is a uniform draw over one million values per year and is
    not checked against issued ids here; the insert path retries on a
    duplicate.
    """
    now = now or datetime.now(timezone.utc)
    suffix = secrets.randbelow(SUFFIX_SPACE)
    return f"{CASE_ID_PREFIX}{now.year:04d}{suffix:06d}"


def is_well_formed(case_id: Optional[str]) -> bool:
    return bool(case_id) and CASE_ID_PATTERN.fullmatch(case_id) is not None
