"""Utility functions for the HireIt backend."""

import re
import uuid
from datetime import datetime, timezone
from typing import Tuple

ASSESSMENT_ID_PATTERN = re.compile(r"^asmt_[0-9a-f]{12}$")
QUESTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def new_assessment_id() -> str:
    return f"asmt_{uuid.uuid4().hex[:12]}"


def new_submission_id() -> str:
    return f"sub_{uuid.uuid4().hex[:12]}"


def new_question_id() -> str:
    return f"q_{uuid.uuid4().hex[:8]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_assessment_id(value: str) -> bool:
    """Check the shape of an assessment id."""
    return bool(value) and bool(ASSESSMENT_ID_PATTERN.match(value))


def is_valid_question_id(value: str) -> bool:
    """Question ids end up as document keys, so no dots or dollar signs."""
    return bool(value) and bool(QUESTION_ID_PATTERN.match(value))


def normalize_pagination(page: int, limit: int, default_limit: int, max_limit: int) -> Tuple[int, int, int]:
    """
    Clamp pagination parameters.

    Returns (page, limit, skip). Out-of-range limits fall back to the
    default rather than being clipped.
    """
    if page < 1:
        page = 1
    if limit < 1 or limit > max_limit:
        limit = default_limit
    return page, limit, (page - 1) * limit
