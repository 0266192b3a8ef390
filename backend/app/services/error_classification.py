"""Classify per-row Crew failures into categories the summary can act on.

A structured error code from the upstream wins when present; message
patterns are only consulted after that, and the HTTP status class last.
"""
import enum
import re

from app.core.exceptions import UpstreamError


class UpstreamErrorCategory(str, enum.Enum):
    DUPLICATE_EMAIL = "duplicate_email"
    NULL_COMPANY = "null_company"
    VALIDATION = "validation"
    CLIENT = "client"
    SERVER = "server"
    TRANSPORT = "transport"


STRUCTURED_CODES: dict[str, UpstreamErrorCategory] = {
    "duplicate_email": UpstreamErrorCategory.DUPLICATE_EMAIL,
    "email_taken": UpstreamErrorCategory.DUPLICATE_EMAIL,
    "23000": UpstreamErrorCategory.DUPLICATE_EMAIL,  # SQLSTATE integrity violation
    "company_required": UpstreamErrorCategory.NULL_COMPANY,
    "missing_company": UpstreamErrorCategory.NULL_COMPANY,
    "validation_error": UpstreamErrorCategory.VALIDATION,
    "unprocessable_entity": UpstreamErrorCategory.VALIDATION,
}

TEXT_PATTERNS: list[tuple[re.Pattern[str], UpstreamErrorCategory]] = [
    (re.compile(r"duplicate entry .* for key '?users\.users_email_unique", re.I), UpstreamErrorCategory.DUPLICATE_EMAIL),
    (re.compile(r"duplicate entry", re.I), UpstreamErrorCategory.DUPLICATE_EMAIL),
    (re.compile(r"email has already been taken", re.I), UpstreamErrorCategory.DUPLICATE_EMAIL),
    (re.compile(r"App\\?Company, null given", re.I), UpstreamErrorCategory.NULL_COMPANY),
    (re.compile(r"company(_id)?\b.*\bnull", re.I), UpstreamErrorCategory.NULL_COMPANY),
]


def classify(error: UpstreamError) -> UpstreamErrorCategory:
    if error.code and error.code.lower() in STRUCTURED_CODES:
        return STRUCTURED_CODES[error.code.lower()]

    for pattern, category in TEXT_PATTERNS:
        if pattern.search(error.message):
            return category

    status = error.status_code
    if status is None:
        return UpstreamErrorCategory.TRANSPORT
    if status == 422:
        return UpstreamErrorCategory.VALIDATION
    if 400 <= status < 500:
        return UpstreamErrorCategory.CLIENT
    return UpstreamErrorCategory.SERVER


def describe(error: UpstreamError, category: UpstreamErrorCategory, line: int, email: str = "") -> str:
    """Row-level message for a classified failure."""
    if category is UpstreamErrorCategory.DUPLICATE_EMAIL and email:
        return f'Duplicate email: "{email}" already exists in the system. Skipped row {line}.'
    if category is UpstreamErrorCategory.NULL_COMPANY:
        return f"Row {line}: company context is null ({error.message})"
    if category is UpstreamErrorCategory.TRANSPORT:
        return f"Row {line}: Request failed: {error.message}"
    if error.status_code:
        return f"Row {line}: HTTP {error.status_code}: {error.message}"
    return f"Row {line}: {error.message}"
