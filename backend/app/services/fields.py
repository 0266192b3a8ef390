"""Cell extraction and coercion for uploaded rows.

Uploaded sheets drift from the templates ("Cell Phone" vs "Phone", "TASK_NAME"
vs "Task Name"), so header lookup ignores case and punctuation.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

_NON_ALNUM = re.compile(r"[^a-z0-9]")

YES_VALUES = frozenset({"yes", "y", "true", "1", "x", "on"})


def normalize_header(header: Any) -> str:
    return _NON_ALNUM.sub("", str(header or "").lower())


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def header_index(row: Mapping[str, Any]) -> dict[str, str]:
    """Map normalized header → original key. First occurrence wins."""
    index: dict[str, str] = {}
    for key in row.keys():
        index.setdefault(normalize_header(key), key)
    return index


def has_column(row: Mapping[str, Any], candidates: Iterable[str]) -> bool:
    index = header_index(row)
    return any(normalize_header(c) in index for c in candidates)


def extract_field(row: Mapping[str, Any], candidates: Iterable[str]) -> str:
    """Return the trimmed value of the first candidate header that is present and non-empty.

    Returns "" when no candidate matches.
    """
    index = header_index(row)
    for candidate in candidates:
        key = index.get(normalize_header(candidate))
        if key is None:
            continue
        value = cell_text(row[key])
        if value:
            return value
    return ""


# ─── Coercion ───

def parse_yes(value: Any) -> bool:
    return cell_text(value).lower() in YES_VALUES


def parse_level(value: Any) -> int:
    """Permission level: a number is floored at 0, anything else is yes → 1 / no → 0."""
    text = cell_text(value)
    if not text:
        return 0
    try:
        return max(0, int(Decimal(text)))
    except (InvalidOperation, ValueError, OverflowError):
        return 1 if parse_yes(text) else 0


def parse_int(value: Any, default: int | None = None) -> int | None:
    text = cell_text(value).replace(",", "")
    if not text:
        return default
    try:
        return int(Decimal(text))
    except (InvalidOperation, ValueError, OverflowError):
        return default


def parse_decimal(value: Any) -> Decimal | None:
    text = cell_text(value).replace(",", "")
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def normalize_phone(value: Any, country_code: str = "1") -> str | None:
    """Normalize to "+<country code><number>".

    "(555) 123-4567" → "+15551234567"; "+44 20 7946 0958" keeps its own code.
    """
    text = cell_text(value)
    digits = re.sub(r"\D", "", text)
    if not digits:
        return None
    if text.startswith("+"):
        return f"+{digits}"
    code = re.sub(r"\D", "", country_code) or "1"
    if len(digits) > 10 and digits.startswith(code):
        return f"+{digits}"
    return f"+{code}{digits}"
