"""Human-readable batch summary line with a "how to fix it" hint.

The hint table is ordinary data: pass a different ``rules`` list to
``get_fix_hint`` / ``build_summary_line`` to change or extend it.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from app.schemas.imports import ImportSummary

MAX_TOP_ERRORS = 3


@dataclass(frozen=True)
class HintRule:
    """First rule whose pattern matches any error text supplies the hint.

    The template may use {column} (first regex group), {required} and {company_id}.
    """
    name: str
    pattern: re.Pattern[str]
    template: str


DEFAULT_HINT_RULES: list[HintRule] = [
    HintRule(
        "missing_column",
        re.compile(r'CSV must include a column named "([^"]+)"', re.I),
        'Make sure your CSV header row contains a "{column}" column. Download a fresh template if needed.',
    ),
    HintRule(
        "required_field",
        re.compile(r"Missing required field", re.I),
        'Fill the "{required}" column for every row (no blanks).',
    ),
    HintRule(
        "password_length",
        re.compile(r"Password must be at least", re.I),
        "Give every staff row a password that meets the minimum length.",
    ),
    HintRule(
        "duplicate_in_upload",
        re.compile(r"Duplicate in upload", re.I),
        "Remove duplicate rows in your CSV before uploading.",
    ),
    HintRule(
        "duplicate_email",
        re.compile(r"Duplicate email", re.I),
        "Those emails already belong to existing users. Remove them or use different addresses.",
    ),
    HintRule(
        "null_company",
        re.compile(r"company.*null|must be of type App\\?Company, null given", re.I),
        "Set a company context. Recommended: set CREW_COMPANY_ID in your environment "
        "(e.g., {company_id}) or use a company-scoped API token.",
    ),
    HintRule(
        "validation",
        re.compile(r"HTTP 422|Unprocessable Entity", re.I),
        "One or more fields failed validation. Check cost codes/units formatting and required columns.",
    ),
    HintRule(
        "client_error",
        re.compile(r"HTTP 4\d\d", re.I),
        "Request was rejected by the server. Verify your CSV matches the template and your token has permission.",
    ),
    HintRule(
        "server_error",
        re.compile(r"HTTP 5\d\d|Request failed|Server error", re.I),
        "Server error. Try again in a moment; if it persists, contact support with the first error shown.",
    ),
]

FALLBACK_HINT = "Check the first few errors below, fix the CSV (headers + required fields), then re-upload."


def get_fix_hint(
    errors: Sequence[str],
    required_fields: Sequence[str] = (),
    company_id: int | None = None,
    rules: Iterable[HintRule] = DEFAULT_HINT_RULES,
) -> str:
    for rule in rules:
        for text in errors:
            match = rule.pattern.search(text)
            if match is None:
                continue
            column = match.group(1) if match.groups() else ""
            return rule.template.format(
                column=column,
                required=", ".join(required_fields) or "all required columns",
                company_id=company_id if company_id is not None else "your company id",
            )
    return FALLBACK_HINT


def _distinct(texts: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for text in texts:
        if text:
            seen.setdefault(text, None)
    return list(seen)


def build_summary_line(
    label: str,
    summary: ImportSummary,
    error_texts: Iterable[str],
    required_fields: Sequence[str] = (),
    rules: Iterable[HintRule] = DEFAULT_HINT_RULES,
) -> str:
    errors = _distinct(error_texts)
    skipped = summary.skipped_duplicates

    if summary.failed == 0 and summary.validation_errors == 0 and not errors:
        extra = f" ({skipped} duplicate{'s' if skipped > 1 else ''} skipped)" if skipped else ""
        return f"{label}: Success, created {summary.ok}{extra}."

    counts = f"created {summary.ok}, failed {summary.failed}"
    if summary.validation_errors:
        counts += f", validation {summary.validation_errors}"
    if skipped:
        counts += f", dupes skipped {skipped}"

    parts = [f"{label}: Imported with issues ({counts})"]
    if errors:
        parts.append("Top errors: " + " | ".join(errors[:MAX_TOP_ERRORS]))
    parts.append("Hint: " + get_fix_hint(errors, required_fields, summary.company_id_used, rules))
    return " — ".join(parts)
