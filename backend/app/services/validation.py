"""Required-field checks for uploaded rows."""
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from app.services.fields import extract_field, has_column


@dataclass(frozen=True)
class FieldSpec:
    """One template column: canonical header, accepted aliases, and the payload-side name."""
    name: str
    header: str
    aliases: tuple[str, ...] = ()
    required: bool = False

    @property
    def candidates(self) -> tuple[str, ...]:
        return (self.header, *self.aliases)


@dataclass
class ValidationResult:
    missing: list[str] = field(default_factory=list)
    absent_columns: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing


def find_missing(row: Mapping[str, Any], fields: Sequence[FieldSpec]) -> list[str]:
    """Headers of required fields that are absent or blank in this row."""
    return [f.header for f in fields if f.required and not extract_field(row, f.candidates)]


def absent_columns(row: Mapping[str, Any], fields: Sequence[FieldSpec]) -> list[str]:
    """Required headers with no matching column at all (not merely blank)."""
    return [f.header for f in fields if f.required and not has_column(row, f.candidates)]


def validate_row(row: Mapping[str, Any], fields: Sequence[FieldSpec]) -> ValidationResult:
    missing = find_missing(row, fields)
    if not missing:
        return ValidationResult()
    return ValidationResult(
        missing=missing,
        absent_columns=[h for h in absent_columns(row, fields) if h in missing],
    )


def missing_fields_message(result: ValidationResult, line: int) -> str:
    msg = f"Missing required field(s): {', '.join(result.missing)} on line {line}"
    if result.absent_columns:
        msg += f' (CSV must include a column named "{result.absent_columns[0]}")'
    return msg
