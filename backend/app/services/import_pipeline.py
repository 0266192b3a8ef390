"""Row import pipeline shared by every entity type.

Each row goes through the same steps, one row at a time:

1. extract fields (tolerant header matching)
2. required-field validation, then entity-specific checks
3. in-batch de-duplication
4. payload build
5. POST to the entity's Crew endpoint

A row's failure is recorded on that row and the batch continues. Only
ConfigError, InputError and ResolutionError stop a batch, and they are raised
before any row is posted.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from app.core.config import Settings
from app.core.exceptions import InputError, UpstreamError
from app.schemas.imports import (
    CreatedOutcome,
    ImportResponse,
    ImportSummary,
    RowOutcome,
    SkippedDuplicateOutcome,
    UpstreamErrorOutcome,
    ValidationFailedOutcome,
)
from app.services.crew_client import CrewClient
from app.services.dedup import SeenKeys, dedup_key
from app.services.error_classification import classify, describe
from app.services.fields import extract_field, parse_int
from app.services.summary import build_summary_line
from app.services.validation import FieldSpec, missing_fields_message, validate_row

logger = logging.getLogger(__name__)

# Line 1 of an upload is the header row.
FIRST_DATA_LINE = 2

COMPANY_OVERRIDE_HEADERS = ("Company ID", "company_id", "Crew Company ID")


@dataclass
class ImportContext:
    """State that lives exactly as long as one import request."""
    client: CrewClient
    settings: Settings
    company_id: int | None = None
    seen: SeenKeys = field(default_factory=SeenKeys)
    customer_companies: dict[str, int | None] = field(default_factory=dict)


@dataclass
class RowContext:
    line: int
    company_id: int | None
    batch: ImportContext

    @property
    def settings(self) -> Settings:
        return self.batch.settings


PayloadBuilder = Callable[[dict[str, str], RowContext], Awaitable[dict[str, Any]]]
RowCheck = Callable[[dict[str, str], Settings], str | None]


@dataclass(frozen=True)
class EntityImport:
    """Everything that differs between entity types."""
    key: str
    label: str
    endpoint: str
    fields: tuple[FieldSpec, ...]
    dedup_fields: tuple[str, ...]
    build_payload: PayloadBuilder
    checks: tuple[RowCheck, ...] = ()
    dedup_with_company: bool = False
    needs_company: bool = True
    download_name: str = ""
    description: tuple[str, ...] = ()

    @property
    def required_headers(self) -> list[str]:
        return [f.header for f in self.fields if f.required]

    @property
    def optional_headers(self) -> list[str]:
        return [f.header for f in self.fields if not f.required]

    @property
    def template_headers(self) -> list[str]:
        return self.required_headers + self.optional_headers

    def extract(self, row: Mapping[str, Any]) -> dict[str, str]:
        return {f.name: extract_field(row, f.candidates) for f in self.fields}

    def dedup_key(self, values: dict[str, str], company_id: int | None) -> str:
        parts: list[Any] = [values.get(name, "") for name in self.dedup_fields]
        if self.dedup_with_company:
            parts.append(values.get("company") or company_id)
        return dedup_key(*parts)


def _row_company_id(row: Mapping[str, Any], ctx: ImportContext) -> int | None:
    override = parse_int(extract_field(row, COMPANY_OVERRIDE_HEADERS))
    return override if override is not None else ctx.company_id


async def post_row(entity: EntityImport, row: Mapping[str, Any], line: int, ctx: ImportContext) -> RowOutcome:
    values = entity.extract(row)

    result = validate_row(row, entity.fields)
    if not result.ok:
        return ValidationFailedOutcome(
            line=line,
            missing_fields=result.missing,
            error=missing_fields_message(result, line),
        )
    for check in entity.checks:
        problem = check(values, ctx.settings)
        if problem:
            return ValidationFailedOutcome(line=line, error=f"{problem} on line {line}")

    company_id = _row_company_id(row, ctx)

    key = entity.dedup_key(values, company_id)
    if ctx.seen.is_duplicate(key):
        return SkippedDuplicateOutcome(
            line=line,
            reason=f"Duplicate in upload (same as line {ctx.seen.first_line(key)})",
        )
    ctx.seen.mark_seen(key, line)

    payload = await entity.build_payload(values, RowContext(line=line, company_id=company_id, batch=ctx))
    try:
        response = await ctx.client.post(entity.endpoint, payload)
    except UpstreamError as exc:
        category = classify(exc)
        return UpstreamErrorOutcome(
            line=line,
            status_code=exc.status_code,
            category=category.value,
            error=describe(exc, category, line, email=values.get("email", "")),
        )
    return CreatedOutcome(line=line, upstream_response=response)


def _tally(summary: ImportSummary, outcome: RowOutcome) -> None:
    summary.total += 1
    if isinstance(outcome, CreatedOutcome):
        summary.ok += 1
    elif isinstance(outcome, SkippedDuplicateOutcome):
        summary.skipped_duplicates += 1
    elif isinstance(outcome, ValidationFailedOutcome):
        summary.failed += 1
        summary.validation_errors += 1
    else:
        summary.failed += 1


async def run_import(
    entity: EntityImport,
    rows: list[dict[str, Any]] | None,
    client: CrewClient,
    settings: Settings,
) -> ImportResponse:
    """Import one batch of rows for an entity type.

    Raises:
        InputError: no rows, or more than MAX_IMPORT_ROWS.
        ResolutionError: the company id could not be resolved.
    """
    if not rows:
        raise InputError("rows[] required")
    if len(rows) > settings.MAX_IMPORT_ROWS:
        raise InputError(f"Too many rows: {len(rows)} (limit {settings.MAX_IMPORT_ROWS})")

    ctx = ImportContext(client=client, settings=settings)
    if entity.needs_company:
        if settings.CREW_COMPANY_ID is not None:
            ctx.company_id = settings.CREW_COMPANY_ID
        else:
            ctx.company_id = await client.resolve_company_id()

    logger.info("Importing %d %s row(s), company_id=%s", len(rows), entity.key, ctx.company_id)

    summary = ImportSummary(company_id_used=ctx.company_id)
    results: list[RowOutcome] = []
    for index, row in enumerate(rows):
        line = index + FIRST_DATA_LINE
        outcome = await post_row(entity, row or {}, line, ctx)
        if not outcome.ok:
            logger.warning(
                "%s line %d: %s",
                entity.key, line, getattr(outcome, "error", None) or getattr(outcome, "reason", ""),
            )
        _tally(summary, outcome)
        results.append(outcome)

    error_texts = [o.error for o in results if isinstance(o, (ValidationFailedOutcome, UpstreamErrorOutcome))]
    message = build_summary_line(entity.label, summary, error_texts, entity.required_headers)

    logger.info(
        "Imported %s: total=%d ok=%d failed=%d validation=%d skipped=%d",
        entity.key, summary.total, summary.ok, summary.failed,
        summary.validation_errors, summary.skipped_duplicates,
    )
    return ImportResponse(summary=summary, results=results, message=message)
