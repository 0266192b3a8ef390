"""Pydantic schemas for CSV bulk imports into Crew."""
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


# ─── Request ───

class ImportRequest(BaseModel):
    """Rows as header → cell mappings, in file order."""
    rows: list[dict[str, Any]] | None = None


# ─── Per-row outcomes ───

class CreatedOutcome(BaseModel):
    status: Literal["created"] = "created"
    ok: bool = True
    line: int
    upstream_response: Any = None


class ValidationFailedOutcome(BaseModel):
    status: Literal["validation_failed"] = "validation_failed"
    ok: bool = False
    line: int
    missing_fields: list[str] = []
    error: str


class SkippedDuplicateOutcome(BaseModel):
    status: Literal["skipped_duplicate"] = "skipped_duplicate"
    ok: bool = False
    line: int
    reason: str


class UpstreamErrorOutcome(BaseModel):
    status: Literal["upstream_error"] = "upstream_error"
    ok: bool = False
    line: int
    status_code: int | None = None
    category: str
    error: str


RowOutcome = Annotated[
    Union[CreatedOutcome, ValidationFailedOutcome, SkippedDuplicateOutcome, UpstreamErrorOutcome],
    Field(discriminator="status"),
]


# ─── Batch summary ───

class ImportSummary(BaseModel):
    total: int = 0
    ok: int = 0
    failed: int = 0  # includes validation_errors
    validation_errors: int = 0
    skipped_duplicates: int = 0
    company_id_used: int | None = None


class ImportResponse(BaseModel):
    summary: ImportSummary
    results: list[RowOutcome]
    message: str = ""


# ─── Upload state & catalog ───

class UploadStateOut(BaseModel):
    entity: str
    uploading: bool
    summary: str
    errors: list[dict[str, Any]] = []


class EntityCatalogItem(BaseModel):
    key: str
    label: str
    description: list[str] = []
    template_url: str
    download_name: str
    required_headers: list[str]
    optional_headers: list[str]
