"""CSV file upload, upload status, template download and import catalog."""
import csv
import io
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from app.core.config import Settings, get_settings, settings as app_settings
from app.core.deps import get_crew_client, get_entity_or_404
from app.core.exceptions import BatchError
from app.core.limiter import limiter
from app.schemas.imports import EntityCatalogItem, ImportResponse, UploadStateOut
from app.services.crew_client import CrewClient
from app.services.csv_reader import parse_csv
from app.services.entities import ENTITIES, get_entity
from app.services.import_pipeline import EntityImport, run_import
from app.services.upload_state import upload_states

logger = logging.getLogger(__name__)

router = APIRouter()

TEMPLATE_URL = "/api/v1/import/templates/{key}"


# ─── Helpers ───

def _template_response(entity: EntityImport) -> StreamingResponse:
    """Header-only CSV built from the registry; nothing is read from disk."""
    output = io.StringIO()
    csv.writer(output, lineterminator="\r\n").writerow(entity.template_headers)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{entity.download_name}"'},
    )


def _row_errors(result: ImportResponse) -> list[dict[str, Any]]:
    return [o.model_dump() for o in result.results if not o.ok and getattr(o, "error", None)]


# ─── GET /import/entities ───

@router.get("/entities", response_model=list[EntityCatalogItem], summary="List importable entity types")
async def list_entities():
    return [
        EntityCatalogItem(
            key=e.key,
            label=e.label,
            description=list(e.description),
            template_url=TEMPLATE_URL.format(key=e.key),
            download_name=e.download_name,
            required_headers=e.required_headers,
            optional_headers=e.optional_headers,
        )
        for e in ENTITIES.values()
    ]


# ─── Templates ───

@router.get("/templates/{entity}", summary="Download the header-only CSV template for an entity")
async def download_template(entity: Annotated[EntityImport, Depends(get_entity_or_404)]):
    return _template_response(entity)


@router.get("/template", summary="Download a CSV template by ?entity=")
async def download_template_by_query(entity: Annotated[str | None, Query()] = None):
    found = get_entity(entity or "")
    if found is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown or missing ?entity")
    return _template_response(found)


# ─── POST /import/{entity}/upload ───

@router.post("/{entity}/upload", response_model=ImportResponse, summary="Upload a CSV file and import its rows")
@limiter.limit(app_settings.IMPORT_RATE_LIMIT)
async def upload_csv(
    request: Request,
    entity: Annotated[EntityImport, Depends(get_entity_or_404)],
    client: Annotated[CrewClient, Depends(get_crew_client)],
    settings: Annotated[Settings, Depends(get_settings)],
    file: UploadFile = File(...),
):
    if upload_states.is_uploading(entity.key):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A {entity.label} upload is already in progress.",
        )

    upload_states.begin(entity.key)
    summary_line = ""
    row_errors: list[dict[str, Any]] = []
    try:
        rows = parse_csv(await file.read())
        logger.info("Upload %s: %s (%d rows)", entity.key, file.filename, len(rows))
        result = await run_import(entity, rows, client, settings)
        summary_line = result.message
        row_errors = _row_errors(result)
        return result
    except BatchError as exc:
        summary_line = (
            f"{entity.label}: {exc.message}. Hint: ensure your CSV uses the exact template "
            "headers and that the server is reachable."
        )
        raise
    finally:
        upload_states.finish(entity.key, summary_line, row_errors)


# ─── GET /import/{entity}/status ───

@router.get("/{entity}/status", response_model=UploadStateOut, summary="Last upload status for an entity")
async def upload_status(entity: Annotated[EntityImport, Depends(get_entity_or_404)]):
    state = upload_states.get(entity.key)
    return UploadStateOut(
        entity=entity.key,
        uploading=state.uploading,
        summary=state.summary,
        errors=state.errors,
    )
