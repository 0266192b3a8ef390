"""JSON batch import endpoints: one POST per entity type, rows already parsed by the client."""
from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings
from app.core.deps import get_crew_client, get_entity_or_404
from app.schemas.imports import ImportRequest, ImportResponse
from app.services.crew_client import CrewClient
from app.services.import_pipeline import EntityImport, run_import

router = APIRouter()


@router.post(
    "/{entity}",
    response_model=ImportResponse,
    summary="Create one Crew record per row (employees, staff, equipment, jobs, tasks, customers)",
)
async def import_rows(
    entity: Annotated[EntityImport, Depends(get_entity_or_404)],
    client: Annotated[CrewClient, Depends(get_crew_client)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: ImportRequest | None = None,
):
    rows = body.rows if body else None
    return await run_import(entity, rows, client, settings)
