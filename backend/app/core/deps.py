from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, status

from app.core.config import CrewSettings, Settings, get_settings
from app.core.exceptions import ConfigError
from app.services.crew_client import CrewClient
from app.services.entities import get_entity
from app.services.import_pipeline import EntityImport


def get_crew_settings() -> CrewSettings:
    """Read upstream credentials from the environment on every request."""
    return CrewSettings()


async def get_entity_or_404(entity: str) -> EntityImport:
    found = get_entity(entity)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown import type '{entity}'.",
        )
    return found


async def get_crew_client(
    crew: Annotated[CrewSettings, Depends(get_crew_settings)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncIterator[CrewClient]:
    """Yield an authenticated Crew client; fail before any upstream call if unconfigured."""
    if not crew.is_configured:
        raise ConfigError("Missing NUXT_CREW_BASE_URL or NUXT_CREW_API_TOKEN")
    async with CrewClient(
        crew.NUXT_CREW_BASE_URL,
        crew.NUXT_CREW_API_TOKEN,
        timeout=settings.CREW_TIMEOUT_SECONDS,
    ) as client:
        yield client
