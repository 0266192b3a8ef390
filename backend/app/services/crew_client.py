"""Async client for the Crew operations API.

All calls are bearer-authenticated and made one at a time. Every failure,
whether an HTTP error status or a transport problem, surfaces as
``UpstreamError`` so callers only handle one shape.
"""
import logging
from typing import Any

import httpx

from app.core.exceptions import ResolutionError, UpstreamError

logger = logging.getLogger(__name__)

USERS_PATH = "/api/users"
COMPANY_ENDPOINTS = ("/api/customer-companies", "/api/companies")


def _records(payload: Any) -> list[Any]:
    """Listing endpoints answer either {"data": [...]} or a bare list."""
    if isinstance(payload, dict):
        data = payload.get("data")
        return data if isinstance(data, list) else []
    if isinstance(payload, list):
        return payload
    return []


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _created_id(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        return data["id"]
    return payload.get("id")


def _error_message(response: httpx.Response, data: Any) -> str:
    if isinstance(data, str) and data.strip():
        return data.strip()
    if isinstance(data, dict):
        message = str(data.get("message") or data.get("error") or "").strip()
        # Laravel puts per-field messages under "errors"
        errors = data.get("errors")
        if isinstance(errors, dict) and errors:
            field, details = next(iter(errors.items()))
            detail = details[0] if isinstance(details, list) and details else details
            extra = f"{field}: {detail}"
            message = f"{message} ({extra})" if message else extra
        if message:
            return message
    return response.reason_phrase or "Request failed"


def _error_code(data: Any) -> str | None:
    if isinstance(data, dict):
        code = data.get("code") or data.get("error_code")
        if code is not None:
            return str(code)
    return None


class CrewClient:
    """Thin wrapper around ``httpx.AsyncClient``. Use as an async context manager."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CrewClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make one call and return the decoded JSON body (None if empty).

        Raises:
            UpstreamError: on a non-2xx status or a transport failure.
        """
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            message = str(exc) or "Request failed"
            logger.warning("Crew %s %s transport error: %s", method, path, message)
            raise UpstreamError(message) from exc

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                return response.text

        try:
            data: Any = response.json()
        except ValueError:
            data = response.text
        message = _error_message(response, data)
        logger.warning("Crew %s %s → %s: %s", method, path, response.status_code, message)
        raise UpstreamError(
            message,
            status_code=response.status_code,
            code=_error_code(data),
            data=data,
        )

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request(path, "GET", params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request(path, "POST", json=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request(path, "PUT", json=body)

    async def delete(self, path: str) -> Any:
        return await self.request(path, "DELETE")

    # ─── Tenant helpers ───

    async def resolve_company_id(self) -> int:
        """Tenant company id, read off the first record of the user listing.

        Assumes the first listed user belongs to the token owner's company.
        """
        try:
            payload = await self.get(USERS_PATH)
        except UpstreamError as exc:
            raise ResolutionError(f"Unable to resolve company_id from {USERS_PATH}: {exc}") from exc

        records = _records(payload)
        first = records[0] if records else None
        company_id = first.get("company_id") if isinstance(first, dict) else None
        if company_id is None:
            raise ResolutionError(f"Unable to resolve company_id from {USERS_PATH}")
        try:
            return int(company_id)
        except (TypeError, ValueError) as exc:
            raise ResolutionError(f"Non-numeric company_id {company_id!r} from {USERS_PATH}") from exc

    async def find_or_create_company_by_name(self, name: str, owner_company_id: int) -> int | None:
        """Look a customer company up by name, creating it if needed.

        Tries each company endpoint in turn; returns None when none of them
        could list or create it.
        """
        wanted = name.strip().lower()
        for endpoint in COMPANY_ENDPOINTS:
            try:
                listing = await self.get(endpoint)
                for company in _records(listing):
                    if not isinstance(company, dict):
                        continue
                    if str(company.get("name") or "").strip().lower() != wanted:
                        continue
                    company_id = _as_int(company.get("id"))
                    if company_id is not None:
                        return company_id
                    logger.warning("Company %r via %s has non-numeric id %r", name, endpoint, company.get("id"))
            except UpstreamError as exc:
                logger.warning("Company lookup via %s failed: %s", endpoint, exc)

            try:
                created = await self.post(endpoint, {"name": name.strip(), "company_id": owner_company_id})
                created_id = _as_int(_created_id(created))
                if created_id is not None:
                    logger.info("Created customer company %r via %s (id=%s)", name, endpoint, created_id)
                    return created_id
                logger.warning("Company create via %s returned no numeric id", endpoint)
            except UpstreamError as exc:
                logger.warning("Company create via %s failed: %s", endpoint, exc)

        return None
