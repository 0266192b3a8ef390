"""Shared fakes: an in-process Crew API behind httpx.MockTransport."""
import json
from typing import Any, Callable

import httpx
import pytest

from app.core.config import Settings
from app.services.crew_client import CrewClient
from app.services.upload_state import upload_states

CREW_BASE_URL = "https://crew.test"
CREW_TOKEN = "test-token"

PostRule = Callable[[str, dict[str, Any]], httpx.Response | None]


class FakeCrew:
    """Records every request; POSTs succeed unless a rule returns a response."""

    def __init__(self, company_id: int | None = 855, users: list[dict] | None = None):
        self.company_id = company_id
        self.users = users
        self.requests: list[httpx.Request] = []
        self.post_rules: list[PostRule] = []
        self.listings: dict[str, list[dict]] = {}
        self._next_id = 1000

    # ─── inspection ───

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def posted(self, path: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls("POST", path)]

    # ─── transport ───

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET":
            if path == "/api/users":
                users = self.users
                if users is None:
                    users = [{"id": 1, "name": "Owner", "company_id": self.company_id}]
                return httpx.Response(200, json={"data": users})
            if path in self.listings:
                return httpx.Response(200, json={"data": self.listings[path]})
            return httpx.Response(404, json={"message": "Not Found"})

        body = json.loads(request.content) if request.content else {}
        for rule in self.post_rules:
            response = rule(path, body)
            if response is not None:
                return response
        self._next_id += 1
        return httpx.Response(201, json={"data": {"id": self._next_id, **body}})

    def client(self) -> CrewClient:
        return CrewClient(CREW_BASE_URL, CREW_TOKEN, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_crew() -> FakeCrew:
    return FakeCrew()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        CREW_COMPANY_ID=None,
        CREW_DEFAULT_JOB_ID=45151,
        CREW_DEFAULT_CUSTOMER_COMPANY_ID=None,
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
def crew_env(monkeypatch):
    monkeypatch.setenv("NUXT_CREW_BASE_URL", CREW_BASE_URL)
    monkeypatch.setenv("NUXT_CREW_API_TOKEN", CREW_TOKEN)


@pytest.fixture(autouse=True)
def _reset_upload_states():
    upload_states.clear()
    yield
    upload_states.clear()
