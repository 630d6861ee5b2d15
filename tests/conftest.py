"""
Test configuration and fixtures.

Provides:
- Settings with fake provider credentials (no .env, no environment lookups needed)
- An httpx AsyncClient backed by MockTransport that records outbound requests
- An in-memory form repository
"""
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from formrelay.config import Settings
from formrelay.models.forms import FormDefinition, FormMeta


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        sanity_project_id="abc123",
        sanity_dataset="production",
        sanity_api_write_token="write-token",
        resend_api_key="re_test",
        sendgrid_api_key="SG.test",
        mailgun_api_key="mg-test",
        mailgun_domain="mg.example.com",
        email_from="forms@example.com",
    )


@pytest.fixture
def form_meta() -> FormMeta:
    return FormMeta(id="form-1", name="Contact", user_agent="pytest-agent", referrer="https://example.com/contact")


# =============================================================================
# Outbound HTTP
# =============================================================================

def _without_query(url: httpx.URL) -> str:
    return str(url).split("?")[0]


class RecordingTransport:
    """Routes requests to per-URL responders and keeps every request it saw"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def route(self, url: str, responder: Callable[[httpx.Request], httpx.Response]):
        self.routes[url] = responder

    def reply(self, url: str, status_code: int = 200, **kwargs):
        self.routes[url] = lambda request: httpx.Response(status_code, **kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = _without_query(request.url)
        responder = self.routes.get(url)
        if responder is None:
            return httpx.Response(404, text=f"no route for {url}")
        return responder(request)

    def requests_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if _without_query(r.url) == url]

    def json_sent_to(self, url: str) -> Any:
        (request,) = self.requests_to(url)
        return json.loads(request.content)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest_asyncio.fixture
async def http_client(transport):
    async with httpx.AsyncClient(transport=httpx.MockTransport(transport)) as client:
        yield client


# =============================================================================
# Storage
# =============================================================================

class FakeFormRepository:
    """In-memory stand-in for the CMS"""

    def __init__(
        self,
        forms: Optional[List[FormDefinition]] = None,
        fail_with: Optional[Exception] = None,
        can_write: bool = True,
    ):
        self.forms = {form.id: form for form in forms or []}
        self.documents: List[Dict[str, Any]] = []
        self.fail_with = fail_with
        self.lookups: List[str] = []
        self.subscribers: List[Dict[str, Any]] = []
        self.can_write = can_write

    async def get_form(self, form_id: str) -> Optional[FormDefinition]:
        self.lookups.append(form_id)
        return self.forms.get(form_id)

    async def get_form_by_identifier(self, identifier: str) -> Optional[FormDefinition]:
        self.lookups.append(identifier)
        for form in self.forms.values():
            if form.identifier == identifier:
                return form
        return None

    async def create_submission(self, document: Dict[str, Any]) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.documents.append(document)
        return f"submission-{len(self.documents)}"

    async def find_subscriber(self, email: str) -> Optional[Dict[str, Any]]:
        for index, subscriber in enumerate(self.subscribers, start=1):
            if subscriber["email"] == email:
                return {"_id": f"subscriber-{index}", **subscriber}
        return None

    async def create_subscriber(self, document: Dict[str, Any]) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.subscribers.append(document)
        return f"subscriber-{len(self.subscribers)}"


@pytest.fixture
def make_repository():
    return FakeFormRepository
