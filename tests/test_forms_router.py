import json

import httpx
import pytest
from fastapi.testclient import TestClient

from formrelay.config import get_settings
from formrelay.exceptions import ConfigurationError
from formrelay.main import app
from formrelay.models.forms import (
    FieldOption,
    FormDefinition,
    FormFieldDefinition,
    FormSettings,
    SanityStorageAction,
    WebhookAction,
)
from formrelay.routers.forms import get_http_client, get_repository

HOOK_URL = "https://hooks.example.com/forms"

CONTACT_FORM = FormDefinition(
    id="form-1",
    name="Contact",
    identifier="contact",
    fields=[
        FormFieldDefinition(name="name", label="Name", type="text", required=True),
        FormFieldDefinition(name="email", label="Email", type="email", required=True),
        FormFieldDefinition(
            name="topics",
            label="Topics",
            type="select",
            options=[FieldOption(label="Sales", value="sales"), FieldOption(label="Support", value="support")],
        ),
        FormFieldDefinition(name="channels", label="Contact me via", type="checkbox"),
    ],
    actions=[WebhookAction(url=HOOK_URL), SanityStorageAction()],
    settings=FormSettings(enable_spam_protection=True, success_message="Thanks!"),
)


@pytest.fixture
def repository(make_repository):
    return make_repository([CONTACT_FORM])


@pytest.fixture
def client(settings, transport, repository):
    transport.reply(HOOK_URL, 200)
    outbound = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = lambda: outbound
    app.dependency_overrides[get_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_json_submission(client, transport, repository):
    response = client.post(
        "/api/forms/submit",
        json={"_formId": "form-1", "name": "Ada", "email": "ada@x.com"},
        headers={"User-Agent": "Mozilla/5.0", "Referer": "https://example.com/contact"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["submissionId"] == "submission-1"
    assert [r["actionType"] for r in body["actionResults"]] == ["webhook", "sanityStorage"]
    assert "errors" not in body

    (document,) = repository.documents
    assert "_formId" not in document["data"]
    assert document["metadata"] == {"userAgent": "Mozilla/5.0", "referrer": "https://example.com/contact"}
    assert transport.json_sent_to(HOOK_URL)["data"] == {"name": "Ada", "email": "ada@x.com"}


def test_json_submission_by_identifier(client, repository):
    response = client.post("/api/forms/submit", json={"formIdentifier": "contact", "name": "Ada", "email": "ada@x.com"})

    assert response.status_code == 200
    assert repository.lookups == ["contact"]


def test_validation_errors_are_400(client, repository):
    response = client.post("/api/forms/submit", json={"formId": "form-1", "name": "", "email": "ada@x.com"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == [{"field": "name", "message": "Name is required"}]
    assert repository.documents == []


def test_unknown_form_is_400(client):
    response = client.post("/api/forms/submit", json={"formId": "nope", "name": "Ada"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Form configuration not found"}


def test_missing_form_id(client, repository):
    response = client.post("/api/forms/submit", json={"name": "Ada"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Missing form ID"}
    assert repository.lookups == []


def test_invalid_json(client):
    response = client.post(
        "/api/forms/submit", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request body"


def test_unsupported_content_type(client):
    response = client.post("/api/forms/submit", content=b"name=Ada", headers={"Content-Type": "text/plain"})

    assert response.status_code == 400
    assert response.json()["error"] == "Unsupported content type"


def test_form_encoded_submission(client, repository):
    response = client.post(
        "/api/forms/submit",
        data={
            "_formId": "form-1",
            "_next": "/thanks",
            "name": "Ada",
            "email": "ada@x.com",
            "topics": "sales",
            "channels": ["email", "phone"],
        },
    )

    assert response.status_code == 200
    (document,) = repository.documents
    assert document["data"] == {"name": "Ada", "email": "ada@x.com"}
    assert json.loads(document["rawData"]) == {
        "name": "Ada",
        "email": "ada@x.com",
        "topics": "sales",
        "channels": ["email", "phone"],
    }


def test_form_encoded_repeated_select_value_is_rejected(client, repository):
    response = client.post(
        "/api/forms/submit",
        data={"_formId": "form-1", "name": "Ada", "email": "ada@x.com", "topics": ["sales", "support"]},
    )

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "topics", "message": "Please select a valid option for Topics"}]
    assert repository.documents == []


def test_form_encoded_honeypot_is_blocked(client, transport, repository):
    response = client.post(
        "/api/forms/submit",
        data={"_formId": "form-1", "name": "Ada", "email": "ada@x.com", "_hp": "i am a bot"},
    )

    assert response.status_code == 200
    assert response.json()["submissionId"] == "blocked"
    assert repository.documents == []
    assert transport.requests == []


def test_redirect_on_success(client):
    response = client.post(
        "/api/forms/submit?redirect=/thanks",
        data={"_formId": "form-1", "name": "Ada", "email": "ada@x.com"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "http://testserver/thanks"


def test_error_redirect_carries_message(client):
    response = client.post(
        "/api/forms/submit?redirect=/thanks&errorRedirect=https://example.com/oops",
        data={"_formId": "nope", "name": "Ada"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    location = httpx.URL(response.headers["location"])
    assert location.host == "example.com"
    assert location.path == "/oops"
    assert location.params["error"] == "Form configuration not found"


def test_get_form_config_hides_actions(client):
    response = client.get("/api/forms/form-1")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "form-1"
    assert body["identifier"] == "contact"
    assert "actions" not in body
    assert [f["name"] for f in body["fields"]] == ["name", "email", "topics", "channels"]
    assert body["settings"]["enableSpamProtection"] is True
    assert body["settings"]["successMessage"] == "Thanks!"


def test_get_form_config_by_identifier(client):
    response = client.get("/api/forms/by-identifier/contact")

    assert response.status_code == 200
    assert response.json()["id"] == "form-1"


def test_get_form_config_not_found(client):
    assert client.get("/api/forms/nope").status_code == 404
    assert client.get("/api/forms/by-identifier/nope").status_code == 404


def test_unconfigured_storage_is_503(client, repository):
    async def unconfigured(form_id):
        raise ConfigurationError("SANITY_PROJECT_ID is not configured")

    repository.get_form = unconfigured

    response = client.get("/api/forms/form-1")

    assert response.status_code == 503
    assert response.json() == {"success": False, "error": "Service is not configured"}


def test_unexpected_error_is_500_without_details(client, repository):
    async def broken(form_id):
        raise RuntimeError("token abc123 rejected")

    repository.get_form = broken

    response = client.get("/api/forms/form-1")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}


def test_subscribe(client, repository):
    response = client.post("/api/forms/subscribe", json={"email": "ada@x.com", "source": "blog"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": "subscriber-1"}
    assert repository.subscribers[0]["source"] == "blog"


def test_subscribe_twice(client, repository):
    client.post("/api/forms/subscribe", json={"email": "ada@x.com"})

    response = client.post("/api/forms/subscribe", json={"email": "ada@x.com"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": "subscriber-1", "alreadySubscribed": True}
    assert len(repository.subscribers) == 1


def test_subscribe_invalid_email(client):
    response = client.post("/api/forms/subscribe", json={"email": "nope"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Please enter a valid email address"}
