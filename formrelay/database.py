"""CMS connection and form/submission storage"""
import json
import logging
from typing import Any, Dict, Optional

import httpx

from formrelay.config import Settings, get_settings
from formrelay.exceptions import ConfigurationError, StorageError
from formrelay.models.forms import FormDefinition

logger = logging.getLogger(__name__)

# CMS document type -> action tag used by the pipeline
ACTION_TYPES = {
    "genericWebhookAction": "webhook",
    "discordWebhookAction": "discord",
    "emailNotificationAction": "email",
    "sanityStorageAction": "sanityStorage",
}

FORM_PROJECTION = """{
  _id,
  name,
  "identifier": identifier.current,
  description,
  fields[]{
    _key,
    name,
    label,
    type,
    required,
    placeholder,
    helpText,
    defaultValue,
    width,
    options[]{label, value},
    rows,
    accept,
    multiple,
    validation
  },
  actions[]{
    _type,
    _key,
    enabled,
    name,
    ...
  },
  settings
}"""

FORM_BY_ID_QUERY = '*[_type == "form" && _id == $formId][0]' + FORM_PROJECTION
FORM_BY_IDENTIFIER_QUERY = '*[_type == "form" && identifier.current == $identifier][0]' + FORM_PROJECTION
SUBSCRIBER_BY_EMAIL_QUERY = '*[_type == "subscriber" && email == $email][0]{_id, email, status}'


class SanityClient:
    """Minimal async client for the Sanity HTTP query and mutation API"""

    def __init__(
        self,
        project_id: str,
        dataset: str,
        api_version: str,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version
        self.token = token
        self._client = client

    @property
    def base_url(self) -> str:
        return f"https://{self.project_id}.api.sanity.io/v{self.api_version.lstrip('v')}/data"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not self.project_id:
            raise ConfigurationError("SANITY_PROJECT_ID is not configured")

        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        if self._client is not None:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.request(method, url, headers=headers, **kwargs)

        if not response.is_success:
            raise StorageError(f"Sanity API error: {response.status_code} - {response.text}")
        return response

    async def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a GROQ query and return its result"""
        query_params = {"query": query}
        for key, value in (params or {}).items():
            query_params[f"${key}"] = json.dumps(value)

        response = await self._request("GET", f"{self.base_url}/query/{self.dataset}", params=query_params)
        return response.json().get("result")

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Create a document and return it as stored"""
        response = await self._request(
            "POST",
            f"{self.base_url}/mutate/{self.dataset}",
            params={"returnIds": "true", "returnDocuments": "true"},
            json={"mutations": [{"create": document}]},
        )
        results = response.json().get("results") or []
        if not results:
            raise StorageError("Sanity API returned no mutation results")
        return results[0].get("document") or {"_id": results[0].get("id")}


def _strip_nulls(value: Any) -> Any:
    """GROQ projections return null for unset attributes; drop them so model defaults apply"""
    if isinstance(value, dict):
        return {k: _strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_strip_nulls(v) for v in value if v is not None]
    return value


def parse_form_document(document: Dict[str, Any]) -> FormDefinition:
    """Turn a CMS form document into a FormDefinition"""
    document = _strip_nulls(document)

    actions = []
    for raw_action in document.get("actions", []):
        action_type = ACTION_TYPES.get(raw_action.get("_type"))
        if action_type is None:
            logger.warning(f"Skipping unknown action type {raw_action.get('_type')!r} on form {document.get('_id')}")
            continue
        actions.append({**raw_action, "type": action_type})

    return FormDefinition.model_validate({
        "id": document["_id"],
        "name": document.get("name", "Form"),
        "identifier": document.get("identifier"),
        "description": document.get("description"),
        "fields": document.get("fields", []),
        "actions": actions,
        "settings": document.get("settings", {}),
    })


class FormRepository:
    """Form definitions and submission records kept in the CMS"""

    def __init__(self, read_client: SanityClient, write_client: SanityClient):
        self.read_client = read_client
        self.write_client = write_client

    async def get_form(self, form_id: str) -> Optional[FormDefinition]:
        document = await self.read_client.fetch(FORM_BY_ID_QUERY, {"formId": form_id})
        return parse_form_document(document) if document else None

    async def get_form_by_identifier(self, identifier: str) -> Optional[FormDefinition]:
        document = await self.read_client.fetch(FORM_BY_IDENTIFIER_QUERY, {"identifier": identifier})
        return parse_form_document(document) if document else None

    async def create_submission(self, document: Dict[str, Any]) -> str:
        """
        Store a formSubmission document

        Returns:
            The new document id

        Raises:
            ConfigurationError: No write token configured
            StorageError: The CMS rejected the mutation
        """
        if not self.can_write:
            raise ConfigurationError("SANITY_API_WRITE_TOKEN is not configured")
        created = await self.write_client.create(document)
        return created["_id"]

    @property
    def can_write(self) -> bool:
        return bool(self.write_client.token)

    async def find_subscriber(self, email: str) -> Optional[Dict[str, Any]]:
        """Subscriber document for an address, if any"""
        return await self.write_client.fetch(SUBSCRIBER_BY_EMAIL_QUERY, {"email": email})

    async def create_subscriber(self, document: Dict[str, Any]) -> str:
        if not self.can_write:
            raise ConfigurationError("SANITY_API_WRITE_TOKEN is not configured")
        created = await self.write_client.create(document)
        return created["_id"]


def get_form_repository(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None
) -> FormRepository:
    """
    Build a repository for the configured dataset

    Args:
        settings: Settings to use, defaults to the cached application settings
        client: Shared HTTP client; a short-lived one is opened per call if omitted

    Returns:
        FormRepository reading with the read token (or write token) and
        writing with the write token
    """
    settings = settings or get_settings()

    def sanity_client(token: Optional[str]) -> SanityClient:
        return SanityClient(
            settings.sanity_project_id,
            settings.sanity_dataset,
            settings.sanity_api_version,
            token=token,
            client=client,
        )

    return FormRepository(
        read_client=sanity_client(settings.sanity_api_read_token or settings.sanity_api_write_token),
        write_client=sanity_client(settings.sanity_api_write_token),
    )
