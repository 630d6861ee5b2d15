"""Form endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.datastructures import UploadFile
from typing import Any, Dict, Optional
import httpx
import logging

from formrelay.config import Settings, get_settings
from formrelay.database import FormRepository, get_form_repository
from formrelay.models.forms import (
    FormPublicConfig,
    FormSubmission,
    FormSubmissionResult,
    SubmissionMetadata,
    SubscribeRequest,
)
from formrelay.services.sanitization import HONEYPOT_FIELDS
from formrelay.services.submissions import submit_dynamic_form
from formrelay.services.subscribers import subscribe_to_newsletter

logger = logging.getLogger(__name__)
router = APIRouter()


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Outbound HTTP client opened in the app lifespan"""
    return request.app.state.http_client


def get_repository(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client)
) -> FormRepository:
    return get_form_repository(settings, client)


def _error_response(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _pop_first(payload: Dict[str, Any], *keys: str) -> Optional[str]:
    """Remove all given keys, return the first non-empty value"""
    found = None
    for key in keys:
        value = payload.pop(key, None)
        if found is None and value:
            found = str(value)
    return found


def _form_value(value: Any) -> Any:
    # Files are not stored; keep the name so it shows up in notifications
    if isinstance(value, UploadFile):
        return value.filename
    return value


async def read_submission_body(request: Request) -> Optional[Dict[str, Any]]:
    """
    Parse JSON or form-encoded submissions

    Returns:
        Dict with form_id, form_identifier and data, or None for an
        unsupported content type
    """
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        payload = await request.json()
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="JSON body must be an object")
        form_id = _pop_first(payload, "_formId", "formId")
        form_identifier = _pop_first(payload, "_formIdentifier", "formIdentifier")
        return {"form_id": form_id, "form_identifier": form_identifier, "data": payload}

    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        data: Dict[str, Any] = {}
        for key in form.keys():
            # Internal fields are dropped, honeypots are kept for the spam check
            if key.startswith("_") and key not in HONEYPOT_FIELDS:
                continue
            values = [_form_value(v) for v in form.getlist(key)]
            data[key] = values[0] if len(values) == 1 else values
        return {
            "form_id": form.get("_formId") or None,
            "form_identifier": form.get("_formIdentifier") or None,
            "data": data,
        }

    return None


@router.post("/submit")
async def submit_form(
    request: Request,
    redirect: Optional[str] = Query(None),
    error_redirect: Optional[str] = Query(None, alias="errorRedirect"),
    settings: Settings = Depends(get_settings),
    repository: FormRepository = Depends(get_repository),
    client: httpx.AsyncClient = Depends(get_http_client)
):
    """Handle form submission (PUBLIC endpoint, JSON or form-encoded)"""
    try:
        try:
            body = await read_submission_body(request)
        except ValueError:
            return _error_response("Invalid request body")

        if body is None:
            return _error_response("Unsupported content type")

        if not body["form_id"] and not body["form_identifier"]:
            return _error_response("Missing form ID")

        submission = FormSubmission(
            form_id=body["form_id"],
            form_identifier=body["form_identifier"],
            data=body["data"],
            metadata=SubmissionMetadata(
                user_agent=request.headers.get("user-agent"),
                referrer=request.headers.get("referer"),
            ),
        )

        result: FormSubmissionResult = await submit_dynamic_form(submission, repository, settings, client)

        # Redirects for plain HTML forms without JavaScript
        if redirect and result.success:
            return RedirectResponse(str(httpx.URL(str(request.url)).join(redirect)), status_code=303)

        if error_redirect and not result.success:
            error_url = httpx.URL(str(request.url)).join(error_redirect)
            if result.error:
                error_url = error_url.copy_merge_params({"error": result.error})
            return RedirectResponse(str(error_url), status_code=303)

        return JSONResponse(
            status_code=200 if result.success else 400,
            content=result.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Form submission API error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/subscribe")
async def subscribe(
    body: SubscribeRequest,
    repository: FormRepository = Depends(get_repository)
):
    """Newsletter signup (PUBLIC endpoint)"""
    result = await subscribe_to_newsletter(body, repository)
    return JSONResponse(
        status_code=200 if result.success else 400,
        content=result.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("/by-identifier/{identifier}", response_model=FormPublicConfig, response_model_exclude_none=True)
async def get_form_by_identifier(identifier: str, repository: FormRepository = Depends(get_repository)):
    """Form configuration for client-side rendering, looked up by slug (no actions)"""
    form = await repository.get_form_by_identifier(identifier)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    return form.public_config()


@router.get("/{form_id}", response_model=FormPublicConfig, response_model_exclude_none=True)
async def get_form_config(form_id: str, repository: FormRepository = Depends(get_repository)):
    """Form configuration for client-side rendering (no actions)"""
    form = await repository.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    return form.public_config()
