"""Generic webhook action: send form submissions to any HTTP endpoint"""
import logging
from typing import Any, Dict

import httpx

from formrelay.exceptions import ActionExecutionError
from formrelay.models.forms import FormMeta, WebhookAction
from formrelay.services.template_engine import TemplateContext, build_json_payload, resolve
from formrelay.utils.http import error_suffix

logger = logging.getLogger(__name__)


def build_webhook_headers(action: WebhookAction, context: TemplateContext) -> Dict[str, str]:
    """JSON content type plus configured headers, values run through the template engine"""
    headers = {"Content-Type": "application/json"}
    for header in action.headers:
        if header.key and header.value:
            headers[header.key] = resolve(header.value, context)
    return headers


def build_webhook_body(action: WebhookAction, form_data: Dict[str, Any], context: TemplateContext) -> Any:
    if action.payload_template:
        return build_json_payload(action.payload_template, context)

    if action.include_all_fields:
        return {
            "event": "form_submission",
            "form": {
                "id": context.form_id,
                "name": context.form_name,
            },
            "data": form_data,
            "timestamp": context.timestamp,
        }

    return {
        "formId": context.form_id,
        "formName": context.form_name,
        "data": form_data,
    }


async def handle_generic_webhook(
    action: WebhookAction,
    form_data: Dict[str, Any],
    form: FormMeta,
    client: httpx.AsyncClient
) -> None:
    """
    Send form submission to a generic webhook endpoint

    Raises:
        ActionExecutionError: If the endpoint answers with a non-2xx status
    """
    context = TemplateContext.for_form(form_data, form)

    response = await client.request(
        action.method,
        action.url,
        headers=build_webhook_headers(action, context),
        json=build_webhook_body(action, form_data, context),
    )

    if not response.is_success:
        raise ActionExecutionError(
            f"Webhook failed: {response.status_code} {response.reason_phrase}" + error_suffix(response)
        )

    logger.info(f"Webhook delivered for form {form.id}: {action.method} {action.url} -> {response.status_code}")
