"""Discord webhook action: post form submissions to a Discord channel"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from formrelay.exceptions import ActionExecutionError
from formrelay.models.forms import DiscordAction, FormMeta
from formrelay.services.template_engine import (
    TemplateContext,
    display_value,
    format_field_label,
    public_fields,
    resolve,
    stringify_value,
)
from formrelay.utils.http import error_suffix

logger = logging.getLogger(__name__)

DEFAULT_EMBED_COLOR = 0x5865F2  # Discord blurple
EMBED_FIELD_MAX_LENGTH = 1024
INLINE_FIELD_MAX_LENGTH = 50


def parse_embed_color(color: Optional[str]) -> int:
    """Hex color string ("#ff8800" or "ff8800") to the integer Discord expects"""
    if not color:
        return DEFAULT_EMBED_COLOR
    try:
        return int(color.strip().lstrip("#"), 16)
    except ValueError:
        logger.warning(f"Invalid Discord embed color {color!r}, using default")
        return DEFAULT_EMBED_COLOR


def truncate_value(value: str, max_length: int = EMBED_FIELD_MAX_LENGTH) -> str:
    """Truncate long values for Discord embed fields"""
    if len(value) <= max_length:
        return value
    return value[:max_length - 3] + "..."


def build_embed_fields(form_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    fields = []
    for key, value in public_fields(form_data).items():
        fields.append({
            "name": format_field_label(key),
            "value": truncate_value(display_value(value)),
            "inline": len(stringify_value(value)) < INLINE_FIELD_MAX_LENGTH,
        })
    return fields


def build_discord_payload(action: DiscordAction, form_data: Dict[str, Any], context: TemplateContext) -> Dict[str, Any]:
    message = resolve(action.message_template, context)

    payload: Dict[str, Any] = {}
    if action.username:
        payload["username"] = action.username
    if action.avatar_url:
        payload["avatar_url"] = action.avatar_url

    if action.use_embed:
        payload["embeds"] = [
            {
                "title": f"New {context.form_name} Submission",
                "description": message,
                "color": parse_embed_color(action.embed_color),
                "fields": build_embed_fields(form_data),
                "timestamp": context.timestamp,
                "footer": {
                    "text": "Form Submission",
                },
            }
        ]
    else:
        payload["content"] = message

    return payload


async def handle_discord_webhook(
    action: DiscordAction,
    form_data: Dict[str, Any],
    form: FormMeta,
    client: httpx.AsyncClient
) -> None:
    """
    Send form submission to Discord webhook

    Raises:
        ActionExecutionError: If Discord answers with a non-2xx status
    """
    context = TemplateContext.for_form(form_data, form)

    response = await client.post(
        action.webhook_url,
        headers={"Content-Type": "application/json"},
        json=build_discord_payload(action, form_data, context),
    )

    if not response.is_success:
        raise ActionExecutionError(
            f"Discord webhook failed: {response.status_code} {response.reason_phrase}" + error_suffix(response)
        )

    logger.info(f"Discord notification sent for form {form.id}")
