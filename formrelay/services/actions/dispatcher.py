"""Run the enabled actions of a form for one submission"""
import asyncio
import logging
from typing import Any, Dict, List, Sequence, assert_never

import httpx

from formrelay.config import Settings
from formrelay.models.forms import (
    ActionResult,
    DiscordAction,
    EmailAction,
    FormAction,
    FormMeta,
    SanityStorageAction,
    WebhookAction,
)
from formrelay.services.actions.discord import handle_discord_webhook
from formrelay.services.actions.email import handle_email_notification
from formrelay.services.actions.webhook import handle_generic_webhook

logger = logging.getLogger(__name__)


async def execute_form_actions(
    actions: Sequence[FormAction],
    form_data: Dict[str, Any],
    form: FormMeta,
    settings: Settings,
    client: httpx.AsyncClient
) -> List[ActionResult]:
    """
    Execute all enabled form actions concurrently

    Storage actions are skipped here; the submission service handles them
    because the stored document carries these results.

    Every action runs to completion. A failing action shows up as a
    success=False result and never stops the others. Results follow the
    order of the enabled actions.
    """
    enabled_actions = [
        action for action in actions
        if action.enabled and not isinstance(action, SanityStorageAction)
    ]

    if not enabled_actions:
        return []

    return list(await asyncio.gather(*[
        _run_action(action, form_data, form, settings, client)
        for action in enabled_actions
    ]))


async def _run_action(
    action: FormAction,
    form_data: Dict[str, Any],
    form: FormMeta,
    settings: Settings,
    client: httpx.AsyncClient
) -> ActionResult:
    try:
        await execute_action(action, form_data, form, settings, client)
        return ActionResult(action_type=action.type, action_name=action.name, success=True)
    except Exception as e:
        error = str(e) or type(e).__name__
        logger.warning(f"Form {form.id}: {action.type} action '{action.name or action.type}' failed: {error}")
        return ActionResult(action_type=action.type, action_name=action.name, success=False, error=error)


async def execute_action(
    action: FormAction,
    form_data: Dict[str, Any],
    form: FormMeta,
    settings: Settings,
    client: httpx.AsyncClient
) -> None:
    """Execute a single action based on its type"""
    if isinstance(action, DiscordAction):
        await handle_discord_webhook(action, form_data, form, client)
    elif isinstance(action, WebhookAction):
        await handle_generic_webhook(action, form_data, form, client)
    elif isinstance(action, EmailAction):
        await handle_email_notification(action, form_data, form, client, settings)
    elif isinstance(action, SanityStorageAction):
        # Stored by the submission service together with the results
        pass
    else:
        assert_never(action)
