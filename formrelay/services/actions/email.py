"""
Email notification action

Sends form submissions via email using the provider configured on the
action (Resend, SendGrid or Mailgun).
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from formrelay.config import Settings
from formrelay.models.forms import EmailAction, FormMeta
from formrelay.services.actions.email_providers import EmailMessage, get_email_sender
from formrelay.services.template_engine import TemplateContext, build_html_email_body, resolve

logger = logging.getLogger(__name__)


def parse_email_list(emails: Optional[str]) -> List[str]:
    """Parse comma-separated email list"""
    if not emails:
        return []
    return [email.strip() for email in emails.split(",") if email.strip()]


def get_reply_to(action: EmailAction, form_data: Dict[str, Any]) -> Optional[str]:
    """Reply-to address read from the submitted field named on the action"""
    if not action.reply_to_field:
        return None
    value = form_data.get(action.reply_to_field)
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def build_email_message(
    action: EmailAction,
    form_data: Dict[str, Any],
    context: TemplateContext,
    sender: str
) -> EmailMessage:
    return EmailMessage(
        sender=sender,
        to=parse_email_list(action.to),
        cc=parse_email_list(action.cc) or None,
        bcc=parse_email_list(action.bcc) or None,
        reply_to=get_reply_to(action, form_data),
        subject=resolve(action.subject, context),
        html=build_html_email_body(action.body_template, context, action.include_all_fields),
    )


async def handle_email_notification(
    action: EmailAction,
    form_data: Dict[str, Any],
    form: FormMeta,
    client: httpx.AsyncClient,
    settings: Settings
) -> None:
    """
    Send email notification for form submission

    Raises:
        ConfigurationError: Provider credentials missing
        ActionExecutionError: Provider rejected the message
    """
    email_sender = get_email_sender(action.provider, settings)

    context = TemplateContext.for_form(form_data, form)
    message = build_email_message(action, form_data, context, settings.sender_address)

    await email_sender.send(message, client)
    logger.info(f"Form {form.id} notification emailed via {email_sender.key} to {message.to}")
