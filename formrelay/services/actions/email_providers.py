"""
Email provider adapters

One sender class per provider; each knows its credentials and wire format.
Use get_email_sender() to build the one configured on an email action.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Type

import httpx

from formrelay.config import Settings
from formrelay.exceptions import ActionExecutionError, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    sender: str
    to: List[str]
    subject: str
    html: str
    cc: Optional[List[str]] = None
    bcc: Optional[List[str]] = None
    reply_to: Optional[str] = None


class EmailSender:
    """Base class for provider adapters"""

    key: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailSender":
        raise NotImplementedError

    async def send(self, message: EmailMessage, client: httpx.AsyncClient) -> None:
        raise NotImplementedError


class ResendSender(EmailSender):
    key = "resend"
    api_url = "https://api.resend.com/emails"

    def __init__(self, api_key: str):
        self.api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendSender":
        if not settings.resend_api_key:
            raise ConfigurationError("RESEND_API_KEY environment variable is not set")
        return cls(settings.resend_api_key)

    async def send(self, message: EmailMessage, client: httpx.AsyncClient) -> None:
        body = {
            "from": message.sender,
            "to": message.to,
            "cc": message.cc,
            "bcc": message.bcc,
            "reply_to": message.reply_to,
            "subject": message.subject,
            "html": message.html,
        }
        response = await client.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json"
            },
            json={k: v for k, v in body.items() if v is not None},
        )

        if not response.is_success:
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
            error_message = error_body.get("message") if isinstance(error_body, dict) else None
            raise ActionExecutionError(f"Resend API error: {error_message or response.reason_phrase}")


class SendGridSender(EmailSender):
    key = "sendgrid"
    api_url = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, api_key: str):
        self.api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "SendGridSender":
        if not settings.sendgrid_api_key:
            raise ConfigurationError("SENDGRID_API_KEY environment variable is not set")
        return cls(settings.sendgrid_api_key)

    async def send(self, message: EmailMessage, client: httpx.AsyncClient) -> None:
        personalization: Dict[str, List[Dict[str, str]]] = {
            "to": [{"email": email} for email in message.to],
        }
        if message.cc:
            personalization["cc"] = [{"email": email} for email in message.cc]
        if message.bcc:
            personalization["bcc"] = [{"email": email} for email in message.bcc]

        body = {
            "personalizations": [personalization],
            "from": {"email": message.sender},
            "subject": message.subject,
            "content": [
                {
                    "type": "text/html",
                    "value": message.html,
                }
            ],
        }
        if message.reply_to:
            body["reply_to"] = {"email": message.reply_to}

        response = await client.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json"
            },
            json=body,
        )

        if not response.is_success:
            raise ActionExecutionError(f"SendGrid API error: {response.text or 'Unknown error'}")


class MailgunSender(EmailSender):
    key = "mailgun"
    api_base_url = "https://api.mailgun.net/v3"

    def __init__(self, api_key: str, domain: str):
        self.api_key = api_key
        self.domain = domain

    @classmethod
    def from_settings(cls, settings: Settings) -> "MailgunSender":
        if not settings.mailgun_api_key or not settings.mailgun_domain:
            raise ConfigurationError("MAILGUN_API_KEY and MAILGUN_DOMAIN environment variables must be set")
        return cls(settings.mailgun_api_key, settings.mailgun_domain)

    @property
    def api_url(self) -> str:
        return f"{self.api_base_url}/{self.domain}/messages"

    async def send(self, message: EmailMessage, client: httpx.AsyncClient) -> None:
        parts = [
            ("from", message.sender),
            ("to", ",".join(message.to)),
        ]
        if message.cc:
            parts.append(("cc", ",".join(message.cc)))
        if message.bcc:
            parts.append(("bcc", ",".join(message.bcc)))
        if message.reply_to:
            parts.append(("h:Reply-To", message.reply_to))
        parts.append(("subject", message.subject))
        parts.append(("html", message.html))

        # (None, value) parts keep httpx on multipart/form-data without filenames
        response = await client.post(
            self.api_url,
            auth=("api", self.api_key),
            files=[(name, (None, value)) for name, value in parts],
        )

        if not response.is_success:
            raise ActionExecutionError(f"Mailgun API error: {response.text or 'Unknown error'}")


EMAIL_SENDERS: Dict[str, Type[EmailSender]] = {
    sender.key: sender for sender in (ResendSender, SendGridSender, MailgunSender)
}


def get_email_sender(provider: str, settings: Settings) -> EmailSender:
    """
    Build the adapter for an email provider

    Raises:
        ConfigurationError: Unknown provider or missing credentials
    """
    sender_class = EMAIL_SENDERS.get(provider)
    if sender_class is None:
        raise ConfigurationError(f"Unknown email provider: {provider}")
    return sender_class.from_settings(settings)
