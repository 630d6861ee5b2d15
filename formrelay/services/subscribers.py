"""Newsletter subscriptions stored as CMS subscriber documents"""
import logging
from typing import Optional

import httpx

from formrelay.config import Settings, get_settings
from formrelay.database import FormRepository, get_form_repository
from formrelay.models.forms import SubscribeRequest, SubscribeResult
from formrelay.services.validation import is_valid_email
from formrelay.utils.timestamps import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "website"


async def subscribe_to_newsletter(
    request: SubscribeRequest,
    repository: Optional[FormRepository] = None,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None
) -> SubscribeResult:
    """
    Add an email address to the newsletter

    An address that is already subscribed is not stored twice; the existing
    document id comes back with already_subscribed set. Without a write
    token nothing is stored and the call still reports success.
    """
    email = request.email.strip()
    if not is_valid_email(email):
        return SubscribeResult(success=False, error="Please enter a valid email address")

    repository = repository or get_form_repository(settings or get_settings(), client)

    if not repository.can_write:
        logger.warning("SANITY_API_WRITE_TOKEN not configured - newsletter subscription will not be saved")
        return SubscribeResult(success=True)

    try:
        existing = await repository.find_subscriber(email)
        if existing:
            logger.info(f"Newsletter signup for already subscribed address, subscriber {existing['_id']}")
            return SubscribeResult(success=True, id=existing["_id"], already_subscribed=True)

        subscriber_id = await repository.create_subscriber({
            "_type": "subscriber",
            "email": email,
            "source": request.source or DEFAULT_SOURCE,
            "subscribedAt": utc_now_iso(),
            "status": "active",
        })
        logger.info(f"Created newsletter subscriber {subscriber_id}")
        return SubscribeResult(success=True, id=subscriber_id)

    except Exception as e:
        logger.error(f"Error subscribing to newsletter: {e}")
        return SubscribeResult(success=False, error="Failed to subscribe")
