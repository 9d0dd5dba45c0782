"""Email sending via Resend API.

Plain-text transactional emails. Sending is fire-and-forget: callers run
these as background tasks and failures are logged, never raised.
"""

import logging

import httpx

from modelhub.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def send_gig_invitation_email(
    *,
    to_email: str,
    model_name: str,
    offer_title: str,
    accept_url: str,
) -> None:
    """Send a gig invitation with a one-click accept link.

    The link carries a signed deep-link token, so the model can accept
    without signing in first.

    Args:
        to_email: Model's email address.
        model_name: Greeting name.
        offer_title: Title of the offer/gig.
        accept_url: Signed accept URL (expires after the deep-link TTL).
    """
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
                },
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": f"You're invited: {offer_title}",
                    "text": (
                        f"Hi {model_name},\n\n"
                        f"You've been invited to \"{offer_title}\".\n\n"
                        f"Accept the gig with one click:\n\n{accept_url}\n\n"
                        f"This link expires in {settings.deep_link_ttl_days} days."
                    ),
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPError:
        logger.warning("Failed to send gig invitation email", exc_info=True)
