"""Passwordless gig-accept links.

A brand invites a model to an offer; the model receives an email with a
signed deep link (model_id bound to offer_id) that accepts the gig in one
click without signing in. The verified token stands in for identity.
"""

import logging
import uuid
from dataclasses import dataclass
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from modelhub.core.deep_link import DeepLinkSigner
from modelhub.repositories.offer_repository import AcceptOutcome, OfferRepository

logger = logging.getLogger(__name__)

_ACCEPT_PATH = "/api/v1/gigs/accept"
_INVALID_LINK_PATH = "/gigs/link-invalid"


@dataclass(frozen=True)
class AcceptLinkResult:
    """Outcome of following an accept link.

    Attributes:
        offer_id: Offer named by the token (None when the link is invalid).
        outcome: What happened (None when the link is invalid).
    """

    offer_id: uuid.UUID | None
    outcome: AcceptOutcome | None


def build_accept_url(
    signer: DeepLinkSigner,
    base_url: str,
    model_id: uuid.UUID,
    offer_id: uuid.UUID,
) -> str:
    """Build the backend URL that accepts offer_id on behalf of model_id.

    Args:
        signer: Deep-link signer.
        base_url: Public backend URL (the link must hit the API directly).
        model_id: Invited model profile.
        offer_id: Offer being offered.

    Returns:
        Absolute URL with the signed token in the query string.
    """
    token = signer.issue(str(model_id), str(offer_id))
    return f"{base_url.rstrip('/')}{_ACCEPT_PATH}?{urlencode({'token': token})}"


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def accept_from_link(
    db: AsyncSession,
    signer: DeepLinkSigner,
    token: str,
) -> AcceptLinkResult:
    """Verify an accept link and accept the invitation it names.

    Invalid, tampered, and expired tokens are indistinguishable to the
    caller: all yield AcceptLinkResult(None, None).

    Args:
        db: Async database session.
        signer: Deep-link signer.
        token: Untrusted token from the query string.

    Returns:
        AcceptLinkResult.
    """
    claims = signer.verify(token)
    if claims is None:
        return AcceptLinkResult(offer_id=None, outcome=None)

    model_id = _parse_uuid(claims.subject_id)
    offer_id = _parse_uuid(claims.object_id)
    if model_id is None or offer_id is None:
        # Signed by us but not for this flow.
        logger.warning("Accept link carried non-UUID identifiers")
        return AcceptLinkResult(offer_id=None, outcome=None)

    outcome = await OfferRepository.accept_invitation(
        db, offer_id=offer_id, model_id=model_id
    )
    return AcceptLinkResult(offer_id=offer_id, outcome=outcome)


def accept_redirect_url(frontend_url: str, result: AcceptLinkResult) -> str:
    """Frontend page to land on after following an accept link."""
    base = frontend_url.rstrip("/")
    if result.offer_id is None or result.outcome is None:
        return f"{base}{_INVALID_LINK_PATH}"
    if result.outcome in (AcceptOutcome.ACCEPTED, AcceptOutcome.ALREADY_ACCEPTED):
        return f"{base}/gigs/{result.offer_id}?status=accepted"
    return f"{base}/gigs/{result.offer_id}?error={result.outcome.value}"
