"""Gig invitation API router.

Brands issue one-click accept links for models they invited; the public
accept endpoint verifies the signed link and accepts the gig without a
session. Invalid, tampered, and expired links all land on the same
"link invalid" page.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import RedirectResponse

from modelhub.api.deps import CurrentActor, DbSession, Signer
from modelhub.core.config import settings
from modelhub.core.email import send_gig_invitation_email
from modelhub.core.errors import ForbiddenError, NotFoundError
from modelhub.core.rate_limiting import limiter
from modelhub.core.responses import DataResponse
from modelhub.repositories.offer_repository import OfferRepository
from modelhub.schemas.gigs import InvitationLinkResponse
from modelhub.services.gig_invitations import (
    AcceptLinkResult,
    accept_from_link,
    accept_redirect_url,
    build_accept_url,
)

router = APIRouter()

# Issued tokens are well under this; anything longer is not ours.
_MAX_TOKEN_LENGTH = 1024


# =============================================================================
# POST /offers/{offer_id}/invitations/{model_id}
# =============================================================================


@router.post("/offers/{offer_id}/invitations/{model_id}")
async def create_invitation_link(
    offer_id: uuid.UUID,
    model_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    signer: Signer,
    background_tasks: BackgroundTasks,
) -> DataResponse[InvitationLinkResponse]:
    """Issue an accept link for an invited model and email it.

    Errors: 403 caller is not the owning brand or the model is not
    invited, 404 offer or model not found, 503 deep links not configured.
    """
    if actor.actor_type != "brand":
        raise ForbiddenError("Only brands can invite models")

    offer = await OfferRepository.get_offer(db, offer_id)
    if offer is None:
        raise NotFoundError("Offer")
    if offer.brand_id != actor.actor_id:
        raise ForbiddenError()

    model = await OfferRepository.get_model(db, model_id)
    if model is None:
        raise NotFoundError("Model")
    if await OfferRepository.get_response(db, offer_id, model_id) is None:
        raise ForbiddenError("Model is not invited to this offer")

    accept_url = build_accept_url(signer, settings.backend_url, model.id, offer.id)

    email_queued = bool(model.email)
    if model.email:
        background_tasks.add_task(
            send_gig_invitation_email,
            to_email=model.email,
            model_name=model.display_name,
            offer_title=offer.title,
            accept_url=accept_url,
        )

    return DataResponse(
        data=InvitationLinkResponse(
            offer_id=offer.id,
            model_id=model.id,
            accept_url=accept_url,
            email_queued=email_queued,
        )
    )


# =============================================================================
# GET /gigs/accept (public)
# =============================================================================


@router.get("/gigs/accept")
@limiter.limit(settings.rate_limit_public_links)
async def accept_gig(
    request: Request,  # noqa: ARG001 - required by slowapi
    db: DbSession,
    signer: Signer,
    token: Annotated[str, Query()] = "",
) -> RedirectResponse:
    """Accept a gig from an emailed link, then redirect to the frontend.

    No session is required: the signed token identifies the model and the
    offer. The redirect target never reveals why a link was rejected.
    """
    if not token or len(token) > _MAX_TOKEN_LENGTH:
        result = AcceptLinkResult(offer_id=None, outcome=None)
    else:
        result = await accept_from_link(db, signer, token)

    response = RedirectResponse(
        url=accept_redirect_url(settings.frontend_url, result),
        status_code=303,
    )
    # Prevent token leakage via Referer header
    response.headers["Referrer-Policy"] = "no-referrer"
    return response
