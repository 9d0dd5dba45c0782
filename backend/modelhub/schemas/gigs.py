"""Gig invitation schemas."""

import uuid

from pydantic import BaseModel, ConfigDict


class InvitationLinkResponse(BaseModel):
    """Response for POST /api/v1/offers/{offer_id}/invitations/{model_id}.

    Attributes:
        offer_id: Offer the link accepts.
        model_id: Model the link is bound to.
        accept_url: Signed one-click accept URL.
        email_queued: Whether an invitation email is being sent.
    """

    model_config = ConfigDict(extra="forbid")

    offer_id: uuid.UUID
    model_id: uuid.UUID
    accept_url: str
    email_queued: bool
