"""Repository for gig offers and invitations.

accept_invitation is the only write: it locks the offer row so that
concurrent accepts cannot overfill an offer's spots.
"""

import logging
import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modelhub.models import ModelProfile, Offer, OfferResponse

logger = logging.getLogger(__name__)


class AcceptOutcome(str, Enum):
    """Result of accepting a gig invitation.

    Values other than ACCEPTED and ALREADY_ACCEPTED are surfaced to the
    frontend as ``?error=<value>``.
    """

    ACCEPTED = "accepted"
    ALREADY_ACCEPTED = "already_accepted"
    OFFER_NOT_FOUND = "offer_not_found"
    OFFER_CLOSED = "offer_closed"
    NOT_INVITED = "not_invited"
    FULL = "offer_full"


class OfferRepository:
    """Stateless repository for Offer and OfferResponse."""

    @staticmethod
    async def get_offer(db: AsyncSession, offer_id: uuid.UUID) -> Offer | None:
        return await db.get(Offer, offer_id)

    @staticmethod
    async def get_model(db: AsyncSession, model_id: uuid.UUID) -> ModelProfile | None:
        return await db.get(ModelProfile, model_id)

    @staticmethod
    async def get_response(
        db: AsyncSession,
        offer_id: uuid.UUID,
        model_id: uuid.UUID,
    ) -> OfferResponse | None:
        """Fetch a model's invitation row for an offer (None if not invited)."""
        result = await db.execute(
            select(OfferResponse).where(
                OfferResponse.offer_id == offer_id,
                OfferResponse.model_id == model_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def accept_invitation(
        db: AsyncSession,
        *,
        offer_id: uuid.UUID,
        model_id: uuid.UUID,
    ) -> AcceptOutcome:
        """Accept an invitation atomically.

        Locks the offer row (SELECT ... FOR UPDATE) before checking status
        and spots, so two models racing for the last spot are serialized.
        spots_filled is incremented only on the transition into accepted;
        accepting twice is a no-op.

        Args:
            db: Async database session (committed by the caller).
            offer_id: Offer being accepted.
            model_id: Invited model profile.

        Returns:
            AcceptOutcome describing what happened.
        """
        offer = (
            await db.execute(
                select(Offer).where(Offer.id == offer_id).with_for_update()
            )
        ).scalar_one_or_none()
        if offer is None:
            return AcceptOutcome.OFFER_NOT_FOUND

        response = (
            await db.execute(
                select(OfferResponse)
                .where(
                    OfferResponse.offer_id == offer_id,
                    OfferResponse.model_id == model_id,
                )
                .with_for_update()
            )
        ).scalar_one_or_none()
        if response is None:
            return AcceptOutcome.NOT_INVITED
        if response.status == "accepted":
            return AcceptOutcome.ALREADY_ACCEPTED
        if offer.status != "open":
            return AcceptOutcome.OFFER_CLOSED
        if offer.spots_filled >= offer.spots:
            return AcceptOutcome.FULL

        response.status = "accepted"
        response.responded_at = datetime.now(UTC)
        offer.spots_filled = offer.spots_filled + 1
        await db.flush()

        logger.info("Model %s accepted offer %s via deep link", model_id, offer_id)
        return AcceptOutcome.ACCEPTED
