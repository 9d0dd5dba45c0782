"""Offer (gig) models.

A brand posts an offer with a fixed number of spots and invites models.
Invited models respond through offer_responses; accepting fills a spot.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modelhub.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")


class Offer(Base, TimestampMixin):
    """Gig offer posted by a brand.

    Attributes:
        id: UUID primary key.
        brand_id: FK to actors (the brand's actor identity).
        title: Gig title.
        description: Optional details.
        status: open, closed, or cancelled.
        spots: Number of models wanted.
        spots_filled: Number of accepted responses.
    """

    __tablename__ = "offers"
    __table_args__ = (
        CheckConstraint(
            "status IN ('open', 'closed', 'cancelled')",
            name="ck_offers_status_valid",
        ),
        CheckConstraint("spots > 0", name="ck_offers_spots_positive"),
        CheckConstraint(
            "spots_filled >= 0 AND spots_filled <= spots",
            name="ck_offers_spots_filled_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    brand_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'open'"),
        default="open",
    )
    spots: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("1"),
        default=1,
    )
    spots_filled: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )

    responses: Mapped[list["OfferResponse"]] = relationship(
        "OfferResponse",
        back_populates="offer",
    )


class OfferResponse(Base, TimestampMixin):
    """A model's invitation to, and response on, an offer.

    Rows are created as 'pending' when the model is invited.
    """

    __tablename__ = "offer_responses"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined')",
            name="ck_offer_responses_status_valid",
        ),
        UniqueConstraint("offer_id", "model_id", name="uq_offer_responses_offer_model"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'pending'"),
        default="pending",
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    offer: Mapped["Offer"] = relationship("Offer", back_populates="responses")
