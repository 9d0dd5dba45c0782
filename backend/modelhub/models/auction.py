"""Auction and bid models.

Auctions are listed by a model profile and bid on by actors. Every bid
escrows its amount from the bidder's coin balance; escrow is released
(refunded) when the bid is outbid or the auction is cancelled, and kept
when the bid wins.

Status lifecycle:
    draft -> active -> sold | ended | cancelled
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modelhub.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from modelhub.models.actor import ModelProfile

_DEFAULT_UUID = text("gen_random_uuid()")


class Auction(Base, TimestampMixin):
    """Timed auction listed by a model.

    Attributes:
        id: UUID primary key.
        model_id: FK to models (role-profile identity of the owner).
        title: Listing title.
        description: Optional long description.
        starting_price: Minimum first bid, in coins.
        buy_now_price: Optional instant-purchase price, in coins.
        current_bid: Highest bid so far (None until the first bid).
        bid_count: Number of accepted bids.
        status: draft, active, ended, sold, or cancelled.
        ends_at: Scheduled close (extended by anti-sniping).
        original_end_at: Close time as first scheduled.
        anti_snipe_minutes: Window before close in which a bid extends it.
        winner_id: FK to actors once sold.
    """

    __tablename__ = "auctions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'active', 'ended', 'sold', 'cancelled')",
            name="ck_auctions_status_valid",
        ),
        CheckConstraint("starting_price >= 10", name="ck_auctions_starting_min"),
        CheckConstraint(
            "buy_now_price IS NULL OR buy_now_price >= starting_price",
            name="ck_auctions_buy_now_ge_start",
        ),
        CheckConstraint(
            "anti_snipe_minutes BETWEEN 0 AND 10",
            name="ck_auctions_anti_snipe_range",
        ),
        Index("ix_auctions_model_id", "model_id"),
        Index("ix_auctions_status_ends_at", "status", "ends_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("models.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    starting_price: Mapped[int] = mapped_column(Integer, nullable=False)
    buy_now_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_bid: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bid_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'draft'"),
        default="draft",
    )
    ends_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    original_end_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    anti_snipe_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("2"),
        default=2,
    )
    winner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="SET NULL"),
        nullable=True,
    )

    model: Mapped["ModelProfile"] = relationship("ModelProfile")
    bids: Mapped[list["AuctionBid"]] = relationship(
        "AuctionBid",
        back_populates="auction",
        order_by="AuctionBid.created_at",
    )


class AuctionBid(Base):
    """Bid on an auction with its escrow record.

    Attributes:
        id: UUID primary key.
        auction_id: FK to auctions.
        bidder_id: FK to actors.
        amount: Bid amount in coins.
        status: winning, outbid, won, or refunded.
        is_buy_now: True for the bid created by a buy-now purchase.
        max_auto_bid: Ceiling the bidder authorized for auto-bidding.
        escrow_amount: Coins held from the bidder for this bid.
        escrow_released_at: When escrow was refunded (None while held).
        created_at: Bid timestamp.
    """

    __tablename__ = "auction_bids"
    __table_args__ = (
        CheckConstraint(
            "status IN ('winning', 'outbid', 'won', 'refunded')",
            name="ck_auction_bids_status_valid",
        ),
        CheckConstraint("amount > 0", name="ck_auction_bids_amount_positive"),
        CheckConstraint("escrow_amount >= 0", name="ck_auction_bids_escrow_nonneg"),
        CheckConstraint(
            "max_auto_bid IS NULL OR max_auto_bid >= amount",
            name="ck_auction_bids_max_auto_ge_amount",
        ),
        Index("ix_auction_bids_auction_id", "auction_id"),
        Index("ix_auction_bids_bidder_id", "bidder_id"),
        Index(
            "uq_auction_bids_one_winning",
            "auction_id",
            unique=True,
            postgresql_where=text("status = 'winning'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    auction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("auctions.id", ondelete="CASCADE"),
        nullable=False,
    )
    bidder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    is_buy_now: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    max_auto_bid: Mapped[int | None] = mapped_column(Integer, nullable=True)
    escrow_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    escrow_released_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    auction: Mapped["Auction"] = relationship("Auction", back_populates="bids")
