"""Auction bidding request/response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modelhub.schemas.coins import MAX_COIN_AMOUNT

# Smallest bid the marketplace accepts (starting prices are at least this)
MIN_BID_AMOUNT = 10


class BidRequest(BaseModel):
    """Request body for POST /api/v1/auctions/{auction_id}/bids."""

    model_config = ConfigDict(extra="forbid")

    amount: int = Field(ge=MIN_BID_AMOUNT, le=MAX_COIN_AMOUNT)
    max_auto_bid: int | None = Field(
        default=None, ge=MIN_BID_AMOUNT, le=MAX_COIN_AMOUNT
    )

    @model_validator(mode="after")
    def check_max_auto_bid(self) -> "BidRequest":
        if self.max_auto_bid is not None and self.max_auto_bid < self.amount:
            msg = "max_auto_bid must be greater than or equal to amount"
            raise ValueError(msg)
        return self


class BidResponse(BaseModel):
    """Accepted bid with the bidder's balance after escrow.

    Attributes:
        bid_id: New bid ID.
        amount: Bid amount.
        escrow_deducted: Coins held in escrow for this bid.
        is_winning: Whether the bid is now the highest.
        auction_extended: Whether anti-sniping extended the auction.
        ends_at: Auction close time after this bid.
        new_balance: Bidder's balance, re-read after the bid.
    """

    model_config = ConfigDict(extra="forbid")

    bid_id: uuid.UUID
    amount: int
    escrow_deducted: int
    is_winning: bool
    auction_extended: bool
    ends_at: datetime | None
    new_balance: int


class BuyNowResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bid_id: uuid.UUID
    amount: int
    new_balance: int


class CancelAuctionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    refunded_bids: int
    refunded_total: int
    new_balance: int
