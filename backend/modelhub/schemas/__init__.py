"""Pydantic request/response schemas for API endpoints."""

from modelhub.schemas.auctions import (
    BidRequest,
    BidResponse,
    BuyNowResponse,
    CancelAuctionResponse,
)
from modelhub.schemas.calls import EndCallResponse
from modelhub.schemas.coins import (
    BalanceResponse,
    CoinTransactionResponse,
    GrantCoinsRequest,
    GrantCoinsResponse,
    TipRequest,
    TipResponse,
)
from modelhub.schemas.gigs import InvitationLinkResponse

__all__ = [
    # Coins
    "BalanceResponse",
    "CoinTransactionResponse",
    "GrantCoinsRequest",
    "GrantCoinsResponse",
    "TipRequest",
    "TipResponse",
    # Auctions
    "BidRequest",
    "BidResponse",
    "BuyNowResponse",
    "CancelAuctionResponse",
    # Calls
    "EndCallResponse",
    # Gigs
    "InvitationLinkResponse",
]
