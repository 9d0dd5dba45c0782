"""Auction bidding API router.

Bids, buy-now, and cancellation each run as one atomic ledger operation
on the locked auction row. Escrow moves with the bid: placing a bid holds
the amount, being outbid or a cancellation refunds it.
"""

import uuid

from fastapi import APIRouter, Request

from modelhub.api.deps import CurrentActor, Gateway
from modelhub.core.config import settings
from modelhub.core.rate_limiting import limiter
from modelhub.core.responses import DataResponse
from modelhub.schemas.auctions import (
    BidRequest,
    BidResponse,
    BuyNowResponse,
    CancelAuctionResponse,
)

router = APIRouter()


@router.post("/{auction_id}/bids")
@limiter.limit(settings.rate_limit_financial)
async def place_bid(
    request: Request,  # noqa: ARG001 - required by slowapi
    auction_id: uuid.UUID,
    body: BidRequest,
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[BidResponse]:
    """Place a bid.

    Errors: 400 auction closed, own auction, bid too low, or insufficient
    balance; 404 auction not found.
    """
    outcome = await gateway.place_bid(
        actor,
        auction_id=auction_id,
        amount=body.amount,
        max_auto_bid=body.max_auto_bid,
    )
    result = outcome.result
    return DataResponse(
        data=BidResponse(
            bid_id=result.bid_id,
            amount=result.final_amount,
            escrow_deducted=result.escrow_deducted,
            is_winning=result.is_winning,
            auction_extended=result.auction_extended,
            ends_at=result.new_end_time,
            new_balance=outcome.new_balance,
        )
    )


@router.post("/{auction_id}/buy-now")
@limiter.limit(settings.rate_limit_financial)
async def buy_now(
    request: Request,  # noqa: ARG001 - required by slowapi
    auction_id: uuid.UUID,
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[BuyNowResponse]:
    """Buy the auction at its buy-now price, ending it immediately."""
    outcome = await gateway.buy_now(actor, auction_id=auction_id)
    return DataResponse(
        data=BuyNowResponse(
            bid_id=outcome.result.bid_id,
            amount=outcome.result.amount,
            new_balance=outcome.new_balance,
        )
    )


@router.post("/{auction_id}/cancel")
@limiter.limit(settings.rate_limit_financial)
async def cancel_auction(
    request: Request,  # noqa: ARG001 - required by slowapi
    auction_id: uuid.UUID,
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[CancelAuctionResponse]:
    """Cancel an auction the caller owns and refund every held bid.

    Errors: 403 not a model or not the owner, 400 auction already closed,
    404 auction not found.
    """
    outcome = await gateway.cancel_auction(actor, auction_id=auction_id)
    return DataResponse(
        data=CancelAuctionResponse(
            refunded_bids=outcome.result.refunded_bids,
            refunded_total=outcome.result.refunded_total,
            new_balance=outcome.new_balance,
        )
    )
