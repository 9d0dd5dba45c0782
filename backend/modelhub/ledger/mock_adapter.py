"""In-memory coin ledger for testing.

MockCoinLedger enables unit testing of the gateway and routes without a
database. It is a faithful stand-in, not a stub: every operation enforces
the same business rules as PostgresCoinLedger and all operations are
serialized by one asyncio.Lock, so concurrent requests observe the same
outcomes they would against the real ledger.
"""

import asyncio
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from modelhub.ledger.base import (
    AdjustCoinsRequest,
    AdjustCoinsResult,
    BuyNowRequest,
    BuyNowResult,
    CancelAuctionRequest,
    CancelAuctionResult,
    CoinLedger,
    PlaceBidRequest,
    PlaceBidResult,
    SettleCallRequest,
    SettleCallResult,
    TransferCoinsRequest,
    TransferCoinsResult,
)
from modelhub.ledger.errors import (
    ACTOR_NOT_FOUND,
    AMOUNT_NOT_POSITIVE,
    AUCTION_NOT_ACTIVE,
    AUCTION_NOT_FOUND,
    BID_BELOW_MINIMUM,
    BID_TOO_LOW,
    BUY_NOW_UNAVAILABLE,
    CALL_NOT_FOUND,
    INSUFFICIENT_BALANCE,
    MAX_AUTO_BID_TOO_LOW,
    NOT_AUCTION_OWNER,
    NOT_CALL_PARTICIPANT,
    OWN_AUCTION_BID,
    RECIPIENT_NOT_FOUND,
    SELF_TIP,
    LedgerOperationError,
)
from modelhub.services.call_billing import (
    calculate_call_cost,
    capped_charge,
    creator_earnings,
    is_billable_call,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class MockAuction:
    id: uuid.UUID
    owner_actor_id: uuid.UUID
    starting_price: int
    ends_at: datetime
    buy_now_price: int | None = None
    current_bid: int | None = None
    bid_count: int = 0
    status: str = "active"
    anti_snipe_minutes: int = 2
    winner_id: uuid.UUID | None = None


@dataclass
class MockBid:
    id: uuid.UUID
    auction_id: uuid.UUID
    bidder_id: uuid.UUID
    amount: int
    status: str
    escrow_amount: int
    is_buy_now: bool = False
    max_auto_bid: int | None = None
    escrow_released_at: datetime | None = None


@dataclass
class MockCall:
    id: uuid.UUID
    initiated_by: uuid.UUID
    recipient_id: uuid.UUID
    started_at: datetime | None
    status: str = "active"
    ended_at: datetime | None = None
    duration_seconds: int | None = None
    coins_charged: int = 0


@dataclass
class MockTransaction:
    actor_id: uuid.UUID
    amount: int
    action: str
    metadata: dict[str, Any] | None = field(default=None)


class MockCoinLedger(CoinLedger):
    """In-memory CoinLedger for tests.

    Attributes:
        balances: Actor ID -> coin balance.
        actor_types: Actor ID -> role tag.
        auctions: Auction ID -> MockAuction.
        bids: All bids in placement order.
        calls: Session ID -> MockCall.
        transactions: Append-only ledger, for assertions.
        calls_made: Names of operations invoked, for assertions.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._lock = asyncio.Lock()
        self._clock = clock
        self.balances: dict[uuid.UUID, int] = {}
        self.actor_types: dict[uuid.UUID, str] = {}
        self.auctions: dict[uuid.UUID, MockAuction] = {}
        self.bids: list[MockBid] = []
        self.calls: dict[uuid.UUID, MockCall] = {}
        self.transactions: list[MockTransaction] = []
        self.calls_made: list[str] = []

    # =========================================================================
    # Seeding helpers
    # =========================================================================

    def add_actor(
        self,
        actor_id: uuid.UUID,
        *,
        actor_type: str = "fan",
        balance: int = 0,
    ) -> None:
        """Provision an actor with a balance row."""
        self.actor_types[actor_id] = actor_type
        self.balances[actor_id] = balance

    def add_auction(self, auction: MockAuction) -> MockAuction:
        self.auctions[auction.id] = auction
        return auction

    def add_call(self, call: MockCall) -> MockCall:
        self.calls[call.id] = call
        return call

    # =========================================================================
    # Internals (caller holds the lock)
    # =========================================================================

    def _require_funds(self, actor_id: uuid.UUID, amount: int) -> None:
        if actor_id not in self.balances:
            raise LedgerOperationError(ACTOR_NOT_FOUND)
        if self.balances[actor_id] < amount:
            raise LedgerOperationError(INSUFFICIENT_BALANCE)

    def _apply(
        self,
        actor_id: uuid.UUID,
        amount: int,
        action: str,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        self.balances[actor_id] += amount
        self.transactions.append(MockTransaction(actor_id, amount, action, metadata))
        return self.balances[actor_id]

    def _get_open_auction(self, auction_id: uuid.UUID) -> MockAuction:
        auction = self.auctions.get(auction_id)
        if auction is None:
            raise LedgerOperationError(AUCTION_NOT_FOUND)
        if auction.status != "active" or auction.ends_at <= self._clock():
            raise LedgerOperationError(AUCTION_NOT_ACTIVE)
        return auction

    def _winning_bid(self, auction_id: uuid.UUID) -> MockBid | None:
        for bid in self.bids:
            if (
                bid.auction_id == auction_id
                and bid.status == "winning"
                and bid.escrow_released_at is None
            ):
                return bid
        return None

    def _release(self, bid: MockBid, status: str) -> None:
        self._apply(
            bid.bidder_id,
            bid.escrow_amount,
            "auction_refund",
            {"auction_id": str(bid.auction_id), "bid_id": str(bid.id)},
        )
        bid.status = status
        bid.escrow_released_at = self._clock()

    # =========================================================================
    # Operations
    # =========================================================================

    async def get_actor_coin_balance(self, actor_id: uuid.UUID) -> int | None:
        async with self._lock:
            self.calls_made.append("get_actor_coin_balance")
            return self.balances.get(actor_id)

    async def deduct_coins(self, request: AdjustCoinsRequest) -> AdjustCoinsResult:
        async with self._lock:
            self.calls_made.append("deduct_coins")
            if request.amount <= 0:
                raise LedgerOperationError(AMOUNT_NOT_POSITIVE)
            self._require_funds(request.actor_id, request.amount)
            # Yield between check and write; the lock keeps this atomic.
            await asyncio.sleep(0)
            new_balance = self._apply(
                request.actor_id, -request.amount, request.action, request.metadata
            )
            return AdjustCoinsResult(new_balance=new_balance)

    async def add_coins(self, request: AdjustCoinsRequest) -> AdjustCoinsResult:
        async with self._lock:
            self.calls_made.append("add_coins")
            if request.amount <= 0:
                raise LedgerOperationError(AMOUNT_NOT_POSITIVE)
            if request.actor_id not in self.balances:
                raise LedgerOperationError(ACTOR_NOT_FOUND)
            new_balance = self._apply(
                request.actor_id, request.amount, request.action, request.metadata
            )
            return AdjustCoinsResult(new_balance=new_balance)

    async def transfer_coins(
        self, request: TransferCoinsRequest
    ) -> TransferCoinsResult:
        async with self._lock:
            self.calls_made.append("transfer_coins")
            if request.sender_id == request.recipient_id:
                raise LedgerOperationError(SELF_TIP)
            if request.amount <= 0:
                raise LedgerOperationError(AMOUNT_NOT_POSITIVE)
            if request.recipient_id not in self.balances:
                raise LedgerOperationError(RECIPIENT_NOT_FOUND)
            self._require_funds(request.sender_id, request.amount)
            await asyncio.sleep(0)
            sender_balance = self._apply(
                request.sender_id, -request.amount, "tip_sent", request.metadata
            )
            self._apply(
                request.recipient_id, request.amount, "tip_received", request.metadata
            )
            return TransferCoinsResult(
                amount=request.amount, sender_new_balance=sender_balance
            )

    async def place_auction_bid(self, request: PlaceBidRequest) -> PlaceBidResult:
        async with self._lock:
            self.calls_made.append("place_auction_bid")
            if (
                request.max_auto_bid is not None
                and request.max_auto_bid < request.amount
            ):
                raise LedgerOperationError(MAX_AUTO_BID_TOO_LOW)
            now = self._clock()
            auction = self._get_open_auction(request.auction_id)
            if auction.owner_actor_id == request.bidder_id:
                raise LedgerOperationError(OWN_AUCTION_BID)
            if auction.current_bid is None:
                if request.amount < auction.starting_price:
                    raise LedgerOperationError(BID_BELOW_MINIMUM)
            elif request.amount <= auction.current_bid:
                raise LedgerOperationError(BID_TOO_LOW)

            previous = self._winning_bid(auction.id)
            refundable = 0
            if previous is not None and previous.bidder_id == request.bidder_id:
                refundable = previous.escrow_amount
            if request.bidder_id not in self.balances:
                raise LedgerOperationError(ACTOR_NOT_FOUND)
            if self.balances[request.bidder_id] + refundable < request.amount:
                raise LedgerOperationError(INSUFFICIENT_BALANCE)

            if previous is not None:
                self._release(previous, "outbid")
            self._apply(
                request.bidder_id,
                -request.amount,
                "auction_escrow",
                {"auction_id": str(auction.id)},
            )
            bid = MockBid(
                id=uuid.uuid4(),
                auction_id=auction.id,
                bidder_id=request.bidder_id,
                amount=request.amount,
                status="winning",
                escrow_amount=request.amount,
                max_auto_bid=request.max_auto_bid,
            )
            self.bids.append(bid)

            extended = False
            window = timedelta(minutes=auction.anti_snipe_minutes)
            if auction.anti_snipe_minutes > 0 and auction.ends_at - now <= window:
                auction.ends_at = auction.ends_at + window
                extended = True
            auction.current_bid = request.amount
            auction.bid_count += 1

            return PlaceBidResult(
                bid_id=bid.id,
                final_amount=request.amount,
                escrow_deducted=request.amount,
                is_winning=True,
                auction_extended=extended,
                new_end_time=auction.ends_at,
            )

    async def buy_now(self, request: BuyNowRequest) -> BuyNowResult:
        async with self._lock:
            self.calls_made.append("buy_now")
            auction = self._get_open_auction(request.auction_id)
            if auction.owner_actor_id == request.buyer_id:
                raise LedgerOperationError(OWN_AUCTION_BID)
            price = auction.buy_now_price
            if price is None or (
                auction.current_bid is not None and auction.current_bid >= price
            ):
                raise LedgerOperationError(BUY_NOW_UNAVAILABLE)
            if auction.owner_actor_id not in self.balances:
                raise LedgerOperationError(ACTOR_NOT_FOUND)

            previous = self._winning_bid(auction.id)
            refundable = 0
            if previous is not None and previous.bidder_id == request.buyer_id:
                refundable = previous.escrow_amount
            if request.buyer_id not in self.balances:
                raise LedgerOperationError(ACTOR_NOT_FOUND)
            if self.balances[request.buyer_id] + refundable < price:
                raise LedgerOperationError(INSUFFICIENT_BALANCE)

            if previous is not None:
                self._release(previous, "outbid")
            metadata = {"auction_id": str(auction.id)}
            self._apply(request.buyer_id, -price, "auction_purchase", metadata)
            bid = MockBid(
                id=uuid.uuid4(),
                auction_id=auction.id,
                bidder_id=request.buyer_id,
                amount=price,
                status="won",
                escrow_amount=price,
                is_buy_now=True,
            )
            self.bids.append(bid)
            earnings = creator_earnings(price, request.earnings_share)
            if earnings > 0:
                self._apply(auction.owner_actor_id, earnings, "auction_sale", metadata)

            auction.status = "sold"
            auction.winner_id = request.buyer_id
            auction.current_bid = price
            auction.bid_count += 1
            return BuyNowResult(bid_id=bid.id, amount=price)

    async def cancel_auction(
        self, request: CancelAuctionRequest
    ) -> CancelAuctionResult:
        async with self._lock:
            self.calls_made.append("cancel_auction")
            auction = self.auctions.get(request.auction_id)
            if auction is None:
                raise LedgerOperationError(AUCTION_NOT_FOUND)
            if auction.owner_actor_id != request.owner_id:
                raise LedgerOperationError(NOT_AUCTION_OWNER)
            if auction.status not in ("draft", "active"):
                raise LedgerOperationError(AUCTION_NOT_ACTIVE)
            if auction.status == "active" and auction.ends_at <= self._clock():
                raise LedgerOperationError(AUCTION_NOT_ACTIVE)

            held = [
                bid
                for bid in self.bids
                if bid.auction_id == auction.id and bid.escrow_released_at is None
            ]
            for bid in held:
                self._release(bid, "refunded")
            auction.status = "cancelled"
            return CancelAuctionResult(
                refunded_bids=len(held),
                refunded_total=sum(bid.escrow_amount for bid in held),
            )

    async def settle_call(self, request: SettleCallRequest) -> SettleCallResult:
        async with self._lock:
            self.calls_made.append("settle_call")
            call = self.calls.get(request.session_id)
            if call is None:
                raise LedgerOperationError(CALL_NOT_FOUND)
            if request.actor_id not in (call.initiated_by, call.recipient_id):
                raise LedgerOperationError(NOT_CALL_PARTICIPANT)

            if call.status == "ended":
                return SettleCallResult(
                    duration_seconds=call.duration_seconds or 0,
                    coins_charged=call.coins_charged,
                    creator_earnings=creator_earnings(
                        call.coins_charged, request.earnings_share
                    ),
                    already_ended=True,
                )

            now = self._clock()
            duration = 0
            if call.started_at is not None:
                duration = max(0, int((now - call.started_at).total_seconds()))

            charged = 0
            earnings = 0
            if is_billable_call(
                self.actor_types.get(call.initiated_by),
                self.actor_types.get(call.recipient_id),
            ):
                charged = capped_charge(
                    calculate_call_cost(duration, request.rate_per_minute),
                    self.balances.get(call.initiated_by, 0),
                )
                earnings = creator_earnings(charged, request.earnings_share)
                if earnings > 0 and call.recipient_id not in self.balances:
                    raise LedgerOperationError(ACTOR_NOT_FOUND)
                metadata = {"session_id": str(call.id)}
                if charged > 0:
                    self._apply(call.initiated_by, -charged, "call_charge", metadata)
                if earnings > 0:
                    self._apply(call.recipient_id, earnings, "call_earnings", metadata)

            call.status = "ended"
            call.ended_at = now
            call.duration_seconds = duration
            call.coins_charged = charged
            return SettleCallResult(
                duration_seconds=duration,
                coins_charged=charged,
                creator_earnings=earnings,
                already_ended=False,
            )
