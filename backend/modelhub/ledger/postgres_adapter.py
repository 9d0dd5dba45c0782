"""PostgreSQL coin ledger.

Each operation runs inside one savepoint on the request's session: either
every statement of the operation is applied, or none is. Concurrency is
handled by the database, never by application-side check-then-write:

- Debits are a conditional UPDATE (``WHERE balance >= :amount``), so two
  racing debits cannot both pass the balance check.
- Auction and call rows are locked with SELECT ... FOR UPDATE before any
  rule is evaluated, so bids, buy-now, and cancellation on one auction
  are serialized.
- Multi-actor balance changes lock every balance row they touch in
  actor_id order before updating any of them.
- coin_balances carries CHECK (balance >= 0) as the last line of defense.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

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
from modelhub.models import (
    Actor,
    Auction,
    AuctionBid,
    CoinBalance,
    CoinTransaction,
    ModelProfile,
    VideoCallSession,
)
from modelhub.services.call_billing import (
    calculate_call_cost,
    capped_charge,
    creator_earnings,
    is_billable_call,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PostgresCoinLedger(CoinLedger):
    """CoinLedger backed by PostgreSQL row locks and conditional updates.

    Args:
        db: Request-scoped async session. The caller's session lifecycle
            (get_db) commits the request; each operation is isolated in its
            own savepoint so a refused operation leaves nothing behind.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = db
        self._clock = clock

    # =========================================================================
    # Balance primitives (run inside an operation's savepoint)
    # =========================================================================

    def _record(
        self,
        actor_id: uuid.UUID,
        amount: int,
        action: str,
        metadata: dict[str, Any] | None,
    ) -> None:
        self._db.add(
            CoinTransaction(
                actor_id=actor_id,
                amount=amount,
                action=action,
                metadata_=metadata,
            )
        )

    async def _debit(
        self,
        actor_id: uuid.UUID,
        amount: int,
        action: str,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Conditionally debit; returns the new balance."""
        result = await self._db.execute(
            text(
                "UPDATE coin_balances "
                "SET balance = balance - :amount, updated_at = now() "
                "WHERE actor_id = :actor_id AND balance >= :amount "
                "RETURNING balance"
            ),
            {"amount": amount, "actor_id": actor_id},
        )
        new_balance = result.scalar_one_or_none()
        if new_balance is None:
            if await self._balance_row(actor_id) is None:
                raise LedgerOperationError(ACTOR_NOT_FOUND)
            raise LedgerOperationError(INSUFFICIENT_BALANCE)
        self._record(actor_id, -amount, action, metadata)
        return int(new_balance)

    async def _credit(
        self,
        actor_id: uuid.UUID,
        amount: int,
        action: str,
        metadata: dict[str, Any] | None = None,
        *,
        missing_message: str = ACTOR_NOT_FOUND,
    ) -> int:
        """Credit; returns the new balance."""
        result = await self._db.execute(
            text(
                "UPDATE coin_balances "
                "SET balance = balance + :amount, updated_at = now() "
                "WHERE actor_id = :actor_id "
                "RETURNING balance"
            ),
            {"amount": amount, "actor_id": actor_id},
        )
        new_balance = result.scalar_one_or_none()
        if new_balance is None:
            raise LedgerOperationError(missing_message)
        self._record(actor_id, amount, action, metadata)
        return int(new_balance)

    async def _balance_row(self, actor_id: uuid.UUID) -> int | None:
        result = await self._db.execute(
            select(CoinBalance.balance).where(CoinBalance.actor_id == actor_id)
        )
        return result.scalar_one_or_none()

    async def _lock_balances(self, *actor_ids: uuid.UUID) -> set[uuid.UUID]:
        """Lock balance rows in a stable order; returns the IDs that exist."""
        result = await self._db.execute(
            select(CoinBalance.actor_id)
            .where(CoinBalance.actor_id.in_(actor_ids))
            .order_by(CoinBalance.actor_id)
            .with_for_update()
        )
        return set(result.scalars().all())

    async def _lock_auction(
        self, auction_id: uuid.UUID
    ) -> tuple[Auction, uuid.UUID | None]:
        """Lock an auction row; returns it with its owner's actor ID."""
        result = await self._db.execute(
            select(Auction, Actor.id)
            .join(ModelProfile, ModelProfile.id == Auction.model_id)
            .outerjoin(Actor, Actor.user_id == ModelProfile.user_id)
            .where(Auction.id == auction_id)
            .with_for_update(of=Auction)
        )
        row = result.one_or_none()
        if row is None:
            raise LedgerOperationError(AUCTION_NOT_FOUND)
        auction, owner_actor_id = row
        return auction, owner_actor_id

    def _is_open(self, auction: Auction, now: datetime) -> bool:
        return auction.status == "active" and auction.ends_at > now

    async def _winning_bid(self, auction_id: uuid.UUID) -> AuctionBid | None:
        result = await self._db.execute(
            select(AuctionBid)
            .where(
                AuctionBid.auction_id == auction_id,
                AuctionBid.status == "winning",
                AuctionBid.escrow_released_at.is_(None),
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def _release_escrow(
        self, bid: AuctionBid, status: str, now: datetime
    ) -> None:
        await self._credit(
            bid.bidder_id,
            bid.escrow_amount,
            "auction_refund",
            {"auction_id": str(bid.auction_id), "bid_id": str(bid.id)},
        )
        bid.status = status
        bid.escrow_released_at = now

    # =========================================================================
    # Operations
    # =========================================================================

    async def get_actor_coin_balance(self, actor_id: uuid.UUID) -> int | None:
        return await self._balance_row(actor_id)

    async def deduct_coins(self, request: AdjustCoinsRequest) -> AdjustCoinsResult:
        if request.amount <= 0:
            raise LedgerOperationError(AMOUNT_NOT_POSITIVE)
        async with self._db.begin_nested():
            new_balance = await self._debit(
                request.actor_id, request.amount, request.action, request.metadata
            )
        return AdjustCoinsResult(new_balance=new_balance)

    async def add_coins(self, request: AdjustCoinsRequest) -> AdjustCoinsResult:
        if request.amount <= 0:
            raise LedgerOperationError(AMOUNT_NOT_POSITIVE)
        async with self._db.begin_nested():
            new_balance = await self._credit(
                request.actor_id, request.amount, request.action, request.metadata
            )
        return AdjustCoinsResult(new_balance=new_balance)

    async def transfer_coins(
        self, request: TransferCoinsRequest
    ) -> TransferCoinsResult:
        if request.sender_id == request.recipient_id:
            raise LedgerOperationError(SELF_TIP)
        if request.amount <= 0:
            raise LedgerOperationError(AMOUNT_NOT_POSITIVE)

        async with self._db.begin_nested():
            existing = await self._lock_balances(
                request.sender_id, request.recipient_id
            )
            if request.recipient_id not in existing:
                raise LedgerOperationError(RECIPIENT_NOT_FOUND)
            if request.sender_id not in existing:
                raise LedgerOperationError(ACTOR_NOT_FOUND)

            sender_balance = await self._debit(
                request.sender_id,
                request.amount,
                "tip_sent",
                {**(request.metadata or {}), "recipient_id": str(request.recipient_id)},
            )
            await self._credit(
                request.recipient_id,
                request.amount,
                "tip_received",
                {**(request.metadata or {}), "sender_id": str(request.sender_id)},
            )
        return TransferCoinsResult(
            amount=request.amount, sender_new_balance=sender_balance
        )

    async def place_auction_bid(self, request: PlaceBidRequest) -> PlaceBidResult:
        now = self._clock()
        if request.max_auto_bid is not None and request.max_auto_bid < request.amount:
            raise LedgerOperationError(MAX_AUTO_BID_TOO_LOW)
        async with self._db.begin_nested():
            auction, owner_actor_id = await self._lock_auction(request.auction_id)
            if not self._is_open(auction, now):
                raise LedgerOperationError(AUCTION_NOT_ACTIVE)
            if owner_actor_id == request.bidder_id:
                raise LedgerOperationError(OWN_AUCTION_BID)
            if auction.current_bid is None:
                if request.amount < auction.starting_price:
                    raise LedgerOperationError(BID_BELOW_MINIMUM)
            elif request.amount <= auction.current_bid:
                raise LedgerOperationError(BID_TOO_LOW)

            previous = await self._winning_bid(auction.id)
            await self._lock_balances(
                request.bidder_id,
                *([previous.bidder_id] if previous is not None else []),
            )

            # Refund before escrowing so a bidder raising their own bid only
            # needs the difference.
            if previous is not None:
                await self._release_escrow(previous, "outbid", now)
                await self._db.flush()

            await self._debit(
                request.bidder_id,
                request.amount,
                "auction_escrow",
                {"auction_id": str(auction.id)},
            )
            bid = AuctionBid(
                id=uuid.uuid4(),
                auction_id=auction.id,
                bidder_id=request.bidder_id,
                amount=request.amount,
                status="winning",
                is_buy_now=False,
                escrow_amount=request.amount,
                max_auto_bid=request.max_auto_bid,
            )
            self._db.add(bid)

            extended = False
            window = timedelta(minutes=auction.anti_snipe_minutes)
            if auction.anti_snipe_minutes > 0 and auction.ends_at - now <= window:
                auction.ends_at = auction.ends_at + window
                extended = True
            auction.current_bid = request.amount
            auction.bid_count = auction.bid_count + 1

        return PlaceBidResult(
            bid_id=bid.id,
            final_amount=request.amount,
            escrow_deducted=request.amount,
            is_winning=True,
            auction_extended=extended,
            new_end_time=auction.ends_at,
        )

    async def buy_now(self, request: BuyNowRequest) -> BuyNowResult:
        now = self._clock()
        async with self._db.begin_nested():
            auction, owner_actor_id = await self._lock_auction(request.auction_id)
            if not self._is_open(auction, now):
                raise LedgerOperationError(AUCTION_NOT_ACTIVE)
            if owner_actor_id == request.buyer_id:
                raise LedgerOperationError(OWN_AUCTION_BID)
            price = auction.buy_now_price
            if price is None or (
                auction.current_bid is not None and auction.current_bid >= price
            ):
                raise LedgerOperationError(BUY_NOW_UNAVAILABLE)
            if owner_actor_id is None:
                raise LedgerOperationError(ACTOR_NOT_FOUND)

            previous = await self._winning_bid(auction.id)
            await self._lock_balances(
                request.buyer_id,
                owner_actor_id,
                *([previous.bidder_id] if previous is not None else []),
            )
            if previous is not None:
                await self._release_escrow(previous, "outbid", now)
                await self._db.flush()

            await self._debit(
                request.buyer_id,
                price,
                "auction_purchase",
                {"auction_id": str(auction.id)},
            )
            bid = AuctionBid(
                id=uuid.uuid4(),
                auction_id=auction.id,
                bidder_id=request.buyer_id,
                amount=price,
                status="won",
                is_buy_now=True,
                escrow_amount=price,
            )
            self._db.add(bid)

            earnings = creator_earnings(price, request.earnings_share)
            if earnings > 0:
                await self._credit(
                    owner_actor_id,
                    earnings,
                    "auction_sale",
                    {"auction_id": str(auction.id)},
                )

            auction.status = "sold"
            auction.winner_id = request.buyer_id
            auction.current_bid = price
            auction.bid_count = auction.bid_count + 1

        return BuyNowResult(bid_id=bid.id, amount=price)

    async def cancel_auction(
        self, request: CancelAuctionRequest
    ) -> CancelAuctionResult:
        now = self._clock()
        async with self._db.begin_nested():
            auction, owner_actor_id = await self._lock_auction(request.auction_id)
            if owner_actor_id != request.owner_id:
                raise LedgerOperationError(NOT_AUCTION_OWNER)
            if auction.status not in ("draft", "active"):
                raise LedgerOperationError(AUCTION_NOT_ACTIVE)
            # Past its close an active auction only awaits settlement.
            if auction.status == "active" and auction.ends_at <= now:
                raise LedgerOperationError(AUCTION_NOT_ACTIVE)

            result = await self._db.execute(
                select(AuctionBid)
                .where(
                    AuctionBid.auction_id == auction.id,
                    AuctionBid.escrow_released_at.is_(None),
                )
                .order_by(AuctionBid.created_at)
                .with_for_update()
            )
            held = list(result.scalars().all())
            if held:
                await self._lock_balances(*{bid.bidder_id for bid in held})
            for bid in held:
                await self._release_escrow(bid, "refunded", now)

            auction.status = "cancelled"

        refunded_total = sum(bid.escrow_amount for bid in held)
        logger.info(
            "Auction %s cancelled, %d escrows refunded (%d coins)",
            auction.id,
            len(held),
            refunded_total,
        )
        return CancelAuctionResult(
            refunded_bids=len(held), refunded_total=refunded_total
        )

    async def settle_call(self, request: SettleCallRequest) -> SettleCallResult:
        now = self._clock()
        async with self._db.begin_nested():
            result = await self._db.execute(
                select(VideoCallSession)
                .where(VideoCallSession.id == request.session_id)
                .with_for_update()
            )
            call = result.scalar_one_or_none()
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

            duration = 0
            if call.started_at is not None:
                duration = max(0, int((now - call.started_at).total_seconds()))

            types_result = await self._db.execute(
                select(Actor.id, Actor.type).where(
                    Actor.id.in_((call.initiated_by, call.recipient_id))
                )
            )
            actor_types = dict(types_result.tuples().all())

            charged = 0
            earnings = 0
            if is_billable_call(
                actor_types.get(call.initiated_by),
                actor_types.get(call.recipient_id),
            ):
                await self._lock_balances(call.initiated_by, call.recipient_id)
                available = await self._balance_row(call.initiated_by) or 0
                charged = capped_charge(
                    calculate_call_cost(duration, request.rate_per_minute),
                    available,
                )
                metadata = {"session_id": str(call.id)}
                if charged > 0:
                    await self._debit(call.initiated_by, charged, "call_charge", metadata)
                    earnings = creator_earnings(charged, request.earnings_share)
                    if earnings > 0:
                        await self._credit(
                            call.recipient_id, earnings, "call_earnings", metadata
                        )

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
