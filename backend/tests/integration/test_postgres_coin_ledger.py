"""Integration tests for PostgresCoinLedger.

Runs every ledger operation against a real PostgreSQL database: savepoint
rollback on refusal, escrow bookkeeping, the one-winning-bid index, and
racing debits and opposite-direction bids and tips from independent
sessions. Skipped without PostgreSQL.
"""

import asyncio
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modelhub.ledger import (
    AdjustCoinsRequest,
    BuyNowRequest,
    CancelAuctionRequest,
    LedgerOperationError,
    PlaceBidRequest,
    PostgresCoinLedger,
    SettleCallRequest,
    TransferCoinsRequest,
)
from modelhub.ledger.errors import (
    AUCTION_NOT_ACTIVE,
    INSUFFICIENT_BALANCE,
    NOT_AUCTION_OWNER,
    OWN_AUCTION_BID,
    RECIPIENT_NOT_FOUND,
)
from modelhub.models import (
    Actor,
    Auction,
    AuctionBid,
    CoinBalance,
    CoinTransaction,
    ModelProfile,
    User,
    VideoCallSession,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_NOW = datetime(2026, 5, 1, 18, 0, tzinfo=UTC)
_SHARE = 0.7
_RATE = 10


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _create_actor(
    db: AsyncSession,
    actor_type: str = "fan",
    *,
    balance: int = 0,
) -> tuple[Actor, ModelProfile | None]:
    """Insert a user, its actor, and a balance row (plus a profile for models)."""
    user = User(id=uuid.uuid4(), email=f"{uuid.uuid4().hex[:12]}@test.com")
    actor = Actor(id=uuid.uuid4(), user_id=user.id, type=actor_type)
    db.add_all([user, actor])
    await db.flush()
    db.add(CoinBalance(actor_id=actor.id, balance=balance))

    profile = None
    if actor_type == "model":
        profile = ModelProfile(
            id=uuid.uuid4(), user_id=user.id, username=f"m{uuid.uuid4().hex[:10]}"
        )
        db.add(profile)
    await db.flush()
    return actor, profile


async def _create_auction(
    db: AsyncSession,
    profile: ModelProfile,
    *,
    ends_in: timedelta = timedelta(hours=1),
    status: str = "active",
    buy_now_price: int | None = None,
) -> Auction:
    ends_at = _NOW + ends_in
    auction = Auction(
        id=uuid.uuid4(),
        model_id=profile.id,
        title="Signed polaroid",
        starting_price=20,
        buy_now_price=buy_now_price,
        status=status,
        ends_at=ends_at,
        original_end_at=ends_at,
    )
    db.add(auction)
    await db.flush()
    return auction


async def _balance(db: AsyncSession, actor_id: uuid.UUID) -> int:
    result = await db.execute(
        select(CoinBalance.balance).where(CoinBalance.actor_id == actor_id)
    )
    return result.scalar_one()


def _ledger(db: AsyncSession) -> PostgresCoinLedger:
    return PostgresCoinLedger(db, clock=lambda: _NOW)


# ---------------------------------------------------------------------------
# Balance adjustments and transfers
# ---------------------------------------------------------------------------


class TestAdjustments:
    """Conditional debits and credits."""

    async def test_deduct_records_transaction(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)

        result = await _ledger(db_session).deduct_coins(
            AdjustCoinsRequest(actor_id=fan.id, amount=40, action="purchase")
        )

        assert result.new_balance == 60
        rows = (
            await db_session.execute(
                select(CoinTransaction).where(CoinTransaction.actor_id == fan.id)
            )
        ).scalars().all()
        assert [(r.amount, r.action) for r in rows] == [(-40, "purchase")]

    async def test_overdraw_refused_and_nothing_recorded(
        self, db_session: AsyncSession
    ):
        fan, _ = await _create_actor(db_session, balance=10)

        with pytest.raises(LedgerOperationError) as exc_info:
            await _ledger(db_session).deduct_coins(
                AdjustCoinsRequest(actor_id=fan.id, amount=11, action="purchase")
            )

        assert exc_info.value.message == INSUFFICIENT_BALANCE
        assert await _balance(db_session, fan.id) == 10
        count = (
            await db_session.execute(
                select(func.count()).select_from(CoinTransaction)
            )
        ).scalar_one()
        assert count == 0

    async def test_missing_balance_row_reads_none(self, db_session: AsyncSession):
        assert await _ledger(db_session).get_actor_coin_balance(uuid.uuid4()) is None


class TestTransfer:
    """Tips move coins between two locked balance rows."""

    async def test_transfer(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)
        model, _ = await _create_actor(db_session, "model")

        result = await _ledger(db_session).transfer_coins(
            TransferCoinsRequest(sender_id=fan.id, recipient_id=model.id, amount=25)
        )

        assert result.sender_new_balance == 75
        assert await _balance(db_session, model.id) == 25

    async def test_unknown_recipient_leaves_sender_untouched(
        self, db_session: AsyncSession
    ):
        fan, _ = await _create_actor(db_session, balance=100)

        with pytest.raises(LedgerOperationError) as exc_info:
            await _ledger(db_session).transfer_coins(
                TransferCoinsRequest(
                    sender_id=fan.id, recipient_id=uuid.uuid4(), amount=25
                )
            )

        assert exc_info.value.message == RECIPIENT_NOT_FOUND
        assert await _balance(db_session, fan.id) == 100


# ---------------------------------------------------------------------------
# Auctions
# ---------------------------------------------------------------------------


class TestAuctionBidding:
    """Escrow, outbid refunds, and the single winning bid."""

    async def test_outbid_refunds_and_keeps_one_winner(
        self, db_session: AsyncSession
    ):
        fan_a, _ = await _create_actor(db_session, balance=100)
        fan_b, _ = await _create_actor(db_session, balance=100)
        _, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)
        ledger = _ledger(db_session)

        await ledger.place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan_a.id, amount=30)
        )
        await ledger.place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan_b.id, amount=45)
        )

        assert await _balance(db_session, fan_a.id) == 100
        assert await _balance(db_session, fan_b.id) == 55
        winners = (
            await db_session.execute(
                select(AuctionBid).where(
                    AuctionBid.auction_id == auction.id,
                    AuctionBid.status == "winning",
                )
            )
        ).scalars().all()
        assert [w.bidder_id for w in winners] == [fan_b.id]

    async def test_raise_own_bid_nets_the_difference(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=50)
        _, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)
        ledger = _ledger(db_session)

        await ledger.place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan.id, amount=30)
        )
        await ledger.place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan.id, amount=50)
        )

        assert await _balance(db_session, fan.id) == 0

    async def test_owner_cannot_bid(self, db_session: AsyncSession):
        model, profile = await _create_actor(db_session, "model", balance=100)
        auction = await _create_auction(db_session, profile)

        with pytest.raises(LedgerOperationError) as exc_info:
            await _ledger(db_session).place_auction_bid(
                PlaceBidRequest(auction_id=auction.id, bidder_id=model.id, amount=30)
            )

        assert exc_info.value.message == OWN_AUCTION_BID

    async def test_late_bid_extends_end(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)
        _, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(
            db_session, profile, ends_in=timedelta(seconds=30)
        )

        result = await _ledger(db_session).place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan.id, amount=20)
        )

        assert result.auction_extended is True
        assert result.new_end_time == _NOW + timedelta(seconds=30, minutes=2)

    async def test_refused_bid_keeps_previous_escrow(self, db_session: AsyncSession):
        fan_a, _ = await _create_actor(db_session, balance=100)
        fan_b, _ = await _create_actor(db_session, balance=10)
        _, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)
        ledger = _ledger(db_session)
        await ledger.place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan_a.id, amount=30)
        )

        with pytest.raises(LedgerOperationError):
            await ledger.place_auction_bid(
                PlaceBidRequest(auction_id=auction.id, bidder_id=fan_b.id, amount=40)
            )

        assert await _balance(db_session, fan_a.id) == 70
        assert await _balance(db_session, fan_b.id) == 10

    async def test_auto_bid_ceiling_stored(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)
        _, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)

        result = await _ledger(db_session).place_auction_bid(
            PlaceBidRequest(
                auction_id=auction.id, bidder_id=fan.id, amount=30, max_auto_bid=80
            )
        )

        bid = await db_session.get(AuctionBid, result.bid_id)
        assert bid.max_auto_bid == 80
        assert await _balance(db_session, fan.id) == 70


class TestBuyNowAndCancel:
    """Buy-now settlement and owner cancellation."""

    async def test_buy_now_pays_owner_share(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=200)
        model, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile, buy_now_price=70)

        result = await _ledger(db_session).buy_now(
            BuyNowRequest(auction_id=auction.id, buyer_id=fan.id, earnings_share=_SHARE)
        )

        assert result.amount == 70
        assert await _balance(db_session, fan.id) == 130
        assert await _balance(db_session, model.id) == 49
        await db_session.refresh(auction)
        assert auction.status == "sold"
        assert auction.winner_id == fan.id

    async def test_cancel_refunds_held_escrow(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)
        model, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)
        ledger = _ledger(db_session)
        await ledger.place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan.id, amount=35)
        )

        result = await ledger.cancel_auction(
            CancelAuctionRequest(auction_id=auction.id, owner_id=model.id)
        )

        assert (result.refunded_bids, result.refunded_total) == (1, 35)
        assert await _balance(db_session, fan.id) == 100

    async def test_cancel_by_non_owner_refused(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session)
        _, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)

        with pytest.raises(LedgerOperationError) as exc_info:
            await _ledger(db_session).cancel_auction(
                CancelAuctionRequest(auction_id=auction.id, owner_id=fan.id)
            )

        assert exc_info.value.message == NOT_AUCTION_OWNER

    async def test_cancel_after_close_refused(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)
        model, profile = await _create_actor(db_session, "model")
        auction = await _create_auction(db_session, profile)
        await _ledger(db_session).place_auction_bid(
            PlaceBidRequest(auction_id=auction.id, bidder_id=fan.id, amount=35)
        )
        later = PostgresCoinLedger(
            db_session, clock=lambda: _NOW + timedelta(hours=3)
        )

        with pytest.raises(LedgerOperationError) as exc_info:
            await later.cancel_auction(
                CancelAuctionRequest(auction_id=auction.id, owner_id=model.id)
            )

        assert exc_info.value.message == AUCTION_NOT_ACTIVE
        assert await _balance(db_session, fan.id) == 65
        await db_session.refresh(auction)
        assert auction.status == "active"


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------


class TestSettleCall:
    """Per-minute billing, capping, and idempotent settlement."""

    async def _call(self, db: AsyncSession, fan: Actor, model: Actor, seconds: int):
        call = VideoCallSession(
            id=uuid.uuid4(),
            initiated_by=fan.id,
            recipient_id=model.id,
            status="active",
            started_at=_NOW - timedelta(seconds=seconds),
        )
        db.add(call)
        await db.flush()
        return call

    def _request(self, call, actor) -> SettleCallRequest:
        return SettleCallRequest(
            session_id=call.id,
            actor_id=actor.id,
            rate_per_minute=_RATE,
            earnings_share=_SHARE,
        )

    async def test_settles_once(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=100)
        model, _ = await _create_actor(db_session, "model")
        call = await self._call(db_session, fan, model, seconds=125)
        ledger = _ledger(db_session)

        first = await ledger.settle_call(self._request(call, fan))
        second = await ledger.settle_call(self._request(call, model))

        assert (first.coins_charged, first.creator_earnings) == (30, 21)
        assert second.already_ended is True
        assert second.coins_charged == 30
        assert await _balance(db_session, fan.id) == 70
        assert await _balance(db_session, model.id) == 21

    async def test_charge_capped_at_balance(self, db_session: AsyncSession):
        fan, _ = await _create_actor(db_session, balance=12)
        model, _ = await _create_actor(db_session, "model")
        call = await self._call(db_session, fan, model, seconds=600)

        result = await _ledger(db_session).settle_call(self._request(call, fan))

        assert result.coins_charged == 12
        assert await _balance(db_session, fan.id) == 0


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentDebits:
    """Two sessions racing for the same coins: exactly one wins."""

    async def test_only_one_debit_fits(self, db_engine):
        session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
        async with session_factory() as setup:
            fan, _ = await _create_actor(setup, balance=100)
            await setup.commit()

        async def debit() -> int:
            async with session_factory() as session:
                result = await PostgresCoinLedger(session).deduct_coins(
                    AdjustCoinsRequest(actor_id=fan.id, amount=60, action="purchase")
                )
                await session.commit()
                return result.new_balance

        results = await asyncio.gather(debit(), debit(), return_exceptions=True)

        failures = [r for r in results if isinstance(r, LedgerOperationError)]
        assert len(failures) == 1
        assert failures[0].message == INSUFFICIENT_BALANCE
        assert [r for r in results if isinstance(r, int)] == [40]

        async with session_factory() as check:
            assert await _balance(check, fan.id) == 40


class TestOppositeBidAndTip:
    """A bid that refunds X while Y tips X must not deadlock."""

    async def test_bid_and_reverse_tip_both_commit(self, db_engine):
        session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
        async with session_factory() as setup:
            first, _ = await _create_actor(setup, balance=150)
            second, _ = await _create_actor(setup, balance=150)
            _, profile = await _create_actor(setup, "model")
            await setup.commit()
        # The outbid actor sorts after the bidder, so a refund-first bid would
        # take the two balance locks in the reverse of the tip's order.
        outbid, bidder = sorted([first, second], key=lambda a: a.id, reverse=True)

        async def bid(auction_id: uuid.UUID) -> None:
            async with session_factory() as session:
                await _ledger(session).place_auction_bid(
                    PlaceBidRequest(
                        auction_id=auction_id, bidder_id=bidder.id, amount=40
                    )
                )
                await session.commit()

        async def tip() -> None:
            async with session_factory() as session:
                await _ledger(session).transfer_coins(
                    TransferCoinsRequest(
                        sender_id=bidder.id, recipient_id=outbid.id, amount=10
                    )
                )
                await session.commit()

        rounds = 3
        for _ in range(rounds):
            async with session_factory() as setup:
                auction = await _create_auction(setup, profile)
                await _ledger(setup).place_auction_bid(
                    PlaceBidRequest(
                        auction_id=auction.id, bidder_id=outbid.id, amount=30
                    )
                )
                await setup.commit()

            results = await asyncio.gather(
                bid(auction.id), tip(), return_exceptions=True
            )
            assert results == [None, None]

        async with session_factory() as check:
            assert await _balance(check, outbid.id) == 150 + 10 * rounds
            assert await _balance(check, bidder.id) == 150 - 50 * rounds
