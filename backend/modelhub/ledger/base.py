"""Atomic coin ledger interface and its request/result types.

Every balance-affecting operation is one method on CoinLedger. Each method
validates its business preconditions and applies its mutation as a single
indivisible unit, so callers never check-then-write. Failures raise
LedgerOperationError and leave no partial effects.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AdjustCoinsRequest:
    """Credit or debit a single actor.

    Attributes:
        actor_id: Actor whose balance changes.
        amount: Positive coin amount.
        action: Ledger action recorded with the change (e.g., "admin_grant").
        metadata: Optional context stored on the ledger row.
    """

    actor_id: uuid.UUID
    amount: int
    action: str
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class AdjustCoinsResult:
    new_balance: int


@dataclass(frozen=True)
class TransferCoinsRequest:
    """Move coins from one actor to another (tips)."""

    sender_id: uuid.UUID
    recipient_id: uuid.UUID
    amount: int
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class TransferCoinsResult:
    amount: int
    sender_new_balance: int


@dataclass(frozen=True)
class PlaceBidRequest:
    auction_id: uuid.UUID
    bidder_id: uuid.UUID
    amount: int
    max_auto_bid: int | None = None


@dataclass(frozen=True)
class PlaceBidResult:
    """Outcome of an accepted bid.

    Attributes:
        bid_id: ID of the new bid.
        final_amount: Amount recorded on the bid.
        escrow_deducted: Coins moved into escrow for this bid.
        is_winning: True when the bid is now the highest bid.
        auction_extended: True when the bid triggered anti-sniping.
        new_end_time: Auction close time after this bid.
    """

    bid_id: uuid.UUID
    final_amount: int
    escrow_deducted: int
    is_winning: bool
    auction_extended: bool
    new_end_time: datetime | None


@dataclass(frozen=True)
class BuyNowRequest:
    """Purchase an auction outright at its buy-now price.

    Attributes:
        auction_id: Auction to buy.
        buyer_id: Buying actor.
        earnings_share: Fraction of the price credited to the owner.
    """

    auction_id: uuid.UUID
    buyer_id: uuid.UUID
    earnings_share: float


@dataclass(frozen=True)
class BuyNowResult:
    bid_id: uuid.UUID
    amount: int


@dataclass(frozen=True)
class CancelAuctionRequest:
    auction_id: uuid.UUID
    owner_id: uuid.UUID


@dataclass(frozen=True)
class CancelAuctionResult:
    refunded_bids: int
    refunded_total: int


@dataclass(frozen=True)
class SettleCallRequest:
    """End a video call and bill it.

    Attributes:
        session_id: Call session to end.
        actor_id: Participant ending the call.
        rate_per_minute: Coins charged per started minute.
        earnings_share: Fraction of the charge credited to the recipient.
    """

    session_id: uuid.UUID
    actor_id: uuid.UUID
    rate_per_minute: int
    earnings_share: float


@dataclass(frozen=True)
class SettleCallResult:
    """Outcome of ending a call.

    Attributes:
        duration_seconds: Connected duration.
        coins_charged: Coins debited from the caller.
        creator_earnings: Coins credited to the recipient.
        already_ended: True when the call had been ended before; nothing
            was charged by this request.
    """

    duration_seconds: int
    coins_charged: int
    creator_earnings: int
    already_ended: bool


class CoinLedger(ABC):
    """Atomic coin operations.

    Implementations must make each method all-or-nothing and must
    serialize concurrent operations touching the same balance, so two
    debits that together exceed a balance never both succeed.
    """

    @abstractmethod
    async def get_actor_coin_balance(self, actor_id: uuid.UUID) -> int | None:
        """Read an actor's balance (None when the actor has no balance row)."""
        ...

    @abstractmethod
    async def deduct_coins(self, request: AdjustCoinsRequest) -> AdjustCoinsResult:
        """Debit an actor, refusing to go below zero.

        Raises:
            LedgerOperationError: Insufficient balance, unknown actor, or a
                non-positive amount.
        """
        ...

    @abstractmethod
    async def add_coins(self, request: AdjustCoinsRequest) -> AdjustCoinsResult:
        """Credit an actor.

        Raises:
            LedgerOperationError: Unknown actor or a non-positive amount.
        """
        ...

    @abstractmethod
    async def transfer_coins(
        self, request: TransferCoinsRequest
    ) -> TransferCoinsResult:
        """Debit the sender and credit the recipient as one unit."""
        ...

    @abstractmethod
    async def place_auction_bid(self, request: PlaceBidRequest) -> PlaceBidResult:
        """Escrow a bid, refunding the bid it outbids."""
        ...

    @abstractmethod
    async def buy_now(self, request: BuyNowRequest) -> BuyNowResult:
        """Sell the auction to the buyer at its buy-now price."""
        ...

    @abstractmethod
    async def cancel_auction(
        self, request: CancelAuctionRequest
    ) -> CancelAuctionResult:
        """Cancel an auction and refund every held escrow."""
        ...

    @abstractmethod
    async def settle_call(self, request: SettleCallRequest) -> SettleCallResult:
        """End a call, charge the caller, and pay the recipient."""
        ...
