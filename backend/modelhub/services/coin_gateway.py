"""Coin gateway: the one path by which requests move coins.

Every operation follows the same contract:

1. The caller is authenticated (get_current_user_id, 401).
2. The caller's actor is resolved (get_current_actor, 404) and its role is
   checked here (403).
3. Exactly one atomic ledger call performs validation and mutation.
   No precondition is re-checked in this layer.
4. Ledger failures are translated to client-facing API errors by message.
5. On success the balance is re-read from the ledger, never computed here.

Nothing is retried: re-applying a balance mutation that may already have
committed risks double application, so the client must re-submit.
"""

import logging
import uuid
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from modelhub.core.errors import (
    APIError,
    BusinessRuleError,
    ForbiddenError,
    InsufficientFundsError,
    InternalError,
)
from modelhub.ledger import (
    AdjustCoinsRequest,
    BuyNowRequest,
    BuyNowResult,
    CancelAuctionRequest,
    CancelAuctionResult,
    CoinLedger,
    LedgerOperationError,
    PlaceBidRequest,
    PlaceBidResult,
    SettleCallRequest,
    SettleCallResult,
    TransferCoinsRequest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Recognized business-rule failures (lowercase substrings). Anything that
# matches none of the rules below is an internal error.
_BUSINESS_RULE_MARKERS = (
    "not active",
    "cannot bid on your own",
    "higher than current",
    "meet the minimum",
    "max auto-bid",
    "buy now is not available",
    "cannot tip yourself",
    "must be positive",
)
_FORBIDDEN_MARKERS = ("not your", "not a participant")


@dataclass(frozen=True)
class ActorContext:
    """Resolved caller identity.

    Attributes:
        actor_id: Actor identity (owns balances).
        actor_type: Role tag (model, fan, brand, admin).
    """

    actor_id: uuid.UUID
    actor_type: str


@dataclass(frozen=True)
class TipOutcome:
    amount: int
    new_balance: int


@dataclass(frozen=True)
class BidOutcome:
    result: PlaceBidResult
    new_balance: int


@dataclass(frozen=True)
class BuyNowOutcome:
    result: BuyNowResult
    new_balance: int


@dataclass(frozen=True)
class CancelAuctionOutcome:
    result: CancelAuctionResult
    new_balance: int


@dataclass(frozen=True)
class EndCallOutcome:
    result: SettleCallResult
    new_balance: int


@dataclass(frozen=True)
class GrantOutcome:
    recipient_id: uuid.UUID
    amount: int
    new_balance: int


def translate_ledger_error(exc: LedgerOperationError, operation: str) -> APIError:
    """Map a ledger failure to the client-facing error taxonomy.

    Matching is case-insensitive on the failure message:
    - "insufficient" -> 400 INSUFFICIENT_FUNDS
    - "not found" -> 404 NOT_FOUND
    - "not your" / "not a participant" -> 403 FORBIDDEN
    - known business rules -> 400 BUSINESS_RULE_VIOLATION
    - anything else -> 500 INTERNAL_ERROR (logged, generic message)

    Args:
        exc: The ledger failure.
        operation: Operation name, for the log line.

    Returns:
        APIError to raise.
    """
    lowered = exc.message.lower()
    if "insufficient" in lowered:
        return InsufficientFundsError(exc.message)
    if "not found" in lowered:
        return APIError(code="NOT_FOUND", message=exc.message, status_code=404)
    if any(marker in lowered for marker in _FORBIDDEN_MARKERS):
        return ForbiddenError(exc.message)
    if any(marker in lowered for marker in _BUSINESS_RULE_MARKERS):
        return BusinessRuleError(exc.message)

    logger.error("Unrecognized ledger failure in %s: %s", operation, exc.message)
    return InternalError()


class CoinGateway:
    """Applies coin operations for a resolved actor.

    Args:
        ledger: Atomic ledger (PostgresCoinLedger in production).
        call_rate_per_minute: Coins charged per started call minute.
        earnings_share: Creator's fraction of call charges and sales.
    """

    def __init__(
        self,
        ledger: CoinLedger,
        *,
        call_rate_per_minute: int,
        earnings_share: float,
    ) -> None:
        self._ledger = ledger
        self._call_rate = call_rate_per_minute
        self._earnings_share = earnings_share

    async def _apply(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except LedgerOperationError as exc:
            raise translate_ledger_error(exc, operation) from exc

    async def balance(self, actor_id: uuid.UUID) -> int:
        """Authoritative balance (0 when the actor has no balance row)."""
        balance = await self._ledger.get_actor_coin_balance(actor_id)
        return balance if balance is not None else 0

    async def tip(
        self,
        actor: ActorContext,
        *,
        recipient_id: uuid.UUID,
        amount: int,
        conversation_id: uuid.UUID | None = None,
    ) -> TipOutcome:
        """Send coins to another actor."""
        result = await self._apply(
            "tip",
            self._ledger.transfer_coins(
                TransferCoinsRequest(
                    sender_id=actor.actor_id,
                    recipient_id=recipient_id,
                    amount=amount,
                    metadata={
                        "conversation_id": str(conversation_id)
                        if conversation_id
                        else None,
                        "tip_type": "direct",
                    },
                )
            ),
        )
        return TipOutcome(
            amount=result.amount, new_balance=await self.balance(actor.actor_id)
        )

    async def place_bid(
        self,
        actor: ActorContext,
        *,
        auction_id: uuid.UUID,
        amount: int,
        max_auto_bid: int | None = None,
    ) -> BidOutcome:
        """Bid on an auction; the bid amount is held in escrow."""
        result = await self._apply(
            "place_bid",
            self._ledger.place_auction_bid(
                PlaceBidRequest(
                    auction_id=auction_id,
                    bidder_id=actor.actor_id,
                    amount=amount,
                    max_auto_bid=max_auto_bid,
                )
            ),
        )
        return BidOutcome(result=result, new_balance=await self.balance(actor.actor_id))

    async def buy_now(
        self,
        actor: ActorContext,
        *,
        auction_id: uuid.UUID,
    ) -> BuyNowOutcome:
        result = await self._apply(
            "buy_now",
            self._ledger.buy_now(
                BuyNowRequest(
                    auction_id=auction_id,
                    buyer_id=actor.actor_id,
                    earnings_share=self._earnings_share,
                )
            ),
        )
        return BuyNowOutcome(
            result=result, new_balance=await self.balance(actor.actor_id)
        )

    async def cancel_auction(
        self,
        actor: ActorContext,
        *,
        auction_id: uuid.UUID,
    ) -> CancelAuctionOutcome:
        """Cancel an auction the caller owns, refunding all held escrow.

        Raises:
            ForbiddenError: If the caller is not a model.
        """
        if actor.actor_type != "model":
            raise ForbiddenError("Only models can cancel auctions")
        result = await self._apply(
            "cancel_auction",
            self._ledger.cancel_auction(
                CancelAuctionRequest(auction_id=auction_id, owner_id=actor.actor_id)
            ),
        )
        return CancelAuctionOutcome(
            result=result, new_balance=await self.balance(actor.actor_id)
        )

    async def end_call(
        self,
        actor: ActorContext,
        *,
        session_id: uuid.UUID,
    ) -> EndCallOutcome:
        """End a call the caller participates in and settle its cost."""
        result = await self._apply(
            "end_call",
            self._ledger.settle_call(
                SettleCallRequest(
                    session_id=session_id,
                    actor_id=actor.actor_id,
                    rate_per_minute=self._call_rate,
                    earnings_share=self._earnings_share,
                )
            ),
        )
        return EndCallOutcome(
            result=result, new_balance=await self.balance(actor.actor_id)
        )

    async def grant_coins(
        self,
        actor: ActorContext,
        *,
        recipient_id: uuid.UUID,
        amount: int,
        reason: str,
    ) -> GrantOutcome:
        """Credit coins to any actor (admin only).

        Raises:
            ForbiddenError: If the caller is not an admin.
        """
        if actor.actor_type != "admin":
            raise ForbiddenError("Admin access required")
        await self._apply(
            "grant_coins",
            self._ledger.add_coins(
                AdjustCoinsRequest(
                    actor_id=recipient_id,
                    amount=amount,
                    action="admin_grant",
                    metadata={"granted_by": str(actor.actor_id), "reason": reason},
                )
            ),
        )
        logger.info(
            "Admin %s granted %d coins to %s", actor.actor_id, amount, recipient_id
        )
        return GrantOutcome(
            recipient_id=recipient_id,
            amount=amount,
            new_balance=await self.balance(recipient_id),
        )
