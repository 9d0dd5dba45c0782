"""Coin request/response schemas.

Coin amounts are whole coins. Request bodies reject unknown fields.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Bounds on a single coin movement
MIN_COIN_AMOUNT = 1
MAX_COIN_AMOUNT = 100_000

# =============================================================================
# Requests
# =============================================================================


class TipRequest(BaseModel):
    """Request body for POST /api/v1/tips.

    Attributes:
        recipient_id: Actor receiving the tip.
        amount: Coins to send.
        conversation_id: Optional conversation the tip was sent from.
    """

    model_config = ConfigDict(extra="forbid")

    recipient_id: uuid.UUID
    amount: int = Field(ge=MIN_COIN_AMOUNT, le=MAX_COIN_AMOUNT)
    conversation_id: uuid.UUID | None = None


class GrantCoinsRequest(BaseModel):
    """Request body for POST /api/v1/admin/coins/grant."""

    model_config = ConfigDict(extra="forbid")

    recipient_id: uuid.UUID
    amount: int = Field(ge=MIN_COIN_AMOUNT, le=MAX_COIN_AMOUNT)
    reason: str = Field(min_length=1, max_length=255)


# =============================================================================
# Responses
# =============================================================================


class BalanceResponse(BaseModel):
    """Response for GET /api/v1/coins/balance.

    Attributes:
        balance: Current coin balance.
        as_of: Timestamp when the balance was read.
    """

    model_config = ConfigDict(extra="forbid")

    balance: int
    as_of: datetime


class CoinTransactionResponse(BaseModel):
    """Response item for GET /api/v1/coins/transactions."""

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    amount: int
    action: str
    metadata: dict[str, Any] | None
    created_at: datetime


class TipResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int
    new_balance: int


class GrantCoinsResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    recipient_id: uuid.UUID
    amount: int
    new_balance: int
