"""Atomic coin ledger.

Exports:
    CoinLedger interface and its request/result types
    LedgerOperationError
    PostgresCoinLedger (production) and MockCoinLedger (tests)
"""

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
from modelhub.ledger.errors import LedgerOperationError
from modelhub.ledger.mock_adapter import MockCoinLedger
from modelhub.ledger.postgres_adapter import PostgresCoinLedger

__all__ = [
    # Interface
    "CoinLedger",
    "LedgerOperationError",
    # Requests / results
    "AdjustCoinsRequest",
    "AdjustCoinsResult",
    "TransferCoinsRequest",
    "TransferCoinsResult",
    "PlaceBidRequest",
    "PlaceBidResult",
    "BuyNowRequest",
    "BuyNowResult",
    "CancelAuctionRequest",
    "CancelAuctionResult",
    "SettleCallRequest",
    "SettleCallResult",
    # Implementations
    "PostgresCoinLedger",
    "MockCoinLedger",
]
