"""Video call billing arithmetic.

Calls are billed per started minute: a 61-second call costs two minutes.
Only fan/brand -> model calls are billed, and the charge never exceeds the
caller's balance, so a call can always be ended.
"""

import math
from decimal import Decimal

_SECONDS_PER_MINUTE = 60
_BILLABLE_RECIPIENT_TYPE = "model"


def calculate_call_cost(duration_seconds: int, rate_per_minute: int) -> int:
    """Coins owed for a call.

    Args:
        duration_seconds: Connected duration.
        rate_per_minute: Coins per started minute.

    Returns:
        ceil(duration / 60) * rate, or 0 when either input is not positive.
    """
    if duration_seconds <= 0 or rate_per_minute <= 0:
        return 0
    return math.ceil(duration_seconds / _SECONDS_PER_MINUTE) * rate_per_minute


def creator_earnings(coins_charged: int, share: float) -> int:
    """Recipient's cut of a charge, rounded down to whole coins."""
    if coins_charged <= 0:
        return 0
    # Decimal(str()) avoids float artifacts: 70 * 0.7 == 48.99999999999999
    return math.floor(Decimal(coins_charged) * Decimal(str(share)))


def is_billable_call(initiator_type: str | None, recipient_type: str | None) -> bool:
    """Only non-model callers pay, and only when calling a model."""
    return (
        initiator_type != _BILLABLE_RECIPIENT_TYPE
        and recipient_type == _BILLABLE_RECIPIENT_TYPE
    )


def capped_charge(cost: int, available_balance: int) -> int:
    """Charge for a call, limited to what the caller can pay."""
    return max(0, min(cost, available_balance))
