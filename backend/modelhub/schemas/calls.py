"""Video call settlement schemas."""

from pydantic import BaseModel, ConfigDict


class EndCallResponse(BaseModel):
    """Response for POST /api/v1/calls/{session_id}/end.

    Attributes:
        duration_seconds: Connected duration.
        coins_charged: Coins debited from the caller.
        creator_earnings: Coins credited to the recipient.
        already_ended: True if the call had already been ended (no charge).
        new_balance: Requesting actor's balance, re-read after settlement.
    """

    model_config = ConfigDict(extra="forbid")

    duration_seconds: int
    coins_charged: int
    creator_earnings: int
    already_ended: bool
    new_balance: int
