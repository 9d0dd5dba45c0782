"""Ledger operation failures.

A ledger operation either applies completely or raises LedgerOperationError
with a business-rule message. The message text is the contract: the gateway
maps it to a client-facing error by case-insensitive substring match, the
same way it would read the error of a remote stored procedure.
"""

__all__ = [
    "LedgerOperationError",
    "INSUFFICIENT_BALANCE",
    "AMOUNT_NOT_POSITIVE",
    "ACTOR_NOT_FOUND",
    "RECIPIENT_NOT_FOUND",
    "AUCTION_NOT_FOUND",
    "CALL_NOT_FOUND",
    "AUCTION_NOT_ACTIVE",
    "OWN_AUCTION_BID",
    "BID_TOO_LOW",
    "BID_BELOW_MINIMUM",
    "MAX_AUTO_BID_TOO_LOW",
    "BUY_NOW_UNAVAILABLE",
    "SELF_TIP",
    "NOT_AUCTION_OWNER",
    "NOT_CALL_PARTICIPANT",
]

INSUFFICIENT_BALANCE = "Insufficient coin balance"
AMOUNT_NOT_POSITIVE = "Amount must be positive"
ACTOR_NOT_FOUND = "Actor not found"
RECIPIENT_NOT_FOUND = "Recipient not found"
AUCTION_NOT_FOUND = "Auction not found"
CALL_NOT_FOUND = "Call session not found"
AUCTION_NOT_ACTIVE = "Auction is not active"
OWN_AUCTION_BID = "Cannot bid on your own auction"
BID_TOO_LOW = "Bid must be higher than current bid"
BID_BELOW_MINIMUM = "Bid must meet the minimum starting price"
MAX_AUTO_BID_TOO_LOW = "Max auto-bid must be greater than or equal to bid amount"
BUY_NOW_UNAVAILABLE = "Buy now is not available"
SELF_TIP = "Cannot tip yourself"
NOT_AUCTION_OWNER = "Not your auction"
NOT_CALL_PARTICIPANT = "Not a participant in this call"


class LedgerOperationError(Exception):
    """An atomic ledger operation refused the request.

    Nothing was applied: the operation's changes are rolled back before
    this is raised.

    Attributes:
        message: Business-rule text (e.g., "Insufficient coin balance").
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
