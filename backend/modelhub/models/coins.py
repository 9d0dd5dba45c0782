"""Coin balance and ledger models.

CoinBalance holds the per-actor balance; it is created when the actor is
provisioned and mutated only through the atomic ledger operations.
CoinTransaction is an append-only ledger of every balance change; rows are
never updated or deleted.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from modelhub.models.base import Base

_DEFAULT_UUID = text("gen_random_uuid()")


class CoinBalance(Base):
    """Per-actor coin balance.

    Attributes:
        actor_id: FK to actors, primary key.
        balance: Non-negative integer coin count.
        updated_at: Last mutation time.
    """

    __tablename__ = "coin_balances"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_coin_balances_nonneg"),
    )

    actor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="CASCADE"),
        primary_key=True,
    )
    balance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class CoinTransaction(Base):
    """Append-only ledger of all coin balance changes.

    Positive amounts = credits (tips received, refunds, grants, earnings).
    Negative amounts = debits (tips sent, escrow, purchases, calls).

    Attributes:
        id: UUID primary key.
        actor_id: FK to actors.
        amount: Signed coin amount.
        action: What caused the change (tip_sent, auction_escrow, ...).
        metadata_: Free-form context (auction id, session id, ...).
        created_at: Transaction timestamp.
    """

    __tablename__ = "coin_transactions"
    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_coin_txn_amount_nonzero"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    action: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
    )
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
