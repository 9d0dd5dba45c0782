"""Repository for coin ledger history reads.

Balance mutations never go through here; they belong to the atomic
ledger (modelhub.ledger). This repository only reads the append-only
coin_transactions table.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modelhub.models import CoinTransaction


class CoinRepository:
    """Stateless repository for CoinTransaction reads."""

    @staticmethod
    async def list_by_actor(
        db: AsyncSession,
        actor_id: uuid.UUID,
        *,
        offset: int = 0,
        limit: int = 20,
        action: str | None = None,
    ) -> tuple[list[CoinTransaction], int]:
        """List an actor's ledger rows, newest first.

        Args:
            db: Async database session.
            actor_id: Actor to query transactions for.
            offset: Number of records to skip.
            limit: Maximum records to return.
            action: Optional filter (tip_sent, auction_escrow, ...).

        Returns:
            Tuple of (transactions list, total count).
        """
        conditions = [CoinTransaction.actor_id == actor_id]
        if action is not None:
            conditions.append(CoinTransaction.action == action)

        count_stmt = (
            select(func.count()).select_from(CoinTransaction).where(*conditions)
        )
        total = (await db.execute(count_stmt)).scalar_one()

        data_stmt = (
            select(CoinTransaction)
            .where(*conditions)
            .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id)
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(data_stmt)
        return list(result.scalars().all()), total
