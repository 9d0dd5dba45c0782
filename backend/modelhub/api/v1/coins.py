"""Coins API router.

Read-only balance and ledger history for the authenticated actor.
Balance-changing endpoints live with the resource they act on (tips,
auctions, calls, admin).
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from modelhub.api.deps import CurrentActor, DbSession, Gateway
from modelhub.core.pagination import PaginationParams, pagination_params
from modelhub.core.responses import DataResponse, ListResponse, PaginationMeta
from modelhub.repositories.coin_repository import CoinRepository
from modelhub.schemas.coins import BalanceResponse, CoinTransactionResponse

router = APIRouter()

Pagination = Annotated[PaginationParams, Depends(pagination_params)]
ActionFilter = Annotated[
    str | None,
    Query(max_length=40, description="Filter by ledger action (e.g., tip_sent)"),
]


@router.get("/balance")
async def get_balance(
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[BalanceResponse]:
    """Return the actor's current coin balance."""
    balance = await gateway.balance(actor.actor_id)
    return DataResponse(data=BalanceResponse(balance=balance, as_of=datetime.now(UTC)))


@router.get("/transactions")
async def list_transactions(
    actor: CurrentActor,
    db: DbSession,
    pagination: Pagination,
    action: ActionFilter = None,
) -> ListResponse[CoinTransactionResponse]:
    """Return the actor's ledger rows, newest first."""
    txns, total = await CoinRepository.list_by_actor(
        db,
        actor.actor_id,
        offset=pagination.offset,
        limit=pagination.limit,
        action=action,
    )
    return ListResponse(
        data=[
            CoinTransactionResponse(
                id=txn.id,
                amount=txn.amount,
                action=txn.action,
                metadata=txn.metadata_,
                created_at=txn.created_at,
            )
            for txn in txns
        ],
        meta=PaginationMeta(
            total=total,
            page=pagination.page,
            per_page=pagination.per_page,
        ),
    )
