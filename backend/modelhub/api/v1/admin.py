"""Admin coin API router.

Admin-only coin grants. Role is enforced by the gateway (403 otherwise).
"""

from fastapi import APIRouter, Request

from modelhub.api.deps import CurrentActor, Gateway
from modelhub.core.config import settings
from modelhub.core.rate_limiting import limiter
from modelhub.core.responses import DataResponse
from modelhub.schemas.coins import GrantCoinsRequest, GrantCoinsResponse

router = APIRouter()


@router.post("/coins/grant")
@limiter.limit(settings.rate_limit_financial)
async def grant_coins(
    request: Request,  # noqa: ARG001 - required by slowapi
    body: GrantCoinsRequest,
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[GrantCoinsResponse]:
    """Credit coins to an actor."""
    outcome = await gateway.grant_coins(
        actor,
        recipient_id=body.recipient_id,
        amount=body.amount,
        reason=body.reason,
    )
    return DataResponse(
        data=GrantCoinsResponse(
            recipient_id=outcome.recipient_id,
            amount=outcome.amount,
            new_balance=outcome.new_balance,
        )
    )
