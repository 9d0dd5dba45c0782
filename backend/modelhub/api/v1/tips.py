"""Tips API router.

POST /tips moves coins from the caller to another actor in one atomic
ledger transfer.
"""

from fastapi import APIRouter, Request

from modelhub.api.deps import CurrentActor, Gateway
from modelhub.core.config import settings
from modelhub.core.rate_limiting import limiter
from modelhub.core.responses import DataResponse
from modelhub.schemas.coins import TipRequest, TipResponse

router = APIRouter()


@router.post("")
@limiter.limit(settings.rate_limit_financial)
async def send_tip(
    request: Request,  # noqa: ARG001 - required by slowapi
    body: TipRequest,
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[TipResponse]:
    """Tip another actor.

    Errors: 400 insufficient balance or self-tip, 404 unknown recipient.
    """
    outcome = await gateway.tip(
        actor,
        recipient_id=body.recipient_id,
        amount=body.amount,
        conversation_id=body.conversation_id,
    )
    return DataResponse(
        data=TipResponse(amount=outcome.amount, new_balance=outcome.new_balance)
    )
