"""Video call API router."""

import uuid

from fastapi import APIRouter, Request

from modelhub.api.deps import CurrentActor, Gateway
from modelhub.core.config import settings
from modelhub.core.rate_limiting import limiter
from modelhub.core.responses import DataResponse
from modelhub.schemas.calls import EndCallResponse

router = APIRouter()


@router.post("/{session_id}/end")
@limiter.limit(settings.rate_limit_financial)
async def end_call(
    request: Request,  # noqa: ARG001 - required by slowapi
    session_id: uuid.UUID,
    actor: CurrentActor,
    gateway: Gateway,
) -> DataResponse[EndCallResponse]:
    """End a call and settle its cost.

    Either participant may end the call. Ending an already-ended call
    returns the original settlement without charging again.
    """
    outcome = await gateway.end_call(actor, session_id=session_id)
    result = outcome.result
    return DataResponse(
        data=EndCallResponse(
            duration_seconds=result.duration_seconds,
            coins_charged=result.coins_charged,
            creator_earnings=result.creator_earnings,
            already_ended=result.already_ended,
            new_balance=outcome.new_balance,
        )
    )
