"""Shared dependencies for API endpoints.

Authentication, actor resolution, and coin ledger wiring.
Local-first mode uses DEFAULT_USER_ID; hosted mode validates JWT from cookie.

Identity resolves in two steps, matching the two ID spaces a request must
cross before touching coins: the auth user (JWT sub) and then its actor.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modelhub.core.config import settings
from modelhub.core.database import get_db
from modelhub.core.deep_link import DeepLinkSigner
from modelhub.core.errors import NotFoundError, UnauthorizedError
from modelhub.ledger import CoinLedger, PostgresCoinLedger
from modelhub.models import User
from modelhub.repositories.actor_repository import ActorRepository
from modelhub.services.coin_gateway import ActorContext, CoinGateway


async def get_current_user_id(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> uuid.UUID:
    """Get current user ID from auth context.

    Validation steps (hosted mode):
    1. Read JWT from cookie
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub as UUID
    5. Check token_invalidated_before (revocation)

    Args:
        request: HTTP request (injected by FastAPI).
        db: Database session for revocation check (injected).

    Returns:
        UUID of the current authenticated user.

    Raises:
        UnauthorizedError: 401 for any auth failure. The reason is never
            disclosed.
    """
    if not settings.auth_enabled:
        if settings.default_user_id is None:
            raise UnauthorizedError()
        return settings.default_user_id

    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise UnauthorizedError()

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
        )
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise UnauthorizedError() from exc

    # Security: iat is required for revocation check. A JWT without iat
    # would bypass token_invalidated_before entirely.
    iat = payload.get("iat")
    if iat is None:
        raise UnauthorizedError()

    result = await db.execute(
        select(User.token_invalidated_before).where(User.id == user_id)
    )
    invalidated_before = result.scalar_one_or_none()
    if invalidated_before is not None and iat < invalidated_before.timestamp():
        raise UnauthorizedError()

    return user_id


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_actor(user_id: CurrentUserId, db: DbSession) -> ActorContext:
    """Resolve the authenticated user's actor.

    Raises:
        NotFoundError: 404 when the user has no actor record.
    """
    actor = await ActorRepository.get_by_user_id(db, user_id)
    if actor is None:
        raise NotFoundError("Actor")
    return ActorContext(actor_id=actor.id, actor_type=actor.type)


CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]


def get_coin_ledger(db: DbSession) -> CoinLedger:
    """Ledger bound to the request's database session."""
    return PostgresCoinLedger(db)


def get_coin_gateway(
    ledger: Annotated[CoinLedger, Depends(get_coin_ledger)],
) -> CoinGateway:
    return CoinGateway(
        ledger,
        call_rate_per_minute=settings.call_rate_coins_per_minute,
        earnings_share=settings.creator_earnings_share,
    )


Gateway = Annotated[CoinGateway, Depends(get_coin_gateway)]


def get_deep_link_signer() -> DeepLinkSigner:
    """Signer built from settings.

    Raises:
        ConfigurationError: If DEEP_LINK_SECRET is absent or malformed
            (answered as 503 by the application handler).
    """
    return DeepLinkSigner.from_settings(settings)


Signer = Annotated[DeepLinkSigner, Depends(get_deep_link_signer)]
