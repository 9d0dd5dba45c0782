"""Repository for actor identity lookups.

Resolves an auth user (users.id, the JWT sub) to the actor (actors.id)
that owns balances.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modelhub.models import Actor


class ActorRepository:
    """Stateless repository for Actor lookups.

    All methods are static. Pass an AsyncSession for every call so the
    caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_user_id(db: AsyncSession, user_id: uuid.UUID) -> Actor | None:
        """Fetch the actor for an auth user.

        Args:
            db: Async database session.
            user_id: Auth identity (JWT sub).

        Returns:
            Actor if the user has been provisioned, None otherwise.
        """
        result = await db.execute(select(Actor).where(Actor.user_id == user_id))
        return result.scalar_one_or_none()
