"""User model - authentication identity.

The auth identity is distinct from the actor identity (actors table) and
from role-profile identities (models, fans, brands). Requests resolve the
right one before any mutation.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modelhub.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from modelhub.models.actor import Actor

_DEFAULT_UUID = text("gen_random_uuid()")


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: UUID primary key (JWT ``sub`` claim).
        email: Unique email address.
        token_invalidated_before: JWTs issued before this are rejected.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    token_invalidated_before: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    actor: Mapped["Actor | None"] = relationship(
        "Actor",
        back_populates="user",
        uselist=False,
    )
