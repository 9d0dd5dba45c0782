"""Actor and role-profile models.

Actor is the application-level identity carrying a role tag; it owns coin
balances and is the unit of authorization. Role profiles (models, fans,
brands) hold role-specific data and have their own ID space, linked to the
auth user through user_id.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modelhub.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from modelhub.models.user import User

_DEFAULT_UUID = text("gen_random_uuid()")


class ActorType(str, Enum):
    """Role tag carried by every actor."""

    MODEL = "model"
    FAN = "fan"
    BRAND = "brand"
    ADMIN = "admin"


class Actor(Base, TimestampMixin):
    """Application-level identity (one per auth user).

    Attributes:
        id: UUID primary key (actor identity).
        user_id: FK to users (auth identity), unique.
        type: One of model, fan, brand, admin.
    """

    __tablename__ = "actors"
    __table_args__ = (
        CheckConstraint(
            "type IN ('model', 'fan', 'brand', 'admin')",
            name="ck_actors_type_valid",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="actor")

    @property
    def actor_type(self) -> ActorType:
        """Role tag as an enum."""
        return ActorType(self.type)


class ModelProfile(Base, TimestampMixin):
    """Model role profile.

    Attributes:
        id: UUID primary key (profile identity, used by auctions and offers).
        user_id: FK to users (auth identity).
        username: Public handle.
        first_name: Display name (optional).
        email: Contact email for invitations (optional).
    """

    __tablename__ = "models"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    username: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @property
    def display_name(self) -> str:
        """First name when set, otherwise the username."""
        return self.first_name or self.username


class FanProfile(Base, TimestampMixin):
    """Fan role profile."""

    __tablename__ = "fans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)


class BrandProfile(Base, TimestampMixin):
    """Brand role profile."""

    __tablename__ = "brands"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    company_name: Mapped[str] = mapped_column(String(100), nullable=False)
