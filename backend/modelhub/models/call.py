"""Video call session model.

Calls are billed per started minute when ended. coins_charged is recorded
on the session so settlement is idempotent: ending an already-ended call
never charges twice.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from modelhub.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")


class VideoCallSession(Base, TimestampMixin):
    """One-to-one video call between two actors.

    Attributes:
        id: UUID primary key.
        initiated_by: FK to actors (the caller, who pays).
        recipient_id: FK to actors (the callee).
        status: pending, active, ended, or missed.
        started_at: When the call connected (None if never connected).
        ended_at: When the call ended.
        duration_seconds: Connected duration, set on end.
        coins_charged: Coins debited from the caller, set on end.
    """

    __tablename__ = "video_call_sessions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'ended', 'missed')",
            name="ck_video_call_sessions_status_valid",
        ),
        CheckConstraint(
            "coins_charged >= 0",
            name="ck_video_call_sessions_charged_nonneg",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    initiated_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'pending'"),
        default="pending",
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coins_charged: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )
