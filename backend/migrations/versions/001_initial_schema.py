"""Initial schema: identities, coin ledger, auctions, offers, calls.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

Three identity spaces: users (auth), actors (balance owner, role tag),
and role profiles (models, fans, brands). coin_balances is mutated only
through the atomic ledger; CHECK (balance >= 0) backs the non-negative
invariant. coin_transactions is append-only.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Shared column types
_PG_UUID = postgresql.UUID(as_uuid=True)
_JSONB = postgresql.JSONB
_UUID_DEFAULT = sa.text("gen_random_uuid()")
_TZ = sa.DateTime(timezone=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", _TZ, server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", _TZ, server_default=sa.func.now(), nullable=False),
    ]


def _profile_owner() -> list[sa.Column]:
    return [
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "user_id",
            _PG_UUID,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables."""
    # pgcrypto provides gen_random_uuid() for UUID primary keys
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # 1. Identities
    op.create_table(
        "users",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("token_invalidated_before", _TZ, nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "actors",
        *_profile_owner(),
        sa.Column("type", sa.String(20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "type IN ('model', 'fan', 'brand', 'admin')",
            name="ck_actors_type_valid",
        ),
    )
    op.create_table(
        "models",
        *_profile_owner(),
        sa.Column("username", sa.String(30), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "fans",
        *_profile_owner(),
        sa.Column("username", sa.String(30), unique=True, nullable=False),
        sa.Column("display_name", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "brands",
        *_profile_owner(),
        sa.Column("company_name", sa.String(100), nullable=False),
        *_timestamps(),
    )

    # 2. Coin ledger
    op.create_table(
        "coin_balances",
        sa.Column(
            "actor_id",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("balance", sa.Integer, server_default="0", nullable=False),
        sa.Column("updated_at", _TZ, server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_coin_balances_nonneg"),
    )
    op.create_table(
        "coin_transactions",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "actor_id",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("metadata", _JSONB, nullable=True),
        sa.Column("created_at", _TZ, server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("amount <> 0", name="ck_coin_txn_amount_nonzero"),
    )
    op.create_index(
        "ix_coin_transactions_actor_created",
        "coin_transactions",
        ["actor_id", sa.text("created_at DESC")],
    )

    # 3. Auctions and escrowed bids
    op.create_table(
        "auctions",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "model_id",
            _PG_UUID,
            sa.ForeignKey("models.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("starting_price", sa.Integer, nullable=False),
        sa.Column("buy_now_price", sa.Integer, nullable=True),
        sa.Column("current_bid", sa.Integer, nullable=True),
        sa.Column("bid_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("status", sa.String(20), server_default="draft", nullable=False),
        sa.Column("ends_at", _TZ, nullable=False),
        sa.Column("original_end_at", _TZ, nullable=False),
        sa.Column("anti_snipe_minutes", sa.Integer, server_default="2", nullable=False),
        sa.Column(
            "winner_id",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'active', 'ended', 'sold', 'cancelled')",
            name="ck_auctions_status_valid",
        ),
        sa.CheckConstraint("starting_price >= 10", name="ck_auctions_starting_min"),
        sa.CheckConstraint(
            "buy_now_price IS NULL OR buy_now_price >= starting_price",
            name="ck_auctions_buy_now_ge_start",
        ),
        sa.CheckConstraint(
            "anti_snipe_minutes BETWEEN 0 AND 10",
            name="ck_auctions_anti_snipe_range",
        ),
    )
    op.create_index("ix_auctions_model_id", "auctions", ["model_id"])
    op.create_index("ix_auctions_status_ends_at", "auctions", ["status", "ends_at"])

    op.create_table(
        "auction_bids",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "auction_id",
            _PG_UUID,
            sa.ForeignKey("auctions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "bidder_id",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("is_buy_now", sa.Boolean, server_default="false", nullable=False),
        sa.Column("max_auto_bid", sa.Integer, nullable=True),
        sa.Column("escrow_amount", sa.Integer, nullable=False),
        sa.Column("escrow_released_at", _TZ, nullable=True),
        sa.Column("created_at", _TZ, server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status IN ('winning', 'outbid', 'won', 'refunded')",
            name="ck_auction_bids_status_valid",
        ),
        sa.CheckConstraint("amount > 0", name="ck_auction_bids_amount_positive"),
        sa.CheckConstraint("escrow_amount >= 0", name="ck_auction_bids_escrow_nonneg"),
        sa.CheckConstraint(
            "max_auto_bid IS NULL OR max_auto_bid >= amount",
            name="ck_auction_bids_max_auto_ge_amount",
        ),
    )
    op.create_index("ix_auction_bids_auction_id", "auction_bids", ["auction_id"])
    op.create_index("ix_auction_bids_bidder_id", "auction_bids", ["bidder_id"])
    # At most one winning bid per auction
    op.create_index(
        "uq_auction_bids_one_winning",
        "auction_bids",
        ["auction_id"],
        unique=True,
        postgresql_where=sa.text("status = 'winning'"),
    )

    # 4. Offers (gigs)
    op.create_table(
        "offers",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "brand_id",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), server_default="open", nullable=False),
        sa.Column("spots", sa.Integer, server_default="1", nullable=False),
        sa.Column("spots_filled", sa.Integer, server_default="0", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('open', 'closed', 'cancelled')",
            name="ck_offers_status_valid",
        ),
        sa.CheckConstraint("spots > 0", name="ck_offers_spots_positive"),
        sa.CheckConstraint(
            "spots_filled >= 0 AND spots_filled <= spots",
            name="ck_offers_spots_filled_range",
        ),
    )
    op.create_index("ix_offers_brand_id", "offers", ["brand_id"])

    op.create_table(
        "offer_responses",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "offer_id",
            _PG_UUID,
            sa.ForeignKey("offers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "model_id",
            _PG_UUID,
            sa.ForeignKey("models.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("responded_at", _TZ, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined')",
            name="ck_offer_responses_status_valid",
        ),
        sa.UniqueConstraint(
            "offer_id", "model_id", name="uq_offer_responses_offer_model"
        ),
    )
    op.create_index("ix_offer_responses_model_id", "offer_responses", ["model_id"])

    # 5. Video calls
    op.create_table(
        "video_call_sessions",
        sa.Column("id", _PG_UUID, server_default=_UUID_DEFAULT, primary_key=True),
        sa.Column(
            "initiated_by",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "recipient_id",
            _PG_UUID,
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("started_at", _TZ, nullable=True),
        sa.Column("ended_at", _TZ, nullable=True),
        sa.Column("duration_seconds", sa.Integer, nullable=True),
        sa.Column("coins_charged", sa.Integer, server_default="0", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'ended', 'missed')",
            name="ck_video_call_sessions_status_valid",
        ),
        sa.CheckConstraint(
            "coins_charged >= 0",
            name="ck_video_call_sessions_charged_nonneg",
        ),
    )
    op.create_index(
        "ix_video_call_sessions_initiated_by", "video_call_sessions", ["initiated_by"]
    )
    op.create_index(
        "ix_video_call_sessions_recipient_id", "video_call_sessions", ["recipient_id"]
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("video_call_sessions")
    op.drop_table("offer_responses")
    op.drop_table("offers")
    op.drop_table("auction_bids")
    op.drop_table("auctions")
    op.drop_table("coin_transactions")
    op.drop_table("coin_balances")
    op.drop_table("brands")
    op.drop_table("fans")
    op.drop_table("models")
    op.drop_table("actors")
    op.drop_table("users")
