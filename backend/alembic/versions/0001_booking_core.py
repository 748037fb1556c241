"""Booking core schema: users, boats, periods, bookings, checkouts, payments.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = sa.Enum("RENTER", "OWNER", "ADMIN", name="userrole")
USER_STATUS = sa.Enum("ACTIVE", "SUSPENDED", name="userstatus")
PERIOD_KIND = sa.Enum("BOOKING", "MANUAL_BLOCK", "AVAILABLE_OVERRIDE", name="periodkind")
BOOKING_STATUS = sa.Enum(
    "PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", name="bookingstatus"
)
PAYMENT_STATUS = sa.Enum("PENDING", "PAID", "FAILED", name="paymentstatus")
ACTOR = sa.Enum("RENTER", "OWNER", "ADMIN", "SYSTEM", name="actor")
CHECKOUT_STEP = sa.Enum(
    "IDENTITY", "PAYMENT", "COMPLETED", "ABANDONED", "CONFLICTED", name="checkoutstep"
)
TRANSACTION_STATUS = sa.Enum(
    "SUCCEEDED", "FAILED", "REFUNDED", name="paymenttransactionstatus"
)

JSONB_TYPE = postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("phone_number", sa.String(length=255)),
        sa.Column("birth_date", sa.Date()),
        sa.Column("street", sa.String(length=512)),
        sa.Column("city", sa.String(length=120)),
        sa.Column("state", sa.String(length=120)),
        sa.Column("postal_code", sa.String(length=20)),
        sa.Column("country", sa.String(length=120)),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("status", USER_STATUS, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "boats",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "owner_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("boat_type", sa.String(length=60)),
        sa.Column("destination", sa.String(length=200)),
        sa.Column("capacity", sa.Integer()),
        sa.Column("daily_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("equipment", JSONB_TYPE, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_boats_owner_id", "boats", ["owner_id"])

    op.create_table(
        "unavailable_periods",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "boat_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("boats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", PERIOD_KIND, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=255)),
        sa.Column(
            "created_by_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        *_timestamps(),
        sa.CheckConstraint("start_date <= end_date", name="ck_unavailable_periods_range"),
    )
    op.create_index(
        "ix_unavailable_periods_boat_dates",
        "unavailable_periods",
        ["boat_id", "start_date", "end_date"],
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "boat_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("boats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "renter_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "owner_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("daily_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("service_fee_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("status", BOOKING_STATUS, nullable=False),
        sa.Column("payment_status", PAYMENT_STATUS, nullable=False),
        sa.Column("payment_reference", sa.String(length=255), nullable=False),
        sa.Column("renter_name", sa.String(length=255)),
        sa.Column("renter_email", sa.String(length=320)),
        sa.Column("renter_phone", sa.String(length=64)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_by", ACTOR),
        sa.Column("cancellation_reason", sa.String(length=1024)),
        *_timestamps(),
        sa.UniqueConstraint(
            "boat_id",
            "renter_id",
            "start_date",
            "end_date",
            "payment_reference",
            name="uq_bookings_materialization_key",
        ),
        sa.CheckConstraint("start_date <= end_date", name="ck_bookings_range"),
        sa.CheckConstraint("renter_id <> owner_id", name="ck_bookings_not_own_boat"),
    )
    op.create_index(
        "ix_bookings_boat_dates", "bookings", ["boat_id", "start_date", "end_date"]
    )
    op.create_index("ix_bookings_renter_id", "bookings", ["renter_id"])
    op.create_index("ix_bookings_owner_id", "bookings", ["owner_id"])

    op.create_table(
        "reservation_checkouts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "boat_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("boats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "renter_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("step", CHECKOUT_STEP, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("payment_reference", sa.String(length=255)),
        sa.Column("payment_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
        ),
        sa.Column("last_error", sa.String(length=1024)),
        *_timestamps(),
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "checkout_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("reservation_checkouts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "renter_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("provider_reference", sa.String(length=255)),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", TRANSACTION_STATUS, nullable=False),
        sa.Column("failure_reason", sa.String(length=1024)),
        *_timestamps(),
    )
    op.create_index(
        "ix_payment_transactions_checkout_id", "payment_transactions", ["checkout_id"]
    )
    op.create_index(
        "ix_payment_transactions_provider_reference",
        "payment_transactions",
        ["provider_reference"],
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column("ip_address", sa.String(length=64)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_event_type", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index(
        "ix_payment_transactions_provider_reference", table_name="payment_transactions"
    )
    op.drop_index("ix_payment_transactions_checkout_id", table_name="payment_transactions")
    op.drop_table("payment_transactions")
    op.drop_table("reservation_checkouts")
    op.drop_index("ix_bookings_owner_id", table_name="bookings")
    op.drop_index("ix_bookings_renter_id", table_name="bookings")
    op.drop_index("ix_bookings_boat_dates", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_unavailable_periods_boat_dates", table_name="unavailable_periods")
    op.drop_table("unavailable_periods")
    op.drop_index("ix_boats_owner_id", table_name="boats")
    op.drop_table("boats")
    op.drop_table("users")
    bind = op.get_bind()
    for enum_type in (
        TRANSACTION_STATUS,
        CHECKOUT_STEP,
        ACTOR,
        PAYMENT_STATUS,
        BOOKING_STATUS,
        PERIOD_KIND,
        USER_STATUS,
        USER_ROLE,
    ):
        enum_type.drop(bind, checkfirst=True)
