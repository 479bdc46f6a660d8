"""
Initial scheduling schema: bookings, availability, deposit policies, billing
and the webhook ledger.

Revision ID: 20261019_01_initial_scheduling_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_01_initial_scheduling_schema"
down_revision: Union[str, None] = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    booking_status = sa.Enum(
        "pending", "confirmed", "cancelled", "no-show", "completed", name="bookingstatus"
    )
    appointment_type = sa.Enum("consultation", "session", name="appointmenttype")

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("appointment_type", appointment_type, nullable=False),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column("deposit_required_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deposit_paid_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deposit_forfeited_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("balance_paid_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("project_id", sa.String(length=64), nullable=True),
        sa.Column("session_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rescheduled_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rescheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rescheduled_by", sa.String(length=16), nullable=True),
        sa.Column("reschedule_notice_hours", sa.Float(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(length=16), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("no_show_marked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("no_show_marked_by", sa.String(length=16), nullable=True),
        sa.Column("no_show_reason", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("end_at > start_at", name="ck_bookings_window"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_provider_id", "bookings", ["provider_id"])
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_project_id", "bookings", ["project_id"])
    op.create_index("ix_bookings_provider_start", "bookings", ["provider_id", "start_at"])

    op.create_table(
        "availability_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("slot_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("weekly", sa.JSON(), nullable=False),
        sa.Column("exceptions", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_availability_templates_provider_id", "availability_templates", ["provider_id"], unique=True)

    op.create_table(
        "deposit_policies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("mode", sa.Enum("flat", "percent", name="depositmode"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False, server_default="5000"),
        sa.Column("percent", sa.Float(), nullable=False, server_default="0.2"),
        sa.Column("min_cents", sa.Integer(), nullable=False, server_default="5000"),
        sa.Column("max_cents", sa.Integer(), nullable=True),
        sa.Column("non_refundable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("cutoff_hours", sa.Integer(), nullable=False, server_default="48"),
        *_timestamps(),
    )
    op.create_index("ix_deposit_policies_provider_id", "deposit_policies", ["provider_id"], unique=True)

    op.create_table(
        "billing_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.Enum("deposit", "final_payment", name="billingtype"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False, server_default="usd"),
        sa.Column("status", sa.Enum("pending", "paid", "refunded", name="billingstatus"), nullable=False),
        sa.Column("external_ref", sa.String(length=128), nullable=True),
        sa.Column("deposit_applied_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_billing_records_booking_id", "billing_records", ["booking_id"])
    op.create_index("ix_billing_records_status", "billing_records", ["status"])
    op.create_index("ix_billing_records_external_ref", "billing_records", ["external_ref"])

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_event_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("outcome", sa.String(length=64), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_webhook_events_external_event_id", "webhook_events", ["external_event_id"], unique=True)
    op.create_index("ix_webhook_events_processed", "webhook_events", ["processed"])

    op.create_table(
        "provider_calendar_locks",
        sa.Column("provider_id", sa.String(length=64), primary_key=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "client_booking_permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("granted_by", sa.String(length=16), nullable=False, server_default="provider"),
        *_timestamps(),
        sa.UniqueConstraint("provider_id", "client_id", name="uq_booking_permission_pair"),
    )

    op.create_table(
        "booking_cooldowns",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("client_id", "provider_id", name="uq_booking_cooldown_pair"),
    )

    # Overlapping active bookings for one provider are rejected by the database.
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings
              ADD CONSTRAINT bookings_no_overlap_per_provider
              EXCLUDE USING gist (
                provider_id WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
              )
              WHERE (status IN ('pending', 'confirmed'))
            """
        )


def downgrade() -> None:
    op.drop_table("booking_cooldowns")
    op.drop_table("client_booking_permissions")
    op.drop_table("provider_calendar_locks")
    op.drop_table("webhook_events")
    op.drop_table("billing_records")
    op.drop_table("deposit_policies")
    op.drop_table("availability_templates")
    op.drop_table("bookings")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in ("billingstatus", "billingtype", "depositmode", "bookingstatus", "appointmenttype"):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
