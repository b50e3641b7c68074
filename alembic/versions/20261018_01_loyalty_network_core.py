"""Loyalty network core tables.

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
    ]


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="socio"),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("association_id", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_accounts"),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"])
    op.create_index("ix_accounts_association_id", "accounts", ["association_id"])

    op.create_table(
        "member_profiles",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("member_number", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("membership_status", sa.String(length=32), nullable=True),
        sa.Column("association_id", sa.String(length=64), nullable=True),
        sa.Column("association_name", sa.String(length=255), nullable=True),
        sa.Column("linked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("savings_total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("last_redemption_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_status_sync_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_member_profiles"),
    )
    op.create_index("ix_member_profiles_email", "member_profiles", ["email"])
    op.create_index("ix_member_profiles_association_id", "member_profiles", ["association_id"])

    op.create_table(
        "associations",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("member_ids", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_associations"),
    )

    op.create_table(
        "merchants",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("linked_association_ids", sa.JSON(), nullable=False),
        sa.Column("redemption_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("customers_served", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("revenue_accrued", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("last_redemption_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_merchants"),
    )

    op.create_table(
        "benefits",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("merchant_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("conditions", sa.Text(), nullable=True),
        sa.Column("discount_kind", sa.String(length=32), nullable=False, server_default="percentage"),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("base_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_limit", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("per_member_limit", sa.Integer(), nullable=True),
        sa.Column("daily_limit", sa.Integer(), nullable=True),
        sa.Column("access_scope", sa.String(length=32), nullable=False, server_default="public"),
        sa.Column("association_ids", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_benefits"),
        sa.ForeignKeyConstraint(
            ["merchant_id"],
            ["merchants.id"],
            name="fk_benefits_merchant_id_merchants",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_benefits_merchant_id", "benefits", ["merchant_id"])
    op.create_index("ix_benefits_status", "benefits", ["status"])

    op.create_table(
        "redemptions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("member_name", sa.String(length=255), nullable=True),
        sa.Column("member_email", sa.String(length=255), nullable=True),
        sa.Column("merchant_id", sa.String(length=64), nullable=False),
        sa.Column("merchant_name", sa.String(length=255), nullable=True),
        sa.Column("merchant_category", sa.String(length=120), nullable=True),
        sa.Column("merchant_address", sa.Text(), nullable=True),
        sa.Column("merchant_logo_url", sa.String(length=512), nullable=True),
        sa.Column("benefit_id", sa.String(length=64), nullable=False),
        sa.Column("benefit_title", sa.String(length=255), nullable=True),
        sa.Column("benefit_description", sa.Text(), nullable=True),
        sa.Column("benefit_discount_kind", sa.String(length=32), nullable=True),
        sa.Column("benefit_discount_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("association_id", sa.String(length=64), nullable=True),
        sa.Column("association_name", sa.String(length=255), nullable=True),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("validation_code", sa.String(length=64), nullable=False),
        sa.Column("outcome", sa.String(length=16), nullable=False, server_default="success"),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_redemptions"),
        sa.UniqueConstraint("validation_code", name="uq_redemptions_validation_code"),
    )
    op.create_index("ix_redemptions_member_created", "redemptions", ["member_id", "created_at", "id"])
    op.create_index("ix_redemptions_merchant_id", "redemptions", ["merchant_id"])
    op.create_index("ix_redemptions_benefit_id", "redemptions", ["benefit_id"])
    op.create_index("ix_redemptions_association_id", "redemptions", ["association_id"])

    op.create_table(
        "benefit_usage_history",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("redemption_id", sa.String(length=64), nullable=True),
        sa.Column("benefit_id", sa.String(length=64), nullable=False),
        sa.Column("benefit_title", sa.String(length=255), nullable=True),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("member_name", sa.String(length=255), nullable=True),
        sa.Column("member_email", sa.String(length=255), nullable=True),
        sa.Column("merchant_id", sa.String(length=64), nullable=False),
        sa.Column("merchant_name", sa.String(length=255), nullable=True),
        sa.Column("association_id", sa.String(length=64), nullable=True),
        sa.Column("association_name", sa.String(length=255), nullable=True),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("original_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("final_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("validation_code", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="used"),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("source", sa.String(length=64), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_benefit_usage_history"),
    )
    op.create_index("ix_benefit_usage_history_redemption_id", "benefit_usage_history", ["redemption_id"])
    op.create_index("ix_benefit_usage_history_benefit_id", "benefit_usage_history", ["benefit_id"])
    op.create_index("ix_benefit_usage_history_member_id", "benefit_usage_history", ["member_id"])
    op.create_index("ix_benefit_usage_history_merchant_id", "benefit_usage_history", ["merchant_id"])

    op.create_table(
        "failed_redemption_attempts",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=True),
        sa.Column("merchant_id", sa.String(length=64), nullable=True),
        sa.Column("benefit_id", sa.String(length=64), nullable=True),
        sa.Column("association_id", sa.String(length=64), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("error_kind", sa.String(length=64), nullable=False),
        sa.Column("request_payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_failed_redemption_attempts"),
    )
    op.create_index("ix_failed_redemption_attempts_member_id", "failed_redemption_attempts", ["member_id"])
    op.create_index("ix_failed_redemption_attempts_merchant_id", "failed_redemption_attempts", ["merchant_id"])

    op.create_table(
        "merchant_customers",
        sa.Column("id", sa.String(length=160), nullable=False),
        sa.Column("merchant_id", sa.String(length=64), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_redemption_id", sa.String(length=64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id", name="pk_merchant_customers"),
    )
    op.create_index("ix_merchant_customers_merchant_id", "merchant_customers", ["merchant_id"])
    op.create_index("ix_merchant_customers_member_id", "merchant_customers", ["member_id"])

    op.create_table(
        "notification_triggers",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("event_name", sa.String(length=120), nullable=False),
        sa.Column("target_member_id", sa.String(length=64), nullable=False),
        sa.Column("template_variables", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_notification_triggers"),
    )
    op.create_index("ix_notification_triggers_event_name", "notification_triggers", ["event_name"])
    op.create_index("ix_notification_triggers_target_member_id", "notification_triggers", ["target_member_id"])


def downgrade() -> None:
    op.drop_index("ix_notification_triggers_target_member_id", table_name="notification_triggers")
    op.drop_index("ix_notification_triggers_event_name", table_name="notification_triggers")
    op.drop_table("notification_triggers")

    op.drop_index("ix_merchant_customers_member_id", table_name="merchant_customers")
    op.drop_index("ix_merchant_customers_merchant_id", table_name="merchant_customers")
    op.drop_table("merchant_customers")

    op.drop_index("ix_failed_redemption_attempts_merchant_id", table_name="failed_redemption_attempts")
    op.drop_index("ix_failed_redemption_attempts_member_id", table_name="failed_redemption_attempts")
    op.drop_table("failed_redemption_attempts")

    op.drop_index("ix_benefit_usage_history_merchant_id", table_name="benefit_usage_history")
    op.drop_index("ix_benefit_usage_history_member_id", table_name="benefit_usage_history")
    op.drop_index("ix_benefit_usage_history_benefit_id", table_name="benefit_usage_history")
    op.drop_index("ix_benefit_usage_history_redemption_id", table_name="benefit_usage_history")
    op.drop_table("benefit_usage_history")

    op.drop_index("ix_redemptions_association_id", table_name="redemptions")
    op.drop_index("ix_redemptions_benefit_id", table_name="redemptions")
    op.drop_index("ix_redemptions_merchant_id", table_name="redemptions")
    op.drop_index("ix_redemptions_member_created", table_name="redemptions")
    op.drop_table("redemptions")

    op.drop_index("ix_benefits_status", table_name="benefits")
    op.drop_index("ix_benefits_merchant_id", table_name="benefits")
    op.drop_table("benefits")

    op.drop_table("merchants")
    op.drop_table("associations")

    op.drop_index("ix_member_profiles_association_id", table_name="member_profiles")
    op.drop_index("ix_member_profiles_email", table_name="member_profiles")
    op.drop_table("member_profiles")

    op.drop_index("ix_accounts_association_id", table_name="accounts")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
