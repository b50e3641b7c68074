"""Append-only redemption records and their audit companions."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, Numeric, String, Text

from fidelya_api.core.timestamps import utcnow
from fidelya_api.db.base import Base


def _new_id() -> str:
    return uuid4().hex


class RedemptionOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class Redemption(Base):
    """Immutable snapshot of a validated benefit redemption."""

    __tablename__ = "redemptions"
    __table_args__ = (Index("ix_redemptions_member_created", "member_id", "created_at", "id"),)

    id = Column(String(64), primary_key=True, default=_new_id)
    member_id = Column(String(64), nullable=False)
    member_name = Column(String(255), nullable=True)
    member_email = Column(String(255), nullable=True)
    merchant_id = Column(String(64), nullable=False, index=True)
    merchant_name = Column(String(255), nullable=True)
    merchant_category = Column(String(120), nullable=True)
    merchant_address = Column(Text, nullable=True)
    merchant_logo_url = Column(String(512), nullable=True)
    benefit_id = Column(String(64), nullable=False, index=True)
    benefit_title = Column(String(255), nullable=True)
    benefit_description = Column(Text, nullable=True)
    benefit_discount_kind = Column(String(32), nullable=True)
    benefit_discount_value = Column(Numeric(12, 2), nullable=True)
    association_id = Column(String(64), nullable=True, index=True)
    association_name = Column(String(255), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    validation_code = Column(String(64), nullable=False, unique=True)
    outcome = Column(String(16), nullable=False, default=RedemptionOutcome.SUCCESS.value)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class UsageHistoryEntry(Base):
    """Human-readable audit mirror of a successful redemption."""

    __tablename__ = "benefit_usage_history"

    id = Column(String(64), primary_key=True, default=_new_id)
    redemption_id = Column(String(64), nullable=True, index=True)
    benefit_id = Column(String(64), nullable=False, index=True)
    benefit_title = Column(String(255), nullable=True)
    member_id = Column(String(64), nullable=False, index=True)
    member_name = Column(String(255), nullable=True)
    member_email = Column(String(255), nullable=True)
    merchant_id = Column(String(64), nullable=False, index=True)
    merchant_name = Column(String(255), nullable=True)
    association_id = Column(String(64), nullable=True)
    association_name = Column(String(255), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    original_amount = Column(Numeric(12, 2), nullable=True)
    final_amount = Column(Numeric(12, 2), nullable=True)
    validation_code = Column(String(64), nullable=True)
    status = Column(String(32), nullable=False, default="used")
    payment_method = Column(String(64), nullable=True)
    source = Column(String(64), nullable=True)
    details = Column(Text, nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class FailedRedemptionAttempt(Base):
    """Rejected redemption attempt with the reason it was refused."""

    __tablename__ = "failed_redemption_attempts"

    id = Column(String(64), primary_key=True, default=_new_id)
    member_id = Column(String(64), nullable=True, index=True)
    merchant_id = Column(String(64), nullable=True, index=True)
    benefit_id = Column(String(64), nullable=True)
    association_id = Column(String(64), nullable=True)
    reason = Column(Text, nullable=False)
    error_kind = Column(String(64), nullable=False)
    request_payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
