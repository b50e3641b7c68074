"""Merchants and the benefits they grant."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from fidelya_api.core.timestamps import utcnow
from fidelya_api.db.base import Base


class BenefitStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


class DiscountKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_ITEM = "free-item"


class AccessScope(str, Enum):
    PUBLIC = "public"
    ASSOCIATION = "association"
    DIRECT = "direct"


class Merchant(Base):
    """Affiliated business ("comercio") with aggregate redemption counters."""

    __tablename__ = "merchants"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(120), nullable=True)
    address = Column(Text, nullable=True)
    logo_url = Column(String(512), nullable=True)
    status = Column(String(32), nullable=True, default="active")
    linked_association_ids = Column(JSON, nullable=False, default=list)
    redemption_count = Column(Integer, nullable=False, default=0)
    customers_served = Column(Integer, nullable=False, default=0)
    revenue_accrued = Column(Numeric(12, 2), nullable=False, default=0)
    last_redemption_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


class Benefit(Base):
    """Discount or perk offered by a merchant."""

    __tablename__ = "benefits"

    id = Column(String(64), primary_key=True)
    merchant_id = Column(String(64), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    conditions = Column(Text, nullable=True)
    discount_kind = Column(String(32), nullable=False, default=DiscountKind.PERCENTAGE.value)
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    base_amount = Column(Numeric(12, 2), nullable=True)
    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_to = Column(DateTime(timezone=True), nullable=True)
    total_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    per_member_limit = Column(Integer, nullable=True)
    daily_limit = Column(Integer, nullable=True)
    access_scope = Column(String(32), nullable=False, default=AccessScope.PUBLIC.value)
    association_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(32), nullable=False, default=BenefitStatus.ACTIVE.value, index=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
