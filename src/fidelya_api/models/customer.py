"""Merchant-side customer relationship rows."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, String

from fidelya_api.core.timestamps import utcnow
from fidelya_api.db.base import Base


def merchant_customer_key(merchant_id: str, member_id: str) -> str:
    return f"{merchant_id}_{member_id}"


class MerchantCustomer(Base):
    """One row per (merchant, member) pair that has redeemed at the merchant."""

    __tablename__ = "merchant_customers"

    id = Column(String(160), primary_key=True)
    merchant_id = Column(String(64), nullable=False, index=True)
    member_id = Column(String(64), nullable=False, index=True)
    visit_count = Column(Integer, nullable=False, default=0)
    first_seen_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_seen_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_redemption_id = Column(String(64), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
