"""Committed redemption data handed to callers and post-commit steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class RedemptionRequest:
    member_id: str
    merchant_id: str
    benefit_id: Optional[str] = None
    association_id: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "member_id": self.member_id,
            "merchant_id": self.merchant_id,
            "benefit_id": self.benefit_id,
            "association_id": self.association_id,
        }


@dataclass(frozen=True)
class MemberSnapshot:
    id: str
    name: str
    member_number: str
    email: Optional[str]
    membership_status: str


@dataclass(frozen=True)
class MerchantSnapshot:
    id: str
    name: str
    category: Optional[str]
    address: Optional[str]
    logo_url: Optional[str]


@dataclass(frozen=True)
class BenefitSnapshot:
    id: str
    title: str
    description: Optional[str]
    discount_kind: str
    discount_value: Decimal
    conditions: Optional[str]


@dataclass(frozen=True)
class RedemptionReceipt:
    """Plain copy of a committed redemption, detached from any session."""

    redemption_id: str
    validation_code: str
    discount_amount: Decimal
    redeemed_at: datetime
    member: MemberSnapshot
    merchant: MerchantSnapshot
    benefit: BenefitSnapshot
    association_id: Optional[str] = None
    association_name: Optional[str] = None
    flags: tuple[str, ...] = field(default_factory=tuple)


@dataclass
class RedemptionResult:
    success: bool
    message: str
    error: Optional[str] = None
    receipt: Optional[RedemptionReceipt] = None


__all__ = [
    "BenefitSnapshot",
    "MemberSnapshot",
    "MerchantSnapshot",
    "RedemptionReceipt",
    "RedemptionRequest",
    "RedemptionResult",
]
