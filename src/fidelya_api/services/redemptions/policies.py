"""Named, configurable policies of the redemption engine."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from fidelya_api.core.settings import Settings, settings as default_settings
from fidelya_api.core.timestamps import to_optional_instant, utcnow
from fidelya_api.models import Benefit, DiscountKind, MemberStatus

from .errors import MemberStatusError, StatusGateKind

DiscountPolicy = Callable[[Benefit], Decimal]

_BASE36_ALPHABET = string.digits + string.ascii_uppercase
_ZERO = Decimal("0")
_CENTS = Decimal("0.01")

FLAG_BENEFIT_FALLBACK = "benefit_fallback"
FLAG_BENEFIT_EXPIRED = "benefit_expired"
FLAG_BENEFIT_NOT_STARTED = "benefit_not_started"
FLAG_TOTAL_LIMIT_REACHED = "total_limit_reached"
FLAG_MEMBER_LIMIT_REACHED = "member_limit_reached"
FLAG_DAILY_LIMIT_REACHED = "daily_limit_reached"
FLAG_MEMBER_NUMBER_FALLBACK = "member_number_fallback"
FLAG_INVALID_VALIDITY_WINDOW = "invalid_validity_window"


def zero_discount_policy(benefit: Benefit) -> Decimal:
    """Record every redemption with a zero discount amount."""

    return _ZERO


def face_value_discount_policy(benefit: Benefit) -> Decimal:
    """Derive the amount from the benefit's discount and base amount."""

    value = Decimal(benefit.discount_value or 0)
    base = Decimal(benefit.base_amount) if benefit.base_amount is not None else None
    if benefit.discount_kind == DiscountKind.FIXED.value:
        return value.quantize(_CENTS)
    if benefit.discount_kind == DiscountKind.PERCENTAGE.value:
        if base is None:
            return _ZERO
        return (base * value / Decimal(100)).quantize(_CENTS)
    if benefit.discount_kind == DiscountKind.FREE_ITEM.value:
        return (base or _ZERO).quantize(_CENTS)
    return _ZERO


_DISCOUNT_POLICIES: dict[str, DiscountPolicy] = {
    "zero": zero_discount_policy,
    "face_value": face_value_discount_policy,
}


@dataclass
class RedemptionPolicy:
    """Toggles for the behaviours the engine applies to every redemption.

    ``permissive_mode`` keeps soft checks (validity window and usage limits)
    advisory: violations are flagged on the redemption instead of rejecting it.
    """

    permissive_mode: bool = True
    discount_policy: DiscountPolicy = field(default=zero_discount_policy)
    code_prefix: str = "FID"

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "RedemptionPolicy":
        config = config or default_settings
        return cls(
            permissive_mode=config.redemption_permissive_mode,
            discount_policy=_DISCOUNT_POLICIES[config.redemption_discount_policy],
            code_prefix=config.validation_code_prefix,
        )


def check_member_status(status: Optional[str]) -> None:
    """Strict gate: only ``active`` members may redeem."""

    if not status:
        raise MemberStatusError(StatusGateKind.MISSING, status)
    if status == MemberStatus.SUSPENDED.value:
        raise MemberStatusError(StatusGateKind.SUSPENDED, status)
    if status == MemberStatus.EXPIRED.value:
        raise MemberStatusError(StatusGateKind.EXPIRED, status)
    if status == MemberStatus.INACTIVE.value:
        raise MemberStatusError(StatusGateKind.INACTIVE, status)
    if status != MemberStatus.ACTIVE.value:
        raise MemberStatusError(StatusGateKind.OTHER, status)


def select_benefit(benefits: list[Benefit], requested_id: Optional[str]) -> tuple[Benefit, bool]:
    """Pick the requested benefit, else the first eligible one.

    The boolean is ``True`` when a requested id was not among the eligible
    benefits and the first one was used instead.
    """

    if requested_id:
        for benefit in benefits:
            if benefit.id == requested_id:
                return benefit, False
        return benefits[0], True
    return benefits[0], False


def evaluate_validity_window(benefit: Benefit, now: datetime) -> list[str]:
    flags: list[str] = []
    try:
        valid_to = to_optional_instant(benefit.valid_to)
        valid_from = to_optional_instant(benefit.valid_from)
    except ValueError:
        return [FLAG_INVALID_VALIDITY_WINDOW]
    if valid_to is not None and valid_to < now:
        flags.append(FLAG_BENEFIT_EXPIRED)
    if valid_from is not None and valid_from > now:
        flags.append(FLAG_BENEFIT_NOT_STARTED)
    return flags


def evaluate_usage_limits(benefit: Benefit, member_redemptions: int, redemptions_today: int = 0) -> list[str]:
    """Flag reached limits; ``redemptions_today`` counts successful uses since UTC midnight."""

    flags: list[str] = []
    if benefit.total_limit is not None and (benefit.usage_count or 0) >= benefit.total_limit:
        flags.append(FLAG_TOTAL_LIMIT_REACHED)
    if benefit.per_member_limit is not None and member_redemptions >= benefit.per_member_limit:
        flags.append(FLAG_MEMBER_LIMIT_REACHED)
    if benefit.daily_limit is not None and redemptions_today >= benefit.daily_limit:
        flags.append(FLAG_DAILY_LIMIT_REACHED)
    return flags


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_validation_code(prefix: str, now: datetime | None = None) -> str:
    """``<PREFIX>-<base36 epoch millis>-<5 random base36 chars>``."""

    moment = now or utcnow()
    millis = int(moment.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(5))
    return f"{prefix}-{_to_base36(millis)}-{suffix}"


__all__ = [
    "DiscountPolicy",
    "RedemptionPolicy",
    "check_member_status",
    "evaluate_usage_limits",
    "evaluate_validity_window",
    "face_value_discount_policy",
    "generate_validation_code",
    "select_benefit",
    "zero_discount_policy",
]
