"""Per-member redemption statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Literal, Sequence

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.core.timestamps import to_instant, utcnow
from fidelya_api.db.store import RecordStore, RecordStoreError
from fidelya_api.models import Redemption, RedemptionOutcome

SavingsTrend = Literal["up", "down", "stable"]

TOP_ENTRIES = 5
MONTH_WINDOW = 12
TREND_THRESHOLD_PERCENT = Decimal(10)


@dataclass
class BenefitUsage:
    benefit_id: str
    title: str
    uses: int = 0
    savings: Decimal = Decimal(0)


@dataclass
class MerchantVisits:
    merchant_id: str
    name: str
    visits: int = 0
    last_visit: datetime | None = None


@dataclass
class MonthlyBucket:
    month: str
    redemptions: int = 0
    savings: Decimal = Decimal(0)


@dataclass
class MemberRedemptionStats:
    total_redemptions: int = 0
    total_savings: Decimal = Decimal(0)
    top_benefits: list[BenefitUsage] = field(default_factory=list)
    favourite_merchants: list[MerchantVisits] = field(default_factory=list)
    monthly: list[MonthlyBucket] = field(default_factory=list)
    current_streak: int = 0
    best_streak: int = 0
    average_savings: Decimal = Decimal(0)
    savings_trend: SavingsTrend = "stable"


def _month_keys(now: datetime, months: int) -> list[str]:
    keys = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def compute_streaks(days: Iterable[date], today: date) -> tuple[int, int]:
    """Current and best runs of redemption days at most one day apart."""

    unique = sorted(set(days), reverse=True)
    if not unique:
        return 0, 0

    current = 0
    reference = today
    for day in unique:
        if (reference - day).days <= 1:
            current += 1
            reference = day
        else:
            break

    best = 1
    run = 1
    for previous, following in zip(unique, unique[1:]):
        if (previous - following).days <= 1:
            run += 1
        else:
            best = max(best, run)
            run = 1
    best = max(best, run)
    return current, best


def compute_savings_trend(monthly: Sequence[MonthlyBucket]) -> SavingsTrend:
    """Compare the last three months against the three before them."""

    if len(monthly) < 2:
        return "stable"
    recent = monthly[-3:]
    older = monthly[-6:-3]
    recent_avg = sum((bucket.savings for bucket in recent), Decimal(0)) / len(recent)
    if older:
        older_avg = sum((bucket.savings for bucket in older), Decimal(0)) / len(older)
    else:
        older_avg = recent_avg
    if older_avg == 0:
        return "stable"
    change = (recent_avg - older_avg) / older_avg * 100
    if change > TREND_THRESHOLD_PERCENT:
        return "up"
    if change < -TREND_THRESHOLD_PERCENT:
        return "down"
    return "stable"


def compute_member_stats(redemptions: Iterable[Redemption], now: datetime | None = None) -> MemberRedemptionStats:
    now = to_instant(now or utcnow())
    successful = [item for item in redemptions if item.outcome == RedemptionOutcome.SUCCESS.value]
    stats = MemberRedemptionStats(total_redemptions=len(successful))
    if not successful:
        stats.monthly = [MonthlyBucket(month=key) for key in _month_keys(now, MONTH_WINDOW)]
        return stats

    benefits: dict[str, BenefitUsage] = {}
    merchants: dict[str, MerchantVisits] = {}
    buckets = {key: MonthlyBucket(month=key) for key in _month_keys(now, MONTH_WINDOW)}
    days: list[date] = []

    for item in successful:
        amount = Decimal(item.discount_amount or 0)
        redeemed_at = to_instant(item.created_at)
        stats.total_savings += amount
        days.append(redeemed_at.date())

        usage = benefits.setdefault(
            item.benefit_id, BenefitUsage(benefit_id=item.benefit_id, title=item.benefit_title or "Beneficio")
        )
        usage.uses += 1
        usage.savings += amount

        visits = merchants.setdefault(
            item.merchant_id, MerchantVisits(merchant_id=item.merchant_id, name=item.merchant_name or "Comercio")
        )
        visits.visits += 1
        if visits.last_visit is None or redeemed_at > visits.last_visit:
            visits.last_visit = redeemed_at

        bucket = buckets.get(f"{redeemed_at.year:04d}-{redeemed_at.month:02d}")
        if bucket is not None:
            bucket.redemptions += 1
            bucket.savings += amount

    stats.top_benefits = sorted(benefits.values(), key=lambda entry: entry.uses, reverse=True)[:TOP_ENTRIES]
    stats.favourite_merchants = sorted(merchants.values(), key=lambda entry: entry.visits, reverse=True)[
        :TOP_ENTRIES
    ]
    stats.monthly = list(buckets.values())
    stats.current_streak, stats.best_streak = compute_streaks(days, now.date())
    stats.average_savings = stats.total_savings / stats.total_redemptions
    stats.savings_trend = compute_savings_trend(stats.monthly)
    return stats


class RedemptionStatsService:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def get_member_stats(self, member_id: str) -> MemberRedemptionStats:
        try:
            redemptions = await self._store.query(
                Redemption,
                Redemption.member_id == member_id,
                order_by=(Redemption.created_at.desc(), Redemption.id.desc()),
            )
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to load member redemptions for stats", member_id=member_id, error=str(exc))
            return MemberRedemptionStats()
        return compute_member_stats(redemptions)


__all__ = [
    "BenefitUsage",
    "MemberRedemptionStats",
    "MerchantVisits",
    "MonthlyBucket",
    "RedemptionStatsService",
    "compute_member_stats",
    "compute_savings_trend",
    "compute_streaks",
]
