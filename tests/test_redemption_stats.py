from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fidelya_api.models import Redemption
from fidelya_api.services.redemptions import RedemptionStatsService
from fidelya_api.services.redemptions.stats import (
    MonthlyBucket,
    compute_member_stats,
    compute_savings_trend,
    compute_streaks,
)

NOW = datetime(2026, 5, 20, 15, 0, tzinfo=timezone.utc)


def _redemption(index: int, created_at: datetime, *, benefit="b-1", merchant="m-1", amount="1.00", outcome="success"):
    return Redemption(
        id=f"r-{index}",
        member_id="socio-1",
        merchant_id=merchant,
        merchant_name=f"Comercio {merchant}",
        benefit_id=benefit,
        benefit_title=f"Beneficio {benefit}",
        discount_amount=Decimal(amount),
        validation_code=f"FID-{index}",
        outcome=outcome,
        metadata_json={},
        created_at=created_at,
    )


def test_streaks_count_consecutive_days() -> None:
    today = date(2026, 5, 20)
    days = [
        today,
        today - timedelta(days=1),
        today - timedelta(days=1),
        today - timedelta(days=2),
        today - timedelta(days=10),
        today - timedelta(days=11),
        today - timedelta(days=12),
        today - timedelta(days=13),
    ]

    assert compute_streaks(days, today) == (3, 4)


def test_current_streak_resets_after_a_gap() -> None:
    today = date(2026, 5, 20)

    assert compute_streaks([today - timedelta(days=3), today - timedelta(days=4)], today) == (0, 2)
    assert compute_streaks([today - timedelta(days=1)], today) == (1, 1)
    assert compute_streaks([], today) == (0, 0)


def _buckets(*savings: str) -> list[MonthlyBucket]:
    return [MonthlyBucket(month=f"2026-{index + 1:02d}", savings=Decimal(value)) for index, value in enumerate(savings)]


@pytest.mark.parametrize(
    ("savings", "expected"),
    [
        (("10", "10", "10", "20", "20", "20"), "up"),
        (("20", "20", "20", "10", "10", "10"), "down"),
        (("10", "10", "10", "10.5", "10", "10"), "stable"),
        (("0", "0", "0", "5", "5", "5"), "stable"),
        (("5",), "stable"),
    ],
)
def test_savings_trend(savings, expected) -> None:
    assert compute_savings_trend(_buckets(*savings)) == expected


def test_member_stats_aggregate_successful_redemptions() -> None:
    redemptions = [
        _redemption(1, NOW - timedelta(hours=1), benefit="b-1", merchant="m-1", amount="2.00"),
        _redemption(2, NOW - timedelta(days=1), benefit="b-1", merchant="m-2", amount="3.00"),
        _redemption(3, NOW - timedelta(days=40), benefit="b-2", merchant="m-1", amount="1.00"),
        _redemption(4, NOW - timedelta(days=2), benefit="b-3", merchant="m-3", amount="9.00", outcome="failed"),
        _redemption(5, NOW - timedelta(days=400), benefit="b-2", merchant="m-1", amount="4.00"),
    ]

    stats = compute_member_stats(redemptions, now=NOW)

    assert stats.total_redemptions == 4
    assert stats.total_savings == Decimal("10.00")
    assert stats.average_savings == Decimal("2.50")
    assert [(item.benefit_id, item.uses) for item in stats.top_benefits] == [("b-1", 2), ("b-2", 2)]
    assert stats.favourite_merchants[0].merchant_id == "m-1"
    assert stats.favourite_merchants[0].visits == 3
    assert stats.favourite_merchants[0].last_visit == NOW - timedelta(hours=1)
    assert len(stats.monthly) == 12
    assert stats.monthly[-1].month == "2026-05"
    assert stats.monthly[-1].redemptions == 2
    assert stats.monthly[-1].savings == Decimal("5.00")
    assert stats.monthly[-2].month == "2026-04"
    assert stats.monthly[-2].redemptions == 1
    assert stats.monthly[0].month == "2025-06"
    assert stats.current_streak == 2


def test_member_stats_without_redemptions() -> None:
    stats = compute_member_stats([], now=NOW)

    assert stats.total_redemptions == 0
    assert stats.total_savings == Decimal("0")
    assert stats.savings_trend == "stable"
    assert [bucket.redemptions for bucket in stats.monthly] == [0] * 12


@pytest.mark.asyncio
async def test_stats_service_reads_member_redemptions(store) -> None:
    now = datetime.now(timezone.utc)
    await store.save(
        _redemption(1, now - timedelta(minutes=5), amount="2.00"),
        _redemption(2, now - timedelta(days=1), amount="1.00"),
    )

    stats = await RedemptionStatsService(store).get_member_stats("socio-1")
    empty = await RedemptionStatsService(store).get_member_stats("socio-2")

    assert stats.total_redemptions == 2
    assert stats.total_savings == Decimal("3.00")
    assert stats.current_streak == 2
    assert empty.total_redemptions == 0
