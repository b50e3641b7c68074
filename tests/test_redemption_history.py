from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fidelya_api.models import Redemption
from fidelya_api.services.redemptions import RedemptionService, decode_history_cursor, encode_history_cursor
from fidelya_api.services.redemptions.history import list_member_redemptions

BASE = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def _redemption(redemption_id: str, member_id: str, created_at: datetime) -> Redemption:
    return Redemption(
        id=redemption_id,
        member_id=member_id,
        merchant_id="comercio-1",
        merchant_name="Café Central",
        benefit_id="beneficio-1",
        benefit_title="10% de descuento",
        discount_amount=Decimal("1.50"),
        validation_code=f"FID-{redemption_id}",
        outcome="success",
        metadata_json={},
        created_at=created_at,
    )


def test_cursor_round_trip_keeps_instant_and_id() -> None:
    cursor = encode_history_cursor(datetime(2026, 3, 1, 10, 0), "r-9")

    assert decode_history_cursor(cursor) == (BASE, "r-9")


@pytest.mark.parametrize("cursor", ["bm90LWEtY3Vyc29y", "@@@", "MjAyNi0wMy0wMXw="])
def test_malformed_cursors_raise_value_error(cursor) -> None:
    with pytest.raises(ValueError):
        decode_history_cursor(cursor)


@pytest.mark.asyncio
async def test_pages_walk_all_redemptions_newest_first(store) -> None:
    records = [_redemption(f"r-{index}", "socio-1", BASE + timedelta(minutes=index)) for index in range(5)]
    records.append(_redemption("r-4b", "socio-1", BASE + timedelta(minutes=4)))
    records.append(_redemption("otro", "socio-2", BASE + timedelta(minutes=10)))
    await store.save(*records)

    seen: list[str] = []
    cursor = None
    pages = 0
    while True:
        page = await list_member_redemptions(store, "socio-1", page_size=2, cursor=cursor)
        pages += 1
        seen.extend(item.id for item in page.items)
        if not page.has_more:
            assert page.cursor is None
            break
        cursor = page.cursor

    assert pages == 3
    assert seen == ["r-4b", "r-4", "r-3", "r-2", "r-1", "r-0"]


@pytest.mark.asyncio
async def test_page_size_is_bounded(store) -> None:
    await store.save(*[_redemption(f"r-{index}", "socio-1", BASE + timedelta(minutes=index)) for index in range(4)])

    capped = await list_member_redemptions(store, "socio-1", page_size=50, max_page_size=3)
    floor = await list_member_redemptions(store, "socio-1", page_size=0)

    assert len(capped.items) == 3
    assert capped.has_more
    assert len(floor.items) == 1


@pytest.mark.asyncio
async def test_service_history_uses_keyset_cursor(store) -> None:
    await store.save(*[_redemption(f"r-{index}", "socio-1", BASE + timedelta(minutes=index)) for index in range(3)])
    service = RedemptionService(store)

    first = await service.get_redemption_history("socio-1", page_size=2)
    second = await service.get_redemption_history("socio-1", page_size=2, cursor=first.cursor)

    assert [item.id for item in first.items] == ["r-2", "r-1"]
    assert [item.id for item in second.items] == ["r-0"]
    assert not second.has_more
