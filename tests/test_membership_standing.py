from datetime import datetime, timedelta, timezone

import pytest

from fidelya_api.models import MemberProfile
from fidelya_api.services.membership import MembershipStandingService, compute_standing

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("expiration", "current", "expected"),
    [
        (NOW - timedelta(days=1), "al_dia", "vencido"),
        (NOW - timedelta(days=1), "pendiente", "vencido"),
        (NOW - timedelta(days=1), "vencido", None),
        (NOW + timedelta(days=30), "vencido", "al_dia"),
        (NOW + timedelta(days=30), "pendiente", None),
        (None, "al_dia", None),
        ("2026-01-01T00:00:00Z", "al_dia", "vencido"),
    ],
)
def test_compute_standing(expiration, current, expected) -> None:
    assert compute_standing(expiration, current, NOW) == expected


def test_compute_standing_rejects_garbage_dates() -> None:
    with pytest.raises(ValueError):
        compute_standing("pronto", "al_dia", NOW)


@pytest.mark.asyncio
async def test_refresh_all_updates_only_active_members(store, seed) -> None:
    now = datetime.now(timezone.utc)
    await seed.member("expira", membership_status="al_dia", expiration_date=now - timedelta(days=2))
    await seed.member("renovo", membership_status="vencido", expiration_date=now + timedelta(days=200))
    await seed.member("sin-fecha", membership_status="al_dia")
    await seed.member("al-dia", membership_status="al_dia", expiration_date=now + timedelta(days=10))
    await seed.member("pendiente", member_status="pending", membership_status="al_dia",
                      expiration_date=now - timedelta(days=2))

    result = await MembershipStandingService(store).refresh_all()

    assert result.success
    assert result.updated_count == 2
    assert result.marked_expired == 1
    assert result.marked_up_to_date == 1
    assert result.already_correct == 2
    assert (await store.get(MemberProfile, "expira")).membership_status == "vencido"
    assert (await store.get(MemberProfile, "renovo")).membership_status == "al_dia"
    assert (await store.get(MemberProfile, "pendiente")).membership_status == "al_dia"


@pytest.mark.asyncio
async def test_refresh_association_and_member_scope(store, seed) -> None:
    past = datetime.now(timezone.utc) - timedelta(days=5)
    await seed.member("norte", association_id="asoc-1", expiration_date=past)
    await seed.member("sur", association_id="asoc-2", expiration_date=past)
    await seed.member("suelto", expiration_date=past)
    service = MembershipStandingService(store)

    association_result = await service.refresh_association("asoc-1")
    member_result = await service.refresh_member("suelto")

    assert association_result.updated_count == 1
    assert member_result.updated_count == 1
    assert (await store.get(MemberProfile, "norte")).membership_status == "vencido"
    assert (await store.get(MemberProfile, "suelto")).membership_status == "vencido"
    assert (await store.get(MemberProfile, "sur")).membership_status == "al_dia"


@pytest.mark.asyncio
async def test_sweep_result_serializes_counts(store, seed) -> None:
    await seed.member("expira", expiration_date=datetime.now(timezone.utc) - timedelta(days=1))

    payload = (await MembershipStandingService(store).refresh_all()).as_dict()

    assert payload == {
        "success": True,
        "updated": 1,
        "marked_expired": 1,
        "marked_up_to_date": 0,
        "already_correct": 0,
        "errors": [],
    }


@pytest.mark.asyncio
async def test_diagnose_association_lists_discrepancies_without_writing(store, seed) -> None:
    now = datetime.now(timezone.utc)
    await seed.member("expira", association_id="asoc-1", full_name="Ana Norte", expiration_date=now - timedelta(days=3))
    await seed.member("renovo", association_id="asoc-1", membership_status="vencido",
                      expiration_date=now + timedelta(days=90))
    await seed.member("correcto", association_id="asoc-1", expiration_date=now + timedelta(days=90))
    await seed.member("otra", association_id="asoc-2", expiration_date=now - timedelta(days=3))
    service = MembershipStandingService(store)

    diagnosis = await service.diagnose_association("asoc-1")

    assert diagnosis.total == 3
    assert diagnosis.errors == []
    assert [(item.member_id, item.current_standing, item.calculated_standing) for item in diagnosis.discrepancies] == [
        ("expira", "al_dia", "vencido"),
        ("renovo", "vencido", "al_dia"),
    ]
    assert diagnosis.discrepancies[0].name == "Ana Norte"
    assert diagnosis.discrepancies[0].expiration_date is not None
    expira = await store.get(MemberProfile, "expira")
    assert expira.membership_status == "al_dia"
    assert expira.version_id == 1

    applied = await service.refresh_association("asoc-1")
    assert applied.updated_count == len(diagnosis.discrepancies)
    assert (await service.diagnose_association("asoc-1")).discrepancies == []
