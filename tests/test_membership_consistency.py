import pytest

from fidelya_api.models import Account, MemberProfile
from fidelya_api.services.membership import (
    MembershipConsistencyService,
    MembershipStatusReport,
    determine_correct_status,
    is_status_consistent,
)


@pytest.mark.parametrize(
    ("account_status", "member_status", "membership_status", "association_id", "expected"),
    [
        ("active", "active", "al_dia", "asoc-1", True),
        ("active", "active", "pendiente", "asoc-1", False),
        ("active", "pending", "al_dia", None, False),
        ("pending", "pending", "pendiente", "asoc-1", False),
        ("pending", "pending", "pendiente", None, True),
        ("suspended", "suspended", "vencido", "asoc-1", True),
    ],
)
def test_is_status_consistent_rules(account_status, member_status, membership_status, association_id, expected):
    assert is_status_consistent(account_status, member_status, membership_status, association_id) is expected


def test_determine_correct_status_only_forces_linked_members() -> None:
    linked = MembershipStatusReport("m", "pending", "pending", "pendiente", "asoc-1", False, True)
    unlinked = MembershipStatusReport("m", "active", "pending", "pendiente", None, False, True)

    corrected = determine_correct_status(linked)
    unchanged = determine_correct_status(unlinked)

    assert (corrected.account_status, corrected.member_status, corrected.membership_status) == (
        "active",
        "active",
        "al_dia",
    )
    assert (unchanged.account_status, unchanged.member_status, unchanged.membership_status) == (
        "active",
        "pending",
        "pendiente",
    )


@pytest.mark.asyncio
async def test_check_status_returns_none_when_a_record_is_missing(store, seed) -> None:
    await seed.member("solo-perfil", with_account=False)
    service = MembershipConsistencyService(store)

    assert await service.check_status("solo-perfil") is None
    assert await service.check_status("nadie") is None


@pytest.mark.asyncio
async def test_check_status_falls_back_to_account_association(store, seed) -> None:
    await seed.member("socio-1", account_status="pending", member_status="pending", membership_status="pendiente")
    await store.save(Account(id="socio-2", email="dos@example.com", status="pending", association_id="asoc-9"))
    await store.save(MemberProfile(id="socio-2", status="pending", membership_status="pendiente"))
    service = MembershipConsistencyService(store)

    report = await service.check_status("socio-2")

    assert report.association_id == "asoc-9"
    assert report.needs_sync
    assert (await service.check_status("socio-1")).is_consistent


@pytest.mark.asyncio
async def test_sync_repairs_active_account_with_pending_member(store, seed) -> None:
    await seed.member(
        "socio-1",
        account_status="active",
        member_status="pending",
        membership_status="pendiente",
        association_id="asoc-1",
    )
    service = MembershipConsistencyService(store)

    before = await service.check_status("socio-1")
    assert not before.is_consistent

    assert await service.sync_status("socio-1") is True

    after = await service.check_status("socio-1")
    assert after.is_consistent
    assert not after.needs_sync
    account = await store.get(Account, "socio-1")
    member = await store.get(MemberProfile, "socio-1")
    assert account.status == "active"
    assert account.association_id == "asoc-1"
    assert member.status == "active"
    assert member.membership_status == "al_dia"
    assert member.last_status_sync_at is not None


@pytest.mark.asyncio
async def test_sync_is_a_no_op_for_consistent_members(store, seed) -> None:
    await seed.member("socio-1", association_id="asoc-1")
    service = MembershipConsistencyService(store)

    assert await service.sync_status("socio-1") is True
    assert await service.sync_status("socio-1") is True

    member = await store.get(MemberProfile, "socio-1")
    account = await store.get(Account, "socio-1")
    assert member.version_id == 1
    assert account.version_id == 1
    assert member.last_status_sync_at is None


@pytest.mark.asyncio
async def test_repeated_sync_after_repair_changes_nothing(store, seed) -> None:
    await seed.member("socio-1", account_status="pending", member_status="pending",
                      membership_status="pendiente", association_id="asoc-1")
    service = MembershipConsistencyService(store)

    async def _triple():
        account = await store.get(Account, "socio-1")
        member = await store.get(MemberProfile, "socio-1")
        return (account.status, member.status, member.membership_status), (account.version_id, member.version_id)

    assert await service.sync_status("socio-1") is True
    repaired, repaired_versions = await _triple()
    assert await service.sync_status("socio-1") is True
    again, again_versions = await _triple()

    assert repaired == ("active", "active", "al_dia")
    assert again == repaired
    assert again_versions == repaired_versions


@pytest.mark.asyncio
async def test_unrepairable_members_are_not_rewritten(store, seed) -> None:
    await seed.member("suelto", account_status="active", member_status="pending", membership_status="pendiente")
    service = MembershipConsistencyService(store)

    first = await service.batch_sync(["suelto"])
    second = await service.batch_sync(["suelto"])

    assert first.synced_count == 0
    assert first.unrepairable == ["suelto"]
    assert first.success
    assert second.unrepairable == ["suelto"]
    assert await service.sync_status("suelto") is True
    assert (await store.get(MemberProfile, "suelto")).version_id == 1
    assert (await store.get(Account, "suelto")).version_id == 1
    assert (await service.check_status("suelto")).needs_sync


@pytest.mark.asyncio
async def test_sync_of_missing_member_is_reported_as_success(store) -> None:
    assert await MembershipConsistencyService(store).sync_status("nadie") is True


@pytest.mark.asyncio
async def test_batch_sync_checks_each_member_in_order(store, seed) -> None:
    await seed.member("a", account_status="pending", member_status="pending", membership_status="pendiente",
                      association_id="asoc-1")
    await seed.member("b", association_id="asoc-1")
    service = MembershipConsistencyService(store)

    result = await service.batch_sync(["a", "b", "missing"])

    assert result.success
    assert result.synced_count == 1
    assert result.errors == []
    assert [report.member_id for report in result.details] == ["a", "b"]
    assert (await service.check_status("a")).is_consistent


class _FailingSyncService(MembershipConsistencyService):
    def __init__(self, store, failing: set[str], exploding: set[str]) -> None:
        super().__init__(store)
        self.failing = failing
        self.exploding = exploding

    async def sync_status(self, member_id: str) -> bool:
        if member_id in self.exploding:
            raise RuntimeError("boom")
        if member_id in self.failing:
            return False
        return await super().sync_status(member_id)


@pytest.mark.asyncio
async def test_batch_sync_collects_errors_without_stopping(store, seed) -> None:
    for member_id in ("a", "b", "c"):
        await seed.member(member_id, account_status="active", member_status="pending",
                          membership_status="pendiente", association_id="asoc-1")
    service = _FailingSyncService(store, failing={"a"}, exploding={"b"})

    result = await service.batch_sync(["a", "b", "c"])

    assert not result.success
    assert result.synced_count == 1
    assert [(error.member_id, error.error) for error in result.errors] == [
        ("a", "Failed to synchronize status"),
        ("b", "boom"),
    ]


@pytest.mark.asyncio
async def test_association_sync_and_summary(store, seed) -> None:
    await seed.member("a", association_id="asoc-1")
    await seed.member("b", account_status="active", member_status="pending", membership_status="pendiente",
                      association_id="asoc-1")
    await seed.member("c", membership_status="vencido", association_id="asoc-1")
    await seed.member("d", association_id="asoc-2")
    service = MembershipConsistencyService(store)

    summary = await service.get_association_membership_summary("asoc-1")
    assert (summary.total, summary.active, summary.pending, summary.expired) == (3, 1, 1, 1)
    assert summary.inconsistent == 1
    assert summary.needs_sync == 1

    result = await service.sync_association_members("asoc-1")
    assert result.success
    assert result.synced_count == 1
    assert sorted(report.member_id for report in result.details) == ["a", "b", "c"]

    repaired = await service.get_association_membership_summary("asoc-1")
    assert repaired.inconsistent == 0
    assert repaired.active == 2
