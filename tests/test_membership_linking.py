import pytest

from fidelya_api.models import Account, Association, MemberProfile
from fidelya_api.services.membership import AccountLinkService, MembershipConsistencyService


class _RecordingConsistency(MembershipConsistencyService):
    def __init__(self, store) -> None:
        super().__init__(store)
        self.synced: list[str] = []

    async def sync_status(self, member_id: str) -> bool:
        self.synced.append(member_id)
        return await super().sync_status(member_id)


@pytest.mark.asyncio
async def test_link_updates_member_account_and_roster(store, seed) -> None:
    await seed.member("socio-1", account_status="pending", member_status="pending", membership_status="pendiente")
    await seed.association("asoc-1", name="Club Norte")
    consistency = _RecordingConsistency(store)
    service = AccountLinkService(store, consistency)

    assert await service.link("socio-1", "asoc-1") is True

    member = await store.get(MemberProfile, "socio-1")
    account = await store.get(Account, "socio-1")
    association = await store.get(Association, "asoc-1")
    assert member.association_id == "asoc-1"
    assert member.association_name == "Club Norte"
    assert member.status == "active"
    assert member.membership_status == "al_dia"
    assert member.linked_at is not None
    assert account.association_id == "asoc-1"
    assert account.status == "active"
    assert association.member_ids == ["socio-1"]
    assert consistency.synced == ["socio-1"]
    assert (await consistency.check_status("socio-1")).is_consistent


@pytest.mark.asyncio
async def test_link_is_idempotent(store, seed) -> None:
    await seed.member("socio-1", account_status="pending", member_status="pending", membership_status="pendiente")
    await seed.association("asoc-1", member_ids=["otro"])
    consistency = _RecordingConsistency(store)
    service = AccountLinkService(store, consistency)

    assert await service.link("socio-1", "asoc-1")
    first = await store.get(MemberProfile, "socio-1")
    assert await service.link("socio-1", "asoc-1")

    member = await store.get(MemberProfile, "socio-1")
    association = await store.get(Association, "asoc-1")
    assert association.member_ids == ["otro", "socio-1"]
    assert member.linked_at == first.linked_at
    assert member.version_id == first.version_id
    assert consistency.synced == ["socio-1", "socio-1"]


@pytest.mark.asyncio
async def test_link_finds_account_by_email_when_ids_differ(store, seed) -> None:
    await seed.member("socio-1", with_account=False, email="Mixed.Case@Example.com",
                      member_status="pending", membership_status="pendiente")
    await store.save(Account(id="auth-77", email="mixed.case@example.com", status="pending"))
    await seed.association("asoc-1")

    assert await AccountLinkService(store).link("socio-1", "asoc-1")

    account = await store.get(Account, "auth-77")
    assert account.association_id == "asoc-1"
    assert account.status == "active"


@pytest.mark.asyncio
async def test_link_without_account_still_links_profile(store, seed) -> None:
    await seed.member("socio-1", with_account=False, email=None, member_status="pending")
    await seed.association("asoc-1")

    assert await AccountLinkService(store).link("socio-1", "asoc-1")
    assert (await store.get(MemberProfile, "socio-1")).association_id == "asoc-1"


@pytest.mark.asyncio
async def test_link_to_unknown_targets_fails(store, seed) -> None:
    await seed.member("socio-1")
    await seed.association("asoc-1")
    service = AccountLinkService(store)

    assert await service.link("socio-1", "no-existe") is False
    assert await service.link("nadie", "asoc-1") is False
    assert (await store.get(MemberProfile, "socio-1")).association_id is None


@pytest.mark.asyncio
async def test_unlink_reverts_association_fields(store, seed) -> None:
    await seed.member("socio-1", association_id="asoc-1", association_name="Club Norte")
    await seed.association("asoc-1", member_ids=["socio-1", "socio-2"])
    service = AccountLinkService(store)

    assert await service.unlink("socio-1", "asoc-1") is True

    member = await store.get(MemberProfile, "socio-1")
    account = await store.get(Account, "socio-1")
    association = await store.get(Association, "asoc-1")
    assert member.association_id is None
    assert member.association_name is None
    assert member.linked_at is None
    assert member.membership_status == "pendiente"
    assert member.status == "active"
    assert account.association_id is None
    assert account.status == "active"
    assert association.member_ids == ["socio-2"]
    assert not await service.is_linked("socio-1", "asoc-1")


@pytest.mark.asyncio
async def test_unlink_from_other_association_changes_nothing(store, seed) -> None:
    await seed.member("socio-1", association_id="asoc-1")
    await seed.association("asoc-1", member_ids=["socio-1"])
    await seed.association("asoc-2", member_ids=[])
    service = AccountLinkService(store)

    assert await service.unlink("socio-1", "asoc-2") is True

    member = await store.get(MemberProfile, "socio-1")
    assert member.association_id == "asoc-1"
    assert member.version_id == 1
    assert await service.is_linked("socio-1", "asoc-1")


@pytest.mark.asyncio
async def test_list_association_members_orders_by_name(store, seed) -> None:
    await seed.member("z", full_name="Ana", association_id="asoc-1")
    await seed.member("a", full_name="Bruno", association_id="asoc-1")
    await seed.member("m", full_name="Carla", association_id="asoc-2")

    members = await AccountLinkService(store).list_association_members("asoc-1")

    assert [member.id for member in members] == ["z", "a"]
