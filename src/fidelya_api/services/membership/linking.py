"""Link and unlink members to associations across all three records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.db.store import RecordStore, RecordStoreError, Transaction
from fidelya_api.models import Account, AccountStatus, Association, MemberProfile, MemberStatus, MembershipStanding

from .consistency import MembershipConsistencyService


class MembershipLinkError(RuntimeError):
    """Base error for association link changes."""


class LinkTargetNotFoundError(MembershipLinkError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} {key} does not exist")
        self.kind = kind
        self.key = key


@dataclass
class _LinkChange:
    changed: bool
    account_id: Optional[str] = None


async def _find_account(tx: Transaction, member: MemberProfile) -> Account | None:
    account = await tx.get(Account, member.id)
    if account is not None:
        return account
    if not member.email:
        return None
    matches = await tx.query(
        Account,
        func.lower(Account.email) == member.email.lower(),
        order_by=(Account.id,),
        limit=1,
    )
    return matches[0] if matches else None


async def _load_targets(tx: Transaction, member_id: str, association_id: str) -> tuple[MemberProfile, Association]:
    member = await tx.get(MemberProfile, member_id)
    if member is None:
        raise LinkTargetNotFoundError("Member", member_id)
    association = await tx.get(Association, association_id)
    if association is None:
        raise LinkTargetNotFoundError("Association", association_id)
    return member, association


class AccountLinkService:
    """Keep member profile, account and association roster in step."""

    def __init__(self, store: RecordStore, consistency: MembershipConsistencyService | None = None) -> None:
        self._store = store
        self._consistency = consistency or MembershipConsistencyService(store)

    async def link(self, member_id: str, association_id: str) -> bool:
        async def _link(tx: Transaction) -> _LinkChange:
            member, association = await _load_targets(tx, member_id, association_id)
            if member.association_id == association_id:
                return _LinkChange(changed=False)

            now = self._store.server_timestamp()
            tx.update(
                member,
                {
                    "association_id": association_id,
                    "association_name": association.name or "Asociación",
                    "linked_at": now,
                    "status": MemberStatus.ACTIVE.value,
                    "membership_status": MembershipStanding.UP_TO_DATE.value,
                },
            )

            account = await _find_account(tx, member)
            if account is not None:
                tx.update(account, {"association_id": association_id, "status": AccountStatus.ACTIVE.value})

            roster = list(association.member_ids or [])
            if member_id not in roster:
                roster.append(member_id)
                tx.update(association, {"member_ids": roster})
            return _LinkChange(changed=True, account_id=account.id if account is not None else None)

        try:
            change = await self._store.run_transaction(_link, label="membership.link")
        except (MembershipLinkError, RecordStoreError, SQLAlchemyError) as exc:
            logger.error(
                "Failed to link member to association",
                member_id=member_id,
                association_id=association_id,
                error=str(exc),
            )
            return False

        if change.changed:
            logger.info(
                "Linked member to association",
                member_id=member_id,
                association_id=association_id,
                account_id=change.account_id,
            )
        else:
            logger.info("Member already linked to association", member_id=member_id, association_id=association_id)

        await self._consistency.sync_status(member_id)
        return True

    async def unlink(self, member_id: str, association_id: str) -> bool:
        async def _unlink(tx: Transaction) -> _LinkChange:
            member, association = await _load_targets(tx, member_id, association_id)
            if member.association_id != association_id:
                return _LinkChange(changed=False)

            tx.update(
                member,
                {
                    "association_id": None,
                    "association_name": None,
                    "linked_at": None,
                    "membership_status": MembershipStanding.PENDING.value,
                },
            )

            account = await _find_account(tx, member)
            if account is not None:
                tx.update(account, {"association_id": None})

            roster = association.member_ids
            if isinstance(roster, list) and member_id in roster:
                tx.update(association, {"member_ids": [item for item in roster if item != member_id]})
            return _LinkChange(changed=True, account_id=account.id if account is not None else None)

        try:
            change = await self._store.run_transaction(_unlink, label="membership.unlink")
        except (MembershipLinkError, RecordStoreError, SQLAlchemyError) as exc:
            logger.error(
                "Failed to unlink member from association",
                member_id=member_id,
                association_id=association_id,
                error=str(exc),
            )
            return False

        if change.changed:
            logger.info("Unlinked member from association", member_id=member_id, association_id=association_id)
        else:
            logger.info("Member was not linked to association", member_id=member_id, association_id=association_id)
        return True

    async def is_linked(self, member_id: str, association_id: str) -> bool:
        try:
            member = await self._store.get(MemberProfile, member_id)
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to read member profile", member_id=member_id, error=str(exc))
            return False
        return member is not None and member.association_id == association_id

    async def list_association_members(self, association_id: str) -> list[MemberProfile]:
        try:
            return await self._store.query(
                MemberProfile,
                MemberProfile.association_id == association_id,
                order_by=(MemberProfile.full_name, MemberProfile.id),
            )
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to list association members", association_id=association_id, error=str(exc))
            return []


__all__ = ["AccountLinkService", "LinkTargetNotFoundError", "MembershipLinkError"]
