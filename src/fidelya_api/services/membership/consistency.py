"""Membership consistency checks and repairs.

A member's state lives in three independently writable places: the account,
the member profile and the association roster. This service evaluates the
cross-record rules between account and member profile and repairs violations
in a single store transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.db.store import RecordStore, RecordStoreError, Transaction
from fidelya_api.models import Account, AccountStatus, MemberProfile, MemberStatus, MembershipStanding

UNKNOWN_STATUS = "unknown"


@dataclass
class MembershipStatusReport:
    """Snapshot of a member's status triple and its consistency verdict."""

    member_id: str
    account_status: str
    member_status: str
    membership_status: str
    association_id: Optional[str]
    is_consistent: bool
    needs_sync: bool


@dataclass
class CorrectedStatus:
    account_status: str
    member_status: str
    membership_status: str
    association_id: Optional[str]


@dataclass
class SyncError:
    member_id: str
    error: str


@dataclass
class BatchSyncResult:
    success: bool = False
    synced_count: int = 0
    errors: list[SyncError] = field(default_factory=list)
    details: list[MembershipStatusReport] = field(default_factory=list)
    unrepairable: list[str] = field(default_factory=list)


@dataclass
class MembershipSummary:
    total: int = 0
    active: int = 0
    pending: int = 0
    expired: int = 0
    inconsistent: int = 0
    needs_sync: int = 0


def is_status_consistent(
    account_status: str,
    member_status: str,
    membership_status: str,
    association_id: Optional[str],
) -> bool:
    """Evaluate the account/member rules; any violation means inconsistent."""

    active = AccountStatus.ACTIVE.value
    if account_status == active and association_id and membership_status == MembershipStanding.PENDING.value:
        return False
    if account_status == active and member_status != MemberStatus.ACTIVE.value:
        return False
    if account_status == AccountStatus.PENDING.value and association_id:
        return False
    return True


def determine_correct_status(report: MembershipStatusReport) -> CorrectedStatus:
    """Members with an association are forced to active / active / al_dia.

    Without an association the current triple is returned unchanged.
    """

    if report.association_id:
        return CorrectedStatus(
            account_status=AccountStatus.ACTIVE.value,
            member_status=MemberStatus.ACTIVE.value,
            membership_status=MembershipStanding.UP_TO_DATE.value,
            association_id=report.association_id,
        )
    return CorrectedStatus(
        account_status=report.account_status,
        member_status=report.member_status,
        membership_status=report.membership_status,
        association_id=report.association_id,
    )


def is_unrepairable(report: MembershipStatusReport) -> bool:
    """True when the report needs sync but the correction would change nothing."""

    corrected = determine_correct_status(report)
    return report.needs_sync and (
        corrected.account_status,
        corrected.member_status,
        corrected.membership_status,
        corrected.association_id,
    ) == (report.account_status, report.member_status, report.membership_status, report.association_id)


def build_status_report(member_id: str, account: Account, member: MemberProfile) -> MembershipStatusReport:
    account_status = account.status or UNKNOWN_STATUS
    member_status = member.status or UNKNOWN_STATUS
    membership_status = member.membership_status or UNKNOWN_STATUS
    association_id = member.association_id or account.association_id
    consistent = is_status_consistent(account_status, member_status, membership_status, association_id)
    return MembershipStatusReport(
        member_id=member_id,
        account_status=account_status,
        member_status=member_status,
        membership_status=membership_status,
        association_id=association_id,
        is_consistent=consistent,
        needs_sync=not consistent,
    )


class MembershipConsistencyService:
    """Check and repair the account/member status triple."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def check_status(self, member_id: str) -> MembershipStatusReport | None:
        try:
            account = await self._store.get(Account, member_id)
            if account is None:
                logger.warning("Account record not found", member_id=member_id)
                return None
            member = await self._store.get(MemberProfile, member_id)
            if member is None:
                logger.warning("Member profile not found", member_id=member_id)
                return None
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to read membership records", member_id=member_id, error=str(exc))
            return None

        report = build_status_report(member_id, account, member)
        logger.debug(
            "Evaluated membership status",
            member_id=member_id,
            is_consistent=report.is_consistent,
            association_id=report.association_id,
        )
        return report

    async def sync_status(self, member_id: str) -> bool:
        """Repair the member's status triple; ``False`` only on store failure."""

        async def _sync(tx: Transaction) -> CorrectedStatus | None:
            account = await tx.get(Account, member_id)
            member = await tx.get(MemberProfile, member_id)
            if account is None or member is None:
                logger.warning("Membership records missing during sync", member_id=member_id)
                return None

            report = build_status_report(member_id, account, member)
            if not report.needs_sync:
                return None
            if is_unrepairable(report):
                logger.warning(
                    "Membership inconsistency cannot be repaired automatically",
                    member_id=member_id,
                    account_status=report.account_status,
                    member_status=report.member_status,
                )
                return None

            corrected = determine_correct_status(report)
            now = self._store.server_timestamp()
            tx.update(
                account,
                {"status": corrected.account_status, "association_id": corrected.association_id},
            )
            tx.update(
                member,
                {
                    "status": corrected.member_status,
                    "membership_status": corrected.membership_status,
                    "association_id": corrected.association_id,
                    "last_status_sync_at": now,
                },
            )
            return corrected

        try:
            corrected = await self._store.run_transaction(_sync, label="membership.sync_status")
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to synchronize membership status", member_id=member_id, error=str(exc))
            return False

        if corrected is None:
            logger.debug("No membership synchronization needed", member_id=member_id)
        else:
            logger.info(
                "Synchronized membership status",
                member_id=member_id,
                account_status=corrected.account_status,
                member_status=corrected.member_status,
                membership_status=corrected.membership_status,
            )
        return True

    async def batch_sync(self, member_ids: Iterable[str]) -> BatchSyncResult:
        """Check then repair each member in order; one failure never aborts the batch."""

        result = BatchSyncResult()
        for member_id in member_ids:
            try:
                report = await self.check_status(member_id)
                if report is None:
                    continue
                result.details.append(report)
                if not report.needs_sync:
                    continue
                if is_unrepairable(report):
                    result.unrepairable.append(member_id)
                    continue
                if await self.sync_status(member_id):
                    result.synced_count += 1
                else:
                    result.errors.append(SyncError(member_id=member_id, error="Failed to synchronize status"))
            except Exception as exc:  # noqa: BLE001 - a broken member must not stop the batch
                logger.exception("Unexpected error during batch sync", member_id=member_id)
                result.errors.append(SyncError(member_id=member_id, error=str(exc) or "Unknown error"))

        result.success = not result.errors
        logger.info(
            "Batch membership synchronization completed",
            synced=result.synced_count,
            errors=len(result.errors),
            unrepairable=len(result.unrepairable),
            checked=len(result.details),
        )
        return result

    async def _association_member_ids(self, association_id: str) -> list[str]:
        members = await self._store.query(
            MemberProfile,
            MemberProfile.association_id == association_id,
            order_by=(MemberProfile.id,),
        )
        return [member.id for member in members]

    async def sync_association_members(self, association_id: str) -> BatchSyncResult:
        try:
            member_ids = await self._association_member_ids(association_id)
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to list association members", association_id=association_id, error=str(exc))
            return BatchSyncResult(
                success=False,
                errors=[SyncError(member_id="association", error="Failed to sync association members")],
            )
        logger.info("Synchronizing association members", association_id=association_id, count=len(member_ids))
        return await self.batch_sync(member_ids)

    async def get_association_membership_summary(self, association_id: str) -> MembershipSummary:
        summary = MembershipSummary()
        try:
            members = await self._store.query(
                MemberProfile,
                MemberProfile.association_id == association_id,
                order_by=(MemberProfile.id,),
            )
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Failed to build membership summary", association_id=association_id, error=str(exc))
            return summary

        for member in members:
            summary.total += 1
            if member.membership_status == MembershipStanding.UP_TO_DATE.value:
                summary.active += 1
            elif member.membership_status == MembershipStanding.PENDING.value:
                summary.pending += 1
            elif member.membership_status == MembershipStanding.EXPIRED.value:
                summary.expired += 1

            report = await self.check_status(member.id)
            if report is not None:
                if not report.is_consistent:
                    summary.inconsistent += 1
                if report.needs_sync:
                    summary.needs_sync += 1
        return summary


__all__ = [
    "BatchSyncResult",
    "CorrectedStatus",
    "MembershipConsistencyService",
    "MembershipStatusReport",
    "MembershipSummary",
    "SyncError",
    "build_status_report",
    "determine_correct_status",
    "is_status_consistent",
    "is_unrepairable",
]
