"""Recompute dues standing of active members from their expiration date."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.core.timestamps import to_optional_instant, utcnow
from fidelya_api.db.store import RecordStore, RecordStoreError, Transaction
from fidelya_api.models import MemberProfile, MemberStatus, MembershipStanding


@dataclass
class StandingSweepResult:
    success: bool = True
    updated_count: int = 0
    marked_expired: int = 0
    marked_up_to_date: int = 0
    already_correct: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "updated": self.updated_count,
            "marked_expired": self.marked_expired,
            "marked_up_to_date": self.marked_up_to_date,
            "already_correct": self.already_correct,
            "errors": list(self.errors),
        }


@dataclass
class StandingDiscrepancy:
    member_id: str
    name: Optional[str]
    current_standing: Optional[str]
    calculated_standing: str
    expiration_date: Optional[datetime]


@dataclass
class StandingDiagnosis:
    total: int = 0
    discrepancies: list[StandingDiscrepancy] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def compute_standing(
    expiration_date: Any,
    current_standing: Optional[str],
    now: datetime,
) -> Optional[str]:
    """Return the standing a member should move to, or ``None`` to keep it.

    Past expiration dates expire the membership; a future date only revives a
    membership currently marked as expired. No date leaves it untouched.
    """

    expires_at = to_optional_instant(expiration_date)
    if expires_at is None:
        return None
    if expires_at < now:
        if current_standing != MembershipStanding.EXPIRED.value:
            return MembershipStanding.EXPIRED.value
        return None
    if current_standing == MembershipStanding.EXPIRED.value:
        return MembershipStanding.UP_TO_DATE.value
    return None


class MembershipStandingService:
    """Apply ``compute_standing`` to active members in one transaction per sweep."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _apply(self, tx: Transaction, members: list[MemberProfile], now: datetime) -> StandingSweepResult:
        result = StandingSweepResult()
        for member in members:
            try:
                target = compute_standing(member.expiration_date, member.membership_status, now)
            except ValueError as exc:
                result.errors.append(f"Error processing member {member.id}: {exc}")
                continue
            if target is None:
                result.already_correct += 1
                continue
            tx.update(member, {"membership_status": target})
            result.updated_count += 1
            if target == MembershipStanding.EXPIRED.value:
                result.marked_expired += 1
            else:
                result.marked_up_to_date += 1
            logger.debug("Membership standing changed", member_id=member.id, standing=target)
        return result

    async def _sweep(self, *predicates: Any, label: str) -> StandingSweepResult:
        async def _run(tx: Transaction) -> StandingSweepResult:
            members = await tx.query(
                MemberProfile,
                MemberProfile.status == MemberStatus.ACTIVE.value,
                *predicates,
                order_by=(MemberProfile.id,),
            )
            return self._apply(tx, members, utcnow())

        try:
            result = await self._store.run_transaction(_run, label=label)
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error("Membership standing sweep failed", label=label, error=str(exc))
            return StandingSweepResult(success=False, errors=[f"Failed to update membership standing: {exc}"])

        logger.info(
            "Membership standing sweep completed",
            label=label,
            updated=result.updated_count,
            marked_expired=result.marked_expired,
            marked_up_to_date=result.marked_up_to_date,
            already_correct=result.already_correct,
        )
        return result

    async def diagnose_association(self, association_id: str) -> StandingDiagnosis:
        """List active members whose stored standing differs from the computed one.

        Read only: nothing is written, so the result previews what
        ``refresh_association`` would change.
        """

        members = await self._store.query(
            MemberProfile,
            MemberProfile.status == MemberStatus.ACTIVE.value,
            MemberProfile.association_id == association_id,
            order_by=(MemberProfile.id,),
        )
        now = utcnow()
        diagnosis = StandingDiagnosis(total=len(members))
        for member in members:
            try:
                target = compute_standing(member.expiration_date, member.membership_status, now)
            except ValueError as exc:
                diagnosis.errors.append(f"Error processing member {member.id}: {exc}")
                continue
            if target is not None:
                diagnosis.discrepancies.append(
                    StandingDiscrepancy(
                        member_id=member.id,
                        name=member.full_name,
                        current_standing=member.membership_status,
                        calculated_standing=target,
                        expiration_date=to_optional_instant(member.expiration_date),
                    )
                )

        logger.info(
            "Membership standing diagnosis completed",
            association_id=association_id,
            total=diagnosis.total,
            discrepancies=len(diagnosis.discrepancies),
            errors=len(diagnosis.errors),
        )
        return diagnosis

    async def refresh_all(self) -> StandingSweepResult:
        return await self._sweep(label="standing.all")

    async def refresh_association(self, association_id: str) -> StandingSweepResult:
        return await self._sweep(MemberProfile.association_id == association_id, label="standing.association")

    async def refresh_member(self, member_id: str) -> StandingSweepResult:
        return await self._sweep(MemberProfile.id == member_id, label="standing.member")


__all__ = [
    "MembershipStandingService",
    "StandingDiagnosis",
    "StandingDiscrepancy",
    "StandingSweepResult",
    "compute_standing",
]
