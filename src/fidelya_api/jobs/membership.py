"""Scheduled membership standing sweep."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from loguru import logger

from fidelya_api.db.store import RecordStore
from fidelya_api.services.membership import MembershipStandingService


# meta: job: membership-standing-sweep


async def run_membership_standing_sweep(
    *,
    store: RecordStore,
    association_ids: Sequence[str] | None = None,
) -> Dict[str, Any]:
    """Refresh dues standing for the given associations, or for everyone."""

    service = MembershipStandingService(store)
    if not association_ids:
        result = await service.refresh_all()
        summary: Dict[str, Any] = {"scope": "all", **result.as_dict()}
        logger.bind(sweep=summary).info("Membership standing sweep finished")
        return summary

    per_association: Dict[str, Any] = {}
    totals = {"updated": 0, "marked_expired": 0, "marked_up_to_date": 0, "already_correct": 0}
    success = True
    for association_id in association_ids:
        result = await service.refresh_association(association_id)
        per_association[association_id] = result.as_dict()
        success = success and result.success
        totals["updated"] += result.updated_count
        totals["marked_expired"] += result.marked_expired
        totals["marked_up_to_date"] += result.marked_up_to_date
        totals["already_correct"] += result.already_correct

    summary = {"scope": "associations", "success": success, **totals, "associations": per_association}
    logger.bind(sweep=summary).info("Membership standing sweep finished")
    return summary


__all__ = ["run_membership_standing_sweep"]
