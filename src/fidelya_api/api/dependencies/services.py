"""Per-request service construction over the shared record store."""

from __future__ import annotations

from fastapi import Depends

from fidelya_api.db.session import get_record_store
from fidelya_api.db.store import RecordStore
from fidelya_api.services.membership import (
    AccountLinkService,
    MembershipConsistencyService,
    MembershipStandingService,
)
from fidelya_api.services.redemptions import RedemptionService, RedemptionStatsService


def get_consistency_service(store: RecordStore = Depends(get_record_store)) -> MembershipConsistencyService:
    return MembershipConsistencyService(store)


def get_link_service(store: RecordStore = Depends(get_record_store)) -> AccountLinkService:
    return AccountLinkService(store)


def get_standing_service(store: RecordStore = Depends(get_record_store)) -> MembershipStandingService:
    return MembershipStandingService(store)


def get_redemption_service(store: RecordStore = Depends(get_record_store)) -> RedemptionService:
    return RedemptionService(store)


def get_stats_service(store: RecordStore = Depends(get_record_store)) -> RedemptionStatsService:
    return RedemptionStatsService(store)
