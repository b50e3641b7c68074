"""API endpoints for membership status, links and association maintenance."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from fidelya_api.api.dependencies.security import require_operator_api_key
from fidelya_api.api.dependencies.services import (
    get_consistency_service,
    get_link_service,
    get_standing_service,
)
from fidelya_api.services.membership import (
    AccountLinkService,
    BatchSyncResult,
    MembershipConsistencyService,
    MembershipStandingService,
    MembershipStatusReport,
    StandingDiagnosis,
    StandingSweepResult,
)


router = APIRouter(prefix="/membership", tags=["membership"])


class MembershipStatusResponse(BaseModel):
    memberId: str
    accountStatus: str
    memberStatus: str
    membershipStatus: str
    associationId: Optional[str]
    isConsistent: bool
    needsSync: bool


class SyncStatusResponse(BaseModel):
    success: bool
    status: Optional[MembershipStatusResponse]


class LinkChangeResponse(BaseModel):
    success: bool
    memberId: str
    associationId: str
    linked: bool


class SyncErrorResponse(BaseModel):
    memberId: str
    error: str


class BatchSyncResponse(BaseModel):
    success: bool
    syncedCount: int
    errors: List[SyncErrorResponse]
    details: List[MembershipStatusResponse]
    unrepairable: List[str]


class MembershipSummaryResponse(BaseModel):
    total: int
    active: int
    pending: int
    expired: int
    inconsistent: int
    needsSync: int


class StandingSweepResponse(BaseModel):
    success: bool
    updated: int
    markedExpired: int
    markedUpToDate: int
    alreadyCorrect: int
    errors: List[str]


class StandingDiscrepancyResponse(BaseModel):
    memberId: str
    name: Optional[str]
    currentStatus: Optional[str]
    calculatedStatus: str
    expirationDate: Optional[datetime]


class StandingDiagnosisResponse(BaseModel):
    total: int
    discrepancies: List[StandingDiscrepancyResponse]
    errors: List[str]


def _status_response(report: MembershipStatusReport) -> MembershipStatusResponse:
    return MembershipStatusResponse(
        memberId=report.member_id,
        accountStatus=report.account_status,
        memberStatus=report.member_status,
        membershipStatus=report.membership_status,
        associationId=report.association_id,
        isConsistent=report.is_consistent,
        needsSync=report.needs_sync,
    )


def _batch_response(result: BatchSyncResult) -> BatchSyncResponse:
    return BatchSyncResponse(
        success=result.success,
        syncedCount=result.synced_count,
        errors=[SyncErrorResponse(memberId=item.member_id, error=item.error) for item in result.errors],
        details=[_status_response(report) for report in result.details],
        unrepairable=list(result.unrepairable),
    )


def _standing_response(result: StandingSweepResult) -> StandingSweepResponse:
    return StandingSweepResponse(
        success=result.success,
        updated=result.updated_count,
        markedExpired=result.marked_expired,
        markedUpToDate=result.marked_up_to_date,
        alreadyCorrect=result.already_correct,
        errors=list(result.errors),
    )


@router.get("/members/{member_id}/status", response_model=MembershipStatusResponse)
async def get_membership_status(
    member_id: str,
    service: MembershipConsistencyService = Depends(get_consistency_service),
) -> MembershipStatusResponse:
    """Report whether the member's account and profile agree."""

    report = await service.check_status(member_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership records not found")
    return _status_response(report)


@router.post(
    "/members/{member_id}/sync",
    response_model=SyncStatusResponse,
    dependencies=[Depends(require_operator_api_key)],
)
async def sync_membership_status(
    member_id: str,
    service: MembershipConsistencyService = Depends(get_consistency_service),
) -> SyncStatusResponse:
    success = await service.sync_status(member_id)
    report = await service.check_status(member_id)
    return SyncStatusResponse(success=success, status=_status_response(report) if report else None)


@router.put(
    "/associations/{association_id}/members/{member_id}",
    response_model=LinkChangeResponse,
    dependencies=[Depends(require_operator_api_key)],
)
async def link_member(
    association_id: str,
    member_id: str,
    service: AccountLinkService = Depends(get_link_service),
) -> LinkChangeResponse:
    """Link a member to an association and repair their status."""

    if not await service.link(member_id, association_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unable to link member to association")
    return LinkChangeResponse(success=True, memberId=member_id, associationId=association_id, linked=True)


@router.delete(
    "/associations/{association_id}/members/{member_id}",
    response_model=LinkChangeResponse,
    dependencies=[Depends(require_operator_api_key)],
)
async def unlink_member(
    association_id: str,
    member_id: str,
    service: AccountLinkService = Depends(get_link_service),
) -> LinkChangeResponse:
    if not await service.unlink(member_id, association_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unable to unlink member from association",
        )
    return LinkChangeResponse(success=True, memberId=member_id, associationId=association_id, linked=False)


@router.get("/associations/{association_id}/summary", response_model=MembershipSummaryResponse)
async def get_association_summary(
    association_id: str,
    service: MembershipConsistencyService = Depends(get_consistency_service),
) -> MembershipSummaryResponse:
    summary = await service.get_association_membership_summary(association_id)
    return MembershipSummaryResponse(
        total=summary.total,
        active=summary.active,
        pending=summary.pending,
        expired=summary.expired,
        inconsistent=summary.inconsistent,
        needsSync=summary.needs_sync,
    )


@router.post(
    "/associations/{association_id}/sync",
    response_model=BatchSyncResponse,
    dependencies=[Depends(require_operator_api_key)],
)
async def sync_association(
    association_id: str,
    service: MembershipConsistencyService = Depends(get_consistency_service),
) -> BatchSyncResponse:
    """Check and repair every member of the association, one at a time."""

    return _batch_response(await service.sync_association_members(association_id))


@router.post(
    "/associations/{association_id}/standing",
    response_model=StandingSweepResponse,
    dependencies=[Depends(require_operator_api_key)],
)
async def refresh_association_standing(
    association_id: str,
    service: MembershipStandingService = Depends(get_standing_service),
) -> StandingSweepResponse:
    return _standing_response(await service.refresh_association(association_id))


@router.get("/associations/{association_id}/standing/diagnosis", response_model=StandingDiagnosisResponse)
async def diagnose_association_standing(
    association_id: str,
    service: MembershipStandingService = Depends(get_standing_service),
) -> StandingDiagnosisResponse:
    """Preview the standing changes a refresh would apply, without writing."""

    diagnosis: StandingDiagnosis = await service.diagnose_association(association_id)
    return StandingDiagnosisResponse(
        total=diagnosis.total,
        discrepancies=[
            StandingDiscrepancyResponse(
                memberId=item.member_id,
                name=item.name,
                currentStatus=item.current_standing,
                calculatedStatus=item.calculated_standing,
                expirationDate=item.expiration_date,
            )
            for item in diagnosis.discrepancies
        ],
        errors=list(diagnosis.errors),
    )
