"""API endpoints for benefit redemptions, history and statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator

from fidelya_api.api.dependencies.services import get_redemption_service, get_stats_service
from fidelya_api.models import Redemption
from fidelya_api.observability.redemptions import get_redemption_store
from fidelya_api.services.redemptions import (
    RedemptionReceipt,
    RedemptionRequest,
    RedemptionService,
    RedemptionStatsService,
    parse_benefit_code,
)


router = APIRouter(prefix="/redemptions", tags=["redemptions"])


class RedemptionCreateRequest(BaseModel):
    memberId: str = Field(..., min_length=1)
    merchantId: Optional[str] = Field(None, description="Merchant to redeem at")
    benefitId: Optional[str] = Field(None, description="Preferred benefit; falls back to the first eligible")
    associationId: Optional[str] = None
    code: Optional[str] = Field(None, description="Scanned benefit code, used when merchantId is omitted")

    @model_validator(mode="after")
    def _require_merchant_or_code(self) -> "RedemptionCreateRequest":
        if not self.merchantId and not self.code:
            raise ValueError("merchantId or code is required")
        return self


class MerchantSummary(BaseModel):
    id: str
    name: str
    category: Optional[str]
    address: Optional[str]
    logoUrl: Optional[str]


class BenefitSummary(BaseModel):
    id: str
    title: str
    description: Optional[str]
    discountKind: str
    discountValue: float
    conditions: Optional[str]


class MemberSummary(BaseModel):
    id: str
    name: str
    memberNumber: str
    membershipStatus: str


class RedemptionReceiptResponse(BaseModel):
    id: str
    validationCode: str
    discountAmount: float
    redeemedAt: datetime
    associationId: Optional[str]
    flags: List[str]
    member: MemberSummary
    merchant: MerchantSummary
    benefit: BenefitSummary


class RedemptionResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None
    redemption: Optional[RedemptionReceiptResponse] = None


class RedemptionHistoryItem(BaseModel):
    id: str
    merchantId: str
    merchantName: Optional[str]
    merchantLogoUrl: Optional[str]
    benefitId: str
    benefitTitle: Optional[str]
    benefitDescription: Optional[str]
    discountKind: Optional[str]
    discountValue: Optional[float]
    discountAmount: float
    validationCode: str
    outcome: str
    createdAt: datetime


class RedemptionHistoryResponse(BaseModel):
    items: List[RedemptionHistoryItem]
    hasMore: bool
    nextCursor: Optional[str]


class BenefitUsageResponse(BaseModel):
    benefitId: str
    title: str
    uses: int
    savings: float


class MerchantVisitsResponse(BaseModel):
    merchantId: str
    name: str
    visits: int
    lastVisit: Optional[datetime]


class MonthlyBucketResponse(BaseModel):
    month: str
    redemptions: int
    savings: float


class MemberStatsResponse(BaseModel):
    totalRedemptions: int
    totalSavings: float
    topBenefits: List[BenefitUsageResponse]
    favouriteMerchants: List[MerchantVisitsResponse]
    monthly: List[MonthlyBucketResponse]
    currentStreak: int
    bestStreak: int
    averageSavings: float
    savingsTrend: Literal["up", "down", "stable"]


class CodeParseRequest(BaseModel):
    raw: str


class CodeParseResponse(BaseModel):
    recognized: bool
    merchantId: Optional[str] = None
    benefitId: Optional[str] = None


def _receipt_response(receipt: RedemptionReceipt) -> RedemptionReceiptResponse:
    return RedemptionReceiptResponse(
        id=receipt.redemption_id,
        validationCode=receipt.validation_code,
        discountAmount=float(receipt.discount_amount),
        redeemedAt=receipt.redeemed_at,
        associationId=receipt.association_id,
        flags=list(receipt.flags),
        member=MemberSummary(
            id=receipt.member.id,
            name=receipt.member.name,
            memberNumber=receipt.member.member_number,
            membershipStatus=receipt.member.membership_status,
        ),
        merchant=MerchantSummary(
            id=receipt.merchant.id,
            name=receipt.merchant.name,
            category=receipt.merchant.category,
            address=receipt.merchant.address,
            logoUrl=receipt.merchant.logo_url,
        ),
        benefit=BenefitSummary(
            id=receipt.benefit.id,
            title=receipt.benefit.title,
            description=receipt.benefit.description,
            discountKind=receipt.benefit.discount_kind,
            discountValue=float(receipt.benefit.discount_value),
            conditions=receipt.benefit.conditions,
        ),
    )


def _history_item(record: Redemption) -> RedemptionHistoryItem:
    return RedemptionHistoryItem(
        id=record.id,
        merchantId=record.merchant_id,
        merchantName=record.merchant_name,
        merchantLogoUrl=record.merchant_logo_url,
        benefitId=record.benefit_id,
        benefitTitle=record.benefit_title,
        benefitDescription=record.benefit_description,
        discountKind=record.benefit_discount_kind,
        discountValue=float(record.benefit_discount_value) if record.benefit_discount_value is not None else None,
        discountAmount=float(record.discount_amount or 0),
        validationCode=record.validation_code,
        outcome=record.outcome,
        createdAt=record.created_at,
    )


@router.post("", response_model=RedemptionResponse)
async def redeem_benefit(
    payload: RedemptionCreateRequest,
    service: RedemptionService = Depends(get_redemption_service),
) -> RedemptionResponse:
    """Validate a member at a merchant; rejections come back with ``success=false``."""

    merchant_id = payload.merchantId
    benefit_id = payload.benefitId
    if not merchant_id:
        parsed = parse_benefit_code(payload.code)
        if parsed is None:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Unrecognized benefit code")
        merchant_id = parsed.merchant_id
        benefit_id = benefit_id or parsed.benefit_id

    result = await service.redeem_benefit(
        RedemptionRequest(
            member_id=payload.memberId,
            merchant_id=merchant_id,
            benefit_id=benefit_id,
            association_id=payload.associationId,
        )
    )
    return RedemptionResponse(
        success=result.success,
        message=result.message,
        error=result.error,
        redemption=_receipt_response(result.receipt) if result.receipt else None,
    )


@router.get("/members/{member_id}", response_model=RedemptionHistoryResponse)
async def list_member_redemptions(
    member_id: str,
    limit: int = Query(50, ge=1, le=100),
    cursor: str | None = Query(None, description="Opaque cursor for pagination"),
    service: RedemptionService = Depends(get_redemption_service),
) -> RedemptionHistoryResponse:
    try:
        page = await service.get_redemption_history(member_id, page_size=limit, cursor=cursor)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid redemption cursor") from exc
    return RedemptionHistoryResponse(
        items=[_history_item(record) for record in page.items],
        hasMore=page.has_more,
        nextCursor=page.cursor,
    )


@router.get("/members/{member_id}/stats", response_model=MemberStatsResponse)
async def get_member_stats(
    member_id: str,
    service: RedemptionStatsService = Depends(get_stats_service),
) -> MemberStatsResponse:
    stats = await service.get_member_stats(member_id)
    return MemberStatsResponse(
        totalRedemptions=stats.total_redemptions,
        totalSavings=float(stats.total_savings),
        topBenefits=[
            BenefitUsageResponse(benefitId=item.benefit_id, title=item.title, uses=item.uses, savings=float(item.savings))
            for item in stats.top_benefits
        ],
        favouriteMerchants=[
            MerchantVisitsResponse(
                merchantId=item.merchant_id,
                name=item.name,
                visits=item.visits,
                lastVisit=item.last_visit,
            )
            for item in stats.favourite_merchants
        ],
        monthly=[
            MonthlyBucketResponse(month=item.month, redemptions=item.redemptions, savings=float(item.savings))
            for item in stats.monthly
        ],
        currentStreak=stats.current_streak,
        bestStreak=stats.best_streak,
        averageSavings=float(stats.average_savings),
        savingsTrend=stats.savings_trend,
    )


@router.post("/codes/parse", response_model=CodeParseResponse)
async def parse_code(payload: CodeParseRequest) -> CodeParseResponse:
    parsed = parse_benefit_code(payload.raw)
    if parsed is None:
        return CodeParseResponse(recognized=False)
    return CodeParseResponse(recognized=True, merchantId=parsed.merchant_id, benefitId=parsed.benefit_id)


@router.get("/observability")
async def redemption_observability() -> dict[str, Any]:
    """In-process redemption counters since the last restart."""

    return get_redemption_store().snapshot().as_dict()
