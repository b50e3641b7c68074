"""Redeem-a-benefit transaction and its post-commit side effects."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.core.settings import settings
from fidelya_api.db.store import Increment, RecordStore, RecordStoreError, Transaction
from fidelya_api.models import Benefit, BenefitStatus, MemberProfile, Merchant, Redemption, RedemptionOutcome
from fidelya_api.observability.redemptions import RedemptionObservabilityStore, get_redemption_store
from fidelya_api.observability.tracing import get_tracer
from fidelya_api.services.customers import CustomerUpsertSink, StoreCustomerUpsertSink
from fidelya_api.services.notifications import NotificationTriggerSink, StoreNotificationTriggerSink

from .errors import (
    SUCCESS_MESSAGE,
    UNKNOWN_FAILURE_MESSAGE,
    BenefitUnavailableError,
    MemberNotFoundError,
    MerchantNotFoundError,
    NoEligibleBenefitError,
    RedemptionError,
)
from .history import FailedAttemptRecorder, RedemptionHistoryPage, UsageHistoryRecorder, list_member_redemptions
from .policies import (
    FLAG_BENEFIT_FALLBACK,
    FLAG_MEMBER_NUMBER_FALLBACK,
    RedemptionPolicy,
    check_member_status,
    evaluate_usage_limits,
    evaluate_validity_window,
    generate_validation_code,
    select_benefit,
)
from .receipts import (
    BenefitSnapshot,
    MemberSnapshot,
    MerchantSnapshot,
    RedemptionReceipt,
    RedemptionRequest,
    RedemptionResult,
)

DEFAULT_MEMBER_NAME = "Socio sin nombre"
DEFAULT_MEMBER_NUMBER = "SIN-NUMERO"
DEFAULT_MEMBERSHIP_STATUS = "independiente"
DEFAULT_MERCHANT_NAME = "Comercio sin nombre"


@dataclass
class _Committed:
    receipt: RedemptionReceipt
    counter_failures: list[str]


class RedemptionService:
    """Validate a member at a merchant and record the redemption atomically.

    Steps up to and including the Redemption insert and counter increments run
    in one store transaction that is re-executed on write conflicts. Usage
    history, the notification trigger and the customer upsert run afterwards
    and can never undo a committed redemption.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        policy: RedemptionPolicy | None = None,
        history: UsageHistoryRecorder | None = None,
        failures: FailedAttemptRecorder | None = None,
        notifications: NotificationTriggerSink | None = None,
        customers: CustomerUpsertSink | None = None,
        observability: RedemptionObservabilityStore | None = None,
        notification_event: str | None = None,
    ) -> None:
        self._store = store
        self._policy = policy or RedemptionPolicy.from_settings()
        self._history = history or UsageHistoryRecorder(store)
        self._failures = failures or FailedAttemptRecorder(store)
        self._notifications = notifications or StoreNotificationTriggerSink(store)
        self._customers = customers or StoreCustomerUpsertSink(store)
        self._observability = observability or get_redemption_store()
        self._notification_event = notification_event or settings.redemption_notification_event

    @property
    def policy(self) -> RedemptionPolicy:
        return self._policy

    async def redeem_benefit(self, request: RedemptionRequest) -> RedemptionResult:
        tracer = get_tracer()
        with tracer.start_as_current_span("redemption.redeem_benefit") as span:
            span.set_attribute("fidelya.member_id", request.member_id)
            span.set_attribute("fidelya.merchant_id", request.merchant_id)
            try:
                committed = await self._store.run_transaction(
                    lambda tx: self._redeem(tx, request),
                    label="redemption.redeem",
                )
            except RedemptionError as exc:
                span.set_attribute("fidelya.outcome", "rejected")
                return await self._reject(request, exc, message=exc.message, error_kind=exc.error_kind)
            except (RecordStoreError, SQLAlchemyError) as exc:
                span.set_attribute("fidelya.outcome", "error")
                logger.exception("Redemption transaction failed", member_id=request.member_id)
                return await self._reject(
                    request,
                    exc,
                    message=UNKNOWN_FAILURE_MESSAGE,
                    error_kind=type(exc).__name__,
                )

            receipt = committed.receipt
            span.set_attribute("fidelya.outcome", "success")
            span.set_attribute("fidelya.benefit_id", receipt.benefit.id)

        self._observability.record_success(receipt.flags)
        logger.info(
            "Benefit redeemed",
            redemption_id=receipt.redemption_id,
            member_id=receipt.member.id,
            merchant_id=receipt.merchant.id,
            benefit_id=receipt.benefit.id,
            validation_code=receipt.validation_code,
            flags=list(receipt.flags),
            counter_failures=committed.counter_failures,
        )

        await self._run_side_effects(receipt)
        return RedemptionResult(success=True, message=SUCCESS_MESSAGE, receipt=receipt)

    async def _redeem(self, tx: Transaction, request: RedemptionRequest) -> _Committed:
        member = await tx.get(MemberProfile, request.member_id)
        if member is None:
            raise MemberNotFoundError(request.member_id)
        check_member_status(member.status)

        merchant = await tx.get(Merchant, request.merchant_id)
        if merchant is None:
            raise MerchantNotFoundError(request.merchant_id)

        benefits = await tx.query(
            Benefit,
            Benefit.merchant_id == merchant.id,
            Benefit.status == BenefitStatus.ACTIVE.value,
            order_by=(Benefit.created_at, Benefit.id),
        )
        if not benefits:
            raise NoEligibleBenefitError(merchant.id)

        benefit, fell_back = select_benefit(benefits, request.benefit_id)
        flags: list[str] = []
        if fell_back:
            flags.append(FLAG_BENEFIT_FALLBACK)
            logger.warning(
                "Requested benefit not eligible, using first eligible benefit",
                requested_benefit_id=request.benefit_id,
                benefit_id=benefit.id,
                merchant_id=merchant.id,
            )

        now = self._store.server_timestamp()
        member_redemptions = 0
        if benefit.per_member_limit is not None:
            member_redemptions = await tx.count(
                Redemption,
                Redemption.member_id == member.id,
                Redemption.benefit_id == benefit.id,
                Redemption.outcome == RedemptionOutcome.SUCCESS.value,
            )
        redemptions_today = 0
        if benefit.daily_limit is not None:
            redemptions_today = await tx.count(
                Redemption,
                Redemption.benefit_id == benefit.id,
                Redemption.outcome == RedemptionOutcome.SUCCESS.value,
                Redemption.created_at >= now.replace(hour=0, minute=0, second=0, microsecond=0),
            )
        soft_flags = evaluate_validity_window(benefit, now) + evaluate_usage_limits(
            benefit, member_redemptions, redemptions_today
        )
        if soft_flags:
            if not self._policy.permissive_mode:
                raise BenefitUnavailableError(benefit.id, soft_flags)
            logger.warning(
                "Benefit soft checks failed, allowed by permissive mode",
                benefit_id=benefit.id,
                flags=soft_flags,
            )
            flags.extend(soft_flags)
        if not member.member_number:
            flags.append(FLAG_MEMBER_NUMBER_FALLBACK)

        validation_code = generate_validation_code(self._policy.code_prefix, now)
        discount_amount = Decimal(self._policy.discount_policy(benefit))
        association_id = member.association_id or request.association_id

        counter_failures: list[str] = []
        counter_patches = (
            (benefit, {"usage_count": Increment(), "last_used_at": now}),
            (
                member,
                {
                    "usage_count": Increment(),
                    "savings_total": Increment(discount_amount),
                    "last_redemption_at": now,
                },
            ),
            (
                merchant,
                {
                    "redemption_count": Increment(),
                    "customers_served": Increment(),
                    "revenue_accrued": Increment(discount_amount),
                    "last_redemption_at": now,
                },
            ),
        )
        for record, patch in counter_patches:
            outcome = tx.try_update(record, patch)
            if not outcome.applied and outcome.error is not None:
                counter_failures.append(outcome.error.model)

        member_snapshot = MemberSnapshot(
            id=member.id,
            name=member.full_name or DEFAULT_MEMBER_NAME,
            member_number=member.member_number or DEFAULT_MEMBER_NUMBER,
            email=member.email,
            membership_status=member.membership_status or DEFAULT_MEMBERSHIP_STATUS,
        )
        merchant_snapshot = MerchantSnapshot(
            id=merchant.id,
            name=merchant.name or DEFAULT_MERCHANT_NAME,
            category=merchant.category or "",
            address=merchant.address or "",
            logo_url=merchant.logo_url,
        )
        benefit_snapshot = BenefitSnapshot(
            id=benefit.id,
            title=benefit.title or "",
            description=benefit.description or "",
            discount_kind=benefit.discount_kind,
            discount_value=Decimal(benefit.discount_value or 0),
            conditions=benefit.conditions,
        )

        redemption = Redemption(
            id=uuid4().hex,
            member_id=member_snapshot.id,
            member_name=member_snapshot.name,
            member_email=member_snapshot.email,
            merchant_id=merchant_snapshot.id,
            merchant_name=merchant_snapshot.name,
            merchant_category=merchant_snapshot.category,
            merchant_address=merchant_snapshot.address,
            merchant_logo_url=merchant_snapshot.logo_url,
            benefit_id=benefit_snapshot.id,
            benefit_title=benefit_snapshot.title,
            benefit_description=benefit_snapshot.description,
            benefit_discount_kind=benefit_snapshot.discount_kind,
            benefit_discount_value=benefit_snapshot.discount_value,
            association_id=association_id,
            association_name=member.association_name,
            discount_amount=discount_amount,
            validation_code=validation_code,
            outcome=RedemptionOutcome.SUCCESS.value,
            metadata_json={
                "flags": list(flags),
                "permissive_mode": self._policy.permissive_mode,
                "member_status": member.status,
                "member_number": member_snapshot.member_number,
                "membership_status": member_snapshot.membership_status,
                "requested_benefit_id": request.benefit_id,
                "counter_failures": counter_failures,
            },
            created_at=now,
        )
        tx.add(redemption)

        receipt = RedemptionReceipt(
            redemption_id=redemption.id,
            validation_code=validation_code,
            discount_amount=discount_amount,
            redeemed_at=now,
            member=member_snapshot,
            merchant=merchant_snapshot,
            benefit=benefit_snapshot,
            association_id=association_id,
            association_name=member.association_name,
            flags=tuple(flags),
        )
        return _Committed(receipt=receipt, counter_failures=counter_failures)

    async def _run_side_effects(self, receipt: RedemptionReceipt) -> None:
        try:
            await self._history.record(receipt)
        except Exception:  # noqa: BLE001 - audit mirror never undoes a redemption
            self._observability.record_side_effect_failure("usage_history")
            logger.exception("Failed to record usage history", redemption_id=receipt.redemption_id)

        try:
            await self._notifications.emit(
                self._notification_event,
                {
                    "beneficio_titulo": receipt.benefit.title,
                    "comercio_nombre": receipt.merchant.name,
                    "descuento": _format_amount(receipt.benefit.discount_value),
                },
                receipt.member.id,
            )
        except Exception:  # noqa: BLE001
            self._observability.record_side_effect_failure("notification")
            logger.exception("Failed to emit redemption notification", redemption_id=receipt.redemption_id)

        try:
            await self._customers.upsert(
                receipt.member.id,
                receipt.merchant.id,
                {
                    "member_name": receipt.member.name,
                    "member_email": receipt.member.email,
                    "association_id": receipt.association_id,
                    "redemption_id": receipt.redemption_id,
                },
            )
        except Exception:  # noqa: BLE001
            self._observability.record_side_effect_failure("customer_upsert")
            logger.exception("Failed to upsert merchant customer", redemption_id=receipt.redemption_id)

    async def _reject(
        self,
        request: RedemptionRequest,
        error: BaseException,
        *,
        message: str,
        error_kind: str,
    ) -> RedemptionResult:
        logger.warning(
            "Redemption rejected",
            member_id=request.member_id,
            merchant_id=request.merchant_id,
            error_kind=error_kind,
            reason=message,
        )
        self._observability.record_failure(error_kind)
        await self._failures.record(request, error, reason=message, error_kind=error_kind)
        return RedemptionResult(success=False, message=message, error=message)

    async def get_redemption_history(
        self,
        member_id: str,
        page_size: int = 50,
        cursor: Optional[str] = None,
    ) -> RedemptionHistoryPage:
        return await list_member_redemptions(
            self._store,
            member_id,
            page_size=page_size,
            cursor=cursor,
            max_page_size=settings.redemption_history_max_page_size,
        )


def _format_amount(value: Decimal) -> str:
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal(1)))
    return str(normalized)


__all__ = ["RedemptionService"]
