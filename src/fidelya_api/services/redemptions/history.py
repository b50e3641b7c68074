"""Usage history, failed attempts and paginated redemption history."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from loguru import logger
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.core.timestamps import to_instant
from fidelya_api.db.store import RecordStore, RecordStoreError
from fidelya_api.models import FailedRedemptionAttempt, Redemption, UsageHistoryEntry

from .receipts import RedemptionReceipt, RedemptionRequest

USAGE_STATUS = "used"
USAGE_PAYMENT_METHOD = "qr_validation"
USAGE_SOURCE = "qr_scanner"


def encode_history_cursor(timestamp: datetime, identifier: str) -> str:
    """Encode pagination cursor for newest-first redemption queries."""

    payload = f"{to_instant(timestamp).isoformat()}|{identifier}".encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("utf-8")


def decode_history_cursor(cursor: str) -> Tuple[datetime, str]:
    """Decode pagination cursor; malformed cursors raise ``ValueError``."""

    try:
        raw = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ValueError("Malformed history cursor") from exc
    timestamp_str, separator, identifier = raw.partition("|")
    if not separator or not identifier:
        raise ValueError("Malformed history cursor")
    return to_instant(timestamp_str), identifier


@dataclass
class RedemptionHistoryPage:
    items: list[Redemption]
    has_more: bool
    cursor: Optional[str]


async def list_member_redemptions(
    store: RecordStore,
    member_id: str,
    *,
    page_size: int,
    cursor: Optional[str] = None,
    max_page_size: int = 100,
) -> RedemptionHistoryPage:
    """Return a member's redemptions, newest first, keyset-paginated."""

    bounded = max(1, min(page_size, max_page_size))
    predicates = [Redemption.member_id == member_id]
    if cursor:
        cursor_time, cursor_id = decode_history_cursor(cursor)
        predicates.append(
            or_(
                Redemption.created_at < cursor_time,
                and_(Redemption.created_at == cursor_time, Redemption.id < cursor_id),
            )
        )

    rows = await store.query(
        Redemption,
        *predicates,
        order_by=(Redemption.created_at.desc(), Redemption.id.desc()),
        limit=bounded + 1,
    )
    has_more = len(rows) > bounded
    items = rows[:bounded]
    next_cursor = None
    if has_more and items:
        tail = items[-1]
        next_cursor = encode_history_cursor(tail.created_at, tail.id)
    return RedemptionHistoryPage(items=items, has_more=has_more, cursor=next_cursor)


class UsageHistoryRecorder:
    """Append the human-readable audit entry of a committed redemption."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def record(self, receipt: RedemptionReceipt) -> UsageHistoryEntry:
        entry = UsageHistoryEntry(
            redemption_id=receipt.redemption_id,
            benefit_id=receipt.benefit.id,
            benefit_title=receipt.benefit.title or "Beneficio",
            member_id=receipt.member.id,
            member_name=receipt.member.name,
            member_email=receipt.member.email or "",
            merchant_id=receipt.merchant.id,
            merchant_name=receipt.merchant.name,
            association_id=receipt.association_id,
            association_name=receipt.association_name,
            discount_amount=receipt.discount_amount,
            validation_code=receipt.validation_code,
            status=USAGE_STATUS,
            payment_method=USAGE_PAYMENT_METHOD,
            source=USAGE_SOURCE,
            details=f"Beneficio validado mediante código QR - {receipt.benefit.title}",
            used_at=receipt.redeemed_at,
        )
        await self._store.save(entry, label="redemption.usage_history")
        logger.debug("Recorded benefit usage", redemption_id=receipt.redemption_id, entry_id=entry.id)
        return entry


class FailedAttemptRecorder:
    """Best-effort log of rejected redemption attempts."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def record(self, request: RedemptionRequest, error: BaseException, *, reason: str, error_kind: str) -> bool:
        attempt = FailedRedemptionAttempt(
            member_id=request.member_id,
            merchant_id=request.merchant_id,
            benefit_id=request.benefit_id,
            association_id=request.association_id,
            reason=reason,
            error_kind=error_kind,
            request_payload={"request": request.as_dict(), "error_type": type(error).__name__},
        )
        try:
            await self._store.save(attempt, label="redemption.failed_attempt")
        except (RecordStoreError, SQLAlchemyError) as exc:
            logger.error(
                "Failed to record rejected redemption",
                member_id=request.member_id,
                merchant_id=request.merchant_id,
                error=str(exc),
            )
            return False
        return True


__all__ = [
    "FailedAttemptRecorder",
    "RedemptionHistoryPage",
    "UsageHistoryRecorder",
    "decode_history_cursor",
    "encode_history_cursor",
    "list_member_redemptions",
]
