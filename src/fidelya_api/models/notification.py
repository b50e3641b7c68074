"""Queued notification triggers; delivery happens outside this service."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String

from fidelya_api.core.timestamps import utcnow
from fidelya_api.db.base import Base


class NotificationTriggerStatus(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    FAILED = "failed"


class NotificationTrigger(Base):
    __tablename__ = "notification_triggers"

    id = Column(String(64), primary_key=True, default=lambda: uuid4().hex)
    event_name = Column(String(120), nullable=False, index=True)
    target_member_id = Column(String(64), nullable=False, index=True)
    template_variables = Column(JSON, nullable=False, default=dict)
    status = Column(String(32), nullable=False, default=NotificationTriggerStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
