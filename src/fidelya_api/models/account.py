"""Login accounts of the loyalty network."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String

from fidelya_api.core.timestamps import utcnow
from fidelya_api.db.base import Base


class AccountStatus(str, Enum):
    """Lifecycle of an account."""

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class AccountRole(str, Enum):
    ADMIN = "admin"
    ASSOCIATION = "asociacion"
    MERCHANT = "comercio"
    MEMBER = "socio"


class Account(Base):
    """Authentication-side record; mirrors part of the member's status."""

    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default=AccountRole.MEMBER.value)
    status = Column(String(32), nullable=True, default=AccountStatus.PENDING.value)
    association_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
