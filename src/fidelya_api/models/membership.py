"""Member profiles and association rosters."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String

from fidelya_api.core.timestamps import utcnow
from fidelya_api.db.base import Base


class MemberStatus(str, Enum):
    """Account-level status of a member profile.

    Stored as plain strings; values outside this set are kept as-is and
    treated as non-active by the redemption gate.
    """

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    EXPIRED = "vencido"


class MembershipStanding(str, Enum):
    """Dues standing of a member towards their association."""

    PENDING = "pendiente"
    UP_TO_DATE = "al_dia"
    EXPIRED = "vencido"


class MemberProfile(Base):
    """Member ("socio") record keyed by the account id."""

    __tablename__ = "member_profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    member_number = Column(String(64), nullable=True)
    status = Column(String(32), nullable=True, default=MemberStatus.PENDING.value)
    membership_status = Column(String(32), nullable=True, default=MembershipStanding.PENDING.value)
    association_id = Column(String(64), nullable=True, index=True)
    association_name = Column(String(255), nullable=True)
    linked_at = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    savings_total = Column(Numeric(12, 2), nullable=False, default=0)
    last_redemption_at = Column(DateTime(timezone=True), nullable=True)
    last_status_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


class Association(Base):
    """Association with an optional denormalized roster of member ids."""

    __tablename__ = "associations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    # Absent until the first member is linked.
    member_ids = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
