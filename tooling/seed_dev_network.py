"""Seed a small development loyalty network into the API database."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal
import os
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fidelya_api.core.settings import settings
from fidelya_api.core.timestamps import utcnow
from fidelya_api.models import (
    Account,
    AccountRole,
    AccountStatus,
    Association,
    Benefit,
    DiscountKind,
    MemberProfile,
    MembershipStanding,
    MemberStatus,
    Merchant,
)

ASSOCIATION_ID = os.getenv("DEV_SEED_ASSOCIATION_ID", "asoc-dev")


class SeedMember(TypedDict):
    id: str
    email: str
    full_name: str
    member_number: str
    status: str


DEV_MEMBERS: list[SeedMember] = [
    {
        "id": "socio-dev-activo",
        "email": os.getenv("DEV_SEED_ACTIVE_EMAIL", "activo@fidelya.dev").lower(),
        "full_name": "Socio Activo",
        "member_number": "DEV-0001",
        "status": MemberStatus.ACTIVE.value,
    },
    {
        "id": "socio-dev-pendiente",
        "email": os.getenv("DEV_SEED_PENDING_EMAIL", "pendiente@fidelya.dev").lower(),
        "full_name": "Socio Pendiente",
        "member_number": "DEV-0002",
        "status": MemberStatus.PENDING.value,
    },
]


async def seed_network(session: AsyncSession) -> None:
    now = utcnow()

    association = await session.get(Association, ASSOCIATION_ID)
    if association is None:
        association = Association(id=ASSOCIATION_ID, name="Asociación de Desarrollo", member_ids=[])
        session.add(association)

    roster = list(association.member_ids or [])
    for member in DEV_MEMBERS:
        account = await session.get(Account, member["id"])
        if account is None:
            account = Account(id=member["id"], email=member["email"], role=AccountRole.MEMBER.value)
            session.add(account)
        account.display_name = member["full_name"]
        account.status = member["status"]
        account.association_id = ASSOCIATION_ID

        profile = await session.get(MemberProfile, member["id"])
        if profile is None:
            profile = MemberProfile(id=member["id"])
            session.add(profile)
        profile.email = member["email"]
        profile.full_name = member["full_name"]
        profile.member_number = member["member_number"]
        profile.status = member["status"]
        profile.association_id = ASSOCIATION_ID
        profile.association_name = association.name
        profile.linked_at = profile.linked_at or now
        if member["status"] == AccountStatus.ACTIVE.value:
            profile.membership_status = MembershipStanding.UP_TO_DATE.value
            profile.expiration_date = now + timedelta(days=365)
        else:
            profile.membership_status = MembershipStanding.PENDING.value
        if member["id"] not in roster:
            roster.append(member["id"])
    association.member_ids = roster

    merchant = await session.get(Merchant, "comercio-dev")
    if merchant is None:
        merchant = Merchant(
            id="comercio-dev",
            name="Café de Prueba",
            category="gastronomia",
            address="Calle Falsa 123",
            linked_association_ids=[ASSOCIATION_ID],
        )
        session.add(merchant)

    benefit = await session.get(Benefit, "beneficio-dev")
    if benefit is None:
        session.add(
            Benefit(
                id="beneficio-dev",
                merchant_id=merchant.id,
                title="10% en consumiciones",
                description="Descuento para socios en cualquier consumición",
                discount_kind=DiscountKind.PERCENTAGE.value,
                discount_value=Decimal("10"),
                base_amount=Decimal("20"),
                valid_from=now - timedelta(days=1),
                valid_to=now + timedelta(days=90),
                per_member_limit=5,
            )
        )
    await session.commit()


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_factory() as session:
            await seed_network(session)
        print("Development loyalty network ready")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
