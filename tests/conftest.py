import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from fidelya_api.app import create_app  # noqa: E402
from fidelya_api.db.base import Base  # noqa: E402
from fidelya_api.db.session import get_record_store  # noqa: E402
from fidelya_api.db.store import RecordStore  # noqa: E402
from fidelya_api.models import (  # noqa: E402
    Account,
    Association,
    Benefit,
    MemberProfile,
    Merchant,
)
from fidelya_api.observability.redemptions import get_redemption_store  # noqa: E402


class NetworkSeeder:
    """Insert accounts, members, associations, merchants and benefits."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def member(
        self,
        member_id: str = "socio-1",
        *,
        account_status: str | None = "active",
        member_status: str | None = "active",
        membership_status: str | None = "al_dia",
        association_id: str | None = None,
        email: str | None = None,
        with_account: bool = True,
        **fields: Any,
    ) -> MemberProfile:
        email = email or f"{member_id}@example.com"
        fields.setdefault("full_name", f"Socio {member_id}")
        fields.setdefault("member_number", f"N-{member_id}")
        member = MemberProfile(
            id=member_id,
            email=email,
            status=member_status,
            membership_status=membership_status,
            association_id=association_id,
            **fields,
        )
        records: list[Any] = [member]
        if with_account:
            records.append(
                Account(id=member_id, email=email, status=account_status, association_id=association_id)
            )
        await self.store.save(*records)
        return member

    async def association(
        self,
        association_id: str = "asoc-1",
        *,
        name: str = "Asociación Uno",
        member_ids: list[str] | None = None,
    ) -> Association:
        association = Association(id=association_id, name=name, member_ids=member_ids)
        await self.store.save(association)
        return association

    async def merchant(self, merchant_id: str = "comercio-1", **fields: Any) -> Merchant:
        fields.setdefault("name", "Café Central")
        fields.setdefault("category", "gastronomia")
        fields.setdefault("address", "Av. Siempre Viva 742")
        merchant = Merchant(id=merchant_id, linked_association_ids=[], **fields)
        await self.store.save(merchant)
        return merchant

    async def benefit(self, benefit_id: str = "beneficio-1", merchant_id: str = "comercio-1", **fields: Any) -> Benefit:
        fields.setdefault("title", "10% de descuento")
        fields.setdefault("discount_kind", "percentage")
        fields.setdefault("discount_value", Decimal("10"))
        benefit = Benefit(id=benefit_id, merchant_id=merchant_id, association_ids=[], **fields)
        await self.store.save(benefit)
        return benefit


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fidelya.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    return RecordStore(session_factory, max_attempts=3, backoff_seconds=0)


@pytest_asyncio.fixture
async def seed(store):
    return NetworkSeeder(store)


@pytest.fixture(autouse=True)
def reset_redemption_observability():
    get_redemption_store().reset()
    yield
    get_redemption_store().reset()


@pytest_asyncio.fixture
async def app_with_db(store):
    app = create_app()
    app.dependency_overrides[get_record_store] = lambda: store

    try:
        yield app, store
    finally:
        app.dependency_overrides.clear()
