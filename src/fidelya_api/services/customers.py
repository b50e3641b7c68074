"""Merchant-facing customer records maintained from redemptions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Protocol

from loguru import logger

from fidelya_api.db.store import Increment, RecordStore, Transaction
from fidelya_api.models import MerchantCustomer, merchant_customer_key


class CustomerUpsertSink(Protocol):
    async def upsert(self, member_id: str, merchant_id: str, metadata: Mapping[str, Any]) -> None:
        ...


class StoreCustomerUpsertSink:
    """Create or refresh the (merchant, member) customer row."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def upsert(self, member_id: str, merchant_id: str, metadata: Mapping[str, Any]) -> None:
        key = merchant_customer_key(merchant_id, member_id)

        async def _upsert(tx: Transaction) -> bool:
            now = self._store.server_timestamp()
            customer = await tx.get(MerchantCustomer, key)
            if customer is None:
                tx.add(
                    MerchantCustomer(
                        id=key,
                        merchant_id=merchant_id,
                        member_id=member_id,
                        visit_count=1,
                        first_seen_at=now,
                        last_seen_at=now,
                        last_redemption_id=metadata.get("redemption_id"),
                        metadata_json=dict(metadata),
                    )
                )
                return True
            tx.update(
                customer,
                {
                    "visit_count": Increment(),
                    "last_seen_at": now,
                    "last_redemption_id": metadata.get("redemption_id"),
                    "metadata_json": {**(customer.metadata_json or {}), **metadata},
                },
            )
            return False

        created = await self._store.run_transaction(_upsert, label="customers.upsert")
        logger.debug("Upserted merchant customer", customer_id=key, created=created)


@dataclass
class InMemoryCustomerUpsertSink:
    """Collects upserts for inspection in tests."""

    upserts: List[dict[str, Any]]

    def __init__(self) -> None:
        self.upserts = []

    async def upsert(self, member_id: str, merchant_id: str, metadata: Mapping[str, Any]) -> None:
        self.upserts.append({"member_id": member_id, "merchant_id": merchant_id, "metadata": dict(metadata)})


__all__ = ["CustomerUpsertSink", "InMemoryCustomerUpsertSink", "StoreCustomerUpsertSink"]
