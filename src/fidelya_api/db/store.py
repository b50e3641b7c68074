"""Record store: keyed reads, queries and retried optimistic transactions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Generic, Iterable, Mapping, Sequence, TypeVar

from loguru import logger
from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from fidelya_api.core.timestamps import utcnow

ModelT = TypeVar("ModelT")
ResultT = TypeVar("ResultT")

SessionFactory = async_sessionmaker[AsyncSession]


class RecordStoreError(RuntimeError):
    """Base error for record store failures."""


class TransactionConflictError(RecordStoreError):
    """Raised when a transaction keeps conflicting after every retry."""

    def __init__(self, attempts: int, cause: BaseException | None = None) -> None:
        super().__init__(f"Transaction aborted after {attempts} conflicting attempts")
        self.attempts = attempts
        self.cause = cause


class RecordUpdateError(RecordStoreError):
    """Non-fatal failure applying a best-effort patch to a record."""

    def __init__(self, model: str, key: Any, reason: str) -> None:
        super().__init__(f"Could not update {model}({key}): {reason}")
        self.model = model
        self.key = key
        self.reason = reason


@dataclass(frozen=True)
class Increment:
    """Patch value that adds ``amount`` to the current column value."""

    amount: int | Decimal = 1


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of ``Transaction.try_update``."""

    applied: bool
    error: RecordUpdateError | None = None


def _record_key(record: Any) -> Any:
    identity = sa_inspect(record).identity
    if identity:
        return identity[0] if len(identity) == 1 else identity
    return getattr(record, "id", None)


class Transaction:
    """Handle passed to transaction bodies; all writes commit together."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, model: type[ModelT], key: Any) -> ModelT | None:
        return await self.session.get(model, key)

    async def query(
        self,
        model: type[ModelT],
        *predicates: Any,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = select(model).where(*predicates)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, model: type[Any], *predicates: Any) -> int:
        stmt = select(func.count()).select_from(model).where(*predicates)
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    def add(self, record: Any) -> None:
        self.session.add(record)

    def add_all(self, records: Iterable[Any]) -> None:
        self.session.add_all(list(records))

    def update(self, record: Any, patch: Mapping[str, Any]) -> None:
        """Apply ``patch`` to a mapped record; unknown columns raise."""

        mapper = sa_inspect(type(record))
        columns = mapper.column_attrs
        for field, value in patch.items():
            if field not in columns:
                raise AttributeError(f"{type(record).__name__} has no column {field!r}")
            if isinstance(value, Increment):
                current = getattr(record, field)
                value = (current if current is not None else 0) + value.amount
            setattr(record, field, value)

    def try_update(self, record: Any, patch: Mapping[str, Any]) -> UpdateOutcome:
        """Best-effort variant of ``update``; failures become a typed outcome."""

        try:
            self.update(record, patch)
        except (AttributeError, TypeError, ValueError, ArithmeticError, SQLAlchemyError) as exc:
            error = RecordUpdateError(type(record).__name__, _record_key(record), str(exc))
            logger.warning(
                "Best-effort record update skipped",
                model=error.model,
                key=str(error.key),
                reason=error.reason,
            )
            return UpdateOutcome(applied=False, error=error)
        return UpdateOutcome(applied=True)


class RecordStore:
    """Async record store over an ``async_sessionmaker``.

    ``run_transaction`` executes the body in a fresh session and commits it.
    Versioned models raise ``StaleDataError`` when another writer got there
    first; the body is then re-run from scratch, re-reading every record, up to
    ``max_attempts`` times.
    """

    _TRANSIENT_MARKERS = ("locked", "deadlock", "could not serialize", "busy")

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        max_attempts: int = 5,
        backoff_seconds: float = 0.05,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    @property
    def session_factory(self) -> SessionFactory:
        return self._session_factory

    @classmethod
    def _is_retryable(cls, exc: BaseException) -> bool:
        if isinstance(exc, StaleDataError):
            return True
        message = str(exc).lower()
        return any(marker in message for marker in cls._TRANSIENT_MARKERS)

    @staticmethod
    def server_timestamp() -> datetime:
        return utcnow()

    async def get(self, model: type[ModelT], key: Any) -> ModelT | None:
        async with self._session_factory() as session:
            return await session.get(model, key)

    async def query(
        self,
        model: type[ModelT],
        *predicates: Any,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        async with self._session_factory() as session:
            return await Transaction(session).query(
                model, *predicates, order_by=order_by, limit=limit
            )

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[ResultT]],
        *,
        label: str | None = None,
    ) -> ResultT:
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        return await fn(Transaction(session))
            except (StaleDataError, OperationalError) as exc:
                if not self._is_retryable(exc):
                    raise
                last_error = exc
                logger.warning(
                    "Record store transaction conflicted",
                    label=label or getattr(fn, "__name__", "transaction"),
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(exc),
                )
                if attempt < self.max_attempts and self.backoff_seconds:
                    await asyncio.sleep(self.backoff_seconds * (2 ** (attempt - 1)))

        raise TransactionConflictError(self.max_attempts, last_error)

    async def save(self, *records: Any, label: str | None = None) -> None:
        """Insert records in a single short transaction."""

        async def _insert(tx: Transaction) -> None:
            tx.add_all(records)

        await self.run_transaction(_insert, label=label or "save")


__all__ = [
    "Increment",
    "RecordStore",
    "RecordStoreError",
    "RecordUpdateError",
    "Transaction",
    "TransactionConflictError",
    "UpdateOutcome",
]
