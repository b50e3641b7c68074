"""Worker that periodically recomputes membership standing."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Sequence

from loguru import logger

from fidelya_api.core.settings import settings
from fidelya_api.db.store import RecordStore
from fidelya_api.jobs.membership import run_membership_standing_sweep


class MembershipStandingWorker:
    """Runs the standing sweep on a fixed interval until stopped."""

    def __init__(
        self,
        store: RecordStore,
        *,
        interval_seconds: int | None = None,
        association_ids: Sequence[str] | None = None,
    ) -> None:
        self._store = store
        self.interval_seconds = interval_seconds or settings.membership_standing_interval_seconds
        self.association_ids = (
            list(association_ids)
            if association_ids is not None
            else list(settings.membership_standing_association_ids)
        )
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.is_running: bool = False
        self._logger = logger.bind(worker="membership_standing")

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self.is_running = True
        self._logger.info("Membership standing worker started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self.is_running = False
        self._logger.info("Membership standing worker stopped")

    async def run_once(self) -> Dict[str, Any]:
        return await run_membership_standing_sweep(store=self._store, association_ids=self.association_ids)

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                summary = await self.run_once()
                self._logger.info(
                    "Membership standing iteration",
                    updated=summary.get("updated"),
                    success=summary.get("success"),
                )
            except Exception as exc:  # pragma: no cover - defensive logging
                self._logger.exception("Membership standing iteration failed", error=str(exc))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue


__all__ = ["MembershipStandingWorker"]
