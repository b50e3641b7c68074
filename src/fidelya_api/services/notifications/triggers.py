"""Notification trigger sinks; rendering and delivery live elsewhere."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Protocol

from loguru import logger

from fidelya_api.db.store import RecordStore
from fidelya_api.models import NotificationTrigger


class NotificationTriggerSink(Protocol):
    """Fire-and-forget sink for "something happened" events."""

    async def emit(
        self,
        event_name: str,
        template_variables: Mapping[str, Any],
        target_member_id: str,
    ) -> None:
        ...


class StoreNotificationTriggerSink:
    """Queue triggers as ``NotificationTrigger`` rows for an external dispatcher."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def emit(
        self,
        event_name: str,
        template_variables: Mapping[str, Any],
        target_member_id: str,
    ) -> None:
        trigger = NotificationTrigger(
            event_name=event_name,
            target_member_id=target_member_id,
            template_variables={key: str(value) for key, value in template_variables.items()},
        )
        await self._store.save(trigger, label="notifications.trigger")
        logger.info("Queued notification trigger", event_name=event_name, member_id=target_member_id)


@dataclass
class InMemoryNotificationTriggerSink:
    """Stores emitted triggers for inspection in tests."""

    emitted: List[dict[str, Any]]

    def __init__(self) -> None:
        self.emitted = []

    async def emit(
        self,
        event_name: str,
        template_variables: Mapping[str, Any],
        target_member_id: str,
    ) -> None:
        self.emitted.append(
            {
                "event_name": event_name,
                "template_variables": dict(template_variables),
                "target_member_id": target_member_id,
            }
        )


__all__ = [
    "InMemoryNotificationTriggerSink",
    "NotificationTriggerSink",
    "StoreNotificationTriggerSink",
]
