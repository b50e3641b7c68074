"""Notification trigger package."""

from .triggers import (  # noqa: F401
    InMemoryNotificationTriggerSink,
    NotificationTriggerSink,
    StoreNotificationTriggerSink,
)
