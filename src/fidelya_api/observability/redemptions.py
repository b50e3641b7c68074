from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable


@dataclass
class RedemptionSnapshot:
    outcomes: Dict[str, int]
    failures: Dict[str, int]
    flags: Dict[str, int]
    side_effects: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "outcomes": dict(self.outcomes),
            "failures": dict(self.failures),
            "flags": dict(self.flags),
            "side_effects": dict(self.side_effects),
        }


class RedemptionObservabilityStore:
    """Collect redemption pipeline telemetry for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._outcomes: Dict[str, int] = defaultdict(int)
        self._failures: Dict[str, int] = defaultdict(int)
        self._flags: Dict[str, int] = defaultdict(int)
        self._side_effects: Dict[str, int] = defaultdict(int)

    def record_success(self, flags: Iterable[str] = ()) -> None:
        with self._lock:
            self._outcomes["success"] += 1
            for flag in flags:
                self._flags[flag] += 1

    def record_failure(self, error_kind: str) -> None:
        with self._lock:
            self._outcomes["failed"] += 1
            self._failures[error_kind or "unknown"] += 1

    def record_side_effect_failure(self, step: str) -> None:
        with self._lock:
            self._side_effects[f"{step}:failed"] += 1

    def snapshot(self) -> RedemptionSnapshot:
        with self._lock:
            return RedemptionSnapshot(
                outcomes=dict(self._outcomes),
                failures=dict(self._failures),
                flags=dict(self._flags),
                side_effects=dict(self._side_effects),
            )

    def reset(self) -> None:
        with self._lock:
            self._outcomes.clear()
            self._failures.clear()
            self._flags.clear()
            self._side_effects.clear()


_STORE = RedemptionObservabilityStore()


def get_redemption_store() -> RedemptionObservabilityStore:
    return _STORE


__all__ = ["get_redemption_store", "RedemptionObservabilityStore", "RedemptionSnapshot"]
