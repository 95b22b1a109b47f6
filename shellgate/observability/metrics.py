from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class GatewayMetrics:
    commands_total: int = 0
    commands_blocked_total: Dict[str, int] = field(default_factory=dict)
    commands_failed_total: int = 0
    commands_timed_out_total: int = 0
    background_spawned_total: int = 0

    def increment_blocked(self, kind: str) -> None:
        self.commands_blocked_total[kind] = self.commands_blocked_total.get(kind, 0) + 1

    def snapshot(self) -> dict:
        return {
            "commands_total": self.commands_total,
            "commands_blocked_total": dict(self.commands_blocked_total),
            "commands_failed_total": self.commands_failed_total,
            "commands_timed_out_total": self.commands_timed_out_total,
            "background_spawned_total": self.background_spawned_total,
        }
