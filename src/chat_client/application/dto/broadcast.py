from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BroadcastResult:
    success_count: int
    total_students: int

    @property
    def is_partial(self) -> bool:
        return self.success_count < self.total_students

    @property
    def summary(self) -> str:
        return f"sent to {self.success_count} out of {self.total_students}"
