from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import SenderRole


@dataclass(frozen=True, slots=True)
class Identity:
    """Current user as known to the auth collaborator."""

    user_id: int
    role: SenderRole
    token: str

    @property
    def is_faculty(self) -> bool:
        return self.role == SenderRole.FACULTY
