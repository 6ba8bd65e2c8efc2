from __future__ import annotations

from typing import Protocol


class ClassSessionRepository(Protocol):
    def mark_completed(self, session_id: str, *, attendance_id: str) -> bool:
        """Mark a planned class session as taught and link it to its attendance record."""

        raise NotImplementedError
