from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def set_attended_sessions(self, student_id: str, *, attended_sessions: int) -> bool:
        raise NotImplementedError

    def mark_debt_if_active(
        self,
        student_id: str,
        *,
        debt_start_date: datetime,
        debt_sessions: int,
    ) -> bool:
        """Guarded transition active -> debt.

        Must only change a row whose status is still ``active`` at write time;
        returns False when the guard did not match.
        """

        raise NotImplementedError
