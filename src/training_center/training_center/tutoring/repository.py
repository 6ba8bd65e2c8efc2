from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from .model import NewTutoringRequest, TutoringRequest


class TutoringRepository(Protocol):
    def create(self, request: NewTutoringRequest, *, now: datetime) -> str:
        raise NotImplementedError

    def find_for_absence(self, *, student_id: str, class_id: str, absent_date: date) -> Optional[TutoringRequest]:
        raise NotImplementedError
