# expense_tracker/core/models.py
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from expense_tracker.core.schedule import Frequency, Schedule, encode


@dataclass
class RecurringTemplate:
    user_id: str
    category: str
    amount: float
    description: str
    schedule: Schedule
    active: bool = True
    last_generated: Optional[date] = None
    id: Optional[int] = None

    @property
    def frequency(self) -> Frequency:
        return self.schedule.frequency

    @property
    def encoded_schedule(self) -> int:
        return encode(self.schedule)


@dataclass
class LedgerEntry:
    user_id: str
    category: str
    amount: float
    description: str
    date: date
    template_id: Optional[int] = None
    period: Optional[str] = None
    id: Optional[int] = None

    def with_id(self, entry_id) -> "LedgerEntry":
        return replace(self, id=entry_id)
