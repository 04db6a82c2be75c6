from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional

from .money import to_count


@dataclass(frozen=True)
class BookingRequest:
    """A fully resolved booking request to be priced"""
    start: datetime
    duration: Optional[int] = None  # Units of the product's block unit
    resource_id: Optional[str] = None
    person_counts: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        if self.duration is not None:
            to_count(self.duration, "duration")
        for person_id, count in self.person_counts.items():
            to_count(count, f"persons.{person_id}")

    @property
    def total_persons(self) -> int:
        return sum(self.person_counts.values())

    @property
    def has_persons(self) -> bool:
        return bool(self.person_counts)


@dataclass(frozen=True)
class BookingBlock:
    """One booked block: [start, end)"""
    index: int
    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def iso_weekday(self) -> int:
        return self.start.isoweekday()
