"""
Half-open time intervals, [start, end).
"""

from dataclasses import dataclass
from datetime import datetime

from service_booking.core.errors import ValidationError
from service_booking.db.base import as_utc


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self):
        start, end = as_utc(self.start), as_utc(self.end)
        if not start < end:
            raise ValidationError(
                "invalid_interval",
                "scheduled_start must be before scheduled_end",
                scheduled_start=start.isoformat(),
                scheduled_end=end.isoformat(),
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def overlaps(self, other: "TimeInterval") -> bool:
        # Touching endpoints do not overlap
        return self.start < other.end and other.start < self.end

    def as_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}
