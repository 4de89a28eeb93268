"""
Calendar interval primitives shared by the availability walk and the
booking conflict check.

All ranges are half-open ``[start, end)``: a range ending at 10:00 and one
starting at 10:00 do not overlap.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Range ends before it starts: {self.start} -> {self.end}")

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def shifted(self, delta: timedelta) -> "TimeRange":
        return TimeRange(self.start + delta, self.end + delta)


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """True when two half-open ranges share at least one instant"""
    return a.start < b.end and a.end > b.start


def first_overlap(candidate: TimeRange, blocked: Iterable[TimeRange]) -> Optional[TimeRange]:
    """Linear scan; daily blocked sets are small."""
    for rng in blocked:
        if overlaps(candidate, rng):
            return rng
    return None


def combine(day: date, at: time) -> datetime:
    """Place a time-of-day on a calendar date"""
    return datetime.combine(day, at.replace(microsecond=0, tzinfo=None))


def day_bounds(day: date) -> TimeRange:
    start = datetime.combine(day, time.min)
    return TimeRange(start, start + timedelta(days=1))


def build_blocked_ranges(
        day: date,
        bookings: Iterable[TimeRange] = (),
        breaks: Iterable[tuple] = (),
        partial_time_off: Iterable[tuple] = (),
) -> List[TimeRange]:
    """
    Union of everything that stops a staff member being booked on ``day``.

    Args:
        day: The date the time-of-day values are mapped onto
        bookings: Existing active bookings as datetime ranges
        breaks: ``(start_time, end_time)`` time-of-day pairs from the schedule
        partial_time_off: ``(start_time, end_time)`` pairs of approved partial days off

    Returns:
        Blocked ranges sorted by start
    """
    blocked = list(bookings)

    for brk_start, brk_end in breaks:
        blocked.append(TimeRange(combine(day, brk_start), combine(day, brk_end)))

    for off_start, off_end in partial_time_off:
        blocked.append(TimeRange(combine(day, off_start), combine(day, off_end)))

    blocked.sort(key=lambda r: r.start)
    return blocked


def ceil_to_interval(moment: datetime, interval_minutes: int) -> datetime:
    """Round up to the next ``interval_minutes`` boundary within the hour grid"""
    floored = moment.replace(second=0, microsecond=0)
    remainder = floored.minute % interval_minutes
    if remainder == 0 and floored == moment:
        return floored
    return floored + timedelta(minutes=interval_minutes - remainder)
