"""Data models for timetable placements, subjects and classes."""

import uuid
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from enum import Enum, IntEnum
from typing import Optional

from .colors import Color, color_for


SLOT_MINUTES = 5
SLOTS_PER_DAY = 24 * 60 // SLOT_MINUTES


class Week(Enum):
    """Half of the two-week schedule cycle."""

    ODD = "odd"
    EVEN = "even"

    @property
    def ordinal(self) -> int:
        """Position in declaration order, used as a sort key."""
        return list(Week).index(self)

    def matches(self, week_no: int) -> bool:
        """Check whether an absolute week number has this week's parity.

        Args:
            week_no: Week number, 1 being the first week of the schedule.
        """
        if self is Week.ODD:
            return week_no % 2 == 1
        return week_no % 2 == 0

    @classmethod
    def for_week_number(cls, week_no: int) -> "Week":
        return cls.ODD if week_no % 2 == 1 else cls.EVEN


class DayOfWeek(IntEnum):
    """School day, numbered like ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4

    @property
    def ordinal(self) -> int:
        return int(self)

    @classmethod
    def from_date(cls, day: date) -> Optional["DayOfWeek"]:
        """Return the school day for a date, or None on weekends."""
        weekday = day.weekday()
        if weekday > cls.FRIDAY:
            return None
        return cls(weekday)


def slot_for(moment: time) -> int:
    """Convert a wall-clock time to the slot it starts in.

    Args:
        moment: Time of day.

    Returns:
        Slot index counted from midnight.
    """
    return (moment.hour * 60 + moment.minute) // SLOT_MINUTES


def _check_bounds(lower_bound: int, upper_bound: int) -> None:
    if lower_bound >= upper_bound:
        raise ValueError(
            f"Lower bound must be before upper bound, got [{lower_bound}, {upper_bound})"
        )
    if lower_bound < 0 or upper_bound > SLOTS_PER_DAY:
        raise ValueError(
            f"Slots must lie within 0-{SLOTS_PER_DAY}, got [{lower_bound}, {upper_bound})"
        )


@dataclass(frozen=True)
class TimeBlock:
    """Placement of a lesson: a week, a day and a half-open slot interval."""

    week: Week
    day: DayOfWeek
    lower_bound: int
    upper_bound: int

    def __post_init__(self) -> None:
        _check_bounds(self.lower_bound, self.upper_bound)

    @property
    def interval(self) -> range:
        return range(self.lower_bound, self.upper_bound)

    @property
    def duration(self) -> int:
        """Length of the block in slots."""
        return self.upper_bound - self.lower_bound

    @property
    def start_offset(self) -> timedelta:
        """Time from midnight to the start of the block."""
        return timedelta(minutes=self.lower_bound * SLOT_MINUTES)

    @property
    def end_offset(self) -> timedelta:
        return timedelta(minutes=self.upper_bound * SLOT_MINUTES)

    def contains(self, slot: int) -> bool:
        return self.lower_bound <= slot < self.upper_bound

    def overlaps(self, other: "TimeBlock") -> bool:
        """Check whether two blocks share the same week, day and any slot."""
        if self.week != other.week or self.day != other.day:
            return False
        return self.lower_bound < other.upper_bound and other.lower_bound < self.upper_bound


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class SubjectClass:
    """A class grouping: subject name, teacher, room and display color.

    Instances are immutable values. Subjects hold their own snapshot of a
    class, so changes go through ``dataclasses.replace`` followed by an
    explicit ``update_class`` on the owning schedule.
    """

    id: str
    name: str
    teacher: str = ""
    room: str = ""
    color: Optional[Color] = None

    @classmethod
    def create(
        cls,
        name: str,
        teacher: str = "",
        room: str = "",
        color: Optional[Color] = None
    ) -> "SubjectClass":
        """Create a class with a fresh id.

        Args:
            name: Display name of the class.
            teacher: Teacher name (optional).
            room: Room label (optional).
            color: Display color. Defaults to the palette color for ``name``.
        """
        return cls(
            id=_new_id(),
            name=name,
            teacher=teacher,
            room=room,
            color=color if color is not None else color_for(name)
        )


@dataclass
class Subject:
    """A timetable entry, resolved once display data arrives."""

    block: TimeBlock
    raw_name: str
    display_name: Optional[str] = None
    display_subject_class: Optional[SubjectClass] = None
    id: str = field(default_factory=_new_id)

    @property
    def is_resolved(self) -> bool:
        return self.display_name is not None


class LoadProgress(Enum):
    """How much of a schedule's subjects have been resolved."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class RawSubjectEntry:
    """A subject placement as received, before any resolution."""

    week: Week
    day: DayOfWeek
    lower_bound: int
    upper_bound: int
    raw_name: str
    teacher: str = field(default="")
    room: str = field(default="")

    def __post_init__(self) -> None:
        if not isinstance(self.week, Week):
            raise ValueError(f"Week must be odd or even, got {self.week!r}")
        if not isinstance(self.day, DayOfWeek):
            raise ValueError(f"Day must be Monday-Friday, got {self.day!r}")
        if not self.raw_name or not self.raw_name.strip():
            raise ValueError("Subject name cannot be empty")
        _check_bounds(self.lower_bound, self.upper_bound)

    @property
    def block(self) -> TimeBlock:
        return TimeBlock(self.week, self.day, self.lower_bound, self.upper_bound)

    def to_subject(self) -> Subject:
        """Build an unresolved subject for this entry."""
        return Subject(block=self.block, raw_name=self.raw_name)
