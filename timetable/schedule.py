"""Concrete schedule records: pending suggestions and confirmed schedules."""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Iterable, Optional

from .models import DayOfWeek, LoadProgress, RawSubjectEntry, Subject, SubjectClass, TimeBlock
from .provider import ScheduleProvider, exclusive_write, remove_class, subjects_matching

logger = logging.getLogger(__name__)

CYCLE_WEEKS = 2


def covering_range(blocks: Iterable[TimeBlock]) -> range:
    """Return the tightest slot range containing every block."""
    blocks = list(blocks)
    if not blocks:
        return range(0, 0)
    return range(
        min(block.lower_bound for block in blocks),
        max(block.upper_bound for block in blocks)
    )


def _monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


@dataclass
class _ScheduleRecord(ScheduleProvider):
    """Fields, validation and calendar helpers common to both record types."""

    subjects: list[Subject]
    start_date: date
    repetitions: int
    subject_classes: list[SubjectClass] = field(default_factory=list)
    time_range: Optional[range] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    write_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )
    deleted_class_ids: set[str] = field(
        default_factory=set, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.repetitions < 1:
            raise ValueError(f"Repetitions must be at least 1, got {self.repetitions}")

        class_ids = [subject_class.id for subject_class in self.subject_classes]
        if len(class_ids) != len(set(class_ids)):
            raise ValueError("Subject class ids must be unique")

        if self.time_range is None:
            self.time_range = covering_range(subject.block for subject in self.subjects)
        if self.time_range.step != 1:
            raise ValueError("Time range must be contiguous")

        for subject in self.subjects:
            block = subject.block
            if block.lower_bound < self.time_range.start or block.upper_bound > self.time_range.stop:
                raise ValueError(
                    f"Subject '{subject.raw_name}' at [{block.lower_bound}, {block.upper_bound}) "
                    f"lies outside the schedule's time range "
                    f"[{self.time_range.start}, {self.time_range.stop})"
                )

    @property
    def end_date(self) -> date:
        """Last day (a Sunday) of the final two-week cycle."""
        weeks = CYCLE_WEEKS * self.repetitions
        return _monday_of(self.start_date) + timedelta(weeks=weeks) - timedelta(days=1)

    def week_number(self, on: date) -> int:
        """Return the week number of a date, week 1 containing ``start_date``."""
        return (_monday_of(on) - _monday_of(self.start_date)).days // 7 + 1

    def subjects_on(self, day: date) -> list[Subject]:
        """Return the lessons held on a calendar date.

        Weekends and dates outside the schedule have no lessons.
        """
        if day < self.start_date or day > self.end_date:
            return []
        school_day = DayOfWeek.from_date(day)
        if school_day is None:
            return []
        return subjects_matching(self, school_day, self.week_number(day))


@dataclass
class ScheduleSuggestion(_ScheduleRecord):
    """A freshly ingested schedule whose subjects are still being resolved."""

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[RawSubjectEntry],
        start_date: date,
        repetitions: int,
        time_range: Optional[range] = None
    ) -> "ScheduleSuggestion":
        """Ingest raw subject entries into an unresolved suggestion.

        Args:
            entries: Subject placements in the order received.
            start_date: Date the first cycle starts on.
            repetitions: Number of two-week cycles.
            time_range: Slot range of the timetable. Defaults to the
                tightest range covering the entries.

        Raises:
            ValueError: If an entry or the schedule parameters are invalid.
        """
        subjects = [entry.to_subject() for entry in entries]
        suggestion = cls(
            subjects=subjects,
            start_date=start_date,
            repetitions=repetitions,
            time_range=time_range
        )
        logger.debug("Ingested %d subjects starting %s", len(subjects), start_date)
        return suggestion

    def delete_class(self, subject_class: SubjectClass) -> None:
        """Delete a class; its subjects stay, without a class."""
        with exclusive_write(self):
            remove_class(self, subject_class)


@dataclass
class Schedule(_ScheduleRecord):
    """A schedule the user has confirmed."""

    @classmethod
    def from_suggestion(cls, suggestion: ScheduleSuggestion) -> "Schedule":
        """Confirm a suggestion, copying its subjects and used classes."""
        if suggestion.load_progress is not LoadProgress.LOADED:
            logger.warning(
                "Confirming schedule with %d of %d subjects resolved",
                suggestion.loaded_subjects, len(suggestion.subjects)
            )

        schedule = cls(
            subjects=[replace(subject) for subject in suggestion.subjects],
            start_date=suggestion.start_date,
            repetitions=suggestion.repetitions,
            subject_classes=list(suggestion.subject_classes),
            time_range=suggestion.time_range
        )
        schedule.deleted_class_ids.update(suggestion.deleted_class_ids)
        schedule.trim_unused_classes()
        return schedule

    def delete_class(self, subject_class: SubjectClass) -> None:
        """Delete a class and clear it from every subject displaying it."""
        with exclusive_write(self):
            cleared = remove_class(self, subject_class)
        logger.info("Deleted class '%s' from %d subjects", subject_class.name, cleared)
