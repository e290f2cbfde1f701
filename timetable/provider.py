"""Behaviour shared by confirmed schedules and pending suggestions.

The functions in this module operate on any :class:`ScheduleProvider`.
Readers (progress, queries, colors) work on a single snapshot of the
subject list and never block. The mutators (``sort_classes``,
``trim_unused_classes``, ``update_class``, ``delete_class`` and
``resolve_subject``) assume one writer per schedule: they hold the
schedule's ``write_lock`` without waiting for it, and a second writer
arriving while one is active gets a :class:`ConcurrentMutationError`.
Callers that write from several threads must serialize those writes
themselves, e.g. by funnelling them through one owning thread.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from .colors import Color, color_for as _palette_color
from .models import DayOfWeek, LoadProgress, Subject, SubjectClass

logger = logging.getLogger(__name__)


class ConcurrentMutationError(RuntimeError):
    """Raised when a schedule is mutated by two writers at once."""


class ScheduleProvider(ABC):
    """Interface over anything shaped like a schedule.

    Implementations provide the attributes below and ``delete_class``;
    everything else is derived from the module-level functions.

    Attributes:
        subjects: Ordered timetable entries.
        subject_classes: Class registry, unique by id.
        time_range: Slot range covering every subject (may be larger).
        start_date: Date the first two-week cycle starts on.
        repetitions: Number of two-week cycles. 10 weeks is 5 repetitions.
        write_lock: Lock held by the active writer.
        deleted_class_ids: Ids removed by ``delete_class``; late
            resolutions never bring them back.
    """

    subjects: list[Subject]
    subject_classes: list[SubjectClass]
    time_range: range
    start_date: date
    repetitions: int
    write_lock: threading.Lock
    deleted_class_ids: set[str]

    @abstractmethod
    def delete_class(self, subject_class: SubjectClass) -> None:
        """Delete a class and clear it from every subject displaying it."""

    @property
    def loaded_subjects(self) -> int:
        return loaded_subjects(self)

    @property
    def load_progress(self) -> LoadProgress:
        return load_progress(self)

    @property
    def load_amount(self) -> float:
        return load_amount(self)

    @property
    def invalid_suggestions(self) -> int:
        return invalid_suggestions(self)

    def subjects_matching(self, day: DayOfWeek, week: int) -> list[Subject]:
        return subjects_matching(self, day, week)

    def update_class(self, subject_class: SubjectClass) -> bool:
        return update_class(self, subject_class)

    def add_class(self, subject_class: SubjectClass) -> bool:
        return add_class(self, subject_class)

    def trim_unused_classes(self) -> int:
        return trim_unused_classes(self)

    def sort_classes(self) -> None:
        sort_classes(self)

    def resolve_subject(
        self,
        subject_id: str,
        display_name: str,
        subject_class: Optional[SubjectClass] = None
    ) -> bool:
        return resolve_subject(self, subject_id, display_name, subject_class)

    def color_for(self, name: str, default: Color = Color.ACCENT) -> Color:
        return _palette_color(name, default)


@contextmanager
def exclusive_write(provider: ScheduleProvider) -> Iterator[None]:
    """Hold the provider's write lock for the duration of a mutation.

    Raises:
        ConcurrentMutationError: If another writer holds the lock.
    """
    if not provider.write_lock.acquire(blocking=False):
        raise ConcurrentMutationError(
            "Schedule is already being modified; serialize writes to it"
        )
    try:
        yield
    finally:
        provider.write_lock.release()


# MARK: Progress

def _progress_counts(provider: ScheduleProvider) -> tuple[int, int]:
    subjects = list(provider.subjects)
    loaded = sum(1 for subject in subjects if subject.display_name is not None)
    return loaded, len(subjects)


def loaded_subjects(provider: ScheduleProvider) -> int:
    """Count subjects whose display name has been resolved."""
    return _progress_counts(provider)[0]


def load_progress(provider: ScheduleProvider) -> LoadProgress:
    """Classify how far resolution has got.

    An empty schedule counts as unloaded.
    """
    loaded, total = _progress_counts(provider)
    if loaded == 0:
        return LoadProgress.UNLOADED
    if loaded == total:
        return LoadProgress.LOADED
    return LoadProgress.LOADING


def load_amount(provider: ScheduleProvider) -> float:
    """Fraction of subjects resolved, 0.0 for an empty schedule."""
    loaded, total = _progress_counts(provider)
    if total == 0:
        return 0.0
    return loaded / total


def invalid_suggestions(provider: ScheduleProvider) -> int:
    """Count resolved subjects without a class in the registry."""
    subjects = list(provider.subjects)
    class_ids = {subject_class.id for subject_class in provider.subject_classes}
    return sum(
        1 for subject in subjects
        if subject.display_name is not None
        and (subject.display_subject_class is None
             or subject.display_subject_class.id not in class_ids)
    )


# MARK: Queries

def subjects_matching(provider: ScheduleProvider, day: DayOfWeek, week: int) -> list[Subject]:
    """Return the subjects on a day of an absolute week number, in order.

    Args:
        provider: Schedule to query.
        day: School day.
        week: Week number; odd numbers use the odd timetable, even the even one.
    """
    return [
        subject for subject in list(provider.subjects)
        if subject.block.day == day and subject.block.week.matches(week)
    ]


# MARK: Class actions

def _find_class_index(provider: ScheduleProvider, class_id: str) -> Optional[int]:
    for index, subject_class in enumerate(provider.subject_classes):
        if subject_class.id == class_id:
            return index
    return None


def register_class(provider: ScheduleProvider, subject_class: SubjectClass) -> bool:
    """Add a class to the registry unless its id is present. Caller holds the lock."""
    if _find_class_index(provider, subject_class.id) is not None:
        return False
    provider.subject_classes = [*provider.subject_classes, subject_class]
    return True


def add_class(provider: ScheduleProvider, subject_class: SubjectClass) -> bool:
    """Register a class, ignoring ids that are already registered.

    Adding a deleted class back is allowed and lifts its deletion.

    Returns:
        True if the class was added.
    """
    with exclusive_write(provider):
        provider.deleted_class_ids.discard(subject_class.id)
        return register_class(provider, subject_class)


def update_class(provider: ScheduleProvider, subject_class: SubjectClass) -> bool:
    """Replace the registry entry with the same id and refresh subject snapshots.

    Unknown ids are ignored, since the class may already have been removed.

    Returns:
        True if a registry entry was replaced.
    """
    with exclusive_write(provider):
        index = _find_class_index(provider, subject_class.id)
        if index is None:
            logger.debug("Ignoring update for unknown class %s", subject_class.id)
            return False

        provider.subject_classes[index] = subject_class
        for subject in provider.subjects:
            current = subject.display_subject_class
            if current is not None and current.id == subject_class.id:
                subject.display_subject_class = subject_class
        return True


def remove_class(provider: ScheduleProvider, subject_class: SubjectClass) -> int:
    """Drop a class from the registry and from subjects. Caller holds the lock.

    Returns:
        Number of subjects that lost their class.
    """
    provider.deleted_class_ids.add(subject_class.id)
    provider.subject_classes = [
        existing for existing in provider.subject_classes
        if existing.id != subject_class.id
    ]

    cleared = 0
    for subject in provider.subjects:
        current = subject.display_subject_class
        if current is not None and current.id == subject_class.id:
            subject.display_subject_class = None
            cleared += 1
    return cleared


def trim_unused_classes(provider: ScheduleProvider) -> int:
    """Remove every class no subject displays.

    Returns:
        Number of classes removed.
    """
    with exclusive_write(provider):
        used_ids = {
            subject.display_subject_class.id
            for subject in provider.subjects
            if subject.display_subject_class is not None
        }
        kept = [
            subject_class for subject_class in provider.subject_classes
            if subject_class.id in used_ids
        ]
        removed = len(provider.subject_classes) - len(kept)
        provider.subject_classes = kept

    if removed:
        logger.debug("Trimmed %d unused classes", removed)
    return removed


def _sort_key(subject: Subject) -> tuple[int, int, int]:
    block = subject.block
    return block.week.ordinal, block.day.ordinal, block.lower_bound


def sort_classes(provider: ScheduleProvider) -> None:
    """Sort subjects by week, then day, then start slot.

    The sort is stable, so subjects starting together keep their order.
    """
    with exclusive_write(provider):
        provider.subjects = sorted(provider.subjects, key=_sort_key)


# MARK: Resolution

def _registered_class(
    provider: ScheduleProvider, subject_class: SubjectClass
) -> Optional[SubjectClass]:
    """Return the registry's copy of a class, registering it if new.

    Deleted ids yield None. Caller holds the lock.
    """
    if subject_class.id in provider.deleted_class_ids:
        logger.debug("Not restoring deleted class %s", subject_class.id)
        return None
    index = _find_class_index(provider, subject_class.id)
    if index is not None:
        return provider.subject_classes[index]
    register_class(provider, subject_class)
    return subject_class


def resolve_subject(
    provider: ScheduleProvider,
    subject_id: str,
    display_name: str,
    subject_class: Optional[SubjectClass] = None
) -> bool:
    """Attach display data to an unresolved subject.

    The class (if any) is registered and assigned before the display name,
    so a subject never appears resolved with a class that is missing from
    the registry. A class already in the registry is assigned as stored
    there, so a stale copy cannot undo an earlier ``update_class``. A class
    that was deleted stays deleted and the subject is resolved without it.

    Args:
        provider: Schedule owning the subject.
        subject_id: Id of the subject to resolve.
        display_name: Human-readable name.
        subject_class: Class to display for the subject (optional).

    Returns:
        True if the subject was resolved, False if it was unknown or
        already resolved.
    """
    with exclusive_write(provider):
        subject = next((s for s in provider.subjects if s.id == subject_id), None)
        if subject is None:
            logger.debug("Ignoring resolution for unknown subject %s", subject_id)
            return False
        if subject.display_name is not None:
            logger.warning(
                "Subject %s (%s) is already resolved as %r",
                subject_id, subject.raw_name, subject.display_name
            )
            return False

        if subject_class is not None:
            subject_class = _registered_class(provider, subject_class)
        if subject_class is not None:
            subject.display_subject_class = subject_class
        subject.display_name = display_name
        return True
