"""Tests for the shared schedule operations.

This module tests load progress, queries, class actions, sorting and the
single-writer guard.
"""
import threading
from dataclasses import replace
from datetime import date

import pytest

from timetable import provider as provider_module
from timetable.colors import Color
from timetable.models import DayOfWeek, LoadProgress, RawSubjectEntry, SubjectClass, Week
from timetable.provider import ConcurrentMutationError
from timetable.schedule import Schedule, ScheduleSuggestion

START = date(2026, 1, 5)


def make_suggestion(*entries: RawSubjectEntry) -> ScheduleSuggestion:
    """Ingest entries into a suggestion starting on a Monday."""
    return ScheduleSuggestion.from_entries(entries, START, repetitions=5)


def entry(
    week: Week,
    day: DayOfWeek,
    start: int,
    name: str = "Math"
) -> RawSubjectEntry:
    return RawSubjectEntry(week, day, start, start + 12, name)


# MARK: Progress

def test_empty_schedule_is_unloaded() -> None:
    suggestion = make_suggestion()

    assert suggestion.loaded_subjects == 0
    assert suggestion.load_progress is LoadProgress.UNLOADED
    assert suggestion.load_amount == 0.0
    assert suggestion.invalid_suggestions == 0


def test_progress_moves_from_unloaded_to_loaded() -> None:
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 96),
        entry(Week.ODD, DayOfWeek.MONDAY, 108),
    )
    first, second = suggestion.subjects

    assert suggestion.load_progress is LoadProgress.UNLOADED

    suggestion.resolve_subject(first.id, "Math")
    assert suggestion.loaded_subjects == 1
    assert suggestion.load_progress is LoadProgress.LOADING
    assert suggestion.load_amount == 0.5

    suggestion.resolve_subject(second.id, "Math")
    assert suggestion.load_progress is LoadProgress.LOADED
    assert suggestion.load_amount == 1.0


def test_empty_display_name_counts_as_loaded() -> None:
    suggestion = make_suggestion(entry(Week.ODD, DayOfWeek.MONDAY, 96))

    suggestion.resolve_subject(suggestion.subjects[0].id, "")

    assert suggestion.load_progress is LoadProgress.LOADED


def test_invalid_suggestions_counts_resolved_subjects_without_class() -> None:
    math = SubjectClass.create("Math")
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 96),
        entry(Week.ODD, DayOfWeek.MONDAY, 108, "???"),
        entry(Week.ODD, DayOfWeek.MONDAY, 120),
    )
    resolved, unreadable, unresolved = suggestion.subjects

    suggestion.resolve_subject(resolved.id, "Math", math)
    suggestion.resolve_subject(unreadable.id, "???")

    assert suggestion.invalid_suggestions == 1
    assert unresolved.display_name is None


# MARK: Queries

def test_subjects_matching_filters_by_day_and_week_parity() -> None:
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 120, "Physics"),
        entry(Week.EVEN, DayOfWeek.MONDAY, 96, "Chemistry"),
        entry(Week.ODD, DayOfWeek.TUESDAY, 96, "Biology"),
        entry(Week.ODD, DayOfWeek.MONDAY, 96, "Math"),
    )

    odd_monday = suggestion.subjects_matching(DayOfWeek.MONDAY, 3)
    even_monday = suggestion.subjects_matching(DayOfWeek.MONDAY, 4)

    # Original order is preserved, not sorted by time
    assert [s.raw_name for s in odd_monday] == ["Physics", "Math"]
    assert [s.raw_name for s in even_monday] == ["Chemistry"]
    assert suggestion.subjects_matching(DayOfWeek.FRIDAY, 1) == []


# MARK: Class actions

def test_update_class_refreshes_snapshots_with_same_id() -> None:
    math = SubjectClass.create("Math", teacher="Ms Lim")
    english = SubjectClass.create("English", teacher="Mr Ong")
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 96),
        entry(Week.EVEN, DayOfWeek.MONDAY, 96),
        entry(Week.ODD, DayOfWeek.TUESDAY, 96, "English"),
    )
    first, second, third = suggestion.subjects
    suggestion.resolve_subject(first.id, "Math", math)
    suggestion.resolve_subject(second.id, "Math", math)
    suggestion.resolve_subject(third.id, "English", english)

    renamed = replace(math, teacher="Mrs Goh", room="B2-04")
    assert suggestion.update_class(renamed)

    assert first.display_subject_class == renamed
    assert second.display_subject_class == renamed
    assert third.display_subject_class == english
    assert suggestion.subject_classes == [renamed, english]


def test_update_unknown_class_is_a_no_op() -> None:
    math = SubjectClass.create("Math")
    suggestion = make_suggestion(entry(Week.ODD, DayOfWeek.MONDAY, 96))
    suggestion.resolve_subject(suggestion.subjects[0].id, "Math", math)

    assert not suggestion.update_class(SubjectClass.create("Math", teacher="Nobody"))
    assert suggestion.subject_classes == [math]
    assert suggestion.subjects[0].display_subject_class == math


def test_delete_class_clears_every_reference() -> None:
    math = SubjectClass.create("Math")
    english = SubjectClass.create("English")
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 96),
        entry(Week.EVEN, DayOfWeek.MONDAY, 96),
        entry(Week.ODD, DayOfWeek.TUESDAY, 96, "English"),
    )
    first, second, third = suggestion.subjects
    suggestion.resolve_subject(first.id, "Math", math)
    suggestion.resolve_subject(second.id, "Math", math)
    suggestion.resolve_subject(third.id, "English", english)

    suggestion.delete_class(math)

    assert suggestion.subject_classes == [english]
    assert all(
        s.display_subject_class is None or s.display_subject_class.id != math.id
        for s in suggestion.subjects_matching(DayOfWeek.MONDAY, 1)
        + suggestion.subjects_matching(DayOfWeek.MONDAY, 2)
    )
    assert third.display_subject_class == english
    # The subjects stay resolved, now without a class
    assert suggestion.invalid_suggestions == 2


def test_delete_class_twice_is_tolerated() -> None:
    math = SubjectClass.create("Math")
    suggestion = make_suggestion(entry(Week.ODD, DayOfWeek.MONDAY, 96))
    suggestion.resolve_subject(suggestion.subjects[0].id, "Math", math)

    suggestion.delete_class(math)
    suggestion.delete_class(math)

    assert suggestion.subject_classes == []


def test_add_class_keeps_ids_unique() -> None:
    math = SubjectClass.create("Math")
    suggestion = make_suggestion()

    assert suggestion.add_class(math)
    assert not suggestion.add_class(replace(math, teacher="Someone else"))
    assert suggestion.subject_classes == [math]


def test_trim_unused_classes_keeps_referenced_classes() -> None:
    math = SubjectClass.create("Math")
    english = SubjectClass.create("English")
    unused = SubjectClass.create("Art")
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 96),
        entry(Week.EVEN, DayOfWeek.MONDAY, 96),
        entry(Week.ODD, DayOfWeek.TUESDAY, 96, "English"),
    )
    suggestion.add_class(unused)
    first, second, third = suggestion.subjects
    suggestion.resolve_subject(first.id, "Math", math)
    suggestion.resolve_subject(second.id, "Math", math)
    suggestion.resolve_subject(third.id, "English", english)

    assert suggestion.trim_unused_classes() == 1
    assert suggestion.subject_classes == [math, english]

    distinct_ids = {s.display_subject_class.id for s in suggestion.subjects if s.display_subject_class}
    assert len(suggestion.subject_classes) == len(distinct_ids)

    # Idempotent
    assert suggestion.trim_unused_classes() == 0
    assert suggestion.subject_classes == [math, english]


# MARK: Sorting

def test_sort_classes_orders_by_week_day_then_start() -> None:
    suggestion = make_suggestion(
        entry(Week.EVEN, DayOfWeek.MONDAY, 96, "even-mon-8"),
        entry(Week.ODD, DayOfWeek.TUESDAY, 96, "odd-tue-8"),
        entry(Week.ODD, DayOfWeek.MONDAY, 120, "odd-mon-10"),
        entry(Week.ODD, DayOfWeek.MONDAY, 96, "odd-mon-8"),
    )

    suggestion.sort_classes()

    assert [s.raw_name for s in suggestion.subjects] == [
        "odd-mon-8", "odd-mon-10", "odd-tue-8", "even-mon-8",
    ]


def test_sort_classes_is_stable_and_idempotent() -> None:
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 108, "later"),
        entry(Week.ODD, DayOfWeek.MONDAY, 96, "co-taught A"),
        entry(Week.ODD, DayOfWeek.MONDAY, 96, "co-taught B"),
        entry(Week.ODD, DayOfWeek.MONDAY, 96, "co-taught C"),
    )

    suggestion.sort_classes()
    once = [s.id for s in suggestion.subjects]
    suggestion.sort_classes()

    assert [s.raw_name for s in suggestion.subjects] == [
        "co-taught A", "co-taught B", "co-taught C", "later",
    ]
    assert [s.id for s in suggestion.subjects] == once


# MARK: Resolution

def test_resolve_subject_is_one_way() -> None:
    math = SubjectClass.create("Math")
    suggestion = make_suggestion(entry(Week.ODD, DayOfWeek.MONDAY, 96))
    subject = suggestion.subjects[0]

    assert suggestion.resolve_subject(subject.id, "Math", math)
    assert not suggestion.resolve_subject(subject.id, "Mathematics")

    assert subject.display_name == "Math"
    assert subject.display_subject_class == math
    assert suggestion.subject_classes == [math]


def test_late_resolution_uses_updated_registry_entry() -> None:
    math = SubjectClass.create("Math", teacher="Ms Lim")
    suggestion = make_suggestion(
        entry(Week.ODD, DayOfWeek.MONDAY, 96),
        entry(Week.EVEN, DayOfWeek.MONDAY, 96),
    )
    first, second = suggestion.subjects

    suggestion.resolve_subject(first.id, "Math", math)
    renamed = replace(math, teacher="Mrs Goh")
    suggestion.update_class(renamed)
    # Resolver still holds the class as it was before the update
    suggestion.resolve_subject(second.id, "Math", math)

    assert suggestion.subject_classes == [renamed]
    assert first.display_subject_class == renamed
    assert second.display_subject_class == renamed


def test_late_resolution_does_not_restore_deleted_class() -> None:
    math = SubjectClass.create("Math")
    schedule = Schedule(
        subjects=make_suggestion(
            entry(Week.ODD, DayOfWeek.MONDAY, 96),
            entry(Week.EVEN, DayOfWeek.MONDAY, 96),
        ).subjects,
        start_date=START,
        repetitions=5
    )
    first, second = schedule.subjects

    schedule.resolve_subject(first.id, "Math", math)
    schedule.delete_class(math)
    assert schedule.resolve_subject(second.id, "Math", math)

    assert schedule.subject_classes == []
    assert second.display_name == "Math"
    assert second.display_subject_class is None
    assert schedule.invalid_suggestions == 2

    assert schedule.add_class(math)
    assert schedule.subject_classes == [math]


def test_resolve_unknown_subject_is_a_no_op() -> None:
    suggestion = make_suggestion(entry(Week.ODD, DayOfWeek.MONDAY, 96))

    assert not suggestion.resolve_subject("missing", "Math")
    assert suggestion.load_progress is LoadProgress.UNLOADED


def test_color_for_uses_palette() -> None:
    suggestion = make_suggestion()

    assert suggestion.color_for("Chemistry") is Color.RED
    assert suggestion.color_for("Unknown Subject XYZ", default=Color.PINK) is Color.PINK


# MARK: Single writer

def test_concurrent_writer_is_rejected() -> None:
    suggestion = make_suggestion(entry(Week.ODD, DayOfWeek.MONDAY, 96))

    with provider_module.exclusive_write(suggestion):
        with pytest.raises(ConcurrentMutationError):
            suggestion.sort_classes()
        with pytest.raises(ConcurrentMutationError):
            suggestion.trim_unused_classes()
        with pytest.raises(ConcurrentMutationError):
            suggestion.update_class(SubjectClass.create("Math"))
        with pytest.raises(ConcurrentMutationError):
            suggestion.delete_class(SubjectClass.create("Math"))
        with pytest.raises(ConcurrentMutationError):
            suggestion.resolve_subject(suggestion.subjects[0].id, "Math")

        # Readers never block
        assert suggestion.load_progress is LoadProgress.UNLOADED

    # The lock is released afterwards
    suggestion.sort_classes()


def test_writer_from_another_thread_is_rejected() -> None:
    schedule = Schedule(subjects=[], start_date=START, repetitions=1)
    errors: list[Exception] = []

    def writer() -> None:
        try:
            schedule.trim_unused_classes()
        except ConcurrentMutationError as e:
            errors.append(e)

    with provider_module.exclusive_write(schedule):
        thread = threading.Thread(target=writer)
        thread.start()
        thread.join()

    assert len(errors) == 1
