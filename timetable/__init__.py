"""Timetable engine: two-week class schedules, class registry and load progress."""

from .colors import Color, color_for
from .config import TimetableSettings
from .models import (
    SLOT_MINUTES,
    SLOTS_PER_DAY,
    DayOfWeek,
    LoadProgress,
    RawSubjectEntry,
    Subject,
    SubjectClass,
    TimeBlock,
    Week,
    slot_for,
)
from .provider import ConcurrentMutationError, ScheduleProvider
from .resolver import Resolution, catalog_lookup, resolve_schedule
from .schedule import Schedule, ScheduleSuggestion

__all__ = [
    "SLOT_MINUTES",
    "SLOTS_PER_DAY",
    "Color",
    "ConcurrentMutationError",
    "DayOfWeek",
    "LoadProgress",
    "RawSubjectEntry",
    "Resolution",
    "Schedule",
    "ScheduleProvider",
    "ScheduleSuggestion",
    "Subject",
    "SubjectClass",
    "TimeBlock",
    "TimetableSettings",
    "Week",
    "catalog_lookup",
    "color_for",
    "resolve_schedule",
    "slot_for",
]
