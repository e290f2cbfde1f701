"""iCalendar transformer for schedules."""

import hashlib
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional

from icalendar import Calendar, Event, vRecur

from timetable.colors import color_for
from timetable.config import TimetableSettings
from timetable.models import Subject, Week
from timetable.provider import ScheduleProvider
from .base import BaseTransformer


class ICalTransformer(BaseTransformer):
    """Transformer that converts schedules to iCalendar format.

    Every subject becomes one recurring event repeating every second week,
    once per remaining cycle of the schedule.
    """

    FILE_EXTENSION = ".ics"
    CYCLE_DAYS = 14
    UID_DOMAIN = "timetable.local"

    def __init__(self, settings: Optional[TimetableSettings] = None) -> None:
        """Initialize the iCalendar transformer.

        Args:
            settings: Timezone, calendar name and accent color to use
                (default: ``TimetableSettings()``).
        """
        self._settings = settings or TimetableSettings()
        self._calendar: Optional[Calendar] = None

    def _generate_uid(self, subject: Subject, start_date: date, occurrence: int = 0) -> str:
        """Generate a unique identifier for a subject's event.

        Args:
            subject: The scheduled subject.
            start_date: Start date of the schedule.
            occurrence: Index among subjects sharing name and start, so
                co-taught lessons get distinct identifiers.

        Returns:
            Unique identifier string.
        """
        block = subject.block
        unique_string = (
            f"{subject.raw_name}-{block.week.value}-{block.day.name}-"
            f"{block.lower_bound}-{start_date}-{occurrence}"
        )
        return hashlib.md5(unique_string.encode()).hexdigest() + "@" + self.UID_DOMAIN

    def _find_first_occurrence(self, subject: Subject, start_date: date) -> tuple[date, int]:
        """Find the first occurrence of a subject on or after start_date.

        Week 1 is the week containing start_date and is an odd week.

        Args:
            subject: The subject with week and day information.
            start_date: The date the schedule starts.

        Returns:
            Date of the first occurrence and the number of cycles skipped
            because their occurrence fell before start_date.
        """
        first_monday = start_date - timedelta(days=start_date.weekday())
        week_offset = 0 if subject.block.week is Week.ODD else 7

        first_date = first_monday + timedelta(days=week_offset + subject.block.day.ordinal)
        if first_date < start_date:
            return first_date + timedelta(days=self.CYCLE_DAYS), 1
        return first_date, 0

    def transform(self, schedule: ScheduleProvider) -> Calendar:
        """Transform a schedule into iCalendar format.

        Args:
            schedule: Schedule to transform.

        Returns:
            iCalendar Calendar object.
        """
        timezone = self._settings.tzinfo

        self._calendar = Calendar()
        self._calendar.add("prodid", "-//Timetable//timetable-to-ical//EN")
        self._calendar.add("version", "2.0")
        self._calendar.add("calscale", "GREGORIAN")
        self._calendar.add("method", "PUBLISH")
        self._calendar.add("x-wr-calname", self._settings.calendar_name)
        self._calendar.add("x-wr-timezone", self._settings.timezone)

        occurrences: Counter = Counter()
        for subject in list(schedule.subjects):
            block = subject.block
            placement = (subject.raw_name, block.week, block.day, block.lower_bound)
            occurrence = occurrences[placement]
            occurrences[placement] += 1

            first_date, skipped = self._find_first_occurrence(subject, schedule.start_date)
            count = schedule.repetitions - skipped
            if count < 1:
                continue

            midnight = datetime.combine(first_date, datetime.min.time(), tzinfo=timezone)
            start_datetime = midnight + subject.block.start_offset
            end_datetime = midnight + subject.block.end_offset

            ical_event = Event()
            ical_event.add("uid", self._generate_uid(subject, schedule.start_date, occurrence))
            ical_event.add("dtstart", start_datetime)
            ical_event.add("dtend", end_datetime)
            ical_event.add("dtstamp", datetime.now(timezone))

            subject_class = subject.display_subject_class
            summary = subject.display_name if subject.display_name is not None else subject.raw_name
            ical_event.add("summary", summary)

            if subject_class is not None and subject_class.room:
                ical_event.add("location", subject_class.room)

            if subject_class is not None and subject_class.teacher:
                ical_event.add("description", subject_class.teacher)

            color = subject_class.color if subject_class is not None else None
            if color is None:
                color = color_for(summary, self._settings.accent_color)
            ical_event.add("color", color.value)

            rrule = vRecur({
                "freq": "weekly",
                "interval": 2,
                "count": count
            })
            ical_event.add("rrule", rrule)

            self._calendar.add_component(ical_event)

        return self._calendar

    def save(self, output_path: str) -> None:
        """Save the calendar to an .ics file.

        Args:
            output_path: Path to the output file.

        Raises:
            RuntimeError: If transform() hasn't been called yet.
        """
        if self._calendar is None:
            raise RuntimeError("No calendar data. Call transform() first.")

        with open(output_path, "wb") as f:
            f.write(self._calendar.to_ical())
