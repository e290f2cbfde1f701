"""Timetable parser for HTML schedule grids."""

import logging
import re
from datetime import time
from pathlib import Path
from typing import Optional, Union

from bs4 import BeautifulSoup, Tag

from timetable.models import SLOT_MINUTES, DayOfWeek, RawSubjectEntry, Week, slot_for

logger = logging.getLogger(__name__)


class TimetableParser:
    """Parser for extracting subject entries from an HTML timetable grid.

    The grid is a bordered table whose first column holds row start times
    ("08:00") and whose next five columns are Monday to Friday. A cell may
    hold several lessons, each written as::

        <b><a class="room_name">B2-04</a></b>
        <a class="subject_name">Physics</a> Mr Tan <b>odd weeks</b>

    Room, teacher and week marker are optional; lessons without a marker
    take place in both weeks of the cycle.
    """

    DAY_COLUMNS = 5
    DEFAULT_ROW_MINUTES = 60

    def __init__(self, html: str) -> None:
        """Initialize parser with the timetable page.

        Args:
            html: HTML source containing the timetable table.
        """
        self._soup = BeautifulSoup(html, "lxml")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TimetableParser":
        """Create a parser for an HTML file on disk."""
        with open(path, "r", encoding="utf-8") as f:
            return cls(f.read())

    def _parse_hour(self, hour_str: str) -> time:
        """Parse hour string into time object.

        Args:
            hour_str: Hour string like "07:30" or "8:00".

        Returns:
            Time object for the hour.
        """
        hour_str = hour_str.strip()
        match = re.search(r"(\d{1,2}):(\d{2})", hour_str)

        if match:
            hour, minute = map(int, match.groups())
            return time(hour, minute)

        raise ValueError(f"Cannot parse hour: {hour_str}")

    def _parse_weeks(self, marker: str) -> Optional[list[Week]]:
        """Return the weeks named by a marker, or None if it is not one."""
        match = re.search(r"\b(odd|even)\s+weeks?\b", marker.lower())
        if not match:
            return None
        return [Week.ODD] if match.group(1) == "odd" else [Week.EVEN]

    def _parse_cell_content(self, cell: Tag) -> list[dict]:
        """Parse content of a timetable cell to extract lesson details.

        Args:
            cell: BeautifulSoup Tag representing a table cell.

        Returns:
            List of dictionaries with lesson details (a cell can hold several).
        """
        subject_links = cell.find_all("a", class_="subject_name")
        if not subject_links:
            return []

        lessons: list[dict] = []

        for subject_link in subject_links:
            result: dict = {
                "raw_name": subject_link.get_text(strip=True),
                "teacher": "",
                "room": "",
                "weeks": [Week.ODD, Week.EVEN],
            }

            # Room is the nearest room_name anchor before the subject
            for sibling in subject_link.previous_siblings:
                if not isinstance(sibling, Tag):
                    continue
                if sibling.name == "a" and "subject_name" in sibling.get("class", []):
                    break
                if sibling.name == "a" and "room_name" in sibling.get("class", []):
                    result["room"] = sibling.get_text(strip=True)
                    break
                if sibling.name == "b":
                    room_anchor = sibling.find("a", class_="room_name")
                    if room_anchor:
                        result["room"] = room_anchor.get_text(strip=True)
                        break

            # Teacher and week marker follow the subject, up to the next lesson
            for sibling in subject_link.next_siblings:
                if isinstance(sibling, str):
                    text = sibling.strip(" \t\r\n,;-")
                    if text and not result["teacher"]:
                        result["teacher"] = text
                    continue
                if not isinstance(sibling, Tag) or sibling.name == "br":
                    continue
                if sibling.name == "b":
                    if sibling.find("a", class_="room_name"):
                        break
                    weeks = self._parse_weeks(sibling.get_text(" ", strip=True))
                    if weeks:
                        result["weeks"] = weeks
                    continue
                if sibling.name == "a":
                    break
                text = sibling.get_text(strip=True)
                if text and not result["teacher"]:
                    result["teacher"] = text

            lessons.append(result)

        return lessons

    def _same_lesson(self, first: dict, second: dict) -> bool:
        return (first["raw_name"] == second["raw_name"] and
                first["room"] == second["room"] and
                first["teacher"] == second["teacher"] and
                first["weeks"] == second["weeks"])

    def parse_entries(self) -> list[RawSubjectEntry]:
        """Parse the timetable table and extract all subject entries.

        Returns:
            List of RawSubjectEntry objects, day by day.

        Raises:
            ValueError: If the page has no timetable table or time rows.
        """
        table = self._soup.find("table", class_=re.compile(r"table-bordered"))
        if not table or not isinstance(table, Tag):
            table = self._soup.find("table")

        if not table or not isinstance(table, Tag):
            raise ValueError("Timetable table not found in the page")

        row_slots: list[int] = []

        # Cell grid stores list of lessons per cell (multiple lessons possible)
        cell_grid: list[list[list[dict]]] = []

        for row in table.find_all("tr"):
            cells = row.find_all(["td", "th"])
            if not cells:
                continue

            first_text = cells[0].get_text(strip=True)
            if not re.search(r"^\d{1,2}:\d{2}$", first_text):
                continue

            try:
                hour = self._parse_hour(first_text)
            except ValueError:
                continue
            row_slots.append(slot_for(hour))

            row_data: list[list[dict]] = []
            for cell in cells[1:1 + self.DAY_COLUMNS]:  # Monday-Friday
                row_data.append(self._parse_cell_content(cell))
            cell_grid.append(row_data)

        if not row_slots:
            raise ValueError("No time rows found in timetable table")

        if len(row_slots) > 1:
            last_row_length = row_slots[-1] - row_slots[-2]
        else:
            last_row_length = self.DEFAULT_ROW_MINUTES // SLOT_MINUTES

        entries: list[RawSubjectEntry] = []
        processed: set[tuple[int, int, int]] = set()  # (row, col, lesson index)

        for col in range(self.DAY_COLUMNS):
            for row in range(len(cell_grid)):
                if col >= len(cell_grid[row]):
                    continue

                for index, lesson in enumerate(cell_grid[row][col]):
                    lesson_key = (row, col, index)
                    if lesson_key in processed:
                        continue
                    processed.add(lesson_key)

                    # Count how many consecutive rows continue the same lesson
                    span_count = 1
                    next_row = row + 1
                    while next_row < len(cell_grid) and col < len(cell_grid[next_row]):
                        match = next(
                            (other_index for other_index, other in enumerate(cell_grid[next_row][col])
                             if (next_row, col, other_index) not in processed
                             and self._same_lesson(lesson, other)),
                            None
                        )
                        if match is None:
                            break
                        processed.add((next_row, col, match))
                        span_count += 1
                        next_row += 1

                    start_slot = row_slots[row]
                    if row + span_count < len(row_slots):
                        end_slot = row_slots[row + span_count]
                    else:
                        end_slot = row_slots[-1] + last_row_length

                    for week in lesson["weeks"]:
                        try:
                            entries.append(RawSubjectEntry(
                                week=week,
                                day=DayOfWeek(col),
                                lower_bound=start_slot,
                                upper_bound=end_slot,
                                raw_name=lesson["raw_name"],
                                teacher=lesson["teacher"],
                                room=lesson["room"]
                            ))
                        except ValueError as e:
                            logger.warning("Skipping invalid lesson '%s': %s", lesson["raw_name"], e)

        return entries
