#!/usr/bin/env python3
"""Timetable to iCalendar converter.

Reads a two-week class timetable from an HTML grid, resolves subjects
against their classes and generates a recurring iCalendar (.ics) file.
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime

from importer import TimetableParser
from timetable import (
    LoadProgress,
    RawSubjectEntry,
    Schedule,
    ScheduleSuggestion,
    SubjectClass,
    TimetableSettings,
    catalog_lookup,
    resolve_schedule,
)
from transformer import ICalTransformer


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: '{date_str}'. Expected YYYY-MM-DD."
        )


def parse_repetitions(value: str) -> int:
    """Parse a positive number of two-week cycles."""
    try:
        repetitions = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number of repetitions: '{value}'.")
    if repetitions < 1:
        raise argparse.ArgumentTypeError("Repetitions must be at least 1.")
    return repetitions


def build_catalog(entries: list[RawSubjectEntry]) -> list[SubjectClass]:
    """Create one class per distinct subject name, using its first teacher and room.

    Args:
        entries: Imported subject entries.

    Returns:
        List of SubjectClass objects in order of first appearance.
    """
    classes: dict[str, SubjectClass] = {}
    for entry in entries:
        key = entry.raw_name.strip().lower()
        if key not in classes:
            classes[key] = SubjectClass.create(
                name=entry.raw_name.strip(),
                teacher=entry.teacher,
                room=entry.room
            )
    return list(classes.values())


def report_progress(loaded: int, total: int) -> None:
    print(f"\rResolved {loaded}/{total} subjects", end="", flush=True)


def main() -> None:
    """Main entry point for the converter."""
    parser = argparse.ArgumentParser(
        description="Convert a two-week HTML timetable to iCalendar format.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 timetable2iCal.py timetable.html --start-date 2026-01-05
  python3 timetable2iCal.py timetable.html --start-date 2026-01-05 --repetitions 5 --output term1.ics
        """
    )

    parser.add_argument(
        "input",
        help="HTML file containing the timetable grid"
    )

    parser.add_argument(
        "--start-date",
        type=parse_date,
        required=True,
        help="Start date of the first odd week (format: YYYY-MM-DD)"
    )

    parser.add_argument(
        "-r", "--repetitions",
        type=parse_repetitions,
        default=5,
        help="Number of two-week cycles, 10 weeks being 5 (default: 5)"
    )

    parser.add_argument(
        "-o", "--output",
        default="timetable.ics",
        help="Output file path (default: timetable.ics)"
    )

    parser.add_argument(
        "--timezone",
        default=TimetableSettings.timezone,
        help=f"Timezone of the lessons (default: {TimetableSettings.timezone})"
    )

    parser.add_argument(
        "--calendar-name",
        default=TimetableSettings.calendar_name,
        help=f"Calendar name shown by clients (default: {TimetableSettings.calendar_name})"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    try:
        settings = TimetableSettings(timezone=args.timezone, calendar_name=args.calendar_name)

        print(f"Reading timetable from: {args.input}")
        entries = TimetableParser.from_file(args.input).parse_entries()
        print(f"Found {len(entries)} subject entries.")

        if not entries:
            print("Warning: No subjects found. The output file will be empty.")

        suggestion = ScheduleSuggestion.from_entries(entries, args.start_date, args.repetitions)
        asyncio.run(resolve_schedule(
            suggestion,
            catalog_lookup(build_catalog(entries)),
            progress_callback=report_progress
        ))
        if entries:
            print()

        if suggestion.load_progress is not LoadProgress.LOADED and entries:
            print(f"Warning: Only {suggestion.load_amount:.0%} of subjects could be resolved.")
        if suggestion.invalid_suggestions:
            print(f"Warning: {suggestion.invalid_suggestions} subjects have no class.")

        schedule = Schedule.from_suggestion(suggestion)
        schedule.sort_classes()

        output_path = ICalTransformer(settings).export(schedule, args.output)

        print(f"Schedule saved to: {output_path}")
        print(f"Period: {schedule.start_date} to {schedule.end_date}")

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        sys.exit(130)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
