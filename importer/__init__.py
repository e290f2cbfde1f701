"""Importer module for reading raw subject entries from timetable documents."""

from .parser import TimetableParser

__all__ = ["TimetableParser"]
