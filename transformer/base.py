"""Abstract base class for schedule transformers."""

from abc import ABC, abstractmethod
from typing import Any

from timetable.provider import ScheduleProvider


class BaseTransformer(ABC):
    """Abstract base class defining the interface for schedule transformers.

    Extend this class to implement transformers for different output formats
    (e.g., iCalendar, CSV, JSON, etc.). Subclasses set ``FILE_EXTENSION``
    to the suffix their ``save`` writes.
    """

    FILE_EXTENSION = ""

    @abstractmethod
    def transform(self, schedule: ScheduleProvider) -> Any:
        """Transform a schedule into the target format.

        Args:
            schedule: Schedule to transform. Its start date and repetitions
                define the period covered.

        Returns:
            Transformed data in the target format.
        """

    @abstractmethod
    def save(self, output_path: str) -> None:
        """Save the last transformed schedule to a file.

        Args:
            output_path: Path to the output file.
        """

    def output_path_for(self, output_path: str) -> str:
        """Append ``FILE_EXTENSION`` to a path that lacks it."""
        if self.FILE_EXTENSION and not output_path.lower().endswith(self.FILE_EXTENSION):
            return f"{output_path}{self.FILE_EXTENSION}"
        return output_path

    def export(self, schedule: ScheduleProvider, output_path: str) -> str:
        """Transform a schedule and save it in one step.

        Args:
            schedule: Schedule to export.
            output_path: Destination path, extension optional.

        Returns:
            The path actually written.
        """
        self.transform(schedule)
        path = self.output_path_for(output_path)
        self.save(path)
        return path
