"""Settings injected into the timetable engine by the calling layer."""

from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .colors import Color


@dataclass(frozen=True)
class TimetableSettings:
    """Per-user settings for presenting and exporting a schedule.

    Attributes:
        timezone: IANA timezone name lessons take place in.
        calendar_name: Name shown by calendar clients for exported feeds.
        accent_color: Color for subjects no palette alias matches.
    """

    timezone: str = field(default="Asia/Singapore")
    calendar_name: str = field(default="Timetable")
    accent_color: Color = field(default=Color.ACCENT)

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: '{self.timezone}'") from e

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)
