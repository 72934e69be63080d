"""
Enumeration definitions for the RailSight geometry analytics backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and API responses, and so they can be used directly as
dictionary keys alongside their string values.

Channel identifiers are the short column stems used by measurement files
(curv, xlev, rate, twist, warp, gage). Their lexicographic order is the
secondary ordering key of the alarm table.
"""

from enum import Enum


class Channel(str, Enum):
    """
    Physical track-geometry channels measured by a campaign.

    Values:
    - curv: Curvature (1/m)
    - xlev: Crosslevel, height difference between rails (mm)
    - rate: Crosslevel rate, change of crosslevel per metre (mm/m)
    - twist: Twist over the measuring base (mm)
    - warp: Warp (mm)
    - gage: Track gauge, distance between rails (mm)
    """
    CURVATURE = "curv"
    CROSSLEVEL = "xlev"
    RATE = "rate"
    TWIST = "twist"
    WARP = "warp"
    GAUGE = "gage"


# Display order used by exports and reports
CHANNEL_ORDER = [
    Channel.CURVATURE,
    Channel.CROSSLEVEL,
    Channel.RATE,
    Channel.TWIST,
    Channel.WARP,
    Channel.GAUGE,
]


class Severity(str, Enum):
    """
    Severity of an out-of-range sample.

    - ALARM: the value lies further past the allowed range than the channel cutoff
    - WARN: the value is out of range but within the cutoff distance
    """
    ALARM = "ALARM"
    WARN = "WARN"

    @property
    def rank(self) -> int:
        """Sort rank: ALARM before WARN."""
        return 0 if self is Severity.ALARM else 1


class FileFormat(str, Enum):
    """Raw campaign file formats accepted by ingestion."""
    CSV = "csv"
    JSON = "json"
