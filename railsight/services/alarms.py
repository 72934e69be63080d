"""
Alarm Engine Service

Evaluates a merged multi-campaign table against the channel-limit table and
emits severity-tagged AlarmEvents in a deterministic order.

Allowed Range:
    Derived from a channel's threshold lines only (bands are display-only):
    - two or more lines: [min, max] of the line values
    - exactly one line: (-inf, value]
    - no lines: the channel is not classified
    Three or more lines are still reduced to [min, max], but the configuration
    is logged as ambiguous so it can be reviewed.

Severity:
    distance = value - high when above the range, low - value when below.
    ALARM when distance exceeds the channel cutoff of the limit table,
    WARN otherwise.

Ordering:
    severity (ALARM first), channel id, position, then campaign id and value.

Every call recomputes the full event list; nothing is updated incrementally.
A limited channel with no data simply yields no events.
"""

import logging
import math
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from railsight.models.enums import Channel, Severity
from railsight.models.schemas import (
    AlarmEvent,
    Band,
    ChannelLimit,
    LimitTable,
    MergedTable,
    ThresholdLine,
)

logger = logging.getLogger(__name__)

AllowedRange = Tuple[float, float]


# =============================================================================
# Default Limit Table
# Normative set for the measured channels: ANTT limits for crosslevel, rate,
# twist and warp; UIC 518 for curvature and gauge.
# Cutoffs: distance past the range above which a sample is an ALARM.
# =============================================================================

DEFAULT_LIMIT_TABLE: LimitTable = LimitTable(
    name="default",
    limits={
        Channel.CURVATURE: ChannelLimit(
            channel=Channel.CURVATURE,
            unit="1/m",
            standard="UIC 518",
            lines=[
                ThresholdLine(value=6, label="Alerta UIC 518"),
                ThresholdLine(value=8, label="Limite UIC 518"),
            ],
        ),
        Channel.CROSSLEVEL: ChannelLimit(
            channel=Channel.CROSSLEVEL,
            unit="mm",
            standard="ANTT",
            bands=[Band(low=-15, high=15)],
            lines=[
                ThresholdLine(value=25, label="Alerta ANTT"),
                ThresholdLine(value=-25, label="Alerta ANTT"),
            ],
        ),
        Channel.RATE: ChannelLimit(
            channel=Channel.RATE,
            unit="mm/m",
            standard="ANTT",
            bands=[Band(low=-7, high=7)],
            lines=[
                ThresholdLine(value=10, label="Alerta ANTT"),
                ThresholdLine(value=-10, label="Alerta ANTT"),
            ],
        ),
        Channel.TWIST: ChannelLimit(
            channel=Channel.TWIST,
            unit="mm",
            standard="ANTT",
            lines=[
                ThresholdLine(value=6, label="Alerta ANTT"),
                ThresholdLine(value=-6, label="Alerta ANTT"),
            ],
        ),
        Channel.WARP: ChannelLimit(
            channel=Channel.WARP,
            unit="mm",
            standard="ANTT",
            lines=[
                ThresholdLine(value=3, label="Alerta ANTT"),
                ThresholdLine(value=-3, label="Alerta ANTT"),
            ],
        ),
        Channel.GAUGE: ChannelLimit(
            channel=Channel.GAUGE,
            unit="mm",
            standard="UIC 518",
            lines=[
                ThresholdLine(value=1595, label="Faixa UIC 518"),
                ThresholdLine(value=1615, label="Faixa UIC 518"),
            ],
        ),
    },
    cutoffs={
        Channel.CURVATURE: 1.0,
        Channel.GAUGE: 5.0,
    },
    default_cutoff=2.0,
)


@lru_cache()
def get_limit_table(limits_file: Optional[Path] = None) -> LimitTable:
    """
    Load the limit table for a configuration.

    Args:
        limits_file: JSON file holding a LimitTable; None selects the default

    Returns:
        Immutable LimitTable, cached per file path

    Raises:
        OSError: If the file cannot be read
        pydantic.ValidationError: If the file is not a valid LimitTable
    """
    if limits_file is None:
        return DEFAULT_LIMIT_TABLE

    table = LimitTable.model_validate_json(Path(limits_file).read_text(encoding="utf-8"))
    logger.info(
        f"Loaded limit table '{table.name}' from {limits_file} "
        f"({len(table.limits)} channels)"
    )
    return table


# =============================================================================
# Range and Severity
# =============================================================================


def allowed_range(limit: ChannelLimit) -> Optional[AllowedRange]:
    """
    Allowed [low, high] interval derived from a channel's threshold lines.

    Returns None when the channel has no lines; bands are ignored.
    """
    values = sorted(line.value for line in limit.lines)
    if not values:
        return None
    if len(values) == 1:
        return (-math.inf, values[0])
    if len(values) > 2:
        logger.warning(
            f"Channel {limit.channel.value} has {len(values)} threshold lines; "
            f"using [{values[0]}, {values[-1]}] as the allowed range"
        )
    return (values[0], values[-1])


def out_of_range_distance(value: float, bounds: AllowedRange) -> Optional[float]:
    """Distance past the violated bound, or None when the value is in range."""
    low, high = bounds
    if value > high:
        return value - high
    if value < low:
        return low - value
    return None


def severity_for(distance: float, cutoff: float) -> Severity:
    """ALARM when the distance exceeds the cutoff, WARN otherwise."""
    return Severity.ALARM if distance > cutoff else Severity.WARN


def event_sort_key(event: AlarmEvent) -> Tuple[int, str, float, str, float]:
    return (
        event.severity.rank,
        event.channel.value,
        event.position,
        event.campaign_id,
        event.value,
    )


def sort_events(events: Iterable[AlarmEvent]) -> List[AlarmEvent]:
    """Order events by severity, channel id and position."""
    return sorted(events, key=event_sort_key)


# =============================================================================
# Classification
# =============================================================================


def classify_channel(
    table: MergedTable,
    campaign_ids: Sequence[str],
    limit: ChannelLimit,
    bounds: AllowedRange,
    cutoff: float,
) -> List[AlarmEvent]:
    """Out-of-range events for one channel across the requested campaigns."""
    channel = limit.channel
    standard_label = limit.standard or "-"
    events: List[AlarmEvent] = []

    for campaign_id in campaign_ids:
        for row in table.rows:
            value = row.value(channel, campaign_id)
            if value is None or not math.isfinite(value):
                continue

            distance = out_of_range_distance(value, bounds)
            if distance is None:
                continue

            events.append(
                AlarmEvent(
                    position=row.position,
                    channel=channel,
                    campaign_id=campaign_id,
                    value=value,
                    unit=limit.unit,
                    standard_label=standard_label,
                    severity=severity_for(distance, cutoff),
                    distance=distance,
                )
            )

    return events


def classify(
    table: MergedTable,
    campaign_ids: Sequence[str],
    limits: LimitTable,
) -> List[AlarmEvent]:
    """
    Classify every limited channel of a merged table.

    Args:
        table: Merged multi-campaign table
        campaign_ids: Campaigns to evaluate
        limits: Limit table, shared read-only

    Returns:
        AlarmEvents ordered by severity, channel id and position

    Example:
        >>> events = classify(table, ["A", "B"], DEFAULT_LIMIT_TABLE)
        >>> [e.severity for e in events][:1]
        [<Severity.ALARM: 'ALARM'>]
    """
    events: List[AlarmEvent] = []

    for channel in Channel:
        limit = limits.limits.get(channel)
        if limit is None:
            continue

        bounds = allowed_range(limit)
        if bounds is None:
            logger.debug(f"Channel {channel.value} has no threshold lines, skipped")
            continue

        events.extend(
            classify_channel(table, campaign_ids, limit, bounds, limits.cutoff_for(channel))
        )

    events = sort_events(events)
    alarm_count = sum(1 for e in events if e.severity == Severity.ALARM)
    logger.info(
        f"Classified {len(table)} rows for {len(campaign_ids)} campaigns: "
        f"{alarm_count} ALARM, {len(events) - alarm_count} WARN"
    )
    return events


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "DEFAULT_LIMIT_TABLE",
    "get_limit_table",
    "allowed_range",
    "out_of_range_distance",
    "severity_for",
    "event_sort_key",
    "sort_events",
    "classify_channel",
    "classify",
]
