"""
Trend and Reporting Service

Reduces a classification pass to the figures shown in the campaign trend chart
and in the technical report:

- aggregate: per-campaign WARN/ALARM counts
- channel_stats: mean/min/max/sd of a channel column per campaign
- critical_points: out-of-range points of a channel per campaign
- build_summary: executive summary with a conclusion sentence

Every requested campaign appears in the aggregate, with zero counts when it
produced no events. Events for campaigns outside the requested set are ignored.

Dependencies:
    - numpy: descriptive statistics over channel columns
"""

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from railsight.models.enums import Channel, Severity
from railsight.models.schemas import (
    AlarmEvent,
    ChannelLimit,
    ChannelStats,
    MergedTable,
    ReportSummary,
)
from railsight.services.alarms import allowed_range, out_of_range_distance

logger = logging.getLogger(__name__)

CONCLUSION_EXCEEDANCES = "Out-of-standard points require inspection/maintenance."
CONCLUSION_CLEAN = "No exceedances were detected in the selected campaigns."


# =============================================================================
# Severity Counts
# =============================================================================


def aggregate(
    events: Iterable[AlarmEvent],
    campaign_ids: Sequence[str],
) -> Dict[str, Dict[str, int]]:
    """
    Count events per campaign and severity.

    Args:
        events: AlarmEvents from classify()
        campaign_ids: Campaigns to report on

    Returns:
        {campaign_id: {"WARN": n, "ALARM": m}} for every requested campaign

    Example:
        >>> aggregate([], ["A", "B"])
        {'A': {'WARN': 0, 'ALARM': 0}, 'B': {'WARN': 0, 'ALARM': 0}}
    """
    counts: Dict[str, Dict[str, int]] = {
        campaign_id: {Severity.WARN.value: 0, Severity.ALARM.value: 0}
        for campaign_id in campaign_ids
    }

    for event in events:
        per_campaign = counts.get(event.campaign_id)
        if per_campaign is None:
            continue
        per_campaign[event.severity.value] += 1

    return counts


# =============================================================================
# Channel Statistics
# =============================================================================


def channel_stats(
    table: MergedTable,
    channel: Channel,
    campaign_ids: Sequence[str],
) -> Dict[str, ChannelStats]:
    """
    Descriptive statistics of one channel for each campaign.

    Campaigns without a known value for the channel are omitted. `sd` is the
    population standard deviation.
    """
    stats: Dict[str, ChannelStats] = {}
    for campaign_id in campaign_ids:
        known = [v for v in table.column(channel, campaign_id) if v is not None]
        if not known:
            continue

        values = np.asarray(known, dtype=np.float64)
        stats[campaign_id] = ChannelStats(
            count=int(values.size),
            mean=float(values.mean()),
            min=float(values.min()),
            max=float(values.max()),
            sd=float(values.std()),
        )
    return stats


def critical_points(
    table: MergedTable,
    channel: Channel,
    campaign_ids: Sequence[str],
    limit: ChannelLimit,
) -> Dict[str, List[Tuple[float, float]]]:
    """Out-of-range (position, value) points per campaign for one channel."""
    bounds = allowed_range(limit)
    points: Dict[str, List[Tuple[float, float]]] = {cid: [] for cid in campaign_ids}
    if bounds is None:
        return points

    for campaign_id in campaign_ids:
        for row in table.rows:
            value = row.value(channel, campaign_id)
            if value is not None and out_of_range_distance(value, bounds) is not None:
                points[campaign_id].append((row.position, value))
    return points


# =============================================================================
# Report Summary
# =============================================================================


def build_summary(
    events: Sequence[AlarmEvent],
    campaign_ids: Sequence[str],
    channels: Sequence[Channel],
) -> ReportSummary:
    alarm_count = sum(1 for e in events if e.severity == Severity.ALARM)
    warn_count = sum(1 for e in events if e.severity == Severity.WARN)

    return ReportSummary(
        campaign_count=len(campaign_ids),
        channels=list(channels),
        alarm_count=alarm_count,
        warn_count=warn_count,
        conclusion=CONCLUSION_EXCEEDANCES if events else CONCLUSION_CLEAN,
    )
