"""
Analytics Pipeline

Runs the geometry analytics stages in strict sequence for one request:

    resample -> ensure rate -> merge -> classify -> aggregate

Each stage consumes the complete output of the previous one. A run owns every
object it builds; only the limit table, which is immutable, is shared between
concurrent runs. Adding or removing a campaign means running the pipeline again
over the new campaign set, never patching a previous result.

A campaign that cannot be resampled (no samples) is logged and reported in
`PipelineResult.skipped`; the other campaigns are still processed.
"""

import logging
from typing import List, Sequence, Tuple

from railsight.models.schemas import Campaign, LimitTable, PipelineResult
from railsight.services.alarms import classify
from railsight.services.derivation import ensure_rate
from railsight.services.errors import EmptyCampaign
from railsight.services.merging import merge
from railsight.services.resampling import ResampledSeries, resample
from railsight.services.trend import aggregate, build_summary

logger = logging.getLogger(__name__)


def resample_all(
    campaigns: Sequence[Campaign],
    step_m: float,
) -> Tuple[List[ResampledSeries], List[str]]:
    """
    Resample each campaign and fill its rate channel where needed.

    Returns:
        (series, skipped): resampled series and ids of empty campaigns
    """
    series: List[ResampledSeries] = []
    skipped: List[str] = []
    for campaign in campaigns:
        try:
            series.append(ensure_rate(resample(campaign, step_m)))
        except EmptyCampaign as e:
            logger.warning(f"Skipping campaign {e.campaign_id}: {e}")
            skipped.append(e.campaign_id)
    return series, skipped


def run_pipeline(
    campaigns: Sequence[Campaign],
    limits: LimitTable,
    step_m: float,
) -> PipelineResult:
    """
    Run the full analytics pipeline over a set of campaigns.

    Args:
        campaigns: Campaigns to analyse
        limits: Immutable limit table
        step_m: Resampling grid step in metres

    Returns:
        PipelineResult with the merged table, ordered events, per-campaign
        counts, skipped campaign ids and the report summary

    Example:
        >>> result = run_pipeline([campaign_a, campaign_b], DEFAULT_LIMIT_TABLE, 1.0)
        >>> result.trend["A"]
        {'WARN': 0, 'ALARM': 1}
    """
    campaign_ids = [c.id for c in campaigns]
    logger.info(f"Running pipeline for {len(campaign_ids)} campaigns at {step_m} m")

    series, skipped = resample_all(campaigns, step_m)
    table = merge(series)
    events = classify(table, campaign_ids, limits)
    trend = aggregate(events, campaign_ids)
    summary = build_summary(events, campaign_ids, table.channels())

    logger.info(
        f"Pipeline done: {len(table)} rows, {summary.alarm_count} ALARM, "
        f"{summary.warn_count} WARN, {len(skipped)} skipped"
    )
    return PipelineResult(
        table=table,
        events=events,
        trend=trend,
        skipped=skipped,
        summary=summary,
    )
