"""
RailSight Services Module

This module contains the geometry analytics engine and the I/O services built
around it. The analytics stages are pure functions over immutable inputs, so
they can be composed freely by the API layer and by tests.

Services:
- resampling: uniform-grid resampling of one campaign (numpy)
- derivation: crosslevel-rate derivation from crosslevel
- merging: position-keyed merge of several campaigns
- alarms: limit table, allowed ranges and WARN/ALARM classification
- trend: per-campaign counts, channel statistics and report summary
- pipeline: resample -> derive -> merge -> classify -> aggregate
- ingestion: CSV/JSON campaign files and upload quality checks (pandas)
- export: CSV rendering of merged tables and campaigns (pandas)
- segments: segment slicing and the remote segment fetch (httpx)
- errors: domain exceptions

All services are designed to be consumed by the API layer (railsight/api/).
"""

# =============================================================================
# Domain Errors
# =============================================================================

from railsight.services.errors import (
    RailSightError,
    EmptyCampaign,
    InvalidCampaignFile,
    CampaignNotFound,
    SegmentFetchError,
)

# =============================================================================
# Analytics Engine Exports
# Resampling, rate derivation, merge, classification and aggregation
# =============================================================================

from railsight.services.resampling import ResampledSeries, build_grid, resample
from railsight.services.derivation import derive_rate, ensure_rate, has_measured_rate
from railsight.services.merging import merge, resolve_collision
from railsight.services.alarms import (
    DEFAULT_LIMIT_TABLE,
    allowed_range,
    classify,
    get_limit_table,
    sort_events,
)
from railsight.services.trend import (
    aggregate,
    build_summary,
    channel_stats,
    critical_points,
)
from railsight.services.pipeline import run_pipeline

# =============================================================================
# I/O Service Exports
# Campaign file ingestion, CSV export and segments
# =============================================================================

from railsight.services.ingestion import (
    IngestionOutcome,
    check_quality,
    ingest_file,
    read_records,
    safe_campaign_id,
)
from railsight.services.export import (
    campaign_to_csv,
    table_columns,
    table_from_csv,
    table_to_csv,
    table_to_frame,
)
from railsight.services.segments import (
    campaign_from_columns,
    fetch_segment,
    segment_to_columns,
    slice_segment,
)


__all__ = [
    # Errors
    'RailSightError',
    'EmptyCampaign',
    'InvalidCampaignFile',
    'CampaignNotFound',
    'SegmentFetchError',
    # Analytics engine
    'ResampledSeries',
    'build_grid',
    'resample',
    'derive_rate',
    'ensure_rate',
    'has_measured_rate',
    'merge',
    'resolve_collision',
    'DEFAULT_LIMIT_TABLE',
    'allowed_range',
    'classify',
    'get_limit_table',
    'sort_events',
    'aggregate',
    'build_summary',
    'channel_stats',
    'critical_points',
    'run_pipeline',
    # I/O services
    'IngestionOutcome',
    'check_quality',
    'ingest_file',
    'read_records',
    'safe_campaign_id',
    'campaign_to_csv',
    'table_columns',
    'table_from_csv',
    'table_to_csv',
    'table_to_frame',
    'campaign_from_columns',
    'fetch_segment',
    'segment_to_columns',
    'slice_segment',
]
