"""
Package initialization file for RailSight models.

Re-exports the enumerations from enums.py and the Pydantic models from
schemas.py so other modules can import them from railsight.models directly.

Usage:
    from railsight.models import (
        Channel,
        Severity,
        Campaign,
        LimitTable,
        MergedTable,
        AlarmEvent,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from railsight.models.enums import (
    Channel,
    CHANNEL_ORDER,
    Severity,
    FileFormat,
)


# =============================================================================
# Schemas
# =============================================================================

from railsight.models.schemas import (
    # Position keys
    POSITION_KEY_SCALE,
    position_key,
    key_to_position,
    # Measurement data
    Sample,
    Campaign,
    # Normative configuration
    ThresholdLine,
    Band,
    ChannelLimit,
    LimitTable,
    # Derived artifacts
    MergedRow,
    MergedTable,
    AlarmEvent,
    # Ingestion
    QualityReport,
    CampaignMeta,
    StoredCampaign,
    # Statistics and reporting
    ChannelStats,
    ReportSummary,
    PipelineResult,
)


__all__ = [
    # Enums
    "Channel",
    "CHANNEL_ORDER",
    "Severity",
    "FileFormat",
    # Position keys
    "POSITION_KEY_SCALE",
    "position_key",
    "key_to_position",
    # Schemas
    "Sample",
    "Campaign",
    "ThresholdLine",
    "Band",
    "ChannelLimit",
    "LimitTable",
    "MergedRow",
    "MergedTable",
    "AlarmEvent",
    "QualityReport",
    "CampaignMeta",
    "StoredCampaign",
    "ChannelStats",
    "ReportSummary",
    "PipelineResult",
]
