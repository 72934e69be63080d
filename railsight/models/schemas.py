"""
Pydantic models for the RailSight geometry analytics backend.

This module defines the data contracts shared by the analytics engine, the
campaign store and the HTTP layer:

- Measurement data: Sample, Campaign
- Normative configuration: ThresholdLine, Band, ChannelLimit, LimitTable
- Derived artifacts: MergedRow, MergedTable, AlarmEvent
- Ingestion and reporting: QualityReport, CampaignMeta, StoredCampaign,
  ChannelStats, ReportSummary, PipelineResult

Inputs and derived artifacts are frozen. Derived artifacts are rebuilt from
scratch by the pipeline whenever their inputs change; nothing here is patched
in place.

Positions are kilometres along the track. Wherever a position has to act as a
dictionary or set key it is first quantised to integer millimetres with
`position_key`, so independently computed floating positions compare equal.
"""

import math
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from railsight.models.enums import Channel, Severity


# =============================================================================
# Position Keys
# =============================================================================

# Millimetres per kilometre; positions are keyed at millimetre precision
POSITION_KEY_SCALE: int = 1_000_000


def position_key(position_km: float) -> int:
    """Quantise a kilometre position to an integer millimetre key."""
    return int(round(position_km * POSITION_KEY_SCALE))


def key_to_position(key: int) -> float:
    """Canonical kilometre position for a millimetre key."""
    return key / POSITION_KEY_SCALE


# =============================================================================
# Measurement Data
# =============================================================================


class Sample(BaseModel):
    """
    One reading of several channels at a track position.

    Values that are missing, non-finite or unparseable are stored as None and
    mean "value unknown" to every stage; they are never treated as zero.
    """
    model_config = ConfigDict(frozen=True)

    position: float = Field(
        ...,
        description="Track position in km"
    )
    values: Dict[Channel, Optional[float]] = Field(
        default_factory=dict,
        description="Channel readings; None when unknown"
    )

    @field_validator("values")
    @classmethod
    def _normalize_non_finite(
        cls, values: Dict[Channel, Optional[float]]
    ) -> Dict[Channel, Optional[float]]:
        return {
            channel: (value if value is not None and math.isfinite(value) else None)
            for channel, value in values.items()
        }

    def value(self, channel: Channel) -> Optional[float]:
        return self.values.get(channel)


class Campaign(BaseModel):
    """
    One measurement run over a track segment.

    Samples are sorted ascending by position on construction. Samples that
    share a millimetre position key are de-duplicated, keeping the last one
    supplied, so positions are strictly increasing.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "2024-03-linha-1",
                "samples": [
                    {"position": 333.8, "values": {"xlev": 1.5, "gage": 1601.0}},
                    {"position": 333.801, "values": {"xlev": 2.0, "gage": 1600.5}},
                ],
            }
        }
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Unique campaign identifier"
    )
    samples: List[Sample] = Field(
        default_factory=list,
        description="Samples ordered by ascending position"
    )

    @field_validator("samples")
    @classmethod
    def _sort_and_deduplicate(cls, samples: List[Sample]) -> List[Sample]:
        by_key: Dict[int, Sample] = {}
        for sample in samples:
            by_key[position_key(sample.position)] = sample
        return [by_key[key] for key in sorted(by_key)]

    @property
    def positions(self) -> List[float]:
        return [s.position for s in self.samples]

    def channels(self) -> List[Channel]:
        """Channels that appear in at least one sample."""
        seen = {channel for s in self.samples for channel in s.values}
        return [c for c in Channel if c in seen]


# =============================================================================
# Normative Configuration
# =============================================================================


class ThresholdLine(BaseModel):
    """A normative threshold value drawn on a channel."""
    model_config = ConfigDict(frozen=True)

    value: float = Field(..., description="Threshold value in the channel unit")
    label: str = Field(default="", description="Standard label, e.g. 'Alerta ANTT'")


class Band(BaseModel):
    """A safe range shaded on a channel chart. Bands never affect classification."""
    model_config = ConfigDict(frozen=True)

    low: float
    high: float


class ChannelLimit(BaseModel):
    """
    Normative limit configuration for one channel.

    The allowed range used by the classifier is derived from `lines` only.
    """
    model_config = ConfigDict(frozen=True)

    channel: Channel = Field(..., description="Channel this limit applies to")
    unit: str = Field(..., description="Unit of the channel values")
    standard: Optional[str] = Field(
        default=None,
        description="Normative standard the lines come from (e.g. 'ANTT', 'UIC 518')"
    )
    bands: List[Band] = Field(default_factory=list)
    lines: List[ThresholdLine] = Field(default_factory=list)


class LimitTable(BaseModel):
    """
    Immutable channel-limit table shared read-only by every pipeline run.

    `cutoffs` holds the per-channel distance past the allowed range above which
    an out-of-range sample is an ALARM instead of a WARN.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="default", description="Table name")
    limits: Dict[Channel, ChannelLimit] = Field(default_factory=dict)
    cutoffs: Dict[Channel, float] = Field(default_factory=dict)
    default_cutoff: float = Field(
        default=2.0,
        ge=0,
        description="Cutoff used for channels without an explicit entry"
    )

    def cutoff_for(self, channel: Channel) -> float:
        return self.cutoffs.get(channel, self.default_cutoff)


# =============================================================================
# Derived Artifacts
# =============================================================================


class MergedRow(BaseModel):
    """
    One position of the merged multi-campaign table.

    `values` is a two-level mapping channel -> campaign id -> value. A campaign
    that has no reading at this position has no entry (read as None).
    """
    model_config = ConfigDict(frozen=True)

    key: int = Field(..., description="Position key in integer millimetres")
    position: float = Field(..., description="Canonical position in km")
    values: Dict[Channel, Dict[str, Optional[float]]] = Field(default_factory=dict)

    def value(self, channel: Channel, campaign_id: str) -> Optional[float]:
        return self.values.get(channel, {}).get(campaign_id)


class MergedTable(BaseModel):
    """Position-keyed table built by the merger, rows ascending by position."""
    model_config = ConfigDict(frozen=True)

    rows: List[MergedRow] = Field(default_factory=list)
    campaign_ids: List[str] = Field(
        default_factory=list,
        description="Sorted ids of every campaign contributing to the table"
    )

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def positions(self) -> List[float]:
        return [row.position for row in self.rows]

    def column(self, channel: Channel, campaign_id: str) -> List[Optional[float]]:
        return [row.value(channel, campaign_id) for row in self.rows]

    def channels(self) -> List[Channel]:
        seen = {channel for row in self.rows for channel in row.values}
        return [c for c in Channel if c in seen]


class AlarmEvent(BaseModel):
    """An out-of-range sample tagged with its severity."""
    model_config = ConfigDict(frozen=True)

    position: float = Field(..., description="Track position in km")
    channel: Channel
    campaign_id: str
    value: float
    unit: str
    standard_label: str = Field(default="-")
    severity: Severity
    distance: float = Field(
        ...,
        ge=0,
        description="Distance past the violated bound of the allowed range"
    )


# =============================================================================
# Ingestion Models
# =============================================================================


class QualityReport(BaseModel):
    """
    Result of the sanity checks run on an uploaded campaign file.

    `ok` is False only for blocking problems (empty file, missing required
    columns, too few or non-monotonic positions). Atypical sampling steps or
    gauge values are reported as issues without clearing `ok`.
    """
    ok: bool = True
    issues: List[str] = Field(default_factory=list)
    stats: Dict[str, float] = Field(default_factory=dict)


class CampaignMeta(BaseModel):
    """Upload metadata stored next to a campaign."""
    uploaded_at: float = Field(..., description="Upload time, epoch milliseconds")
    filename: str
    quality: QualityReport = Field(default_factory=QualityReport)


class StoredCampaign(BaseModel):
    """Document persisted by the campaign store."""
    campaign: Campaign
    meta: CampaignMeta


# =============================================================================
# Statistics and Reporting
# =============================================================================


class ChannelStats(BaseModel):
    """Descriptive statistics of one channel column for one campaign."""
    count: int = Field(..., ge=0)
    mean: float
    min: float
    max: float
    sd: float = Field(..., ge=0, description="Population standard deviation")


class ReportSummary(BaseModel):
    """Executive summary of a classification pass."""
    campaign_count: int = Field(..., ge=0)
    channels: List[Channel] = Field(default_factory=list)
    alarm_count: int = Field(default=0, ge=0)
    warn_count: int = Field(default=0, ge=0)
    conclusion: str = ""


class PipelineResult(BaseModel):
    """Everything produced by one run of the analytics pipeline."""
    table: MergedTable
    events: List[AlarmEvent] = Field(default_factory=list)
    trend: Dict[str, Dict[str, int]] = Field(
        default_factory=dict,
        description="Per-campaign counts keyed by severity"
    )
    skipped: List[str] = Field(
        default_factory=list,
        description="Campaigns that contributed nothing (no samples)"
    )
    summary: ReportSummary
