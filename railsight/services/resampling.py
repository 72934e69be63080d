"""
Resampling Service

Maps one campaign's irregularly spaced samples onto a uniform position grid so
that campaigns measured independently can be compared position by position.

Grid:
    Arithmetic sequence from the campaign's first to its last position, stepped
    by `step_m` metres (positions are in km). The final sample position is
    snapped onto when it lands on the grid within floating tolerance; otherwise
    it is appended as a shorter final interval, so the grid always ends on the
    last sample and endpoint values are preserved exactly.

Values:
    For each channel, samples whose value is None are skipped. Between the
    first and last known samples values are linearly interpolated on position;
    outside that range the edge value is held (clamp-low / clamp-high). A
    channel with no known value at all is None across the whole grid.

Dependencies:
    - numpy: grid construction and np.interp for the linear interpolation
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import numpy as np

from railsight.models.enums import Channel
from railsight.models.schemas import Campaign
from railsight.services.errors import EmptyCampaign

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

METRES_PER_KM: float = 1000.0

# Tolerance, in grid steps, for including or snapping the final grid point
GRID_TOLERANCE_STEPS: float = 1e-6


# =============================================================================
# Resampled Series
# =============================================================================


@dataclass(frozen=True)
class ResampledSeries:
    """
    One campaign on a uniform grid.

    Attributes:
        campaign_id: Id of the source campaign.
        step_m: Grid step in metres.
        positions: Grid positions in km, ascending.
        values: Channel -> value per grid position (None when unknown).
    """
    campaign_id: str
    step_m: float
    positions: List[float]
    values: Dict[Channel, List[Optional[float]]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.positions)

    def column(self, channel: Channel) -> List[Optional[float]]:
        return self.values.get(channel, [None] * len(self.positions))

    def with_channel(
        self, channel: Channel, column: List[Optional[float]]
    ) -> "ResampledSeries":
        """Copy of this series with one channel column replaced."""
        if len(column) != len(self.positions):
            raise ValueError(
                f"Column for {channel.value} has {len(column)} values, "
                f"expected {len(self.positions)}"
            )
        values = dict(self.values)
        values[channel] = list(column)
        return replace(self, values=values)


# =============================================================================
# Grid Construction
# =============================================================================


def build_grid(first_km: float, last_km: float, step_m: float) -> np.ndarray:
    """
    Build the uniform grid between two positions.

    Args:
        first_km: First position (km)
        last_km: Last position (km)
        step_m: Step in metres, must be positive

    Returns:
        Grid positions in km ending on last_km; a single point when
        first == last

    Raises:
        ValueError: If step_m is not positive
    """
    if not step_m > 0:
        raise ValueError(f"step_m must be positive, got {step_m}")

    step_km = step_m / METRES_PER_KM
    if last_km <= first_km:
        return np.array([first_km], dtype=np.float64)

    count = int(math.floor((last_km - first_km) / step_km + GRID_TOLERANCE_STEPS)) + 1
    grid = first_km + np.arange(count, dtype=np.float64) * step_km

    # The grid always ends on the final sample so edge values are exact
    if abs(grid[-1] - last_km) <= GRID_TOLERANCE_STEPS * step_km:
        grid[-1] = last_km
    else:
        grid = np.append(grid, last_km)

    return grid


# =============================================================================
# Interpolation
# =============================================================================


def _interpolate_channel(
    grid: np.ndarray,
    positions: np.ndarray,
    raw: List[Optional[float]],
) -> List[Optional[float]]:
    """Interpolate one channel onto the grid, skipping unknown samples."""
    known = [i for i, v in enumerate(raw) if v is not None]
    if not known:
        return [None] * len(grid)

    xs = positions[known]
    ys = np.array([raw[i] for i in known], dtype=np.float64)

    # np.interp holds ys[0] left of xs[0] and ys[-1] right of xs[-1]
    interpolated = np.interp(grid, xs, ys)
    return [float(v) for v in interpolated]


def resample(campaign: Campaign, step_m: float) -> ResampledSeries:
    """
    Resample a campaign onto a uniform grid.

    Args:
        campaign: Campaign with samples sorted by position
        step_m: Grid step in metres

    Returns:
        ResampledSeries covering every channel present in the campaign

    Raises:
        EmptyCampaign: If the campaign has no sample carrying a known value
        ValueError: If step_m is not positive

    Example:
        >>> series = resample(campaign, step_m=1.0)
        >>> series.positions[0] == campaign.samples[0].position
        True
    """
    samples = campaign.samples
    has_known_value = any(
        value is not None for s in samples for value in s.values.values()
    )
    if not samples or not has_known_value:
        raise EmptyCampaign(campaign.id)

    positions = np.array([s.position for s in samples], dtype=np.float64)
    grid = build_grid(float(positions[0]), float(positions[-1]), step_m)

    values: Dict[Channel, List[Optional[float]]] = {}
    for channel in campaign.channels():
        raw = [s.value(channel) for s in samples]
        values[channel] = _interpolate_channel(grid, positions, raw)

    logger.debug(
        f"Resampled campaign {campaign.id}: {len(samples)} samples -> "
        f"{len(grid)} grid points at {step_m} m"
    )

    return ResampledSeries(
        campaign_id=campaign.id,
        step_m=step_m,
        positions=[float(p) for p in grid],
        values=values,
    )
