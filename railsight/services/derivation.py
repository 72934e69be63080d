"""
Derivation Service

Computes the crosslevel-rate channel from crosslevel when a campaign does not
supply it:

    rate[0] = None
    rate[i] = (xlev[i] - xlev[i-1]) / step_m      (mm/m for xlev in mm)

When the grid ends on a shorter final interval, the last difference is divided
by that interval's length in metres instead of step_m.

A None operand yields None. Derivation only fills a rate channel that is
entirely absent for a campaign; a single measured rate value is enough to keep
the measured channel untouched, so measured data is never overwritten by the
approximation.
"""

import logging
from typing import List, Optional, Sequence

from railsight.models.enums import Channel
from railsight.services.resampling import (
    GRID_TOLERANCE_STEPS,
    METRES_PER_KM,
    ResampledSeries,
)

logger = logging.getLogger(__name__)


def derive_rate(
    crosslevel: Sequence[Optional[float]],
    step_m: float,
    final_step_m: Optional[float] = None,
) -> List[Optional[float]]:
    """
    First difference of a crosslevel series over the grid step.

    Args:
        crosslevel: Crosslevel values on a uniform grid
        step_m: Grid step in metres
        final_step_m: Length of the last interval in metres, when it differs
            from step_m

    Returns:
        Rate series of the same length; the first value is always None

    Raises:
        ValueError: If step_m or final_step_m is not positive
    """
    if not step_m > 0:
        raise ValueError(f"step_m must be positive, got {step_m}")
    if final_step_m is not None and not final_step_m > 0:
        raise ValueError(f"final_step_m must be positive, got {final_step_m}")

    last_index = len(crosslevel) - 1
    rate: List[Optional[float]] = []
    previous: Optional[float] = None
    for i, current in enumerate(crosslevel):
        if i == 0 or previous is None or current is None:
            rate.append(None)
        else:
            divisor = final_step_m if i == last_index and final_step_m is not None else step_m
            rate.append((current - previous) / divisor)
        previous = current
    return rate


def has_measured_rate(series: ResampledSeries) -> bool:
    """True when the series carries at least one known rate value."""
    return any(v is not None for v in series.column(Channel.RATE))


def final_interval_m(series: ResampledSeries) -> Optional[float]:
    """Length in metres of a shortened last grid interval, or None."""
    if len(series.positions) < 2:
        return None
    interval = (series.positions[-1] - series.positions[-2]) * METRES_PER_KM
    if abs(interval - series.step_m) <= GRID_TOLERANCE_STEPS * series.step_m:
        return None
    return interval


def ensure_rate(series: ResampledSeries) -> ResampledSeries:
    """
    Fill the rate channel from crosslevel when the campaign has no rate data.

    Returns the series unchanged when any rate value is known or when there is
    no crosslevel to derive from.
    """
    if has_measured_rate(series):
        return series

    crosslevel = series.column(Channel.CROSSLEVEL)
    if all(v is None for v in crosslevel):
        return series

    logger.info(f"Deriving rate from crosslevel for campaign {series.campaign_id}")
    rate = derive_rate(crosslevel, series.step_m, final_interval_m(series))
    return series.with_channel(Channel.RATE, rate)
