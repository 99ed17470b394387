"""
Circular statistics for clock-of-day values.

Bedtimes cluster around midnight, so a linear mean of 23:59 and 00:01 lands
near noon. Each minute value is mapped onto the unit circle instead:

    theta = 2*pi * m / 1440

and the mean direction ``atan2(mean(sin), mean(cos))`` is mapped back to
minutes, rounded, and wrapped into [0, 1440).
"""

from typing import Iterable, Optional

import numpy as np

MINUTES_PER_DAY = 24 * 60


def circular_mean_minutes(values: Iterable[Optional[float]]) -> Optional[int]:
    """
    Circular mean of minute-of-day samples.

    Parameters
    ----------
    values : iterable of int/float or None
        Minutes from midnight; None and non-finite entries are ignored.
        Values outside [0, 1440) are wrapped first.

    Returns
    -------
    int or None
        Mean minute-of-day in [0, 1440), or None when no samples remain.
    """
    data = np.array([v for v in values if v is not None], dtype=float)
    data = data[np.isfinite(data)]
    if data.size == 0:
        return None

    angles = 2 * np.pi * (np.mod(data, MINUTES_PER_DAY) / MINUTES_PER_DAY)
    mean_sin = float(np.mean(np.sin(angles)))
    mean_cos = float(np.mean(np.cos(angles)))
    angle = float(np.arctan2(mean_sin, mean_cos))
    if angle < 0:
        angle += 2 * np.pi

    minutes = angle * MINUTES_PER_DAY / (2 * np.pi)
    return int(round(minutes)) % MINUTES_PER_DAY


def add_minutes_circular(minute_of_day: Optional[int], delta: Optional[int]) -> Optional[int]:
    """Shift a minute-of-day by `delta`, wrapping around midnight."""
    if minute_of_day is None or delta is None:
        return None
    return (minute_of_day + delta) % MINUTES_PER_DAY


def finite_mean(values: Iterable[Optional[float]]) -> Optional[float]:
    """Arithmetic mean over finite values; None when there are none."""
    data = np.array([v for v in values if v is not None], dtype=float)
    data = data[np.isfinite(data)]
    if data.size == 0:
        return None
    return float(np.mean(data))
