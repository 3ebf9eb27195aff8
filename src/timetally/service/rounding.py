# SPDX-License-Identifier: MIT

from typing import Optional

from timetally.model.rounding import RoundingConfig, RoundingMode


def round_duration(seconds: int, increment_minutes: int, mode: RoundingMode) -> int:
    """
    Quantize a duration to a multiple of the increment.

    The magnitude is rounded and the sign restored afterwards, so rounding
    commutes with negation. In closest mode an exact half increment rounds
    up. Already aligned values are returned unchanged in every mode.

    Args:
        seconds: Raw duration, may be negative
        increment_minutes: Rounding step; 0 disables rounding
        mode: closest, up or down

    Returns:
        The rounded duration in seconds
    """
    if increment_minutes <= 0:
        return seconds

    step = increment_minutes * 60
    sign = -1 if seconds < 0 else 1
    magnitude = abs(seconds)

    lower = (magnitude // step) * step
    upper = lower if lower == magnitude else lower + step

    if mode == RoundingMode.DOWN:
        rounded = lower
    elif mode == RoundingMode.UP:
        rounded = upper
    else:
        rounded = upper if upper - magnitude <= magnitude - lower else lower

    return sign * rounded


def round_seconds(seconds: int, rounding: Optional[RoundingConfig]) -> int:
    if rounding is None:
        return seconds
    return round_duration(seconds, rounding.increment_minutes, rounding.mode)
