"""
Override policy: how an admin adjustment turns a base score into an
effective score.

The effective score is never stored. Every reader derives it through
effective_score() so ranking and display cannot disagree.
"""

import math
from typing import Any

from ..config import Config
from ..errors import ValidationError

LIMIT = Config.ADJUSTMENT_LIMIT_PERCENT


def clamp(pct: float) -> float:
    """Saturate an adjustment to [-25, 25]."""
    return max(-LIMIT, min(LIMIT, pct))


def effective_score(base_score: float, adjustment_percent: float = 0.0) -> float:
    """Base score scaled by the (clamped) adjustment percentage."""
    return base_score * (1 + clamp(adjustment_percent) / 100)


def validate_adjustment(value: Any) -> float:
    """
    Check an adjustment coming from the public write path.

    Unlike clamp(), out-of-range input is rejected so the admin gets
    explicit feedback instead of a silently different value.

    Raises:
        ValidationError: value is not a finite number in [-25, 25]
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("adjustment_percent is required and must be a number")
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "adjustment_percent must be a number",
            detail={"adjustment_percent": value},
        )
    if not math.isfinite(pct):
        raise ValidationError(
            "adjustment_percent must be a finite number",
            detail={"adjustment_percent": value},
        )
    if pct < -LIMIT or pct > LIMIT:
        raise ValidationError(
            f"adjustment_percent must be between {-LIMIT:g} and {LIMIT:g}",
            detail={"adjustment_percent": pct},
        )
    return pct
