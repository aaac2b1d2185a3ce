"""
Growth classification between successive measurements.
"""

from __future__ import annotations

from enum import Enum


class StepOutcome(str, Enum):
    GREW = "grew"
    NO_CHANGE = "no_change"


def classify(previous: int, current: int) -> StepOutcome:
    """
    Return GREW only when the count strictly increased.

    Both measurement sources are exact distinct-item counts, so there is no
    tolerance band; a shrinking count (recycled nodes) is NO_CHANGE.
    """

    if current > previous:
        return StepOutcome.GREW
    return StepOutcome.NO_CHANGE
