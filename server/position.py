"""Normalized pointer position reported by a producer connection."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

LOWER_BOUND = -1.0
UPPER_BOUND = 1.0


def clamp(value: float) -> float:
    """Clamp *value* to [-1, 1].

    Infinities land on the nearest boundary. NaN has no nearest boundary and
    maps to 0.0, the position a freshly connected producer starts at.
    """

    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(LOWER_BOUND, min(UPPER_BOUND, value))


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def clamped(cls, x: float, y: float) -> "Position":
        return cls(clamp(x), clamp(y))

    def to_pair(self) -> List[float]:
        return [self.x, self.y]

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)
