"""
Strategy parameters: the weight vector that drives a player's planner.

The seven weights are fixed for the duration of a match. Between matches the
self-play search replaces them, so conversion to and from numpy vectors lives
here together with validation: a vector containing NaN or infinity is never
allowed to reach the scoring code.
"""

from __future__ import annotations

import math
from dataclasses import astuple, dataclass, fields, replace
from typing import Any, Dict, Sequence, Tuple

import numpy as np


class InvalidStrategyError(ValueError):
    """Raised for strategy vectors containing non-finite weights."""


@dataclass(frozen=True)
class StrategyParams:
    """
    Weights for move and attack scoring.

    Attributes:
        health_weight: Value of one hull point in a ship's worth
        missile_weight: Value of one remaining missile in a ship's worth
        block_weight: Bonus per enemy/ally line a move would block
        target_weight: Bonus (usually negative) for moving into an open line of fire
        enemy_distance_weight: Numerator of the inverse distance to each enemy
        ally_distance_weight: Numerator of the inverse distance to each ally
        attack_threshold: Minimum score for a move or attack to be chosen
    """
    health_weight: float = 1.0
    missile_weight: float = 0.8
    block_weight: float = 1.2
    target_weight: float = -1.0
    enemy_distance_weight: float = 0.5
    ally_distance_weight: float = 0.3
    attack_threshold: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidStrategyError(f"{f.name} must be a finite number, got {value!r}")

    @classmethod
    def dimension(cls) -> int:
        return len(fields(cls))

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def as_array(self) -> np.ndarray:
        """Parameters as a float vector in field order."""
        return np.array(astuple(self), dtype=float)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> StrategyParams:
        """
        Build parameters from a vector in field order.

        Raises:
            InvalidStrategyError: wrong length or non-finite entries
        """
        vector = np.asarray(values, dtype=float)
        if vector.shape != (cls.dimension(),):
            raise InvalidStrategyError(
                f"Expected {cls.dimension()} weights, got shape {vector.shape}"
            )
        if not np.all(np.isfinite(vector)):
            raise InvalidStrategyError(f"Non-finite weights: {vector.tolist()}")
        return cls(*(float(v) for v in vector))

    def clamped(self, low: float, high: float) -> StrategyParams:
        """Copy with every weight clipped to [low, high]."""
        return StrategyParams.from_array(np.clip(self.as_array(), low, high))

    def with_overrides(self, **changes: Any) -> StrategyParams:
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in self.field_names()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StrategyParams:
        names = set(cls.field_names())
        unknown = set(data) - names
        if unknown:
            raise InvalidStrategyError(f"Unknown strategy weights: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})

    def __str__(self) -> str:
        body = ", ".join(f"{name}={value:+.2f}" for name, value in self.to_dict().items())
        return f"StrategyParams({body})"
