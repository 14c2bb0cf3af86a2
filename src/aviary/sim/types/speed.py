from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SpeedMode(str, Enum):
    FIXED = "Fixed"
    MAX_VELOCITY = "MaxVelocity"


@dataclass(frozen=True, slots=True)
class SpeedSpec:
    """Steering multiplier: either a fixed number or "whatever the agent's max velocity is"."""

    mode: SpeedMode = SpeedMode.FIXED
    value: float = 1.0

    @classmethod
    def fixed(cls, value: float) -> "SpeedSpec":
        return cls(SpeedMode.FIXED, float(value))

    @classmethod
    def max_velocity(cls) -> "SpeedSpec":
        return cls(SpeedMode.MAX_VELOCITY)

    def resolve(self, max_velocity: float) -> float:
        if self.mode is SpeedMode.MAX_VELOCITY:
            return max_velocity
        return self.value


UNIT_SPEED = SpeedSpec.fixed(1.0)
