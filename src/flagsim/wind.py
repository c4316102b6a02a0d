import math

import numpy as np

from flagsim.types import VEC3


class Wind:
    """Ambient wind with an optional periodic gust.

    Args:
        direction: Direction the wind blows towards; normalised internally.
        speed: Mean speed in m/s.
        variance: Relative gust amplitude (0 keeps the speed constant).
        frequency: Gust frequency in Hz.
    """

    def __init__(
        self,
        direction: tuple[float, float, float] = (1.0, 0.0, 0.0),
        speed: float = 0.0,
        variance: float = 0.0,
        frequency: float = 0.5,
    ) -> None:
        vec = np.asarray(direction, dtype=np.float64)
        length = float(np.linalg.norm(vec))
        self.direction = vec / length if length > 0 else np.zeros(3, dtype=np.float64)
        self.speed = max(0.0, float(speed))
        self.variance = max(0.0, float(variance))
        self.frequency = float(frequency)

    def speed_at(self, t: float) -> float:
        gust = 1.0 + self.variance * math.sin(2.0 * math.pi * self.frequency * t)
        return max(0.0, self.speed * gust)

    def vector_at(self, t: float) -> VEC3:
        return self.direction * self.speed_at(t)
