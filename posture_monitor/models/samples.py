"""Data models for raw sensor readings and per-cycle samples"""

from dataclasses import dataclass
from typing import Optional
import numpy as np


@dataclass
class AccelerometerSample:
    """A single 3-axis accelerometer reading

    Attributes:
        x: Acceleration along the device X axis (m/s^2)
        y: Acceleration along the device Y axis (m/s^2)
        z: Acceleration along the device Z axis (m/s^2)
        timestamp: When the reading was taken (seconds)
    """
    x: float
    y: float
    z: float
    timestamp: float = 0.0

    def __post_init__(self):
        """Validate the reading"""
        assert self.timestamp >= 0, "Timestamp must be non-negative"
        assert np.all(np.isfinite([self.x, self.y, self.z])), "Axis values must be finite"

    def as_vector(self) -> np.ndarray:
        """Return the reading as a float64 (3,) vector"""
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass
class SensorSample:
    """Tilt and distance measured in one sampling cycle

    Either field may be None: no face detected, or no tilt reading arrived
    in time.

    Attributes:
        tilt: Tilt angle in degrees, or None
        distance: Face distance ratio, or None
    """
    tilt: Optional[float] = None
    distance: Optional[float] = None

    @property
    def has_tilt(self) -> bool:
        return self.tilt is not None

    @property
    def has_distance(self) -> bool:
        return self.distance is not None
