"""Tilt Estimator

This module turns the raw accelerometer stream into a stable device tilt angle.
The gravity vector is low-pass filtered with an exponential moving average and
projected onto the axis that matches the current screen rotation.
"""

import logging
import asyncio
import time
from typing import Callable, Optional
import numpy as np

from posture_monitor.models.enums import Rotation
from posture_monitor.models.interfaces import AccelerometerStream, SensorUnavailableError
from posture_monitor.models.samples import AccelerometerSample
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


def compute_tilt_angle(
    gravity: np.ndarray,
    rotation: Rotation = Rotation.ROTATION_0,
    min_norm: float = 0.001
) -> float:
    """Compute the tilt angle of a gravity vector for a screen rotation.

    The primary axis is Y in portrait and X in landscape (negated for the
    upside-down rotations). The angle is atan2(primary, hypot(others)) in
    degrees, reported as an absolute value.

    Args:
        gravity: (3,) gravity vector (x, y, z)
        rotation: Current screen rotation
        min_norm: Vectors shorter than this yield 0.0

    Returns:
        Tilt angle in degrees, in [0, 90]
    """
    x, y, z = (float(v) for v in gravity)

    if np.sqrt(x * x + y * y + z * z) < min_norm:
        return 0.0

    if rotation == Rotation.ROTATION_0:
        angle = np.arctan2(y, np.sqrt(x * x + z * z))
    elif rotation == Rotation.ROTATION_90:
        angle = np.arctan2(x, np.sqrt(y * y + z * z))
    elif rotation == Rotation.ROTATION_180:
        angle = np.arctan2(-y, np.sqrt(x * x + z * z))
    elif rotation == Rotation.ROTATION_270:
        angle = np.arctan2(-x, np.sqrt(y * y + z * z))
    else:
        return 0.0

    return float(abs(np.degrees(angle)))


class TiltEstimator:
    """Estimates device tilt from a push-based accelerometer stream.

    Consecutive reads keep smoothing across cycles unless the filter has gone
    stale: when the last sample is older than stale_after, the next read
    re-seeds the filter from its first sample. Each read holds a listener on
    the stream only until it resolves.

    Attributes:
        stream: Accelerometer stream the listener is registered on
        rotation_provider: Callable returning the current screen rotation
        smoothing_alpha: Weight of the previous filtered value (0.8)
        read_timeout: Seconds to wait for a sample before giving up
        stale_after: Age in seconds after which the filter state is discarded
        filtered: Current filtered gravity vector, None before the first sample
    """

    def __init__(
        self,
        stream: AccelerometerStream,
        rotation_provider: Optional[Callable[[], Rotation]] = None,
        smoothing_alpha: Optional[float] = None,
        read_timeout: Optional[float] = None,
        stale_after: Optional[float] = None
    ):
        self.stream = stream
        self.rotation_provider = rotation_provider or (lambda: Rotation.ROTATION_0)
        self.smoothing_alpha = (
            smoothing_alpha if smoothing_alpha is not None
            else config.get('tilt.smoothing_alpha', 0.8)
        )
        self.read_timeout = (
            read_timeout if read_timeout is not None
            else config.get('tilt.read_timeout', 2.0)
        )
        self.stale_after = (
            stale_after if stale_after is not None
            else config.get('tilt.stale_after', self.read_timeout)
        )
        self.min_gravity_norm = config.get('tilt.min_gravity_norm', 0.001)

        self.filtered: Optional[np.ndarray] = None
        self._last_update: Optional[float] = None
        self._active_listener: Optional[Callable[[AccelerometerSample], None]] = None

        logger.info(f"TiltEstimator initialized with alpha={self.smoothing_alpha}, "
                    f"read_timeout={self.read_timeout}s")

    def _is_stale(self) -> bool:
        if self._last_update is None:
            return True
        return time.monotonic() - self._last_update > self.stale_after

    def _apply_filter(self, sample: AccelerometerSample, reseed: bool = False) -> np.ndarray:
        """Fold one raw sample into the filtered gravity vector.

        The first sample, or any sample passed with reseed, sets the filter
        directly so the angle is not biased toward a zero or outdated vector.
        """
        raw = sample.as_vector()
        if self.filtered is None or reseed:
            self.filtered = raw
        else:
            self.filtered = self.smoothing_alpha * self.filtered + (1 - self.smoothing_alpha) * raw
        self._last_update = time.monotonic()
        return self.filtered

    def current_angle(self) -> Optional[float]:
        """Tilt angle of the current filtered vector, None before any sample"""
        if self.filtered is None:
            return None
        return compute_tilt_angle(self.filtered, self.rotation_provider(), self.min_gravity_norm)

    def reset(self) -> None:
        """Forget the filter state"""
        self.filtered = None
        self._last_update = None

    @staticmethod
    def _resolve(future: asyncio.Future, angle: float) -> None:
        # Later samples of the same read only update the filter
        if not future.done():
            future.set_result(angle)

    async def read_tilt(self) -> Optional[float]:
        """Read the tilt angle from the next accelerometer sample.

        Registers a listener, waits for the first sample that arrives after the
        read begins, and unregisters on every exit path.

        Returns:
            Tilt angle in degrees, or None if the sensor is unavailable or no
            sample arrived within read_timeout
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        first_sample = True

        def on_sample(sample: AccelerometerSample) -> None:
            nonlocal first_sample
            reseed = first_sample and self._is_stale()
            first_sample = False
            self._apply_filter(sample, reseed=reseed)
            angle = self.current_angle()
            loop.call_soon_threadsafe(self._resolve, future, angle)

        try:
            self.stream.register(on_sample)
        except SensorUnavailableError as e:
            logger.error(f"Accelerometer unavailable: {e}")
            return None

        self._active_listener = on_sample
        try:
            angle = await asyncio.wait_for(future, timeout=self.read_timeout)
            logger.debug(f"Tilt read: {angle:.1f} deg")
            return angle
        except asyncio.TimeoutError:
            logger.warning(f"No accelerometer sample within {self.read_timeout}s")
            return None
        finally:
            self._unregister(on_sample)

    def _unregister(self, listener: Callable[[AccelerometerSample], None]) -> None:
        try:
            self.stream.unregister(listener)
        finally:
            if self._active_listener is listener:
                self._active_listener = None

    def release(self) -> None:
        """Forcibly unregister a listener left behind by an abandoned read"""
        listener = self._active_listener
        if listener is not None:
            logger.info("Releasing accelerometer listener")
            self._unregister(listener)
