"""Simulated device collaborators

Synthetic stand-ins for the accelerometer, face detector, activity signal and
notification layer, so the monitoring loop can run on a machine without the
real hardware.
"""

import logging
import time
import asyncio
from typing import Callable, List, Optional
import numpy as np

from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.interfaces import (
    AccelerometerStream,
    ActivitySignal,
    DistanceDetector,
    NotificationBoundary
)
from posture_monitor.models.samples import AccelerometerSample
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)

STANDARD_GRAVITY = 9.81


class SimulatedAccelerometer(AccelerometerStream):
    """Pushes noisy gravity readings for a device held at target_tilt.

    Readings are produced by a background task while at least one callback
    is registered.
    """

    def __init__(
        self,
        target_tilt: Optional[float] = None,
        noise_std: Optional[float] = None,
        sample_interval: Optional[float] = None,
        seed: Optional[int] = None
    ):
        self.target_tilt = (
            target_tilt if target_tilt is not None
            else config.get('simulation.target_tilt', 65.0)
        )
        self.noise_std = (
            noise_std if noise_std is not None
            else config.get('simulation.noise_std', 0.2)
        )
        self.sample_interval = (
            sample_interval if sample_interval is not None
            else config.get('simulation.sample_interval', 0.05)
        )
        self.rng = np.random.default_rng(seed)
        self.callbacks: List[Callable[[AccelerometerSample], None]] = []
        self._pump_task: Optional[asyncio.Task] = None

    def _next_sample(self) -> AccelerometerSample:
        # Portrait device pitched back by target_tilt degrees
        pitch = np.radians(self.target_tilt)
        gravity = STANDARD_GRAVITY * np.array([0.0, np.sin(pitch), np.cos(pitch)])
        gravity += self.rng.normal(0.0, self.noise_std, size=3)
        return AccelerometerSample(x=gravity[0], y=gravity[1], z=gravity[2], timestamp=time.time())

    async def _pump(self) -> None:
        while self.callbacks:
            sample = self._next_sample()
            for callback in list(self.callbacks):
                callback(sample)
            await asyncio.sleep(self.sample_interval)

    def register(self, callback: Callable[[AccelerometerSample], None]) -> None:
        self.callbacks.append(callback)
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = asyncio.get_running_loop().create_task(self._pump())

    def unregister(self, callback: Callable[[AccelerometerSample], None]) -> None:
        if callback in self.callbacks:
            self.callbacks.remove(callback)
        if not self.callbacks and self._pump_task is not None:
            self._pump_task.cancel()
            self._pump_task = None


class SimulatedFaceDetector(DistanceDetector):
    """Reports a noisy face distance after a fixed latency, or misses."""

    def __init__(
        self,
        face_distance: Optional[float] = None,
        latency: Optional[float] = None,
        miss_rate: Optional[float] = None,
        seed: Optional[int] = None
    ):
        self.face_distance = (
            face_distance if face_distance is not None
            else config.get('simulation.face_distance', 0.8)
        )
        self.latency = (
            latency if latency is not None
            else config.get('simulation.detector_latency', 0.2)
        )
        self.miss_rate = (
            miss_rate if miss_rate is not None
            else config.get('simulation.detector_miss_rate', 0.2)
        )
        self.rng = np.random.default_rng(seed)
        self._pending: List[asyncio.TimerHandle] = []

    def detect_once(self, callback: Callable[[float], None]) -> None:
        if self.rng.random() < self.miss_rate:
            logger.debug("Simulated detector: no face in frame")
            return

        distance = max(0.05, float(self.face_distance + self.rng.normal(0.0, 0.02)))
        handle = asyncio.get_running_loop().call_later(self.latency, callback, distance)
        self._pending.append(handle)

    def release(self) -> None:
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()


class AlwaysActiveSignal(ActivitySignal):
    """Activity signal for a device whose screen never turns off"""

    def is_device_active(self) -> bool:
        return True


class LoggingNotifier(NotificationBoundary):
    """Logs escalation levels; a STRONG level shows a timed blocking overlay."""

    def __init__(self, overlay_duration: Optional[float] = None):
        self.overlay_duration = (
            overlay_duration if overlay_duration is not None
            else config.get('simulation.overlay_duration', 3.0)
        )
        self.presented: List[ReminderLevel] = []
        self._overlay_until = 0.0

    def present(self, level: ReminderLevel) -> None:
        self.presented.append(level)
        if level == ReminderLevel.NONE:
            return

        logger.info(f"Reminder shown: {level.name}")
        if level == ReminderLevel.STRONG:
            self._overlay_until = time.monotonic() + self.overlay_duration

    def is_blocking_overlay_visible(self) -> bool:
        return time.monotonic() < self._overlay_until
