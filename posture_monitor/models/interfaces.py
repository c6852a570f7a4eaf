"""Interfaces for the collaborators the monitoring loop depends on"""

from abc import ABC, abstractmethod
from typing import Callable

from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.results import Baseline, PostureEvent
from posture_monitor.models.samples import AccelerometerSample


class SensorUnavailableError(Exception):
    """Raised when the accelerometer listener cannot be registered"""
    pass


class DetectorUnavailableError(Exception):
    """Raised when the camera/face detector cannot be bound"""
    pass


class CalibrationStore(ABC):
    """Persistent storage for the calibration baseline"""

    @abstractmethod
    async def load_baseline(self) -> Baseline:
        """Load the stored baseline

        Returns:
            Stored baseline, or the default baseline if uncalibrated
        """
        pass

    @abstractmethod
    async def is_calibrated(self) -> bool:
        """Whether a complete baseline has been stored"""
        pass

    @abstractmethod
    async def save_baseline(self, baseline: Baseline) -> None:
        """Persist a baseline produced by calibration"""
        pass


class DistanceDetector(ABC):
    """Single-shot face distance detector

    Latency is non-deterministic and a detection may never arrive. Callbacks
    may be invoked from any thread.
    """

    @abstractmethod
    def detect_once(self, callback: Callable[[float], None]) -> None:
        """Start one detection

        Args:
            callback: Invoked at most once with the face distance ratio

        Raises:
            DetectorUnavailableError: If the camera cannot be bound
        """
        pass

    @abstractmethod
    def release(self) -> None:
        """Release the camera binding; pending detections are abandoned"""
        pass


class AccelerometerStream(ABC):
    """Push-based accelerometer stream

    Samples are delivered to every registered callback at the platform
    cadence until the callback is unregistered. Callbacks may be invoked
    from any thread.
    """

    @abstractmethod
    def register(self, callback: Callable[[AccelerometerSample], None]) -> None:
        """Start delivering samples to callback

        Raises:
            SensorUnavailableError: If no accelerometer is available
        """
        pass

    @abstractmethod
    def unregister(self, callback: Callable[[AccelerometerSample], None]) -> None:
        """Stop delivering samples to callback; unknown callbacks are ignored"""
        pass


class ActivitySignal(ABC):
    """Reports whether the device is actively in use (screen on, unlocked)"""

    @abstractmethod
    def is_device_active(self) -> bool:
        pass


class NotificationBoundary(ABC):
    """Presentation layer for reminders (notification, vibration, overlay)"""

    @abstractmethod
    def present(self, level: ReminderLevel) -> None:
        """Render an escalation level; fire-and-forget"""
        pass

    @abstractmethod
    def is_blocking_overlay_visible(self) -> bool:
        """Whether a blocking overlay is waiting for the user"""
        pass


class EventLogger(ABC):
    """Best-effort sink for posture events"""

    @abstractmethod
    async def record(self, event: PostureEvent) -> None:
        pass
