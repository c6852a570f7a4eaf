"""Data models and interfaces"""

from posture_monitor.models.samples import AccelerometerSample, SensorSample
from posture_monitor.models.results import (
    Baseline,
    ScoreResult,
    ControllerState,
    PostureEvent,
    DataSummary
)
from posture_monitor.models.enums import ReminderLevel, Rotation
from posture_monitor.models.interfaces import (
    CalibrationStore,
    DistanceDetector,
    AccelerometerStream,
    ActivitySignal,
    NotificationBoundary,
    EventLogger,
    SensorUnavailableError,
    DetectorUnavailableError
)

__all__ = [
    # Samples
    "AccelerometerSample",
    "SensorSample",
    # Results
    "Baseline",
    "ScoreResult",
    "ControllerState",
    "PostureEvent",
    "DataSummary",
    # Enums
    "ReminderLevel",
    "Rotation",
    # Interfaces
    "CalibrationStore",
    "DistanceDetector",
    "AccelerometerStream",
    "ActivitySignal",
    "NotificationBoundary",
    "EventLogger",
    "SensorUnavailableError",
    "DetectorUnavailableError",
]
