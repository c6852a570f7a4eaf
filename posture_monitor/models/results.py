"""Data models for baselines, score results and controller state"""

import time
from dataclasses import dataclass, field
from typing import Optional

from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.samples import SensorSample


# Defaults used until the user has calibrated
DEFAULT_GOOD_TILT = 70.0
DEFAULT_GOOD_DISTANCE = 0.8
DEFAULT_BAD_TILT = 30.0
DEFAULT_BAD_DISTANCE = 0.4


@dataclass(frozen=True)
class Baseline:
    """Personalized reference values for good and bad posture

    Attributes:
        good_tilt: Tilt angle (degrees) captured while sitting upright
        good_distance: Face distance ratio captured while sitting upright
        bad_tilt: Tilt angle (degrees) captured while slouching
        bad_distance: Face distance ratio captured while slouching
    """
    good_tilt: float = DEFAULT_GOOD_TILT
    good_distance: float = DEFAULT_GOOD_DISTANCE
    bad_tilt: float = DEFAULT_BAD_TILT
    bad_distance: float = DEFAULT_BAD_DISTANCE

    @classmethod
    def default(cls) -> "Baseline":
        """Baseline used when no calibration has been stored"""
        return cls()

    @classmethod
    def from_captures(
        cls,
        good: SensorSample,
        bad: SensorSample,
        fallback: Optional["Baseline"] = None
    ) -> "Baseline":
        """Build a baseline from the two calibration captures.

        Args:
            good: Sample captured while the user sat upright
            bad: Sample captured while the user slouched
            fallback: Values for fields a capture is missing (defaults if None)

        Returns:
            Baseline combining both captures
        """
        fallback = fallback or cls.default()
        return cls(
            good_tilt=good.tilt if good.tilt is not None else fallback.good_tilt,
            good_distance=good.distance if good.distance is not None else fallback.good_distance,
            bad_tilt=bad.tilt if bad.tilt is not None else fallback.bad_tilt,
            bad_distance=bad.distance if bad.distance is not None else fallback.bad_distance,
        )


@dataclass
class ScoreResult:
    """Posture score for one sampling cycle

    Attributes:
        score: Posture score in [0, 100], higher is better
        level: Reminder level derived from the score
        sample: The tilt/distance pair the score was computed from
        timestamp: When this result was generated (seconds)
    """
    score: int
    level: ReminderLevel
    sample: SensorSample = field(default_factory=SensorSample)
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        """Validate score result"""
        assert 0 <= self.score <= 100, "Score must be in [0, 100]"
        assert self.timestamp >= 0, "Timestamp must be non-negative"

    @property
    def is_good_posture(self) -> bool:
        """NONE and GENTLE count as good posture for event logging"""
        return self.level <= ReminderLevel.GENTLE


@dataclass
class ControllerState:
    """Mutable state of the escalation controller for one session

    Attributes:
        good_counter: Consecutive acceptable cycles
        bad_counter: Consecutive STRONG cycles
        current_delay: Delay before the next sampling cycle (seconds)
    """
    good_counter: int
    bad_counter: int
    current_delay: float

    def __post_init__(self):
        """Validate controller state"""
        assert self.good_counter >= 0, "good_counter must be non-negative"
        assert self.bad_counter >= 0, "bad_counter must be non-negative"
        assert self.current_delay > 0, "current_delay must be positive"


@dataclass
class PostureEvent:
    """Record handed to the event logger after each scored cycle"""
    timestamp: float
    is_good_posture: bool
    score: int
    tilt: Optional[float]
    distance: Optional[float]

    @classmethod
    def from_result(cls, result: ScoreResult) -> "PostureEvent":
        return cls(
            timestamp=result.timestamp,
            is_good_posture=result.is_good_posture,
            score=result.score,
            tilt=result.sample.tilt,
            distance=result.sample.distance,
        )


@dataclass
class DataSummary:
    """Counts over the logged posture events"""
    total_records: int
    good_posture_count: int
    bad_posture_count: int
