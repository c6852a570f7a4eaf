"""Personalized Scoring Engine

This module combines a tilt angle and a face distance ratio, either of which may
be missing, into a 0-100 posture score measured against the user's calibrated
baseline. Each signal is mapped through a five-zone piecewise-linear function
(excellent, good, acceptable, warning, critical) before weighting.

When the face is missing but tilt is present, the user has usually looked down
far enough to leave the camera's view, so a stricter tilt-only function is used.
"""

import logging
from typing import Optional

from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.results import Baseline, ScoreResult
from posture_monitor.models.samples import SensorSample
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


def _ramp(position: float, width: float) -> float:
    """Fraction of the way through a zone; zero-width zones resolve to 0.0"""
    if width <= 0:
        return 0.0
    return position / width


def reminder_level_from_score(score: int) -> ReminderLevel:
    """Map a posture score to the reminder level used for message wording.

    This is independent of the escalation level the controller derives from
    consecutive bad cycles.

    Args:
        score: Posture score in [0, 100]

    Returns:
        NONE for >= 85, GENTLE for >= 70, MODERATE for >= 40, else STRONG
    """
    if score >= 85:
        return ReminderLevel.NONE      # Excellent posture
    if score >= 70:
        return ReminderLevel.GENTLE    # Good, minor adjustments
    if score >= 40:
        return ReminderLevel.MODERATE  # Needs attention
    return ReminderLevel.STRONG        # Poor posture, immediate correction


def feedback_message(
    tilt: Optional[float],
    distance: Optional[float],
    score: int,
    baseline: Baseline
) -> str:
    """Pick the user-facing feedback text for a scored cycle.

    Keyed on which signals were present and on the score.
    """
    gap = abs(baseline.bad_distance - baseline.good_distance)

    if distance is None:
        if tilt is None:
            return "Not enough measurement data"
        if tilt >= baseline.good_tilt * 0.9:
            return "Posture looks fine"
        if tilt >= baseline.bad_tilt:
            return "Raise your neck a little more"
        return "You are bowing your head too far! Straighten your neck"

    if distance < baseline.good_distance:
        distance_hint = "Hold the device farther away"
    else:
        distance_hint = "Hold the device closer"

    if tilt is None:
        if score >= 85:
            return "Perfect distance!"
        if score >= 70:
            return "Good distance"
        return distance_hint

    distance_off = abs(distance - baseline.good_distance) > gap

    if score >= 85:
        return "Perfect posture!"
    if score >= 70:
        return "Good posture"
    if tilt < baseline.bad_tilt and distance_off:
        return "Adjust both your neck angle and the device distance"
    if tilt < baseline.bad_tilt:
        return (f"Straighten your neck (current: {int(tilt)} deg, "
                f"target: {int(baseline.good_tilt)} deg)")
    if distance_off:
        return distance_hint
    return "Sit up straight"


class ScoringEngine:
    """Scores posture against a personalized baseline.

    The scoring methods are pure: they depend only on their arguments and the
    configured constants. The engine caches the most recent result for
    non-blocking access.

    Attributes:
        tilt_weight: Weight of the tilt zone score when both signals exist
        distance_weight: Weight of the distance zone score
        excellent_margin: Margin above good_tilt (and fraction of the distance
            gap) that counts as excellent
        neutral_score: Score reported when neither signal is available
        latest_result: Most recent score result (cached)
    """

    def __init__(
        self,
        tilt_weight: Optional[float] = None,
        distance_weight: Optional[float] = None
    ):
        self.tilt_weight = (
            tilt_weight if tilt_weight is not None
            else config.get('scoring.tilt_weight', 0.5)
        )
        self.distance_weight = (
            distance_weight if distance_weight is not None
            else config.get('scoring.distance_weight', 0.5)
        )
        self.excellent_margin = config.get('scoring.excellent_margin', 0.15)
        self.neutral_score = config.get('scoring.neutral_score', 50)

        self.latest_result: Optional[ScoreResult] = None

        logger.info(f"ScoringEngine initialized with weights tilt={self.tilt_weight}, "
                    f"distance={self.distance_weight}")

    def tilt_zone_score(self, tilt: float, baseline: Baseline) -> float:
        """Score a tilt angle in [0, 1].

        Zones, from best to worst:
            - excellent: tilt >= good_tilt * (1 + margin) -> 1.0
            - good: good_tilt .. excellent -> 0.85 to 1.0
            - acceptable: bad_tilt .. good_tilt -> 0.5 to 0.85
            - warning: 0.8 * bad_tilt .. bad_tilt -> 0.0 to 0.5
            - critical: below 0.8 * bad_tilt -> 0.0

        Args:
            tilt: Tilt angle in degrees
            baseline: Personalized baseline

        Returns:
            Tilt score, non-decreasing in tilt
        """
        good = baseline.good_tilt
        bad = baseline.bad_tilt

        if tilt >= good * (1 + self.excellent_margin):
            return 1.0

        if tilt >= good:
            return 0.85 + _ramp(tilt - good, good * self.excellent_margin) * 0.15

        if tilt > bad:
            return 0.5 + _ramp(tilt - bad, good - bad) * 0.35

        if tilt >= bad * 0.8:
            return _ramp(tilt - bad * 0.8, bad * 0.2) * 0.5

        return 0.0

    def distance_zone_score(self, distance: float, baseline: Baseline) -> float:
        """Score a face distance ratio in [0, 1].

        Deviation from good_distance is measured against the gap between the
        good and bad captures, in either direction:
            - excellent: deviation <= 15% of gap -> 1.0
            - good: up to 50% of gap -> 1.0 down to 0.85
            - acceptable: up to 100% of gap -> 0.85 down to 0.5
            - warning: up to 150% of gap -> 0.5 down to 0.0
            - critical: beyond -> 0.0

        Args:
            distance: Face distance ratio
            baseline: Personalized baseline

        Returns:
            Distance score
        """
        deviation = abs(distance - baseline.good_distance)
        gap = abs(baseline.bad_distance - baseline.good_distance)

        if deviation <= gap * self.excellent_margin:
            return 1.0

        if deviation <= gap * 0.5:
            position = deviation - gap * self.excellent_margin
            return 0.85 + (1.0 - _ramp(position, gap * (0.5 - self.excellent_margin))) * 0.15

        if deviation <= gap:
            position = deviation - gap * 0.5
            return 0.5 + (1.0 - _ramp(position, gap * 0.5)) * 0.35

        if deviation <= gap * 1.5:
            position = deviation - gap
            return 0.5 * (1.0 - _ramp(position, gap * 0.5))

        return 0.0

    def _score_without_face(self, tilt: float, baseline: Baseline) -> int:
        """Score from tilt alone when no face was detected.

        Biased toward low scores: a missing face usually means the head is
        bowed out of the camera's view.
        """
        good = baseline.good_tilt
        bad = baseline.bad_tilt
        critical = bad * 0.7

        # Probably just turned away
        if tilt >= good * 0.9:
            return 70

        if tilt >= bad:
            return int(40 + _ramp(tilt - bad, good - bad) * 30)

        if tilt >= critical:
            return int(10 + _ramp(tilt - critical, bad * 0.3) * 30)

        ratio = max(0.0, min(1.0, _ramp(tilt, critical)))
        return int(ratio * 10)

    def compute_score(
        self,
        tilt: Optional[float],
        distance: Optional[float],
        baseline: Baseline
    ) -> int:
        """Compute the 0-100 posture score for one cycle's measurements.

        Args:
            tilt: Tilt angle in degrees, or None
            distance: Face distance ratio, or None
            baseline: Personalized baseline

        Returns:
            Integer score clamped to [0, 100]
        """
        return self._score_sample(SensorSample(tilt=tilt, distance=distance), baseline)

    def _score_sample(self, sample: SensorSample, baseline: Baseline) -> int:
        if not sample.has_distance:
            if not sample.has_tilt:
                return self.neutral_score
            raw = self._score_without_face(sample.tilt, baseline)
        elif not sample.has_tilt:
            raw = int(self.distance_zone_score(sample.distance, baseline) * 100)
        else:
            combined = (
                self.tilt_weight * self.tilt_zone_score(sample.tilt, baseline)
                + self.distance_weight * self.distance_zone_score(sample.distance, baseline)
            )
            raw = int(combined * 100)

        return max(0, min(100, raw))

    def score(
        self,
        tilt: Optional[float],
        distance: Optional[float],
        baseline: Baseline
    ) -> ScoreResult:
        """Score one cycle and derive its reminder level.

        Args:
            tilt: Tilt angle in degrees, or None
            distance: Face distance ratio, or None
            baseline: Personalized baseline

        Returns:
            ScoreResult with score, score-derived level and the input sample
        """
        sample = SensorSample(tilt=tilt, distance=distance)
        value = self._score_sample(sample, baseline)
        result = ScoreResult(
            score=value,
            level=reminder_level_from_score(value),
            sample=sample
        )

        self.latest_result = result

        logger.debug(f"Scored cycle: score={value}, level={result.level.name}, "
                     f"tilt={tilt}, distance={distance}")

        return result

    def get_latest_result(self) -> Optional[ScoreResult]:
        """Get the most recent score result, None before the first cycle"""
        return self.latest_result
