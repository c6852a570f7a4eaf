"""Unit tests for the Personalized Scoring Engine"""

import pytest

from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.results import Baseline
from posture_monitor.scoring.scoring_engine import (
    ScoringEngine,
    feedback_message,
    reminder_level_from_score
)


@pytest.fixture
def engine():
    return ScoringEngine()


class TestTiltZoneScore:
    """Five-zone tilt scoring against the default baseline (good 70, bad 30)"""

    def test_excellent_zone(self, engine, baseline):
        assert engine.tilt_zone_score(85.0, baseline) == 1.0

    def test_good_zone_starts_at_085(self, engine, baseline):
        assert engine.tilt_zone_score(70.0, baseline) == pytest.approx(0.85)

    def test_good_zone_ramps_up(self, engine, baseline):
        assert 0.85 < engine.tilt_zone_score(75.0, baseline) < 1.0

    def test_acceptable_zone_midpoint(self, engine, baseline):
        assert engine.tilt_zone_score(50.0, baseline) == pytest.approx(0.675)

    def test_bad_tilt_is_warning_top(self, engine, baseline):
        assert engine.tilt_zone_score(30.0, baseline) == pytest.approx(0.5)

    def test_warning_zone(self, engine, baseline):
        assert engine.tilt_zone_score(27.0, baseline) == pytest.approx(0.25)

    def test_critical_zone(self, engine, baseline):
        assert engine.tilt_zone_score(20.0, baseline) == 0.0
        assert engine.tilt_zone_score(0.0, baseline) == 0.0


class TestDistanceZoneScore:
    """Five-zone distance scoring (good 0.8, bad 0.4, gap 0.4)"""

    def test_exact_match(self, engine, baseline):
        assert engine.distance_zone_score(0.8, baseline) == 1.0

    def test_excellent_zone(self, engine, baseline):
        assert engine.distance_zone_score(0.85, baseline) == 1.0

    def test_good_zone_boundary(self, engine, baseline):
        assert engine.distance_zone_score(0.6, baseline) == pytest.approx(0.85, abs=1e-6)

    def test_acceptable_zone(self, engine, baseline):
        assert engine.distance_zone_score(0.5, baseline) == pytest.approx(0.675, abs=1e-6)

    def test_symmetric_deviation(self, engine, baseline):
        closer = engine.distance_zone_score(0.5, baseline)
        farther = engine.distance_zone_score(1.1, baseline)
        assert closer == pytest.approx(farther, abs=1e-6)

    def test_warning_zone(self, engine, baseline):
        assert engine.distance_zone_score(1.3, baseline) == pytest.approx(0.25, abs=1e-6)

    def test_critical_zone(self, engine, baseline):
        assert engine.distance_zone_score(1.5, baseline) == 0.0
        assert engine.distance_zone_score(0.0, baseline) == 0.0


class TestComputeScore:
    """Tests for the partial-data branches and the combined score"""

    def test_both_absent_is_neutral(self, engine, baseline):
        result = engine.score(None, None, baseline)
        assert result.score == 50
        assert result.level == ReminderLevel.MODERATE

    def test_distance_only(self, engine, baseline):
        assert engine.compute_score(None, 0.8, baseline) == 100
        assert engine.compute_score(None, 0.5, baseline) == 67
        assert engine.compute_score(None, 1.5, baseline) == 0

    def test_tilt_only_near_good(self, engine, baseline):
        assert engine.compute_score(65.0, None, baseline) == 70
        assert engine.compute_score(89.0, None, baseline) == 70

    def test_tilt_only_between_bad_and_good(self, engine, baseline):
        assert engine.compute_score(50.0, None, baseline) == 55
        assert engine.compute_score(30.0, None, baseline) == 40

    def test_tilt_only_below_bad(self, engine, baseline):
        score = engine.compute_score(25.0, None, baseline)
        assert 10 <= score < 40

    def test_tilt_only_critical(self, engine, baseline):
        assert engine.compute_score(10.0, None, baseline) == 4
        assert engine.compute_score(0.0, None, baseline) == 0

    def test_tilt_only_never_exceeds_70(self, engine, baseline):
        assert max(engine.compute_score(t, None, baseline) for t in range(0, 91)) == 70

    def test_both_present_weighted(self, engine, baseline):
        assert engine.compute_score(50.0, 0.5, baseline) == 67

    def test_zero_readings_are_scored_not_neutral(self, engine, baseline):
        result = engine.score(0.0, 0.0, baseline)
        assert result.score == 0
        assert result.sample.has_tilt
        assert result.sample.has_distance

    def test_good_tilt_zone_with_perfect_distance(self, engine, baseline):
        result = engine.score(70.0, 0.8, baseline)
        assert result.score == 92
        assert result.level == ReminderLevel.NONE

    def test_both_present_perfect(self, engine, baseline):
        result = engine.score(85.0, 0.8, baseline)
        assert result.score == 100
        assert result.level == ReminderLevel.NONE

    def test_both_present_poor(self, engine, baseline):
        result = engine.score(10.0, 0.1, baseline)
        assert result.score == 0
        assert result.level == ReminderLevel.STRONG

    def test_custom_weights(self, baseline):
        tilt_heavy = ScoringEngine(tilt_weight=1.0, distance_weight=0.0)
        assert tilt_heavy.compute_score(85.0, 1.5, baseline) == 100

    def test_result_carries_sample(self, engine, baseline):
        result = engine.score(72.5, None, baseline)
        assert result.sample.tilt == 72.5
        assert result.sample.distance is None

    def test_latest_result_cached(self, engine, baseline):
        assert engine.get_latest_result() is None
        result = engine.score(70.0, 0.8, baseline)
        assert engine.get_latest_result() is result

    def test_degenerate_baseline_does_not_divide_by_zero(self, engine):
        flat = Baseline(good_tilt=50.0, good_distance=0.6, bad_tilt=50.0, bad_distance=0.6)
        assert engine.distance_zone_score(0.6, flat) == 1.0
        assert engine.distance_zone_score(0.7, flat) == 0.0
        assert 0 <= engine.compute_score(40.0, None, flat) <= 100
        assert 0 <= engine.compute_score(50.0, 0.7, flat) <= 100


class TestReminderLevelFromScore:
    """Score-to-level thresholds used for message wording"""

    @pytest.mark.parametrize("score,expected", [
        (100, ReminderLevel.NONE),
        (85, ReminderLevel.NONE),
        (84, ReminderLevel.GENTLE),
        (70, ReminderLevel.GENTLE),
        (69, ReminderLevel.MODERATE),
        (40, ReminderLevel.MODERATE),
        (39, ReminderLevel.STRONG),
        (0, ReminderLevel.STRONG),
    ])
    def test_thresholds(self, score, expected):
        assert reminder_level_from_score(score) == expected


class TestFeedbackMessage:
    """Message selection keyed on signal presence and score"""

    def test_no_data(self, baseline):
        assert feedback_message(None, None, 50, baseline) == "Not enough measurement data"

    def test_face_missing_head_bowed(self, baseline):
        message = feedback_message(10.0, None, 4, baseline)
        assert "bowing your head" in message

    def test_face_missing_tilt_fine(self, baseline):
        assert feedback_message(68.0, None, 70, baseline) == "Posture looks fine"

    def test_tilt_missing_too_close(self, baseline):
        assert feedback_message(None, 0.3, 12, baseline) == "Hold the device farther away"

    def test_tilt_missing_too_far(self, baseline):
        assert feedback_message(None, 1.4, 0, baseline) == "Hold the device closer"

    def test_both_good(self, baseline):
        assert feedback_message(80.0, 0.8, 96, baseline) == "Perfect posture!"

    def test_neck_reports_current_and_target(self, baseline):
        message = feedback_message(20.0, 0.8, 50, baseline)
        assert "current: 20 deg" in message
        assert "target: 70 deg" in message

    def test_both_off(self, baseline):
        message = feedback_message(20.0, 0.2, 0, baseline)
        assert message == "Adjust both your neck angle and the device distance"

    def test_generic_advice(self, baseline):
        assert feedback_message(45.0, 0.55, 60, baseline) == "Sit up straight"
