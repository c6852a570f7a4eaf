"""
Integration tests for a monitoring session.

Runs the sampling loop end to end against the simulated accelerometer, face
detector and notifier, with delays shrunk to milliseconds.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock

from posture_monitor.control.escalation import EscalationController
from posture_monitor.main import PostureMonitor
from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.results import Baseline
from posture_monitor.scheduler.sampling_scheduler import SamplingScheduler
from posture_monitor.scoring.scoring_engine import ScoringEngine
from posture_monitor.sensing.distance import DistanceProbe
from posture_monitor.sensing.tilt import TiltEstimator
from posture_monitor.simulation.devices import (
    AlwaysActiveSignal,
    LoggingNotifier,
    SimulatedAccelerometer,
    SimulatedFaceDetector
)
from tests.fakes import wait_until


def build_session(target_tilt, face_distance, miss_rate=0.0):
    accelerometer = SimulatedAccelerometer(
        target_tilt=target_tilt, noise_std=0.05, sample_interval=0.002, seed=1
    )
    detector = SimulatedFaceDetector(
        face_distance=face_distance, latency=0.002, miss_rate=miss_rate, seed=1
    )
    notifier = LoggingNotifier(overlay_duration=0.02)

    scheduler = SamplingScheduler(
        tilt_estimator=TiltEstimator(accelerometer, read_timeout=0.5),
        distance_probe=DistanceProbe(detector, attempt_timeout=0.05, retry_delay=0.005),
        activity_signal=AlwaysActiveSignal(),
        notifier=notifier,
        scoring_engine=ScoringEngine(),
        controller=EscalationController(
            initial_delay=0.005, max_delay=0.04, backoff_multiplier=2.0, good_streak_threshold=3
        ),
        baseline=Baseline.default(),
        overlay_poll_interval=0.002,
        cancel_grace_period=0.1
    )
    return scheduler, accelerometer, detector, notifier


async def stop_and_join(scheduler, task):
    scheduler.stop()
    await asyncio.wait_for(task, timeout=2.0)


@pytest.mark.asyncio
async def test_slouching_user_is_escalated():
    """A persistently slouching user sees GENTLE, then MODERATE, then STRONG."""
    scheduler, _, _, notifier = build_session(target_tilt=10.0, face_distance=0.1)

    task = asyncio.create_task(scheduler.run())
    await wait_until(lambda: len(notifier.presented) >= 4, timeout=5.0)
    await stop_and_join(scheduler, task)

    assert notifier.presented[:4] == [
        ReminderLevel.GENTLE,
        ReminderLevel.MODERATE,
        ReminderLevel.STRONG,
        ReminderLevel.STRONG,
    ]
    assert scheduler.controller.current_delay == pytest.approx(0.005)
    assert scheduler.get_latest_result().level == ReminderLevel.STRONG


@pytest.mark.asyncio
async def test_upright_user_backs_off():
    """An upright user is never reminded and the interval grows to its cap."""
    scheduler, _, _, notifier = build_session(target_tilt=85.0, face_distance=0.8)

    task = asyncio.create_task(scheduler.run())
    await wait_until(lambda: scheduler.cycle_count >= 6, timeout=5.0)
    await stop_and_join(scheduler, task)

    assert set(notifier.presented) == {ReminderLevel.NONE}
    assert scheduler.get_latest_result().score >= 85
    assert scheduler.controller.current_delay == pytest.approx(0.04)


@pytest.mark.asyncio
async def test_missing_face_still_scores_from_tilt():
    """With the detector always missing, cycles are scored from tilt alone."""
    scheduler, _, _, _ = build_session(target_tilt=75.0, face_distance=0.8, miss_rate=1.0)

    result = await scheduler.run_cycle(Baseline.default())

    assert result.sample.distance is None
    assert result.sample.tilt == pytest.approx(75.0, abs=2.0)
    assert result.score == 70


@pytest.mark.asyncio
async def test_cancellation_leaves_no_listeners():
    """Cancelling mid-session unregisters the accelerometer and frees the detector."""
    scheduler, accelerometer, detector, _ = build_session(
        target_tilt=60.0, face_distance=0.8, miss_rate=1.0
    )

    task = asyncio.create_task(scheduler.run())
    await wait_until(lambda: scheduler.cycle_count >= 1, timeout=5.0)
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert accelerometer.callbacks == []
    assert accelerometer._pump_task is None
    assert detector._pending == []


@pytest.mark.asyncio
async def test_posture_monitor_session_shuts_down_cleanly():
    """The application wiring runs for a bounded session and closes Redis."""
    monitor = PostureMonitor()

    for backend in (monitor.calibration_store, monitor.event_logger):
        client = AsyncMock()
        client.hmget.return_value = [None, None, None, None]
        client.hgetall.return_value = {}
        backend.redis_client = client
    store_client = monitor.calibration_store.redis_client
    logger_client = monitor.event_logger.redis_client

    await monitor.run(duration=0.05)

    assert all(task.done() for task in monitor.tasks)
    assert monitor.scheduler.baseline == Baseline.default()
    store_client.aclose.assert_awaited_once()
    logger_client.aclose.assert_awaited_once()
