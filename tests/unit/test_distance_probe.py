"""Unit tests for the Distance Probe"""

import asyncio
import time
import pytest

from posture_monitor.sensing.distance import DistanceProbe
from tests.fakes import ScriptedDetector


def make_probe(detector, max_attempts=5, attempt_timeout=0.05, retry_delay=0.02):
    return DistanceProbe(
        detector,
        max_attempts=max_attempts,
        attempt_timeout=attempt_timeout,
        retry_delay=retry_delay
    )


class TestDistanceProbe:
    """Tests for retries, deadlines and resource release"""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        detector = ScriptedDetector([0.82])
        probe = make_probe(detector)

        assert await probe.read_distance() == pytest.approx(0.82)
        assert detector.attempts == 1

    @pytest.mark.asyncio
    async def test_success_on_fifth_attempt(self):
        detector = ScriptedDetector([None, None, None, None, 0.7])
        probe = make_probe(detector)

        assert await probe.read_distance() == pytest.approx(0.7)
        assert detector.attempts == 5

    @pytest.mark.asyncio
    async def test_all_attempts_fail(self):
        detector = ScriptedDetector([])
        attempt_timeout = 0.05
        retry_delay = 0.02
        probe = make_probe(detector, attempt_timeout=attempt_timeout, retry_delay=retry_delay)

        start = time.monotonic()
        distance = await probe.read_distance()
        elapsed = time.monotonic() - start

        assert distance is None
        assert detector.attempts == 5
        minimum = 4 * retry_delay + 5 * attempt_timeout
        assert elapsed >= minimum * 0.9

    @pytest.mark.asyncio
    async def test_no_retry_pause_after_success(self):
        detector = ScriptedDetector([None, 0.6])
        probe = make_probe(detector, attempt_timeout=0.05, retry_delay=0.5)

        start = time.monotonic()
        assert await probe.read_distance() == pytest.approx(0.6)
        # one timeout plus one pause, no trailing pause
        assert time.monotonic() - start < 1.0

    @pytest.mark.asyncio
    async def test_late_detection_is_ignored(self):
        detector = ScriptedDetector([0.9], latency=0.1)
        probe = make_probe(detector, max_attempts=1, attempt_timeout=0.02)

        loop = asyncio.get_running_loop()
        loop_errors = []
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda _, context: loop_errors.append(context))
        try:
            assert await probe.read_distance() is None

            # Let the late callback fire against the already-expired attempt
            await asyncio.sleep(0.15)
        finally:
            loop.set_exception_handler(previous_handler)

        assert loop_errors == []

        # The stale value must not leak into the next read
        detector.latency = 0.0
        detector.outcomes = [0.5]
        assert await probe.read_distance() == pytest.approx(0.5)
        assert detector.attempts == 2

    @pytest.mark.asyncio
    async def test_resolve_ignores_settled_attempt(self):
        future = asyncio.get_running_loop().create_future()
        future.cancel()

        DistanceProbe._resolve(future, 0.9)

        assert future.cancelled()

    @pytest.mark.asyncio
    async def test_unavailable_detector_returns_none(self):
        detector = ScriptedDetector([0.8], available=False)
        probe = make_probe(detector)

        assert await probe.read_distance() is None
        assert detector.attempts == 0

    @pytest.mark.asyncio
    async def test_detector_released_after_read(self):
        detector = ScriptedDetector([0.8])
        probe = make_probe(detector)

        await probe.read_distance()
        assert detector.release_count == 1

    @pytest.mark.asyncio
    async def test_detector_released_on_cancellation(self):
        detector = ScriptedDetector([])
        probe = make_probe(detector, attempt_timeout=10.0)

        task = asyncio.create_task(probe.read_distance())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert detector.release_count == 1

    def test_defaults_from_config(self):
        probe = DistanceProbe(ScriptedDetector())
        assert probe.max_attempts == 5
        assert probe.attempt_timeout == pytest.approx(3.0)
        assert probe.retry_delay == pytest.approx(0.5)
