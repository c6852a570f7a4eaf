"""Sampling Scheduler

This module runs the posture monitoring loop. Each cycle it waits out the
controller's adaptive delay, skips sampling while the device is idle, reads
tilt and face distance concurrently, scores the sample, updates the escalation
controller and forwards the escalation level to the notification layer.

A failing cycle never stops monitoring: the error is logged, the controller is
restored to its pre-cycle state and the next cycle proceeds. Only cancellation
ends the loop.
"""

import logging
import asyncio
from typing import List, Optional, Tuple

from posture_monitor.models.results import Baseline, PostureEvent, ScoreResult
from posture_monitor.models.interfaces import (
    ActivitySignal,
    CalibrationStore,
    EventLogger,
    NotificationBoundary
)
from posture_monitor.sensing.tilt import TiltEstimator
from posture_monitor.sensing.distance import DistanceProbe
from posture_monitor.scoring.scoring_engine import ScoringEngine
from posture_monitor.control.escalation import EscalationController
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


class SamplingScheduler:
    """Top-level posture monitoring loop.

    The scheduler owns the controller state for the whole session; probes run
    as child tasks and are joined before the cycle continues, so there are no
    concurrent writers.

    Attributes:
        tilt_estimator: Tilt probe
        distance_probe: Face distance probe
        scoring_engine: Personalized scoring engine
        controller: Escalation and adaptive interval controller
        activity_signal: Reports whether the device is in use
        notifier: Presentation layer for escalation levels
        calibration_store: Source of the baseline, read once per session
        event_logger: Optional best-effort sink for posture events
        baseline: Baseline in use for the current session
        cycle_count: Completed (scored) cycles in this session
    """

    def __init__(
        self,
        tilt_estimator: TiltEstimator,
        distance_probe: DistanceProbe,
        activity_signal: ActivitySignal,
        notifier: NotificationBoundary,
        scoring_engine: Optional[ScoringEngine] = None,
        controller: Optional[EscalationController] = None,
        calibration_store: Optional[CalibrationStore] = None,
        event_logger: Optional[EventLogger] = None,
        baseline: Optional[Baseline] = None,
        overlay_poll_interval: Optional[float] = None,
        cancel_grace_period: Optional[float] = None
    ):
        self.tilt_estimator = tilt_estimator
        self.distance_probe = distance_probe
        self.activity_signal = activity_signal
        self.notifier = notifier
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.controller = controller or EscalationController()
        self.calibration_store = calibration_store
        self.event_logger = event_logger
        self.baseline = baseline

        self.overlay_poll_interval = (
            overlay_poll_interval if overlay_poll_interval is not None
            else config.get('scheduler.overlay_poll_interval', 0.1)
        )
        self.cancel_grace_period = (
            cancel_grace_period if cancel_grace_period is not None
            else config.get('scheduler.cancel_grace_period', 2.0)
        )

        self.cycle_count = 0
        self.latest_result: Optional[ScoreResult] = None
        self._stop_event = asyncio.Event()

        logger.info(f"SamplingScheduler initialized with overlay_poll_interval="
                    f"{self.overlay_poll_interval}s, cancel_grace_period={self.cancel_grace_period}s")

    async def _load_baseline(self) -> Baseline:
        """Resolve the session baseline once, before the first cycle"""
        if self.baseline is not None:
            return self.baseline

        if self.calibration_store is None:
            logger.info("No calibration store configured, using default baseline")
            return Baseline.default()

        try:
            if not await self.calibration_store.is_calibrated():
                logger.warning("Posture not calibrated, scoring against default baseline")
            return await self.calibration_store.load_baseline()
        except Exception as e:
            logger.error(f"Failed to load baseline, using defaults: {e}", exc_info=True)
            return Baseline.default()

    async def _sleep(self, delay: float) -> None:
        """Sleep for delay seconds, returning early when stop() is called"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Ask the loop to finish after the current step"""
        self._stop_event.set()

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    async def _read_probes(self) -> Tuple[Optional[float], Optional[float]]:
        """Read tilt and distance concurrently and wait for both.

        Returns:
            Tuple of (tilt, distance); either may be None

        Raises:
            asyncio.CancelledError: After giving the probes a grace period
        """
        tilt_task = asyncio.create_task(self.tilt_estimator.read_tilt(), name="tilt_read")
        distance_task = asyncio.create_task(self.distance_probe.read_distance(), name="distance_read")
        tasks = [tilt_task, distance_task]

        try:
            await asyncio.wait(tasks)
        except asyncio.CancelledError:
            await self._unwind_probes(tasks)
            raise

        # Both probes have finished, so re-raising cannot orphan the other one
        return tilt_task.result(), distance_task.result()

    async def _unwind_probes(self, tasks: List[asyncio.Task]) -> None:
        """Give cancelled probes a bounded grace period, then release resources"""
        for task in tasks:
            if not task.done():
                task.cancel()

        pending = [task for task in tasks if not task.done()]
        if pending:
            _, still_pending = await asyncio.wait(pending, timeout=self.cancel_grace_period)
            for task in still_pending:
                logger.warning(f"Probe {task.get_name()} did not unwind within "
                               f"{self.cancel_grace_period}s, abandoning it")

        self._release_resources()

    def _release_resources(self) -> None:
        self.tilt_estimator.release()
        self.distance_probe.release()

    async def _record_event(self, result: ScoreResult) -> None:
        """Hand the result to the event logger; failures only get logged"""
        if self.event_logger is None:
            return
        try:
            await self.event_logger.record(PostureEvent.from_result(result))
        except Exception as e:
            logger.warning(f"Failed to record posture event: {e}")

    async def _wait_for_overlay(self) -> None:
        """Block the next cycle while the user is acknowledging an overlay"""
        while self.notifier.is_blocking_overlay_visible():
            await asyncio.sleep(self.overlay_poll_interval)

    async def run_cycle(self, baseline: Baseline) -> Optional[ScoreResult]:
        """Run one sampling cycle, without the leading sleep.

        Args:
            baseline: Baseline to score against

        Returns:
            The cycle's ScoreResult, or None if the device was inactive
        """
        if not self.activity_signal.is_device_active():
            logger.debug("Device inactive, skipping sample and resetting controller")
            self.controller.reset()
            self.tilt_estimator.reset()
            return None

        tilt, distance = await self._read_probes()

        result = self.scoring_engine.score(tilt, distance, baseline)
        next_delay, notify_level = self.controller.update(result.level)

        self.notifier.present(notify_level)
        self.latest_result = result
        self.cycle_count += 1

        logger.info(f"Cycle {self.cycle_count}: score={result.score}, "
                    f"level={result.level.name}, notify={notify_level.name}, "
                    f"next check in {next_delay:.1f}s")

        await self._record_event(result)
        await self._wait_for_overlay()

        return result

    async def run(self) -> None:
        """Run the monitoring loop until cancelled or stopped.

        Each iteration sleeps for the controller's current delay, then runs
        one cycle. Unexpected errors inside a cycle are logged and the
        controller state is rolled back; cancellation propagates.
        """
        logger.info("Starting posture monitoring loop")
        self._stop_event.clear()

        try:
            baseline = await self._load_baseline()
            self.baseline = baseline
            logger.info(f"Monitoring with baseline: {baseline}")

            while not self._stop_event.is_set():
                await self._sleep(self.controller.current_delay)
                if self._stop_event.is_set():
                    break

                snapshot = self.controller.snapshot()
                try:
                    await self.run_cycle(baseline)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Error in sampling cycle: {e}", exc_info=True)
                    self.controller.restore(snapshot)

        except asyncio.CancelledError:
            logger.info("Posture monitoring loop cancelled")
            raise
        finally:
            self._release_resources()
            logger.info("Posture monitoring loop stopped")

    def get_latest_result(self) -> Optional[ScoreResult]:
        """Get the most recent cycle's result, None before the first cycle"""
        return self.latest_result
