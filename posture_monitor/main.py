"""Main Application Entry Point

This module wires the posture monitoring loop to its collaborators and runs it
until interrupted. Device collaborators are simulated; the calibration baseline
and posture events live in Redis.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from posture_monitor.sensing.tilt import TiltEstimator
from posture_monitor.sensing.distance import DistanceProbe
from posture_monitor.scoring.scoring_engine import ScoringEngine
from posture_monitor.control.escalation import EscalationController
from posture_monitor.scheduler.sampling_scheduler import SamplingScheduler
from posture_monitor.storage.redis_store import RedisCalibrationStore, RedisEventLogger
from posture_monitor.simulation.devices import (
    AlwaysActiveSignal,
    LoggingNotifier,
    SimulatedAccelerometer,
    SimulatedFaceDetector
)
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Send log records to the configured file and to stdout"""
    log_file = Path(config.get('logging.file', 'logs/posture_monitor.log'))
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=config.get('logging.level', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


class PostureMonitor:
    """Main orchestrator for a posture monitoring session.

    Owns the collaborators and runs the sampling scheduler as a named asyncio
    task until shutdown is requested.

    Attributes:
        calibration_store: Redis-backed baseline store
        event_logger: Redis-backed posture event log
        scheduler: The sampling loop
        tasks: Running asyncio tasks
    """

    def __init__(self):
        """Initialize the monitor with all components."""
        logger.info("Initializing PostureMonitor...")

        self.accelerometer = SimulatedAccelerometer()
        self.face_detector = SimulatedFaceDetector()
        self.notifier = LoggingNotifier()

        self.calibration_store = RedisCalibrationStore()
        self.event_logger = RedisEventLogger()

        self.scheduler = SamplingScheduler(
            tilt_estimator=TiltEstimator(self.accelerometer),
            distance_probe=DistanceProbe(self.face_detector),
            activity_signal=AlwaysActiveSignal(),
            notifier=self.notifier,
            scoring_engine=ScoringEngine(),
            controller=EscalationController(),
            calibration_store=self.calibration_store,
            event_logger=self.event_logger
        )

        self.tasks = []
        self.shutdown_event = asyncio.Event()

        logger.info("PostureMonitor initialized successfully")

    async def start_scheduler(self) -> None:
        """Start the sampling loop as an independent task"""
        scheduler_task = asyncio.create_task(self.scheduler.run(), name="sampling_scheduler")
        self.tasks.append(scheduler_task)
        logger.info("Sampling scheduler started")

    async def shutdown(self) -> None:
        """Cancel running tasks and close connections."""
        logger.info("Shutting down PostureMonitor...")

        self.shutdown_event.set()

        for task in self.tasks:
            if not task.done():
                task.cancel()

        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)

        await self.calibration_store.close()
        await self.event_logger.close()

        logger.info("PostureMonitor shutdown complete")

    async def run(self, duration: Optional[float] = None) -> None:
        """Run the monitoring session.

        Args:
            duration: Stop after this many seconds; run until shutdown if None
        """
        try:
            logger.info("=" * 60)
            logger.info("Starting Posture Monitor")
            logger.info("=" * 60)

            await self.start_scheduler()

            if duration is None:
                await self.shutdown_event.wait()
            else:
                try:
                    await asyncio.wait_for(self.shutdown_event.wait(), timeout=duration)
                except asyncio.TimeoutError:
                    logger.info(f"Session duration of {duration}s reached")

        except Exception as e:
            logger.error(f"Fatal error in main loop: {e}", exc_info=True)
        finally:
            await self.shutdown()


def setup_signal_handlers(monitor: PostureMonitor) -> None:
    """Stop the monitor on SIGINT/SIGTERM"""
    loop = asyncio.get_running_loop()

    def signal_handler(signum):
        logger.info(f"Received signal {signum}")
        monitor.shutdown_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, signal_handler, signum)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(signum, lambda s, f: signal_handler(s))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Adaptive posture monitor")
    parser.add_argument(
        "--duration", type=float, default=None,
        help="Stop after this many seconds (default: run until interrupted)"
    )
    return parser.parse_args(argv)


async def main_async(argv=None) -> None:
    """Async main entry point."""
    args = parse_args(argv)

    config.validate()

    monitor = PostureMonitor()
    setup_signal_handlers(monitor)

    await monitor.run(duration=args.duration)


def main() -> None:
    """Main entry point."""
    try:
        configure_logging()
        asyncio.run(main_async())
    except KeyboardInterrupt:
        logger.info("Application terminated by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
