#!/usr/bin/env python3
"""Simple demo of the posture monitoring loop without Redis.

Runs a handful of sampling cycles against simulated sensors, with short
delays, first for an upright user and then for a slouching one.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from posture_monitor.models.results import Baseline
from posture_monitor.sensing.tilt import TiltEstimator
from posture_monitor.sensing.distance import DistanceProbe
from posture_monitor.scoring.scoring_engine import ScoringEngine, feedback_message
from posture_monitor.control.escalation import EscalationController
from posture_monitor.scheduler.sampling_scheduler import SamplingScheduler
from posture_monitor.simulation.devices import (
    AlwaysActiveSignal,
    LoggingNotifier,
    SimulatedAccelerometer,
    SimulatedFaceDetector
)


async def run_phase(label: str, target_tilt: float, face_distance: float, cycles: int = 6):
    """Run a few cycles for one simulated posture."""
    print(f"\n{label} (tilt ~{target_tilt} deg, distance ~{face_distance})")
    print("-" * 60)

    baseline = Baseline.default()
    accelerometer = SimulatedAccelerometer(target_tilt=target_tilt, seed=7)
    detector = SimulatedFaceDetector(face_distance=face_distance, latency=0.01, miss_rate=0.3, seed=7)
    notifier = LoggingNotifier(overlay_duration=0.2)

    scheduler = SamplingScheduler(
        tilt_estimator=TiltEstimator(accelerometer, read_timeout=0.5),
        distance_probe=DistanceProbe(detector, attempt_timeout=0.05, retry_delay=0.01),
        activity_signal=AlwaysActiveSignal(),
        notifier=notifier,
        scoring_engine=ScoringEngine(),
        controller=EscalationController(initial_delay=0.05, max_delay=0.4),
        baseline=baseline
    )

    for i in range(cycles):
        result = await scheduler.run_cycle(baseline)
        sample = result.sample
        tilt = f"{sample.tilt:.1f}" if sample.has_tilt else "--"
        distance = f"{sample.distance:.2f}" if sample.has_distance else "--"
        message = feedback_message(sample.tilt, sample.distance, result.score, baseline)
        print(f"  Cycle {i + 1}: tilt={tilt:>5} distance={distance:>5} "
              f"score={result.score:3d} level={result.level.name:<8} "
              f"notify={notifier.presented[-1].name:<8} "
              f"next={scheduler.controller.current_delay:.2f}s  {message}")
        await asyncio.sleep(scheduler.controller.current_delay)


async def demo_pipeline():
    print("=" * 60)
    print("Posture Monitoring Loop Demo")
    print("=" * 60)

    await run_phase("Upright user", target_tilt=72.0, face_distance=0.8)
    await run_phase("Slouching user", target_tilt=20.0, face_distance=0.3)

    print("\n" + "=" * 60)
    print("Demo complete")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(demo_pipeline())
