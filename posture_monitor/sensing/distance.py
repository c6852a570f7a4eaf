"""Distance Probe

This module wraps the single-shot face distance detector with a per-attempt
deadline and bounded retries. Face detection is bursty (head movement,
occlusion), so one missed frame is not treated as "user not present".
"""

import logging
import asyncio
from typing import Optional

from posture_monitor.models.interfaces import DistanceDetector, DetectorUnavailableError
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


class DistanceProbe:
    """Reads the face distance ratio with retries and timeouts.

    Attributes:
        detector: Single-shot distance detector
        max_attempts: Attempts per read (5)
        attempt_timeout: Deadline for each attempt in seconds (3.0)
        retry_delay: Pause between failed attempts in seconds (0.5)
    """

    def __init__(
        self,
        detector: DistanceDetector,
        max_attempts: Optional[int] = None,
        attempt_timeout: Optional[float] = None,
        retry_delay: Optional[float] = None
    ):
        self.detector = detector
        self.max_attempts = (
            max_attempts if max_attempts is not None
            else config.get('distance.max_attempts', 5)
        )
        self.attempt_timeout = (
            attempt_timeout if attempt_timeout is not None
            else config.get('distance.attempt_timeout', 3.0)
        )
        self.retry_delay = (
            retry_delay if retry_delay is not None
            else config.get('distance.retry_delay', 0.5)
        )

        logger.info(f"DistanceProbe initialized with max_attempts={self.max_attempts}, "
                    f"attempt_timeout={self.attempt_timeout}s, retry_delay={self.retry_delay}s")

    @staticmethod
    def _resolve(future: asyncio.Future, distance: float) -> None:
        # The deadline may already have claimed this attempt
        if not future.done():
            future.set_result(distance)

    async def _attempt(self, attempt: int) -> Optional[float]:
        """Run one detection against its deadline.

        Raises:
            DetectorUnavailableError: If the detector cannot be bound
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def on_detected(distance: float) -> None:
            loop.call_soon_threadsafe(self._resolve, future, distance)

        self.detector.detect_once(on_detected)

        try:
            distance = await asyncio.wait_for(future, timeout=self.attempt_timeout)
            logger.debug(f"Face detected on attempt {attempt}: distance ratio {distance:.3f}")
            return distance
        except asyncio.TimeoutError:
            logger.debug(f"No face detected on attempt {attempt}/{self.max_attempts}")
            return None

    async def read_distance(self) -> Optional[float]:
        """Read the face distance ratio.

        Returns:
            Distance ratio from the first successful attempt, or None after
            max_attempts failures or if the camera cannot be bound
        """
        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    distance = await self._attempt(attempt)
                except DetectorUnavailableError as e:
                    logger.error(f"Face detector unavailable: {e}")
                    return None

                if distance is not None:
                    return distance

                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)

            logger.warning(f"No face detected after {self.max_attempts} attempts")
            return None
        finally:
            self.release()

    def release(self) -> None:
        """Release the detector's camera binding"""
        try:
            self.detector.release()
        except Exception as e:
            logger.warning(f"Error releasing face detector: {e}")
