"""Redis-backed calibration store and posture event log

The calibration baseline is kept in a Redis hash. Posture events are appended
to a Redis Stream, one entry per scored cycle, using the same columns as the
CSV export (timestamp, posture_status, score, tilt_angle, face_distance).
"""

import logging
import time
from typing import Dict, Optional

import redis.asyncio as redis

from posture_monitor.models.interfaces import CalibrationStore, EventLogger
from posture_monitor.models.results import Baseline, DataSummary, PostureEvent
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


BASELINE_FIELDS = ('good_tilt', 'good_distance', 'bad_tilt', 'bad_distance')
NULL_VALUE = "NULL"


class StorageError(Exception):
    """Exception raised for malformed data read back from Redis"""
    pass


def default_baseline_from_config() -> Baseline:
    """Default baseline, with any values overridden in config"""
    overrides = config.get('scoring.default_baseline', {}) or {}
    defaults = Baseline.default()
    return Baseline(**{
        name: float(overrides.get(name, getattr(defaults, name)))
        for name in BASELINE_FIELDS
    })


class _RedisBacked:
    """Lazily connected Redis client shared by the store and the logger"""

    def __init__(self, redis_url: Optional[str] = None, redis_client: Optional[redis.Redis] = None):
        self.redis_url = redis_url or config.get('redis.url', 'redis://localhost:6379')
        self.redis_client: Optional[redis.Redis] = redis_client

    def _client(self) -> redis.Redis:
        if self.redis_client is None:
            self.redis_client = redis.from_url(self.redis_url, decode_responses=True)
            logger.info(f"Connected to Redis at {self.redis_url}")
        return self.redis_client

    async def close(self) -> None:
        """Close the Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None


class RedisCalibrationStore(_RedisBacked, CalibrationStore):
    """Stores the personalized baseline in a Redis hash.

    Attributes:
        key: Hash key holding the four baseline fields
        default_baseline: Values used for fields that were never calibrated
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key: Optional[str] = None,
        default_baseline: Optional[Baseline] = None,
        redis_client: Optional[redis.Redis] = None
    ):
        super().__init__(redis_url, redis_client)
        self.key = key or config.get('redis.calibration_key', 'posture:calibration')
        self.default_baseline = default_baseline or default_baseline_from_config()

    async def is_calibrated(self) -> bool:
        values = await self._client().hmget(self.key, list(BASELINE_FIELDS))
        return all(value is not None for value in values)

    async def load_baseline(self) -> Baseline:
        """Load the stored baseline, falling back to defaults per field.

        Raises:
            StorageError: If a stored field is not a number
        """
        stored = await self._client().hgetall(self.key)

        values = {}
        for name in BASELINE_FIELDS:
            raw = stored.get(name)
            if raw is None:
                values[name] = getattr(self.default_baseline, name)
                continue
            try:
                values[name] = float(raw)
            except ValueError:
                raise StorageError(f"Invalid value for {name} in {self.key}: {raw!r}")

        return Baseline(**values)

    async def save_baseline(self, baseline: Baseline) -> None:
        mapping = {name: getattr(baseline, name) for name in BASELINE_FIELDS}
        await self._client().hset(self.key, mapping=mapping)
        logger.info(f"Saved calibration baseline: {baseline}")


class RedisEventLogger(_RedisBacked, EventLogger):
    """Appends posture events to a capped Redis Stream.

    Attributes:
        stream: Stream key
        maxlen: Approximate cap on stream length
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        stream: Optional[str] = None,
        maxlen: Optional[int] = None,
        redis_client: Optional[redis.Redis] = None
    ):
        super().__init__(redis_url, redis_client)
        self.stream = stream or config.get('redis.event_stream', 'posture_events')
        self.maxlen = maxlen or config.get('redis.event_stream_maxlen', 10000)

    @staticmethod
    def _serialize(event: PostureEvent) -> Dict[str, str]:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(event.timestamp))
        return {
            'timestamp': timestamp,
            'posture_status': "GOOD" if event.is_good_posture else "BAD",
            'score': str(event.score),
            'tilt_angle': NULL_VALUE if event.tilt is None else str(event.tilt),
            'face_distance': NULL_VALUE if event.distance is None else str(event.distance),
        }

    async def record(self, event: PostureEvent) -> None:
        """Append one event to the stream"""
        fields = self._serialize(event)
        await self._client().xadd(self.stream, fields, maxlen=self.maxlen, approximate=True)
        logger.debug(f"Logged: {fields['posture_status']} (score: {event.score})")

    async def summary(self) -> DataSummary:
        """Count GOOD and BAD records currently in the stream"""
        entries = await self._client().xrange(self.stream)

        good_count = 0
        bad_count = 0
        for _, fields in entries:
            status = fields.get('posture_status')
            if status == "GOOD":
                good_count += 1
            elif status == "BAD":
                bad_count += 1

        return DataSummary(
            total_records=good_count + bad_count,
            good_posture_count=good_count,
            bad_posture_count=bad_count
        )
