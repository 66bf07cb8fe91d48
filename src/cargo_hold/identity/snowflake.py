"""Snowflake-style 64-bit id generation and prefixed external ids.

Layout of a generated key, most significant bit first::

    | 1 bit | 41 bits                  | 5 bits        | 5 bits    | 12 bits  |
    |   0   | ms since EPOCH           | datacenter id | worker id | sequence |

Keys from one generator are strictly increasing. Keys from different
generators never collide as long as every running process is configured with
its own (worker_id, datacenter_id) pair.
"""

from __future__ import annotations

import secrets
import string
import threading
import time
from collections.abc import Callable
from typing import NamedTuple

import structlog

from cargo_hold.common.errors import ClockRegressionError, ConfigError

logger = structlog.get_logger()

EPOCH = 1_640_995_200_000  # 2022-01-01T00:00:00Z in milliseconds

WORKER_ID_BITS = 5
DATACENTER_ID_BITS = 5
SEQUENCE_BITS = 12

MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_DATACENTER_ID = (1 << DATACENTER_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1

WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS

ENTITY_SUFFIX_LENGTH = 20
LINK_KEY_LENGTH = 16

_ALPHANUMERIC = string.ascii_letters + string.digits


def wall_clock_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


class SnowflakeParts(NamedTuple):
    timestamp_ms: int
    datacenter_id: int
    worker_id: int
    sequence: int


class SnowflakeGenerator:
    """Thread-safe generator of time-ordered 64-bit keys.

    One instance is created at startup and shared by every request handler in
    the process. ``clock`` returns the current time in milliseconds and can be
    swapped out in tests.
    """

    def __init__(
        self,
        worker_id: int,
        datacenter_id: int,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ConfigError(f"Worker ID must be between 0 and {MAX_WORKER_ID}")
        if not 0 <= datacenter_id <= MAX_DATACENTER_ID:
            raise ConfigError(f"Datacenter ID must be between 0 and {MAX_DATACENTER_ID}")

        self.worker_id = worker_id
        self.datacenter_id = datacenter_id
        self.sequence = 0
        self.last_timestamp = 0
        self._clock = clock
        self._lock = threading.Lock()

    def generate(self) -> int:
        """Return the next key.

        Raises:
            ClockRegressionError: the clock reads earlier than the last issued key.
        """
        # The clock read, regression check and state update must not interleave
        # with another caller, so the whole sequence runs under the lock.
        with self._lock:
            timestamp = self._clock()

            if timestamp < self.last_timestamp:
                logger.error(
                    "clock_regression",
                    last_timestamp=self.last_timestamp,
                    current_timestamp=timestamp,
                    worker_id=self.worker_id,
                    datacenter_id=self.datacenter_id,
                )
                raise ClockRegressionError(self.last_timestamp, timestamp)

            if timestamp == self.last_timestamp:
                self.sequence = (self.sequence + 1) & MAX_SEQUENCE
                if self.sequence == 0:
                    timestamp = self._wait_next_millis(self.last_timestamp)
            else:
                self.sequence = 0

            self.last_timestamp = timestamp

            return (
                ((timestamp - EPOCH) << TIMESTAMP_SHIFT)
                | (self.datacenter_id << DATACENTER_ID_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | self.sequence
            )

    def _wait_next_millis(self, last_timestamp: int) -> int:
        timestamp = self._clock()
        while timestamp <= last_timestamp:
            timestamp = self._clock()
        return timestamp


def decompose(key: int) -> SnowflakeParts:
    """Split a key back into its bit fields."""
    return SnowflakeParts(
        timestamp_ms=(key >> TIMESTAMP_SHIFT) + EPOCH,
        datacenter_id=(key >> DATACENTER_ID_SHIFT) & MAX_DATACENTER_ID,
        worker_id=(key >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
        sequence=key & MAX_SEQUENCE,
    )


def encode_key(key: int) -> str:
    """Lowercase hex of the key, no padding."""
    return format(key, "x")


def random_suffix(length: int = ENTITY_SUFFIX_LENGTH) -> str:
    """Random case-sensitive alphanumeric string."""
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def generate_prefixed_id(prefix: str, key: int, suffix_length: int = ENTITY_SUFFIX_LENGTH) -> str:
    """Build an external id such as ``file_18f3a2c40001000abcDEF...``."""
    return f"{prefix}_{encode_key(key)}{random_suffix(suffix_length)}"
