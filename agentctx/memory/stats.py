"""Running compression statistics."""

from __future__ import annotations

import threading

from .types import CompressionStatsSnapshot


class CompressionStats:
    """Append-only accumulator of compaction outcomes.

    Owned by whoever orchestrates compaction calls and safe to share between
    compactors running on different threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_compressions = 0
        self._average_compression_ratio = 0.0

    def record(self, compression_ratio: float) -> None:
        """Fold one call's ratio into the running average."""
        with self._lock:
            self._total_compressions += 1
            n = self._total_compressions
            self._average_compression_ratio = (
                self._average_compression_ratio * (n - 1) + compression_ratio
            ) / n

    def snapshot(self) -> CompressionStatsSnapshot:
        with self._lock:
            return CompressionStatsSnapshot(
                total_compressions=self._total_compressions,
                average_compression_ratio=self._average_compression_ratio,
            )
