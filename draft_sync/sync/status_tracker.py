"""
Per-league sync status state machine.

The tracker owns one SyncStatus per league id. Every transition happens
under a single lock, and callers only ever receive copies.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .error_classifier import requires_manual_mode
from .sync_types import ConnectionState, FailureType, SyncErrorCode, SyncStatus

logger = logging.getLogger(__name__)


class SyncStatusTracker:
    """Keyed repository of SyncStatus records."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize tracker.

        Args:
            clock: Returns the current time (injectable for tests)
        """
        self._clock = clock
        self._statuses: Dict[str, SyncStatus] = {}
        self._lock = threading.Lock()

    def _entry(self, league_id: str) -> SyncStatus:
        # Caller holds the lock
        status = self._statuses.get(league_id)
        if status is None:
            status = SyncStatus()
            self._statuses[league_id] = status
        return status

    def get_status(self, league_id: str) -> SyncStatus:
        """Snapshot of a league's status, created with defaults on first access."""
        with self._lock:
            return replace(self._entry(league_id))

    def connection_state(self, league_id: str) -> ConnectionState:
        return self.get_status(league_id).connection_state

    def league_ids(self) -> List[str]:
        with self._lock:
            return list(self._statuses)

    def mark_syncing(self, league_id: str) -> SyncStatus:
        with self._lock:
            status = self._entry(league_id)
            status.is_syncing = True
            return replace(status)

    def record_success(
        self,
        league_id: str,
        sync_time: Optional[datetime] = None
    ) -> SyncStatus:
        """
        Record a successful sync.

        Clears the failure streak and marks the league connected. Manual mode
        is left as it is; only an explicit toggle turns it off.

        Args:
            league_id: League that synced
            sync_time: Time of the sync (defaults to now)

        Returns:
            Snapshot after the transition
        """
        with self._lock:
            status = self._entry(league_id)
            status.failure_count = 0
            status.failure_type = FailureType.NONE
            status.error = None
            status.error_code = None
            status.is_connected = True
            status.is_syncing = False
            status.last_sync = sync_time or self._clock()
            return replace(status)

    def record_failure(
        self,
        league_id: str,
        failure_type: FailureType,
        message: str,
        error_code: Optional[SyncErrorCode] = None
    ) -> SyncStatus:
        """
        Record one failed sync.

        Args:
            league_id: League that failed
            failure_type: Classified failure type
            message: Display message for the failure
            error_code: Machine-readable code, if known

        Returns:
            Snapshot after the transition
        """
        with self._lock:
            status = self._entry(league_id)
            status.failure_count += 1
            status.failure_type = failure_type
            status.error = message
            status.error_code = error_code
            status.is_connected = False
            status.is_syncing = False
            status.last_failure_timestamp = self._clock()

            if not status.is_manual_mode and requires_manual_mode(failure_type, status.failure_count):
                status.is_manual_mode = True
                logger.warning(
                    f"League {league_id}: manual mode enabled after "
                    f"{status.failure_count} failure(s) ({failure_type.value})"
                )

            return replace(status)

    def enable_manual_mode(self, league_id: str) -> SyncStatus:
        with self._lock:
            status = self._entry(league_id)
            status.is_manual_mode = True
            return replace(status)

    def disable_manual_mode(self, league_id: str) -> SyncStatus:
        with self._lock:
            status = self._entry(league_id)
            status.is_manual_mode = False
            return replace(status)

    def mark_unconfigured(self, league_id: str) -> SyncStatus:
        """
        Record that a league has no draft room to sync with.

        The league is disconnected and no longer retrying, so the failure
        streak is cleared. Manual mode and the sync timestamps are kept.
        """
        with self._lock:
            status = self._entry(league_id)
            status.is_connected = False
            status.is_syncing = False
            status.failure_count = 0
            status.failure_type = FailureType.NONE
            status.error = None
            status.error_code = None
            return replace(status)

    def reset(self, league_id: str) -> SyncStatus:
        """Put a league back to default status."""
        with self._lock:
            status = SyncStatus()
            self._statuses[league_id] = status
            return replace(status)

    def remove(self, league_id: str) -> None:
        with self._lock:
            self._statuses.pop(league_id, None)
