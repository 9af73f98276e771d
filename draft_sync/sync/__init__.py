"""
Draft room synchronization subsystem.

Polls the draft room feed, classifies failures, tracks per-league
connection health and falls back to manual mode when syncing keeps failing.
"""

from .sync_types import (
    ConnectionState,
    DraftPick,
    ErrorClassification,
    FailureType,
    FeedError,
    SyncErrorCode,
    SyncEvent,
    SyncResult,
    SyncStatus,
    get_connection_state,
)
from .error_classifier import calculate_retry_delay, classify_error, should_enable_manual_mode
from .status_tracker import SyncStatusTracker
from .cancellation import CancellationScope
from .draft_room_client import DraftRoomClient

__all__ = [
    'ConnectionState',
    'DraftPick',
    'ErrorClassification',
    'FailureType',
    'FeedError',
    'SyncErrorCode',
    'SyncEvent',
    'SyncResult',
    'SyncStatus',
    'get_connection_state',
    'calculate_retry_delay',
    'classify_error',
    'should_enable_manual_mode',
    'SyncStatusTracker',
    'CancellationScope',
    'DraftRoomClient',
]
