"""
Core data structures for draft room synchronization.

These dataclasses describe what the draft room feed returns, how a failure
is classified, and the per-league sync status that drives the displayed
connection state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .. import config


class SyncErrorCode(str, Enum):
    """Structured error codes reported by the draft room feed."""

    TIMEOUT = 'TIMEOUT'
    NETWORK_ERROR = 'NETWORK_ERROR'
    RATE_LIMITED = 'RATE_LIMITED'
    SCRAPE_ERROR = 'SCRAPE_ERROR'
    PARSE_ERROR = 'PARSE_ERROR'
    UNAUTHORIZED = 'UNAUTHORIZED'
    LEAGUE_NOT_FOUND = 'LEAGUE_NOT_FOUND'
    VALIDATION_ERROR = 'VALIDATION_ERROR'


class FailureType(str, Enum):
    """Whether a failure is expected to clear up on its own."""

    TRANSIENT = 'transient'
    PERSISTENT = 'persistent'
    NONE = 'none'


class ConnectionState(str, Enum):
    """Connection state shown to the user, derived from a SyncStatus."""

    CONNECTED = 'connected'
    RECONNECTING = 'reconnecting'
    DISCONNECTED = 'disconnected'
    MANUAL = 'manual'


class FeedError(Exception):
    """Failure reported by the draft room feed."""

    def __init__(
        self,
        message: str,
        code: Optional[SyncErrorCode] = None,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.retry_after = retry_after


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying a sync failure."""

    failure_type: FailureType
    should_retry: bool
    retry_delay_ms: int
    display_message: str
    error_code: Optional[SyncErrorCode] = None

    def to_dict(self) -> dict:
        return {
            'failure_type': self.failure_type.value,
            'should_retry': self.should_retry,
            'retry_delay_ms': self.retry_delay_ms,
            'display_message': self.display_message,
            'error_code': self.error_code.value if self.error_code else None,
        }


@dataclass
class SyncStatus:
    """Sync health for a single league."""

    is_connected: bool = False
    is_syncing: bool = False
    is_manual_mode: bool = False
    failure_count: int = 0
    failure_type: FailureType = FailureType.NONE
    error: Optional[str] = None
    error_code: Optional[SyncErrorCode] = None
    last_sync: Optional[datetime] = None
    last_failure_timestamp: Optional[datetime] = None

    @property
    def connection_state(self) -> ConnectionState:
        return get_connection_state(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'is_connected': self.is_connected,
            'is_syncing': self.is_syncing,
            'is_manual_mode': self.is_manual_mode,
            'failure_count': self.failure_count,
            'failure_type': self.failure_type.value,
            'error': self.error,
            'error_code': self.error_code.value if self.error_code else None,
            'last_sync': self.last_sync.isoformat() if self.last_sync else None,
            'last_failure_timestamp': (
                self.last_failure_timestamp.isoformat()
                if self.last_failure_timestamp else None
            ),
            'connection_state': self.connection_state.value,
        }


def get_connection_state(status: SyncStatus) -> ConnectionState:
    """
    Derive the displayed connection state from a sync status.

    Priority: manual > connected > reconnecting > disconnected.

    Args:
        status: Current sync status for a league

    Returns:
        ConnectionState for display
    """
    if status.is_manual_mode:
        return ConnectionState.MANUAL

    if status.is_connected and status.failure_count == 0:
        return ConnectionState.CONNECTED

    if 1 <= status.failure_count < config.MANUAL_MODE_FAILURE_THRESHOLD:
        return ConnectionState.RECONNECTING

    # 3+ failures, or never connected
    return ConnectionState.DISCONNECTED


@dataclass(frozen=True)
class DraftPick:
    """A completed pick as reported by the draft room feed."""

    player_id: str
    player_name: str
    team: str
    auction_price: int
    positions: tuple = ()

    @classmethod
    def from_dict(cls, data: dict) -> 'DraftPick':
        """Create DraftPick from a feed dictionary."""
        positions = data.get('positions')
        if not positions:
            position = data.get('position')
            positions = [position] if position else []
        elif isinstance(positions, str):
            positions = [p.strip() for p in positions.split(',') if p.strip()]

        return cls(
            player_id=str(data['playerId']),
            player_name=data.get('playerName', 'Unknown Player'),
            team=data.get('team', 'unknown'),
            auction_price=int(data['auctionPrice']),
            positions=tuple(positions)
        )


@dataclass(frozen=True)
class AuctionInfo:
    """Auction metadata reported alongside the picks."""

    auction_id: str
    total_teams: int
    roster_size: int
    budget: int

    @classmethod
    def from_dict(cls, data: dict) -> 'AuctionInfo':
        return cls(
            auction_id=str(data.get('auctionId', '')),
            total_teams=int(data.get('totalTeams', 0)),
            roster_size=int(data.get('rosterSize', 0)),
            budget=int(data.get('budget', 0))
        )


@dataclass
class SyncResult:
    """Successful response from the draft room feed."""

    picks: List[DraftPick]
    auction_info: Optional[AuctionInfo] = None
    sync_timestamp: Optional[datetime] = None


@dataclass
class SyncEvent:
    """Notification emitted by the orchestrator."""

    name: str
    league_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    emitted_at: datetime = field(default_factory=datetime.now)


# Event names
CAUGHT_UP = 'caught-up'
SYNC_TIMEOUT_WARNING = 'sync-timeout-warning'
MANUAL_MODE_ENABLED = 'manual-mode-enabled'
CONNECTION_RESTORED = 'connection-restored'
