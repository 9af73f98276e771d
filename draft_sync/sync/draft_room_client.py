"""
HTTP client for the draft room sync feed.

One call per sync: the client never retries on its own. Failures are
raised (FeedError or a requests exception) for the orchestrator to
classify and schedule.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

import requests

from .. import config
from .sync_types import AuctionInfo, DraftPick, FeedError, SyncErrorCode, SyncResult

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Unparseable syncTimestamp: {value}")
        return None


def _error_code(value) -> Optional[SyncErrorCode]:
    if not value:
        return None
    try:
        return SyncErrorCode(value)
    except ValueError:
        logger.warning(f"Unknown feed error code: {value}")
        return None


class DraftRoomClient:
    """Client for the draft room sync endpoint."""

    def __init__(
        self,
        base_url: str = config.DRAFT_ROOM_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = config.DRAFT_ROOM_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize draft room client.

        Args:
            base_url: Feed base URL
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            session: Session to use (a new one by default)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        # Session for connection pooling
        self.session = session or requests.Session()
        if api_key:
            self.session.headers['Authorization'] = f'Bearer {api_key}'

    def sync(
        self,
        room_id: str,
        league_id: str,
        last_sync_timestamp: Optional[datetime] = None
    ) -> SyncResult:
        """
        Fetch completed picks from the draft room.

        Args:
            room_id: Draft room (auction) identifier
            league_id: League being synced
            last_sync_timestamp: Timestamp from the previous successful sync

        Returns:
            SyncResult with picks in feed order

        Raises:
            FeedError: Feed returned an error or an unreadable body
            requests.RequestException: Transport failure
        """
        payload: Dict = {'auctionId': room_id, 'leagueId': league_id}
        if last_sync_timestamp is not None:
            payload['lastSyncTimestamp'] = last_sync_timestamp.isoformat()

        endpoint = f"{self.base_url}/sync"
        logger.debug(f"POST {endpoint} (room {room_id}, league {league_id})")

        response = self.session.post(endpoint, json=payload, timeout=self.timeout)

        try:
            body = response.json()
        except ValueError:
            body = None

        if not 200 <= response.status_code < 300:
            body = body if isinstance(body, dict) else {}
            raise FeedError(
                body.get('error') or f"Draft room returned HTTP {response.status_code}",
                code=_error_code(body.get('code')),
                status_code=response.status_code,
                retry_after=body.get('retryAfter')
            )

        if not isinstance(body, dict):
            raise FeedError('Draft room returned an unreadable response', code=SyncErrorCode.PARSE_ERROR)

        if body.get('success') is False:
            raise FeedError(
                body.get('error') or 'Draft room sync failed',
                code=_error_code(body.get('code')),
                retry_after=body.get('retryAfter')
            )

        try:
            picks = [DraftPick.from_dict(p) for p in body.get('picks') or []]
        except (KeyError, TypeError, ValueError) as e:
            raise FeedError(f'Malformed pick in draft room response: {e}', code=SyncErrorCode.PARSE_ERROR) from e

        auction_info = body.get('auctionInfo')

        logger.debug(f"Room {room_id}: received {len(picks)} pick(s)")

        return SyncResult(
            picks=picks,
            auction_info=AuctionInfo.from_dict(auction_info) if auction_info else None,
            sync_timestamp=_parse_timestamp(body.get('syncTimestamp'))
        )

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
