"""
Sync orchestrator for live drafts.

The SyncOrchestrator coordinates the sync loop for every league:
- Polls the draft room feed on a timer and on demand
- Runs at most one sync per league at a time
- Appends new picks to the ledger in feed order, skipping duplicates
- Records success/failure on the status tracker
- Schedules retries with backoff, or stops on persistent errors
- Notifies the inflation recalculator when the ledger changes
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .. import config
from ..draft.ledger import LedgerRepository
from ..draft.projections import InMemoryProjectionProvider, resolve_pick
from .cancellation import CancellationScope
from .error_classifier import classify_error
from .status_tracker import SyncStatusTracker
from .sync_types import (
    CAUGHT_UP,
    CONNECTION_RESTORED,
    MANUAL_MODE_ENABLED,
    SYNC_TIMEOUT_WARNING,
    AuctionInfo,
    ErrorClassification,
    FeedError,
    SyncEvent,
    SyncStatus,
)

logger = logging.getLogger(__name__)

SyncListener = Callable[[SyncEvent], None]

# Outcome statuses
SUCCESS = 'success'
FAILED = 'failed'
SKIPPED = 'skipped'
NOT_CONFIGURED = 'not_configured'


@dataclass
class SyncOutcome:
    """Result of one sync cycle."""

    league_id: str
    status: str
    applied: int = 0
    classification: Optional[ErrorClassification] = None
    sync_status: Optional[SyncStatus] = None


@dataclass
class LeagueSync:
    """Sync settings and timers for one league."""

    league_id: str
    room_id: Optional[str]
    sync_interval_minutes: float
    scope: CancellationScope
    running: bool = False
    halted: bool = False  # set by persistent errors, cleared by trigger_sync
    next_timer: Optional[object] = None
    last_sync_timestamp: Optional[datetime] = None
    auction_info: Optional[AuctionInfo] = None
    lock: threading.Lock = field(default_factory=threading.Lock)


class SyncOrchestrator:
    """Keeps each league's ledger in step with the draft room feed."""

    def __init__(
        self,
        tracker: SyncStatusTracker,
        ledgers: LedgerRepository,
        projections: InMemoryProjectionProvider,
        feed,
        recalculator=None,
        scope_factory: Callable[[str], CancellationScope] = CancellationScope,
        soft_timeout_seconds: float = config.SYNC_SOFT_TIMEOUT_SECONDS,
        catch_up_threshold: int = config.CATCH_UP_NOTIFICATION_THRESHOLD
    ):
        """
        Initialize orchestrator.

        Args:
            tracker: Shared sync status tracker
            ledgers: Shared ledger repository
            projections: Shared projection provider
            feed: Object with sync(room_id, league_id, last_sync_timestamp)
            recalculator: Optional object with notify(league_id)
            scope_factory: Builds a cancellation scope for a league
            soft_timeout_seconds: Warn when a sync runs longer than this
            catch_up_threshold: Applied picks that count as a catch-up
        """
        self.tracker = tracker
        self.ledgers = ledgers
        self.projections = projections
        self.feed = feed
        self.recalculator = recalculator
        self.scope_factory = scope_factory
        self.soft_timeout_seconds = soft_timeout_seconds
        self.catch_up_threshold = catch_up_threshold

        self._leagues: Dict[str, LeagueSync] = {}
        self._listeners: List[SyncListener] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_league(
        self,
        league_id: str,
        room_id: Optional[str] = None,
        sync_interval_minutes: float = config.DEFAULT_SYNC_INTERVAL_MINUTES
    ) -> None:
        """Register (or re-register) a league's feed settings."""
        with self._lock:
            existing = self._leagues.get(league_id)
        if existing is not None:
            self.stop(league_id)

        league = LeagueSync(
            league_id=league_id,
            room_id=room_id,
            sync_interval_minutes=sync_interval_minutes,
            scope=self.scope_factory(league_id)
        )
        with self._lock:
            self._leagues[league_id] = league

        logger.info(
            f"Registered league {league_id} "
            f"(room {room_id or 'not configured'}, every {sync_interval_minutes} min)"
        )

    def unregister_league(self, league_id: str) -> None:
        self.stop(league_id)
        with self._lock:
            self._leagues.pop(league_id, None)

    def is_registered(self, league_id: str) -> bool:
        with self._lock:
            return league_id in self._leagues

    def _league(self, league_id: str) -> LeagueSync:
        with self._lock:
            league = self._leagues.get(league_id)
        if league is None:
            raise KeyError(f"League {league_id} is not registered for sync")
        return league

    def _is_current(self, league: LeagueSync) -> bool:
        """False once the league has been unregistered (or re-registered)."""
        with self._lock:
            return self._leagues.get(league.league_id) is league

    def last_auction_info(self, league_id: str) -> Optional[AuctionInfo]:
        return self._league(league_id).auction_info

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_listener(self, listener: SyncListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _emit(self, name: str, league_id: str, **payload) -> None:
        event = SyncEvent(name=name, league_id=league_id, payload=payload)
        with self._lock:
            listeners = list(self._listeners)

        logger.debug(f"League {league_id}: event {name} {payload}")
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Sync listener failed on {name}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, league_id: str) -> None:
        """Start automatic polling, beginning with an immediate sync."""
        league = self._league(league_id)
        if league.scope.cancelled:
            league.scope = self.scope_factory(league_id)
        league.running = True
        league.halted = False
        self._schedule(league, 0)
        logger.info(f"Started sync for league {league_id}")

    def stop(self, league_id: str) -> None:
        """Stop automatic polling and cancel pending timers. Idempotent."""
        with self._lock:
            league = self._leagues.get(league_id)
        if league is None:
            return

        was_running = league.running
        league.running = False
        league.next_timer = None
        league.scope.cancel_all()
        league.scope = self.scope_factory(league_id)

        if was_running:
            logger.info(f"Stopped sync for league {league_id}")

    def shutdown(self) -> None:
        """Stop every league."""
        with self._lock:
            league_ids = list(self._leagues)
        for league_id in league_ids:
            self.stop(league_id)
        logger.info(f"Sync orchestrator shut down ({len(league_ids)} league(s))")

    def _schedule(self, league: LeagueSync, delay_seconds: float) -> None:
        if league.next_timer is not None:
            league.scope.cancel(league.next_timer)
        league.next_timer = league.scope.schedule(delay_seconds, self._run_scheduled, league.league_id)

    def _run_scheduled(self, league_id: str) -> None:
        with self._lock:
            league = self._leagues.get(league_id)
        if league is None or not league.running:
            return
        league.next_timer = None
        self.sync_league(league_id)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def trigger_sync(self, league_id: str) -> SyncOutcome:
        """
        Sync right now, on demand.

        Also clears a halt caused by a persistent error, so a running
        league resumes polling if this sync succeeds.
        """
        league = self._league(league_id)
        league.halted = False
        return self.sync_league(league_id)

    def sync_league(self, league_id: str) -> SyncOutcome:
        """
        Run one sync cycle for a league.

        Never raises for feed failures; they are classified and recorded.

        Args:
            league_id: League to sync

        Returns:
            SyncOutcome describing what happened
        """
        league = self._league(league_id)

        if not league.room_id:
            logger.warning(f"League {league_id}: no draft room configured, skipping sync")
            status = self.tracker.mark_unconfigured(league_id)
            return SyncOutcome(league_id, NOT_CONFIGURED, sync_status=status)

        if not league.lock.acquire(blocking=False):
            logger.debug(f"League {league_id}: sync already in flight, skipping")
            return SyncOutcome(league_id, SKIPPED)

        soft_timer = None
        try:
            previous = self.tracker.mark_syncing(league_id)
            started = time.monotonic()
            soft_timer = league.scope.schedule(
                self.soft_timeout_seconds, self._on_soft_timeout, league_id, started
            )

            try:
                result = self.feed.sync(league.room_id, league_id, league.last_sync_timestamp)
                applied = self._apply_result(league, result)
            except Exception as e:
                if not self._is_current(league):
                    logger.info(f"League {league_id}: removed during sync, discarding error: {e}")
                    return SyncOutcome(league_id, SKIPPED)
                return self._handle_failure(league, previous, e)

            if not self._is_current(league):
                logger.info(f"League {league_id}: removed during sync, discarding result")
                return SyncOutcome(league_id, SKIPPED, applied=applied)

            status = self.tracker.record_success(league_id)

            if applied >= self.catch_up_threshold:
                logger.info(f"League {league_id}: caught up on {applied} picks")
                self._emit(CAUGHT_UP, league_id, count=applied)

            if previous.failure_count > 0 or (previous.is_manual_mode and not previous.is_connected):
                logger.info(f"League {league_id}: connection restored")
                self._emit(CONNECTION_RESTORED, league_id)

            if applied and self.recalculator is not None:
                self.recalculator.notify(league_id)

            league.last_sync_timestamp = result.sync_timestamp or datetime.now()
            if result.auction_info is not None:
                league.auction_info = result.auction_info

            logger.debug(
                f"League {league_id}: sync ok in {time.monotonic() - started:.2f}s, "
                f"{applied} new pick(s)"
            )

            if league.running and not league.halted:
                self._schedule(league, league.sync_interval_minutes * 60)

            return SyncOutcome(league_id, SUCCESS, applied=applied, sync_status=status)

        finally:
            if soft_timer is not None:
                league.scope.cancel(soft_timer)
            league.lock.release()

    def _apply_result(self, league: LeagueSync, result) -> int:
        ledger = self.ledgers.get(league.league_id)
        projections_df = self.projections.snapshot(league.league_id)

        # Each projection row backs at most one drafted player
        claimed = set(ledger.drafted_projection_ids)
        players = []
        for pick in result.picks:
            if str(pick.player_id) in ledger:
                continue
            player = resolve_pick(pick, projections_df, claimed_ids=claimed)
            if player.projection_id is not None:
                claimed.add(player.projection_id)
            players.append(player)

        applied = self.ledgers.apply_picks(league.league_id, players)
        return len(applied)

    def _handle_failure(self, league: LeagueSync, previous: SyncStatus, error: Exception) -> SyncOutcome:
        league_id = league.league_id
        classification = classify_error(error, previous.failure_count)

        status = self.tracker.record_failure(
            league_id,
            classification.failure_type,
            classification.display_message,
            classification.error_code
        )

        logger.error(
            f"League {league_id}: sync failed ({classification.failure_type.value}, "
            f"failure #{status.failure_count}): {error}"
        )

        if status.is_manual_mode and not previous.is_manual_mode:
            self._emit(
                MANUAL_MODE_ENABLED,
                league_id,
                failure_count=status.failure_count,
                failure_type=classification.failure_type.value
            )

        if classification.should_retry:
            delay_ms = classification.retry_delay_ms
            if isinstance(error, FeedError) and error.retry_after:
                delay_ms = max(delay_ms, int(error.retry_after * 1000))
            if league.running and not league.halted:
                logger.info(f"League {league_id}: retrying in {delay_ms / 1000:.0f}s")
                self._schedule(league, delay_ms / 1000)
        else:
            league.halted = True
            logger.warning(
                f"League {league_id}: automatic sync halted until a manual retry "
                f"({classification.display_message})"
            )

        return SyncOutcome(league_id, FAILED, classification=classification, sync_status=status)

    def _on_soft_timeout(self, league_id: str, started: float) -> None:
        elapsed = time.monotonic() - started
        logger.warning(f"League {league_id}: sync still running after {elapsed:.1f}s")
        self._emit(SYNC_TIMEOUT_WARNING, league_id, elapsed_seconds=round(elapsed, 1))
