"""
Draft sync service.

One DraftSyncService owns the shared repositories (status tracker, ledgers,
projections) and hands them by reference to the orchestrator and the
inflation recalculator. The HTTP API talks only to this class.
"""

import logging
from typing import Iterable, List, Optional, Union

import pandas as pd

from . import config
from .draft.ledger import DraftedPlayer, DraftLedger, LedgerNotFoundError, LedgerRepository, create_roster_slots
from .draft.projections import InMemoryProjectionProvider, PlayerProjection, resolve_pick
from .inflation.inflation_types import InflationState
from .inflation.recalculator import InflationRecalculator
from .inflation.trends import TrendResult
from .sync.cancellation import CancellationScope
from .sync.orchestrator import SyncOrchestrator, SyncOutcome
from .sync.status_tracker import SyncStatusTracker
from .sync.sync_types import ConnectionState, DraftPick, SyncStatus

logger = logging.getLogger(__name__)


class DraftSyncService:
    """Entry point for live draft sync and inflation tracking."""

    def __init__(
        self,
        feed,
        tracker: Optional[SyncStatusTracker] = None,
        ledgers: Optional[LedgerRepository] = None,
        projections: Optional[InMemoryProjectionProvider] = None,
        recalculator: Optional[InflationRecalculator] = None,
        scope_factory=CancellationScope,
        soft_timeout_seconds: float = config.SYNC_SOFT_TIMEOUT_SECONDS
    ):
        """
        Initialize service.

        Args:
            feed: Draft room feed adapter (see DraftRoomClient)
            tracker: Status tracker (new one by default)
            ledgers: Ledger repository (new one by default)
            projections: Projection provider (new one by default)
            recalculator: Inflation recalculator (built from the above by default)
            scope_factory: Cancellation scope factory for the orchestrator
            soft_timeout_seconds: Soft timeout for a single sync
        """
        self.feed = feed
        self.tracker = tracker or SyncStatusTracker()
        self.ledgers = ledgers or LedgerRepository()
        self.projections = projections or InMemoryProjectionProvider()
        self.recalculator = recalculator or InflationRecalculator(self.ledgers, self.projections)
        self.orchestrator = SyncOrchestrator(
            tracker=self.tracker,
            ledgers=self.ledgers,
            projections=self.projections,
            feed=feed,
            recalculator=self.recalculator,
            scope_factory=scope_factory,
            soft_timeout_seconds=soft_timeout_seconds
        )

    def _require_league(self, league_id: str) -> DraftLedger:
        return self.ledgers.get(league_id)

    def initialize_draft(
        self,
        league_id: str,
        projections: Union[pd.DataFrame, Iterable[Union[PlayerProjection, dict]]],
        room_id: Optional[str] = None,
        num_teams: int = config.NUM_TEAMS,
        budget_per_team: int = config.BUDGET_PER_TEAM,
        bench_slots: int = config.BENCH_SLOTS,
        sync_interval_minutes: float = config.DEFAULT_SYNC_INTERVAL_MINUTES
    ) -> DraftLedger:
        """
        Set up a league for a live draft.

        Creates the ledger, loads projections, registers the feed settings
        and computes the pre-draft inflation state.

        Returns:
            The new ledger
        """
        logger.info("=" * 60)
        logger.info(f"INITIALIZING DRAFT FOR LEAGUE {league_id}")
        logger.info("=" * 60)

        ledger = self.ledgers.create(
            league_id,
            initial_budget=num_teams * budget_per_team,
            roster_slots=create_roster_slots(num_teams, bench_slots)
        )
        self.projections.set_projections(league_id, projections)
        self.tracker.reset(league_id)
        self.orchestrator.register_league(league_id, room_id, sync_interval_minutes)
        self.recalculator.recompute_now(league_id)

        return ledger

    def remove_league(self, league_id: str) -> None:
        """Tear down a league: timers, status, ledger, projections and inflation."""
        self._require_league(league_id)
        self.orchestrator.unregister_league(league_id)
        self.tracker.remove(league_id)
        self.ledgers.remove(league_id)
        self.projections.remove(league_id)
        self.recalculator.remove_league(league_id)
        logger.info(f"Removed league {league_id}")

    def start_sync(self, league_id: str) -> None:
        self._require_league(league_id)
        self.orchestrator.start(league_id)

    def stop_sync(self, league_id: str) -> None:
        self._require_league(league_id)
        self.orchestrator.stop(league_id)

    def trigger_sync(self, league_id: str) -> SyncOutcome:
        self._require_league(league_id)
        return self.orchestrator.trigger_sync(league_id)

    def record_manual_pick(self, league_id: str, pick: DraftPick) -> DraftedPlayer:
        """
        Record a pick entered by hand (manual mode).

        Raises:
            LedgerNotFoundError: Unknown league
            DuplicatePlayerError: Player already drafted
            ValueError: Invalid pick (negative price, no player id)
        """
        ledger = self._require_league(league_id)

        if not pick.player_id:
            raise ValueError("Manual pick requires a player id")
        if pick.auction_price < 0:
            raise ValueError(f"Invalid auction price: {pick.auction_price}")

        player = resolve_pick(
            pick,
            self.projections.snapshot(league_id),
            is_manual_entry=True,
            claimed_ids=ledger.drafted_projection_ids
        )
        player = ledger.append(player)

        logger.info(
            f"League {league_id}: manual pick {player.player_name} → "
            f"{player.drafted_by} (${player.purchase_price})"
        )
        self.recalculator.notify(league_id)

        return player

    def enable_manual_mode(self, league_id: str) -> SyncStatus:
        self._require_league(league_id)
        logger.info(f"League {league_id}: manual mode enabled by user")
        return self.tracker.enable_manual_mode(league_id)

    def disable_manual_mode(self, league_id: str) -> SyncStatus:
        self._require_league(league_id)
        logger.info(f"League {league_id}: manual mode disabled by user")
        return self.tracker.disable_manual_mode(league_id)

    def get_sync_status(self, league_id: str) -> SyncStatus:
        self._require_league(league_id)
        return self.tracker.get_status(league_id)

    def get_connection_state(self, league_id: str) -> ConnectionState:
        return self.get_sync_status(league_id).connection_state

    def get_inflation_state(self, league_id: str) -> InflationState:
        """Latest inflation state (computed now if none exists yet)."""
        self._require_league(league_id)
        state = self.recalculator.get_state(league_id)
        if state is None:
            state = self.recalculator.recompute_now(league_id) or InflationState()
        return state

    def get_inflation_trend(self, league_id: str) -> TrendResult:
        self._require_league(league_id)
        return self.recalculator.get_trend(league_id)

    def get_ledger(self, league_id: str) -> DraftLedger:
        return self._require_league(league_id)

    def league_ids(self) -> List[str]:
        return self.ledgers.league_ids()

    def shutdown(self) -> None:
        """Stop all polling and the recalculator worker."""
        self.orchestrator.shutdown()
        self.recalculator.stop()
        close = getattr(self.feed, 'close', None)
        if callable(close):
            close()
        logger.info("Draft sync service shut down")


__all__ = ['DraftSyncService', 'LedgerNotFoundError']
