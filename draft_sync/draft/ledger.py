"""
Append-only draft ledger.

The DraftLedger is responsible for:
- Recording drafted players in feed order, exactly once each
- Tracking the league-wide remaining budget
- Filling roster slots as picks arrive
- Filtering projection pools down to undrafted players
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .. import config

logger = logging.getLogger(__name__)


class DuplicatePlayerError(ValueError):
    """Raised when a player is appended to a ledger twice."""


class LedgerNotFoundError(KeyError):
    """Raised when no ledger exists for a league."""


@dataclass(frozen=True)
class DraftedPlayer:
    """A single drafted player. Never modified after it is appended."""

    player_id: str
    player_name: str
    positions: Tuple[str, ...]
    purchase_price: int
    projected_value: float
    drafted_by: str
    drafted_at: Optional[datetime] = None
    tier: Optional[str] = None
    is_manual_entry: bool = False  # tracking only
    projection_id: Optional[str] = None  # matched projection row, None if unmatched

    @property
    def variance(self) -> float:
        """Overpay (positive) or discount (negative) against projection."""
        return self.purchase_price - self.projected_value

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'player_id': self.player_id,
            'player_name': self.player_name,
            'positions': list(self.positions),
            'purchase_price': self.purchase_price,
            'projected_value': self.projected_value,
            'variance': self.variance,
            'drafted_by': self.drafted_by,
            'drafted_at': self.drafted_at.isoformat() if self.drafted_at else None,
            'tier': self.tier,
            'is_manual_entry': self.is_manual_entry,
            'projection_id': self.projection_id,
        }


@dataclass
class RosterSlot:
    """One roster slot; empty until a pick fills it."""

    position: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    purchase_price: Optional[int] = None

    @property
    def is_filled(self) -> bool:
        return self.player_id is not None

    def to_dict(self) -> dict:
        return {
            'position': self.position,
            'player_id': self.player_id,
            'player_name': self.player_name,
            'purchase_price': self.purchase_price,
        }


def create_roster_slots(
    num_teams: int = config.NUM_TEAMS,
    bench_slots: int = config.BENCH_SLOTS
) -> List[RosterSlot]:
    """
    Build the league-wide slot list from the per-team template.

    Args:
        num_teams: Number of teams in the league
        bench_slots: Bench slots per team

    Returns:
        List of empty RosterSlots (template × num_teams)
    """
    template = config.HITTER_SLOTS + config.PITCHER_SLOTS + [config.BENCH_SLOT] * bench_slots
    return [RosterSlot(position=position) for _ in range(num_teams) for position in template]


class DraftLedger:
    """Ordered, append-only record of a league's drafted players."""

    def __init__(
        self,
        league_id: str,
        initial_budget: int,
        roster_slots: Optional[List[RosterSlot]] = None
    ):
        """
        Initialize an empty ledger.

        Args:
            league_id: League identifier
            initial_budget: Total league budget (all teams combined)
            roster_slots: Empty slots to fill (defaults to the config template)
        """
        self.league_id = league_id
        self.initial_budget = initial_budget
        self.remaining_budget = initial_budget
        self.roster_slots = roster_slots if roster_slots is not None else create_roster_slots()
        self._players: List[DraftedPlayer] = []
        self._player_ids = set()
        self._projection_ids = set()
        self._lock = threading.RLock()

    @property
    def drafted_players(self) -> Tuple[DraftedPlayer, ...]:
        with self._lock:
            return tuple(self._players)

    @property
    def drafted_ids(self) -> frozenset:
        with self._lock:
            return frozenset(self._player_ids)

    @property
    def drafted_projection_ids(self) -> frozenset:
        """Projection rows already claimed by a drafted player."""
        with self._lock:
            return frozenset(self._projection_ids)

    @property
    def money_spent(self) -> int:
        return self.initial_budget - self.remaining_budget

    @property
    def total_roster_spots(self) -> int:
        return len(self.roster_slots)

    @property
    def slots_remaining(self) -> int:
        with self._lock:
            return max(self.total_roster_spots - len(self._players), 0)

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._player_ids

    def append(self, player: DraftedPlayer) -> DraftedPlayer:
        """
        Append a drafted player.

        A missing drafted_at is stamped with the current time, and one earlier
        than the last entry is clamped up to it so the ledger stays in order.

        Args:
            player: Player to append

        Returns:
            The player as stored

        Raises:
            DuplicatePlayerError: If player_id is already in the ledger
        """
        with self._lock:
            if player.player_id in self._player_ids:
                raise DuplicatePlayerError(
                    f"Player {player.player_id} ({player.player_name}) "
                    f"already drafted in league {self.league_id}"
                )

            drafted_at = player.drafted_at or datetime.now()
            if self._players and drafted_at < self._players[-1].drafted_at:
                drafted_at = self._players[-1].drafted_at
            if drafted_at != player.drafted_at:
                player = replace(player, drafted_at=drafted_at)

            self._players.append(player)
            self._player_ids.add(player.player_id)
            if player.projection_id is not None:
                self._projection_ids.add(player.projection_id)
            self.remaining_budget -= player.purchase_price
            self._fill_slot(player)

            logger.debug(
                f"League {self.league_id}: {player.player_name} → {player.drafted_by} "
                f"(${player.purchase_price}) | {self.slots_remaining} spots, "
                f"${self.remaining_budget} remaining"
            )

            return player

    def _fill_slot(self, player: DraftedPlayer) -> None:
        is_pitcher = any(p in config.PITCHER_SLOT_POSITIONS for p in player.positions)

        candidates = list(player.positions)
        if not is_pitcher:
            candidates.append(config.UTIL_SLOT)
        candidates.append(config.BENCH_SLOT)

        for position in candidates:
            for slot in self.roster_slots:
                if slot.position == position and not slot.is_filled:
                    slot.player_id = player.player_id
                    slot.player_name = player.player_name
                    slot.purchase_price = player.purchase_price
                    return

        logger.warning(
            f"League {self.league_id}: no open roster slot for {player.player_name} "
            f"({'/'.join(player.positions) or 'no position'}), recorded without a slot"
        )

    def get_available_players(self, projections_df: pd.DataFrame) -> pd.DataFrame:
        """
        Filter a projection pool to undrafted players.

        A projection row counts as drafted once a ledger entry has matched it.

        Args:
            projections_df: DataFrame with a player_id column

        Returns:
            Filtered DataFrame with drafted players removed

        Raises:
            ValueError: If player_id column missing
        """
        if 'player_id' not in projections_df.columns:
            raise ValueError("projections_df must have 'player_id' column")

        return projections_df[~projections_df['player_id'].isin(self.drafted_projection_ids)]

    def validate(self) -> None:
        """
        Validate ledger consistency.

        Raises:
            ValueError: If state is inconsistent
        """
        with self._lock:
            spent = sum(p.purchase_price for p in self._players)
            if self.initial_budget - spent != self.remaining_budget:
                raise ValueError(
                    f"Budget mismatch: picks sum to ${spent}, but remaining budget "
                    f"is ${self.remaining_budget} of ${self.initial_budget}"
                )

            if len(self._player_ids) != len(self._players):
                raise ValueError("Ledger contains duplicate player ids")

            for previous, current in zip(self._players, self._players[1:]):
                if current.drafted_at < previous.drafted_at:
                    raise ValueError(
                        f"Pick {current.player_id} drafted_at precedes {previous.player_id}"
                    )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        with self._lock:
            return {
                'league_id': self.league_id,
                'initial_budget': self.initial_budget,
                'remaining_budget': self.remaining_budget,
                'money_spent': self.money_spent,
                'slots_remaining': self.slots_remaining,
                'roster_slots': [slot.to_dict() for slot in self.roster_slots],
                'drafted_players': [p.to_dict() for p in self._players],
            }


class LedgerRepository:
    """Keyed store of per-league ledgers."""

    def __init__(self):
        self._ledgers: Dict[str, DraftLedger] = {}
        self._lock = threading.Lock()

    def create(
        self,
        league_id: str,
        initial_budget: int = config.TOTAL_BUDGET,
        roster_slots: Optional[List[RosterSlot]] = None
    ) -> DraftLedger:
        """Create (or replace) the ledger for a league."""
        ledger = DraftLedger(league_id, initial_budget, roster_slots)
        with self._lock:
            if league_id in self._ledgers:
                logger.warning(f"Replacing existing ledger for league {league_id}")
            self._ledgers[league_id] = ledger
        logger.info(
            f"Initialized ledger for league {league_id}: "
            f"${initial_budget} budget, {ledger.total_roster_spots} roster spots"
        )
        return ledger

    def get(self, league_id: str) -> DraftLedger:
        """
        Get a league's ledger.

        Raises:
            LedgerNotFoundError: If the league has no ledger
        """
        with self._lock:
            ledger = self._ledgers.get(league_id)
        if ledger is None:
            raise LedgerNotFoundError(league_id)
        return ledger

    def contains(self, league_id: str) -> bool:
        with self._lock:
            return league_id in self._ledgers

    def remove(self, league_id: str) -> Optional[DraftLedger]:
        with self._lock:
            return self._ledgers.pop(league_id, None)

    def league_ids(self) -> List[str]:
        with self._lock:
            return list(self._ledgers)

    def apply_picks(self, league_id: str, players: Iterable[DraftedPlayer]) -> List[DraftedPlayer]:
        """
        Append new players in the given order, skipping any already recorded.

        Args:
            league_id: League to update
            players: Candidate players, in feed order (may overlap the ledger)

        Returns:
            The players actually appended, in order

        Raises:
            LedgerNotFoundError: If the league has no ledger
        """
        ledger = self.get(league_id)
        applied = []

        with ledger._lock:
            for player in players:
                if player.player_id in ledger:
                    continue
                applied.append(ledger.append(player))

        if applied:
            logger.info(
                f"League {league_id}: applied {len(applied)} pick(s) | "
                f"{ledger.slots_remaining} spots, ${ledger.remaining_budget} remaining"
            )

        return applied
