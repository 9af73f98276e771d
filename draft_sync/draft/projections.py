"""
Projection snapshots and pick resolution.

Projections are held per league as pandas DataFrames with columns:
player_id, player_name, projected_value, positions (tuple), tier.
Feed picks are resolved onto projection rows by id, then by fuzzy name match.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union

import pandas as pd
from fuzzywuzzy import fuzz, process

from .. import config
from ..sync.sync_types import DraftPick
from .ledger import DraftedPlayer

logger = logging.getLogger(__name__)

PROJECTION_COLUMNS = ['player_id', 'player_name', 'projected_value', 'positions', 'tier']


@dataclass(frozen=True)
class PlayerProjection:
    """Projected auction value for one player."""

    player_id: str
    player_name: str
    projected_value: float
    positions: Tuple[str, ...] = ()
    tier: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'PlayerProjection':
        positions = data.get('positions') or ()
        if isinstance(positions, str):
            positions = [p.strip() for p in positions.split(',') if p.strip()]
        return cls(
            player_id=str(data['player_id']),
            player_name=data.get('player_name', ''),
            projected_value=float(data.get('projected_value') or 0),
            positions=tuple(positions),
            tier=data.get('tier')
        )


def projections_to_frame(
    records: Iterable[Union[PlayerProjection, dict]]
) -> pd.DataFrame:
    """
    Build a projection DataFrame.

    Args:
        records: PlayerProjection objects or dicts with the same keys

    Returns:
        DataFrame with PROJECTION_COLUMNS (missing values become 0)
    """
    rows = []
    for record in records:
        if isinstance(record, dict):
            record = PlayerProjection.from_dict(record)
        rows.append({
            'player_id': record.player_id,
            'player_name': record.player_name,
            'projected_value': record.projected_value,
            'positions': tuple(record.positions),
            'tier': record.tier,
        })

    df = pd.DataFrame(rows, columns=PROJECTION_COLUMNS)
    df['projected_value'] = pd.to_numeric(df['projected_value'], errors='coerce').fillna(0.0)
    df['player_id'] = df['player_id'].astype(str)

    return df


class InMemoryProjectionProvider:
    """Per-league projection snapshots."""

    def __init__(self):
        self._frames: Dict[str, pd.DataFrame] = {}
        self._lock = threading.Lock()

    def set_projections(
        self,
        league_id: str,
        records: Union[pd.DataFrame, Iterable[Union[PlayerProjection, dict]]]
    ) -> pd.DataFrame:
        """Replace a league's projections."""
        if isinstance(records, pd.DataFrame):
            df = projections_to_frame(records.to_dict('records'))
        else:
            df = projections_to_frame(records)

        with self._lock:
            self._frames[league_id] = df

        logger.info(f"Loaded {len(df)} projections for league {league_id}")
        return df

    def snapshot(self, league_id: str) -> pd.DataFrame:
        """Copy of a league's projections (empty frame if none are loaded)."""
        with self._lock:
            df = self._frames.get(league_id)
        if df is None:
            return pd.DataFrame(columns=PROJECTION_COLUMNS)
        return df.copy()

    def remove(self, league_id: str) -> None:
        with self._lock:
            self._frames.pop(league_id, None)


def match_player_name(player_name: str, projections_df: pd.DataFrame) -> Optional[pd.Series]:
    """
    Fuzzy-match a feed player name to a projection row.

    Args:
        player_name: Name reported by the feed
        projections_df: Projection DataFrame (must have player_name column)

    Returns:
        Matching row, or None below FUZZY_MATCH_MIN_SCORE
    """
    if not player_name or len(projections_df) == 0:
        return None

    names = projections_df['player_name'].tolist()

    # token_sort_ratio tolerates "Last, First" ordering
    match_result = process.extractOne(player_name, names, scorer=fuzz.token_sort_ratio)
    if match_result is None:
        return None

    matched_name, score = match_result[0], match_result[1]
    if score < config.FUZZY_MATCH_MIN_SCORE:
        logger.warning(f"Low confidence match for '{player_name}' → '{matched_name}' ({score}%)")
        return None

    matched_row = projections_df[projections_df['player_name'] == matched_name]
    if len(matched_row) == 0:
        return None

    logger.debug(f"Matched: '{player_name}' → '{matched_name}' ({score}%)")
    return matched_row.iloc[0]


def resolve_pick(
    pick: DraftPick,
    projections_df: pd.DataFrame,
    is_manual_entry: bool = False,
    claimed_ids: Iterable[str] = ()
) -> DraftedPlayer:
    """
    Turn a feed pick into a ledger entry.

    The ledger entry always keeps the feed's player_id. The projection row
    is found by player_id, then by fuzzy name match, among rows not yet
    claimed by another drafted player; its id is kept as projection_id.
    Unmatched picks keep the feed's positions and use the auction price as
    their projected value.

    Args:
        pick: Pick reported by the feed (or entered manually)
        projections_df: League projections
        is_manual_entry: Whether the pick was entered by hand
        claimed_ids: Projection ids already matched to drafted players

    Returns:
        DraftedPlayer ready to append
    """
    row = None
    claimed = set(claimed_ids)
    if len(projections_df) > 0:
        open_rows = projections_df[~projections_df['player_id'].isin(claimed)]
        by_id = open_rows[open_rows['player_id'] == str(pick.player_id)]
        row = by_id.iloc[0] if len(by_id) > 0 else match_player_name(pick.player_name, open_rows)

    if row is None:
        logger.debug(f"No projection for {pick.player_name} ({pick.player_id})")
        return DraftedPlayer(
            player_id=str(pick.player_id),
            player_name=pick.player_name,
            positions=tuple(pick.positions),
            purchase_price=pick.auction_price,
            projected_value=float(pick.auction_price),
            drafted_by=pick.team,
            is_manual_entry=is_manual_entry
        )

    tier = row['tier'] if isinstance(row['tier'], str) else None
    return DraftedPlayer(
        player_id=str(pick.player_id),
        player_name=pick.player_name or row['player_name'],
        positions=tuple(row['positions']) or tuple(pick.positions),
        purchase_price=pick.auction_price,
        projected_value=float(row['projected_value']),
        drafted_by=pick.team,
        tier=tier,
        is_manual_entry=is_manual_entry,
        projection_id=str(row['player_id'])
    )
