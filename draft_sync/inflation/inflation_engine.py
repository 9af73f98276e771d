"""
Market inflation from the draft ledger.

All functions are pure: they take DataFrames (or a ledger snapshot) and
return new values, with no I/O and no hidden state.

Rate formula everywhere: (actual - projected) / projected, 0 when the
projected total is not positive.
"""

import logging
import time
from datetime import datetime
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from .. import config
from ..draft.ledger import DraftedPlayer, DraftLedger
from .inflation_types import (
    POSITIONS,
    BudgetDepletion,
    InflationState,
    PlayerTier,
    create_default_position_rates,
    create_default_tier_rates,
    is_position,
    normalize_tier,
)

logger = logging.getLogger(__name__)

DRAFTED_COLUMNS = ['player_id', 'projection_id', 'purchase_price', 'projected_value', 'positions', 'tier']


def ledger_to_frame(players: Iterable[DraftedPlayer]) -> pd.DataFrame:
    """
    Convert drafted players to a DataFrame.

    Args:
        players: Ledger entries, in ledger order

    Returns:
        DataFrame with DRAFTED_COLUMNS
    """
    rows = [
        {
            'player_id': p.player_id,
            'projection_id': p.projection_id,
            'purchase_price': p.purchase_price,
            'projected_value': p.projected_value,
            'positions': tuple(p.positions),
            'tier': p.tier,
        }
        for p in players
    ]
    df = pd.DataFrame(rows, columns=DRAFTED_COLUMNS)
    df['purchase_price'] = pd.to_numeric(df['purchase_price']).astype(float)
    return df


def _rate(actual: float, projected: float) -> float:
    if projected <= 0:
        return 0.0
    return float((actual - projected) / projected)


def _with_projection(drafted_df: pd.DataFrame, projections_df: pd.DataFrame, how: str) -> pd.DataFrame:
    """Attach projection value and tier to drafted rows by projection_id (missing value → 0)."""
    lookup = projections_df[['player_id', 'projected_value', 'tier']].drop_duplicates('player_id')
    lookup = lookup.rename(columns={
        'player_id': 'projection_id',
        'projected_value': 'proj_value',
        'tier': 'proj_tier',
    })

    merged = drafted_df[['player_id', 'projection_id', 'purchase_price', 'positions', 'tier']].merge(
        lookup, on='projection_id', how=how
    )
    merged['proj_value'] = pd.to_numeric(merged['proj_value'], errors='coerce').fillna(0.0)
    return merged


def calculate_overall_inflation(drafted_df: pd.DataFrame, projections_df: pd.DataFrame) -> float:
    """
    Overall inflation across players both drafted and projected.

    Args:
        drafted_df: Drafted players (see ledger_to_frame)
        projections_df: Projection pool

    Returns:
        Inflation rate as a decimal
    """
    if len(drafted_df) == 0 or len(projections_df) == 0:
        return 0.0

    merged = _with_projection(drafted_df, projections_df, how='inner')

    if (merged['purchase_price'] < 0).any():
        logger.warning("Negative auction price in ledger; check the feed data")

    return _rate(merged['purchase_price'].sum(), merged['proj_value'].sum())


def calculate_baseline_inflation(
    projections_df: pd.DataFrame,
    total_budget: float,
    slots_remaining: int
) -> float:
    """
    Inflation implied before any player is drafted.

    Compares the full budget against the projected value of the top N
    players, where N is the number of roster slots still to fill.

    Args:
        projections_df: Projection pool
        total_budget: League budget
        slots_remaining: Roster slots still open

    Returns:
        (total_budget - expected_spend) / expected_spend, or 0
    """
    if slots_remaining <= 0 or len(projections_df) == 0:
        return 0.0

    values = pd.to_numeric(projections_df['projected_value'], errors='coerce').fillna(0.0)
    expected_spend = values.nlargest(slots_remaining).sum()

    if expected_spend <= 0:
        return 0.0

    return float((total_budget - expected_spend) / expected_spend)


def calculate_position_inflation(
    drafted_df: pd.DataFrame,
    projections_df: pd.DataFrame
) -> Dict[str, float]:
    """
    Inflation per canonical position.

    A player eligible at k recognized positions contributes price/k and
    projected/k to each of them, so every position is computed
    independently. Players without a recognized position are skipped.

    Args:
        drafted_df: Drafted players
        projections_df: Projection pool (missing projections count as 0)

    Returns:
        Dict of all canonical positions to their rate
    """
    rates = create_default_position_rates()
    if len(drafted_df) == 0:
        return rates

    merged = _with_projection(drafted_df, projections_df, how='left')
    merged['positions'] = merged['positions'].map(
        lambda positions: tuple(p for p in dict.fromkeys(positions or ()) if is_position(p))
    )
    merged['k'] = merged['positions'].map(len)
    merged = merged[merged['k'] > 0].copy()
    if len(merged) == 0:
        return rates

    exploded = merged.explode('positions')
    exploded['actual_share'] = exploded['purchase_price'] / exploded['k']
    exploded['projected_share'] = exploded['proj_value'] / exploded['k']

    totals = exploded.groupby('positions')[['actual_share', 'projected_share']].sum()

    for position, row in totals.iterrows():
        if row['projected_share'] <= 0 and row['actual_share'] > 0:
            logger.warning(
                f"Position {position} has ${row['actual_share']:.2f} spent "
                f"but $0 projected; projections may be missing"
            )
        rates[position] = _rate(row['actual_share'], row['projected_share'])

    return rates


def calculate_percentiles(values: pd.Series, pool: pd.Series) -> np.ndarray:
    """
    Percent of the pool strictly above each value (0 = best).

    Args:
        values: Projected values to rank
        pool: All projected values in the projection pool

    Returns:
        Array of percentiles in [0, 100)
    """
    pool_values = np.sort(pd.to_numeric(pool, errors='coerce').fillna(0.0).to_numpy())
    if len(pool_values) == 0:
        return np.full(len(values), 100.0)

    counts_above = len(pool_values) - np.searchsorted(pool_values, values.to_numpy(dtype=float), side='right')
    return counts_above / len(pool_values) * 100


def assign_tiers(values: pd.Series, pool: pd.Series) -> pd.Series:
    """
    Tier each value by percentile within the pool.

    Top 10% ELITE, next 30% MID, the rest LOWER. Equal values share a tier.
    An empty pool puts everyone in LOWER.
    """
    percentiles = calculate_percentiles(values, pool)
    tiers = np.where(
        percentiles < config.ELITE_TIER_PERCENTILE,
        PlayerTier.ELITE.value,
        np.where(percentiles < config.MID_TIER_PERCENTILE, PlayerTier.MID.value, PlayerTier.LOWER.value)
    )
    return pd.Series(tiers, index=values.index).map(lambda label: PlayerTier(label))


def calculate_tier_inflation(
    drafted_df: pd.DataFrame,
    projections_df: pd.DataFrame
) -> Dict[PlayerTier, float]:
    """
    Inflation per tier.

    Each drafted player counts wholly toward one tier: the ledger's tier if
    set, else the projection's tier, else its percentile in the pool.

    Args:
        drafted_df: Drafted players
        projections_df: Projection pool

    Returns:
        Dict of ELITE / MID / LOWER to their rate
    """
    rates = create_default_tier_rates()
    if len(drafted_df) == 0:
        return rates

    merged = _with_projection(drafted_df, projections_df, how='left')

    tier = merged['tier'].map(normalize_tier)
    tier = tier.where(tier.notna(), merged['proj_tier'].map(normalize_tier))

    missing = tier.isna()
    if missing.any():
        tier[missing] = assign_tiers(merged.loc[missing, 'proj_value'], projections_df['projected_value'])

    merged['tier_key'] = tier
    totals = merged.groupby('tier_key')[['purchase_price', 'proj_value']].sum()

    for tier_key, row in totals.iterrows():
        rates[PlayerTier(tier_key)] = _rate(row['purchase_price'], row['proj_value'])

    return rates


def calculate_budget_depletion_factor(
    total_budget: float,
    spent: float,
    slots_remaining: int,
    total_roster_spots: int
) -> BudgetDepletion:
    """
    Compare money left per open slot against the league average per slot.

    Args:
        total_budget: League budget
        spent: Money spent so far
        slots_remaining: Roster slots still open
        total_roster_spots: All roster slots in the league

    Returns:
        BudgetDepletion with multiplier clamped to [0.1, 2.0]
        (1.0 without budget / slot information or once the draft is over)
    """
    remaining = total_budget - spent

    if total_budget <= 0 or total_roster_spots <= 0:
        return BudgetDepletion(1.0, spent, remaining, slots_remaining)

    if slots_remaining <= 0:
        return BudgetDepletion(1.0, spent, remaining, 0)

    if remaining <= 0:
        return BudgetDepletion(config.BUDGET_DEPLETION_MIN_MULTIPLIER, spent, 0, slots_remaining)

    multiplier = (remaining / slots_remaining) / (total_budget / total_roster_spots)
    multiplier = min(
        max(multiplier, config.BUDGET_DEPLETION_MIN_MULTIPLIER),
        config.BUDGET_DEPLETION_MAX_MULTIPLIER
    )

    return BudgetDepletion(float(multiplier), spent, remaining, slots_remaining)


def calculate_budget_depleted(total_budget: float, spent: float) -> float:
    """Fraction of the league budget spent, clamped to [0, 1]."""
    if total_budget <= 0:
        return 0.0
    return float(min(max(spent / total_budget, 0.0), 1.0))


def round_half_up(values) -> np.ndarray:
    """Round to whole dollars with .5 going up (numpy rounds half to even)."""
    return np.floor(np.asarray(values, dtype=float) + 0.5)


def _first_position(positions) -> Optional[str]:
    for position in positions or ():
        if is_position(position):
            return position
    return None


def calculate_adjusted_values(
    players_df: pd.DataFrame,
    position_rates: Dict[str, float],
    tier_rates: Dict[PlayerTier, float],
    depletion_multiplier: float = 1.0
) -> Dict[str, int]:
    """
    Inflation-adjusted value for each player.

    adjusted = projected × (1 + position rate) × (1 + tier rate) × multiplier

    The position rate uses the first recognized position; a missing tier
    uses the MID rate. Results are whole dollars, never negative.

    Args:
        players_df: Players to value (player_id, projected_value, positions, tier)
        position_rates: Rate per position
        tier_rates: Rate per tier
        depletion_multiplier: Budget depletion multiplier

    Returns:
        Dict of player_id to adjusted dollar value
    """
    if len(players_df) == 0:
        return {}

    projected = pd.to_numeric(players_df['projected_value'], errors='coerce').fillna(0.0)

    position = players_df['positions'].map(_first_position)
    position_rate = position.map(lambda p: position_rates.get(p, 0.0) if p else 0.0).astype(float)

    tier = players_df['tier'].map(normalize_tier)
    tier = tier.where(tier.notna(), PlayerTier.MID)
    tier_rate = tier.map(lambda t: tier_rates.get(t, 0.0)).astype(float)

    raw = projected * (1 + position_rate) * (1 + tier_rate) * depletion_multiplier
    adjusted = np.maximum(round_half_up(raw), 0).astype(int)

    return dict(zip(players_df['player_id'].astype(str), adjusted.tolist()))


def compute_inflation_state(
    ledger: DraftLedger,
    projections_df: pd.DataFrame,
    computed_at: Optional[datetime] = None
) -> InflationState:
    """
    Recompute the full inflation state for a league.

    Args:
        ledger: League ledger (read as a snapshot)
        projections_df: League projection pool
        computed_at: Timestamp for last_updated (defaults to now)

    Returns:
        New InflationState
    """
    start_time = time.time()

    drafted = ledger.drafted_players
    drafted_df = ledger_to_frame(drafted)
    spent = float(drafted_df['purchase_price'].sum()) if len(drafted) else 0.0
    slots_remaining = max(ledger.total_roster_spots - len(drafted), 0)

    if len(drafted_df) == 0:
        overall = calculate_baseline_inflation(projections_df, ledger.initial_budget, slots_remaining)
    else:
        overall = calculate_overall_inflation(drafted_df, projections_df)

    position_rates = calculate_position_inflation(drafted_df, projections_df)
    tier_rates = calculate_tier_inflation(drafted_df, projections_df)
    depletion = calculate_budget_depletion_factor(
        ledger.initial_budget, spent, slots_remaining, ledger.total_roster_spots
    )

    claimed_ids = set(drafted_df['projection_id'].dropna())
    undrafted_df = projections_df[~projections_df['player_id'].isin(claimed_ids)]
    adjusted_values = calculate_adjusted_values(
        undrafted_df, position_rates, tier_rates, depletion.multiplier
    )

    elapsed = time.time() - start_time
    if elapsed > config.TARGET_INFLATION_TIME:
        logger.warning(
            f"League {ledger.league_id}: inflation recompute took {elapsed*1000:.0f}ms "
            f"for {len(projections_df)} projections"
        )
    else:
        logger.debug(f"League {ledger.league_id}: inflation recomputed in {elapsed*1000:.1f}ms")

    return InflationState(
        overall_rate=overall,
        position_rates=position_rates,
        tier_rates=tier_rates,
        adjusted_values=adjusted_values,
        budget_depleted=calculate_budget_depleted(ledger.initial_budget, spent),
        budget_depletion_multiplier=depletion.multiplier,
        players_remaining=len(undrafted_df),
        last_updated=computed_at or datetime.now(),
    )
