"""
Data structures for the inflation engine.

Rates are decimals: 0.15 means players are going for 15% more than
projected, -0.10 means 10% less.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .. import config

POSITIONS = tuple(config.POSITIONS)


class PlayerTier(str, Enum):
    """Projected value tiers (top 10%, next 30%, rest)."""

    ELITE = 'ELITE'
    MID = 'MID'
    LOWER = 'LOWER'


PLAYER_TIERS = (PlayerTier.ELITE, PlayerTier.MID, PlayerTier.LOWER)


def is_position(value: Any) -> bool:
    return isinstance(value, str) and value in POSITIONS


def normalize_tier(value: Any) -> Optional[PlayerTier]:
    """Parse a tier label, returning None for anything unrecognized."""
    if isinstance(value, PlayerTier):
        return value
    if isinstance(value, str):
        try:
            return PlayerTier(value.upper())
        except ValueError:
            return None
    return None


def create_default_position_rates() -> Dict[str, float]:
    return {position: 0.0 for position in POSITIONS}


def create_default_tier_rates() -> Dict[PlayerTier, float]:
    return {tier: 0.0 for tier in PLAYER_TIERS}


@dataclass(frozen=True)
class BudgetDepletion:
    """League budget position used to scale adjusted values."""

    multiplier: float
    spent: float
    remaining: float
    slots_remaining: int


@dataclass
class InflationState:
    """Result of one full inflation recomputation for a league."""

    overall_rate: float = 0.0
    position_rates: Dict[str, float] = field(default_factory=create_default_position_rates)
    tier_rates: Dict[PlayerTier, float] = field(default_factory=create_default_tier_rates)
    adjusted_values: Dict[str, int] = field(default_factory=dict)
    budget_depleted: float = 0.0
    budget_depletion_multiplier: float = 1.0
    players_remaining: int = 0
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'overall_rate': self.overall_rate,
            'position_rates': dict(self.position_rates),
            'tier_rates': {tier.value: rate for tier, rate in self.tier_rates.items()},
            'adjusted_values': dict(self.adjusted_values),
            'budget_depleted': self.budget_depleted,
            'budget_depletion_multiplier': self.budget_depletion_multiplier,
            'players_remaining': self.players_remaining,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }
