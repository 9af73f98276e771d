"""
Auction inflation engine.

Turns the draft ledger into overall, position and tier inflation rates and
inflation-adjusted values for every undrafted player.
"""

from .inflation_types import InflationState, PlayerTier, POSITIONS
from .inflation_engine import compute_inflation_state
from .recalculator import InflationRecalculator
from .trends import calculate_inflation_trend

__all__ = [
    'InflationState',
    'PlayerTier',
    'POSITIONS',
    'compute_inflation_state',
    'InflationRecalculator',
    'calculate_inflation_trend',
]
