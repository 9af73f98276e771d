"""
Inflation trend over a window of recent picks.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

from .. import config

HEATING = 'heating'
COOLING = 'cooling'
STABLE = 'stable'


@dataclass(frozen=True)
class InflationHistoryEntry:
    """Overall inflation (in percent) recorded after a pick."""

    pick_number: int
    rate: float
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            'pick_number': self.pick_number,
            'rate': self.rate,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class TrendResult:
    direction: str
    change: float
    pick_window: int

    def to_dict(self) -> dict:
        return {
            'direction': self.direction,
            'change': self.change,
            'pick_window': self.pick_window,
        }


def calculate_inflation_trend(
    history: Sequence[InflationHistoryEntry],
    current_pick: int,
    window_size: int = config.TREND_WINDOW_PICKS
) -> TrendResult:
    """
    Compare the latest inflation rate with the rate window_size picks ago.

    The earlier rate comes from the entry at exactly current_pick - window_size,
    else the closest entry before it, else the first entry.

    Args:
        history: Entries in pick order
        current_pick: Number of picks made so far
        window_size: Picks to look back

    Returns:
        TrendResult: heating if the rate rose by TREND_THRESHOLD_POINTS or more,
        cooling if it fell by as much, otherwise stable
    """
    if len(history) < 2 or current_pick < window_size:
        return TrendResult(STABLE, 0.0, current_pick)

    current_rate = history[-1].rate
    target_pick = current_pick - window_size

    earlier: List[InflationHistoryEntry] = [e for e in history if e.pick_number <= target_pick]
    exact = [e for e in earlier if e.pick_number == target_pick]
    if exact:
        previous = exact[0]
    elif earlier:
        previous = earlier[-1]
    else:
        previous = history[0]

    change = current_rate - previous.rate

    direction = STABLE
    if change >= config.TREND_THRESHOLD_POINTS:
        direction = HEATING
    elif change <= -config.TREND_THRESHOLD_POINTS:
        direction = COOLING

    return TrendResult(direction, change, current_pick - previous.pick_number)
