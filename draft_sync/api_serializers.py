"""
API serializers for the draft sync endpoints.

Request models validate incoming JSON; response models and the serialize_*
helpers turn internal dataclasses into stable response shapes.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from . import config
from .draft.ledger import DraftLedger
from .inflation.inflation_types import InflationState
from .inflation.trends import TrendResult
from .sync.error_messages import format_retry_delay, get_error_message, should_error_persist
from .sync.error_classifier import calculate_retry_delay
from .sync.sync_types import DraftPick, SyncStatus


# ========== Requests ==========

class ProjectionRequest(BaseModel):
    """One player projection supplied at draft initialization."""
    player_id: str
    player_name: str
    projected_value: Optional[float] = Field(None, description="Projected auction value in dollars")
    positions: List[str] = Field(default_factory=list)
    tier: Optional[str] = Field(None, description="ELITE, MID or LOWER")


class InitializeDraftRequest(BaseModel):
    """Request model for POST /leagues/{league_id}/draft."""
    room_id: Optional[str] = Field(None, description="Draft room ID (omit for manual-only drafts)")
    num_teams: int = Field(config.NUM_TEAMS, ge=2, le=30, description="Number of teams in league")
    budget_per_team: int = Field(config.BUDGET_PER_TEAM, ge=1, description="Auction budget per team")
    bench_slots: int = Field(config.BENCH_SLOTS, ge=0, description="Bench slots per team")
    sync_interval_minutes: float = Field(
        config.DEFAULT_SYNC_INTERVAL_MINUTES, gt=0, description="Minutes between automatic syncs"
    )
    projections: List[ProjectionRequest] = Field(default_factory=list)


class ManualPickRequest(BaseModel):
    """Request model for POST /leagues/{league_id}/picks."""
    player_id: str = Field(..., min_length=1)
    player_name: str
    team: str = Field(..., description="Team that won the player")
    auction_price: int = Field(..., ge=0)
    positions: List[str] = Field(default_factory=list)

    def to_pick(self) -> DraftPick:
        return DraftPick(
            player_id=self.player_id,
            player_name=self.player_name,
            team=self.team,
            auction_price=self.auction_price,
            positions=tuple(self.positions)
        )


# ========== Responses ==========

class ErrorMessageResponse(BaseModel):
    """Structured message for the latest sync error."""
    headline: str
    explanation: str
    recovery_options: List[str]
    severity: str
    is_dismissible: bool
    show_retry: bool
    show_manual_mode: bool
    should_persist: bool = Field(description="Show again after the user dismisses it")
    retry_in: Optional[str] = Field(None, description="Human-readable time until the next retry")


class SyncStatusResponse(BaseModel):
    """Response for GET /leagues/{league_id}/sync-status."""
    league_id: str
    connection_state: str = Field(description="connected, reconnecting, disconnected or manual")
    is_connected: bool
    is_syncing: bool
    is_manual_mode: bool
    failure_count: int
    failure_type: str
    error: Optional[str] = None
    error_code: Optional[str] = None
    last_sync: Optional[str] = Field(None, description="ISO-8601 timestamp")
    last_failure_timestamp: Optional[str] = Field(None, description="ISO-8601 timestamp")
    message: Optional[ErrorMessageResponse] = None


class SyncTriggerResponse(BaseModel):
    """Response for POST /leagues/{league_id}/sync."""
    league_id: str
    outcome: str = Field(description="success, failed, skipped or not_configured")
    applied: int = Field(description="Picks appended to the ledger")
    sync_status: Optional[SyncStatusResponse] = None


class TrendResponse(BaseModel):
    direction: str
    change: float = Field(description="Change in percentage points")
    pick_window: int


class InflationResponse(BaseModel):
    """Response for GET /leagues/{league_id}/inflation."""
    league_id: str
    overall_rate: float
    position_rates: Dict[str, float]
    tier_rates: Dict[str, float]
    adjusted_values: Dict[str, int] = Field(description="player_id -> adjusted dollars (undrafted only)")
    budget_depleted: float
    budget_depletion_multiplier: float
    players_remaining: int
    last_updated: Optional[str] = None
    trend: Optional[TrendResponse] = None


class DraftedPlayerResponse(BaseModel):
    player_id: str
    player_name: str
    positions: List[str]
    purchase_price: int
    projected_value: float
    variance: float
    drafted_by: str
    drafted_at: Optional[str] = None
    tier: Optional[str] = None
    is_manual_entry: bool = False
    projection_id: Optional[str] = Field(None, description="Matched projection row (None if unmatched)")


class LedgerResponse(BaseModel):
    """Response for GET /leagues/{league_id}/ledger."""
    league_id: str
    initial_budget: int
    remaining_budget: int
    money_spent: int
    slots_remaining: int
    drafted_players: List[DraftedPlayerResponse]


class LeagueActionResponse(BaseModel):
    """Response for league lifecycle operations."""
    success: bool
    message: str


# ========== Serializers ==========

def serialize_sync_status(league_id: str, status: SyncStatus) -> SyncStatusResponse:
    """Convert a SyncStatus snapshot into a response, with a display message on failure."""
    data = status.to_dict()

    message = None
    if status.failure_count > 0:
        error_message = get_error_message(status.error_code)
        retry_in = None
        if error_message.show_retry and not status.is_manual_mode:
            retry_in = format_retry_delay(calculate_retry_delay(status.failure_count - 1))
        message = ErrorMessageResponse(
            **error_message.to_dict(),
            should_persist=should_error_persist(status.error_code, status.failure_count),
            retry_in=retry_in
        )

    return SyncStatusResponse(league_id=league_id, message=message, **data)


def serialize_inflation(
    league_id: str,
    state: InflationState,
    trend: Optional[TrendResult] = None
) -> InflationResponse:
    data = state.to_dict()
    return InflationResponse(
        league_id=league_id,
        trend=TrendResponse(**trend.to_dict()) if trend else None,
        **data
    )


def serialize_ledger(ledger: DraftLedger) -> LedgerResponse:
    data = ledger.to_dict()
    return LedgerResponse(
        league_id=data['league_id'],
        initial_budget=data['initial_budget'],
        remaining_budget=data['remaining_budget'],
        money_spent=data['money_spent'],
        slots_remaining=data['slots_remaining'],
        drafted_players=[DraftedPlayerResponse(**p) for p in data['drafted_players']]
    )
