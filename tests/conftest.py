"""Shared fixtures and fakes for the draft sync tests."""

from datetime import datetime, timedelta

import pytest

from draft_sync.draft.ledger import DraftedPlayer, LedgerRepository, create_roster_slots
from draft_sync.draft.projections import InMemoryProjectionProvider, projections_to_frame
from draft_sync.sync.status_tracker import SyncStatusTracker
from draft_sync.sync.sync_types import DraftPick, SyncResult


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start=datetime(2026, 3, 1, 19, 0, 0)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class FakeFeed:
    """Feed adapter returning queued results or raising queued errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def sync(self, room_id, league_id, last_sync_timestamp=None):
        self.calls.append((room_id, league_id, last_sync_timestamp))
        response = self.responses.pop(0) if self.responses else SyncResult(picks=[])
        if isinstance(response, BaseException):
            raise response
        return response


class ScheduledCall:
    def __init__(self, delay, fn, args):
        self.delay = delay
        self.fn = fn
        self.args = args
        self.active = True

    @property
    def name(self):
        return getattr(self.fn, '__name__', repr(self.fn))

    def fire(self):
        self.active = False
        return self.fn(*self.args)


class RecordingScope:
    """CancellationScope stand-in that records calls instead of starting timers."""

    def __init__(self, name=''):
        self.name = name
        self.calls = []
        self.cancelled = False
        self.cancel_all_count = 0

    def schedule(self, delay_seconds, fn, *args):
        if self.cancelled:
            return None
        call = ScheduledCall(delay_seconds, fn, args)
        self.calls.append(call)
        return call

    def cancel(self, call):
        call.active = False

    def cancel_all(self):
        self.cancel_all_count += 1
        self.cancelled = True
        for call in self.calls:
            call.active = False

    @property
    def pending(self):
        return [call for call in self.calls if call.active]

    @property
    def pending_count(self):
        return len(self.pending)

    def pending_named(self, name):
        return [call for call in self.pending if call.name == name]


class ScopeFactory:
    """Builds RecordingScopes and remembers them."""

    def __init__(self):
        self.scopes = []

    def __call__(self, name=''):
        scope = RecordingScope(name)
        self.scopes.append(scope)
        return scope

    def latest(self, name):
        return [s for s in self.scopes if s.name == name][-1]


def make_pick(player_id, price=10, name=None, team='team-1', positions=('OF',)):
    return DraftPick(
        player_id=player_id,
        player_name=name or f'Player {player_id}',
        team=team,
        auction_price=price,
        positions=tuple(positions)
    )


def make_player(player_id, price=10, projected=10.0, positions=('OF',), tier=None, drafted_at=None,
                projection_id=''):
    return DraftedPlayer(
        player_id=player_id,
        player_name=f'Player {player_id}',
        positions=tuple(positions),
        purchase_price=price,
        projected_value=projected,
        drafted_by='team-1',
        drafted_at=drafted_at,
        tier=tier,
        projection_id=player_id if projection_id == '' else projection_id
    )


def make_projections(rows):
    """rows: iterable of (player_id, projected_value, positions[, tier])."""
    records = []
    for row in rows:
        player_id, value, positions = row[:3]
        records.append({
            'player_id': player_id,
            'player_name': f'Player {player_id}',
            'projected_value': value,
            'positions': list(positions),
            'tier': row[3] if len(row) > 3 else None,
        })
    return projections_to_frame(records)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return SyncStatusTracker(clock=clock)


@pytest.fixture
def ledgers():
    repo = LedgerRepository()
    repo.create('league-a', initial_budget=260 * 12, roster_slots=create_roster_slots(12))
    return repo


@pytest.fixture
def projections():
    provider = InMemoryProjectionProvider()
    provider.set_projections('league-a', [
        {'player_id': f'p{i}', 'player_name': f'Player p{i}', 'projected_value': 40 - i, 'positions': ['OF']}
        for i in range(30)
    ])
    return provider


@pytest.fixture
def scope_factory():
    return ScopeFactory()
