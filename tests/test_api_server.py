import pytest
import requests
from fastapi.testclient import TestClient

from conftest import FakeFeed, ScopeFactory
from draft_sync.api_server import create_app
from draft_sync.service import DraftSyncService
from draft_sync.sync.sync_types import SyncResult

DRAFT_REQUEST = {
    'room_id': 'room-1',
    'num_teams': 2,
    'projections': [
        {'player_id': 'p1', 'player_name': 'Aaron Judge', 'projected_value': 50, 'positions': ['OF'], 'tier': 'ELITE'},
        {'player_id': 'p2', 'player_name': 'Bobby Witt Jr.', 'projected_value': 40, 'positions': ['SS']},
        {'player_id': 'p3', 'player_name': 'Gerrit Cole', 'projected_value': 30, 'positions': ['SP']},
    ],
}


@pytest.fixture
def feed():
    return FakeFeed()


@pytest.fixture
def client(feed):
    service = DraftSyncService(feed, scope_factory=ScopeFactory())
    with TestClient(create_app(service)) as test_client:
        yield test_client


@pytest.fixture
def league(client):
    response = client.post('/leagues/league-a/draft', json=DRAFT_REQUEST)
    assert response.status_code == 200
    return 'league-a'


def test_initialize_draft_returns_empty_ledger(client):
    response = client.post('/leagues/league-a/draft', json=DRAFT_REQUEST)

    assert response.status_code == 200
    data = response.json()
    assert data['league_id'] == 'league-a'
    assert data['initial_budget'] == 520
    assert data['remaining_budget'] == 520
    assert data['drafted_players'] == []


def test_initialize_draft_validates_request(client):
    response = client.post('/leagues/league-a/draft', json={'num_teams': 1})
    assert response.status_code == 422


def test_unknown_league_is_404(client):
    assert client.get('/leagues/nope/sync-status').status_code == 404
    assert client.get('/leagues/nope/ledger').status_code == 404
    assert client.post('/leagues/nope/sync').status_code == 404
    assert client.delete('/leagues/nope').status_code == 404


def test_manual_pick_and_duplicate(client, league):
    pick = {'player_id': 'p1', 'player_name': 'Aaron Judge', 'team': 'Team A', 'auction_price': 60}

    response = client.post(f'/leagues/{league}/picks', json=pick)
    assert response.status_code == 201
    [player] = response.json()['drafted_players']
    assert player['player_id'] == 'p1'
    assert player['is_manual_entry'] is True
    assert player['variance'] == pytest.approx(10.0)
    assert response.json()['remaining_budget'] == 460

    duplicate = client.post(f'/leagues/{league}/picks', json=pick)
    assert duplicate.status_code == 409


def test_manual_pick_rejects_negative_price(client, league):
    pick = {'player_id': 'p1', 'player_name': 'Aaron Judge', 'team': 'Team A', 'auction_price': -5}
    assert client.post(f'/leagues/{league}/picks', json=pick).status_code == 422


def test_sync_status_after_failure_has_message(client, league, feed):
    feed.queue(requests.Timeout())

    response = client.post(f'/leagues/{league}/sync')
    assert response.status_code == 200
    assert response.json()['outcome'] == 'failed'

    status = client.get(f'/leagues/{league}/sync-status').json()
    assert status['failure_count'] == 1
    assert status['failure_type'] == 'transient'
    assert status['connection_state'] == 'reconnecting'
    assert status['message']['severity'] == 'warning'
    assert status['message']['should_persist'] is False


def test_sync_status_without_failures_has_no_message(client, league, feed):
    feed.queue(SyncResult(picks=[]))
    client.post(f'/leagues/{league}/sync')

    status = client.get(f'/leagues/{league}/sync-status').json()
    assert status['connection_state'] == 'connected'
    assert status['message'] is None


def test_manual_mode_toggle(client, league):
    enabled = client.post(f'/leagues/{league}/manual-mode/enable').json()
    assert enabled['is_manual_mode'] is True
    assert enabled['connection_state'] == 'manual'

    disabled = client.post(f'/leagues/{league}/manual-mode/disable').json()
    assert disabled['is_manual_mode'] is False


def test_inflation_payload(client, league):
    response = client.get(f'/leagues/{league}/inflation')

    assert response.status_code == 200
    data = response.json()
    assert data['overall_rate'] == 0.0
    assert data['players_remaining'] == 3
    assert set(data['adjusted_values']) == {'p1', 'p2', 'p3'}
    assert set(data['tier_rates']) == {'ELITE', 'MID', 'LOWER'}
    assert data['trend']['direction'] == 'stable'


def test_start_stop_and_remove(client, league):
    assert client.post(f'/leagues/{league}/sync/start').json()['success'] is True
    assert client.post(f'/leagues/{league}/sync/stop').json()['success'] is True
    assert client.delete(f'/leagues/{league}').json()['success'] is True
    assert client.get(f'/leagues/{league}/ledger').status_code == 404
