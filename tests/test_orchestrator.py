import threading

import pytest
import requests

from conftest import FakeFeed, make_pick
from draft_sync.sync.orchestrator import FAILED, NOT_CONFIGURED, SKIPPED, SUCCESS, SyncOrchestrator
from draft_sync.sync.sync_types import (
    CAUGHT_UP,
    CONNECTION_RESTORED,
    MANUAL_MODE_ENABLED,
    SYNC_TIMEOUT_WARNING,
    ConnectionState,
    FailureType,
    FeedError,
    SyncErrorCode,
    SyncResult,
)


class StubRecalculator:
    def __init__(self):
        self.notified = []

    def notify(self, league_id):
        self.notified.append(league_id)


@pytest.fixture
def feed():
    return FakeFeed()


@pytest.fixture
def recalculator():
    return StubRecalculator()


@pytest.fixture
def events():
    return []


@pytest.fixture
def orchestrator(tracker, ledgers, projections, feed, recalculator, scope_factory, events):
    orch = SyncOrchestrator(
        tracker=tracker,
        ledgers=ledgers,
        projections=projections,
        feed=feed,
        recalculator=recalculator,
        scope_factory=scope_factory
    )
    orch.add_listener(events.append)
    orch.register_league('league-a', room_id='room-1', sync_interval_minutes=20)
    return orch


def _names(events):
    return [event.name for event in events]


def test_five_new_picks_emit_one_caught_up(orchestrator, feed, events, ledgers, recalculator):
    feed.queue(SyncResult(picks=[make_pick(f'p{i}') for i in range(5)]))

    outcome = orchestrator.trigger_sync('league-a')

    assert outcome.status == SUCCESS
    assert outcome.applied == 5
    assert _names(events) == [CAUGHT_UP]
    assert events[0].payload == {'count': 5}
    assert len(ledgers.get('league-a')) == 5
    assert recalculator.notified == ['league-a']


def test_two_new_picks_do_not_emit_caught_up(orchestrator, feed, events):
    feed.queue(SyncResult(picks=[make_pick('p1'), make_pick('p2')]))
    orchestrator.trigger_sync('league-a')
    assert CAUGHT_UP not in _names(events)


def test_overlapping_batches_are_deduplicated(orchestrator, feed, ledgers, recalculator):
    feed.queue(
        SyncResult(picks=[make_pick('p1'), make_pick('p2')]),
        SyncResult(picks=[make_pick('p1'), make_pick('p2'), make_pick('p3'), make_pick('p3')]),
        SyncResult(picks=[make_pick('p2')]),
    )

    assert orchestrator.trigger_sync('league-a').applied == 2
    assert orchestrator.trigger_sync('league-a').applied == 1
    outcome = orchestrator.trigger_sync('league-a')

    assert outcome.status == SUCCESS
    assert outcome.applied == 0
    assert [p.player_id for p in ledgers.get('league-a').drafted_players] == ['p1', 'p2', 'p3']
    assert recalculator.notified == ['league-a', 'league-a']


def test_feed_called_with_last_sync_timestamp(orchestrator, feed):
    stamp = SyncResult(picks=[], sync_timestamp=None)
    feed.queue(stamp, SyncResult(picks=[]))
    orchestrator.trigger_sync('league-a')
    orchestrator.trigger_sync('league-a')

    assert feed.calls[0] == ('room-1', 'league-a', None)
    assert feed.calls[1][2] is not None


def test_transient_failures_retry_then_manual_mode(orchestrator, feed, tracker, events, scope_factory):
    orchestrator.start('league-a')
    feed.queue(requests.Timeout(), requests.Timeout(), requests.Timeout())

    delays = []
    manual_flags = []
    for _ in range(3):
        scope = scope_factory.latest('league-a')
        [call] = scope.pending_named('_run_scheduled')
        call.fire()
        retry = scope.pending_named('_run_scheduled')
        delays.append(retry[0].delay)
        manual_flags.append(tracker.get_status('league-a').is_manual_mode)

    assert delays == [5.0, 10.0, 20.0]
    assert manual_flags == [False, False, True]
    assert _names(events) == [MANUAL_MODE_ENABLED]
    assert tracker.connection_state('league-a') == ConnectionState.MANUAL


def test_persistent_failure_halts_polling(orchestrator, feed, tracker, events, scope_factory):
    orchestrator.start('league-a')
    feed.queue(FeedError('Unauthorized', code=SyncErrorCode.UNAUTHORIZED))

    scope = scope_factory.latest('league-a')
    scope.pending_named('_run_scheduled')[0].fire()

    status = tracker.get_status('league-a')
    assert status.failure_type == FailureType.PERSISTENT
    assert status.is_manual_mode is True
    assert _names(events) == [MANUAL_MODE_ENABLED]
    assert scope.pending_named('_run_scheduled') == []

    # A manual retry resumes polling once it succeeds
    feed.queue(SyncResult(picks=[]))
    outcome = orchestrator.trigger_sync('league-a')
    assert outcome.status == SUCCESS
    assert [c.delay for c in scope.pending_named('_run_scheduled')] == [1200]
    assert CONNECTION_RESTORED in _names(events)
    assert tracker.get_status('league-a').is_manual_mode is True


def test_success_schedules_next_poll(orchestrator, feed, scope_factory):
    orchestrator.start('league-a')
    scope = scope_factory.latest('league-a')
    [first] = scope.pending_named('_run_scheduled')
    assert first.delay == 0

    first.fire()

    assert [c.delay for c in scope.pending_named('_run_scheduled')] == [1200]


def test_trigger_without_start_does_not_schedule(orchestrator, feed, scope_factory):
    feed.queue(requests.ConnectionError())
    outcome = orchestrator.trigger_sync('league-a')

    assert outcome.status == FAILED
    assert outcome.classification.error_code == SyncErrorCode.NETWORK_ERROR
    assert scope_factory.latest('league-a').pending_named('_run_scheduled') == []


def test_missing_room_id_clears_failures_and_disconnects(orchestrator, tracker, feed):
    orchestrator.register_league('league-a', room_id=None)
    tracker.record_failure('league-a', FailureType.TRANSIENT, 'old failure')

    outcome = orchestrator.trigger_sync('league-a')

    assert outcome.status == NOT_CONFIGURED
    assert feed.calls == []
    assert tracker.get_status('league-a').failure_count == 0
    assert tracker.connection_state('league-a') == ConnectionState.DISCONNECTED


def test_recovery_emits_connection_restored(orchestrator, feed, events, tracker):
    feed.queue(requests.Timeout(), SyncResult(picks=[]))
    orchestrator.trigger_sync('league-a')
    orchestrator.trigger_sync('league-a')

    assert _names(events) == [CONNECTION_RESTORED]
    assert tracker.connection_state('league-a') == ConnectionState.CONNECTED


def test_soft_timeout_is_registered_and_cancelled(orchestrator, feed, scope_factory, events):
    feed.queue(SyncResult(picks=[]))
    orchestrator.trigger_sync('league-a')

    scope = scope_factory.latest('league-a')
    [timer] = [c for c in scope.calls if c.name == '_on_soft_timeout']
    assert timer.delay == 15
    assert timer.active is False

    # Firing it by hand only warns
    timer.fire()
    assert _names(events) == [SYNC_TIMEOUT_WARNING]
    assert 'elapsed_seconds' in events[0].payload


def test_single_flight_per_league(tracker, ledgers, projections, scope_factory):
    entered = threading.Event()
    release = threading.Event()

    class BlockingFeed:
        calls = 0

        def sync(self, room_id, league_id, last_sync_timestamp=None):
            BlockingFeed.calls += 1
            entered.set()
            release.wait(5)
            return SyncResult(picks=[])

    orch = SyncOrchestrator(tracker, ledgers, projections, BlockingFeed(), scope_factory=scope_factory)
    orch.register_league('league-a', room_id='room-1')

    worker = threading.Thread(target=orch.trigger_sync, args=('league-a',))
    worker.start()
    assert entered.wait(5)

    assert orch.trigger_sync('league-a').status == SKIPPED

    release.set()
    worker.join(5)
    assert BlockingFeed.calls == 1


def test_failure_in_one_league_does_not_touch_another(orchestrator, feed, tracker, ledgers):
    ledgers.create('league-b', initial_budget=100)
    orchestrator.register_league('league-b', room_id='room-2')

    feed.queue(requests.Timeout(), SyncResult(picks=[make_pick('p1')]))
    orchestrator.trigger_sync('league-a')
    orchestrator.trigger_sync('league-b')

    assert tracker.get_status('league-a').failure_count == 1
    assert tracker.get_status('league-b').failure_count == 0
    assert len(ledgers.get('league-b')) == 1


def test_stop_cancels_timers_idempotently(orchestrator, scope_factory):
    orchestrator.start('league-a')
    scope = scope_factory.latest('league-a')

    orchestrator.stop('league-a')
    orchestrator.stop('league-a')

    assert scope.cancelled is True
    assert scope.cancel_all_count == 1
    assert scope.pending_count == 0


def test_scheduled_sync_after_stop_does_nothing(orchestrator, feed, scope_factory):
    orchestrator.start('league-a')
    [call] = scope_factory.latest('league-a').pending_named('_run_scheduled')
    orchestrator.stop('league-a')

    call.fire()

    assert feed.calls == []


def test_rate_limit_respects_retry_after(orchestrator, feed, scope_factory):
    orchestrator.start('league-a')
    feed.queue(FeedError('Slow down', code=SyncErrorCode.RATE_LIMITED, retry_after=30))

    scope = scope_factory.latest('league-a')
    scope.pending_named('_run_scheduled')[0].fire()

    assert [c.delay for c in scope.pending_named('_run_scheduled')] == [30.0]


def test_unregistered_league_raises(orchestrator):
    with pytest.raises(KeyError):
        orchestrator.trigger_sync('nope')


def test_same_name_picks_are_recorded_separately(orchestrator, feed, ledgers, projections):
    projections.set_projections('league-a', [
        {'player_id': 'p-ws', 'player_name': 'Will Smith', 'projected_value': 15, 'positions': ['C']},
    ])
    feed.queue(
        SyncResult(picks=[
            make_pick('cm-100', price=14, name='Will Smith', positions=('C',)),
            make_pick('cm-200', price=3, name='Will Smith', positions=('RP',)),
        ]),
        SyncResult(picks=[make_pick('cm-100', price=14, name='Will Smith', positions=('C',))]),
    )

    outcome = orchestrator.trigger_sync('league-a')

    ledger = ledgers.get('league-a')
    assert outcome.applied == 2
    assert [p.player_id for p in ledger.drafted_players] == ['cm-100', 'cm-200']
    assert [p.projection_id for p in ledger.drafted_players] == ['p-ws', None]
    assert ledger.remaining_budget == 3120 - 17

    assert orchestrator.trigger_sync('league-a').applied == 0


def test_missing_room_id_keeps_manual_mode(orchestrator, tracker, feed):
    orchestrator.register_league('league-a', room_id=None)
    tracker.record_success('league-a')
    tracker.enable_manual_mode('league-a')

    outcome = orchestrator.trigger_sync('league-a')

    status = tracker.get_status('league-a')
    assert outcome.status == NOT_CONFIGURED
    assert feed.calls == []
    assert status.is_manual_mode is True
    assert status.is_connected is False
    assert status.last_sync is not None
    assert tracker.connection_state('league-a') == ConnectionState.MANUAL


class RemovingFeed:
    """Feed that tears the league down while the sync is in flight."""

    def __init__(self, orchestrator, tracker, ledgers, remove_ledger):
        self.orchestrator = orchestrator
        self.tracker = tracker
        self.ledgers = ledgers
        self.remove_ledger = remove_ledger

    def sync(self, room_id, league_id, last_sync_timestamp=None):
        self.orchestrator.unregister_league(league_id)
        self.tracker.remove(league_id)
        if self.remove_ledger:
            self.ledgers.remove(league_id)
        return SyncResult(picks=[make_pick('p1')])


@pytest.mark.parametrize('remove_ledger', [True, False])
def test_league_removed_mid_sync_leaves_no_status(orchestrator, tracker, ledgers, events, remove_ledger):
    orchestrator.feed = RemovingFeed(orchestrator, tracker, ledgers, remove_ledger)

    outcome = orchestrator.trigger_sync('league-a')

    assert outcome.status == SKIPPED
    assert 'league-a' not in tracker.league_ids()
    assert events == []
