import pytest
import requests

from draft_sync.sync.error_classifier import (
    calculate_retry_delay,
    classify_error,
    classify_http_status,
    classify_message,
    should_enable_manual_mode,
)
from draft_sync.sync.sync_types import FailureType, FeedError, SyncErrorCode


@pytest.mark.parametrize('failure_count, expected', [
    (0, 5000),
    (1, 10000),
    (2, 20000),
    (3, 20000),
    (10, 20000),
])
def test_retry_delay_backs_off_and_caps(failure_count, expected):
    assert calculate_retry_delay(failure_count) == expected


def test_retry_delay_is_monotone():
    delays = [calculate_retry_delay(f) for f in range(12)]
    assert delays == sorted(delays)
    assert max(delays) == 20000


@pytest.mark.parametrize('code', [
    SyncErrorCode.TIMEOUT,
    SyncErrorCode.NETWORK_ERROR,
    SyncErrorCode.RATE_LIMITED,
    SyncErrorCode.SCRAPE_ERROR,
    SyncErrorCode.PARSE_ERROR,
])
def test_transient_codes_are_retried(code):
    result = classify_error(FeedError('boom', code=code), failure_count=1)
    assert result.failure_type == FailureType.TRANSIENT
    assert result.should_retry is True
    assert result.retry_delay_ms == 10000
    assert result.error_code == code


@pytest.mark.parametrize('code', [
    SyncErrorCode.UNAUTHORIZED,
    SyncErrorCode.LEAGUE_NOT_FOUND,
    SyncErrorCode.VALIDATION_ERROR,
])
def test_persistent_codes_are_not_retried(code):
    result = classify_error({'code': code.value, 'error': 'nope'}, failure_count=2)
    assert result.failure_type == FailureType.PERSISTENT
    assert result.should_retry is False
    assert result.retry_delay_ms == 0


def test_http_401_is_persistent_unauthorized():
    result = classify_http_status(401)
    assert result.failure_type == FailureType.PERSISTENT
    assert result.error_code == SyncErrorCode.UNAUTHORIZED


def test_http_429_is_transient_rate_limited():
    result = classify_http_status(429, failure_count=0)
    assert result.failure_type == FailureType.TRANSIENT
    assert result.error_code == SyncErrorCode.RATE_LIMITED
    assert result.retry_delay_ms == 5000


@pytest.mark.parametrize('status', [200, 201, 204, 299])
def test_http_success_is_never_retried(status):
    assert classify_http_status(status).should_retry is False


def test_http_422_is_persistent_without_code():
    result = classify_http_status(422)
    assert result.failure_type == FailureType.PERSISTENT
    assert result.error_code is None


def test_unknown_http_status_is_transient():
    result = classify_http_status(418)
    assert result.failure_type == FailureType.TRANSIENT
    assert result.should_retry is True
    assert result.error_code is None


def test_requests_exceptions():
    assert classify_error(requests.Timeout()).error_code == SyncErrorCode.TIMEOUT
    assert classify_error(requests.ConnectionError()).error_code == SyncErrorCode.NETWORK_ERROR

    response = requests.Response()
    response.status_code = 404
    error = requests.HTTPError(response=response)
    assert classify_error(error).error_code == SyncErrorCode.LEAGUE_NOT_FOUND


def test_feed_error_without_code_uses_status():
    result = classify_error(FeedError('Server error', status_code=503))
    assert result.error_code == SyncErrorCode.SCRAPE_ERROR


@pytest.mark.parametrize('message, code', [
    ('Request timed out after 10s', SyncErrorCode.TIMEOUT),
    ('The operation was aborted', SyncErrorCode.TIMEOUT),
    ('Failed to fetch', SyncErrorCode.NETWORK_ERROR),
    ('Browser is offline', SyncErrorCode.NETWORK_ERROR),
    ('403 Forbidden', SyncErrorCode.UNAUTHORIZED),
    ('Room not found', SyncErrorCode.LEAGUE_NOT_FOUND),
])
def test_message_rules(message, code):
    assert classify_message(message).error_code == code


def test_message_rules_are_ordered():
    # Matches both the timeout and network rules; timeout comes first
    assert classify_message('network timeout').error_code == SyncErrorCode.TIMEOUT


def test_unknown_message_defaults_to_transient():
    result = classify_error(RuntimeError('something odd'), failure_count=0)
    assert result.failure_type == FailureType.TRANSIENT
    assert result.should_retry is True
    assert result.display_message == 'something odd'


def test_unknown_code_in_mapping_falls_back_to_message():
    result = classify_error({'code': 'WEIRD', 'error': 'connection reset'})
    assert result.error_code == SyncErrorCode.NETWORK_ERROR


def test_manual_mode_rule():
    persistent = classify_http_status(401)
    transient = classify_http_status(503)

    for failure_count in range(0, 6):
        assert should_enable_manual_mode(persistent, failure_count) is True
        assert should_enable_manual_mode(transient, failure_count) is (failure_count >= 3)
