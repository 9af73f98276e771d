"""
Classify sync failures as transient or persistent.

Transient errors (retried with exponential backoff):
- Network timeout, connection failures
- 5xx server errors and scrape/parse failures
- Rate limiting

Persistent errors (manual mode right away):
- 401/403 authentication errors
- 404 not found (invalid room id)
- Validation errors (bad league configuration)
"""

import logging
from collections import namedtuple
from typing import Any, Callable, Mapping, Optional

import requests

from .. import config
from .sync_types import ErrorClassification, FailureType, FeedError, SyncErrorCode

logger = logging.getLogger(__name__)


TRANSIENT_ERROR_CODES = frozenset([
    SyncErrorCode.TIMEOUT,
    SyncErrorCode.NETWORK_ERROR,
    SyncErrorCode.RATE_LIMITED,
    SyncErrorCode.SCRAPE_ERROR,
    SyncErrorCode.PARSE_ERROR,
])

PERSISTENT_ERROR_CODES = frozenset([
    SyncErrorCode.UNAUTHORIZED,
    SyncErrorCode.LEAGUE_NOT_FOUND,
    SyncErrorCode.VALIDATION_ERROR,
])

# Short messages stored on the sync status
ERROR_MESSAGES = {
    SyncErrorCode.TIMEOUT: 'Connection timed out. Will retry automatically.',
    SyncErrorCode.NETWORK_ERROR: 'Network connection failed. Check your internet connection.',
    SyncErrorCode.SCRAPE_ERROR: 'Unable to fetch draft data. The draft room may be temporarily unavailable.',
    SyncErrorCode.PARSE_ERROR: 'Unable to read draft data. Will retry automatically.',
    SyncErrorCode.RATE_LIMITED: 'Too many requests. Will retry after a short delay.',
    SyncErrorCode.UNAUTHORIZED: 'Authentication failed. Please check your room ID.',
    SyncErrorCode.LEAGUE_NOT_FOUND: 'Draft room not found. Please verify the room ID is correct.',
    SyncErrorCode.VALIDATION_ERROR: 'Invalid configuration. Please check your settings.',
}

UNKNOWN_ERROR_MESSAGE = 'An unexpected error occurred. Will retry automatically.'

HTTP_STATUS_CODES = {
    400: SyncErrorCode.VALIDATION_ERROR,
    401: SyncErrorCode.UNAUTHORIZED,
    403: SyncErrorCode.UNAUTHORIZED,
    404: SyncErrorCode.LEAGUE_NOT_FOUND,
    408: SyncErrorCode.TIMEOUT,
    429: SyncErrorCode.RATE_LIMITED,
    500: SyncErrorCode.SCRAPE_ERROR,
    502: SyncErrorCode.SCRAPE_ERROR,
    503: SyncErrorCode.SCRAPE_ERROR,
    504: SyncErrorCode.SCRAPE_ERROR,
}

# Persistent statuses without a dedicated error code
PERSISTENT_HTTP_STATUS = frozenset([405, 422])


ClassificationRule = namedtuple('ClassificationRule', ['predicate', 'error_code'])


def contains_any(*needles: str) -> Callable[[str], bool]:
    """Build a predicate matching lowercased text containing any needle."""
    def predicate(text: str) -> bool:
        return any(needle in text for needle in needles)
    return predicate


# Evaluated top to bottom, first match wins
MESSAGE_RULES = (
    ClassificationRule(contains_any('timeout', 'timed out', 'aborted'), SyncErrorCode.TIMEOUT),
    ClassificationRule(
        contains_any('network', 'failed to fetch', 'connection', 'offline'),
        SyncErrorCode.NETWORK_ERROR
    ),
    ClassificationRule(
        contains_any('unauthorized', '401', '403', 'forbidden'),
        SyncErrorCode.UNAUTHORIZED
    ),
    ClassificationRule(contains_any('not found', '404'), SyncErrorCode.LEAGUE_NOT_FOUND),
)


def calculate_retry_delay(failure_count: int) -> int:
    """
    Calculate exponential backoff delay.

    Args:
        failure_count: Current number of consecutive failures

    Returns:
        Delay in milliseconds: min(5000 * 2^failure_count, 20000)
    """
    failure_count = max(failure_count, 0)
    return min(config.RETRY_BASE_DELAY_MS * 2 ** failure_count, config.RETRY_MAX_DELAY_MS)


def _transient(
    failure_count: int,
    error_code: Optional[SyncErrorCode],
    message: str
) -> ErrorClassification:
    return ErrorClassification(
        failure_type=FailureType.TRANSIENT,
        should_retry=True,
        retry_delay_ms=calculate_retry_delay(failure_count),
        display_message=message,
        error_code=error_code
    )


def _persistent(error_code: Optional[SyncErrorCode], message: str) -> ErrorClassification:
    return ErrorClassification(
        failure_type=FailureType.PERSISTENT,
        should_retry=False,
        retry_delay_ms=0,
        display_message=message,
        error_code=error_code
    )


def classify_error_code(
    code: SyncErrorCode,
    failure_count: int = 0,
    message: Optional[str] = None
) -> ErrorClassification:
    """
    Classify a structured error code from the feed.

    Args:
        code: Error code reported by the feed
        failure_count: Current consecutive failure count
        message: Raw feed message, used when the code has no canned message

    Returns:
        ErrorClassification
    """
    code = SyncErrorCode(code)
    display_message = ERROR_MESSAGES.get(code) or message or UNKNOWN_ERROR_MESSAGE

    if code in PERSISTENT_ERROR_CODES:
        return _persistent(code, display_message)

    return _transient(failure_count, code, display_message)


def classify_http_status(status_code: int, failure_count: int = 0) -> ErrorClassification:
    """
    Classify an HTTP status code.

    Args:
        status_code: HTTP status code
        failure_count: Current consecutive failure count

    Returns:
        ErrorClassification (2xx is never retried)
    """
    if 200 <= status_code < 300:
        return ErrorClassification(
            failure_type=FailureType.TRANSIENT,
            should_retry=False,
            retry_delay_ms=0,
            display_message='Success'
        )

    code = HTTP_STATUS_CODES.get(status_code)
    if code is not None:
        return classify_error_code(code, failure_count)

    if status_code in PERSISTENT_HTTP_STATUS:
        return _persistent(None, f'Request failed with status {status_code}')

    return _transient(
        failure_count,
        None,
        f'Unexpected error ({status_code}). Will retry automatically.'
    )


def classify_message(message: str, failure_count: int = 0) -> ErrorClassification:
    """
    Classify free-text error messages using MESSAGE_RULES.

    Unknown messages default to transient so the sync keeps retrying rather
    than stalling silently.
    """
    text = (message or '').lower()

    for rule in MESSAGE_RULES:
        if rule.predicate(text):
            return classify_error_code(rule.error_code, failure_count)

    return _transient(failure_count, None, message or UNKNOWN_ERROR_MESSAGE)


def classify_error(error: Any, failure_count: int = 0) -> ErrorClassification:
    """
    Classify any sync failure.

    Handles:
    - FeedError (structured code and/or HTTP status)
    - requests exceptions (timeout, connection, HTTP errors)
    - Mappings with a 'code' key (structured feed error bodies)
    - SyncErrorCode values and HTTP status ints
    - Free-text strings and any other exception

    Args:
        error: The failure to classify
        failure_count: Current consecutive failure count

    Returns:
        ErrorClassification with type, retry behavior and display message
    """
    if isinstance(error, FeedError):
        if error.code is not None:
            return classify_error_code(error.code, failure_count, error.message)
        if error.status_code is not None:
            return classify_http_status(error.status_code, failure_count)
        return classify_message(error.message, failure_count)

    if isinstance(error, requests.Timeout):
        return classify_error_code(SyncErrorCode.TIMEOUT, failure_count)

    if isinstance(error, requests.ConnectionError):
        return classify_error_code(SyncErrorCode.NETWORK_ERROR, failure_count)

    if isinstance(error, requests.HTTPError) and error.response is not None:
        return classify_http_status(error.response.status_code, failure_count)

    if isinstance(error, SyncErrorCode):
        return classify_error_code(error, failure_count)

    if isinstance(error, Mapping) and 'code' in error:
        try:
            code = SyncErrorCode(error['code'])
        except ValueError:
            logger.warning(f"Unknown feed error code: {error['code']}")
            return classify_message(str(error.get('error') or error.get('message', '')), failure_count)
        return classify_error_code(code, failure_count, error.get('error') or error.get('message'))

    if isinstance(error, bool):
        return _transient(failure_count, None, UNKNOWN_ERROR_MESSAGE)

    if isinstance(error, int):
        return classify_http_status(error, failure_count)

    if isinstance(error, str):
        return classify_message(error, failure_count)

    if isinstance(error, BaseException):
        return classify_message(str(error) or type(error).__name__, failure_count)

    return _transient(failure_count, None, UNKNOWN_ERROR_MESSAGE)


def requires_manual_mode(failure_type: FailureType, failure_count: int) -> bool:
    """
    Decide whether a failure streak should switch a league to manual mode.

    Args:
        failure_type: Type of the latest failure
        failure_count: Consecutive failures, including the latest one
    """
    if failure_type == FailureType.PERSISTENT:
        return True

    return failure_count >= config.MANUAL_MODE_FAILURE_THRESHOLD


def should_enable_manual_mode(classification: ErrorClassification, failure_count: int) -> bool:
    """
    Check if a classified failure should enable manual mode.

    Persistent errors always do; transient errors only once 3 or more
    consecutive failures have happened (failure_count includes this one).
    """
    return requires_manual_mode(classification.failure_type, failure_count)
