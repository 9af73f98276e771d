"""
User-facing error messages for sync failures.

Each error code maps to a headline, a plain-language explanation and a list
of recovery options, plus hints for whether to offer a retry or point the
user at manual mode.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional

from .sync_types import FailureType, SyncErrorCode


@dataclass(frozen=True)
class ErrorMessage:
    """Structured error message for display."""

    headline: str
    explanation: str
    recovery_options: List[str] = field(default_factory=list)
    severity: str = 'warning'  # warning | error | critical
    is_dismissible: bool = True
    show_retry: bool = True
    show_manual_mode: bool = True

    def to_dict(self) -> dict:
        return {
            'headline': self.headline,
            'explanation': self.explanation,
            'recovery_options': list(self.recovery_options),
            'severity': self.severity,
            'is_dismissible': self.is_dismissible,
            'show_retry': self.show_retry,
            'show_manual_mode': self.show_manual_mode,
        }


ERROR_MESSAGE_MAP = {
    SyncErrorCode.TIMEOUT: ErrorMessage(
        headline='Connection timed out',
        explanation='The draft room is taking too long to respond. This is usually temporary.',
        recovery_options=[
            'Wait a moment - we will retry automatically',
            'Check your internet connection',
            'Use Retry if it keeps happening',
        ],
        show_manual_mode=False,
    ),
    SyncErrorCode.NETWORK_ERROR: ErrorMessage(
        headline='Unable to connect',
        explanation='We could not reach the draft room. Please check your internet connection.',
        recovery_options=[
            'Check your internet connection',
            'Retry the connection',
            'Switch to manual mode if the problem persists',
        ],
    ),
    SyncErrorCode.SCRAPE_ERROR: ErrorMessage(
        headline='Draft room temporarily unavailable',
        explanation='The draft room is having temporary issues. We will keep trying automatically.',
        recovery_options=[
            'Wait a moment - this usually resolves quickly',
            'Use Retry',
            'Switch to manual mode if you need to keep drafting',
        ],
    ),
    SyncErrorCode.PARSE_ERROR: ErrorMessage(
        headline='Unable to read draft data',
        explanation='We received data from the draft room but could not process it. Retrying automatically.',
        recovery_options=[
            'Wait - we will retry automatically',
            'Use Retry if it keeps happening',
        ],
        show_manual_mode=False,
    ),
    SyncErrorCode.RATE_LIMITED: ErrorMessage(
        headline='Too many requests',
        explanation='We are sending requests too quickly. Slowing down and retrying shortly.',
        recovery_options=[
            'Wait - we will retry in a few seconds',
            'Avoid pressing Retry repeatedly',
        ],
        show_retry=False,
        show_manual_mode=False,
    ),
    SyncErrorCode.UNAUTHORIZED: ErrorMessage(
        headline='Authentication failed',
        explanation='We could not access the draft room. The room ID may have changed or expired.',
        recovery_options=[
            'Verify the room ID in your league settings',
            'Check that you have access to this draft room',
            'Switch to manual mode to continue the draft',
        ],
        severity='error',
        show_retry=False,
    ),
    SyncErrorCode.LEAGUE_NOT_FOUND: ErrorMessage(
        headline='Draft room not found',
        explanation='The room ID does not match any active draft room.',
        recovery_options=[
            'Check the room ID in your league settings',
            'Make sure the draft has started',
            'Switch to manual mode to continue',
        ],
        severity='error',
        show_retry=False,
    ),
    SyncErrorCode.VALIDATION_ERROR: ErrorMessage(
        headline='Invalid configuration',
        explanation='There is a problem with your league settings.',
        recovery_options=[
            'Review every field in your league settings',
            'Make sure the room ID is correct',
            'Switch to manual mode while troubleshooting',
        ],
        severity='error',
        show_retry=False,
    ),
}

DEFAULT_ERROR_MESSAGE = ErrorMessage(
    headline='Connection problem',
    explanation='Something went wrong while syncing with the draft room.',
    recovery_options=[
        'Wait a moment - we will retry automatically',
        'Use Retry',
        'Switch to manual mode if the problem persists',
    ],
)

PERSISTENT_FAILURE_MESSAGE = ErrorMessage(
    headline='Connection failed',
    explanation='We cannot connect to the draft room. Your settings may need checking.',
    recovery_options=[
        'Verify the room ID in your league settings',
        'Check that the draft is active',
        'Switch to manual mode to continue',
    ],
    severity='error',
    show_retry=False,
)

TRANSIENT_FAILURE_MESSAGE = ErrorMessage(
    headline='Temporary connection issue',
    explanation='We are having trouble reaching the draft room. Retrying automatically.',
    recovery_options=[
        'Wait a moment - retrying automatically',
        'Use Retry',
        'Switch to manual mode if needed',
    ],
)


def get_error_message(error_code: Optional[SyncErrorCode]) -> ErrorMessage:
    """
    Get the structured message for an error code.

    Args:
        error_code: Code from classify_error (None for unclassified failures)

    Returns:
        ErrorMessage, falling back to a generic message
    """
    if not error_code:
        return DEFAULT_ERROR_MESSAGE
    try:
        return ERROR_MESSAGE_MAP.get(SyncErrorCode(error_code), DEFAULT_ERROR_MESSAGE)
    except ValueError:
        return DEFAULT_ERROR_MESSAGE


def get_error_message_by_type(failure_type: FailureType) -> ErrorMessage:
    """Generic message for when only the failure type is known."""
    if failure_type == FailureType.PERSISTENT:
        return PERSISTENT_FAILURE_MESSAGE
    return TRANSIENT_FAILURE_MESSAGE


def create_error_message(headline: str, explanation: str, **overrides) -> ErrorMessage:
    """Build a custom message, defaulting to a dismissible warning."""
    message = ErrorMessage(
        headline=headline,
        explanation=explanation,
        recovery_options=['Try again or switch to manual mode'],
    )
    return replace(message, **overrides)


def format_retry_delay(delay_ms: int) -> str:
    """Format a retry delay, e.g. '1 second' or '20 seconds'."""
    seconds = int(delay_ms / 1000 + 0.5)
    return '1 second' if seconds == 1 else f'{seconds} seconds'


def should_error_persist(error_code: Optional[SyncErrorCode], failure_count: int) -> bool:
    """
    Check if a dismissed error should reappear.

    Error and critical messages always come back until resolved; warnings
    come back after 2 or more consecutive failures.
    """
    message = get_error_message(error_code)
    if message.severity in ('error', 'critical'):
        return True

    return failure_count >= 2
