from draft_sync.sync.error_messages import (
    DEFAULT_ERROR_MESSAGE,
    create_error_message,
    format_retry_delay,
    get_error_message,
    get_error_message_by_type,
    should_error_persist,
)
from draft_sync.sync.sync_types import FailureType, SyncErrorCode


def test_every_code_has_a_message():
    for code in SyncErrorCode:
        message = get_error_message(code)
        assert message is not DEFAULT_ERROR_MESSAGE
        assert message.headline
        assert message.recovery_options


def test_unknown_or_missing_code_gets_default():
    assert get_error_message(None) is DEFAULT_ERROR_MESSAGE
    assert get_error_message('NOT_A_CODE') is DEFAULT_ERROR_MESSAGE


def test_persistent_codes_do_not_offer_retry():
    for code in (SyncErrorCode.UNAUTHORIZED, SyncErrorCode.LEAGUE_NOT_FOUND, SyncErrorCode.VALIDATION_ERROR):
        message = get_error_message(code)
        assert message.severity == 'error'
        assert message.show_retry is False
        assert message.show_manual_mode is True


def test_message_by_type():
    assert get_error_message_by_type(FailureType.PERSISTENT).severity == 'error'
    assert get_error_message_by_type(FailureType.TRANSIENT).severity == 'warning'


def test_format_retry_delay():
    assert format_retry_delay(1000) == '1 second'
    assert format_retry_delay(5000) == '5 seconds'
    assert format_retry_delay(20000) == '20 seconds'


def test_should_error_persist():
    assert should_error_persist(SyncErrorCode.UNAUTHORIZED, 1) is True
    assert should_error_persist(SyncErrorCode.TIMEOUT, 1) is False
    assert should_error_persist(SyncErrorCode.TIMEOUT, 2) is True


def test_create_error_message_overrides():
    message = create_error_message('Oops', 'Bad thing', severity='critical', show_retry=False)
    assert message.severity == 'critical'
    assert message.show_retry is False
    assert message.is_dismissible is True
