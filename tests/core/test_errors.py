"""Error hierarchy tests — codes, HTTP statuses and the REST envelope."""

from brain_dump.core.errors import (
    BrainDumpError, ConfigurationError, DatabaseError, ErrorContext,
    ExternalServiceError, InvalidTransitionError, ResourceNotFoundError,
    ValidationFailure,
)


def test_http_statuses():
    assert ValidationFailure("bad", "field").http_status == 400
    assert InvalidTransitionError("go back", "capture").http_status == 409
    assert ResourceNotFoundError("Session", "x").http_status == 404
    assert ExternalServiceError("Svc", "down", "timeout").http_status == 503
    assert ConfigurationError("KEY", "Svc").http_status == 503
    assert DatabaseError("lost", "execute").http_status == 503


def test_all_errors_share_base():
    assert isinstance(ConfigurationError("KEY", "Svc"), BrainDumpError)


def test_to_response_envelope():
    err = ValidationFailure(
        "At least one thought is required", "thoughts",
        ErrorContext(session_id="s1", stage="capture"),
    )
    body = err.to_response()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert body["category"] == "validation"
    assert body["severity"] == "warning"
    assert body["context"]["session_id"] == "s1"
    assert body["context"]["stage"] == "capture"


def test_invalid_transition_records_stage():
    err = InvalidTransitionError("continue", "capture")
    assert err.context.stage == "capture"
    assert "capture" in err.message


def test_external_service_error_carries_retry_after():
    err = ExternalServiceError("Anthropic", "slow down", "rate_limit", retry_after_ms=2000)
    assert err.to_response()["error"]["context"]["retry_after_ms"] == 2000


def test_user_message_overrides_message():
    ctx = ErrorContext(user_message="Please try again later.")
    err = DatabaseError("connection refused", "execute", ctx)
    assert err.to_response()["error"]["message"] == "Please try again later."
