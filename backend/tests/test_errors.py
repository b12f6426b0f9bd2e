"""
Tests for the InsightSmith error handling module.
"""

import asyncio
import logging

from errors import (
    GENERIC_ERROR_MESSAGE,
    ErrorCode,
    ExternalServiceError,
    InsightSmithError,
    LLMError,
    NotFoundError,
    ValidationError,
    error_response,
    handle_async_errors,
    log_error,
    success_response,
)


class TestErrorCodes:
    """Test error code enum."""

    def test_error_codes_are_strings(self):
        assert ErrorCode.VALIDATION_MISSING_PARAM.value == "VALIDATION_MISSING_PARAM"
        assert ErrorCode.NOT_FOUND_SESSION == "NOT_FOUND_SESSION"

    def test_error_codes_have_categories(self):
        prefixes = {code.value.split("_")[0] for code in ErrorCode}
        assert prefixes == {"VALIDATION", "NOT", "LLM", "EXTERNAL", "INTERNAL"}


class TestInsightSmithError:
    """Test base InsightSmithError exception."""

    def test_basic_creation(self):
        err = InsightSmithError("Test error")
        assert err.message == "Test error"
        assert err.details is None
        assert err.code == ErrorCode.INTERNAL_UNEXPECTED
        assert err.recoverable is False
        assert err.status_code == 500

    def test_with_context(self):
        err = InsightSmithError("Test error", session="abc", count=2)
        assert err.context == {"session": "abc", "count": 2}

    def test_str_representation(self):
        assert str(InsightSmithError("Test error", details="More info")) == "Test error - More info"
        assert str(InsightSmithError("Test error")) == "Test error"

    def test_to_dict(self):
        err = InsightSmithError("Test error", details="More info", key="value")
        d = err.to_dict()
        assert d["code"] == "INTERNAL_UNEXPECTED"
        assert d["message"] == "Test error"
        assert d["details"] == "More info"
        assert d["recoverable"] is False
        assert d["context"] == {"key": "value"}

    def test_code_override(self):
        err = InsightSmithError("Bad lexicon", code=ErrorCode.INTERNAL_CONFIG_ERROR)
        assert err.code == ErrorCode.INTERNAL_CONFIG_ERROR


class TestSubclasses:
    """Codes and status per subclass."""

    def test_validation_error(self):
        err = ValidationError("Invalid forceMode", parameter="forceMode", expected="guide", received="x")
        assert err.code == ErrorCode.VALIDATION_MISSING_PARAM
        assert err.recoverable is True
        assert err.status_code == 400
        assert err.context == {"parameter": "forceMode", "expected": "guide", "received": "x"}

    def test_validation_error_code_override(self):
        err = ValidationError("Too long", code=ErrorCode.VALIDATION_OUT_OF_RANGE)
        assert err.code == ErrorCode.VALIDATION_OUT_OF_RANGE

    def test_not_found_session(self):
        err = NotFoundError("Session not found", resource_type="session", resource_id="s1")
        assert err.code == ErrorCode.NOT_FOUND_SESSION
        assert err.status_code == 404
        assert err.context["resource_id"] == "s1"

    def test_not_found_other(self):
        assert NotFoundError("Missing").code == ErrorCode.NOT_FOUND_RESOURCE

    def test_llm_error_types(self):
        assert LLMError("x", error_type="timeout").code == ErrorCode.LLM_TIMEOUT
        assert LLMError("x", error_type="parse").code == ErrorCode.LLM_PARSE_FAILED
        assert LLMError("x", error_type="invalid").code == ErrorCode.LLM_RESPONSE_INVALID
        assert LLMError("x").code == ErrorCode.LLM_UNAVAILABLE
        assert LLMError("x").recoverable is False

    def test_external_service_error(self):
        assert ExternalServiceError("x", service="searxng").code == ErrorCode.EXTERNAL_SEARCH_FAILED
        assert ExternalServiceError("x", service="voice").code == ErrorCode.EXTERNAL_VOICE_FAILED
        assert ExternalServiceError("x", service="llm").code == ErrorCode.EXTERNAL_LLM_FAILED
        err = ExternalServiceError("x", upstream_status=503)
        assert err.code == ErrorCode.EXTERNAL_NETWORK_ERROR
        assert err.context == {"upstream_status": 503}
        assert err.status_code == 502

    def test_empty_context_is_none(self):
        assert ValidationError("x").context is None
        assert NotFoundError("x", resource_type="").context is None


class TestResponseBuilders:

    def test_error_response_recoverable(self):
        err = ValidationError("Message or selectedAction is required")
        assert error_response(err) == {"success": False, "error": "Message or selectedAction is required"}

    def test_error_response_hides_unrecoverable_message(self):
        err = LLMError("connection refused at 10.0.0.3")
        assert error_response(err)["error"] == GENERIC_ERROR_MESSAGE

    def test_error_response_hides_plain_exception(self):
        payload = error_response(KeyError("secret"), session_id="s1")
        assert payload == {"success": False, "error": GENERIC_ERROR_MESSAGE, "sessionId": "s1"}

    def test_error_response_details(self):
        payload = error_response(ValidationError("bad", parameter="mode"), include_details=True)
        assert payload["detail"]["code"] == "VALIDATION_MISSING_PARAM"
        assert payload["detail"]["context"] == {"parameter": "mode"}

    def test_success_response(self):
        assert success_response() == {"success": True}
        assert success_response({"a": 1}, sessionId="s") == {"success": True, "a": 1, "sessionId": "s"}


class TestHandleAsyncErrors:

    def test_passes_through_result(self):
        @handle_async_errors("test", fallback=lambda *a, **k: "fallback")
        async def ok(value):
            return value * 2

        assert asyncio.run(ok(21)) == 42

    def test_fallback_receives_arguments(self):
        seen = {}

        def fallback(*args, **kwargs):
            seen["args"] = args
            seen["kwargs"] = kwargs
            return "fallback"

        @handle_async_errors("test", fallback=fallback)
        async def boom(a, b=None):
            raise LLMError("down")

        assert asyncio.run(boom(1, b=2)) == "fallback"
        assert seen == {"args": (1,), "kwargs": {"b": 2}}

    def test_unexpected_errors_are_caught(self, caplog):
        @handle_async_errors("test", fallback=lambda *a, **k: None)
        async def boom():
            raise ZeroDivisionError("nope")

        with caplog.at_level(logging.ERROR):
            assert asyncio.run(boom()) is None
        assert "Unexpected error" in caplog.text


class TestLogError:

    def test_formats_insightsmith_error(self, caplog):
        logger = logging.getLogger("test.errors")
        with caplog.at_level(logging.ERROR):
            log_error(logger, ValidationError("Missing"), context="Chat", include_traceback=False)
        assert "[Chat] VALIDATION_MISSING_PARAM: Missing" in caplog.text

    def test_formats_plain_exception(self, caplog):
        logger = logging.getLogger("test.errors")
        with caplog.at_level(logging.ERROR):
            log_error(logger, ValueError("boom"), include_traceback=False)
        assert "boom" in caplog.text
