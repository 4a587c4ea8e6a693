"""Tests for user-facing error message cleaning."""

from __future__ import annotations

from analysis.errors import (
    DEFAULT_ERROR_MESSAGE,
    HIGH_TRAFFIC_MESSAGE,
    EmptyResponseError,
    UpstreamError,
    clean_error_message,
)


class TestCleanErrorMessage:
    def test_503_anywhere_is_high_traffic(self):
        assert clean_error_message("upstream said 503 Service Unavailable") == HIGH_TRAFFIC_MESSAGE

    def test_503_inside_json_body(self):
        raw = '{"error": {"code": 503, "message": "Backend error", "status": "UNAVAILABLE"}}'
        assert clean_error_message(raw) == HIGH_TRAFFIC_MESSAGE

    def test_overloaded_case_insensitive(self):
        assert clean_error_message("Model is OVERLOADED") == HIGH_TRAFFIC_MESSAGE

    def test_json_message_extracted(self):
        raw = 'Error 400: {"error": {"code": 400, "message": "API key not valid."}}'
        assert clean_error_message(raw) == "API key not valid."

    def test_escaped_quotes_in_message(self):
        raw = '{"message": "Model \\"gemini-x\\" not found"}'
        assert clean_error_message(raw) == 'Model "gemini-x" not found'

    def test_plain_text_passes_through(self):
        assert clean_error_message("quota exceeded") == "quota exceeded"

    def test_exception_input(self):
        assert clean_error_message(UpstreamError("bad gateway")) == "bad gateway"

    def test_empty_input(self):
        assert clean_error_message("") == DEFAULT_ERROR_MESSAGE
        assert clean_error_message(None) == DEFAULT_ERROR_MESSAGE


class TestUpstreamError:
    def test_carries_status_code(self):
        err = UpstreamError("nope", status_code=429)
        assert err.message == "nope"
        assert err.status_code == 429

    def test_empty_response_is_upstream_error(self):
        err = EmptyResponseError()
        assert isinstance(err, UpstreamError)
        assert "empty" in str(err)
