"""Tests for relay.execution.classifier."""

import pytest

from _support import failure
from relay.execution.classifier import (
    RETRYABLE_KINDS,
    RULES,
    ClassifiedError,
    ErrorKind,
    classify,
    classify_text,
    is_retryable,
)


class TestClassifyText:
    @pytest.mark.parametrize(
        ("text", "kind"),
        [
            ("Error: Not Authenticated", ErrorKind.AUTHENTICATION),
            ("authentication failed for shop", ErrorKind.AUTHENTICATION),
            ("Theme not found: 123", ErrorKind.RESOURCE_NOT_FOUND),
            ("theme does not exist", ErrorKind.RESOURCE_NOT_FOUND),
            ("Store not found", ErrorKind.DESTINATION_NOT_FOUND),
            ("Shop not found", ErrorKind.DESTINATION_NOT_FOUND),
            ("Permission denied", ErrorKind.PERMISSION),
            ("ACCESS DENIED", ErrorKind.PERMISSION),
            ("rate limit exceeded", ErrorKind.RATE_LIMIT),
            ("429 Too Many Requests", ErrorKind.RATE_LIMIT),
            ("network unreachable", ErrorKind.NETWORK),
            ("Connection reset by peer", ErrorKind.NETWORK),
            ("something odd happened", ErrorKind.GENERIC),
        ],
    )
    def test_patterns(self, text, kind):
        assert classify_text(text).kind == kind

    def test_case_insensitive(self):
        assert classify_text("RATE LIMIT").kind == ErrorKind.RATE_LIMIT

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text_is_generic(self, text):
        result = classify_text(text)
        assert result.kind == ErrorKind.GENERIC
        assert result.message == "Deployment command failed"
        assert result.retryable is True

    def test_priority_authentication_beats_network(self):
        assert classify_text("not authenticated: network timeout").kind == ErrorKind.AUTHENTICATION

    def test_priority_permission_beats_rate_limit(self):
        assert classify_text("permission denied after rate limit").kind == ErrorKind.PERMISSION

    def test_deterministic(self):
        text = "connection refused"
        assert classify_text(text) == classify_text(text)

    def test_every_rule_has_message_and_suggestion(self):
        for rule in RULES:
            result = classify_text(rule.patterns[0])
            assert result.kind == rule.kind
            assert result.message
            assert result.suggestion


class TestRetryable:
    def test_retryable_set(self):
        assert RETRYABLE_KINDS == {ErrorKind.RATE_LIMIT, ErrorKind.NETWORK, ErrorKind.GENERIC}

    @pytest.mark.parametrize(
        "kind",
        [
            ErrorKind.AUTHENTICATION,
            ErrorKind.RESOURCE_NOT_FOUND,
            ErrorKind.DESTINATION_NOT_FOUND,
            ErrorKind.PERMISSION,
        ],
    )
    def test_terminal_kinds(self, kind):
        assert is_retryable(kind) is False

    def test_flag_matches_kind(self):
        assert classify_text("network").retryable is True
        assert classify_text("permission").retryable is False


class TestClassify:
    def test_command_failure_uses_stderr_and_stdout(self):
        error = failure(stderr="", exit_code=1)
        error.stdout = '{"error": "Too many requests"}'
        assert classify(error).kind == ErrorKind.RATE_LIMIT

    def test_command_failure_stderr(self):
        assert classify(failure("Store not found")).kind == ErrorKind.DESTINATION_NOT_FOUND

    def test_command_message_is_not_inspected(self):
        # The default message mentions the command, never the failure text.
        error = failure(stderr="", command="tool --connection x")
        assert classify(error).kind == ErrorKind.GENERIC

    def test_plain_exception_uses_str(self):
        assert classify(ConnectionError("connection refused")).kind == ErrorKind.NETWORK

    def test_raw_text_and_none(self):
        assert classify("access denied").kind == ErrorKind.PERMISSION
        assert classify(None).kind == ErrorKind.GENERIC

    def test_result_is_frozen(self):
        result = classify("network")
        assert isinstance(result, ClassifiedError)
        with pytest.raises(Exception):
            result.kind = ErrorKind.GENERIC
