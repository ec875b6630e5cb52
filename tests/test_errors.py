# Area: Error Tests
"""Tests for error payloads and provider failure reports."""

from commitment_challenge.errors import (
    CheckInBlocked,
    CommandError,
    DomainError,
    GameNotFound,
    InvalidProviderResponseError,
    ProviderSchemaError,
    ProviderTimeoutError,
    StoreInvariantError,
    ValidationError,
)

PAYLOAD = {"game_id": "game-1", "check_in_id": "ci-9", "prompt": "Verify the run"}


class TestCommandErrors:

    def test_hierarchy(self):
        """Test the error class hierarchy."""
        assert issubclass(GameNotFound, DomainError)
        assert issubclass(ValidationError, CommandError)
        assert not issubclass(StoreInvariantError, CommandError)

    def test_domain_error_dict(self):
        """Test DomainError.to_dict carries code and message."""
        error = CheckInBlocked(2, "PENDING")
        data = error.to_dict()
        assert data["code"] == "CHECK_IN_BLOCKED"
        assert "2" in data["message"]

    def test_validation_error_dict(self):
        """Test that ValidationError joins its messages."""
        error = ValidationError(["title: too short", "stake_unit: must be positive"])
        assert str(error) == "title: too short; stake_unit: must be positive"
        assert error.to_dict()["errors"] == ["title: too short", "stake_unit: must be positive"]

    def test_empty_validation_error(self):
        """Test the ValidationError message with no details."""
        assert str(ValidationError([])) == "Invalid input"


class TestProviderReports:
    """format_error_log renders a report per failure kind."""

    def test_timeout_report(self):
        """Test the provider timeout report."""
        report = ProviderTimeoutError("anthropic", 30, PAYLOAD).format_error_log()
        assert "PROVIDER_TIMEOUT" in report
        assert "ci-9" in report
        assert "30s" in report
        assert "[request]" in report
        assert "[provider output]" not in report

    def test_invalid_response_report(self):
        """Test the report for a non-object provider response."""
        error = InvalidProviderResponseError("demo", PAYLOAD, "plain text")
        report = error.format_error_log()
        assert error.raw_output_type == "str"
        assert "'plain text'" in report
        assert "expected a JSON object, got str" in report

    def test_schema_report(self):
        """Test the report for a verdict that fails validation."""
        error = ProviderSchemaError(
            "demo", PAYLOAD, {"decision": "MAYBE"}, ["decision: Input should be 'APPROVED'"]
        )
        report = error.format_error_log()
        assert "SCHEMA_VALIDATION_FAILURE" in report
        assert '"decision": "MAYBE"' in report
        assert "  - decision: Input should be 'APPROVED'" in report
        assert "verdict is invalid" in str(error)

    def test_unserializable_payload(self):
        """Test that an unserializable payload still renders."""
        report = ProviderTimeoutError("demo", 1, {"game_id": "g", "blob": object()}).format_error_log()
        assert "blob" in report
