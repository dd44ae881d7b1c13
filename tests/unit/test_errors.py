"""Unit tests for packsmith.errors."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from packsmith.errors import ConfigurationError, PacksmithError, TranspileError, WatcherError


class TestPacksmithError:
    """Tests for the base exception."""

    def test_user_message_is_str(self) -> None:
        err = PacksmithError("Something went wrong")
        assert str(err) == "Something went wrong"
        assert err.user_message == "Something went wrong"

    def test_internal_details_are_logged_not_shown(self) -> None:
        with patch("packsmith.errors.logger") as logger:
            err = PacksmithError("Safe message", internal_details="stack trace here")

        assert "stack trace" not in str(err)
        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["internal_details"] == "stack trace here"
        assert logger.error.call_args.kwargs["error_type"] == "PacksmithError"

    def test_no_details_means_no_log(self) -> None:
        with patch("packsmith.errors.logger") as logger:
            PacksmithError("Safe message")
        logger.error.assert_not_called()

    @pytest.mark.parametrize("subclass", [ConfigurationError, TranspileError, WatcherError])
    def test_hierarchy(self, subclass: type[PacksmithError]) -> None:
        assert issubclass(subclass, PacksmithError)


class TestConfigurationError:
    """Tests for configuration error context."""

    def test_file_and_field_context(self) -> None:
        err = ConfigurationError(
            "Invalid project name",
            file_path="compiler.config.json",
            field_path="packName",
        )
        assert err.user_message == (
            "Invalid project name (in compiler.config.json, field 'packName')"
        )
        assert err.file_path == "compiler.config.json"
        assert err.field_path == "packName"

    def test_file_only(self) -> None:
        err = ConfigurationError("Invalid JSON", file_path="compiler.config.json")
        assert str(err) == "Invalid JSON (in compiler.config.json)"

    def test_no_context(self) -> None:
        err = ConfigurationError("LOCALAPPDATA is not set")
        assert str(err) == "LOCALAPPDATA is not set"
        assert err.file_path is None
        assert err.field_path is None


class TestTranspileError:
    def test_carries_diagnostic(self) -> None:
        err = TranspileError("Unexpected token at 3:7")
        assert err.diagnostic == "Unexpected token at 3:7"
        assert str(err) == "Unexpected token at 3:7"
