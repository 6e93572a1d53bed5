"""Tests for pageprobe.utils.errors — exception types and message extraction."""

from __future__ import annotations

import pytest

from pageprobe.utils.errors import (
    ChannelSetupError,
    CommandError,
    PageMissingError,
    ScanError,
    get_error_message,
)


class TestGetErrorMessage:
    """Tests for get_error_message()."""

    def test_exception_with_message(self) -> None:
        assert get_error_message(ValueError("something broke")) == "something broke"

    def test_exception_without_message(self) -> None:
        assert get_error_message(ValueError()) == "ValueError"

    def test_non_exception(self) -> None:
        assert get_error_message("oops") == "Unknown error"

    def test_none(self) -> None:
        assert get_error_message(None) == "Unknown error"


class TestExceptionTypes:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize("error_type", [PageMissingError, ChannelSetupError])
    def test_subclasses_scan_error(self, error_type: type[ScanError]) -> None:
        assert issubclass(error_type, ScanError)

    def test_command_error(self) -> None:
        error = CommandError("DOM.enable", "Target closed")
        assert isinstance(error, ScanError)
        assert error.method == "DOM.enable"
        assert str(error) == "DOM.enable failed: Target closed"
