"""Tests for ripple.core.errors module."""

from ripple.core.errors import ErrorCode


def test_exit_code_values() -> None:
    assert ErrorCode.OK == 0
    assert ErrorCode.USER_ERROR == 1


def test_usable_as_exit_code() -> None:
    code: int = int(ErrorCode.USER_ERROR)
    assert code == 1
