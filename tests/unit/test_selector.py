"""Tests for choosing an error out of message history."""

import pytest

from vim_stacktrace.core.selector import ErrorSelector, format_candidate
from vim_stacktrace.models.history import ErrorRecord
from vim_stacktrace.utils.async_helpers import InvalidSelectionError

CHAIN = "function Main[2]..<SNR>96_test[1]..<SNR>96_test2[1]..F"


class TestSelectOne:
    """Test ErrorSelector.select_one."""

    @pytest.mark.parametrize(
        ("selection", "throwpoint"),
        [
            (1, f"{CHAIN}[3]"),
            (2, f"{CHAIN}[4]"),
            (3, "/path/to/file.vim[33]"),
        ],
    )
    def test_valid_selection(
        self, make_runtime, sample_msghist: str, selection: int, throwpoint: str
    ) -> None:
        runtime = make_runtime(selection=selection)

        error = ErrorSelector(runtime).select_one(sample_msghist)

        assert error is not None
        assert error.throwpoint == throwpoint

    def test_cancelled(self, make_runtime, sample_msghist: str) -> None:
        """Test that selection 0 means the user cancelled."""
        runtime = make_runtime(selection=0)
        assert ErrorSelector(runtime).select_one(sample_msghist) is None

    @pytest.mark.parametrize("selection", [-1, 4])
    def test_invalid_selection(self, make_runtime, sample_msghist: str, selection: int) -> None:
        runtime = make_runtime(selection=selection)

        with pytest.raises(InvalidSelectionError) as exc_info:
            ErrorSelector(runtime).select_one(sample_msghist)

        assert exc_info.value.index == selection

    def test_candidates_are_numbered(self, make_runtime, sample_msghist: str) -> None:
        runtime = make_runtime(selection=1)

        ErrorSelector(runtime).select_one(sample_msghist)

        assert runtime.candidates == [
            f"1. {CHAIN}[3]: E121: Undefined variable: err1, E15: Invalid expression: err1",
            f"2. {CHAIN}[4]: E121: Undefined variable: err2, E15: Invalid expression: err2",
            "3. /path/to/file.vim[33]: E605: Exception not caught: 0",
        ]

    def test_empty_history(self, make_runtime) -> None:
        runtime = make_runtime(selection=1)

        assert ErrorSelector(runtime).select_one("") is None
        assert runtime.candidates == []

    def test_single_error_skips_prompt(self, make_runtime) -> None:
        """Test that a lone error is returned without asking."""
        msghist = f"""
Error detected while processing {CHAIN}:
line    3:
E121: Undefined variable: err1
E15: Invalid expression: err1
"""
        runtime = make_runtime(selection=-1)

        error = ErrorSelector(runtime).select_one(msghist)

        assert error is not None
        assert error.throwpoint == f"{CHAIN}[3]"
        assert runtime.candidates == []


def test_format_candidate() -> None:
    error = ErrorRecord(throwpoint="function F[3]", messages=("E121: x",))
    assert format_candidate(2, error) == "2. function F[3]: E121: x"
