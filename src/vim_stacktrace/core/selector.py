"""Choosing one error out of message history."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from vim_stacktrace.core.history import HistoryErrorExtractor
from vim_stacktrace.models.history import ErrorRecord
from vim_stacktrace.utils.async_helpers import InvalidSelectionError

if TYPE_CHECKING:
    from vim_stacktrace.interfaces.runtime import Selector

log = structlog.get_logger()


def format_candidate(index: int, error: ErrorRecord) -> str:
    """Display line for one candidate, e.g. "1. function F[3]: E121: ..."."""
    return f"{index}. {error.throwpoint}: {error.summary}"


class ErrorSelector:
    """Picks the error to build a stacktrace for.

    A single error is returned as is; with several errors the user is asked
    to choose through the injected selector.

    Example:
        selector = ErrorSelector(runtime)
        error = selector.select_one(runtime.message_history())
    """

    def __init__(
        self,
        selector: Selector,
        extractor: HistoryErrorExtractor | None = None,
    ) -> None:
        """Initialize the ErrorSelector.

        Args:
            selector: Capability prompting the user for a choice
            extractor: Message history scanner
        """
        self._selector = selector
        self._extractor = extractor or HistoryErrorExtractor()

    def select_one(self, msghist: str) -> ErrorRecord | None:
        """Extract errors from message history and choose one.

        Args:
            msghist: Output of :messages

        Returns:
            The chosen error, or None if there is none or the user cancelled

        Raises:
            InvalidSelectionError: If the selector returns an index out of range
        """
        errors = self._extractor.extract(msghist)
        if not errors:
            return None
        if len(errors) == 1:
            return errors[0]

        candidates = [format_candidate(i, error) for i, error in enumerate(errors, start=1)]
        index = self._selector.select(candidates)
        if index == 0:
            log.debug("error_selection_cancelled", candidates=len(candidates))
            return None
        if not 0 < index <= len(errors):
            raise InvalidSelectionError(f"Selected invalid number: {index}", index)
        return errors[index - 1]
