"""Entry points for every stacktrace request.

StacktraceService ties the throwpoint grammar, the stack builder and the
history scanner to the live runtime. create_service() wires the default
collaborators from configuration.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from vim_stacktrace.core.function_index import FunctionIndexCache
from vim_stacktrace.core.history import HistoryErrorExtractor
from vim_stacktrace.core.selector import ErrorSelector
from vim_stacktrace.core.stack_builder import StackBuilder
from vim_stacktrace.models.stacktrace import Stacktrace

if TYPE_CHECKING:
    from vim_stacktrace.config.schema import StacktraceConfig
    from vim_stacktrace.interfaces.runtime import ScriptRuntime, Selector
    from vim_stacktrace.interfaces.source import FunctionIndexer, SourceReader
    from vim_stacktrace.models.history import ErrorRecord

log = structlog.get_logger()


class StacktraceService:
    """Serves callstack, build, histerrs and fromhist requests.

    Example:
        service = create_service(config, runtime, runtime)
        stacktrace = service.build("function F[5]..G, line 2")
    """

    def __init__(
        self,
        runtime: ScriptRuntime,
        builder: StackBuilder,
        error_selector: ErrorSelector,
        extractor: HistoryErrorExtractor,
    ) -> None:
        self._runtime = runtime
        self._builder = builder
        self._error_selector = error_selector
        self._extractor = extractor

    def callstack(self) -> Stacktrace:
        """Current call stack of the calling Vim script function."""
        return self._builder.callstack()

    def build(self, throwpoint: str) -> Stacktrace:
        """Stacktrace for a throwpoint similar to v:throwpoint."""
        return self._builder.build(throwpoint)

    def histerrs(self, msghist: str) -> list[ErrorRecord]:
        """Every error recorded in the given message history."""
        return self._extractor.extract(msghist)

    def fromhist(self) -> Stacktrace | None:
        """Stacktrace of an error picked from the current message history.

        The error messages are prepended to the text of the innermost frame.

        Returns:
            Stacktrace, or None if history holds no error or the user cancelled

        Raises:
            IntrospectionError: If message history cannot be read
            InvalidSelectionError: If the user picks an invalid entry
            InvalidThrowpointError: If the selected error has no usable position
        """
        msghist = self._runtime.message_history()
        error = self._error_selector.select_one(msghist)
        if error is None:
            return None

        log.info("history_error_selected", throwpoint=error.throwpoint)
        stacktrace = self._builder.build(error.throwpoint)
        if not stacktrace.frames:
            return stacktrace

        *outer, last = stacktrace.frames
        last = replace(last, text=f"{error.summary} : {last.text}")
        return Stacktrace(frames=(*outer, last))


def create_service(
    config: StacktraceConfig,
    runtime: ScriptRuntime,
    selector: Selector,
    source_reader: SourceReader | None = None,
    indexer: FunctionIndexer | None = None,
) -> StacktraceService:
    """Factory function to create a StacktraceService with all dependencies.

    Args:
        config: Application configuration
        runtime: Live runtime
        selector: Capability prompting the user to choose an error
        source_reader: Script reader (local filesystem by default)
        indexer: Function definition indexer (line scanner by default)

    Returns:
        Configured StacktraceService instance
    """
    from vim_stacktrace.adapters.source.filesystem import LocalSourceReader
    from vim_stacktrace.adapters.source.indexer import VimScriptFunctionIndexer

    encoding = config.source.encoding
    home_dir = config.source.home_dir or Path.home()

    reader = source_reader or LocalSourceReader()
    index_cache = FunctionIndexCache(indexer or VimScriptFunctionIndexer(reader, encoding))
    builder = StackBuilder(
        runtime,
        index_cache,
        reader,
        home_dir=str(home_dir),
        encoding=encoding,
    )
    extractor = HistoryErrorExtractor()
    return StacktraceService(
        runtime,
        builder,
        ErrorSelector(selector, extractor),
        extractor,
    )
