"""Cache of function definition lines per source file.

Building one stacktrace usually resolves several frames defined in the same
file. The cache keeps the parsed definition table of each file so the file
is indexed only once per build. StackBuilder resets it at the start of every
function-chain build, so tables never outlive the chain they were built for.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

import structlog

from vim_stacktrace.utils.async_helpers import UnresolvableFrameError
from vim_stacktrace.utils.locks import ReadWriteLock
from vim_stacktrace.utils.logging import LogEventNames

if TYPE_CHECKING:
    from vim_stacktrace.interfaces.source import FunctionIndexer

log = structlog.get_logger()

SNR_PREFIX = "<SNR>"


def source_function_name(funcname: str) -> str:
    """Translate a runtime function name into the name used in its source.

    Script-local functions are reported as "<SNR>13_test" at runtime but
    written as "s:test" in the script that defines them.

        "<SNR>13_test" -> "s:test"
        "F"            -> "F"
    """
    if not funcname.startswith(SNR_PREFIX):
        return funcname
    _, sep, name = funcname.partition("_")
    if not sep:
        return funcname
    return f"s:{name}"


class FunctionIndexCache:
    """Thread-safe map of file path to {function name: definition line}.

    Lookups share a read lock. A missing table is indexed outside the lock
    and inserted under the write lock; when two lookups race on the same
    file the first inserted table is kept. reset() takes the write lock and
    so excludes every other cache operation.

    Example:
        cache = FunctionIndexCache(VimScriptFunctionIndexer(reader))
        cache.reset()
        start = cache.definition_line("<SNR>13_test", "/path/to/file.vim")
    """

    def __init__(self, indexer: FunctionIndexer) -> None:
        """Initialize the cache.

        Args:
            indexer: Indexer used to populate missing entries
        """
        self._indexer = indexer
        self._tables: dict[str, Mapping[str, int]] = {}
        self._lock = ReadWriteLock()

    def lookup(self, path: str) -> Mapping[str, int]:
        """Get the definition table of a file, indexing it on first use.

        Files that cannot be read or parsed yield an empty table.

        Args:
            path: Absolute path of the script

        Returns:
            Mapping of source function name to definition line
        """
        with self._lock.read():
            table = self._tables.get(path)
        if table is not None:
            log.debug(LogEventNames.CACHE_HIT, path=path)
            return table

        log.debug(LogEventNames.CACHE_MISS, path=path)
        try:
            table = dict(self._indexer.index(path))
        except UnresolvableFrameError as e:
            log.debug("function_index_unavailable", path=path, error=str(e))
            table = {}

        with self._lock.write():
            return self._tables.setdefault(path, table)

    def definition_line(self, funcname: str, path: str) -> int:
        """Line of the :function statement defining funcname, 0 if unknown.

        Args:
            funcname: Runtime function name, e.g. "<SNR>13_test"
            path: File the function was defined in
        """
        return self.lookup(path).get(source_function_name(funcname), 0)

    def reset(self) -> None:
        """Drop every cached table."""
        with self._lock.write():
            self._tables.clear()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._tables)
