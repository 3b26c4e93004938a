"""Locating :function definitions in Vim scripts.

Only the definition line of each function is needed, so scripts are
scanned line by line instead of being parsed. Definitions whose name is not
a plain identifier (dictionary functions such as "s:d.f", curly-brace
names) cannot be referenced from a throwpoint by that name and are skipped.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from vim_stacktrace.interfaces.source import SourceReader

log = structlog.get_logger()


class VimScriptFunctionIndexer:
    """Maps function names to the line of their :function statement.

    Example:
        indexer = VimScriptFunctionIndexer(LocalSourceReader())
        indexer.index("/path/to/plugin.vim")  # {"F": 2, "s:test": 6}
    """

    # :fu[nction][!] {name}(
    FUNCTION_PATTERN = re.compile(
        r"^[\s:]*fu(?:n|nc|nct|ncti|nctio|nction)?!?\s+"
        r"(?P<name>(?:<SID>|[gs]:)?[A-Za-z_][A-Za-z0-9_#]*)\s*\("
    )
    SID_PREFIX = "<SID>"

    def __init__(self, reader: SourceReader, encoding: str = "utf-8") -> None:
        """Initialize the indexer.

        Args:
            reader: Reader used to load scripts
            encoding: Encoding of the scripts
        """
        self._reader = reader
        self._encoding = encoding

    def index(self, path: str) -> dict[str, int]:
        """Index the function definitions of a script.

        Args:
            path: Path of the script

        Returns:
            Mapping of function name to 1-based definition line; the first
            definition of a name wins

        Raises:
            SourceReadError: If the script cannot be read
        """
        content = self._reader.read(path).decode(self._encoding, errors="replace")
        functions = self.index_text(content)
        log.debug("functions_indexed", path=path, count=len(functions))
        return functions

    def index_text(self, text: str) -> dict[str, int]:
        """Index the function definitions of script text."""
        functions: dict[str, int] = {}
        for lnum, line in enumerate(text.split("\n"), start=1):
            match = self.FUNCTION_PATTERN.match(line)
            if not match:
                continue
            name = match.group("name")
            functions.setdefault(name, lnum)
            # <SID>f and s:f name the same script-local function
            if name.startswith(self.SID_PREFIX):
                functions.setdefault(f"s:{name[len(self.SID_PREFIX):]}", lnum)
        return functions
