"""Abstract interfaces for reading and indexing Vim script sources."""

from collections.abc import Mapping
from typing import Protocol


class SourceReader(Protocol):
    """Reads raw script sources."""

    def read(self, path: str) -> bytes:
        """
        Read a source file.

        Args:
            path: Absolute path of the file

        Returns:
            Raw file content

        Raises:
            SourceReadError: If the file cannot be read
        """
        ...


class FunctionIndexer(Protocol):
    """Locates function definitions in a script file."""

    def index(self, path: str) -> Mapping[str, int]:
        """
        Map every function defined in a file to its definition line.

        Names are keyed as written in the source ("F", "s:test",
        "foo#bar"), lines are 1-based and point at the :function line.

        Args:
            path: Absolute path of the file

        Returns:
            Mapping of function name to definition line

        Raises:
            UnresolvableFrameError: If the file cannot be read or parsed
        """
        ...
