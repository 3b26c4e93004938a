"""SourceReader reading scripts from the local filesystem."""

from __future__ import annotations

from pathlib import Path

from vim_stacktrace.utils.async_helpers import SourceReadError


class LocalSourceReader:
    """Reads Vim scripts from local disk."""

    def read(self, path: str) -> bytes:
        """Read a script.

        Args:
            path: Path of the script

        Returns:
            Raw file content

        Raises:
            SourceReadError: If the file cannot be read
        """
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise SourceReadError(f"Cannot read {path}: {e}") from e
