"""Parser for the output of :verbose function.

Example dump (execute(':verbose function F')):

       function F() abort
    	Last set from ~/.vim/plugin/f.vim line 2
    1    let l:G = {-> s:test()}
    2    return l:G()
       endfunction

Vim prints each body line number left aligned in a field of at least three
characters, followed by the source line as written.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from vim_stacktrace.utils.async_helpers import UnresolvableFrameError

LAST_SET_PREFIX = "\tLast set from "
LAST_SET_LINE = re.compile(r"^(?P<path>.+?) line (?P<lnum>\d+)$")
BODY_LINE = re.compile(r"^(?P<lnum>\d+)")
NUMBER_FIELD_WIDTH = 3


@dataclass(frozen=True)
class FunctionDump:
    """Parsed verbose function dump."""

    filename: str = ""  # empty if the function was defined interactively
    definition_line: int = 0  # from "Last set from ... line N", 0 if absent
    body: dict[int, str] = field(default_factory=dict)

    def line_at(self, flnum: int) -> str:
        """Source text at a function-relative line, empty if unknown."""
        return self.body.get(flnum, "")


def expand_home(path: str, home_dir: str | None = None) -> str:
    """Expand a leading "~/" against home_dir (the user's home by default)."""
    if not path.startswith("~/"):
        return path
    if home_dir is None:
        return os.path.expanduser(path)
    return os.path.join(home_dir, path[2:])


def parse_function_dump(dump: str, home_dir: str | None = None) -> FunctionDump:
    """Parse a verbose function dump.

    When several body lines carry the same number, the last one wins.

    Args:
        dump: Output of :verbose function {name}
        home_dir: Directory used to expand "~/" in the defining file

    Returns:
        FunctionDump with the defining file and the numbered body

    Raises:
        UnresolvableFrameError: If the dump is empty
    """
    lines = dump.strip("\n").split("\n")
    if not lines or not lines[0].strip():
        raise UnresolvableFrameError("Empty function dump")

    filename = ""
    definition_line = 0
    if len(lines) > 1 and lines[1].startswith(LAST_SET_PREFIX):
        filename = lines[1][len(LAST_SET_PREFIX) :]
        match = LAST_SET_LINE.match(filename)
        if match:
            filename = match.group("path")
            definition_line = int(match.group("lnum"))
        filename = expand_home(filename, home_dir)

    body: dict[int, str] = {}
    for line in lines:
        match = BODY_LINE.match(line)
        if match:
            number = match.group("lnum")
            # Exact number match; a prefix match would let line 1 pick up 10, 11, ...
            body[int(number)] = line[max(len(number), NUMBER_FIELD_WIDTH) :]

    return FunctionDump(filename=filename, definition_line=definition_line, body=body)
