"""Parsing of Vim throwpoints.

A throwpoint names the position of an error or of the current call, either
as a chain of functions or as a position in a sourced file:

    function <SNR>13_test[1]..<SNR>13_test2[1]..F[3]
    /path/to/file.vim[23]

Vim also produces two other shapes, which normalize_throwpoint() rewrites
into the bracketed form above:

    function <SNR>13_test[1]..<SNR>13_test3, line 2        (v:throwpoint)
    Error detected while processing function <SNR>13_test[1]..<SNR>13_test3:
    line    2:                                              (:messages)
"""

from __future__ import annotations

import re

FUNCTION_PREFIX = "function "
DETECTED_PREFIX = "Error detected while processing "
CHAIN_SEPARATOR = ".."

LIVE_THROWPOINT = re.compile(r"^(?P<prefix>.*?), line (?P<lnum>\d+)\s*$", re.DOTALL)
DETECTED_LINE = re.compile(r"^(?P<prefix>.*?):\nline\s+(?P<lnum>\d+):?\s*$", re.DOTALL)
FILE_THROWPOINT = re.compile(r"\[\d+\]$")


def normalize_throwpoint(throwpoint: str) -> str:
    """Rewrite a throwpoint into its canonical bracketed form.

    Applying it to an already canonical throwpoint returns it unchanged.

    Args:
        throwpoint: Throwpoint in any of the shapes Vim produces

    Returns:
        Canonical throwpoint, e.g. "function F[1]..G[2]"
    """
    throwpoint = strip_detected_prefix(throwpoint)

    match = LIVE_THROWPOINT.match(throwpoint) or DETECTED_LINE.match(throwpoint)
    if match:
        throwpoint = strip_detected_prefix(f"{match.group('prefix')}[{match.group('lnum')}]")

    return throwpoint


def strip_detected_prefix(throwpoint: str) -> str:
    """Remove every leading "Error detected while processing " header."""
    while throwpoint.startswith(DETECTED_PREFIX):
        throwpoint = throwpoint[len(DETECTED_PREFIX) :]
    return throwpoint


def is_function_chain(throwpoint: str) -> bool:
    return throwpoint.startswith(FUNCTION_PREFIX)


def is_file_throwpoint(throwpoint: str) -> bool:
    """Check for a file position such as "/path/to/file.vim[23]"."""
    return not is_function_chain(throwpoint) and bool(FILE_THROWPOINT.search(throwpoint))


def split_link(link: str) -> tuple[str, int]:
    """Separate one chain link of the form body[lnum].

    The rightmost bracket wins because file names may contain "[".
    A link without a line number is tolerated and yields line 0.

        "<SNR>13_test[1]" -> ("<SNR>13_test", 1)
        "[14].vim[24]"    -> ("[14].vim", 24)
        "<SNR>14_nolnum"  -> ("<SNR>14_nolnum", 0)
    """
    i = link.rfind("[")
    if i == -1:
        return link, 0
    digits = link[i + 1 :].removesuffix("]")
    try:
        return link[:i], int(digits)
    except ValueError:
        return link[:i], 0


def split_chain(throwpoint: str) -> list[tuple[str, int]]:
    """Split a canonical throwpoint into (body, lnum) pairs, outermost first.

    Args:
        throwpoint: Canonical throwpoint

    Returns:
        One pair per function for a function chain, a single (path, lnum)
        pair for a file position
    """
    if not is_function_chain(throwpoint):
        return [split_link(throwpoint)]
    links = throwpoint[len(FUNCTION_PREFIX) :].split(CHAIN_SEPARATOR)
    return [split_link(link) for link in links]


def drop_current_frame(sfile: str) -> str:
    """Remove the innermost segment of an expand('<sfile>') result.

    The innermost segment is the function asking for its own call stack,
    so dropping it leaves the stack of the caller.
    """
    segments = sfile.split(CHAIN_SEPARATOR)
    return CHAIN_SEPARATOR.join(segments[:-1])
