"""Extraction of errors from Vim message history.

Vim reports errors in :messages as blocks like:

    Error detected while processing function Main[2]..<SNR>96_test[1]..F:
    line    3:
    E121: Undefined variable: err1
    E15: Invalid expression: err1
    line    4:
    E121: Undefined variable: err2
    Error detected while processing /path/to/file.vim:
    line   33:
    E605: Exception not caught: 0

History also contains unrelated messages, so the scanner is a small state
machine that recovers from anything not fitting the block grammar by
dropping the block being built:

    DEFAULT --header--> DETECTING --line N--> LINE --E123--> ERRMSG
       ^                                                       | |
       +-------------------(push on other text)----------------+ |
                           (push on header / line N) <-----------+
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum

import structlog

from vim_stacktrace.core.throwpoint import DETECTED_PREFIX
from vim_stacktrace.models.history import ErrorRecord

log = structlog.get_logger()

HEADER_PATTERN = re.compile(r"^" + re.escape(DETECTED_PREFIX) + r"(?P<base>.*):$")
LINE_PATTERN = re.compile(r"^line\s+(?P<lnum>\d+):$")
ERRMSG_PATTERN = re.compile(r"^E\d+:")


class HistoryState(Enum):
    """Position of the scanner inside an error block."""

    DEFAULT = "default"
    DETECTING = "detecting"  # after "Error detected while processing ...:"
    LINE = "line"  # after "line N:"
    ERRMSG = "errmsg"  # after at least one "E123: ..." message


@dataclass(frozen=True)
class ScanState:
    """Scanner state plus the error block under construction."""

    state: HistoryState = HistoryState.DEFAULT
    base: str = ""  # throwpoint from the header, without line number
    throwpoint: str = ""
    messages: tuple[str, ...] = ()

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(throwpoint=self.throwpoint, messages=self.messages)


INITIAL = ScanState()


def _detecting(base: str) -> ScanState:
    return ScanState(state=HistoryState.DETECTING, base=base)


def _line(base: str, lnum: str) -> ScanState:
    return ScanState(state=HistoryState.LINE, base=base, throwpoint=f"{base}[{lnum}]")


def transition(scan: ScanState, line: str) -> tuple[ScanState, ErrorRecord | None]:
    """Advance the scanner by one line of message history.

    Args:
        scan: Current scanner state
        line: Next line of history

    Returns:
        Tuple of (new state, finished error record or None)
    """
    header = HEADER_PATTERN.match(line)
    lnum = LINE_PATTERN.match(line)
    errmsg = ERRMSG_PATTERN.match(line)

    if scan.state is HistoryState.DEFAULT:
        if header:
            return _detecting(header.group("base")), None
        return scan, None

    if scan.state is HistoryState.DETECTING:
        if lnum:
            return _line(scan.base, lnum.group("lnum")), None
        if header:
            return _detecting(header.group("base")), None
        return INITIAL, None

    if scan.state is HistoryState.LINE:
        if errmsg:
            return replace(scan, state=HistoryState.ERRMSG, messages=(line,)), None
        if header:
            return _detecting(header.group("base")), None
        return INITIAL, None

    # HistoryState.ERRMSG
    if errmsg:
        return replace(scan, messages=scan.messages + (line,)), None
    record = scan.to_record()
    if lnum:
        return _line(scan.base, lnum.group("lnum")), record
    if header:
        return _detecting(header.group("base")), record
    return INITIAL, record


class HistoryErrorExtractor:
    """Splits message history into error records.

    Example:
        extractor = HistoryErrorExtractor()
        for error in extractor.extract(execute(":messages")):
            print(error.throwpoint, error.summary)
    """

    def extract(self, msghist: str) -> list[ErrorRecord]:
        """Extract every complete error block from message history.

        Args:
            msghist: Output of :messages

        Returns:
            Error records in the order they appear
        """
        records: list[ErrorRecord] = []
        scan = INITIAL
        # The trailing empty line flushes the last block
        for line in [*msghist.split("\n"), ""]:
            line = line.removesuffix("\r")
            scan, record = transition(scan, line)
            if record is not None:
                records.append(record)

        log.debug("history_errors_extracted", count=len(records))
        return records
