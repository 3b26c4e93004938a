"""Building rich stacktraces from throwpoints.

This module implements the StackBuilder class that turns a throwpoint into
a Stacktrace. For every function in the chain it:
- Asks the running Vim for the verbose dump of the function
- Takes the defining script and the source text of the frame from the dump
- Looks up where the function starts in its script to compute the
  absolute line number

Frames that cannot be enriched (lambdas, partials, functions defined on the
command line, unreadable scripts) are still returned with the information
the throwpoint itself carries.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from vim_stacktrace.core.function_dump import parse_function_dump
from vim_stacktrace.core.throwpoint import (
    drop_current_frame,
    is_file_throwpoint,
    is_function_chain,
    normalize_throwpoint,
    split_chain,
    split_link,
)
from vim_stacktrace.models.stacktrace import Frame, Stacktrace
from vim_stacktrace.utils.async_helpers import (
    IntrospectionError,
    InvalidThrowpointError,
    UnresolvableFrameError,
)

if TYPE_CHECKING:
    from vim_stacktrace.core.function_index import FunctionIndexCache
    from vim_stacktrace.interfaces.runtime import ScriptRuntime
    from vim_stacktrace.interfaces.source import SourceReader

log = structlog.get_logger()


class StackBuilder:
    """Builds stacktraces by correlating the live runtime with script sources.

    Responsibilities:
    - Validate and split throwpoints
    - Resolve each function frame through the runtime's function dump
    - Compute absolute line numbers through the function index cache
    - Resolve file positions directly from the script

    Example:
        builder = StackBuilder(runtime, FunctionIndexCache(indexer), reader)
        stacktrace = builder.build("function F[5]..G, line 2")
        for frame in stacktrace:
            print(frame)
    """

    DICT_FUNCTION = re.compile(r"^[0-9]+$")

    def __init__(
        self,
        runtime: ScriptRuntime,
        index_cache: FunctionIndexCache,
        source_reader: SourceReader,
        home_dir: str | None = None,
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the StackBuilder.

        Args:
            runtime: Live runtime used for function dumps and <sfile>
            index_cache: Cache of function definition lines, reset per chain
            source_reader: Reader for script files of file positions
            home_dir: Directory used to expand "~/" in script paths
            encoding: Encoding of script files
        """
        self._runtime = runtime
        self._index_cache = index_cache
        self._source_reader = source_reader
        self._home_dir = home_dir
        self._encoding = encoding

    def build(self, throwpoint: str) -> Stacktrace:
        """Build a stacktrace from a throwpoint in any shape Vim produces.

        Args:
            throwpoint: e.g. "function <SNR>13_test[1]..<SNR>13_test3, line 2"

        Returns:
            Stacktrace ordered from the outermost frame

        Raises:
            InvalidThrowpointError: If the throwpoint has no recognizable shape
            IntrospectionError: If a required runtime query fails
        """
        return self.build_from_chain(normalize_throwpoint(throwpoint))

    def build_from_chain(self, chain: str) -> Stacktrace:
        """Build a stacktrace from a canonical throwpoint.

        Args:
            chain: Normalized throwpoint

        Returns:
            Stacktrace ordered from the outermost frame

        Raises:
            InvalidThrowpointError: If chain is neither a function chain nor a
                file position
        """
        if not is_function_chain(chain):
            if is_file_throwpoint(chain):
                filename, lnum = split_link(chain)
                return Stacktrace(frames=(self._build_file_frame(filename, lnum),))
            raise InvalidThrowpointError(f"Invalid throwpoint: {chain!r}")

        self._index_cache.reset()
        frames = tuple(
            self._build_function_frame(funcname, flnum) for funcname, flnum in split_chain(chain)
        )
        log.debug(
            "stacktrace_built",
            throwpoint=chain,
            frames=len(frames),
            indexed_files=len(self._index_cache),
        )
        return Stacktrace(frames=frames)

    def callstack(self) -> Stacktrace:
        """Build the call stack of the function asking for it.

        Returns:
            Stacktrace of the caller, without the querying frame itself

        Raises:
            IntrospectionError: If <sfile> cannot be expanded
            InvalidThrowpointError: If not called from within a function
        """
        sfile = self._runtime.expand("<sfile>")
        return self.build_from_chain(drop_current_frame(sfile))

    def _build_function_frame(self, funcname: str, flnum: int) -> Frame:
        """Resolve one link of a function chain.

        Args:
            funcname: Function name from the chain
            flnum: Line relative to the start of the function

        Returns:
            Frame, with source fields left empty when they cannot be resolved
        """
        # Numeric names are anonymous dictionary functions
        if self.DICT_FUNCTION.match(funcname):
            funcname = f"{{{funcname}}}"

        text = f"{funcname}:{flnum}:"

        try:
            dump = parse_function_dump(
                self._runtime.describe_function(funcname),
                home_dir=self._home_dir,
            )
        except (IntrospectionError, UnresolvableFrameError) as e:
            # Lambdas and partials cannot be listed
            log.debug("function_dump_unavailable", funcname=funcname, error=str(e))
            return Frame(funcname=funcname, flnum=flnum, text=text)

        line = dump.line_at(flnum)
        lnum = 0
        if dump.filename:
            start = self._index_cache.definition_line(funcname, dump.filename)
            if not start:
                start = dump.definition_line
            if start:
                lnum = start + flnum

        return Frame(
            funcname=funcname,
            flnum=flnum,
            line=line,
            filename=dump.filename,
            lnum=lnum,
            text=text + line,
        )

    def _build_file_frame(self, filename: str, lnum: int) -> Frame:
        """Resolve a position in a sourced script.

        Args:
            filename: Script path
            lnum: Line in the script

        Returns:
            Frame with the source line, or only the position if unreadable
        """
        try:
            content = self._source_reader.read(filename)
        except UnresolvableFrameError as e:
            log.debug("source_unavailable", filename=filename, error=str(e))
            return Frame(filename=filename, lnum=lnum)

        # Only "\n" ends a line in Vim script; "\r" of DOS files is dropped
        lines = content.decode(self._encoding, errors="replace").removesuffix("\n").split("\n")
        if 0 < lnum <= len(lines):
            line = lines[lnum - 1].removesuffix("\r")
            return Frame(filename=filename, lnum=lnum, line=line, text=line)
        return Frame(filename=filename, lnum=lnum)
