"""Protocol definitions for pluggable adapters."""

from .runtime import ScriptRuntime, Selector
from .source import FunctionIndexer, SourceReader

__all__ = ["FunctionIndexer", "ScriptRuntime", "Selector", "SourceReader"]
