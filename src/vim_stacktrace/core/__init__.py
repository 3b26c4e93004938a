"""Core business logic components.

This module exports the main business logic classes:
- StackBuilder: Turns throwpoints into stacktraces
- FunctionIndexCache: Shared cache of function definition lines
- HistoryErrorExtractor: Finds errors in message history
- ErrorSelector: Chooses one error out of message history
- StacktraceService: Entry points for every request
- RequestHandler: Routes channel requests to the service
- StacktraceServer: Answers requests arriving on the channel
"""

from vim_stacktrace.core.function_index import FunctionIndexCache
from vim_stacktrace.core.history import HistoryErrorExtractor
from vim_stacktrace.core.request_handler import RequestHandler
from vim_stacktrace.core.selector import ErrorSelector
from vim_stacktrace.core.server import StacktraceServer
from vim_stacktrace.core.service import StacktraceService, create_service
from vim_stacktrace.core.stack_builder import StackBuilder

__all__ = [
    "ErrorSelector",
    "FunctionIndexCache",
    "HistoryErrorExtractor",
    "RequestHandler",
    "StackBuilder",
    "StacktraceServer",
    "StacktraceService",
    "create_service",
]
