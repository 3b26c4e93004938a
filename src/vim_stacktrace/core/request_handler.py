"""Dispatch of channel requests to the stacktrace service.

A request body is a JSON object naming the operation in "id":

    {"id": "stacktrace#callstack"}
    {"id": "stacktrace#build", "throwpoint": "function F[1]..G, line 2"}
    {"id": "stacktrace#histerrs", "msghist": "..."}
    {"id": "stacktrace#fromhist"}

Results are plain JSON values. Failures are reported to Vim as
{"error": "<message>"}.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from vim_stacktrace.utils.async_helpers import RequestError, StacktraceError
from vim_stacktrace.utils.logging import LogEventNames, bind_context

if TYPE_CHECKING:
    from vim_stacktrace.core.service import StacktraceService

log = structlog.get_logger()


class RequestHandler:
    """Routes decoded request bodies to StacktraceService.

    Example:
        handler = RequestHandler(service)
        reply = handler.respond({"id": "stacktrace#build", "throwpoint": tp})
    """

    CALLSTACK = "stacktrace#callstack"
    BUILD = "stacktrace#build"
    HISTERRS = "stacktrace#histerrs"
    FROMHIST = "stacktrace#fromhist"

    def __init__(self, service: StacktraceService) -> None:
        self._service = service
        self._routes: dict[str, Callable[[dict[str, Any]], Any]] = {
            self.CALLSTACK: self._callstack,
            self.BUILD: self._build,
            self.HISTERRS: self._histerrs,
            self.FROMHIST: self._fromhist,
        }

    def handle(self, body: Any) -> Any:
        """Execute a request.

        Args:
            body: Decoded request body

        Returns:
            JSON-serializable result

        Raises:
            RequestError: If the body is malformed
            StacktraceError: If the operation fails
        """
        if not isinstance(body, dict):
            raise RequestError(f"Message body is invalid: {body!r}")
        if "id" not in body:
            raise RequestError(f"id field is not in message body: {body!r}")
        request_id = body["id"]
        if not isinstance(request_id, str):
            raise RequestError(f"id is not string: {request_id!r}")

        route = self._routes.get(request_id)
        if route is None:
            raise RequestError(f"Got an unexpected id: {request_id}")

        bind_context(request_id=request_id)
        log.debug("request_dispatched")
        return route(body)

    def respond(self, body: Any) -> Any:
        """Execute a request and render failures as an error object.

        Args:
            body: Decoded request body

        Returns:
            The result of handle(), or {"error": message}
        """
        try:
            return self.handle(body)
        except StacktraceError as e:
            log.warning(LogEventNames.REQUEST_FAILED, error_type=type(e).__name__, error=str(e))
            return {"error": str(e)}

    def _callstack(self, body: dict[str, Any]) -> Any:
        return self._service.callstack().to_dict()

    def _build(self, body: dict[str, Any]) -> Any:
        throwpoint = _require_string(body, "throwpoint")
        return self._service.build(throwpoint).to_dict()

    def _histerrs(self, body: dict[str, Any]) -> Any:
        msghist = _require_string(body, "msghist")
        return [error.to_dict() for error in self._service.histerrs(msghist)]

    def _fromhist(self, body: dict[str, Any]) -> Any:
        stacktrace = self._service.fromhist()
        return stacktrace.to_dict() if stacktrace is not None else None


def _require_string(body: dict[str, Any], key: str) -> str:
    if key not in body:
        raise RequestError(f"{key} is required in message body: {body!r}")
    value = body[key]
    if not isinstance(value, str):
        raise RequestError(f"{key} is not string: {value!r}")
    return value
