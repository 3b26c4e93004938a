"""Data models for errors found in message history."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorRecord:
    """One error block from :messages output."""

    # e.g. "function F[5]..<lambda>3[1]..<SNR>13_test3[2]" or "/path/to/file.vim[14]"
    throwpoint: str
    # e.g. ("E121: Undefined variable: err1", "E15: Invalid expression: err1")
    messages: tuple[str, ...] = ()

    @property
    def summary(self) -> str:
        """Error messages joined into one line."""
        return ", ".join(self.messages)

    def to_dict(self) -> dict[str, Any]:
        return {"throwpoint": self.throwpoint, "messages": list(self.messages)}
