"""Data models for Vim script stacktraces."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Frame:
    """A single frame of a Vim script stacktrace.

    Field names follow quickfix/location list entries (:h setqflist()).
    """

    funcname: str = ""  # "<SNR>13_f" for script-local functions, empty for files
    flnum: int = 0  # line number relative to the start of the function
    line: str = ""  # empty for lambdas and partials
    filename: str = ""  # empty if defined on the command line
    lnum: int = 0  # line number relative to the start of the file
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Quickfix-compatible mapping without empty fields."""
        fields = {
            "funcname": self.funcname,
            "flnum": self.flnum,
            "line": self.line,
            "filename": self.filename,
            "lnum": self.lnum,
            "text": self.text,
        }
        return {key: value for key, value in fields.items() if value}

    def __str__(self) -> str:
        return f"{self.filename}:{self.lnum}: {self.text}"


@dataclass(frozen=True)
class Stacktrace:
    """Frames ordered from the outermost caller to the innermost frame."""

    frames: tuple[Frame, ...] = ()

    @property
    def innermost_frame(self) -> Frame:
        """The frame that threw or queried (last frame)."""
        if not self.frames:
            raise ValueError("Stacktrace has no frames")
        return self.frames[-1]

    def to_dict(self) -> dict[str, Any]:
        return {"stacks": [frame.to_dict() for frame in self.frames]}

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    def __len__(self) -> int:
        return len(self.frames)
