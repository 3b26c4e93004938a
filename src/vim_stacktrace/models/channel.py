"""Data models for Vim channel messages."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ChannelMessage:
    """A decoded message received from Vim."""

    msg_id: int  # > 0 expects a reply, 0 for notifications
    body: Any  # decoded JSON payload

    @property
    def expects_reply(self) -> bool:
        return self.msg_id > 0
