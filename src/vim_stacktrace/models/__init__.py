"""Data models and transfer objects."""

from .channel import ChannelMessage
from .history import ErrorRecord
from .stacktrace import Frame, Stacktrace

__all__ = [
    # Stacktrace models
    "Frame",
    "Stacktrace",
    # History models
    "ErrorRecord",
    # Channel models
    "ChannelMessage",
]
