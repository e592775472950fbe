"""Event streaming for workspace observers.

Provides:
- OutputBroadcaster with bounded per-subscriber queues and listeners
- Terminal escape stripping for display text
"""

from .channel import (
    TERMINAL_OUTPUT,
    WORKSPACE_REMOVED,
    WORKSPACE_UPDATED,
    BroadcastEvent,
    OutputBroadcaster,
)
from .event_parser import ChunkDecoder, OutputChunk, strip_ansi

__all__ = [
    "TERMINAL_OUTPUT",
    "WORKSPACE_REMOVED",
    "WORKSPACE_UPDATED",
    "BroadcastEvent",
    "ChunkDecoder",
    "OutputBroadcaster",
    "OutputChunk",
    "strip_ansi",
]
