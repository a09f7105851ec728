"""Playback module.

Provides:
- mpv JSON IPC client
- Playback sessions that persist progress back into the catalog
"""

from .mpv_ipc import MpvIpcClient, build_mpv_args
from .session import (
    END_DETECTION_TOLERANCE_SECS,
    ObservedProgress,
    PlaybackError,
    PlaybackResult,
    PlaybackSession,
    PlaybackState,
    is_finished,
    reconcile,
)

__all__ = [
    "MpvIpcClient",
    "build_mpv_args",
    "END_DETECTION_TOLERANCE_SECS",
    "ObservedProgress",
    "PlaybackError",
    "PlaybackResult",
    "PlaybackSession",
    "PlaybackState",
    "is_finished",
    "reconcile",
]
