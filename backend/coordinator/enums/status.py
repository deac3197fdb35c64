"""
Session status enumeration.

Rules:
- This enum defines ONLY the per-session lifecycle values.
- No transition logic here; transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """
    Lifecycle of one capture + recognition session.

    IDLE:
        No session has been started yet.

    RECORDING:
        Audio capture is running and frames feed the recognition request.

    STOPPING:
        Capture stopped and end-of-audio signalled; waiting for the
        recognition task to deliver its last result.

    STOPPED:
        Session resources released. A new session may begin.
    """

    IDLE = "IDLE"
    RECORDING = "RECORDING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"

    @property
    def description(self) -> str:
        """Human readable label, as shown by the demo client."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    SessionStatus.IDLE: "not started",
    SessionStatus.RECORDING: "recording",
    SessionStatus.STOPPING: "stopping",
    SessionStatus.STOPPED: "stopped",
}
