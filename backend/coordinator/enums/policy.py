"""
Policy for start_recording() while a session is already RECORDING.
"""

from __future__ import annotations

from enum import Enum


class DoubleStartPolicy(str, Enum):
    """
    RESTART:
        Cancel the current recognition task, release capture, publish
        STOPPED, then start a fresh session. Default.

    TOGGLE:
        Treat the call as stop_recording(). This is what the first release of
        this adapter did implicitly; it is kept as an explicit opt-in.

    IGNORE:
        No-op; start_recording() reports that no new session was started.
    """

    RESTART = "restart"
    TOGGLE = "toggle"
    IGNORE = "ignore"
