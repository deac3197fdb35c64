"""
Recognizer binding variants.

Selection is explicit: the composing application picks one; nothing
defaults to a process-wide instance.
"""

from __future__ import annotations

from enum import Enum


class RecognizerVariant(str, Enum):
    """
    LIVE:
        Real microphone capture and Whisper recognition.

    TEST:
        Every endpoint fails loudly unless explicitly stubbed.

    PREVIEW:
        Scripted word-by-word utterance, no hardware.
    """

    LIVE = "live"
    TEST = "test"
    PREVIEW = "preview"
