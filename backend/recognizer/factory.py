"""
Explicit variant selection.

The application picks its recognizer once, at composition time, from
AppConfig.recognizer_variant. The test variant built here has no overrides,
so any use of it fails; tests that need working endpoints construct
UnimplementedSpeechRecognizer themselves.
"""

from __future__ import annotations

from config import AppConfig
from recognizer.base import SpeechRecognizer
from recognizer.live import LiveSpeechRecognizer
from recognizer.preview import PreviewSpeechRecognizer
from recognizer.unimplemented import UnimplementedSpeechRecognizer
from recognizer.variant import RecognizerVariant


def build_speech_recognizer(config: AppConfig) -> SpeechRecognizer:
    variant = config.recognizer_variant

    if variant is RecognizerVariant.LIVE:
        return LiveSpeechRecognizer.from_config(config)

    if variant is RecognizerVariant.PREVIEW:
        return PreviewSpeechRecognizer()

    if variant is RecognizerVariant.TEST:
        return UnimplementedSpeechRecognizer()

    raise ValueError(f"Unknown recognizer variant: {variant!r}")
