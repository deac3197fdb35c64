"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral constants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment-specific values (model, locale, device) belong in config.py.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio capture (float32 mono @ 16kHz)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1

# Frames per tap callback (matches the platform tap bufferSize)
AUDIO_TAP_BUFFER_FRAMES: Final[int] = 1024

# =============================================================================
# Recognition
# =============================================================================

DEFAULT_RECOGNIZER_LOCALE: Final[str] = "en-GB"

# Minimum spacing between two partial re-decodes of the buffered audio
PARTIAL_DECODE_MIN_INTERVAL_MS: Final[int] = 200

# Do not decode before this much audio has been buffered
PARTIAL_DECODE_MIN_AUDIO_MS: Final[int] = 300

# =============================================================================
# Streams
# =============================================================================

# Values buffered per async stream not yet consumed; oldest dropped beyond this
STREAM_BUFFER_MAX_VALUES: Final[int] = 256

# =============================================================================
# Preview variant (scripted, no hardware)
# =============================================================================

PREVIEW_WORDS: Final[Tuple[str, ...]] = (
    "this",
    "is",
    "a",
    "preview",
    "speech",
    "recognition",
)

PREVIEW_AUTHORIZATION_DELAY_S: Final[float] = 0.2

# Delay before each word = PREVIEW_WORD_DELAY_PER_CHAR_S * len(word)
PREVIEW_WORD_DELAY_PER_CHAR_S: Final[float] = 0.05

PREVIEW_STOP_DELAY_S: Final[float] = 0.4


# =============================================================================
# Whisper locales
# =============================================================================

# Language codes understood by multilingual Whisper models.
# English-only checkpoints (model name ending in ".en") accept "en" only.
WHISPER_LANGUAGE_CODES: Final[frozenset[str]] = frozenset({
    "af", "am", "ar", "as", "az", "ba", "be", "bg", "bn", "bo", "br", "bs",
    "ca", "cs", "cy", "da", "de", "el", "en", "es", "et", "eu", "fa", "fi",
    "fo", "fr", "gl", "gu", "ha", "haw", "he", "hi", "hr", "ht", "hu", "hy",
    "id", "is", "it", "ja", "jw", "ka", "kk", "km", "kn", "ko", "la", "lb",
    "ln", "lo", "lt", "lv", "mg", "mi", "mk", "ml", "mn", "mr", "ms", "mt",
    "my", "ne", "nl", "nn", "no", "oc", "pa", "pl", "ps", "pt", "ro", "ru",
    "sa", "sd", "si", "sk", "sl", "sn", "so", "sq", "sr", "su", "sv", "sw",
    "ta", "te", "tg", "th", "tk", "tl", "tr", "tt", "uk", "ur", "uz", "vi",
    "yi", "yo", "yue", "zh",
})
