"""
Authorization status enumeration.

The stream element type is `AuthorizationStatus | None`; None means no
consent flow has reported yet.
"""

from __future__ import annotations

from enum import Enum


class AuthorizationStatus(str, Enum):
    """Outcome of the platform consent flow for microphone + recognition."""

    UNDETERMINED = "UNDETERMINED"
    DENIED = "DENIED"
    RESTRICTED = "RESTRICTED"
    AUTHORIZED = "AUTHORIZED"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    AuthorizationStatus.UNDETERMINED: "not determined",
    AuthorizationStatus.DENIED: "denied",
    AuthorizationStatus.RESTRICTED: "restricted",
    AuthorizationStatus.AUTHORIZED: "authorized",
}
