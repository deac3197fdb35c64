"""
The four live channels owned by one coordinator.

Values are published by the runtime only. Consumers subscribe through the
recognizer facade; the derived new-utterance stream is built on top of
`utterance` (see streams.utterances).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.status import SessionStatus
from streams.broadcast import Broadcast


@dataclass
class CoordinatorChannels:
    authorization: Broadcast[AuthorizationStatus | None] = field(
        default_factory=lambda: Broadcast("authorization_status")
    )
    utterance: Broadcast[str | None] = field(
        default_factory=lambda: Broadcast("recognized_utterance")
    )
    status: Broadcast[SessionStatus] = field(
        default_factory=lambda: Broadcast("recognition_status")
    )
    availability: Broadcast[bool] = field(
        default_factory=lambda: Broadcast("is_recognition_available")
    )

    def close_all(self) -> None:
        self.authorization.close()
        self.utterance.close()
        self.status.close()
        self.availability.close()
