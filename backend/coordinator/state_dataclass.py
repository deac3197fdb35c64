"""
Authoritative coordinator state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass

from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.policy import DoubleStartPolicy
from coordinator.enums.status import SessionStatus


@dataclass(frozen=True)
class CoordinatorState:
    """Immutable snapshot of all coordinator-owned state."""

    # ------------------------------------------------------------------
    # Observable fields (one broadcast channel each)
    # ------------------------------------------------------------------
    authorization: AuthorizationStatus | None = None
    utterance: str | None = None
    status: SessionStatus = SessionStatus.IDLE
    is_available: bool = False

    # ------------------------------------------------------------------
    # Session generation tracking
    # ------------------------------------------------------------------
    # Monotonic; bumped on every start attempt, never reused.
    # 0 means "no session has been attempted yet".
    run_id: int = 0

    # run_id whose resources (tap, request, task) are currently held.
    capture_run_id: int | None = None

    # Last RecognitionUpdate for run_id was marked final
    last_result_final: bool = False

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    double_start_policy: DoubleStartPolicy = DoubleStartPolicy.RESTART
