"""
Audio capture adapter contract.

This module defines the *interface only*: no buffering, no recognition, no
session decisions live here.

Key invariants:
- The runtime owns the call order: activate_session, install_tap, start.
  Teardown runs in the opposite direction: stop, remove_tap.
- The tap callback runs on the capture thread. It must not block and must
  not touch coordinator state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

import numpy as np
from numpy.typing import NDArray


FrameHandler = Callable[[NDArray[np.float32]], None]


class AudioCaptureAdapter(ABC):
    """
    Abstract interface for a microphone capture engine.

    Implementations are responsible for:
    - Configuring the host audio session for recording
    - Delivering float32 mono frames to the installed tap
    - Starting and stopping the capture engine

    Non-responsibilities:
    - No run_id awareness
    - No recognition requests or tasks
    - No state machine logic
    """

    @abstractmethod
    def activate_session(self) -> None:
        """
        Configure and activate the audio session for recording.

        Raises:
            ConfigurationError if the input device cannot be used.
        """
        raise NotImplementedError

    @abstractmethod
    def deactivate_session(self) -> None:
        """Release the audio session. Idempotent."""
        raise NotImplementedError

    @abstractmethod
    def install_tap(self, on_frame: FrameHandler) -> None:
        """
        Install a capture tap on the input bus.

        Every captured buffer is passed to on_frame, in capture order.

        Raises:
            ConfigurationError if the tap cannot be installed.
        """
        raise NotImplementedError

    @abstractmethod
    def remove_tap(self) -> None:
        """Remove the capture tap. Idempotent."""
        raise NotImplementedError

    @abstractmethod
    def start(self) -> None:
        """
        Start the capture engine.

        Raises:
            ConfigurationError if the engine fails to start.
        """
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        """Stop the capture engine. Idempotent."""
        raise NotImplementedError

    @property
    @abstractmethod
    def is_running(self) -> bool:
        raise NotImplementedError
