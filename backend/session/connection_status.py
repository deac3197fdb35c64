"""
Connection status of one WebSocket client.

Tracked by RecognizerGateway, separately from the recognition session
status: a client can connect and disconnect while recording continues.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """WebSocket lifecycle of a single gateway."""
    DOWN = "DOWN"   # Not connected, or disconnected
    UP = "UP"       # Accepted and subscribed to the recognizer streams
