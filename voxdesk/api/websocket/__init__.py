"""WebSocket handlers for live call media streams.

This module provides:
- call_stream_endpoint: Main WebSocket handler
- WebSocketAudioSender: Sends synthesized audio back to the caller
"""

from voxdesk.api.websocket.call_stream import WebSocketAudioSender, call_stream_endpoint

__all__ = [
    "call_stream_endpoint",
    "WebSocketAudioSender",
]
