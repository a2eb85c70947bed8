"""WebSocket handler for a live call's media stream.

The media gateway sends one JSON message per event:
- start: the stream is connected; the session is created and greets the caller
- utterance: one complete caller utterance, as ``text`` or base64 ``audio``
- stop: the caller hung up

Audio for the caller goes back as ``playAudio`` events with a base64
payload, and ``clearAudio`` drops anything still buffered.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect, status

from voxdesk.core.exceptions import CallCapacityError, InvalidConversationConfigError
from voxdesk.core.orchestrator import CallOrchestrator
from voxdesk.core.session import CALLER_HANGUP
from voxdesk.logging_config import call_context, get_logger

logger: Any = get_logger(__name__)

AUDIO_CONTENT_TYPES = {
    "ulaw_8000": "audio/x-mulaw",
    "mp3": "audio/mpeg",
    "pcm_16000": "audio/x-l16",
}


class WebSocketAudioSender:
    """Sends synthesized audio to the caller over the call's WebSocket."""

    def __init__(self, websocket: WebSocket, stream_id: str) -> None:
        self._websocket = websocket
        self._stream_id = stream_id

    async def send_audio(self, audio_bytes: bytes, *, audio_format: str) -> None:
        """Send audio bytes to caller via WebSocket."""
        message = {
            "event": "playAudio",
            "streamId": self._stream_id,
            "media": {
                "contentType": AUDIO_CONTENT_TYPES.get(audio_format, "audio/x-mulaw"),
                "sampleRate": 8000 if audio_format == "ulaw_8000" else 16000,
                "payload": base64.b64encode(audio_bytes).decode("ascii"),
            },
        }
        await self._websocket.send_json(message)

    async def clear_audio(self) -> None:
        """Clear buffered audio."""
        await self._websocket.send_json({"event": "clearAudio", "streamId": self._stream_id})


async def call_stream_endpoint(
    websocket: WebSocket,
    call_id: str,
    orchestrator: CallOrchestrator,
) -> None:
    """Run the WebSocket side of one call until the stream stops."""
    with call_context(call_id):
        await _serve_stream(websocket, call_id, orchestrator)


async def _serve_stream(
    websocket: WebSocket,
    call_id: str,
    orchestrator: CallOrchestrator,
) -> None:
    await websocket.accept()
    logger.info(f"WebSocket connected for call {call_id}")

    account_id = websocket.query_params.get("account_id") or None
    started = False

    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received for call {call_id}")
                continue

            event = message.get("event", "")

            if event == "start":
                if started:
                    continue
                start_data = message.get("start", {})
                stream_id = start_data.get("streamId", call_id)
                sender = WebSocketAudioSender(websocket, stream_id)
                try:
                    await orchestrator.start_session(call_id, account_id, sender)
                except CallCapacityError:
                    logger.warning(f"Call {call_id} rejected: system at capacity")
                    await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
                    return
                except InvalidConversationConfigError as e:
                    logger.error(f"Call {call_id} rejected: {e}")
                    await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
                    return
                started = True
                logger.info(f"Stream started: {stream_id}")

            elif event == "utterance":
                if not started:
                    logger.warning(f"Utterance before start for call {call_id}, ignoring")
                    continue
                raw_input = _decode_utterance(message.get("utterance", {}))
                if raw_input is None:
                    continue
                mimetype = message.get("utterance", {}).get("mimetype", "audio/wav")
                await orchestrator.handle_caller_utterance(call_id, raw_input, mimetype=mimetype)

            elif event == "stop":
                logger.info(f"Stream stopped for call {call_id}")
                break

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for call {call_id}")

    finally:
        if started:
            await orchestrator.end_session(call_id, CALLER_HANGUP)


def _decode_utterance(data: dict[str, Any]) -> str | bytes | None:
    """Text as-is, audio decoded from base64; None when unusable."""
    if "text" in data:
        text = data["text"]
        if not isinstance(text, str):
            logger.warning("Utterance text is not a string")
            return None
        return text

    payload = data.get("audio", "")
    if not payload:
        logger.warning("Utterance event without text or audio")
        return None
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Failed to decode audio payload")
        return None
