"""Speech-to-Text services (Deepgram)."""

from voxdesk.services.stt.deepgram import DeepgramTranscriber
from voxdesk.services.stt.exceptions import TranscriptionError
from voxdesk.services.stt.protocol import Transcriber, TranscriptionResult

__all__ = [
    "DeepgramTranscriber",
    "Transcriber",
    "TranscriptionError",
    "TranscriptionResult",
]
