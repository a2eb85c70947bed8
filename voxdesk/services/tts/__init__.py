"""Text-to-Speech services (ElevenLabs, Edge TTS).

Provides TTS capabilities for the receptionist:
- ElevenLabsSynthesizer: Primary engine, telephony-ready output
- EdgeSynthesizer: Microsoft Edge TTS fallback (unofficial API)
- SynthesisRouter: Picks the caller's engine or the first available one
"""

from voxdesk.services.tts.edge import EdgeSynthesizer
from voxdesk.services.tts.elevenlabs import ElevenLabsSynthesizer
from voxdesk.services.tts.exceptions import (
    EngineUnavailableError,
    SynthesisConnectionError,
    SynthesisError,
)
from voxdesk.services.tts.protocol import SpeechSynthesizer, SynthesizedAudio
from voxdesk.services.tts.router import SynthesisRouter

__all__ = [
    # Services
    "ElevenLabsSynthesizer",
    "EdgeSynthesizer",
    "SynthesisRouter",
    # Protocol
    "SpeechSynthesizer",
    # Data types
    "SynthesizedAudio",
    # Exceptions
    "SynthesisError",
    "SynthesisConnectionError",
    "EngineUnavailableError",
]
