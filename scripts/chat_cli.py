#!/usr/bin/env python3
"""Interactive CLI to try the receptionist conversation flow.

This simulates a phone call without Plivo: type what the caller says and
see the reply plus the action each turn decided on. Completions go to Groq,
so GROQ_API_KEY must be set. Transfers and hangups are printed instead of
placed, and appointments are kept in memory.

Usage:
    python scripts/chat_cli.py [--engine standard|advanced] [--transfer-to +15551234567]
"""

import argparse
import asyncio
import uuid
from collections.abc import Mapping

from voxdesk.config import get_settings
from voxdesk.core.dispatcher import ActionDispatcher
from voxdesk.core.session import CallSession
from voxdesk.core.turn_processor import TurnProcessor
from voxdesk.db.protocol import AppointmentRecord
from voxdesk.db.store import default_conversation_config
from voxdesk.logging_config import setup_logging
from voxdesk.services.llm.groq import GroqCompletionEngine
from voxdesk.services.stt.deepgram import DeepgramTranscriber
from voxdesk.services.tts.protocol import SynthesizedAudio
from voxdesk.services.tts.router import SynthesisRouter


class ConsoleVoice:
    """Synthesizer that hands the text straight through for printing."""

    name = "console"
    is_available = True

    async def synthesize(self, text: str, *, voice: str | None = None) -> SynthesizedAudio:
        return SynthesizedAudio(
            audio_bytes=text.encode("utf-8"),
            engine=self.name,
            voice=voice or "text",
            audio_format="text",
            input_chars=len(text),
        )

    async def close(self) -> None:
        pass


class ConsoleSender:
    async def send_audio(self, audio_bytes: bytes, *, audio_format: str) -> None:
        print(f"🤖 Bot: {audio_bytes.decode('utf-8')}")

    async def clear_audio(self) -> None:
        pass


class ConsoleTelephony:
    async def initiate_transfer(
        self, call_id: str, destination: str, metadata: Mapping[str, str]
    ) -> None:
        print(f"  📞 Transfer to {destination} ({dict(metadata)})")

    async def terminate_call(self, call_id: str) -> None:
        print("  📴 Call hung up")


class MemoryAppointments:
    def __init__(self) -> None:
        self.records: list[AppointmentRecord] = []

    async def persist_appointment(self, record: AppointmentRecord) -> str:
        self.records.append(record)
        print(f"  📝 Appointment: {record.client_name} / {record.appointment_type} "
              f"on {record.preferred_date or '?'} at {record.preferred_time or '?'}")
        return str(uuid.uuid4())


def new_session(args: argparse.Namespace) -> CallSession:
    settings = get_settings()
    config = default_conversation_config(settings)
    config = type(config)(
        completion_engine_id=args.engine,
        temperature=config.temperature,
        synthesis_engine_id="console",
        persona_instructions=config.persona_instructions,
        transfer_destination=args.transfer_to or config.transfer_destination,
        welcome_message=config.welcome_message,
    )

    processor = TurnProcessor(
        GroqCompletionEngine(settings),
        DeepgramTranscriber(settings),
        completion_timeout=settings.completion_timeout,
        max_history_tokens=settings.max_history_tokens,
    )
    dispatcher = ActionDispatcher(ConsoleTelephony(), MemoryAppointments())
    return CallSession(
        f"cli-{uuid.uuid4().hex[:8]}",
        config,
        processor=processor,
        dispatcher=dispatcher,
        synthesizer=SynthesisRouter([ConsoleVoice()]),
        sender=ConsoleSender(),
        max_consecutive_failures=settings.max_consecutive_failures,
    )


async def main(args: argparse.Namespace) -> None:
    print("=" * 60)
    print("☎️  Voxdesk Receptionist - Test CLI")
    print("=" * 60)
    print("\nType messages as if you're calling the office.")
    print("Commands: /transcript, /reset (new call), /quit (exit)\n")

    session = new_session(args)
    await session.start()

    try:
        while True:
            user_input = input("👤 You: ").strip()
            if not user_input:
                continue

            if user_input.lower() == "/quit":
                print("\n👋 Goodbye!")
                break

            if user_input.lower() == "/transcript":
                print(session.transcript or "(empty)")
                continue

            if user_input.lower() == "/reset":
                await session.end()
                session = new_session(args)
                print("\n🔄 New call started!")
                await session.start()
                continue

            result = await session.handle_utterance(user_input)
            if result is not None:
                print(f"   ➡️  {result.action.value}")

            if session.is_ended:
                print(f"\n📊 Call ended: {session.outcome.value if session.outcome else '?'}"
                      f" ({session.end_reason})")
                session = new_session(args)
                print("\n🔄 New call started!")
                await session.start()
    finally:
        await session.end()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--engine", default="standard", choices=["standard", "advanced"])
    parser.add_argument("--transfer-to", default=None)
    setup_logging(level="WARNING")
    asyncio.run(main(parser.parse_args()))
