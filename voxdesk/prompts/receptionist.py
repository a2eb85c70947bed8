"""Receptionist prompt framing and callable action definitions.

The system prompt frames the assistant as a law-firm receptionist and tells
it about the two actions it can take through function calls. Tool schemas
use the OpenAI-compatible ``tools`` format accepted by Groq.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from voxdesk.core.models import ConversationConfig


TRANSFER_CALL = "transfer_call"
SCHEDULE_APPOINTMENT = "schedule_appointment"

# Spoken when the engine returns a function call without text
TRANSFER_FALLBACK_TEXT = "Transferring you now, please hold."
SCHEDULE_FALLBACK_TEXT = (
    "Perfect, I'm arranging your appointment. You will receive a confirmation shortly."
)
SCHEDULE_DETAILS_PROMPT = (
    "I can book that for you. Could you tell me your name and the type of consultation?"
)
UNKNOWN_ACTION_TEXT = "How else can I help you?"

# Spoken when a turn fails
TRANSCRIPTION_RETRY_TEXT = "I didn't catch that, could you repeat?"
COMPLETION_APOLOGY_TEXT = "I'm sorry, I'm having a little trouble. Could you say that again?"
SCHEDULE_FAILED_TEXT = (
    "I'm sorry, I couldn't save your appointment right now. "
    "Someone from the office will call you back to confirm."
)
TRANSFER_FAILED_TEXT = (
    "I'm sorry, I'm unable to transfer your call at the moment. "
    "Please call back later. Goodbye."
)
ESCALATION_TRANSFER_TEXT = "Let me put you through to a member of our team."
ESCALATION_HANGUP_TEXT = (
    "I'm sorry, I'm having trouble understanding. Please call back later. Goodbye."
)

DEFAULT_PERSONA = (
    "You are the virtual receptionist of a law firm. "
    "You answer calls politely and professionally."
)

TOOLS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": TRANSFER_CALL,
            "description": "Transfer the call to a lawyer when the caller needs a human",
            "parameters": {
                "type": "object",
                "properties": {
                    "reason": {
                        "type": "string",
                        "description": "Why the call is being transferred",
                    },
                    "urgency": {
                        "type": "string",
                        "enum": ["low", "medium", "high"],
                        "description": "How urgent the caller's situation is",
                    },
                },
                "required": ["reason"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": SCHEDULE_APPOINTMENT,
            "description": "Book an appointment once the caller's details are collected",
            "parameters": {
                "type": "object",
                "properties": {
                    "clientName": {"type": "string", "description": "Caller's full name"},
                    "appointmentType": {
                        "type": "string",
                        "description": "Type of consultation requested",
                    },
                    "preferredDate": {"type": "string", "description": "Requested date"},
                    "preferredTime": {"type": "string", "description": "Requested time"},
                    "clientPhone": {"type": "string", "description": "Callback number"},
                    "clientEmail": {"type": "string", "description": "E-mail address"},
                },
                "required": ["clientName", "appointmentType"],
            },
        },
    },
]


def build_system_prompt(config: ConversationConfig) -> str:
    """Build the system message for a completion request.

    Args:
        config: Caller configuration; its persona instructions lead the prompt.

    Returns:
        Complete system prompt string
    """
    persona = config.persona_instructions.strip() or DEFAULT_PERSONA

    prompt = f"""{persona}

## Your Abilities
1. Schedule appointments (use the {SCHEDULE_APPOINTMENT} function)
2. Transfer the call to a lawyer (use the {TRANSFER_CALL} function)
3. Answer general questions about the firm

## Rules
- Keep answers short, 1-2 sentences, they are read aloud on the phone
- If the caller mentions an urgency or emergency, offer to transfer them immediately
- For appointments, collect the caller's name, the type of consultation and their preferred date and time before calling {SCHEDULE_APPOINTMENT}
- Never give legal advice; stay within a receptionist's role
- Reply in the caller's language
"""
    if not config.transfer_destination:
        prompt += "- No lawyer is reachable by transfer right now; offer an appointment instead\n"

    return prompt
