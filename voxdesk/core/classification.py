"""Keyword-based next-action classification.

Used only when the completion engine answers with plain text instead of a
structured function call. Vocabulary covers English and French callers.
"""

from __future__ import annotations

import re

from voxdesk.core.models import NextAction

TRANSFER_KEYWORDS = (
    "urgent",
    "urgency",
    "urgence",
    "emergency",
    "transfer",
    "transferring",
    "transférer",
    "transfert",
    "lawyer",
    "attorney",
    "avocat",
    "speak to someone",
    "talk to someone",
    "real person",
    "human",
)

SCHEDULE_KEYWORDS = (
    "appointment",
    "book",
    "booking",
    "schedule",
    "consultation",
    "rendez-vous",
    "rdv",
)

FAREWELL_KEYWORDS = (
    "goodbye",
    "good bye",
    "bye",
    "have a nice day",
    "have a good day",
    "au revoir",
    "bonne journée",
)

# Transfer reason for keyword matches; never the caller's own words
KEYWORD_TRANSFER_REASON = "transfer keywords detected"


def _compile(keywords: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)


TRANSFER_PATTERN = _compile(TRANSFER_KEYWORDS)
SCHEDULE_PATTERN = _compile(SCHEDULE_KEYWORDS)
FAREWELL_PATTERN = _compile(FAREWELL_KEYWORDS)


def classify_action(reply_text: str, caller_text: str) -> NextAction:
    """Pick the next action from the reply and the caller's words.

    Precedence: transfer, then schedule, then hangup, else continue.
    """
    combined = f"{caller_text}\n{reply_text}"

    if TRANSFER_PATTERN.search(combined):
        return NextAction.TRANSFER
    if SCHEDULE_PATTERN.search(combined):
        return NextAction.SCHEDULE
    if FAREWELL_PATTERN.search(combined):
        return NextAction.HANGUP
    return NextAction.CONTINUE
