"""Keyword intent classification."""
from typing import List, Tuple

GENERAL_INTENT = "general"

# Checked in order; the first rule with a matching keyword wins.
INTENT_RULES: List[Tuple[str, List[str]]] = [
    ("appointments", ["appointment", "schedule", "book", "meeting"]),
    ("transferring", ["transfer", "speak to", "talk to", "connect", "manager"]),
    ("farewells", ["bye", "goodbye", "thank", "that's all"]),
    ("hours", ["hours", "open", "closed"]),
    ("holding", ["hold", "wait", "moment"]),
    ("greetings", ["hello", "hi ", "hey"]),
]


def analyze_intent(speech: str) -> str:
    """
    Classify an utterance by substring matching.

    Args:
        speech: What the caller said

    Returns:
        Intent category, or "general" when nothing matches
    """
    lower = (speech or "").lower()

    for intent, keywords in INTENT_RULES:
        if any(keyword in lower for keyword in keywords):
            return intent

    # "hi" on its own has no trailing space to match against
    if lower.startswith("hi"):
        return "greetings"

    return GENERAL_INTENT
