"""Topic guard keeping the assistant on health subjects."""

HEALTH_KEYWORDS = (
    "health",
    "medical",
    "doctor",
    "hospital",
    "medicine",
    "exercise",
    "diet",
    "sleep",
    "stress",
    "wellness",
    "fitness",
    "symptom",
    "health risk",
    "treatment",
    "therapy",
    "nutrition",
    "disease",
    "condition",
)

REFUSAL = (
    "I'm specialized in health topics. Please ask me about health, wellness, "
    "medicine, fitness, nutrition, or healthcare!"
)


def mentions_health(text: str | None) -> bool:
    """True if text contains any health keyword (case-insensitive)."""
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in HEALTH_KEYWORDS)


def guard_reply(reply: str, question: str | None) -> str:
    """Replace an off-topic reply with the refusal text.

    A reply is kept when either it or the user's question mentions health.
    """
    if mentions_health(reply) or mentions_health(question):
        return reply
    return REFUSAL
