"""System prompt for the health assistant."""

from ..config import CHAT_MODE_CONCISE

ASSISTANT_NAME = "AKASHII"

_SYSTEM_TEMPLATE = """You are {name}, an AI Health Intelligence Agent for SDOP Health Guardian platform.

CRITICAL INSTRUCTIONS:
- ONLY answer health, wellness, medical, fitness, nutrition, and medical topics
- REFUSE non-health topics politely by saying: "{refusal}"
- Provide SHORT, DIRECT, and PRACTICAL health advice
- NEVER diagnose or prescribe medications - recommend consulting doctors
- Be encouraging and empathetic
- Keep responses concise and structured

If user asks about: stress, sleep, exercise, diet, medicine, health risks, fitness, nutrition, symptoms, healthcare, hospitals, wellness → ANSWER IT
If user asks about: politics, sports, movies, programming, math, etc. → REFUSE POLITELY

{length}

{context}

Remember: You MUST stay on topic. Health only!"""

PROMPT_REFUSAL = "I'm specialized in health topics. Please ask me about health, wellness, medicine, or fitness!"


def is_concise(mode: str | None) -> bool:
    return mode == CHAT_MODE_CONCISE


def build_system_prompt(mode: str | None = None, user_context: str | None = None) -> str:
    """Render the system prompt for a reply mode and optional user context."""
    if is_concise(mode):
        length = "Keep response to 2-3 sentences maximum. Maximum 60 words."
    else:
        length = "Keep response to 100-200 words."
    context = f"Context: {user_context}" if user_context else ""
    return _SYSTEM_TEMPLATE.format(
        name=ASSISTANT_NAME,
        refusal=PROMPT_REFUSAL,
        length=length,
        context=context,
    )


def max_tokens_for(mode: str | None) -> int:
    """Token budget of a reply."""
    return 120 if is_concise(mode) else 500
