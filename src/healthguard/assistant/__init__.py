"""Server side of the health-chat function."""

from .guard import HEALTH_KEYWORDS, REFUSAL, guard_reply, mentions_health
from .prompts import build_system_prompt, max_tokens_for
from .service import DONE_FRAME, HealthAssistant, delta_frame, sse_frame

__all__ = [
    "DONE_FRAME",
    "HEALTH_KEYWORDS",
    "HealthAssistant",
    "REFUSAL",
    "build_system_prompt",
    "delta_frame",
    "guard_reply",
    "max_tokens_for",
    "mentions_health",
    "sse_frame",
]
