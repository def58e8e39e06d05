"""Plain-text cleanup for assistant replies.

Replies are shown as plain text, so common Markdown decorations are removed.
"""

import re

_RULES: list[tuple[re.Pattern[str], str]] = [
    # Echoed transcript blocks, up to the next header or the end
    (re.compile(r"^\s*#+\s+(?:User|Assistant):.*?(?=^\s*#+|\Z)", re.MULTILINE | re.DOTALL), ""),
    (re.compile(r"^#+\s+", re.MULTILINE), ""),  # headers
    (re.compile(r"###\s+"), "\n"),  # inline section markers
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),  # bold
    (re.compile(r"(?<!\w)_(.+?)_(?!\w)"), r"\1"),  # italic, leaves snake_case alone
    (re.compile(r"\[(.+?)\]\((.+?)\)"), r"\1"),  # links keep their label
    (re.compile(r"---+"), ""),  # dividers
]


def clean_reply(text: str) -> str:
    """Strip Markdown formatting from an assistant reply."""
    for pattern, replacement in _RULES:
        text = pattern.sub(replacement, text)
    return text.strip()
