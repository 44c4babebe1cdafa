import html
import re

# Script/style bodies are dropped entirely; any other tag is stripped but its text kept.
_DANGEROUS_BLOCK = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]*>")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_text(text: str | None) -> str:
    """
    Reduce free-text user input to plain text.

    Trims, removes HTML tags (keeping their text content), drops script and
    style bodies and strips control characters. Entities are decoded so the
    stored value is what the user typed, minus markup.
    """
    if not text:
        return ""

    cleaned = _DANGEROUS_BLOCK.sub("", text.strip())
    cleaned = _TAG.sub("", cleaned)
    cleaned = html.unescape(cleaned)
    # A decoded "&lt;b&gt;" must not turn back into markup
    cleaned = _TAG.sub("", cleaned)
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return cleaned.strip()


def sanitize_optional(text: str | None) -> str | None:
    """Like sanitize_text, but an empty result becomes None."""
    cleaned = sanitize_text(text)
    return cleaned or None
