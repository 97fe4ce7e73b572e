import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Normalize free text so that puzzle answers compare deterministically.

    Applies Unicode NFKD decomposition, drops everything except letters,
    digits and whitespace (combining accents included), collapses runs of
    whitespace into single spaces, then trims and lowercases.

    Args:
        text: Raw user input or stored answer.

    Returns:
        str: Normalized text ("" for empty input).
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFKD", text)
    text = "".join(
        ch for ch in text
        if ch.isspace() or unicodedata.category(ch)[0] in ("L", "N")
    )
    text = _WHITESPACE.sub(" ", text)
    return text.strip().lower()


def are_answers_equal(a: str, b: str) -> bool:
    """Compare two answers after normalization."""
    return normalize_text(a) == normalize_text(b)
