"""
Search text tokenization and LIKE escaping.
"""

import re
from typing import List

LIKE_ESCAPE_CHAR = "\\"

# Anything but letters and digits at either end of a word.
_EDGE_PUNCTUATION = re.compile(r"^[\W_]+|[\W_]+$")


def _strip_edges(word: str) -> str:
    return _EDGE_PUNCTUATION.sub("", word)


def tokenize(raw_text: str) -> List[str]:
    """
    Split raw search text into word tokens.

    Tokens are whitespace-delimited with surrounding punctuation removed.
    Empty tokens and case-insensitive repeats are dropped; first-seen order
    is kept.

    Args:
        raw_text: Text as typed by the caller

    Returns:
        Ordered list of tokens, empty for blank or all-punctuation input
    """
    tokens: List[str] = []
    seen = set()
    for word in (raw_text or "").split():
        token = _strip_edges(word)
        if not token:
            continue
        key = token.lower()
        if key in seen:
            continue
        seen.add(key)
        tokens.append(token)
    return tokens


def normalize_phrase(raw_text: str) -> str:
    """Return the full search phrase with whitespace runs collapsed."""
    return " ".join((raw_text or "").split())


def escape_like(value: str, escape_char: str = LIKE_ESCAPE_CHAR) -> str:
    """Escape LIKE wildcards so ``value`` is matched literally."""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", escape_char + "%")
        .replace("_", escape_char + "_")
    )
