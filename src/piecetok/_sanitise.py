"""
Utilities for classifying characters and rendering tokens for display.
"""

import unicodedata
from typing import Final

# CJK Unified Ideographs blocks, as treated by BERT
CJK_RANGES: Final[tuple[tuple[int, int], ...]] = (
    (0x4E00, 0x9FFF),
    (0x3400, 0x4DBF),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B73F),
    (0x2B740, 0x2B81F),
    (0x2B920, 0x2CEAF),
    (0xF900, 0xFAFF),
    (0x2F800, 0x2FA1F),
)

# character class body usable inside a regex "[...]"
CJK_CLASS: Final[str] = "".join(
    f"{chr(lo)}-{chr(hi)}" for lo, hi in CJK_RANGES
)


def is_whitespace(c: str) -> bool:
    """Return whether ``c`` counts as whitespace (tab, newlines and Zs)."""
    if c in " \t\n\r":
        return True
    return unicodedata.category(c) == "Zs"


def is_control(c: str) -> bool:
    """Return whether ``c`` is a control character other than tab and newlines."""
    if c in "\t\n\r":
        return False
    # control category codes vary: Cc, Cf, Cn etc.
    # so check via first character
    return unicodedata.category(c)[0] == "C"


def is_chinese_char(c: str) -> bool:
    """Return whether ``c`` falls in one of the CJK ideograph blocks."""
    cp = ord(c)
    return any(lo <= cp <= hi for lo, hi in CJK_RANGES)


def _escape_ctrl_chars(s: str) -> str:
    """Replace all Unicode control characters with their escape sequences."""
    cleaned = []
    for c in s:
        if unicodedata.category(c)[0] != "C":
            cleaned.append(c)
        else:
            cleaned.append(f"\\u{ord(c):04x}")
    return "".join(cleaned)


def render_token(token: str) -> str:
    """Return ``token`` with control characters escaped, for logs and errors."""
    return _escape_ctrl_chars(token)
