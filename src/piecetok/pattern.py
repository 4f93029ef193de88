"""Named regexes for splitting text into pre-tokens."""

from enum import Enum

from ._sanitise import CJK_CLASS
from .errors import PatternError

# ASCII symbols BERT treats as punctuation next to Unicode \p{P}
_PUNCT = r"\p{P}!-/:-@\[-`{-~"


class SplitPattern(str, Enum):
    """
    Pre-defined regex patterns for pre-tokenization.

    Each pattern matches the pre-tokens themselves; text between matches
    is discarded by the default ``matched`` behavior.

    Source for the BERT classes:
    https://github.com/google-research/bert/blob/master/tokenization.py
    """

    # every punctuation char alone, else runs of anything but whitespace/punctuation
    BERT = rf"[{_PUNCT}]|[^\s{_PUNCT}]+"

    # same as BERT with each CJK ideograph isolated
    BERT_CJK = rf"[{_PUNCT}]|[{CJK_CLASS}]|[^\s{_PUNCT}{CJK_CLASS}]+"

    WHITESPACE = r"\w+|[^\w\s]+"

    WHITESPACE_SPLIT = r"\S+"

    PUNCTUATION = rf"[{_PUNCT}]"

    DIGITS = r"\p{N}+"

    DIGIT = r"\p{N}"

    @classmethod
    def get(cls, name: str) -> str:
        """Get patterns by name (case-insensitive, ``-`` or ``_`` separated)."""
        try:
            return cls[name.upper().replace("-", "_")].value
        except KeyError:
            raise PatternError(
                f"unknown pattern: {name!r} "
                f"(valid patterns: {', '.join(list_patterns())})"
            )


def get_pattern(name: str) -> str:
    """Return the regex source of the named split pattern."""
    return SplitPattern.get(name)


def list_patterns() -> list[str]:
    """Return names of all available built-in split patterns."""
    return [pat.name.lower() for pat in SplitPattern]


__all__ = ["SplitPattern", "get_pattern", "list_patterns"]
