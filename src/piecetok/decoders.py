"""Decoders turning token strings back into text."""

from abc import ABC, abstractmethod
from typing import Final, override

# BERT's tokenization-space cleanup, applied in order
_CLEANUP: Final[tuple[tuple[str, str], ...]] = (
    (" .", "."),
    (" ?", "?"),
    (" !", "!"),
    (" ,", ","),
    (" ' ", "'"),
    (" n't", "n't"),
    (" 'm", "'m"),
    (" do not", " don't"),
    (" 's", "'s"),
    (" 've", "'ve"),
    (" 're", "'re"),
)


class Decoder(ABC):
    """Base interface for decoders."""

    @abstractmethod
    def decode(self, tokens: list[str]) -> str:
        """Join token strings into text."""


class WordPieceDecoder(Decoder):
    """
    Inverse of WordPiece continuation marking.

    Tokens carrying ``prefix`` are glued to the previous token; every other
    token except the first is preceded by a space. This is a best-effort
    reconstruction: original whitespace and casing are not recovered.

    :param prefix: Continuation marker to strip.
    :param cleanup: Also remove spaces before punctuation and contractions.
    """

    def __init__(self, prefix: str = "##", cleanup: bool = False) -> None:
        self.prefix = prefix
        self.cleanup = cleanup

    @override
    def decode(self, tokens: list[str]) -> str:
        parts: list[str] = []
        for i, token in enumerate(tokens):
            if token.startswith(self.prefix):
                parts.append(token[len(self.prefix) :])
            elif i > 0:
                parts.append(" " + token)
            else:
                parts.append(token)
        text = "".join(parts)
        if self.cleanup:
            text = cleanup_spaces(text)
        return text

    def __repr__(self) -> str:
        return f"WordPieceDecoder(prefix={self.prefix!r}, cleanup={self.cleanup})"


def cleanup_spaces(text: str) -> str:
    """Remove the spaces a whitespace join leaves before punctuation and contractions."""
    for old, new in _CLEANUP:
        text = text.replace(old, new)
    return text


__all__ = ["Decoder", "WordPieceDecoder", "cleanup_spaces"]
