"""
Offset bookkeeping between original and normalized text.

Every normalization step produces an ``Alignment``: a table holding, for each
character of its output, the half-open span of its input that produced it.
Steps are chained with ``Alignment.compose`` so that a whole normalizer sequence
collapses into one table from normalized characters to original characters.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .errors import InvalidEncodingError
from .types import InputSequence, Offsets


@dataclass(frozen=True, slots=True)
class Alignment:
    """Maps each character of a target string to a span of a source string."""

    spans: tuple[Offsets, ...]
    source_length: int

    @classmethod
    def identity(cls, length: int) -> "Alignment":
        """Return the alignment of a string onto itself."""
        return cls(tuple((i, i + 1) for i in range(length)), length)

    def __len__(self) -> int:
        return len(self.spans)

    def map_span(self, span: Offsets) -> Offsets:
        """
        Translate a target span into source coordinates.

        A non-empty span maps to the hull of the source spans of its first and
        last characters. An empty span maps to an empty span anchored at the
        start of the source span of the character it precedes.

        :param span: Half-open ``(start, end)`` span in target coordinates.
        :returns: Half-open span in source coordinates.
        """
        start, end = span
        if start < end:
            return self.spans[start][0], self.spans[end - 1][1]
        if start < len(self.spans):
            anchor = self.spans[start][0]
        elif self.spans:
            anchor = self.spans[-1][1]
        else:
            anchor = self.source_length
        return anchor, anchor

    def compose(self, step: "Alignment") -> "Alignment":
        """
        Compose this alignment with a later step.

        ``step`` maps a newer string onto this alignment's target; the result
        maps the newer string directly onto this alignment's source.
        """
        if step.source_length != len(self.spans):
            raise ValueError(
                f"cannot compose alignments: step expects {step.source_length} "
                f"characters, got {len(self.spans)}"
            )
        return Alignment(
            tuple(self.map_span(span) for span in step.spans), self.source_length
        )


@dataclass(frozen=True, slots=True)
class NormalizedString:
    """Original text, its normalized form, and the alignment between them."""

    original: str
    normalized: str
    alignment: Alignment

    @classmethod
    def from_str(cls, text: str) -> "NormalizedString":
        """Wrap text that has not been normalized yet."""
        return cls(text, text, Alignment.identity(len(text)))

    def __len__(self) -> int:
        return len(self.normalized)

    def transform(self, pieces: Iterable[tuple[str, Offsets]]) -> "NormalizedString":
        """
        Rebuild the normalized text from replacement pieces.

        Each piece is ``(replacement, span)`` where ``span`` addresses the
        current normalized text; every character of ``replacement`` is aligned
        to that span. An empty replacement deletes the span.

        :param pieces: Replacement pieces in output order.
        :returns: New normalized string with the composed alignment.
        """
        chars: list[str] = []
        spans: list[Offsets] = []
        for replacement, span in pieces:
            chars.append(replacement)
            spans.extend(span for _ in replacement)
        step = Alignment(tuple(spans), len(self.normalized))
        return NormalizedString(
            self.original, "".join(chars), self.alignment.compose(step)
        )

    def map_chars(self, func: Callable[[str], str]) -> "NormalizedString":
        """Replace every character with ``func(char)``, which may be empty or longer."""
        return self.transform(
            (func(char), (i, i + 1)) for i, char in enumerate(self.normalized)
        )

    def filter_chars(self, keep: Callable[[str], bool]) -> "NormalizedString":
        """Drop every character for which ``keep`` is false."""
        return self.map_chars(lambda char: char if keep(char) else "")

    def original_offsets(self, span: Offsets) -> Offsets:
        """Convert a span of the normalized text into original-text coordinates."""
        return self.alignment.map_span(span)


def ensure_text(sequence: InputSequence) -> str:
    """
    Return input as a well-formed ``str``.

    :param sequence: Raw input, either text or UTF-8 bytes.
    :returns: The decoded text.
    :raises InvalidEncodingError: If bytes are not valid UTF-8 or text holds
        lone surrogates that cannot be encoded as UTF-8.
    """
    if isinstance(sequence, (bytes, bytearray)):
        try:
            return bytes(sequence).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidEncodingError(
                "input is not valid UTF-8", position=e.start, reason=e.reason
            ) from e
    if not isinstance(sequence, str):
        raise TypeError(f"expected str or bytes, got {type(sequence).__name__}")
    try:
        sequence.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidEncodingError(
            "input contains unencodable characters", position=e.start, reason=e.reason
        ) from e
    return sequence


__all__ = ["Alignment", "NormalizedString", "ensure_text"]
