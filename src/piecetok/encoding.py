"""
The ``Encoding`` record produced for one input, and truncation/padding params.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from .errors import TokenizationError
from .types import Offsets, TokenId

type Direction = Literal["right", "left"]
type TruncationStrategy = Literal["longest_first", "only_first", "only_second"]

# offsets given to tokens that do not come from the text
SPECIAL_OFFSETS: Offsets = (0, 0)


@dataclass(frozen=True, slots=True)
class Encoding:
    """
    Parallel per-token sequences for one encoded input.

    All sequences have the same length: the number of emitted tokens,
    special and padding tokens included.
    """

    ids: list[TokenId] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)
    offsets: list[Offsets] = field(default_factory=list)
    type_ids: list[int] = field(default_factory=list)
    special_tokens_mask: list[int] = field(default_factory=list)
    attention_mask: list[int] = field(default_factory=list)
    # index of the pre-token each token belongs to
    word_ids: list[int | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        n = len(self.ids)
        lengths = (
            len(self.tokens),
            len(self.offsets),
            len(self.type_ids),
            len(self.special_tokens_mask),
            len(self.attention_mask),
            len(self.word_ids),
        )
        if any(length != n for length in lengths):
            raise TokenizationError(
                f"encoding sequences differ in length: {(n, *lengths)}"
            )

    def __len__(self) -> int:
        return len(self.ids)

    @classmethod
    def from_tokens(
        cls,
        ids: list[TokenId],
        tokens: list[str],
        offsets: list[Offsets],
        word_ids: list[int | None],
        type_id: int = 0,
    ) -> "Encoding":
        """Build an encoding of regular (non-special) tokens."""
        n = len(ids)
        return cls(
            ids=ids,
            tokens=tokens,
            offsets=offsets,
            type_ids=[type_id] * n,
            special_tokens_mask=[0] * n,
            attention_mask=[1] * n,
            word_ids=word_ids,
        )

    @classmethod
    def special(cls, token: str, idx: TokenId, type_id: int = 0) -> "Encoding":
        """Build a one-token encoding holding a special token."""
        return cls(
            ids=[idx],
            tokens=[token],
            offsets=[SPECIAL_OFFSETS],
            type_ids=[type_id],
            special_tokens_mask=[1],
            attention_mask=[1],
            word_ids=[None],
        )

    @classmethod
    def merge(cls, encodings: Iterable["Encoding"]) -> "Encoding":
        """Concatenate encodings in order."""
        out = cls()
        for enc in encodings:
            out.ids.extend(enc.ids)
            out.tokens.extend(enc.tokens)
            out.offsets.extend(enc.offsets)
            out.type_ids.extend(enc.type_ids)
            out.special_tokens_mask.extend(enc.special_tokens_mask)
            out.attention_mask.extend(enc.attention_mask)
            out.word_ids.extend(enc.word_ids)
        return out

    def with_type_id(self, type_id: int) -> "Encoding":
        """Return a copy whose tokens all carry ``type_id``."""
        return Encoding(
            ids=list(self.ids),
            tokens=list(self.tokens),
            offsets=list(self.offsets),
            type_ids=[type_id] * len(self),
            special_tokens_mask=list(self.special_tokens_mask),
            attention_mask=list(self.attention_mask),
            word_ids=list(self.word_ids),
        )

    def truncate(self, max_length: int, direction: Direction = "right") -> "Encoding":
        """Return a copy holding at most ``max_length`` tokens."""
        if max_length >= len(self):
            return self
        sl = slice(0, max_length) if direction == "right" else slice(len(self) - max_length, None)
        return Encoding(
            ids=self.ids[sl],
            tokens=self.tokens[sl],
            offsets=self.offsets[sl],
            type_ids=self.type_ids[sl],
            special_tokens_mask=self.special_tokens_mask[sl],
            attention_mask=self.attention_mask[sl],
            word_ids=self.word_ids[sl],
        )

    def pad(
        self,
        length: int,
        pad_id: TokenId = 0,
        pad_token: str = "[PAD]",
        pad_type_id: int = 0,
        direction: Direction = "right",
    ) -> "Encoding":
        """Return a copy padded up to ``length`` tokens; masked out of attention."""
        n = length - len(self)
        if n <= 0:
            return self
        padding = Encoding(
            ids=[pad_id] * n,
            tokens=[pad_token] * n,
            offsets=[SPECIAL_OFFSETS] * n,
            type_ids=[pad_type_id] * n,
            special_tokens_mask=[1] * n,
            attention_mask=[0] * n,
            word_ids=[None] * n,
        )
        if direction == "right":
            return Encoding.merge([self, padding])
        return Encoding.merge([padding, self])


@dataclass(frozen=True, slots=True)
class TruncationParams:
    """
    Truncation settings.

    ``max_length`` counts the tokens added by the post-processor.
    """

    max_length: int
    strategy: TruncationStrategy = "longest_first"
    direction: Direction = "right"


@dataclass(frozen=True, slots=True)
class PaddingParams:
    """
    Padding settings.

    ``length=None`` pads every batch to its longest encoding.
    """

    length: int | None = None
    pad_id: TokenId = 0
    pad_token: str = "[PAD]"
    pad_type_id: int = 0
    direction: Direction = "right"
    pad_to_multiple_of: int | None = None

    def target_length(self, longest: int) -> int:
        """Return the padded length for a batch whose longest encoding is ``longest``."""
        target = self.length if self.length is not None else longest
        multiple = self.pad_to_multiple_of
        if multiple and target % multiple:
            target += multiple - target % multiple
        return target


def truncate_pair(
    encoding: Encoding,
    pair: Encoding | None,
    budget: int,
    params: TruncationParams,
) -> tuple[Encoding, Encoding | None]:
    """
    Truncate one or two encodings so that together they fit in ``budget`` tokens.

    ``longest_first`` only shortens the longer sequence until both are equal,
    then shortens both alternately.

    :raises TokenizationError: If ``budget`` is negative or the chosen
        sequence cannot absorb the whole excess.
    """
    if budget < 0:
        raise TokenizationError(
            f"max_length {params.max_length} is smaller than the added special tokens"
        )
    if pair is None:
        if params.strategy == "only_second":
            raise TokenizationError("only_second truncation needs a pair of sequences")
        return encoding.truncate(budget, params.direction), None

    len_a, len_b = len(encoding), len(pair)
    excess = len_a + len_b - budget
    if excess <= 0:
        return encoding, pair

    match params.strategy:
        case "longest_first":
            short, long = sorted((len_a, len_b))
            new_short = min(short, budget // 2)
            new_long = min(long, budget - new_short)
            new_short = min(short, budget - new_long)
            if len_a >= len_b:
                new_a, new_b = new_long, new_short
            else:
                new_a, new_b = new_short, new_long
        case "only_first":
            if excess > len_a:
                raise TokenizationError("first sequence too short to truncate")
            new_a, new_b = len_a - excess, len_b
        case "only_second":
            if excess > len_b:
                raise TokenizationError("second sequence too short to truncate")
            new_a, new_b = len_a, len_b - excess
        case _:
            raise TokenizationError(f"unknown truncation strategy: {params.strategy!r}")

    return (
        encoding.truncate(new_a, params.direction),
        pair.truncate(new_b, params.direction),
    )


__all__ = [
    "Encoding",
    "TruncationParams",
    "PaddingParams",
    "truncate_pair",
    "SPECIAL_OFFSETS",
]
