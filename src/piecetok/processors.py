"""Post-processors adding sequence-boundary special tokens."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import override

from .encoding import Encoding
from .errors import MissingSpecialTokenError
from .types import TokenId


class PostProcessor(ABC):
    """Base interface for post-processors."""

    @abstractmethod
    def added_tokens(self, is_pair: bool) -> int:
        """Return how many special tokens ``process`` adds."""

    @abstractmethod
    def process(
        self,
        encoding: Encoding,
        pair: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        """Combine one or two encodings into the final encoding."""

    @abstractmethod
    def special_tokens(self) -> dict[str, TokenId]:
        """Return the special tokens this processor inserts."""

    @abstractmethod
    def with_vocab(self, vocab: Mapping[str, TokenId]) -> "PostProcessor":
        """Return a copy whose special token ids are looked up in ``vocab``."""


class BertProcessing(PostProcessor):
    """
    BERT template: ``[CLS] A [SEP]`` or ``[CLS] A [SEP] B [SEP]``.

    ``[CLS]``, sequence A and the first ``[SEP]`` get type id 0; sequence B
    and its trailing ``[SEP]`` get type id 1. Inserted tokens carry
    ``(0, 0)`` offsets.

    :param sep: ``(token, id)`` of the separator.
    :param cls: ``(token, id)`` of the sequence-start token.
    """

    def __init__(self, sep: tuple[str, TokenId], cls: tuple[str, TokenId]) -> None:
        self.sep = sep
        self.cls = cls

    @classmethod
    def from_vocab(
        cls,
        vocab: Mapping[str, TokenId],
        sep: str = "[SEP]",
        cls_token: str = "[CLS]",
    ) -> "BertProcessing":
        """
        Look up both special tokens in ``vocab``.

        :raises MissingSpecialTokenError: If either token is missing.
        """
        for tok in (cls_token, sep):
            if tok not in vocab:
                raise MissingSpecialTokenError(
                    "special token missing from vocabulary", token=tok
                )
        return cls(sep=(sep, vocab[sep]), cls=(cls_token, vocab[cls_token]))

    @override
    def with_vocab(self, vocab: Mapping[str, TokenId]) -> "BertProcessing":
        return BertProcessing.from_vocab(vocab, sep=self.sep[0], cls_token=self.cls[0])

    @override
    def added_tokens(self, is_pair: bool) -> int:
        return 3 if is_pair else 2

    @override
    def special_tokens(self) -> dict[str, TokenId]:
        return {self.cls[0]: self.cls[1], self.sep[0]: self.sep[1]}

    @override
    def process(
        self,
        encoding: Encoding,
        pair: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        if not add_special_tokens:
            parts = [encoding.with_type_id(0)]
            if pair is not None:
                parts.append(pair.with_type_id(1))
            return Encoding.merge(parts)

        parts = [
            Encoding.special(*self.cls, type_id=0),
            encoding.with_type_id(0),
            Encoding.special(*self.sep, type_id=0),
        ]
        if pair is not None:
            parts.append(pair.with_type_id(1))
            parts.append(Encoding.special(*self.sep, type_id=1))
        return Encoding.merge(parts)

    def __repr__(self) -> str:
        return f"BertProcessing(sep={self.sep!r}, cls={self.cls!r})"


__all__ = ["PostProcessor", "BertProcessing"]
