"""
Immutable token <-> id vocabulary and the one-token-per-line vocab file format.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Final

from .errors import ModelLoadError, VocabularyError
from .types import TokenId, Vocab

VOCAB_SUFFIX: Final[str] = ".txt"

log = logging.getLogger(__name__)


class Vocabulary(Mapping[str, TokenId]):
    """
    Bijective mapping between token strings and dense ids.

    Ids always cover ``[0, len(vocab))``. The mapping is read-only once built;
    retraining produces a new ``Vocabulary`` instead of mutating this one.
    """

    __slots__ = ("_tok_to_id", "_id_to_tok")

    def __init__(self, vocab: Mapping[str, TokenId]) -> None:
        """
        Build a vocabulary from a token -> id mapping.

        :param vocab: Token strings mapped to unique ids.
        :raises VocabularyError: If ids repeat, are negative or leave gaps.
        """
        id_to_tok: list[str | None] = [None] * len(vocab)
        for tok, idx in vocab.items():
            if not 0 <= idx < len(vocab):
                raise VocabularyError(
                    f"token id {idx} outside dense range",
                    vocab_size=len(vocab),
                    invalid_tok=tok,
                )
            if id_to_tok[idx] is not None:
                raise VocabularyError(f"duplicate token id {idx}", invalid_tok=tok)
            id_to_tok[idx] = tok
        self._tok_to_id: Mapping[str, TokenId] = MappingProxyType(dict(vocab))
        self._id_to_tok: tuple[str, ...] = tuple(id_to_tok)  # type: ignore[arg-type]

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> "Vocabulary":
        """
        Build a vocabulary assigning ids in iteration order.

        :raises VocabularyError: If a token appears twice.
        """
        vocab: Vocab = {}
        for tok in tokens:
            if tok in vocab:
                raise VocabularyError("duplicate token", invalid_tok=tok)
            vocab[tok] = len(vocab)
        return cls(vocab)

    @classmethod
    def from_file(cls, path: str | Path) -> "Vocabulary":
        """
        Load a vocabulary file: one token per line, line number is the id.

        :param path: Path to the vocab file.
        :raises ModelLoadError: If the file does not exist or cannot be decoded.
        :raises VocabularyError: If the file repeats a token.
        """
        path = Path(path)
        if not path.is_file():
            raise ModelLoadError("vocab filepath does not exist", model_path=str(path))

        log.info(f"loading vocabulary from {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                tokens = [line.rstrip("\r\n") for line in f]
        except UnicodeDecodeError as e:
            raise ModelLoadError("vocab file is not UTF-8", model_path=str(path)) from e

        vocab = cls.from_tokens(tokens)
        log.debug(f"loaded {len(vocab)} tokens")
        return vocab

    def save(self, path: str | Path) -> Path:
        """Write the vocabulary one token per line in id order and return the path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        log.debug(f"saving vocab to {path}")
        with path.open("w", encoding="utf-8", newline="\n") as f:
            for tok in self._id_to_tok:
                f.write(f"{tok}\n")
        return path

    def id_to_token(self, idx: TokenId) -> str | None:
        """Return the token for ``idx`` or ``None`` when out of range."""
        if 0 <= idx < len(self._id_to_tok):
            return self._id_to_tok[idx]
        return None

    def tokens(self) -> tuple[str, ...]:
        """Return every token in id order."""
        return self._id_to_tok

    def get(self, tok: str, default: TokenId | None = None) -> TokenId | None:  # type: ignore[override]
        return self._tok_to_id.get(tok, default)

    def __getitem__(self, tok: str) -> TokenId:
        return self._tok_to_id[tok]

    def __contains__(self, tok: object) -> bool:
        return tok in self._tok_to_id

    def __iter__(self) -> Iterator[str]:
        return iter(self._id_to_tok)

    def __len__(self) -> int:
        return len(self._id_to_tok)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Vocabulary):
            return self._id_to_tok == other._id_to_tok
        return super().__eq__(other)

    def __hash__(self) -> int:
        return hash(self._id_to_tok)

    def __repr__(self) -> str:
        return f"Vocabulary(size={len(self)})"


__all__ = ["Vocabulary", "VOCAB_SUFFIX"]
