"""
Subword model interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..types import Offsets, TokenId
from ..vocab import Vocabulary


@dataclass(frozen=True, slots=True)
class Piece:
    """
    One subword of a pre-token.

    ``offsets`` are relative to the pre-token text. ``value`` is the
    vocabulary string, including the continuation marker when
    ``is_continuation`` is set.
    """

    id: TokenId
    value: str
    offsets: Offsets
    is_continuation: bool = False


class Model(ABC):
    """
    Abstract base class for subword models.

    A model owns an immutable vocabulary and segments single pre-tokens.
    """

    MODEL_TYPE: str = "base"

    def __init__(self, vocab: Vocabulary, unk_token: str) -> None:
        super().__init__()
        self.vocab = vocab
        self.unk_token = unk_token

    @abstractmethod
    def tokenize(self, text: str) -> list[Piece]:
        """Segment one pre-token into pieces."""
        ...

    @abstractmethod
    def save(self, folder: str | Path, prefix: str | None = None) -> list[Path]:
        """Persist the model into ``folder`` and return the written files."""
        ...

    def token_to_id(self, token: str) -> TokenId | None:
        """Return the id of ``token`` or ``None`` if it is not in the vocabulary."""
        return self.vocab.get(token)

    def id_to_token(self, idx: TokenId) -> str | None:
        """Return the token for ``idx`` or ``None`` if out of range."""
        return self.vocab.id_to_token(idx)

    def get_vocab(self) -> Vocabulary:
        """Return the (read-only) vocabulary."""
        return self.vocab

    def get_vocab_size(self) -> int:
        """Return the number of tokens in the vocabulary."""
        return len(self.vocab)
