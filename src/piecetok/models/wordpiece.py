"""WordPiece subword model."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, override

from ..errors import MissingSpecialTokenError
from ..types import TokenId
from ..vocab import VOCAB_SUFFIX, Vocabulary
from .base import Model, Piece

if TYPE_CHECKING:
    from ..trainer import TrainingResult, WordPieceTrainer

log = logging.getLogger(__name__)


class WordPiece(Model):
    """
    Greedy longest-match-first subword model used by BERT.

    Starting at the beginning of a pre-token, the longest prefix present in
    the vocabulary is taken as a piece; every later candidate is looked up
    with ``continuing_subword_prefix`` prepended. If some position has no
    match at all, the whole pre-token becomes a single unknown piece.

    :param vocab: Vocabulary or token -> id mapping.
    :param unk_token: Token emitted when a pre-token cannot be covered.
    :param continuing_subword_prefix: Marker for pieces that continue a word.
    :param max_input_chars_per_word: Longer pre-tokens map straight to the
        unknown token; ``None`` disables the cap.
    :raises MissingSpecialTokenError: If ``unk_token`` is not in the vocabulary.
    """

    MODEL_TYPE = "wordpiece"

    def __init__(
        self,
        vocab: Vocabulary | Mapping[str, TokenId],
        unk_token: str = "[UNK]",
        continuing_subword_prefix: str = "##",
        max_input_chars_per_word: int | None = 100,
    ) -> None:
        if not isinstance(vocab, Vocabulary):
            vocab = Vocabulary(vocab)
        super().__init__(vocab, unk_token)
        if unk_token not in vocab:
            raise MissingSpecialTokenError(
                "unknown token missing from vocabulary", token=unk_token
            )
        self.unk_id: TokenId = vocab[unk_token]
        self.continuing_subword_prefix = continuing_subword_prefix
        self.max_input_chars_per_word = max_input_chars_per_word

    @classmethod
    def from_file(cls, vocab_path: str | Path, **kwargs: Any) -> "WordPiece":
        """
        Load a model from a one-token-per-line vocab file.

        :param vocab_path: Path to the vocab file.
        :param kwargs: Forwarded to the constructor.
        :raises ModelLoadError: If the file cannot be read.
        """
        return cls(Vocabulary.from_file(vocab_path), **kwargs)

    @classmethod
    def from_trainer_result(cls, result: "TrainingResult", **kwargs: Any) -> "WordPiece":
        """Build a model from the vocabulary learned by ``WordPieceTrainer``."""
        return cls(result.vocab, **kwargs)

    @override
    def tokenize(self, text: str) -> list[Piece]:
        """
        Segment one pre-token.

        :param text: Pre-token text; empty text yields no pieces.
        :returns: Pieces with offsets relative to ``text``, or one unknown
            piece spanning all of ``text``.
        """
        if not text:
            return []
        limit = self.max_input_chars_per_word
        if limit is not None and len(text) > limit:
            return [self._unk_piece(text)]
        pieces = self._segment(text)
        if pieces is None:
            return [self._unk_piece(text)]
        return pieces

    def _segment(self, text: str) -> list[Piece] | None:
        """Return the greedy segmentation of ``text`` or ``None`` on a miss."""
        vocab = self.vocab
        prefix = self.continuing_subword_prefix
        pieces: list[Piece] = []
        start = 0
        n = len(text)

        while start < n:
            end = n
            match: Piece | None = None
            # shrink candidate one character at a time
            while start < end:
                substr = text[start:end]
                if start > 0:
                    substr = prefix + substr
                idx = vocab.get(substr)
                if idx is not None:
                    match = Piece(idx, substr, (start, end), start > 0)
                    break
                end -= 1

            if match is None:
                return None
            pieces.append(match)
            start = end

        return pieces

    def _unk_piece(self, text: str) -> Piece:
        return Piece(self.unk_id, self.unk_token, (0, len(text)))

    def strip_prefix(self, token: str) -> str:
        """Return ``token`` without its continuation marker."""
        return token.removeprefix(self.continuing_subword_prefix)

    @override
    def save(self, folder: str | Path, prefix: str | None = None) -> list[Path]:
        """Write ``vocab.txt`` (or ``{prefix}-vocab.txt``) into ``folder``."""
        name = f"{prefix}-vocab" if prefix else "vocab"
        path = Path(folder) / f"{name}{VOCAB_SUFFIX}"
        log.info(f"saving wordpiece vocabulary to {path}")
        return [self.vocab.save(path)]

    def get_trainer(self, **kwargs: Any) -> "WordPieceTrainer":
        """Return a trainer producing vocabularies compatible with this model."""
        from ..trainer import WordPieceTrainer

        kwargs.setdefault("continuing_subword_prefix", self.continuing_subword_prefix)
        return WordPieceTrainer(**kwargs)

    def __repr__(self) -> str:
        return (
            f"WordPiece(vocab_size={len(self.vocab)}, unk_token={self.unk_token!r}, "
            f"continuing_subword_prefix={self.continuing_subword_prefix!r}, "
            f"max_input_chars_per_word={self.max_input_chars_per_word})"
        )
