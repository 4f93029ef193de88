"""Factory functions for creating pipeline components and tokenizers."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final, Literal

from .decoders import WordPieceDecoder
from .errors import ModelLoadError, StrategyError
from .models import WordPiece
from .normalizers import (
    NFC,
    NFD,
    NFKC,
    NFKD,
    BertNormalizer,
    Lowercase,
    Normalizer,
    Strip,
    StripAccents,
)
from .pre_tokenizers import (
    BertPreTokenizer,
    Digits,
    PreTokenizer,
    Whitespace,
    WhitespaceSplit,
)
from .processors import BertProcessing
from .tokenizer import Tokenizer
from .types import TokenId
from .vocab import VOCAB_SUFFIX, Vocabulary

log = logging.getLogger(__name__)


# Component factories
# ===================================================================================

NormalizerName = Literal[
    "bert", "lowercase", "strip_accents", "strip", "nfc", "nfd", "nfkc", "nfkd"
]
PreTokenizerName = Literal["bert", "whitespace", "whitespace_split", "digits"]

_NORMALIZERS: Final[dict[str, type[Normalizer]]] = {
    "bert": BertNormalizer,
    "lowercase": Lowercase,
    "strip_accents": StripAccents,
    "strip": Strip,
    "nfc": NFC,
    "nfd": NFD,
    "nfkc": NFKC,
    "nfkd": NFKD,
}

_PRE_TOKENIZERS: Final[dict[str, type[PreTokenizer]]] = {
    "bert": BertPreTokenizer,
    "whitespace": Whitespace,
    "whitespace_split": WhitespaceSplit,
    "digits": Digits,
}


def list_normalizers() -> list[str]:
    """Return available normalizer names."""
    return list(_NORMALIZERS.keys())


def list_pre_tokenizers() -> list[str]:
    """Return available pre-tokenizer names."""
    return list(_PRE_TOKENIZERS.keys())


def get_normalizer(name: NormalizerName, **kwargs: Any) -> Normalizer:
    """
    Create a normalizer by name.

    :param name: Registered normalizer name (see ``list_normalizers``).
    :param kwargs: Forwarded to the normalizer constructor.
    :raises StrategyError: If the name is unknown.

    .. code-block:: python

        normalizer = get_normalizer("bert", lowercase=False)
    """
    if name not in _NORMALIZERS:
        raise StrategyError(
            "unknown normalizer name", invalid_name=name, available=list_normalizers()
        )
    return _NORMALIZERS[name](**kwargs)


def get_pre_tokenizer(name: PreTokenizerName, **kwargs: Any) -> PreTokenizer:
    """
    Create a pre-tokenizer by name.

    :param name: Registered pre-tokenizer name (see ``list_pre_tokenizers``).
    :param kwargs: Forwarded to the pre-tokenizer constructor.
    :raises StrategyError: If the name is unknown.
    """
    if name not in _PRE_TOKENIZERS:
        raise StrategyError(
            "unknown pre-tokenizer name",
            invalid_name=name,
            available=list_pre_tokenizers(),
        )
    return _PRE_TOKENIZERS[name](**kwargs)


# ===================================================================================


# Tokenizer factory
# ===================================================================================


def bert_tokenizer(
    vocab: Vocabulary | Mapping[str, TokenId] | str | Path,
    *,
    unk_token: str = "[UNK]",
    sep_token: str = "[SEP]",
    cls_token: str = "[CLS]",
    pad_token: str = "[PAD]",
    mask_token: str = "[MASK]",
    clean_text: bool = True,
    handle_chinese_chars: bool = True,
    strip_accents: bool | None = None,
    lowercase: bool = True,
    split_cjk: bool = False,
    continuing_subword_prefix: str = "##",
    max_input_chars_per_word: int | None = 100,
    cleanup: bool = False,
) -> Tokenizer:
    """
    Assemble the BERT WordPiece pipeline.

    ``BertNormalizer`` -> ``BertPreTokenizer`` -> ``WordPiece`` ->
    ``BertProcessing``, decoded with ``WordPieceDecoder``. The unknown,
    separator and sequence-start tokens must be in the vocabulary; the
    padding and mask tokens are registered as special tokens when present.

    :param vocab: Vocabulary, token -> id mapping, or path to a vocab file.
    :raises MissingSpecialTokenError: If a required special token is missing.
    :raises ModelLoadError: If ``vocab`` is a path that cannot be read.

    .. code-block:: python

        tokenizer = bert_tokenizer("vocab.txt")
        encoding = tokenizer.encode("Hello world")
    """
    if isinstance(vocab, (str, Path)):
        vocab = Vocabulary.from_file(vocab)
    elif not isinstance(vocab, Vocabulary):
        vocab = Vocabulary(vocab)

    model = WordPiece(
        vocab,
        unk_token=unk_token,
        continuing_subword_prefix=continuing_subword_prefix,
        max_input_chars_per_word=max_input_chars_per_word,
    )
    tokenizer = Tokenizer(
        model,
        normalizer=BertNormalizer(
            clean_text=clean_text,
            handle_chinese_chars=handle_chinese_chars,
            strip_accents=strip_accents,
            lowercase=lowercase,
        ),
        pre_tokenizer=BertPreTokenizer(split_cjk=split_cjk),
        post_processor=BertProcessing.from_vocab(vocab, sep=sep_token, cls_token=cls_token),
        decoder=WordPieceDecoder(prefix=continuing_subword_prefix, cleanup=cleanup),
    )

    specials = [unk_token, sep_token, cls_token, pad_token, mask_token]
    tokenizer.add_special_tokens(tok for tok in specials if tok in vocab)
    return tokenizer


def from_pretrained(vocab_path: str | Path, **kwargs: Any) -> Tokenizer:
    """
    Load a BERT WordPiece tokenizer from a vocab file.

    :param vocab_path: Vocab file, or a folder holding ``vocab.txt``.
    :param kwargs: Forwarded to ``bert_tokenizer``.
    :raises ModelLoadError: If the file is missing, unreadable or not a ``.txt`` file.

    .. code-block:: python

        tokenizer = from_pretrained("models/bert-base-uncased")
        ids = tokenizer.encode("Hello world").ids
    """
    path = Path(vocab_path)
    if path.is_dir():
        path = path / f"vocab{VOCAB_SUFFIX}"
    if path.suffix != VOCAB_SUFFIX:
        raise ModelLoadError(
            f"vocab file must have {VOCAB_SUFFIX} extension", model_path=str(path)
        )
    log.info(f"loading pretrained tokenizer from {path}")
    return bert_tokenizer(Vocabulary.from_file(path), **kwargs)


__all__ = [
    "NormalizerName",
    "PreTokenizerName",
    "list_normalizers",
    "list_pre_tokenizers",
    "get_normalizer",
    "get_pre_tokenizer",
    "bert_tokenizer",
    "from_pretrained",
]
