"""
Tokenizer pipeline: normalizer -> pre-tokenizer -> model -> post-processor.
"""

import dataclasses
import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import regex as re

from .alignment import NormalizedString, ensure_text
from .decoders import Decoder
from .encoding import Encoding, PaddingParams, TruncationParams, truncate_pair
from .errors import MissingSpecialTokenError, PieceTokError, VocabularyError
from .models import Model, WordPiece
from .normalizers import Normalizer
from .parallel import ParallelMode, map_ordered, resolve_workers
from .pre_tokenizers import PreToken, PreTokenizer
from .processors import PostProcessor
from .types import EncodeInput, InputSequence, TokenId

if TYPE_CHECKING:
    from .strategy import SpecialTokenStrategy
    from .trainer import WordPieceTrainer

log = logging.getLogger(__name__)

# below this many characters AUTO mode encodes serially
_AUTO_MIN_CHARS = 100_000


@dataclass(frozen=True, slots=True)
class Pipeline:
    """Immutable snapshot of every stage and setting used by one encode call."""

    model: Model
    normalizer: Normalizer | None = None
    pre_tokenizer: PreTokenizer | None = None
    post_processor: PostProcessor | None = None
    decoder: Decoder | None = None
    truncation: TruncationParams | None = None
    padding: PaddingParams | None = None
    # special token strings a strategy may match atomically in raw text
    special_tokens: Mapping[str, TokenId] = field(
        default_factory=lambda: MappingProxyType({})
    )


class Tokenizer:
    """
    Composable WordPiece tokenization pipeline.

    Every stage but the model is optional. The configured stages form an
    immutable ``Pipeline`` snapshot: each encode call reads the snapshot
    once, and every reconfiguration builds and validates a new snapshot that
    replaces the old one under a lock. Encodes already running keep the
    snapshot they started with.

    :raises MissingSpecialTokenError: If the post-processor's special tokens
        are not in the model vocabulary with the same ids.
    """

    def __init__(
        self,
        model: Model,
        normalizer: Normalizer | None = None,
        pre_tokenizer: PreTokenizer | None = None,
        post_processor: PostProcessor | None = None,
        decoder: Decoder | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._pipeline = _validate(
            Pipeline(model, normalizer, pre_tokenizer, post_processor, decoder)
        )

    # Pipeline access
    # ===================================================================================

    @property
    def pipeline(self) -> Pipeline:
        """Return the current pipeline snapshot."""
        return self._pipeline

    @property
    def model(self) -> Model:
        return self._pipeline.model

    @model.setter
    def model(self, model: Model) -> None:
        self.swap_model(model)

    @property
    def normalizer(self) -> Normalizer | None:
        return self._pipeline.normalizer

    @normalizer.setter
    def normalizer(self, normalizer: Normalizer | None) -> None:
        self._replace(normalizer=normalizer)

    @property
    def pre_tokenizer(self) -> PreTokenizer | None:
        return self._pipeline.pre_tokenizer

    @pre_tokenizer.setter
    def pre_tokenizer(self, pre_tokenizer: PreTokenizer | None) -> None:
        self._replace(pre_tokenizer=pre_tokenizer)

    @property
    def post_processor(self) -> PostProcessor | None:
        return self._pipeline.post_processor

    @post_processor.setter
    def post_processor(self, post_processor: PostProcessor | None) -> None:
        self._replace(post_processor=post_processor)

    @property
    def decoder(self) -> Decoder | None:
        return self._pipeline.decoder

    @decoder.setter
    def decoder(self, decoder: Decoder | None) -> None:
        self._replace(decoder=decoder)

    @property
    def truncation(self) -> TruncationParams | None:
        return self._pipeline.truncation

    @property
    def padding(self) -> PaddingParams | None:
        return self._pipeline.padding

    def swap_model(self, model: Model) -> None:
        """
        Replace the model, rebinding special tokens to the new vocabulary.

        The post-processor and registered special tokens are looked up again
        in ``model``'s vocabulary; the swap is abandoned if any is missing.

        :raises MissingSpecialTokenError: If a special token is not in the new vocabulary.
        """
        with self._lock:
            current = self._pipeline
            post_processor = current.post_processor
            if post_processor is not None:
                post_processor = post_processor.with_vocab(model.get_vocab())
            special_tokens = _lookup_special_tokens(model, current.special_tokens)
            self._pipeline = _validate(
                dataclasses.replace(
                    current,
                    model=model,
                    post_processor=post_processor,
                    special_tokens=special_tokens,
                )
            )
        log.debug(f"swapped model: {model!r}")

    def _replace(self, **changes: Any) -> None:
        """Build, validate and install a new snapshot."""
        with self._lock:
            self._pipeline = _validate(dataclasses.replace(self._pipeline, **changes))

    # Configuration
    # ===================================================================================

    def add_special_tokens(self, tokens: Iterable[str]) -> int:
        """
        Register vocabulary tokens that strategies may match in raw text.

        :returns: Number of newly registered tokens.
        :raises MissingSpecialTokenError: If a token is not in the vocabulary.
        """
        with self._lock:
            current = self._pipeline
            merged = dict(current.special_tokens)
            added = 0
            for tok in tokens:
                if tok in merged:
                    continue
                idx = current.model.token_to_id(tok)
                if idx is None:
                    raise MissingSpecialTokenError(
                        "special token missing from vocabulary", token=tok
                    )
                merged[tok] = idx
                added += 1
            self._pipeline = dataclasses.replace(
                current, special_tokens=MappingProxyType(merged)
            )
        return added

    def enable_truncation(
        self,
        max_length: int,
        strategy: str = "longest_first",
        direction: str = "right",
    ) -> None:
        """Truncate encodings to ``max_length`` tokens, special tokens included."""
        self._replace(
            truncation=TruncationParams(max_length, strategy, direction)  # type: ignore[arg-type]
        )

    def no_truncation(self) -> None:
        self._replace(truncation=None)

    def enable_padding(
        self,
        length: int | None = None,
        pad_id: TokenId | None = None,
        pad_token: str = "[PAD]",
        pad_type_id: int = 0,
        direction: str = "right",
        pad_to_multiple_of: int | None = None,
    ) -> None:
        """
        Pad encodings to ``length``, or batches to their longest encoding.

        :param pad_id: Id of the padding token; looked up from ``pad_token`` when ``None``.
        :raises MissingSpecialTokenError: If ``pad_id`` is ``None`` and ``pad_token``
            is not in the vocabulary.
        """
        if pad_id is None:
            pad_id = self.token_to_id(pad_token)
            if pad_id is None:
                raise MissingSpecialTokenError(
                    "padding token missing from vocabulary", token=pad_token
                )
        self._replace(
            padding=PaddingParams(
                length=length,
                pad_id=pad_id,
                pad_token=pad_token,
                pad_type_id=pad_type_id,
                direction=direction,  # type: ignore[arg-type]
                pad_to_multiple_of=pad_to_multiple_of,
            )
        )

    def no_padding(self) -> None:
        self._replace(padding=None)

    # Encoding
    # ===================================================================================

    def encode(
        self,
        sequence: InputSequence,
        pair: InputSequence | None = None,
        add_special_tokens: bool = True,
        strategy: "SpecialTokenStrategy | None" = None,
    ) -> Encoding:
        """
        Encode one sequence, or a pair of sequences.

        :param sequence: Text (or UTF-8 bytes) to encode.
        :param pair: Optional second sequence.
        :param add_special_tokens: Let the post-processor insert its tokens.
        :param strategy: How registered special token strings in the text are handled;
            ``None`` encodes them as ordinary text.
        :returns: The encoding, with offsets into the original text.
        :raises InvalidEncodingError: If the input is not well-formed UTF-8.
        """
        pipeline = self._pipeline
        encoding = _encode(pipeline, sequence, pair, add_special_tokens, strategy)
        padding = pipeline.padding
        if padding is not None and padding.length is not None:
            encoding = _pad(encoding, padding, len(encoding))
        return encoding

    def encode_batch(
        self,
        inputs: list[EncodeInput],
        add_special_tokens: bool = True,
        strategy: "SpecialTokenStrategy | None" = None,
        num_workers: int | None = None,
        parallel_mode: ParallelMode | str = ParallelMode.AUTO,
    ) -> list[Encoding | PieceTokError]:
        """
        Encode many inputs, in parallel across a thread pool.

        Each input is encoded on its own against the same pipeline snapshot.
        A failure encoding one input (e.g. ``InvalidEncodingError``) is put
        in that input's slot and does not affect the others.

        ``off`` encodes serially, ``batch`` always uses the pool, ``auto``
        uses the pool only for batches large enough to benefit.

        :param inputs: Sequences or ``(sequence, pair)`` tuples.
        :param num_workers: Pool size; ``None`` uses one worker per CPU.
        :returns: Encodings (or errors) in input order.
        """
        pipeline = self._pipeline
        if not inputs:
            return []

        def encode_one(item: EncodeInput) -> Encoding | PieceTokError:
            sequence, pair = item if isinstance(item, tuple) else (item, None)
            try:
                return _encode(pipeline, sequence, pair, add_special_tokens, strategy)
            except PieceTokError as e:
                log.debug(f"input failed to encode: {e}")
                return e

        workers = resolve_workers(num_workers)
        match ParallelMode.get(parallel_mode):
            case ParallelMode.OFF:
                workers = 1
            case ParallelMode.BATCH:
                pass
            case ParallelMode.AUTO:
                total_chars = sum(_input_length(item) for item in inputs)
                if total_chars < _AUTO_MIN_CHARS:
                    workers = 1

        results = map_ordered(encode_one, inputs, workers)

        padding = pipeline.padding
        if padding is not None:
            encodings = [r for r in results if isinstance(r, Encoding)]
            longest = max((len(enc) for enc in encodings), default=0)
            results = [
                _pad(r, padding, longest) if isinstance(r, Encoding) else r
                for r in results
            ]
        return results

    # Decoding
    # ===================================================================================

    def decode(self, ids: list[TokenId], skip_special_tokens: bool = True) -> str:
        """
        Decode ids back into text (best effort).

        :raises VocabularyError: If an id is not in the vocabulary.
        """
        pipeline = self._pipeline
        skip = _special_ids(pipeline) if skip_special_tokens else set()
        tokens: list[str] = []
        for idx in ids:
            if idx in skip:
                continue
            tok = pipeline.model.id_to_token(idx)
            if tok is None:
                raise VocabularyError("token id not found in vocabulary", invalid_tok=idx)
            tokens.append(tok)
        if pipeline.decoder is None:
            return " ".join(tokens)
        return pipeline.decoder.decode(tokens)

    def decode_batch(
        self, batch: list[list[TokenId]], skip_special_tokens: bool = True
    ) -> list[str]:
        """Decode several id sequences."""
        return [self.decode(ids, skip_special_tokens) for ids in batch]

    # Vocabulary
    # ===================================================================================

    def token_to_id(self, token: str) -> TokenId | None:
        return self._pipeline.model.token_to_id(token)

    def id_to_token(self, idx: TokenId) -> str | None:
        return self._pipeline.model.id_to_token(idx)

    def get_vocab(self) -> Mapping[str, TokenId]:
        return self._pipeline.model.get_vocab()

    def get_vocab_size(self) -> int:
        return self._pipeline.model.get_vocab_size()

    def save_model(self, folder: str | Path, prefix: str | None = None) -> list[Path]:
        """Write the model files into ``folder``."""
        return self._pipeline.model.save(folder, prefix)

    # Training
    # ===================================================================================

    def pre_tokenize(self, text: str) -> list[str]:
        """Normalize and pre-tokenize ``text``, returning the pre-token strings."""
        pipeline = self._pipeline
        normalized = _normalize(pipeline, ensure_text(text))
        return [tok.text for tok in _pre_tokenize(pipeline, normalized.normalized)]

    def train_from_iterator(
        self,
        corpus: Iterable[str],
        trainer: "WordPieceTrainer | None" = None,
    ) -> None:
        """
        Learn a new WordPiece vocabulary from ``corpus`` and swap it in.

        Words are produced by this tokenizer's normalizer and pre-tokenizer.

        :param corpus: Lines or documents of text.
        :param trainer: Trainer to use; defaults to one matching the current model.
        :raises MissingSpecialTokenError: If the trained vocabulary lacks a
            special token the pipeline needs.
        """
        current = self._pipeline.model
        if trainer is None:
            if not isinstance(current, WordPiece):
                raise TypeError("a trainer is required for non-WordPiece models")
            trainer = current.get_trainer()

        result = trainer.train_from_iterator(corpus, process=self.pre_tokenize)

        kwargs: dict[str, Any] = {
            "continuing_subword_prefix": trainer.continuing_subword_prefix,
        }
        if isinstance(current, WordPiece):
            kwargs["max_input_chars_per_word"] = current.max_input_chars_per_word
        model = WordPiece(result.vocab, unk_token=current.unk_token, **kwargs)
        self.swap_model(model)
        log.info(f"trained new vocabulary of {len(result.vocab)} tokens")

    def __repr__(self) -> str:
        p = self._pipeline
        return (
            f"Tokenizer(model={p.model!r}, normalizer={p.normalizer!r}, "
            f"pre_tokenizer={p.pre_tokenizer!r}, post_processor={p.post_processor!r}, "
            f"decoder={p.decoder!r})"
        )


# Pipeline stages
# ===================================================================================


def _validate(pipeline: Pipeline) -> Pipeline:
    """Check that post-processor special tokens agree with the model vocabulary."""
    if pipeline.post_processor is not None:
        for tok, idx in pipeline.post_processor.special_tokens().items():
            if pipeline.model.token_to_id(tok) != idx:
                raise MissingSpecialTokenError(
                    f"special token not in vocabulary with id {idx}", token=tok
                )
    return pipeline


def _lookup_special_tokens(
    model: Model, special_tokens: Mapping[str, TokenId]
) -> Mapping[str, TokenId]:
    found: dict[str, TokenId] = {}
    for tok in special_tokens:
        idx = model.token_to_id(tok)
        if idx is None:
            raise MissingSpecialTokenError(
                "special token missing from vocabulary", token=tok
            )
        found[tok] = idx
    return MappingProxyType(found)


def _special_ids(pipeline: Pipeline) -> set[TokenId]:
    ids = set(pipeline.special_tokens.values())
    if pipeline.post_processor is not None:
        ids.update(pipeline.post_processor.special_tokens().values())
    return ids


def _normalize(pipeline: Pipeline, text: str) -> NormalizedString:
    normalized = NormalizedString.from_str(text)
    if pipeline.normalizer is not None:
        normalized = pipeline.normalizer.normalize(normalized)
    return normalized


def _pre_tokenize(pipeline: Pipeline, text: str) -> list[PreToken]:
    if pipeline.pre_tokenizer is None:
        return [PreToken(text, (0, len(text)))] if text else []
    return pipeline.pre_tokenizer.pre_tokenize(text)


def _encode(
    pipeline: Pipeline,
    sequence: InputSequence,
    pair: InputSequence | None,
    add_special_tokens: bool,
    strategy: "SpecialTokenStrategy | None",
) -> Encoding:
    """Run every stage on one input (and its optional pair)."""
    encoding = _encode_sequence(pipeline, ensure_text(sequence), strategy)
    pair_encoding = None
    if pair is not None:
        pair_encoding = _encode_sequence(pipeline, ensure_text(pair), strategy)

    post_processor = pipeline.post_processor
    if pipeline.truncation is not None:
        added = 0
        if post_processor is not None and add_special_tokens:
            added = post_processor.added_tokens(pair is not None)
        encoding, pair_encoding = truncate_pair(
            encoding,
            pair_encoding,
            pipeline.truncation.max_length - added,
            pipeline.truncation,
        )

    if post_processor is not None:
        return post_processor.process(encoding, pair_encoding, add_special_tokens)
    if pair_encoding is None:
        return encoding
    return Encoding.merge([encoding, pair_encoding.with_type_id(1)])


def _encode_sequence(
    pipeline: Pipeline,
    text: str,
    strategy: "SpecialTokenStrategy | None",
) -> Encoding:
    """
    Encode one text without post-processing.

    Special token strings selected by ``strategy`` are cut out of the raw
    text first; every remaining segment is normalized, pre-tokenized and
    segmented on its own, with offsets shifted by the segment start.
    """
    ids: list[TokenId] = []
    tokens: list[str] = []
    offsets: list[tuple[int, int]] = []
    word_ids: list[int | None] = []
    special_mask: list[int] = []
    word_idx = 0
    model = pipeline.model

    for segment, base, special_id in _split_special(pipeline, text, strategy):
        if special_id is not None:
            ids.append(special_id)
            tokens.append(segment)
            offsets.append((base, base + len(segment)))
            word_ids.append(None)
            special_mask.append(1)
            continue

        normalized = _normalize(pipeline, segment)
        for pre_token in _pre_tokenize(pipeline, normalized.normalized):
            word_start = pre_token.offsets[0]
            for piece in model.tokenize(pre_token.text):
                start, end = normalized.original_offsets(
                    (word_start + piece.offsets[0], word_start + piece.offsets[1])
                )
                ids.append(piece.id)
                tokens.append(piece.value)
                offsets.append((base + start, base + end))
                word_ids.append(word_idx)
                special_mask.append(0)
            word_idx += 1

    n = len(ids)
    return Encoding(
        ids=ids,
        tokens=tokens,
        offsets=offsets,
        type_ids=[0] * n,
        special_tokens_mask=special_mask,
        attention_mask=[1] * n,
        word_ids=word_ids,
    )


def _split_special(
    pipeline: Pipeline,
    text: str,
    strategy: "SpecialTokenStrategy | None",
) -> list[tuple[str, int, TokenId | None]]:
    """Cut ``text`` into ``(segment, start, special id or None)`` parts."""
    if strategy is None:
        return [(text, 0, None)]
    special_toks = strategy.handle(text, dict(pipeline.special_tokens))
    if not special_toks:
        return [(text, 0, None)]

    # longest first so that overlapping tokens prefer the longer match
    alternatives = sorted(special_toks, key=len, reverse=True)
    special_pat = "|".join(re.escape(seq) for seq in alternatives)

    parts: list[tuple[str, int, TokenId | None]] = []
    pos = 0
    for m in re.finditer(special_pat, text):
        start, end = m.span()
        if pos < start:
            parts.append((text[pos:start], pos, None))
        parts.append((m.group(0), start, special_toks[m.group(0)]))
        pos = end
    if pos < len(text):
        parts.append((text[pos:], pos, None))
    return parts


def _pad(encoding: Encoding, padding: PaddingParams, longest: int) -> Encoding:
    return encoding.pad(
        padding.target_length(longest),
        pad_id=padding.pad_id,
        pad_token=padding.pad_token,
        pad_type_id=padding.pad_type_id,
        direction=padding.direction,
    )


def _input_length(item: EncodeInput) -> int:
    if isinstance(item, tuple):
        return sum(len(part) for part in item)
    return len(item)


__all__ = ["Tokenizer", "Pipeline"]
