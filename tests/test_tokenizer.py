"""Unit tests for the Tokenizer pipeline: encode/decode, offsets, configuration and swaps."""

import pytest

import piecetok as ptok
from piecetok.errors import (
    InvalidEncodingError,
    MissingSpecialTokenError,
    SpecialTokenError,
    VocabularyError,
)


# Fixtures
# ---------------------------------------------------------------------------

TOKENS = ["[UNK]", "[CLS]", "[SEP]", "he", "##llo", "world", "[PAD]", "[MASK]"]


@pytest.fixture
def vocab():
    """Return the small vocabulary used by most tests."""
    return ptok.Vocabulary.from_tokens(TOKENS)


@pytest.fixture
def tokenizer(vocab):
    """Return a Tokenizer with BERT pre-tokenization and post-processing."""
    return ptok.Tokenizer(
        ptok.WordPiece(vocab),
        pre_tokenizer=ptok.BertPreTokenizer(),
        post_processor=ptok.BertProcessing.from_vocab(vocab),
        decoder=ptok.WordPieceDecoder(),
    )


# Encoding
# ---------------------------------------------------------------------------


def test_hello_world_ids(tokenizer):
    """Pieces of each word are framed by [CLS] and [SEP]."""
    enc = tokenizer.encode("hello world")
    assert enc.ids == [1, 3, 4, 5, 2]
    assert enc.tokens == ["[CLS]", "he", "##llo", "world", "[SEP]"]
    assert enc.type_ids == [0, 0, 0, 0, 0]


def test_hello_world_offsets(tokenizer):
    """Offsets point into the original text; special tokens get (0, 0)."""
    enc = tokenizer.encode("hello world")
    assert enc.offsets == [(0, 0), (0, 2), (2, 5), (6, 11), (0, 0)]
    assert enc.special_tokens_mask == [1, 0, 0, 0, 1]
    assert enc.attention_mask == [1, 1, 1, 1, 1]
    assert enc.word_ids == [None, 0, 0, 1, None]


def test_unknown_fallback_spans_whole_word(tokenizer):
    """A word with no matching prefix becomes one [UNK] covering all of it."""
    enc = tokenizer.encode("xyz")
    assert enc.ids == [1, 0, 2]
    assert enc.offsets[1] == (0, 3)


def test_offsets_slice_original_text(tokenizer):
    """Slicing the input with each offset gives the piece without its marker."""
    text = "hello   world hello"
    enc = tokenizer.encode(text, add_special_tokens=False)
    for token, (start, end) in zip(enc.tokens, enc.offsets):
        assert text[start:end] == token.removeprefix("##")


def test_encode_without_special_tokens(tokenizer):
    """Disabling special tokens leaves only the content pieces."""
    assert tokenizer.encode("hello world", add_special_tokens=False).ids == [3, 4, 5]


def test_encode_pair(tokenizer):
    """Second sequence and its [SEP] get type id 1."""
    enc = tokenizer.encode("hello", "world")
    assert enc.ids == [1, 3, 4, 2, 5, 2]
    assert enc.type_ids == [0, 0, 0, 0, 1, 1]
    # offsets of the pair are relative to the pair text
    assert enc.offsets[4] == (0, 5)


def test_empty_string(tokenizer):
    """Empty input encodes to the special tokens only."""
    enc = tokenizer.encode("")
    assert enc.ids == [1, 2]


def test_bytes_input_matches_str(tokenizer):
    """UTF-8 bytes encode exactly like the decoded text."""
    assert tokenizer.encode(b"hello world") == tokenizer.encode("hello world")


def test_invalid_bytes_raise(tokenizer):
    """Malformed UTF-8 raises InvalidEncodingError."""
    with pytest.raises(InvalidEncodingError):
        tokenizer.encode(b"hello \xff")


def test_encode_is_deterministic(tokenizer):
    """Encoding the same input twice gives equal encodings."""
    text = "hello world xyz hello"
    assert tokenizer.encode(text) == tokenizer.encode(text)


def test_normalizer_offsets_map_to_original(vocab):
    """Offsets survive lowercasing and accent stripping."""
    tok = ptok.Tokenizer(
        ptok.WordPiece(vocab),
        normalizer=ptok.BertNormalizer(),
        pre_tokenizer=ptok.BertPreTokenizer(),
    )
    enc = tok.encode("H\u00c9llo World")
    assert enc.ids == [3, 4, 5]
    assert enc.offsets == [(0, 2), (2, 5), (6, 11)]


# Decoding
# ---------------------------------------------------------------------------


def test_decode_skips_special_tokens(tokenizer):
    """Decoding drops special tokens and joins continuation pieces."""
    assert tokenizer.decode([1, 3, 4, 5, 2]) == "hello world"


def test_decode_keeps_special_tokens(tokenizer):
    """Special tokens are kept when not skipped."""
    decoded = tokenizer.decode([1, 3, 4, 5, 2], skip_special_tokens=False)
    assert decoded == "[CLS] hello world [SEP]"


def test_decode_unknown_id_raises(tokenizer):
    """Ids outside the vocabulary raise VocabularyError."""
    with pytest.raises(VocabularyError):
        tokenizer.decode([3, 99])


def test_decode_batch(tokenizer):
    """Batch decoding matches decoding each sequence."""
    batch = [[1, 3, 4, 2], [1, 5, 2]]
    assert tokenizer.decode_batch(batch) == ["hello", "world"]


def test_decode_without_decoder(vocab):
    """Without a decoder tokens are joined with spaces."""
    tok = ptok.Tokenizer(ptok.WordPiece(vocab))
    assert tok.decode([3, 4]) == "he ##llo"


# Construction
# ---------------------------------------------------------------------------


def test_mismatched_processor_ids_raise(vocab):
    """A post-processor whose ids disagree with the vocabulary is rejected."""
    processor = ptok.BertProcessing(sep=("[SEP]", 7), cls=("[CLS]", 1))
    with pytest.raises(MissingSpecialTokenError):
        ptok.Tokenizer(ptok.WordPiece(vocab), post_processor=processor)


def test_vocab_queries(tokenizer):
    """Token/id lookups go through the model vocabulary."""
    assert tokenizer.token_to_id("world") == 5
    assert tokenizer.token_to_id("nope") is None
    assert tokenizer.id_to_token(4) == "##llo"
    assert tokenizer.id_to_token(100) is None
    assert tokenizer.get_vocab_size() == len(TOKENS)
    assert list(tokenizer.get_vocab()) == TOKENS


# Truncation and padding
# ---------------------------------------------------------------------------


def test_truncation_counts_special_tokens(tokenizer):
    """max_length includes the tokens the post-processor adds."""
    tokenizer.enable_truncation(4)
    assert tokenizer.encode("hello world").ids == [1, 3, 4, 2]
    tokenizer.no_truncation()
    assert tokenizer.encode("hello world").ids == [1, 3, 4, 5, 2]


def test_fixed_padding(tokenizer):
    """Fixed-length padding appends [PAD] tokens masked from attention."""
    tokenizer.enable_padding(length=8)
    enc = tokenizer.encode("hello world")
    assert enc.ids == [1, 3, 4, 5, 2, 6, 6, 6]
    assert enc.attention_mask == [1, 1, 1, 1, 1, 0, 0, 0]
    assert enc.tokens[-1] == "[PAD]"


def test_batch_padding_to_longest(tokenizer):
    """Without a fixed length a batch is padded to its longest encoding."""
    tokenizer.enable_padding()
    short, long = tokenizer.encode_batch(["hello", "hello world"])
    assert short.ids == [1, 3, 4, 2, 6]
    assert len(long) == 5


def test_padding_requires_pad_token(vocab):
    """Padding cannot be enabled with a token missing from the vocabulary."""
    tok = ptok.Tokenizer(ptok.WordPiece(vocab))
    with pytest.raises(MissingSpecialTokenError):
        tok.enable_padding(pad_token="<pad>")


# Special tokens in text
# ---------------------------------------------------------------------------


def test_registered_special_token_matched_with_strategy(tokenizer):
    """With the 'all' strategy a registered token in text maps to its own id."""
    assert tokenizer.add_special_tokens(["[MASK]"]) == 1
    enc = tokenizer.encode("hello [MASK]", strategy=ptok.get_strategy("all"))
    assert enc.ids == [1, 3, 4, 7, 2]
    assert enc.offsets[3] == (6, 12)
    assert enc.special_tokens_mask[3] == 1


def test_special_token_encoded_as_text_without_strategy(tokenizer):
    """Without a strategy special token strings are ordinary text."""
    tokenizer.add_special_tokens(["[MASK]"])
    enc = tokenizer.encode("hello [MASK]")
    assert enc.ids == [1, 3, 4, 0, 0, 0, 2]


def test_special_token_raise_strategy(tokenizer):
    """The none-raise strategy rejects text holding a registered token."""
    tokenizer.add_special_tokens(["[MASK]"])
    with pytest.raises(SpecialTokenError):
        tokenizer.encode("hello [MASK]", strategy=ptok.get_strategy("none-raise"))


def test_add_missing_special_token_raises(tokenizer):
    """Only vocabulary tokens can be registered."""
    with pytest.raises(MissingSpecialTokenError):
        tokenizer.add_special_tokens(["<eos>"])


def test_add_special_tokens_counts_new_only(tokenizer):
    """Registering a token twice counts it once."""
    assert tokenizer.add_special_tokens(["[MASK]", "[PAD]"]) == 2
    assert tokenizer.add_special_tokens(["[MASK]"]) == 0


# Model swaps and training
# ---------------------------------------------------------------------------


def test_swap_model_rebinds_special_tokens(tokenizer):
    """Swapping the model looks special tokens up in the new vocabulary."""
    old_pipeline = tokenizer.pipeline
    new_vocab = {"[PAD]": 0, "[UNK]": 1, "[SEP]": 2, "[CLS]": 3, "hello": 4, "world": 5}
    tokenizer.swap_model(ptok.WordPiece(new_vocab))

    assert tokenizer.encode("hello world").ids == [3, 4, 5, 2]
    # the previous snapshot is left untouched
    assert old_pipeline.model.token_to_id("he") == 3


def test_swap_model_missing_special_token_keeps_old(tokenizer):
    """A swap that would lose [SEP] is rejected and the old model stays."""
    with pytest.raises(MissingSpecialTokenError):
        tokenizer.swap_model(ptok.WordPiece({"[UNK]": 0, "[CLS]": 1}))
    assert tokenizer.encode("hello world").ids == [1, 3, 4, 5, 2]


def test_train_from_iterator_swaps_in_new_vocab(tokenizer):
    """Training learns whole words from a repetitive corpus."""
    trainer = ptok.WordPieceTrainer(
        vocab_size=40,
        special_tokens=["[UNK]", "[CLS]", "[SEP]"],
        show_progress=False,
    )
    tokenizer.train_from_iterator(["hello world"] * 3, trainer=trainer)

    enc = tokenizer.encode("hello world")
    assert enc.tokens == ["[CLS]", "hello", "world", "[SEP]"]
    assert all(idx < tokenizer.get_vocab_size() for idx in enc.ids)
    assert tokenizer.decode(enc.ids) == "hello world"


def test_pre_tokenize_uses_pipeline(vocab):
    """pre_tokenize applies the normalizer and pre-tokenizer."""
    tok = ptok.Tokenizer(
        ptok.WordPiece(vocab),
        normalizer=ptok.BertNormalizer(),
        pre_tokenizer=ptok.BertPreTokenizer(),
    )
    assert tok.pre_tokenize("Hello, World") == ["hello", ",", "world"]
