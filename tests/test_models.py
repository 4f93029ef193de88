"""Tests for the WordPiece model and the vocabulary file format."""

import pytest

import piecetok as ptok
from piecetok.errors import MissingSpecialTokenError, ModelLoadError, VocabularyError
from piecetok.models import Piece


# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def vocab():
    """Return a vocabulary with overlapping candidates."""
    return ptok.Vocabulary.from_tokens(
        ["[UNK]", "un", "##aff", "##able", "u", "##n", "##a", "unaff"]
    )


@pytest.fixture
def model(vocab):
    """Return a WordPiece model over ``vocab``."""
    return ptok.WordPiece(vocab)


# Segmentation
# ---------------------------------------------------------------------------


def test_greedy_longest_match(model):
    """The longest vocabulary prefix wins at every position."""
    pieces = model.tokenize("unaffable")
    assert [p.value for p in pieces] == ["unaff", "##able"]
    assert [p.offsets for p in pieces] == [(0, 5), (5, 9)]
    assert [p.is_continuation for p in pieces] == [False, True]


def test_continuation_prefix_on_later_pieces(model):
    """Pieces after the first are looked up with the marker."""
    pieces = model.tokenize("una")
    assert pieces == [Piece(1, "un", (0, 2)), Piece(6, "##a", (2, 3), True)]


def test_exact_entry_is_one_piece(model):
    """A pre-token equal to a vocabulary entry yields one piece."""
    assert [p.value for p in model.tokenize("un")] == ["un"]


def test_miss_falls_back_to_unknown(model):
    """A failed position discards partial pieces for the whole pre-token."""
    assert model.tokenize("unx") == [Piece(0, "[UNK]", (0, 3))]


def test_empty_pre_token(model):
    """Empty pre-tokens emit nothing."""
    assert model.tokenize("") == []


def test_over_long_pre_token(vocab):
    """Pre-tokens over the cap map straight to the unknown token."""
    model = ptok.WordPiece(vocab, max_input_chars_per_word=3)
    assert model.tokenize("unaffable") == [Piece(0, "[UNK]", (0, 9))]
    assert [p.value for p in model.tokenize("una")] == ["un", "##a"]


def test_custom_prefix():
    """The continuation marker is configurable."""
    model = ptok.WordPiece({"[UNK]": 0, "ab": 1, "@@c": 2}, continuing_subword_prefix="@@")
    assert [p.value for p in model.tokenize("abc")] == ["ab", "@@c"]
    assert model.strip_prefix("@@c") == "c"


def test_missing_unknown_token():
    """Models need their unknown token in the vocabulary."""
    with pytest.raises(MissingSpecialTokenError):
        ptok.WordPiece({"a": 0})


def test_vocab_lookups(model):
    """Lookups go both ways and miss with None."""
    assert model.token_to_id("##able") == 3
    assert model.id_to_token(3) == "##able"
    assert model.token_to_id("able") is None
    assert model.id_to_token(-1) is None
    assert model.get_vocab_size() == 8


# Vocabulary and files
# ---------------------------------------------------------------------------


def test_save_and_load_roundtrip(model, tmp_path):
    """Saving then loading a model keeps the vocabulary."""
    (path,) = model.save(tmp_path)
    assert path == tmp_path / "vocab.txt"
    loaded = ptok.WordPiece.from_file(path)
    assert loaded.get_vocab() == model.get_vocab()
    assert loaded.tokenize("unaffable") == model.tokenize("unaffable")


def test_save_with_prefix(model, tmp_path):
    """A prefix names the vocab file."""
    (path,) = model.save(tmp_path, prefix="bert")
    assert path.name == "bert-vocab.txt"
    assert path.read_text(encoding="utf-8").splitlines()[:2] == ["[UNK]", "un"]


def test_load_missing_file(tmp_path):
    """Missing vocab files raise ModelLoadError."""
    with pytest.raises(ModelLoadError):
        ptok.Vocabulary.from_file(tmp_path / "nope.txt")


def test_load_non_utf8_file(tmp_path):
    """Undecodable vocab files raise ModelLoadError."""
    path = tmp_path / "vocab.txt"
    path.write_bytes(b"[UNK]\n\xff\n")
    with pytest.raises(ModelLoadError):
        ptok.Vocabulary.from_file(path)


def test_vocabulary_rejects_gaps_and_duplicates():
    """Ids must be unique and dense."""
    with pytest.raises(VocabularyError):
        ptok.Vocabulary({"a": 0, "b": 2})
    with pytest.raises(VocabularyError):
        ptok.Vocabulary({"a": 0, "b": 0})
    with pytest.raises(VocabularyError):
        ptok.Vocabulary.from_tokens(["a", "a"])


def test_vocabulary_rejects_reserved_id_gap():
    """A special token parked at a high id still leaves a gap."""
    with pytest.raises(VocabularyError, match="outside dense range"):
        ptok.Vocabulary({"[PAD]": 0, "a": 1, "[UNK]": 100})
    vocab = ptok.Vocabulary.from_tokens(["[PAD]", "[UNK]", "a"])
    assert vocab["[UNK]"] == 1


def test_vocabulary_is_read_only(vocab):
    """The vocabulary offers no item assignment."""
    with pytest.raises(TypeError):
        vocab["new"] = 99  # type: ignore[index]


def test_vocabulary_mapping_behaviour(vocab):
    """Iteration follows id order and lookups behave like a dict."""
    assert list(vocab)[:3] == ["[UNK]", "un", "##aff"]
    assert "un" in vocab
    assert vocab.get("missing") is None
    assert vocab == dict(zip(vocab.tokens(), range(len(vocab))))
