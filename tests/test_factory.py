"""Tests for component factories, special token strategies and loading tokenizers."""

import pytest

import piecetok as ptok
from piecetok import normalizers, pre_tokenizers
from piecetok.errors import ModelLoadError, SpecialTokenError, StrategyError


# Fixtures
# ---------------------------------------------------------------------------

BERT_TOKENS = ["[PAD]", "[UNK]", "[CLS]", "[SEP]", "[MASK]", "he", "##llo", "world", "!"]


@pytest.fixture
def vocab_dir(tmp_path):
    """Return a folder holding a BERT-style vocab.txt."""
    (tmp_path / "vocab.txt").write_text("\n".join(BERT_TOKENS) + "\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def specials():
    """Return a registered special token table."""
    return {"[CLS]": 2, "[SEP]": 3, "[MASK]": 4}


# Special token strategies
# ---------------------------------------------------------------------------


def test_all_strategy_returns_everything(specials):
    """The 'all' strategy matches every registered token."""
    assert ptok.get_strategy("all").handle("x [MASK]", specials) == specials


def test_none_strategy_returns_nothing(specials):
    """The 'none' strategy encodes special strings as text."""
    assert ptok.get_strategy("none").handle("x [MASK]", specials) == {}


def test_none_raise_strategy(specials):
    """The 'none-raise' strategy rejects text holding a special string."""
    strategy = ptok.get_strategy("none-raise")
    assert strategy.handle("plain text", specials) == {}
    with pytest.raises(SpecialTokenError, match=r"\[MASK\]"):
        strategy.handle("x [MASK]", specials)


def test_custom_strategy_subset(specials):
    """The 'custom' strategy keeps only the allowed tokens."""
    strategy = ptok.get_strategy("custom", allowed_subset={"[MASK]"})
    assert strategy.handle("x", specials) == {"[MASK]": 4}


def test_custom_strategy_requires_subset():
    """The 'custom' strategy needs its allowed subset."""
    with pytest.raises(StrategyError):
        ptok.get_strategy("custom")  # type: ignore[call-overload]


def test_unknown_strategy_raises():
    """Unknown strategy names list the available ones."""
    with pytest.raises(StrategyError, match="none-raise"):
        ptok.get_strategy("sometimes")  # type: ignore[call-overload]
    assert set(ptok.list_strategies()) == {"all", "none", "none-raise", "custom"}


# Component factories
# ---------------------------------------------------------------------------


def test_get_normalizer_forwards_kwargs():
    """Normalizers are built by name with constructor arguments."""
    norm = ptok.get_normalizer("bert", lowercase=False)
    assert isinstance(norm, normalizers.BertNormalizer)
    assert norm.lowercase is False
    assert isinstance(ptok.get_normalizer("nfkc"), normalizers.NFKC)


def test_get_pre_tokenizer_forwards_kwargs():
    """Pre-tokenizers are built by name with constructor arguments."""
    pre = ptok.get_pre_tokenizer("digits", individual_digits=True)
    assert isinstance(pre, pre_tokenizers.Digits)
    assert pre.pre_tokenize_str("12") == [("1", (0, 1)), ("2", (1, 2))]


@pytest.mark.parametrize(
    "factory", [ptok.get_normalizer, ptok.get_pre_tokenizer], ids=["normalizer", "pre_tokenizer"]
)
def test_unknown_component_name_raises(factory):
    """Unknown component names raise StrategyError."""
    with pytest.raises(StrategyError):
        factory("nope")


def test_component_listings():
    """Every listed name can be built without arguments."""
    for name in ptok.list_normalizers():
        assert isinstance(ptok.get_normalizer(name), normalizers.Normalizer)
    for name in ptok.list_pre_tokenizers():
        assert isinstance(ptok.get_pre_tokenizer(name), pre_tokenizers.PreTokenizer)


# Tokenizer factories
# ---------------------------------------------------------------------------


def test_bert_tokenizer_from_mapping():
    """A mapping is enough to assemble the BERT pipeline."""
    vocab = {tok: i for i, tok in enumerate(BERT_TOKENS)}
    tokenizer = ptok.bert_tokenizer(vocab)
    enc = tokenizer.encode("Hello World!")
    assert enc.ids == [2, 5, 6, 7, 8, 3]
    assert enc.offsets[1:5] == [(0, 2), (2, 5), (6, 11), (11, 12)]
    assert tokenizer.decode(enc.ids) == "hello world !"


def test_bert_tokenizer_cleanup_decoding():
    """With cleanup the decoder removes spaces before punctuation."""
    vocab = {tok: i for i, tok in enumerate(BERT_TOKENS)}
    tokenizer = ptok.bert_tokenizer(vocab, cleanup=True)
    assert tokenizer.decode(tokenizer.encode("Hello World!").ids) == "hello world!"


def test_bert_tokenizer_pads_with_registered_pad(vocab_dir):
    """The padding token is looked up in the loaded vocabulary."""
    tokenizer = ptok.bert_tokenizer(vocab_dir / "vocab.txt")
    tokenizer.enable_padding(length=8)
    assert tokenizer.encode("world").ids == [2, 7, 3, 0, 0, 0, 0, 0]


def test_from_pretrained_folder(vocab_dir):
    """A folder resolves to the vocab.txt inside it."""
    tokenizer = ptok.from_pretrained(vocab_dir)
    assert tokenizer.encode("Hello World!").ids == [2, 5, 6, 7, 8, 3]
    assert tokenizer.get_vocab_size() == len(BERT_TOKENS)


def test_from_pretrained_wrong_suffix(tmp_path):
    """Only .txt vocab files are accepted."""
    path = tmp_path / "vocab.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ModelLoadError):
        ptok.from_pretrained(path)


def test_from_pretrained_missing_file(tmp_path):
    """A folder without vocab.txt raises ModelLoadError."""
    with pytest.raises(ModelLoadError):
        ptok.from_pretrained(tmp_path)


def test_version_is_exposed():
    """The package exposes a version string."""
    assert isinstance(ptok.__version__, str)
