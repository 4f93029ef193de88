"""Tests for pre-tokenizers and split patterns."""

import pytest

import piecetok as ptok
from piecetok import pre_tokenizers
from piecetok.errors import PatternError


# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def bert():
    """Return a default BERT pre-tokenizer."""
    return pre_tokenizers.BertPreTokenizer()


# BERT splitting
# ---------------------------------------------------------------------------


def test_bert_isolates_punctuation(bert):
    """Whitespace separates words and punctuation stands alone."""
    assert bert.pre_tokenize_str("Hello, world!") == [
        ("Hello", (0, 5)),
        (",", (5, 6)),
        ("world", (7, 12)),
        ("!", (12, 13)),
    ]


def test_bert_ascii_symbols_are_punctuation(bert):
    """ASCII symbols outside \\p{P} are split like punctuation."""
    assert [tok for tok, _ in bert.pre_tokenize_str("a$b+c")] == ["a", "$", "b", "+", "c"]


def test_bert_keeps_cjk_runs_by_default(bert):
    """Without split_cjk ideographs stay in their run."""
    assert bert.pre_tokenize_str("ab中文") == [("ab中文", (0, 4))]


def test_bert_split_cjk():
    """split_cjk isolates every ideograph."""
    pre = pre_tokenizers.BertPreTokenizer(split_cjk=True)
    assert pre.pre_tokenize_str("ab中文") == [
        ("ab", (0, 2)),
        ("中", (2, 3)),
        ("文", (3, 4)),
    ]


def test_segmentation_covers_everything_but_whitespace(bert):
    """Every character is in a pre-token or is discarded whitespace."""
    text = "Don't stop,\tbelieving!  (1999)\n"
    covered = set()
    for tok in bert.pre_tokenize(text):
        start, end = tok.offsets
        assert text[start:end] == tok.text
        covered.update(range(start, end))
    for i, char in enumerate(text):
        assert i in covered or char.isspace()


# Other pre-tokenizers
# ---------------------------------------------------------------------------


def test_whitespace():
    """Word runs and symbol runs are separate pre-tokens."""
    assert pre_tokenizers.Whitespace().pre_tokenize_str("Hey man!!") == [
        ("Hey", (0, 3)),
        ("man", (4, 7)),
        ("!!", (7, 9)),
    ]


def test_whitespace_split():
    """Only whitespace separates pre-tokens."""
    tokens = pre_tokenizers.WhitespaceSplit().pre_tokenize_str("a,b \tc")
    assert tokens == [("a,b", (0, 3)), ("c", (5, 6))]


def test_digits_runs_and_individual():
    """Digits are isolated as runs or one by one."""
    assert pre_tokenizers.Digits().pre_tokenize_str("ab12") == [("ab", (0, 2)), ("12", (2, 4))]
    assert pre_tokenizers.Digits(individual_digits=True).pre_tokenize_str("ab12") == [
        ("ab", (0, 2)),
        ("1", (2, 3)),
        ("2", (3, 4)),
    ]


def test_regex_behaviors():
    """Matches are kept, removed or isolated."""
    removed = pre_tokenizers.RegexPreTokenizer("-", behavior="removed")
    isolated = pre_tokenizers.RegexPreTokenizer("-", behavior="isolated")
    assert removed.pre_tokenize_str("a-b") == [("a", (0, 1)), ("b", (2, 3))]
    assert isolated.pre_tokenize_str("a-b") == [("a", (0, 1)), ("-", (1, 2)), ("b", (2, 3))]


def test_regex_accepts_pattern_name():
    """A SplitPattern name resolves to its regex."""
    pre = pre_tokenizers.RegexPreTokenizer("whitespace_split")
    assert pre.pattern == r"\S+"


def test_regex_skips_zero_width_matches():
    """Zero-width matches never produce empty pre-tokens."""
    pre = pre_tokenizers.RegexPreTokenizer(r"\d*")
    assert pre.pre_tokenize_str("a12b") == [("12", (1, 3))]


def test_invalid_pattern_raises():
    """Invalid regex sources raise PatternError."""
    with pytest.raises(PatternError):
        pre_tokenizers.RegexPreTokenizer("(unclosed")


def test_unknown_behavior_raises():
    """Unknown split behaviors raise PatternError."""
    with pytest.raises(PatternError):
        pre_tokenizers.RegexPreTokenizer(r"\s", behavior="merged")  # type: ignore[arg-type]


def test_sequence_rebases_offsets():
    """Later pre-tokenizers work on earlier pieces; offsets stay global."""
    pre = pre_tokenizers.Sequence(
        [pre_tokenizers.WhitespaceSplit(), pre_tokenizers.Digits(individual_digits=True)]
    )
    assert pre.pre_tokenize_str("ab 12") == [("ab", (0, 2)), ("1", (3, 4)), ("2", (4, 5))]


# Patterns
# ---------------------------------------------------------------------------


def test_pattern_registry():
    """Patterns are listed and looked up case-insensitively."""
    assert "bert" in ptok.list_patterns()
    assert ptok.get_pattern("DIGITS") == ptok.SplitPattern.DIGITS.value
    assert ptok.get_pattern("whitespace-split") == r"\S+"


def test_unknown_pattern_raises():
    """Unknown pattern names raise PatternError."""
    with pytest.raises(PatternError):
        ptok.get_pattern("nope")
