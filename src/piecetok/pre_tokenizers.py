"""
Pre-tokenizers split normalized text into pre-tokens.

Every pre-token carries its half-open span in the coordinates of the text it
was cut from. Characters outside all pre-token spans are separators the
splitting policy discarded on purpose (whitespace, or matches of a
``removed`` pattern).
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence as SequenceABC
from dataclasses import dataclass
from typing import Literal, override

import regex as re

from .errors import PatternError
from .pattern import SplitPattern
from .types import Offsets

log = logging.getLogger(__name__)

type SplitBehavior = Literal["matched", "removed", "isolated"]


@dataclass(frozen=True, slots=True)
class PreToken:
    """A slice of normalized text and the span it occupies."""

    text: str
    offsets: Offsets


class PreTokenizer(ABC):
    """Base interface for pre-tokenizers."""

    @abstractmethod
    def pre_tokenize(self, text: str) -> list[PreToken]:
        """Split ``text`` into ordered pre-tokens."""

    def pre_tokenize_str(self, text: str) -> list[tuple[str, Offsets]]:
        """Split ``text`` and return plain ``(text, offsets)`` tuples."""
        return [(tok.text, tok.offsets) for tok in self.pre_tokenize(text)]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class RegexPreTokenizer(PreTokenizer):
    """
    Split text with a regex pattern.

    ``behavior`` decides what becomes a pre-token: ``matched`` keeps the
    matches and discards the gaps between them, ``removed`` treats matches as
    separators and keeps the gaps, ``isolated`` keeps both.

    :param pattern: Regex source or the name of a ``SplitPattern``.
    :param behavior: How matches and gaps are treated.
    :raises PatternError: If the pattern is invalid.
    """

    def __init__(self, pattern: str, behavior: SplitBehavior = "matched") -> None:
        if behavior not in ("matched", "removed", "isolated"):
            raise PatternError(f"unknown split behavior: {behavior!r}")
        try:
            pattern = SplitPattern.get(pattern)
        except PatternError:
            # not a known name: treat as regex source
            pass
        self.pattern = pattern
        self.behavior: SplitBehavior = behavior
        self.compiled_pat: re.Pattern[str] = _compile_pattern(pattern)

    @override
    def pre_tokenize(self, text: str) -> list[PreToken]:
        out: list[PreToken] = []
        pos = 0
        for m in self.compiled_pat.finditer(text):
            start, end = m.span()
            # zero-width matches never produce pre-tokens
            if start == end:
                continue
            if self.behavior != "matched" and pos < start:
                out.append(PreToken(text[pos:start], (pos, start)))
            if self.behavior != "removed":
                out.append(PreToken(m.group(0), (start, end)))
            pos = end
        if self.behavior != "matched" and pos < len(text):
            out.append(PreToken(text[pos:], (pos, len(text))))
        return out

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.pattern!r}, behavior={self.behavior!r})"


class BertPreTokenizer(RegexPreTokenizer):
    """
    Split on whitespace and isolate every punctuation character.

    :param split_cjk: Also isolate CJK ideographs, for pipelines whose
        normalizer does not pad them with spaces.
    """

    def __init__(self, split_cjk: bool = False) -> None:
        super().__init__(
            SplitPattern.BERT_CJK.value if split_cjk else SplitPattern.BERT.value
        )
        self.split_cjk = split_cjk

    def __repr__(self) -> str:
        return f"BertPreTokenizer(split_cjk={self.split_cjk})"


class Whitespace(RegexPreTokenizer):
    """Split into word-character runs and runs of other non-space characters."""

    def __init__(self) -> None:
        super().__init__(SplitPattern.WHITESPACE.value)

    def __repr__(self) -> str:
        return "Whitespace()"


class WhitespaceSplit(RegexPreTokenizer):
    """Split on whitespace only."""

    def __init__(self) -> None:
        super().__init__(SplitPattern.WHITESPACE_SPLIT.value)

    def __repr__(self) -> str:
        return "WhitespaceSplit()"


class Digits(RegexPreTokenizer):
    """Isolate digit runs, or every single digit when ``individual_digits``."""

    def __init__(self, individual_digits: bool = False) -> None:
        pat = SplitPattern.DIGIT if individual_digits else SplitPattern.DIGITS
        super().__init__(pat.value, behavior="isolated")
        self.individual_digits = individual_digits

    def __repr__(self) -> str:
        return f"Digits(individual_digits={self.individual_digits})"


class Sequence(PreTokenizer):
    """Apply pre-tokenizers one after the other, each on the previous pre-tokens."""

    def __init__(self, pre_tokenizers: SequenceABC[PreTokenizer]) -> None:
        self.pre_tokenizers = tuple(pre_tokenizers)

    @override
    def pre_tokenize(self, text: str) -> list[PreToken]:
        tokens = [PreToken(text, (0, len(text)))] if text else []
        for pre_tokenizer in self.pre_tokenizers:
            split: list[PreToken] = []
            for tok in tokens:
                base = tok.offsets[0]
                for sub in pre_tokenizer.pre_tokenize(tok.text):
                    start, end = sub.offsets
                    split.append(PreToken(sub.text, (base + start, base + end)))
            tokens = split
        return tokens

    def __repr__(self) -> str:
        return f"Sequence({list(self.pre_tokenizers)!r})"


def _compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e)


__all__ = [
    "PreToken",
    "PreTokenizer",
    "RegexPreTokenizer",
    "BertPreTokenizer",
    "Whitespace",
    "WhitespaceSplit",
    "Digits",
    "Sequence",
]
