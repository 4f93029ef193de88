"""
Text normalizers.

A normalizer is a pure function from ``NormalizedString`` to
``NormalizedString``. Each one rewrites the normalized text through
``NormalizedString.transform`` so its own offset changes are composed with the
alignment it received.
"""

import unicodedata
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence as SequenceABC
from typing import Literal, override

import regex as re

from ._sanitise import is_chinese_char, is_control, is_whitespace
from .alignment import Alignment, NormalizedString
from .errors import PatternError
from .types import Offsets

type NormForm = Literal["NFC", "NFD", "NFKC", "NFKD"]


class Normalizer(ABC):
    """Base interface for text normalizers."""

    @abstractmethod
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        """Return a new normalized string with this normalizer applied."""

    def normalize_str(self, text: str) -> tuple[str, Alignment]:
        """
        Normalize raw text.

        :param text: Original text.
        :returns: The normalized text and its alignment onto ``text``.
        """
        result = self.normalize(NormalizedString.from_str(text))
        return result.normalized, result.alignment

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Sequence(Normalizer):
    """Apply several normalizers in their declared order."""

    def __init__(self, normalizers: SequenceABC[Normalizer]) -> None:
        self.normalizers = tuple(normalizers)

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        for normalizer in self.normalizers:
            normalized = normalizer.normalize(normalized)
        return normalized

    def __repr__(self) -> str:
        return f"Sequence({list(self.normalizers)!r})"


class Lowercase(Normalizer):
    """Lowercase every character."""

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        return normalized.map_chars(str.lower)


class StripAccents(Normalizer):
    """
    Remove nonspacing combining marks.

    Precomposed characters keep their accents; put an ``NFD`` normalizer first
    to strip those too.
    """

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        return normalized.filter_chars(lambda c: unicodedata.category(c) != "Mn")


class Strip(Normalizer):
    """Remove leading and/or trailing whitespace."""

    def __init__(self, left: bool = True, right: bool = True) -> None:
        self.left = left
        self.right = right

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        text = normalized.normalized
        start, end = 0, len(text)
        if self.left:
            while start < end and text[start].isspace():
                start += 1
        if self.right:
            while end > start and text[end - 1].isspace():
                end -= 1
        if (start, end) == (0, len(text)):
            return normalized
        return normalized.transform(
            (text[i], (i, i + 1)) for i in range(start, end)
        )

    def __repr__(self) -> str:
        return f"Strip(left={self.left}, right={self.right})"


class Replace(Normalizer):
    """Replace every match of a regex pattern with fixed content."""

    def __init__(self, pattern: str, content: str) -> None:
        try:
            self.compiled_pat = re.compile(pattern)
        except re.error as e:
            raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e)
        self.pattern = pattern
        self.content = content

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        return normalized.transform(self._pieces(normalized.normalized))

    def _pieces(self, text: str) -> Iterator[tuple[str, Offsets]]:
        pos = 0
        for m in self.compiled_pat.finditer(text):
            start, end = m.span()
            # keep untouched characters one by one
            for i in range(pos, start):
                yield text[i], (i, i + 1)
            if start < end:
                yield self.content, (start, end)
            pos = end
        for i in range(pos, len(text)):
            yield text[i], (i, i + 1)

    def __repr__(self) -> str:
        return f"Replace({self.pattern!r}, {self.content!r})"


class UnicodeNormalizer(Normalizer):
    """
    Apply a Unicode normalization form.

    Text is cut into clusters that normalize independently of their
    neighbours. A cluster runs from a starter over its combining marks and
    over later starters it composes with (Hangul jamo, two-part Indic
    vowels). Each cluster is normalized on its own and all of its output
    characters are aligned to the whole cluster.
    """

    form: NormForm = "NFC"

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        text = normalized.normalized
        if unicodedata.is_normalized(self.form, text):
            return normalized
        return normalized.transform(
            (unicodedata.normalize(self.form, text[start:end]), (start, end))
            for start, end in _clusters(text, self.form)
        )


class NFC(UnicodeNormalizer):
    form = "NFC"


class NFD(UnicodeNormalizer):
    form = "NFD"


class NFKC(UnicodeNormalizer):
    form = "NFKC"


class NFKD(UnicodeNormalizer):
    form = "NFKD"


class BertNormalizer(Normalizer):
    """
    Normalizer matching the original BERT preprocessing.

    :param clean_text: Drop control characters and map whitespace to spaces.
    :param handle_chinese_chars: Surround CJK ideographs with spaces.
    :param strip_accents: Decompose and drop accents; follows ``lowercase`` when ``None``.
    :param lowercase: Lowercase the text.
    """

    def __init__(
        self,
        clean_text: bool = True,
        handle_chinese_chars: bool = True,
        strip_accents: bool | None = None,
        lowercase: bool = True,
    ) -> None:
        self.clean_text = clean_text
        self.handle_chinese_chars = handle_chinese_chars
        self.strip_accents = lowercase if strip_accents is None else strip_accents
        self.lowercase = lowercase

    @override
    def normalize(self, normalized: NormalizedString) -> NormalizedString:
        if self.clean_text:
            normalized = normalized.map_chars(_clean_char)
        if self.handle_chinese_chars:
            normalized = normalized.map_chars(
                lambda c: f" {c} " if is_chinese_char(c) else c
            )
        if self.strip_accents:
            normalized = NFD().normalize(normalized)
            normalized = StripAccents().normalize(normalized)
        if self.lowercase:
            normalized = Lowercase().normalize(normalized)
        return normalized

    def __repr__(self) -> str:
        return (
            f"BertNormalizer(clean_text={self.clean_text}, "
            f"handle_chinese_chars={self.handle_chinese_chars}, "
            f"strip_accents={self.strip_accents}, lowercase={self.lowercase})"
        )


def _clean_char(c: str) -> str:
    if c == "\0" or c == "\ufffd" or is_control(c):
        return ""
    if is_whitespace(c):
        return " "
    return c


def _clusters(text: str, form: NormForm) -> Iterator[Offsets]:
    """
    Yield spans that can be normalized on their own under ``form``.

    A span closes before a starter only when normalizing the span and the
    starter separately gives the same text as normalizing them together.
    """
    start = 0
    for i in range(1, len(text)):
        ch = text[i]
        if unicodedata.combining(ch) != 0:
            continue
        cluster = text[start:i]
        joined = unicodedata.normalize(form, cluster + ch)
        apart = unicodedata.normalize(form, cluster) + unicodedata.normalize(form, ch)
        # starter composes with the span before it
        if joined != apart:
            continue
        yield start, i
        start = i
    if text:
        yield start, len(text)


__all__ = [
    "Normalizer",
    "Sequence",
    "Lowercase",
    "StripAccents",
    "Strip",
    "Replace",
    "UnicodeNormalizer",
    "NFC",
    "NFD",
    "NFKC",
    "NFKD",
    "BertNormalizer",
]
