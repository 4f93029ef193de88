"""Exception hierarchy for piecetok."""

import regex as re

from ._sanitise import render_token


class PieceTokError(Exception):
    """Base exception for all piecetok errors."""

    @staticmethod
    def _with_details(message: str, **details: object) -> str:
        """Append ``(name: value)`` for every detail that is set."""
        extra = " ".join(
            f"({name.replace('_', ' ')}: {value})"
            for name, value in details.items()
            if value is not None
        )
        return f"{message} {extra}" if extra else message


class InvalidEncodingError(PieceTokError):
    """Raised when input text is not well-formed UTF-8."""

    def __init__(
        self,
        message: str,
        *,
        position: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(self._with_details(message, position=position, reason=reason))
        self.position = position
        self.reason = reason


class MissingSpecialTokenError(PieceTokError):
    """Raised when a required special token is absent from the vocabulary."""

    def __init__(self, message: str, *, token: str | None = None) -> None:
        shown = render_token(token) if token is not None else None
        super().__init__(self._with_details(message, token=shown))
        self.token = token


class SpecialTokenError(PieceTokError):
    """Raised when input text holds special tokens the strategy forbids."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        found = ", ".join(sorted(found_tokens)) if found_tokens else None
        super().__init__(self._with_details(message, found=found))
        self.found_tokens = found_tokens


class TokenizationError(PieceTokError):
    """Raised when an encoding cannot be built consistently."""

    def __init__(
        self,
        message: str,
        *,
        position: int | None = None,
        input_text: str | None = None,
    ) -> None:
        super().__init__(self._with_details(message, position=position))
        self.position = position
        self.input_text = input_text


class VocabularyError(PieceTokError):
    """Raised for malformed vocabularies and ids missing from one."""

    def __init__(
        self,
        message: str,
        *,
        vocab_size: int | None = None,
        invalid_tok: str | int | None = None,
    ) -> None:
        # decoding: id not in vocab, loading: duplicate entry
        shown = repr(invalid_tok) if invalid_tok is not None else None
        super().__init__(
            self._with_details(message, vocab_size=vocab_size, invalid_token=shown)
        )
        self.vocab_size = vocab_size
        self.invalid_tok = invalid_tok


class TrainingError(PieceTokError):
    """Raised when vocabulary training is misconfigured or misused."""

    def __init__(self, message: str, *, vocab_size: int | None = None) -> None:
        super().__init__(self._with_details(message, vocab_size=vocab_size))
        self.vocab_size = vocab_size


class ModelLoadError(PieceTokError):
    """Raised when a vocabulary file is missing or unreadable."""

    def __init__(self, message: str, *, model_path: str | None = None) -> None:
        super().__init__(self._with_details(message, path=model_path))
        self.model_path = model_path


class PatternError(PieceTokError):
    """
    Raised for invalid split regexes and unknown pattern names.

    :param pattern: The regex source that failed to compile.
    :param regex_err: The underlying error from the ``regex`` library.
    """

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        super().__init__(
            self._with_details(
                message,
                pattern=repr(pattern) if pattern is not None else None,
                reason=regex_err,
            )
        )
        self.pattern = pattern
        self.regex_err = regex_err


class StrategyError(PieceTokError):
    """Raised when a named strategy, mode or component cannot be resolved."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available: list[str] | None = None,
    ) -> None:
        super().__init__(
            self._with_details(message, got=invalid_name, available=available)
        )
        self.invalid_name = invalid_name
        self.available = available


__all__ = [
    "PieceTokError",
    "InvalidEncodingError",
    "MissingSpecialTokenError",
    "SpecialTokenError",
    "TokenizationError",
    "VocabularyError",
    "TrainingError",
    "ModelLoadError",
    "PatternError",
    "StrategyError",
]
