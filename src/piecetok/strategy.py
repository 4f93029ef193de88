"""
Policies for special token strings that show up inside raw input text.

A registered special token such as ``[MASK]`` can appear verbatim in user
text. A strategy decides, per encode call, which registered tokens are cut
out of the text and emitted as their own id (atomic matches) and which are
left to normalization and WordPiece like any other characters.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Collection, Mapping
from typing import Final, Literal, overload, override

from ._sanitise import render_token
from .errors import SpecialTokenError, StrategyError
from .types import TokenId

log = logging.getLogger(__name__)

type SpecialTokens = Mapping[str, TokenId]


def _found_in(text: str, special_toks: SpecialTokens) -> set[str]:
    return {seq for seq in special_toks if seq in text}


class SpecialTokenStrategy(ABC):
    """Decides which registered special tokens are matched atomically in ``text``."""

    @abstractmethod
    def handle(self, text: str, special_toks: SpecialTokens) -> dict[str, TokenId]:
        """
        Select the special tokens to match atomically while encoding ``text``.

        :param text: Raw input about to be encoded.
        :param special_toks: Tokens registered on the tokenizer, with their ids.
        :returns: Subset of ``special_toks``; an empty dict disables matching.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class AllowAllStrategy(SpecialTokenStrategy):
    """Match every registered special token."""

    @override
    def handle(self, text: str, special_toks: SpecialTokens) -> dict[str, TokenId]:
        if not special_toks:
            log.warning("'all' strategy used but no special tokens are registered")
        return dict(special_toks)


class AllowNoneRaiseStrategy(SpecialTokenStrategy):
    """Refuse input that contains any registered special token string."""

    @override
    def handle(self, text: str, special_toks: SpecialTokens) -> dict[str, TokenId]:
        found = _found_in(text, special_toks)
        if found:
            raise SpecialTokenError(
                "special tokens found in text but not allowed", found_tokens=found
            )
        return {}


class AllowNoneStrategy(SpecialTokenStrategy):
    """Encode special token strings as ordinary text."""

    @override
    def handle(self, text: str, special_toks: SpecialTokens) -> dict[str, TokenId]:
        found = _found_in(text, special_toks)
        if found:
            shown = ", ".join(render_token(seq) for seq in sorted(found))
            log.warning(f"special token strings encoded as text: {shown}")
        return {}


class AllowCustomStrategy(SpecialTokenStrategy):
    """
    Match only the registered tokens named in ``allowed_subset``.

    :param allowed_subset: Special token strings to match atomically. Names
        that are not registered on the tokenizer are ignored.
    """

    def __init__(self, allowed_subset: Collection[str]) -> None:
        self.allowed_subset = frozenset(allowed_subset)

    @override
    def handle(self, text: str, special_toks: SpecialTokens) -> dict[str, TokenId]:
        unknown = self.allowed_subset.difference(special_toks)
        if unknown:
            log.debug(f"allowed tokens not registered: {sorted(unknown)}")
        return {seq: idx for seq, idx in special_toks.items() if seq in self.allowed_subset}

    def __repr__(self) -> str:
        return f"AllowCustomStrategy({sorted(self.allowed_subset)!r})"


# Registry
# ===================================================================================

StrategyName = Literal["all", "none", "none-raise", "custom"]

_STRATEGIES: Final[dict[str, type[SpecialTokenStrategy]]] = {
    "all": AllowAllStrategy,
    "none": AllowNoneStrategy,
    "none-raise": AllowNoneRaiseStrategy,
    "custom": AllowCustomStrategy,
}


def list_strategies() -> list[str]:
    """Return available special token strategy names."""
    return list(_STRATEGIES)


@overload
def get_strategy(
    name: Literal["all", "none", "none-raise"],
) -> SpecialTokenStrategy: ...


@overload
def get_strategy(
    name: Literal["custom"], allowed_subset: Collection[str]
) -> AllowCustomStrategy: ...


def get_strategy(
    name: StrategyName = "none-raise", allowed_subset: Collection[str] | None = None
) -> SpecialTokenStrategy:
    """
    Create a special token strategy by name.

    :param name: One of ``list_strategies()``.
    :param allowed_subset: Tokens matched by the "custom" strategy; required for it.
    :raises StrategyError: If ``name`` is unknown, or "custom" has no subset.

    .. code-block:: python

        tokenizer.encode("fill [MASK] here", strategy=get_strategy("all"))
        strategy = get_strategy("custom", allowed_subset={"[MASK]"})
    """
    cls = _STRATEGIES.get(name)
    if cls is None:
        raise StrategyError(
            "unknown strategy name", invalid_name=name, available=list_strategies()
        )
    if cls is AllowCustomStrategy:
        if allowed_subset is None:
            raise StrategyError("allowed_subset is required for custom strategy")
        return AllowCustomStrategy(allowed_subset)
    return cls()


__all__ = [
    "StrategyName",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "list_strategies",
    "get_strategy",
]
