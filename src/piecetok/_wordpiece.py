"""
Core WordPiece merge operations shared by the trainer.
"""

from collections import Counter
from collections.abc import Iterable

from typing_extensions import deprecated

type Symbol = str
type SymbolPair = tuple[Symbol, Symbol]


def split_word(word: str, prefix: str, alphabet: set[str] | None = None) -> list[list[Symbol]]:
    """
    Split a word into runs of single-character symbols.

    Every character after the first carries ``prefix``. Characters outside
    ``alphabet`` are dropped and cut the word, so that no pair spans a
    dropped character.

    :param word: Word to split.
    :param prefix: Continuation marker.
    :param alphabet: Allowed characters; ``None`` allows all.
    :returns: Non-empty symbol runs.
    """
    runs: list[list[Symbol]] = []
    run: list[Symbol] = []
    for i, ch in enumerate(word):
        if alphabet is not None and ch not in alphabet:
            if run:
                runs.append(run)
                run = []
            continue
        run.append(ch if i == 0 else prefix + ch)
    if run:
        runs.append(run)
    return runs


def merged_token(left: Symbol, right: Symbol, prefix: str) -> Symbol:
    """Return the symbol formed by fusing ``left`` with continuation ``right``."""
    return left + right.removeprefix(prefix)


def symbol_length(symbol: Symbol, prefix: str) -> int:
    """Return the character length of ``symbol`` without its continuation marker."""
    return len(symbol.removeprefix(prefix))


def merge_symbols(symbols: list[Symbol], pair: SymbolPair, new_sym: Symbol) -> list[Symbol]:
    """Replace every non-overlapping occurrence of ``pair``, scanning left to right."""
    merged: list[Symbol] = []
    i = 0
    n = len(symbols)
    while i < n:
        if i < n - 1 and symbols[i] == pair[0] and symbols[i + 1] == pair[1]:
            merged.append(new_sym)
            i += 2
        else:
            merged.append(symbols[i])
            i += 1
    return merged


def pair_score(pair_freq: int, left_freq: int, right_freq: int) -> float:
    """Likelihood gain of a merge: ``freq(pair) / (freq(left) * freq(right))``."""
    return pair_freq / (left_freq * right_freq)


def is_eligible(
    pair: SymbolPair,
    freq: int,
    prefix: str,
    min_frequency: int,
    max_token_length: int | None,
) -> bool:
    """
    Check whether a pair may be merged.

    Pairs seen fewer than ``min_frequency`` times are skipped, as are pairs
    with a symbol longer than ``max_token_length``; such symbols stay in the
    vocabulary as terminal symbols.
    """
    if freq <= 0 or freq < min_frequency:
        return False
    if max_token_length is not None:
        left, right = pair
        if (
            symbol_length(left, prefix) > max_token_length
            or symbol_length(right, prefix) > max_token_length
        ):
            return False
    return True


@deprecated(
    "Reference implementation for tests only. Use `WordPieceTrainer()` for production."
)
def slow_wordpiece_merges(
    words: Iterable[tuple[list[Symbol], int]],
    n_merges: int,
    prefix: str = "##",
    min_frequency: int = 0,
    max_token_length: int | None = None,
) -> list[SymbolPair]:
    """
    Learn merges by recounting every pair after each merge.

    Naive algorithm: O(n × M).

    where:

    - n = total number of symbols in all words
    - M = number of merges

    Each merge requires a full rescan of every word to recount pair and
    symbol frequencies, which is only practical for tiny corpora. Ties
    between equal scores go to the lexicographically smaller merged string,
    then to the smaller pair.

    :param words: ``(symbols, count)`` pairs, e.g. from ``split_word``.
    :param n_merges: Maximum number of merges to learn.
    :param prefix: Continuation marker.
    :param min_frequency: Pairs seen fewer times are never merged.
    :param max_token_length: Longer symbols are never merged further.
    :return: Merged pairs in the order they were learned.
    """
    corpus = [(list(symbols), count) for symbols, count in words]
    merges: list[SymbolPair] = []

    while len(merges) < n_merges:
        sym_freq: Counter[Symbol] = Counter()
        pair_freq: Counter[SymbolPair] = Counter()
        for symbols, count in corpus:
            for sym in symbols:
                sym_freq[sym] += count
            for pair in zip(symbols, symbols[1:]):
                pair_freq[pair] += count

        best: tuple[float, Symbol, Symbol, Symbol] | None = None
        for pair, freq in pair_freq.items():
            if not is_eligible(pair, freq, prefix, min_frequency, max_token_length):
                continue
            score = pair_score(freq, sym_freq[pair[0]], sym_freq[pair[1]])
            key = (-score, merged_token(*pair, prefix), *pair)
            if best is None or key < best:
                best = key
        if best is None:
            break

        _, new_sym, left, right = best
        corpus = [
            (merge_symbols(symbols, (left, right), new_sym), count)
            for symbols, count in corpus
        ]
        merges.append((left, right))

    return merges


__all__ = [
    "Symbol",
    "SymbolPair",
    "split_word",
    "merged_token",
    "symbol_length",
    "merge_symbols",
    "pair_score",
    "is_eligible",
    "slow_wordpiece_merges",
]
