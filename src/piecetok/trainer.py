"""WordPiece vocabulary trainer."""

import heapq
import logging
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from itertools import batched

from ._decorators import measure_time
from ._progress import _is_enabled
from ._sanitise import render_token
from ._wordpiece import (
    Symbol,
    SymbolPair,
    is_eligible,
    merge_symbols,
    merged_token,
    pair_score,
    split_word,
)
from .errors import TrainingError
from .parallel import resolve_workers
from .vocab import Vocabulary

log = logging.getLogger(__name__)

DEFAULT_SPECIAL_TOKENS: tuple[str, ...] = ("[PAD]", "[UNK]", "[CLS]", "[SEP]", "[MASK]")

# stale heap entries allowed per live pair before the heap is rebuilt
_HEAP_SLACK = 4
_HEAP_MIN = 64

type WordSplitter = Callable[[str], list[str]]


class TrainerState(str, Enum):
    """Lifecycle of a ``WordPieceTrainer``."""

    IDLE = "idle"
    COUNTING = "counting"
    MERGING = "merging"
    DONE = "done"


@dataclass
class TrainingResult:
    """Results from one WordPiece training run."""

    vocab: Vocabulary
    merges: list[SymbolPair]
    n_merges_completed: int


class WordPieceTrainer:
    """
    Learns a WordPiece vocabulary from a corpus.

    Words are split into characters, every character after the first
    carrying the continuation prefix. Pairs of adjacent symbols are then
    merged one at a time, always picking the pair with the highest
    likelihood gain ``freq(pair) / (freq(left) * freq(right))``; equal
    scores go to the lexicographically smaller merged string. Merging stops
    once the vocabulary is full or no pair is eligible.

    Example:
       >>> trainer = WordPieceTrainer(vocab_size=100, special_tokens=["[UNK]"])
       >>> result = trainer.train_from_iterator(["hello world", "help"])
       >>> print(f"Learned {result.n_merges_completed} merges")
       >>> print(f"Vocabulary size: {len(result.vocab)}")

    :param vocab_size: Upper bound on the final vocabulary size.
    :param min_frequency: Pairs seen fewer times are never merged.
    :param special_tokens: Tokens reserved at the lowest ids.
    :param limit_alphabet: Keep at most this many distinct characters (the most frequent).
    :param initial_alphabet: Characters always in the alphabet, even if unseen.
    :param continuing_subword_prefix: Marker for non-initial pieces.
    :param max_token_length: Symbols longer than this are never merged further.
    :param show_progress: Log merge progress (see ``disable_progress``).
    :param num_workers: Threads used to count the corpus; ``None`` uses one per CPU.
    :param shard_size: Corpus items per counting task.
    :param verbose: Log every learned merge.
    :raises TrainingError: On invalid settings, e.g. more special tokens than ``vocab_size``.
    """

    def __init__(
        self,
        vocab_size: int = 30000,
        min_frequency: int = 0,
        special_tokens: Iterable[str] | None = None,
        limit_alphabet: int | None = None,
        initial_alphabet: Iterable[str] = (),
        continuing_subword_prefix: str = "##",
        max_token_length: int | None = None,
        show_progress: bool = True,
        num_workers: int | None = None,
        shard_size: int = 1000,
        verbose: bool = False,
    ) -> None:
        if special_tokens is None:
            special_tokens = DEFAULT_SPECIAL_TOKENS
        # keep the first occurrence of repeated special tokens
        self.special_tokens: list[str] = list(dict.fromkeys(special_tokens))

        if vocab_size < len(self.special_tokens):
            raise TrainingError(
                f"vocab_size must fit all {len(self.special_tokens)} special tokens",
                vocab_size=vocab_size,
            )
        if min_frequency < 0:
            raise TrainingError("min_frequency must be non-negative")
        if limit_alphabet is not None and limit_alphabet < 0:
            raise TrainingError("limit_alphabet must be non-negative")
        if max_token_length is not None and max_token_length < 1:
            raise TrainingError("max_token_length must be positive")
        if shard_size < 1:
            raise TrainingError("shard_size must be positive")
        if not continuing_subword_prefix:
            raise TrainingError("continuing_subword_prefix must not be empty")

        self.vocab_size = vocab_size
        self.min_frequency = min_frequency
        self.limit_alphabet = limit_alphabet
        self.initial_alphabet: frozenset[str] = frozenset(
            ch for entry in initial_alphabet for ch in entry
        )
        self.continuing_subword_prefix = continuing_subword_prefix
        self.max_token_length = max_token_length
        self.show_progress = show_progress
        self.num_workers = num_workers
        self.shard_size = shard_size
        self.verbose = verbose

        self.state = TrainerState.IDLE
        self._word_counts: Counter[str] = Counter()

    @property
    def word_counts(self) -> Mapping[str, int]:
        """Word frequencies counted so far."""
        return self._word_counts

    def reset(self) -> None:
        """Forget counted words and return to the idle state."""
        self._word_counts = Counter()
        self.state = TrainerState.IDLE

    # Counting
    # ===================================================================================

    def feed(self, corpus: Iterable[str], process: WordSplitter | None = None) -> None:
        """
        Count the words of ``corpus``.

        The corpus is consumed lazily in shards. Each shard is counted on a
        worker thread with a bounded number of shards in flight, and the
        per-shard counts are summed. May be called several times before
        ``train``.

        :param corpus: Lines or documents of text.
        :param process: Splits one item into words; defaults to whitespace splitting.
        :raises TrainingError: If the trainer already finished.
        """
        self._require_counting()
        self.state = TrainerState.COUNTING
        split = process if process is not None else str.split
        workers = resolve_workers(self.num_workers)

        def count_shard(shard: tuple[str, ...]) -> Counter[str]:
            counts: Counter[str] = Counter()
            for text in shard:
                counts.update(word for word in split(text) if word)
            return counts

        n_shards = 0
        with ThreadPoolExecutor(max_workers=workers) as pool:
            pending: set[Future[Counter[str]]] = set()
            for shard in batched(corpus, self.shard_size):
                if len(pending) >= workers * 2:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    self._reduce(done)
                pending.add(pool.submit(count_shard, shard))
                n_shards += 1
            self._reduce(pending)

        log.debug(
            f"counted {n_shards} shards, {len(self._word_counts)} distinct words"
        )

    def _reduce(self, futures: Iterable[Future[Counter[str]]]) -> None:
        for future in futures:
            self._word_counts.update(future.result())

    def _require_counting(self) -> None:
        if self.state not in (TrainerState.IDLE, TrainerState.COUNTING):
            raise TrainingError(f"trainer is {self.state.value}; call reset() first")

    # Merging
    # ===================================================================================

    @measure_time
    def train(self, word_counts: Mapping[str, int] | None = None) -> TrainingResult:
        """
        Learn the vocabulary from the counted words.

        :param word_counts: Extra word frequencies added to those from ``feed``.
        :returns: Vocabulary, learned merges and merge count.
        :raises TrainingError: If the trainer already finished.
        """
        self._require_counting()
        if word_counts is not None:
            self._word_counts.update(word_counts)

        self.state = TrainerState.MERGING
        result = self._merge(self._word_counts)
        self.state = TrainerState.DONE

        log.info(
            f"learned {result.n_merges_completed} merges, "
            f"vocabulary size {len(result.vocab)}"
        )
        return result

    def train_from_iterator(
        self, corpus: Iterable[str], process: WordSplitter | None = None
    ) -> TrainingResult:
        """Reset, count ``corpus`` and train in one call."""
        self.reset()
        self.feed(corpus, process)
        return self.train()

    def _merge(self, word_counts: Mapping[str, int]) -> TrainingResult:
        prefix = self.continuing_subword_prefix
        specials = self.special_tokens

        alphabet = self._select_alphabet(word_counts)
        runs: Counter[tuple[Symbol, ...]] = Counter()
        for word, count in word_counts.items():
            for run in split_word(word, prefix, alphabet):
                runs[tuple(run)] += count

        sym_freq: Counter[Symbol] = Counter()
        for run, count in runs.items():
            for sym in run:
                sym_freq[sym] += count

        initial = (set(sym_freq) | self.initial_alphabet) - set(specials)
        room = self.vocab_size - len(specials)
        if len(initial) > room:
            # most frequent initial symbols win; forced characters first
            ranked = sorted(
                initial,
                key=lambda s: (s not in self.initial_alphabet, -sym_freq[s], s),
            )
            initial = set(ranked[:room])
            runs = _prune_runs(runs, initial | set(specials))
            log.debug(f"initial symbols truncated to {room}")

        tokens: list[str] = [*specials, *sorted(initial)]
        seen = set(tokens)
        log.debug(f"alphabet of {len(initial)} symbols, {len(runs)} distinct runs")

        ordered = sorted(runs)
        table = _PairTable(
            [list(run) for run in ordered],
            [runs[run] for run in ordered],
            prefix,
            self.min_frequency,
            self.max_token_length,
        )

        merges: list[SymbolPair] = []
        report_every = max(1, (self.vocab_size - len(tokens)) // 10)
        while len(tokens) < self.vocab_size:
            best = table.pop_best()
            if best is None:
                log.warning(
                    f"no eligible merge left, stopping at vocabulary size "
                    f"{len(tokens)}/{self.vocab_size}"
                )
                break

            pair, new_sym = best
            table.merge(pair, new_sym)
            merges.append(pair)
            # a merge can rebuild a symbol learned before
            if new_sym not in seen:
                seen.add(new_sym)
                tokens.append(new_sym)

            if self.verbose:
                log.info(
                    f"merge {len(merges)}: {render_token(pair[0])} + "
                    f"{render_token(pair[1])} -> {render_token(new_sym)}"
                )
            if self.show_progress and _is_enabled() and len(merges) % report_every == 0:
                log.info(f"merging: {len(tokens)}/{self.vocab_size} tokens")

        return TrainingResult(
            vocab=Vocabulary.from_tokens(tokens),
            merges=merges,
            n_merges_completed=len(merges),
        )

    def _select_alphabet(self, word_counts: Mapping[str, int]) -> set[str] | None:
        """Return allowed characters, or ``None`` when every character is allowed."""
        if self.limit_alphabet is None:
            return None
        char_freq: Counter[str] = Counter()
        for word, count in word_counts.items():
            for ch in word:
                char_freq[ch] += count
        chars = set(char_freq) | self.initial_alphabet
        if len(chars) <= self.limit_alphabet:
            return chars
        ranked = sorted(
            chars,
            key=lambda ch: (ch not in self.initial_alphabet, -char_freq[ch], ch),
        )
        log.debug(f"alphabet limited from {len(chars)} to {self.limit_alphabet} characters")
        return set(ranked[: self.limit_alphabet])

    def __repr__(self) -> str:
        return (
            f"WordPieceTrainer(vocab_size={self.vocab_size}, "
            f"min_frequency={self.min_frequency}, state={self.state.value})"
        )


class _PairTable:
    """
    Pair and symbol frequencies of a corpus under merging.

    Keeps a reverse index from each pair to the words containing it so
    that a merge only revisits those words, and a lazily invalidated
    max-heap of pair scores: whenever a pair's score may have changed a
    fresh entry is pushed, and popped entries whose score no longer matches
    are discarded.
    The heap is rebuilt from the live pairs once stale entries outnumber
    them by more than ``_HEAP_SLACK`` to one.
    """

    def __init__(
        self,
        words: list[list[Symbol]],
        counts: list[int],
        prefix: str,
        min_frequency: int,
        max_token_length: int | None,
    ) -> None:
        self.words = words
        self.counts = counts
        self.prefix = prefix
        self.min_frequency = min_frequency
        self.max_token_length = max_token_length

        self.pair_freq: Counter[SymbolPair] = Counter()
        self.sym_freq: Counter[Symbol] = Counter()
        self.pair_words: defaultdict[SymbolPair, set[int]] = defaultdict(set)
        self.sym_pairs: defaultdict[Symbol, set[SymbolPair]] = defaultdict(set)
        # entries are (-score, merged, left, right)
        self._heap: list[tuple[float, Symbol, Symbol, Symbol]] = []

        for idx in range(len(words)):
            self._add_word(idx, None)
        for pair in self.pair_freq:
            self._push(pair)

    def _add_word(self, idx: int, touched: set[SymbolPair] | None) -> None:
        symbols = self.words[idx]
        count = self.counts[idx]
        for sym in symbols:
            self.sym_freq[sym] += count
        for pair in zip(symbols, symbols[1:]):
            self.pair_freq[pair] += count
            self.pair_words[pair].add(idx)
            self.sym_pairs[pair[0]].add(pair)
            self.sym_pairs[pair[1]].add(pair)
            if touched is not None:
                touched.add(pair)

    def _remove_word(self, idx: int, touched: set[SymbolPair]) -> None:
        symbols = self.words[idx]
        count = self.counts[idx]
        for sym in symbols:
            self.sym_freq[sym] -= count
        for pair in zip(symbols, symbols[1:]):
            self.pair_freq[pair] -= count
            self.pair_words[pair].discard(idx)
            touched.add(pair)

    def _purge(self, pairs: Iterable[SymbolPair]) -> None:
        for pair in pairs:
            if self.pair_freq[pair] > 0:
                continue
            self.pair_freq.pop(pair, None)
            self.pair_words.pop(pair, None)
            self.sym_pairs[pair[0]].discard(pair)
            self.sym_pairs[pair[1]].discard(pair)

    def score(self, pair: SymbolPair) -> float:
        left, right = pair
        return pair_score(self.pair_freq[pair], self.sym_freq[left], self.sym_freq[right])

    def _eligible(self, pair: SymbolPair) -> bool:
        return is_eligible(
            pair,
            self.pair_freq.get(pair, 0),
            self.prefix,
            self.min_frequency,
            self.max_token_length,
        )

    def _push(self, pair: SymbolPair) -> None:
        if self._eligible(pair):
            left, right = pair
            heapq.heappush(
                self._heap,
                (-self.score(pair), merged_token(left, right, self.prefix), left, right),
            )

    def pop_best(self) -> tuple[SymbolPair, Symbol] | None:
        """Return the best eligible pair and its merged symbol, or ``None``."""
        while self._heap:
            neg_score, new_sym, left, right = heapq.heappop(self._heap)
            pair = (left, right)
            # stale entry: a fresher one was pushed when the score changed
            if not self._eligible(pair) or -neg_score != self.score(pair):
                continue
            return pair, new_sym
        return None

    def merge(self, pair: SymbolPair, new_sym: Symbol) -> None:
        """Fuse ``pair`` into ``new_sym`` in every word containing it."""
        touched: set[SymbolPair] = set()
        for idx in sorted(self.pair_words.get(pair, ())):
            self._remove_word(idx, touched)
            self.words[idx] = merge_symbols(self.words[idx], pair, new_sym)
            self._add_word(idx, touched)
        self._purge(touched)

        # frequencies of both merged symbols dropped, so every pair using them rescores
        refresh = set(touched)
        for sym in (pair[0], pair[1], new_sym):
            refresh.update(self.sym_pairs.get(sym, ()))
        for other in refresh:
            if other in self.pair_freq:
                self._push(other)
        if len(self._heap) > _HEAP_SLACK * len(self.pair_freq) + _HEAP_MIN:
            self._compact()

    def _compact(self) -> None:
        self._heap = [
            (-self.score(pair), merged_token(pair[0], pair[1], self.prefix), *pair)
            for pair in self.pair_freq
            if self._eligible(pair)
        ]
        heapq.heapify(self._heap)


def _prune_runs(
    runs: Counter[tuple[Symbol, ...]], keep: set[Symbol]
) -> Counter[tuple[Symbol, ...]]:
    """Drop symbols outside ``keep``, cutting runs where they stood."""
    pruned: Counter[tuple[Symbol, ...]] = Counter()
    for run, count in runs.items():
        current: list[Symbol] = []
        for sym in run:
            if sym in keep:
                current.append(sym)
            elif current:
                pruned[tuple(current)] += count
                current = []
        if current:
            pruned[tuple(current)] += count
    return pruned


__all__ = [
    "DEFAULT_SPECIAL_TOKENS",
    "TrainerState",
    "TrainingResult",
    "WordPieceTrainer",
]
