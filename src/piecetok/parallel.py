"""Parallel processing mode helpers for batch encoding."""

import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from math import ceil
from typing import TYPE_CHECKING, Literal

from .errors import StrategyError

if TYPE_CHECKING:
    from .encoding import Encoding
    from .errors import PieceTokError
    from .strategy import SpecialTokenStrategy
    from .tokenizer import Tokenizer
    from .types import EncodeInput

ParallelStrategy = Literal["auto", "batch", "off"]


class ParallelMode(str, Enum):
    """Named parallelization modes for batch encoding."""

    AUTO = "auto"
    BATCH = "batch"
    OFF = "off"

    @classmethod
    def get(cls, name: "str | ParallelMode") -> "ParallelMode":
        """Get parallel mode by name (case-insensitive)."""
        if isinstance(name, ParallelMode):
            return name
        try:
            return cls[name.upper()]
        except KeyError:
            raise StrategyError(
                "unknown mode",
                invalid_name=name,
                available=[mode.value for mode in cls],
            )


def list_parallel_modes() -> list[str]:
    """Return available parallel mode names."""
    return [mode.value for mode in ParallelMode]


def resolve_workers(num_workers: int | None) -> int:
    """Return the worker count to use; ``None`` means one per CPU, ``0`` means one."""
    if num_workers is None:
        return os.cpu_count() or 1
    return max(1, num_workers)


def map_ordered[T, R](
    func: Callable[[T], R], items: Sequence[T], num_workers: int
) -> list[R]:
    """
    Apply ``func`` to every item on a thread pool, keeping input order.

    Items are cut into contiguous groups (about two per worker) to reduce
    task-scheduling overhead. Each worker writes its results straight into
    the slots of its group in a pre-sized buffer.

    :param func: Function applied to each item; must not share mutable state.
    :param items: Inputs.
    :param num_workers: Size of the worker pool.
    :returns: ``[func(item) for item in items]``.
    """
    n = len(items)
    if num_workers <= 1 or n <= 1:
        return [func(item) for item in items]

    results: list[R | None] = [None] * n
    target_tasks = min(n, num_workers * 2)
    group_size = max(1, ceil(n / target_tasks))

    def run_group(start: int) -> None:
        for idx in range(start, min(start + group_size, n)):
            results[idx] = func(items[idx])

    with ThreadPoolExecutor(max_workers=num_workers) as pool:
        futures = [pool.submit(run_group, start) for start in range(0, n, group_size)]
        # surface unexpected worker failures
        for future in futures:
            future.result()

    return results  # type: ignore[return-value]


def encode_batch(
    tokenizer: "Tokenizer",
    inputs: "list[EncodeInput]",
    add_special_tokens: bool = True,
    strategy: "SpecialTokenStrategy | None" = None,
    num_workers: int | None = None,
    parallel_mode: ParallelStrategy = "auto",
) -> "list[Encoding | PieceTokError]":
    """Encode many inputs with a parallel mode given by name."""
    return tokenizer.encode_batch(
        inputs,
        add_special_tokens=add_special_tokens,
        strategy=strategy,
        num_workers=num_workers,
        parallel_mode=ParallelMode.get(parallel_mode),
    )


__all__ = [
    "ParallelStrategy",
    "ParallelMode",
    "list_parallel_modes",
    "resolve_workers",
    "map_ordered",
    "encode_batch",
]
