# -----------------------------------------------------------------------------
#  table.py
#  Fibonacci memo table of little-endian decimal digit buffers
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Callable

from fibengine.digits import add_digits, slot_capacity
from fibengine.utility import CapacityExceeded, ResourceExhaustion, check_index

ProgressFn = Callable[[int, int], None]

SEED = (b"0", b"1")


def _check_capacity(k: int, max_index: int | None) -> None:
    if max_index is not None and k > max_index:
        raise CapacityExceeded(
            f"index {k} exceeds the maximum supported index {max_index}. "
            "Raise ENGINE.MAX_INDEX in the profile or pass a smaller index."
        )


def build_table(
    k: int,
    *,
    max_index: int | None = None,
    margin: int = 2,
    progress: ProgressFn | None = None,
) -> tuple[bytes, ...]:
    """
    Return (F(0), ..., F(k)) as little-endian digit buffers.

    Slot i is filled once from slots i-1 and i-2 and never touched again.
    Slots are bounded by slot_capacity(max_index) when max_index is given,
    else by slot_capacity(k).
    """
    check_index(k)
    _check_capacity(k, max_index)

    cap = slot_capacity(max_index if max_index is not None else k, margin)
    try:
        table: list[bytes | None] = [None] * (k + 1)
        table[0] = SEED[0]
        if k >= 1:
            table[1] = SEED[1]
        for i in range(2, k + 1):
            table[i] = bytes(add_digits(table[i - 1], table[i - 2], capacity=cap, check=False))
            if progress is not None:
                progress(i, k)
    except MemoryError as e:
        raise ResourceExhaustion(f"out of memory while building the table up to F({k})") from e
    return tuple(table)


def fib_digits(
    k: int,
    *,
    max_index: int | None = None,
    margin: int = 2,
    progress: ProgressFn | None = None,
) -> tuple[bytes, int]:
    """
    Little-endian digits of F(k) and their count.

    Same fill order and slot bound as build_table, but only the last two
    slots are kept alive.
    """
    check_index(k)
    _check_capacity(k, max_index)
    if k < 2:
        return SEED[k], 1

    cap = slot_capacity(max_index if max_index is not None else k, margin)
    try:
        prev, cur = SEED
        for i in range(2, k + 1):
            prev, cur = cur, bytes(add_digits(cur, prev, capacity=cap, check=False))
            if progress is not None:
                progress(i, k)
    except MemoryError as e:
        raise ResourceExhaustion(f"out of memory while computing F({k})") from e
    return cur, len(cur)
