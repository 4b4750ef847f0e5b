from __future__ import annotations

from dataclasses import dataclass

from fibengine.doubling import DEFAULT_BITS, fib_bounded
from fibengine.fmt import finalize
from fibengine.runtime import CFG
from fibengine.table import ProgressFn, build_table, fib_digits
from fibengine.utility import InvalidInput, UserInputError, check_index

DEFAULT_MAX_INDEX = 500
DEFAULT_SLOT_MARGIN = 2
# Largest MAX_INDEX a packaged profile may advertise. compute() runs in
# O(k^2) digit operations, and around 20 000 that is already most of a minute.
PROFILE_MAX_INDEX_LIMIT = 20_000


@dataclass(frozen=True)
class FibResult:
    index: int
    digits: str          # big-endian, no leading zeros

    @property
    def length(self) -> int:
        return len(self.digits)

    def __int__(self) -> int:
        return int(self.digits)

    def __str__(self) -> str:
        return self.digits


# --- configuration ----------------------------------------------------------

def _cfg_int(key: str, default: int, minimum: int) -> int:
    raw = CFG(key, default)
    if isinstance(raw, bool):
        raise UserInputError(f"{key} must be an integer, got {raw!r}")
    try:
        val = int(raw)
    except (TypeError, ValueError):
        raise UserInputError(f"{key} must be an integer, got {raw!r}") from None
    if val < minimum:
        raise UserInputError(f"{key} must be >= {minimum}, got {val}")
    return val


def configured_max_index() -> int:
    return _cfg_int("ENGINE.MAX_INDEX", DEFAULT_MAX_INDEX, 0)


def configured_bits() -> int:
    return _cfg_int("ENGINE.NATIVE_BITS", DEFAULT_BITS, 2)


def configured_signed() -> bool:
    return bool(CFG("ENGINE.SIGNED", True))


def configured_margin() -> int:
    return _cfg_int("ENGINE.SLOT_MARGIN", DEFAULT_SLOT_MARGIN, 0)


# --- operations -------------------------------------------------------------

def compute(k: int, *, max_index: int | None = None, progress: ProgressFn | None = None) -> FibResult:
    """
    Exact F(k) as a decimal string, built by repeated digit-buffer addition.

    max_index defaults to ENGINE.MAX_INDEX; indices above it raise
    CapacityExceeded before anything is allocated.
    """
    check_index(k)
    if max_index is None:
        max_index = configured_max_index()
    le, length = fib_digits(k, max_index=max_index, margin=configured_margin(), progress=progress)
    return FibResult(k, finalize(le, length))


def compute_bounded(k: int, *, bits: int | None = None, signed: bool | None = None) -> int:
    """F(k) at native width (ENGINE.NATIVE_BITS); wraps silently past it."""
    return fib_bounded(
        k,
        bits=configured_bits() if bits is None else bits,
        signed=configured_signed() if signed is None else signed,
    )


def compute_range(start: int, stop: int, *, max_index: int | None = None) -> list[FibResult]:
    """F(start) .. F(stop) inclusive, from a single table."""
    check_index(start, "start")
    check_index(stop, "stop")
    if start > stop:
        raise InvalidInput(f"empty range {start}..{stop}")
    if max_index is None:
        max_index = configured_max_index()
    table = build_table(stop, max_index=max_index, margin=configured_margin())
    return [FibResult(i, finalize(table[i])) for i in range(start, stop + 1)]
