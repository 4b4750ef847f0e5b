"""
verify.py — cross-check the two engines against each other and gmpy2

For every index:
  - decimal engine == gmpy2.fib(k)
  - F(k) == F(k-1) + F(k-2), re-added with the digit adder (k >= 2)
  - bounded engine == decimal engine while F(k) fits the native width,
    else bounded == F(k) mod 2**bits

Each check returns (ok, detail) where detail names the first mismatch.
"""

from __future__ import annotations

from collections.abc import Iterator

import gmpy2

from fibengine.digits import add_digits
from fibengine.doubling import fits_native
from fibengine.engine import compute_bounded, compute_range, configured_bits, configured_signed
from fibengine.fmt import finalize, to_little_endian
from fibengine.utility import InvalidInput, check_index


def _wrapped(value: int, bits: int, signed: bool) -> int:
    v = value % (1 << bits)
    if signed and v >> (bits - 1):
        v -= 1 << bits
    return v


def _check(k: int, text: str, prev: str | None, prev2: str | None, bits: int, signed: bool) -> tuple[bool, str | None]:
    ref = gmpy2.fib(k)
    if text != str(ref):
        return False, f"F({k}): decimal engine gave {text}, gmpy2 gave {ref}"

    if prev is not None and prev2 is not None:
        summed = finalize(add_digits(to_little_endian(prev), to_little_endian(prev2)))
        if summed != text:
            return False, f"F({k}) != F({k - 1}) + F({k - 2}): {text} vs {summed}"

    if k.bit_length() > (bits - 1 if signed else bits):
        # index itself does not fit the width; nothing to compare
        return True, None

    bounded = compute_bounded(k, bits=bits, signed=signed)
    if fits_native(k, bits, signed):
        if bounded != int(text):
            return False, f"F({k}): bounded engine gave {bounded}, expected {text}"
    elif bounded != _wrapped(int(ref), bits, signed):
        return False, f"F({k}): bounded engine gave {bounded}, expected F({k}) mod 2**{bits}"
    return True, None


def verify_range(start: int, stop: int, *, max_index: int | None = None) -> Iterator[tuple[int, bool, str | None]]:
    """Yield (k, ok, detail) for start..stop inclusive."""
    check_index(start, "start")
    check_index(stop, "stop")
    if start > stop:
        raise InvalidInput(f"empty range {start}..{stop}")

    bits, signed = configured_bits(), configured_signed()
    lo = max(start - 2, 0)
    results = compute_range(lo, stop, max_index=max_index)
    values = {r.index: r.digits for r in results}
    for k in range(start, stop + 1):
        ok, detail = _check(k, values[k], values.get(k - 1), values.get(k - 2), bits, signed)
        yield k, ok, detail


def verify_index(k: int, *, max_index: int | None = None) -> tuple[bool, str | None]:
    _, ok, detail = next(verify_range(k, k, max_index=max_index))
    return ok, detail
