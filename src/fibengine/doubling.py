# -----------------------------------------------------------------------------
#  doubling.py
#  Fast-doubling Fibonacci at a fixed native width
# -----------------------------------------------------------------------------

from __future__ import annotations

from functools import lru_cache

from fibengine.utility import InvalidInput, check_index

DEFAULT_BITS = 64


def _check_bits(bits: int) -> int:
    if isinstance(bits, bool) or not isinstance(bits, int) or bits < 2:
        raise InvalidInput(f"bits must be an integer >= 2, got {bits!r}")
    return bits


def _to_signed(x: int, bits: int) -> int:
    return x - (1 << bits) if x >> (bits - 1) else x


def fib_bounded(k: int, *, bits: int = DEFAULT_BITS, signed: bool = True) -> int:
    """
    F(k) computed with every operation reduced modulo 2**bits.

    Uses the doubling identities
        F(2n)   = F(n) * (2*F(n+1) - F(n))
        F(2n+1) = F(n)**2 + F(n+1)**2
    over the bits of k from the most significant down, so the loop runs
    k.bit_length() times.

    Past the width the result is F(k) mod 2**bits (two's complement when
    `signed`); this wraps silently like the native integer it models. Use the
    decimal engine when the exact value matters. See fits_native().
    """
    check_index(k)
    _check_bits(bits)
    limit = bits - 1 if signed else bits
    if k.bit_length() > limit:
        raise InvalidInput(f"index {k} is not representable in a {bits}-bit {'signed' if signed else 'unsigned'} integer")
    if k < 2:
        return k

    mask = (1 << bits) - 1
    a, b = 0, 1
    for shift in range(k.bit_length() - 1, -1, -1):
        t1 = (a * ((2 * b - a) & mask)) & mask
        t2 = (a * a + b * b) & mask
        a, b = t1, t2
        if (k >> shift) & 1:
            a, b = b, (a + b) & mask

    return _to_signed(a, bits) if signed else a


@lru_cache(maxsize=64)
def max_exact_index(bits: int = DEFAULT_BITS, signed: bool = True) -> int:
    """Largest k whose F(k) fits the width without wrapping."""
    _check_bits(bits)
    ceiling = 1 << (bits - 1 if signed else bits)
    k, a, b = 0, 0, 1
    while b < ceiling:
        k, a, b = k + 1, b, a + b
    return k


def fits_native(k: int, bits: int = DEFAULT_BITS, signed: bool = True) -> bool:
    check_index(k)
    return k <= max_exact_index(bits, signed)
