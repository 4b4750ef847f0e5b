# -----------------------------------------------------------------------------
#  digits.py
#  Little-endian decimal digit buffers and schoolbook addition
# -----------------------------------------------------------------------------

from __future__ import annotations

import math

from fibengine.utility import CapacityExceeded, InvalidInput, check_index

ZERO = 48  # ord("0")

# log10 of the golden ratio: F(k) has about k * LOG10_PHI decimal digits
LOG10_PHI = math.log10((1 + math.sqrt(5)) / 2)


def validate_digits(buf: bytes | bytearray, label: str = "digit buffer") -> None:
    """Raise InvalidInput unless buf is a non-empty run of ASCII '0'..'9'."""
    if not isinstance(buf, (bytes, bytearray)):
        raise InvalidInput(f"{label} must be bytes, got {type(buf).__name__}")
    if not buf:
        raise InvalidInput(f"{label} is empty")
    if not buf.isdigit():
        bad = next(b for b in buf if not 48 <= b <= 57)
        raise InvalidInput(f"{label} contains non-digit byte {bytes([bad])!r}")


def digits_from_int(n: int) -> bytes:
    """Little-endian digit buffer of a non-negative int."""
    check_index(n, "value")
    return str(n).encode("ascii")[::-1]


def slot_capacity(max_index: int, margin: int = 2) -> int:
    """
    Digits needed to hold any F(k) with k <= max_index.

    F(k) has floor(k*log10(phi) - log10(sqrt 5)) + 1 digits for k >= 1, so
    floor(k*log10(phi)) + 1 is already an upper bound; margin absorbs float
    rounding in LOG10_PHI for very large k.
    """
    check_index(max_index, "max_index")
    if margin < 0:
        raise InvalidInput(f"margin must be non-negative, got {margin}")
    return int(max_index * LOG10_PHI) + 1 + margin


def add_digits(
    x: bytes | bytearray,
    y: bytes | bytearray,
    *,
    capacity: int | None = None,
    check: bool = True,
) -> bytearray:
    """
    Sum of two little-endian decimal digit buffers, little-endian.

    The result has max(len(x), len(y)) digits, plus one when a carry leaves
    the top position. Neither input is modified. With `capacity`, a result
    that would need more digits raises CapacityExceeded before that digit is
    written.
    """
    if check:
        validate_digits(x, "left operand")
        validate_digits(y, "right operand")

    if len(x) < len(y):
        x, y = y, x
    m, n = len(x), len(y)

    if capacity is not None and m > capacity:
        raise CapacityExceeded(f"operand has {m} digits, slot capacity is {capacity}")

    out = bytearray(m)
    carry = 0
    for i in range(n):
        s = x[i] + y[i] - 2 * ZERO + carry
        out[i] = ZERO + s % 10
        carry = s // 10
    for i in range(n, m):
        s = x[i] - ZERO + carry
        out[i] = ZERO + s % 10
        carry = s // 10

    if carry:
        if capacity is not None and m + 1 > capacity:
            raise CapacityExceeded(f"sum needs {m + 1} digits, slot capacity is {capacity}")
        out.append(ZERO + 1)
    return out
