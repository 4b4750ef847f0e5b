# src/fibengine/fmt.py
from __future__ import annotations

import re

from colorama import Fore, Style

from fibengine.runtime import CFG
from fibengine.utility import InvalidInput

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


# -----------------------------------------------------------------------------
#  Digit order
# -----------------------------------------------------------------------------

def reverse_digits(buf: bytearray, length: int) -> None:
    """
    Reverse buf[0:length] in place.

    Swaps positions i and length-1-i for every i below length // 2, so the
    last semantic digit ends up first for both odd and even lengths. Bytes at
    and beyond `length` (unused capacity) are left alone.
    """
    if length < 0 or length > len(buf):
        raise InvalidInput(f"length {length} outside buffer of size {len(buf)}")
    i, j = 0, length - 1
    while i < j:
        buf[i], buf[j] = buf[j], buf[i]
        i += 1
        j -= 1


def finalize(le: bytes | bytearray, length: int | None = None) -> str:
    """Big-endian text of a little-endian digit buffer."""
    if length is None:
        length = len(le)
    work = bytearray(le)
    reverse_digits(work, length)
    text = work[:length].decode("ascii")
    # Table output never has leading zeros; hand-built buffers might.
    stripped = text.lstrip("0")
    return stripped or "0"


def to_little_endian(text: str) -> bytes:
    """Inverse of finalize() for a plain decimal string."""
    if not text or not text.isascii() or not text.isdigit():
        raise InvalidInput(f"not a decimal digit string: {text!r}")
    return text.encode("ascii")[::-1]


# -----------------------------------------------------------------------------
#  Display
# -----------------------------------------------------------------------------

def abbr_digits(text: str, head: int = 10, tail: int = 10, threshold: int = 35, ellipsis: str = "…") -> str:
    """Abbreviate a long digit string as first<head>…last<tail>."""
    d = len(text)
    if d <= threshold or head + tail >= d:
        return text
    return f"{text[:head]}{ellipsis}{text[-tail:]}"


def group_digits(text: str, sep: str = ",") -> str:
    """Insert sep every three digits from the right."""
    if len(text) <= 3:
        return text
    lead = len(text) % 3 or 3
    parts = [text[:lead]] + [text[i:i + 3] for i in range(lead, len(text), 3)]
    return sep.join(parts)


def display_digits(text: str) -> str:
    """Render a result for the console according to DISPLAY/FORMATTING settings."""
    if bool(CFG("DISPLAY.ABBREVIATE", True)):
        ell = CFG("FORMATTING.ELLIPSIS", "…")
        head = int(CFG("FORMATTING.NUM_ABBR_HEAD", 20))
        tail = int(CFG("FORMATTING.NUM_ABBR_TAIL", 20))
        thr = int(CFG("FORMATTING.NUM_ABBR_THRESHOLD", 80))
        short = abbr_digits(text, head, tail, thr, ell)
        if short != text:
            return short
    sep = CFG("DISPLAY.GROUP_DIGITS", "")
    if sep:
        return group_digits(text, str(sep))
    return text


def format_label(label: str, value: str) -> str:
    return f"{Fore.CYAN}{label:<14}{Style.RESET_ALL}{value}"
