# src/fibengine/display.py
from __future__ import annotations

import textwrap

from colorama import Fore, Style
from sympy import isprime

from fibengine.config import list_profiles_with_descriptions, read_current_profile
from fibengine.doubling import fits_native, max_exact_index
from fibengine.engine import FibResult, configured_bits, configured_max_index, configured_signed
from fibengine.fmt import display_digits, format_label
from fibengine.output_manager import OutputManager
from fibengine.runtime import CFG
from fibengine.utility import digit_sum


def primality_note(result: FibResult) -> str | None:
    """'prime' / 'composite', or None when F(k) is too long to test."""
    limit = int(CFG("DISPLAY.PRIMALITY_MAX_DIGITS", 300))
    if result.length > limit:
        return None
    return "prime" if isprime(int(result.digits)) else "composite"


def print_result(result: FibResult, *, om: OutputManager, show_details: bool = True, elapsed: float | None = None) -> None:
    om.write(f"{Fore.YELLOW}{Style.BRIGHT}F({result.index}){Style.RESET_ALL} = {display_digits(result.digits)}")
    if not show_details:
        return
    om.write(format_label("digits", str(result.length)))
    om.write(format_label("digit sum", str(digit_sum(result.digits))))
    note = primality_note(result)
    if note is not None:
        color = Fore.GREEN if note == "prime" else Fore.WHITE
        om.write(format_label("primality", f"{color}{note}{Style.RESET_ALL}"))
    if elapsed is not None:
        om.write(format_label("time", f"{elapsed * 1000:.2f} ms (decimal engine)"))


def print_bounded(k: int, value: int, *, om: OutputManager, show_details: bool = True) -> None:
    bits, signed = configured_bits(), configured_signed()
    om.write(f"{Fore.YELLOW}{Style.BRIGHT}F({k}){Style.RESET_ALL} = {value}  "
             f"{Fore.CYAN}[{bits}-bit {'signed' if signed else 'unsigned'}]{Style.RESET_ALL}")
    if not show_details:
        return
    if fits_native(k, bits, signed):
        om.write(format_label("exact", "yes"))
    else:
        om.write(format_label(
            "exact",
            f"{Fore.RED}no{Style.RESET_ALL} (wrapped modulo 2**{bits}; "
            f"exact up to F({max_exact_index(bits, signed)}), use the decimal engine beyond)",
        ))


def print_range(results: list[FibResult], *, om: OutputManager) -> None:
    width = len(str(results[-1].index)) if results else 1
    for r in results:
        om.write(f"{Fore.YELLOW}F({r.index:>{width}}){Style.RESET_ALL} = {display_digits(r.digits)}")


def print_verify(rows, *, om: OutputManager) -> int:
    """Print one line per failed index plus a summary; return the failure count."""
    checked = failed = 0
    for k, ok, detail in rows:
        checked += 1
        if not ok:
            failed += 1
            om.write(f"{Fore.RED}FAIL{Style.RESET_ALL} {detail}")
    color = Fore.GREEN if not failed else Fore.RED
    om.write(f"{color}{checked - failed}/{checked} indices verified{Style.RESET_ALL}")
    return failed


def print_profiles_with_descriptions() -> None:
    pairs = list_profiles_with_descriptions()
    if not pairs:
        print("\nAvailable profiles: (none)")
        return

    current = read_current_profile()
    lines = []
    for name, desc in pairs:
        mark = "*" if current and name == current else " "
        lines.append(f"{mark} {name:13} — {desc}")
    print("\nAvailable profiles:\n  " + "\n  ".join(lines))


def show_intro_help(*, om: OutputManager) -> None:
    om.write(textwrap.dedent(f"""\
        {Fore.YELLOW}{Style.BRIGHT}Commands{Style.RESET_ALL}
          <k>                 exact F(k) (integer or expression, e.g. 2**8, 1e3)
          b <k>               F(k) on the {configured_bits()}-bit fast path
          r <a>..<b>          F(a) .. F(b)
          seek <n> [set|cur|end]
                              move the device position (clamped to 0..{configured_max_index()})
          read | tell         F(position) | current position
          verify <a>[..<b>]   cross-check both engines against gmpy2
          p                   list profiles; type a profile name to switch
          hist                session history
          debug on|off        toggle [debug] output
          h | q               help | quit
        """))
