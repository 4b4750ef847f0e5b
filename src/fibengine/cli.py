# src/fibengine/cli.py

"""
fibengine - exact Fibonacci numbers

Description:
    Computes F(k) exactly as a decimal string by repeated digit-buffer
    addition, or on a fixed-width fast-doubling path. Indices are bounded by
    the active profile (ENGINE.MAX_INDEX).

usage: see fibengine -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import sys
import textwrap
import threading
import time
import traceback
from importlib.resources import files as pkg_files
from typing import NamedTuple

from colorama import Fore, Style
from colorama import init as colorama_init

from fibengine import __version__ as _ver
from fibengine import config as CONFIG
from fibengine.device import SEEK_CUR, SEEK_END, SEEK_SET, FibDevice, FibHandle
from fibengine.display import (
    print_bounded,
    print_profiles_with_descriptions,
    print_range,
    print_result,
    print_verify,
    show_intro_help,
)
from fibengine.engine import FibResult, compute, compute_bounded, compute_range
from fibengine.expreval import parse_index, parse_int_or_expr, parse_range
from fibengine.output_manager import OutputManager
from fibengine.progress import Progress
from fibengine.runtime import APPLY, CFG, debug, ensure_runtime_deps
from fibengine.runtime import current as _rt_current
from fibengine.utility import (
    DeviceBusy,
    UserInputError,
    clear_screen,
    flatten_dotted,
    typename,
    validate_output_setting,
)
from fibengine.verify import verify_range
from fibengine.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

_WHENCE = {"set": SEEK_SET, "cur": SEEK_CUR, "end": SEEK_END}


# In memory session history
class HistoryItem(NamedTuple):
    k: int
    mode: str
    profile: str | None
    timestamp: float


_HISTORY: list[HistoryItem] = []


def add_to_history(k: int, mode: str, profile: str | None = None) -> None:
    _HISTORY.append(HistoryItem(k=k, mode=mode, profile=profile, timestamp=time.time()))


def get_history() -> list[HistoryItem]:
    return list(_HISTORY)


def _install_loud_error_handlers(debug_on: bool) -> None:
    if not debug_on:
        return
    try:
        faulthandler.enable()
    except (AttributeError, ValueError, OSError):
        pass  # stderr without a file descriptor (captured/redirected)

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{Fore.RED}Error:{Style.RESET_ALL} {msg}"
    else:
        head, _, rest = msg.partition(":")
        msg = f"{Fore.RED}{head}:{Style.RESET_ALL}{rest}"
    print(msg, file=sys.stderr)


def _resolve_inputs(items: list[str]) -> tuple[str | None, str | None]:
    """Return (profile_or_command, index_text) from the positionals.

    Rules:
      - one item: numeric -> index; else -> profile/command
      - two items: first non-numeric, second anything -> (first, second)
                   first numeric -> (None, first)
    """
    if not items:
        return None, None
    first = items[0]
    if parse_int_or_expr(first) is not None:
        return None, first
    if len(items) == 1:
        return first, None
    return first, items[1]


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:
    epilog = textwrap.dedent("""\
    commands:
      init
          Create the workspace and copy packaged profiles if missing.

      init overwrite
          Requires environment variable FIBENGINE_DEV=1. Replaces the
          workspace profiles with the packaged ones.

      profiles
          List available profiles.

      verify A[..B]
          Cross-check both engines against gmpy2 for A..B.

      where
          Show the workspace and package paths.
    """)

    p = argparse.ArgumentParser(
        prog="fibengine",
        description="fibengine — exact Fibonacci numbers",
        usage=(
            "fibengine [[profile] [index]] [--bounded] [--range A..B] [--output OUTPUT] [--quiet] [--no-details] [--debug]\n"
            "       fibengine -h | --help\n"
            "       fibengine init | profiles | where | verify A[..B]\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="[[profile] index]",
                   help="optional profile name followed by an index")
    p.add_argument("--bounded", action="store_true", help="Use the fixed-width fast-doubling path")
    p.add_argument("--range", dest="range_", default=None, metavar="A..B", help="Print F(A) .. F(B)")
    p.add_argument("--output", default=None, help="Write results to a file (also prints unless --quiet)")
    p.add_argument("--quiet", action="store_true", help="Suppress screen output and the progress bar")
    p.add_argument("--no-details", action="store_true", help="Print only the value")
    p.add_argument("--debug", action="store_true", help="Show timings, profile keys and tracebacks")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")
    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        if "--debug" in (argv if argv is not None else sys.argv):
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _select_profile_name(explicit: str | None) -> str:
    """
    Precedence:
      1) explicit profile argument
      2) last used (from workspace)
      3) 'default'
    """
    if explicit:
        return explicit
    last = CONFIG.read_current_profile()
    if last and CONFIG.has_profile(last):
        return last
    return "default"


def _apply_profile(name: str) -> None:
    selected = CONFIG.load_settings(name)
    APPLY(selected)
    if not _rt_current().debug:
        return
    debug(f"active profile: {selected.name}")
    if selected._source:
        debug(f"profile file: {selected._source}")
    for k, v in sorted(flatten_dotted(selected.as_dict()).items(), key=lambda kv: kv[0].lower()):
        debug(f"    {k:.<40} {v!r} ({typename(v)})")


def _progress_for(k: int, quiet: bool) -> Progress | None:
    threshold = int(CFG("BEHAVIOUR.PROGRESS_THRESHOLD", 20_000))
    if quiet or k < threshold:
        return None
    return Progress(k)


def run_exact(k: int, *, om: OutputManager, quiet: bool, show_details: bool) -> None:
    bar = _progress_for(k, quiet)
    t0 = time.perf_counter()
    try:
        result = compute(k, progress=bar)
    finally:
        if bar is not None:
            bar.done()
    elapsed = time.perf_counter() - t0
    debug(f"F({k}): {result.length} digits in {elapsed * 1000:.2f} ms")
    print_result(result, om=om, show_details=show_details, elapsed=elapsed)


def run_read(handle: FibHandle, *, om: OutputManager, show_details: bool) -> int:
    """Print F(position) as read through the device handle; returns the index."""
    k = handle.tell()
    t0 = time.perf_counter()
    result = FibResult(k, handle.read())
    elapsed = time.perf_counter() - t0
    debug(f"device read at {k}: {result.length} digits")
    print_result(result, om=om, show_details=show_details, elapsed=elapsed)
    return k


def run_bounded(k: int, *, om: OutputManager, show_details: bool) -> None:
    t0 = time.perf_counter()
    value = compute_bounded(k)
    debug(f"F({k}) fast path in {(time.perf_counter() - t0) * 1e6:.1f} µs")
    print_bounded(k, value, om=om, show_details=show_details)


def _file_tag(text: str) -> str:
    return "verify_" + text.replace("..", "-").replace(":", "-").replace(" ", "")


def run_verify(text: str, *, om: OutputManager) -> int:
    a, b = parse_range(text)
    failed = print_verify(verify_range(a, b), om=om)
    return 1 if failed else 0


# ---- main ----
def _main_impl(argv=None) -> int:
    colorama_init(autoreset=True)

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)

    _install_loud_error_handlers(args.debug)

    if not ensure_runtime_deps(strict=True):
        return 1

    ws, seeded, copied = ensure_workspace_seeded()
    if seeded:
        debug(f"seeded workspace {ws} with {copied} profile(s)")

    profile, index_text = _resolve_inputs(args.items)

    if profile == "init":
        if index_text == "overwrite":
            if os.environ.get("FIBENGINE_DEV") != "1":
                print("Refusing to overwrite: set FIBENGINE_DEV=1 to enable developer overwrite.")
                return 2
            ws, copied = seed_workspace(overwrite=True)
            print(f"Workspace ready at: {ws} (overwrote existing profiles)")
        else:
            print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied}")
        return 0

    if profile == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Package:   {pkg_files('fibengine')}")
        return 0

    if profile == "profiles":
        print_profiles_with_descriptions()
        return 0

    if profile == "active":
        print(f"Active profile: {CONFIG.read_current_profile()}")
        return 0

    verify_arg = None
    if profile == "verify":
        if index_text is None:
            parser.error("verify needs an index or range, e.g. 'verify 0..500'")
        verify_arg, profile, index_text = index_text, None, None

    if profile and not CONFIG.has_profile(profile):
        print(f"Unknown profile: '{profile}'")
        print("Available profiles:", ", ".join(CONFIG.list_all_profiles()))
        return 2

    profile_name = _select_profile_name(profile)
    if not CONFIG.has_profile(profile_name):
        profile_name = "default"
    if CONFIG.has_profile(profile_name):
        _apply_profile(profile_name)
    if profile:
        CONFIG.write_current_profile(profile_name)

    try:
        cli_output = validate_output_setting(args.output)
    except ValueError as e:
        print(f"Fatal error in --output: {e}", file=sys.stderr)
        return 1

    def make_output_manager(tag=None) -> OutputManager:
        target = cli_output if cli_output is not None else CFG("OUTPUT.OUTPUT_FILE", None)
        return OutputManager(output_file=target, quiet=args.quiet, index=tag)

    show_details = not args.no_details

    # --- one-shot paths ---
    if verify_arg is not None:
        with make_output_manager(_file_tag(verify_arg)) as om:
            return run_verify(verify_arg, om=om)

    if args.range_:
        a, b = parse_range(args.range_)
        with make_output_manager(f"{a}-{b}") as om:
            print_range(compute_range(a, b), om=om)
        return 0

    if index_text is not None:
        k = parse_index(index_text)
        with make_output_manager(k) as om:
            if args.bounded:
                run_bounded(k, om=om, show_details=show_details)
            else:
                run_exact(k, om=om, quiet=args.quiet, show_details=show_details)
        return 0

    return _repl(profile_name, make_output_manager, show_details=show_details, quiet=args.quiet)


# ---- interactive loop ----
def _repl(profile_name: str, make_output_manager, *, show_details: bool, quiet: bool) -> int:
    if not _rt_current().debug:
        clear_screen()
    print(f"{Fore.YELLOW}{Style.BRIGHT}fibengine v{_ver} — exact Fibonacci numbers{Style.RESET_ALL}")

    current_profile = profile_name
    device = FibDevice()
    handle: FibHandle | None = device.open()

    def _reopen_device() -> FibHandle:
        nonlocal device, handle
        if handle is not None:
            handle.close()
        device = FibDevice()
        handle = device.open()
        return handle

    try:
        while True:
            try:
                prompt = f"\nProfile: {current_profile} — Enter an index, command or profile (h=Help, q=Quit): "
                user_input = input(prompt).strip()
                low = user_input.lower()
                head, _, rest = low.partition(" ")
                rest = rest.strip()

                if low in {"", "q", "quit"}:
                    break

                if low in {"h", "help"}:
                    om_help = OutputManager(output_file=None, quiet=False)
                    show_intro_help(om=om_help)
                    continue

                if low in {"p", "profiles"}:
                    print_profiles_with_descriptions()
                    continue

                if low in {"hist", "history"}:
                    hist = get_history()
                    if not hist:
                        print("History is empty.")
                    for item in hist:
                        ts = time.strftime("%H:%M:%S", time.localtime(item.timestamp))
                        print(f"{ts}  k={item.k:<10} {item.mode:<8} profile={item.profile or '-'}")
                    continue

                if head == "debug":
                    rt = _rt_current()
                    if rest in {"", "status"}:
                        print(f"Debug is currently {'ON' if rt.debug else 'OFF'}.")
                    elif rest in {"on", "off"}:
                        rt.debug = rest == "on"
                        print(f"Debug mode {'enabled' if rt.debug else 'disabled'} for this session.")
                    else:
                        print("Usage: DEBUG [on|off|status]")
                    continue

                if head in {"b", "bounded"}:
                    k = parse_index(rest)
                    with make_output_manager(k) as om:
                        run_bounded(k, om=om, show_details=show_details)
                    add_to_history(k, "bounded", current_profile)
                    continue

                if head in {"r", "range"}:
                    a, b = parse_range(rest)
                    with make_output_manager(f"{a}-{b}") as om:
                        print_range(compute_range(a, b), om=om)
                    continue

                if head == "verify":
                    with make_output_manager(_file_tag(rest)) as om:
                        run_verify(rest, om=om)
                    continue

                if head == "seek":
                    parts = rest.split()
                    if not parts or len(parts) > 2 or (len(parts) == 2 and parts[1] not in _WHENCE):
                        print("Usage: SEEK <offset> [set|cur|end]")
                        continue
                    offset = parse_int_or_expr(parts[0])
                    if offset is None:
                        raise UserInputError(f"Invalid input: '{parts[0]}' is not an integer.")
                    pos = handle.seek(offset, _WHENCE[parts[1] if len(parts) == 2 else "set"])
                    print(f"Position: {pos}")
                    continue

                if low == "tell":
                    print(f"Position: {handle.tell()}")
                    continue

                if low == "read":
                    with make_output_manager(handle.tell()) as om:
                        k = run_read(handle, om=om, show_details=show_details)
                    add_to_history(k, "read", current_profile)
                    continue

                k = parse_int_or_expr(user_input)
                if k is not None:
                    k = parse_index(user_input)
                    with make_output_manager(k) as om:
                        run_exact(k, om=om, quiet=quiet, show_details=show_details)
                    add_to_history(k, "exact", current_profile)
                    continue

                if CONFIG.has_profile(user_input):
                    _apply_profile(user_input)
                    CONFIG.write_current_profile(user_input)
                    current_profile = user_input
                    _reopen_device()
                    print(f"Applied profile: {current_profile}")
                    continue

                print(f"{Fore.RED}Invalid input: {Style.RESET_ALL}'{user_input}'. Type H for help.")

            except UserInputError as e:
                _print_user_error(str(e))
            except DeviceBusy as e:
                _print_user_error(str(e))
            except (EOFError, KeyboardInterrupt):
                print()
                break
            except Exception as e:
                if _rt_current().debug:
                    traceback.print_exc()
                else:
                    _print_user_error(f"{e.__class__.__name__}: {e}")
    finally:
        if handle is not None:
            handle.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
