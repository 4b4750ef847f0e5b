from __future__ import annotations

import os
import sys


class FibError(Exception):
    pass


class UserInputError(FibError):
    """Errors caused by the request itself; printed without a traceback."""


class InvalidInput(UserInputError, ValueError):
    pass


class CapacityExceeded(UserInputError):
    pass


class ResourceExhaustion(FibError):
    pass


class DeviceBusy(FibError):
    pass


def check_index(k: object, label: str = "index") -> int:
    """Return k as an int, rejecting bools, non-integers and negatives."""
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidInput(f"{label} must be an integer, got {typename(k)}")
    if k < 0:
        raise InvalidInput(f"{label} must be non-negative, got {k}")
    return k


def digit_sum(text: str) -> int:
    return sum(ord(ch) - 48 for ch in text)


def clear_screen(keep_scrollback: bool = False) -> None:
    """
    Clear the terminal screen.
    - On Windows: uses 'cls'
    - On POSIX: ANSI sequences; optionally clear scrollback
    """
    try:
        if os.name == "nt":
            os.system("cls")
        else:
            seq = "\033[H\033[2J" if keep_scrollback else "\033[3J\033[H\033[2J"
            sys.stdout.write(seq)
            sys.stdout.flush()
    except OSError:
        pass


def validate_output_setting(output_file: str | None) -> str | None:
    """
    Validate output setting.
    - None / "" => ok (screen only)
    - "." / "./" / trailing "/" => ok (one file per index)
    - path/to/file => must not use a reserved name or a source extension
    Returns the output_file unchanged, or raises ValueError.
    """
    FORBIDDEN_FILENAMES = {
        ".gitignore",
        "LICENSE",
        "pyproject.toml",
        # Windows reserved device names (case-insensitive on Windows)
        "con", "prn", "aux", "nul",
        "com1", "com2", "com3", "com4", "com5", "com6", "com7", "com8", "com9",
        "lpt1", "lpt2", "lpt3", "lpt4", "lpt5", "lpt6", "lpt7", "lpt8", "lpt9",
    }
    FORBIDDEN_EXTENSIONS = {".py", ".md", ".toml"}

    if not output_file:
        return output_file

    if output_file in (".", "./") or output_file.endswith("/"):
        return output_file

    basename = os.path.basename(output_file)
    name_no_ext, ext = os.path.splitext(basename)
    ext = ext.lower()

    if basename.lower() in FORBIDDEN_FILENAMES or name_no_ext.lower() in FORBIDDEN_FILENAMES:
        raise ValueError(f"Forbidden output filename: {basename}")

    if ext in FORBIDDEN_EXTENSIONS:
        raise ValueError(f"Forbidden output file extension: {ext}")

    return output_file


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
