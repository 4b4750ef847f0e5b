from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("fibengine")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .config import has_profile, load_settings, read_current_profile
from .device import FibDevice, FibHandle
from .digits import add_digits
from .doubling import fib_bounded, fits_native
from .engine import FibResult, compute, compute_bounded, compute_range
from .fmt import finalize, reverse_digits
from .runtime import APPLY, CFG
from .table import build_table, fib_digits
from .utility import (
    CapacityExceeded,
    DeviceBusy,
    FibError,
    InvalidInput,
    ResourceExhaustion,
    UserInputError,
)
from .workspace import workspace_dir

__all__ = [
    "APPLY",
    "CFG",
    "CapacityExceeded",
    "DeviceBusy",
    "FibDevice",
    "FibError",
    "FibHandle",
    "FibResult",
    "InvalidInput",
    "ResourceExhaustion",
    "UserInputError",
    "__version__",
    "add_digits",
    "build_table",
    "compute",
    "compute_bounded",
    "compute_range",
    "fib_bounded",
    "fib_digits",
    "finalize",
    "fits_native",
    "has_profile",
    "load_settings",
    "read_current_profile",
    "reverse_digits",
    "workspace_dir",
]
