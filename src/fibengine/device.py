"""
File-like front end to the engine.

A FibDevice admits one open handle at a time. The handle's position is the
index k: read() returns F(k) as decimal text, seek() moves k and saturates it
into [0, max_index], write() accepts and ignores data.
"""

from __future__ import annotations

import os
import threading

from fibengine.engine import compute, compute_bounded, configured_max_index
from fibengine.runtime import debug
from fibengine.utility import CapacityExceeded, DeviceBusy, InvalidInput, check_index

SEEK_SET = os.SEEK_SET
SEEK_CUR = os.SEEK_CUR
SEEK_END = os.SEEK_END


class FibDevice:
    def __init__(self, max_index: int | None = None, bits: int | None = None):
        self.max_index = check_index(max_index if max_index is not None else configured_max_index(), "max_index")
        self.bits = bits
        self._lock = threading.Lock()

    def open(self) -> FibHandle:
        if not self._lock.acquire(blocking=False):
            raise DeviceBusy("fibengine device is in use")
        return FibHandle(self)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _release(self) -> None:
        self._lock.release()


class FibHandle:
    def __init__(self, device: FibDevice):
        self._device = device
        self._pos = 0
        self.closed = False
        self._close_lock = threading.Lock()

    def __enter__(self) -> FibHandle:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed handle")

    def close(self) -> None:
        with self._close_lock:
            if self.closed:
                return
            self.closed = True
        self._device._release()

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """Set the index; returns the clamped new position."""
        self._check_open()
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise InvalidInput(f"offset must be an integer, got {type(offset).__name__}")
        top = self._device.max_index
        if whence == SEEK_SET:
            pos = offset
        elif whence == SEEK_CUR:
            pos = self._pos + offset
        elif whence == SEEK_END:
            pos = top - offset
        else:
            raise InvalidInput(f"invalid whence {whence!r}")

        clamped = min(max(pos, 0), top)
        if clamped != pos:
            debug(f"seek to {pos} clamped to {clamped}")
        self._pos = clamped
        return clamped

    def read(self) -> str:
        """F(position) as decimal text; the position does not move."""
        self._check_open()
        return compute(self._pos, max_index=self._device.max_index).digits

    def readinto(self, buf: bytearray | memoryview) -> int:
        """
        Copy F(position) plus a NUL terminator into buf; return the digit count.
        A buffer too small for both raises CapacityExceeded and is left untouched.
        """
        text = self.read().encode("ascii")
        need = len(text) + 1
        if len(buf) < need:
            raise CapacityExceeded(f"buffer holds {len(buf)} bytes, F({self._pos}) needs {need}")
        buf[:need] = text + b"\0"
        return len(text)

    def read_bounded(self) -> int:
        self._check_open()
        return compute_bounded(self._pos, bits=self._device.bits)

    def write(self, data: bytes) -> int:
        """Writes are accepted and ignored."""
        self._check_open()
        return 1
