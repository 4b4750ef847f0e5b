# src/fibengine/progress.py
from __future__ import annotations

import sys
import time
from typing import TextIO


class Progress:
    """Throttled one-line progress bar; callable as a table-builder progress hook."""

    THROTTLE = 0.05
    BAR_LEN = 24

    def __init__(self, total: int, *, enabled: bool = True, stream: TextIO | None = None):
        self.total = max(1, int(total))
        self.enabled = enabled
        self.stream = stream or sys.stdout
        self.start = time.perf_counter()
        self.last_draw = 0.0
        self.spin = "|/-\\"
        self.i = 0

    def __call__(self, done: int, total: int | None = None) -> None:
        self.update(done)

    def update(self, done: int, label: str = "") -> None:
        if not self.enabled:
            return
        now = time.perf_counter()
        if now - self.last_draw < self.THROTTLE and done < self.total:
            return
        self.last_draw = now
        self.i = (self.i + 1) % len(self.spin)
        frac = min(max(done / self.total, 0.0), 1.0)
        fill = int(frac * self.BAR_LEN)
        bar = "#" * fill + "-" * (self.BAR_LEN - fill)
        label = label or f"F({done})"
        self.stream.write(f"\r[{self.spin[self.i]}] [{bar}] {int(frac * 100):3d}%  {label[:40]}")
        self.stream.flush()

    def done(self) -> float:
        """Clear the bar; return elapsed seconds."""
        if self.enabled:
            self.stream.write("\r" + " " * 80 + "\r")
            self.stream.flush()
        return time.perf_counter() - self.start
