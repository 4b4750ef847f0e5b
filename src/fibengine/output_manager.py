# output_manager.py

import os

from fibengine.fmt import strip_ansi
from fibengine.runtime import debug
from fibengine.workspace import workspace_dir


def resolve_output_path(path: str, workspace_root: str) -> str:
    """
    Resolve user-provided output path.

    Rules:
    - '~' expanded to user home
    - Absolute paths unchanged
    - Relative paths are relative to workspace_root
    """
    if not path:
        raise ValueError("Output path is empty")

    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(workspace_root, path))


class OutputManager:
    """
    Handles all printing/output, including to screen and/or file.

    Usage:
        # Split mode (one file per index, F<k>.txt):
        om = OutputManager(output_file="results/", index=100)
        om.write("Hello")   # prints and buffers; file written on close()
        om.close()

        # Single file (append all runs to one file):
        om = OutputManager(output_file="results/all.txt")
        om.write("Hello")   # prints and appends
        om.close()
    """

    def __init__(self, output_file: str | None = None, quiet: bool = False, index: int | str | None = None):
        """
        Parameters:
            output_file:
                None or ""       => screen only
                "." or "./"      => per-index files in the workspace
                endswith "/"     => per-index files in that directory
                path/to/file.txt => append all runs to this file
            quiet: if True, no output to screen (only to file)
            index: used for the filename in per-index mode
        """
        self.quiet = quiet
        self.output_file = output_file or ""
        self.index = index
        self._buffer: list[str] = []

        self._mode: str = "none"     # "none" | "split" | "single"
        self._path: str | None = None

        if self.output_file in (".", "./") or self.output_file.endswith("/"):
            if index is None:
                raise ValueError("An index must be provided when outputting to a directory.")
            directory = resolve_output_path(self.output_file, str(workspace_dir()))
            os.makedirs(directory, exist_ok=True)
            self._mode = "split"
            name = f"F{index}.txt" if isinstance(index, int) else f"{index}.txt"
            self._path = os.path.join(directory, name)

        elif self.output_file:
            path = resolve_output_path(self.output_file, str(workspace_dir()))
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._mode = "single"
            self._path = path

    @property
    def path(self) -> str | None:
        return self._path

    def write(self, *args, sep: str = " ", end: str = "\n") -> None:
        """Write to screen and file (if configured)."""
        text = sep.join(str(a) for a in args) + end
        self._buffer.append(text)

        if not self.quiet:
            print(text, end="")

        if self._mode == "single" and self._path:
            with open(self._path, "a", encoding="utf-8") as fh:
                fh.write(strip_ansi(text))
        # split mode writes once, on close()

    def close(self) -> None:
        """Flush the per-index file (split mode) or add a separator line (single mode)."""
        if not self._path or not self._buffer:
            return
        if self._mode == "split":
            with open(self._path, "w", encoding="utf-8") as fh:
                fh.write(strip_ansi("".join(self._buffer)))
            debug(f"wrote {self._path}")
        elif self._mode == "single":
            with open(self._path, "a", encoding="utf-8") as fh:
                fh.write("\n")
        self._buffer.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()
