"""Writing scan results to a file."""

from __future__ import annotations

import os

_FILE_MODE = 0o644


def result_to_file(result: str, path: str) -> None:
    """Write the result text to path, replacing any earlier content."""
    fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, _FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
        handle.write(result)