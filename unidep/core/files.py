"""Build-file I/O that keeps line terminators intact."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def read_text(file_path: str | Path) -> str:
    """Read a build file without newline translation.

    Source ranges are character offsets into exactly this string, so ``\\r\\n``
    must survive the round trip through the mutators.
    """
    with open(file_path, encoding="utf-8", errors="replace", newline="") as fh:
        return fh.read()


def write_text_atomic(file_path: str | Path, content: str) -> None:
    """Replace *file_path* with *content* in one step.

    The body goes to a temporary file in the same directory which is then
    renamed over the target, so readers see either the old or the new file.
    """
    path = Path(file_path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
