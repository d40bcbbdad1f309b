from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` via temp file + ``os.replace``.

    The temp file lives in the target directory so the replace is a rename on
    the same filesystem. The existing file's permission bits are carried over.
    Readers see either the old bytes or the new bytes, never a mix.
    """
    path = Path(path)
    prev_mode = None
    if path.exists():
        prev_mode = stat.S_IMODE(path.stat().st_mode)

    tmp_fd = None
    tmp_path = None
    try:
        tmp_fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        # newline="" keeps line endings byte-for-byte
        with os.fdopen(tmp_fd, "w", encoding="utf-8", newline="") as handle:
            tmp_fd = None
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        if prev_mode is not None:
            os.chmod(tmp_path, prev_mode)
        os.replace(str(tmp_path), str(path))
        tmp_path = None
    finally:
        if tmp_fd is not None:
            os.close(tmp_fd)
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
