"""Atomic text writes: temp file in the same directory, then rename."""

import os
from pathlib import Path

from topicbook.core.errors import FilesystemError


def read_text_exact(path: Path) -> str:
    """Read text without newline translation so rewrites keep CRLF prose intact.

    Raises:
        FilesystemError: the file could not be read or is not UTF-8.
    """
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise FilesystemError(path, f"Failed to read (not valid UTF-8 at byte {e.start})") from e
    except OSError as e:
        raise FilesystemError(path, f"Failed to read ({e.strerror or e})") from e


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` so readers never see a truncated file.

    Raises:
        FilesystemError: the temp write or the rename failed. The temp file
            is removed and ``path`` is left as it was.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise FilesystemError(path, f"Failed to write ({e.strerror or e})") from e
