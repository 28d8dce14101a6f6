"""File helpers that wrap OSError with operation/path context."""

import os
import tempfile
from pathlib import Path

from tracker.lib.errors import StorageError


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError("create directory", path, e) from e


def read_text(path: Path) -> str | None:
    """Return file contents, or None if the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StorageError("read", path, e) from e


def atomic_write_text(path: Path, content: str) -> None:
    """Write via a temp file in the same directory and os.replace.

    Readers see either the old or the new file, never a partial one.
    """
    ensure_dir(path.parent)
    tmp_path = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.tmp.", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        raise StorageError("write", path, e) from e
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


def remove_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StorageError("delete", path, e) from e
