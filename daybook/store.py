"""JSON document storage shared by every tool.

Each tool keeps its state in one or two flat JSON files. ``JsonStore`` gives
them a single read-modify-write path: an exclusive ``flock`` on a sidecar
lock file around load+save, and an atomic temp-file-and-rename write so a
crash never leaves a half-written document behind.
"""

import copy
import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from daybook.errors import StoreError

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str, mode: Optional[int] = None) -> None:
    """Write text to path via a temp file in the same directory and os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StoreError(f"Failed to write {path}: {e}") from e


@contextmanager
def file_lock(path: Path, exclusive: bool = True) -> Iterator[None]:
    """Hold an flock on <path>.lock for the duration of the block."""
    lock_path = path.with_name(path.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a") as lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield
        finally:
            fcntl.flock(lock_file, fcntl.LOCK_UN)


class JsonStore:
    """A JSON document on disk with a default shape.

    Args:
        path: Location of the document
        default: Document written when the file does not exist yet
        mode: Optional permission bits applied on every write (e.g. 0o600)
    """

    def __init__(self, path: Path, default: dict, mode: Optional[int] = None):
        self.path = Path(path)
        self.default = default
        self.mode = mode

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict:
        """Read the document, seeding the default if it is missing."""
        if not self.path.exists():
            data = copy.deepcopy(self.default)
            self.save(data)
            return data
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StoreError(f"Data file is corrupt: {self.path} ({e})") from e
        except OSError as e:
            raise StoreError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Data file is corrupt: {self.path} (expected a JSON object)")
        return data

    def save(self, data: dict) -> None:
        atomic_write_text(self.path, json.dumps(data, indent=2, default=str) + "\n", self.mode)

    @contextmanager
    def transaction(self) -> Iterator[dict]:
        """Exclusive read-modify-write.

        The yielded document is saved only when the block exits cleanly, so
        a validation error part-way through leaves the file untouched.
        """
        with file_lock(self.path):
            data = self.load()
            yield data
            self.save(data)
            logger.debug("saved %s", self.path)

    @contextmanager
    def read(self) -> Iterator[dict]:
        """Consistent read under a shared lock."""
        with file_lock(self.path, exclusive=False):
            yield self.load()


def next_id(data: dict, key: str = "next_id") -> int:
    """Hand out the next integer id and advance the counter.

    Ids are never reused: the counter only moves forward, even after
    records are deleted.
    """
    value = int(data.get(key, 1))
    data[key] = value + 1
    return value
