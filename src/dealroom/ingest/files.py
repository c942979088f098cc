"""Local file store for uploaded documents."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path

from dealroom.errors import StoredFileMissing

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9.-]")


class FileStore:
    """Stores upload bytes under *root* as ``<epoch-ms>-<sanitized name>``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def save(self, data: bytes, original_name: str = "upload") -> str:
        """Write *data* and return its stored name."""
        self.root.mkdir(parents=True, exist_ok=True)
        safe = _UNSAFE_CHARS_RE.sub("_", Path(original_name).name) or "upload"
        stored_name = f"{int(time.time() * 1000)}-{safe}"
        target = self.root / stored_name
        # Two uploads of the same name in one millisecond.
        suffix = 1
        while target.exists():
            stored_name = f"{int(time.time() * 1000)}-{suffix}-{safe}"
            target = self.root / stored_name
            suffix += 1
        target.write_bytes(data)
        return stored_name

    def read(self, stored_name: str) -> bytes:
        try:
            return self._path(stored_name).read_bytes()
        except FileNotFoundError as exc:
            raise StoredFileMissing(stored_name) from exc

    def delete(self, stored_name: str) -> None:
        """Delete a stored file; an already-missing file is logged, not raised."""
        try:
            self._path(stored_name).unlink()
        except FileNotFoundError:
            logger.info("Stored file %s already deleted", stored_name)

    def _path(self, stored_name: str) -> Path:
        # basename only: stored names never contain directories
        return self.root / Path(stored_name).name
