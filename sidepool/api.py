"""Data API: JSON statistics files written into a directory tree."""

from __future__ import annotations

import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Union

log = logging.getLogger(__name__)

BUFFER_SIZE = 16384

Content = Union[str, bytes, Callable[[], Union[str, bytes]]]


class Category(Enum):
    """Which subdirectory of the API path a file belongs to."""

    GLOBAL = "global"
    NETWORK = "network"
    POOL = "pool"
    LOCAL = "local"


class ApiWriter:
    """Collects API file contents and writes them out on flush.

    Only the latest content for each file is kept between flushes.
    """

    def __init__(self, api_path: str | os.PathLike[str], local_stats: bool = False) -> None:
        if not os.fspath(api_path):
            raise ValueError("api path is empty")
        root = Path(api_path)
        if not root.exists():
            raise FileNotFoundError(f"path {root} doesn't exist")

        self._dirs = {
            Category.GLOBAL: root,
            Category.NETWORK: root / "network",
            Category.POOL: root / "pool",
            Category.LOCAL: root / "local",
        }
        self._pending: dict[Path, bytes] = {}
        self._lock = threading.Lock()

        self._dirs[Category.NETWORK].mkdir(exist_ok=True)
        self._dirs[Category.POOL].mkdir(exist_ok=True)
        if local_stats:
            self._dirs[Category.LOCAL].mkdir(exist_ok=True)

    def path_for(self, category: Category, filename: str) -> Path:
        """The file path that content for this category and name goes to."""
        return self._dirs[Category(category)] / filename

    def set(self, category: Category, filename: str, content: Content) -> None:
        """Queue new content for a file; a callable is called to produce it."""
        if callable(content):
            content = content()
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        path = self.path_for(category, filename)
        with self._lock:
            self._pending[path] = data[:BUFFER_SIZE]

    def flush(self) -> list[Path]:
        """Write all queued files; return the paths written successfully."""
        with self._lock:
            pending, self._pending = self._pending, {}

        written = []
        for path, data in pending.items():
            try:
                with open(path, "wb") as f:
                    f.write(data)
            except OSError as exc:
                log.warning("failed to write %s, error %s", path, exc)
                continue
            written.append(path)
        return written