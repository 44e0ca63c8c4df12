"""
JSON File Store: durable KeyValueStore backed by one file per key.

Implements the fallback tier. Values are written atomically (temp file +
replace) so a crash mid-write never leaves a truncated list behind.
"""

import errno
import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path

from memtrack.domain.stats.errors import StorageQuotaExceeded
from memtrack.domain.stats.ports import KeyValueStore

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class JsonFileStore(KeyValueStore):
    """Stores each key as `<root>/<safe-key>.json`."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        safe = _UNSAFE.sub("_", key).strip("_") or "default"
        if safe != key:
            # Keep distinct keys distinct after sanitizing (e.g. "a:b" vs "a_b")
            digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
            safe = f"{safe}-{digest}"
        return self.root / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_name: str | None = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceeded(f"No space left to write {path}") from e
            raise
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
