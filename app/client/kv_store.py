import json
import re
import uuid
import aiofiles
import aiofiles.os
from pathlib import Path
from typing import Any, Optional
import logging

from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = ".stocktake"

class KeyValueStore:
    """
    Durable key-value store on the device filesystem.

    Each key is one JSON document. Writes go to a temp file that replaces the
    document in one step, so a crash mid-write leaves the previous version.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or DEFAULT_STORE_DIR)

    def _path(self, key: str) -> Path:
        if not re.fullmatch(r"[A-Za-z0-9_.-]+", key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.root / f"{key}.json"

    async def get(self, key: str) -> Optional[Any]:
        """Missing or unreadable documents read as None"""
        path = self._path(key)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Unreadable document {path}, treating as empty: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            content = json.dumps(value)
            await aiofiles.os.makedirs(self.root, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
                await f.flush()
            await aiofiles.os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"❌ Failed to write {path}: {e}")
            try:
                await aiofiles.os.remove(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Device storage unavailable: {e}")

    async def delete(self, key: str) -> None:
        try:
            await aiofiles.os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Device storage unavailable: {e}")
