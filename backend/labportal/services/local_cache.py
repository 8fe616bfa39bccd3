"""
Local cache tier - per-user files on local disk.

Holds the last saved resume details and the last uploaded document key.
Each value lives in its own file so a save and an upload never overwrite
each other's entry. Directories are named by a SHA-256 of the user id, and
the id itself is kept next to the entries so reconciliation can find it.
"""
import hashlib
import json
import logging
import os
import uuid
from typing import Any, List, Optional

import aiofiles

from ..config import get_settings

logger = logging.getLogger(__name__)

RESUME_DETAILS = "resume_details.json"
DOCUMENT_KEY = "document_key.txt"
USER_ID = "user_id.txt"


def cache_key(user_id: str) -> str:
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def cached_user_ids(base_dir: Optional[str] = None) -> List[str]:
    """User ids that have a local cache directory under base_dir."""
    base_dir = base_dir or get_settings().local_cache_dir
    if not os.path.isdir(base_dir):
        return []

    user_ids = []
    for name in sorted(os.listdir(base_dir)):
        path = os.path.join(base_dir, name, USER_ID)
        if not os.path.isfile(path):
            continue
        with open(path, "r", encoding="utf-8") as f:
            user_id = f.read()
        # Skip entries whose directory does not match the recorded id
        if cache_key(user_id) == name:
            user_ids.append(user_id)
    return sorted(user_ids)


class LocalCache:
    def __init__(self, user_id: str, base_dir: Optional[str] = None):
        self.user_id = user_id
        self.directory = os.path.join(base_dir or get_settings().local_cache_dir, cache_key(user_id))

    def _path(self, name: str) -> str:
        return os.path.join(self.directory, name)

    async def _write(self, name: str, text: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        if not os.path.exists(self._path(USER_ID)):
            await self._replace(USER_ID, self.user_id)
        await self._replace(name, text)

    async def _replace(self, name: str, text: str) -> None:
        # Write to a temp file and swap it in so readers never see a partial file
        tmp_path = self._path(f".{name}.{uuid.uuid4().hex[:8]}.tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(text)
        os.replace(tmp_path, self._path(name))

    async def _read(self, name: str) -> Optional[str]:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()

    async def write_resume_details(self, data: dict) -> None:
        await self._write(RESUME_DETAILS, json.dumps(data))

    async def read_resume_details(self) -> Optional[Any]:
        """Raw cached resume JSON, or None when absent or unreadable."""
        try:
            text = await self._read(RESUME_DETAILS)
        except OSError as e:
            logger.error(f"Error reading cached resume details: {e}")
            return None
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            logger.error(f"Cached resume details are not valid JSON: {e}")
            return None

    async def write_document_key(self, key: str) -> None:
        await self._write(DOCUMENT_KEY, key)

    async def read_document_key(self) -> Optional[str]:
        try:
            text = await self._read(DOCUMENT_KEY)
        except OSError as e:
            logger.error(f"Error reading cached document key: {e}")
            return None
        return text.strip() if text and text.strip() else None
