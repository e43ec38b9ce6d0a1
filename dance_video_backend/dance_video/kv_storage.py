"""
Key-value persistence for credentials and job history.
Values are JSON strings; the local file store is the default and the
Vercel KV REST store is used when configured.
"""
import os
import re
import json
import httpx
import logging
import tempfile
from typing import Dict, Optional, Protocol
from .settings import STATE_DIR, KV_REST_API_URL, KV_REST_API_TOKEN

logger = logging.getLogger(__name__)


class KVStorage(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        ...


class FileKVStorage:
    """One file per key under ``directory``; writes replace the file atomically."""

    def __init__(self, directory: str = STATE_DIR):
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.directory, f"{safe}.json")

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    async def set(self, key: str, value: str) -> bool:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Stored {key} in {path}")
        return True

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        if not os.path.exists(path):
            return False
        os.remove(path)
        return True


class RestKVStorage:
    def __init__(self, url: str = KV_REST_API_URL, token: str = KV_REST_API_TOKEN, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.kv_rest_api_url = url.rstrip("/")
        self.kv_rest_api_token = token
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.kv_rest_api_token}",
            "Content-Type": "application/json"
        }

    async def _command(self, command: str, args: list):
        async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
            response = await client.post(
                f"{self.kv_rest_api_url}/{command}",
                headers=self._headers(),
                json=args
            )
            response.raise_for_status()
            return response.json()

    async def set(self, key: str, value: str) -> bool:
        """Store a value in KV"""
        try:
            await self._command("set", [key, value])
            logger.info(f"Stored {key} in KV")
            return True
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to store {key} in KV: {e}")
            return False

    async def get(self, key: str) -> Optional[str]:
        """Retrieve a value from KV"""
        try:
            data = await self._command("get", [key])
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to retrieve {key} from KV: {e}")
            return None
        result = data.get("result") if isinstance(data, dict) else None
        if result is None:
            logger.info(f"{key} not found in KV")
            return None
        return result if isinstance(result, str) else json.dumps(result)

    async def delete(self, key: str) -> bool:
        try:
            await self._command("del", [key])
            logger.info(f"Deleted {key} from KV")
            return True
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to delete {key} from KV: {e}")
            return False


def create_kv_storage() -> KVStorage:
    if KV_REST_API_URL and KV_REST_API_TOKEN:
        logger.info("KV storage enabled")
        return RestKVStorage()
    logger.info(f"KV storage not configured - using local storage in {STATE_DIR}")
    return FileKVStorage()
