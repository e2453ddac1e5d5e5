# repository/snapshot_repository.py
import re
from datetime import datetime, timezone
from typing import Optional
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import SNAPSHOTS

_PATH_TS = re.compile(r"page-(\d+)\.html$")


class SnapshotRepository:
    """
    Redis-backed byte storage for raw captured pages.

    Paths follow `{owner_id}/{subject_id}/page-{epoch_ms}.html`; every capture
    gets its own path, nothing is overwritten. TTL of 0 keeps blobs forever.
    """

    def __init__(self, ttl_seconds: int = settings.SNAPSHOT_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds)

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def build_path(owner_id: str, subject_id: str, captured_at: datetime) -> str:
        return f"{owner_id}/{subject_id}/page-{int(captured_at.timestamp() * 1000)}.html"

    @staticmethod
    def captured_at_from_path(path: str) -> Optional[datetime]:
        m = _PATH_TS.search(path)
        if m is None:
            return None
        return datetime.fromtimestamp(int(m.group(1)) / 1000, tz=timezone.utc)

    @staticmethod
    def _key(path: str) -> str:
        return f"{SNAPSHOTS}:{path}"

    async def put_html(self, path: str, data: bytes) -> str:
        r = await self._client()
        # nx: a second capture in the same millisecond must not clobber the first
        ok = await r.set(self._key(path), data, ex=self._ttl or None, nx=True)
        if not ok:
            raise FileExistsError(path)
        return path

    async def get_html(self, path: str) -> Optional[bytes]:
        r = await self._client()
        raw = await r.get(self._key(path))
        return raw if raw is not None else None

    async def delete(self, path: str) -> int:
        r = await self._client()
        return int(await r.delete(self._key(path)))
