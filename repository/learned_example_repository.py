# repository/learned_example_repository.py
from typing import List
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from model.product import LearnedExamples
from repository.namespaces import EXAMPLES


class LearnedExampleRepository:
    """
    Flow:
    - When a reviewer confirms or rejects an item, LPUSH a one-line summary onto
      the product's verified / false_positive list and LTRIM to the limit.
    - Before classification, read both lists (newest first) as few-shot examples.
    """

    def __init__(self, limit: int = settings.LEARNED_EXAMPLE_LIMIT) -> None:
        self._limit = max(1, int(limit))

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(product_id: str, kind: str) -> str:
        return f"{EXAMPLES}:{product_id}:{kind}"

    async def record(self, product_id: str, example: str, *, confirmed: bool) -> None:
        kind = "verified" if confirmed else "false_positive"
        r = await self._client()
        await r.lpush(self._key(product_id, kind), example.encode("utf-8"))
        await r.ltrim(self._key(product_id, kind), 0, self._limit - 1)

    async def _read(self, product_id: str, kind: str) -> List[str]:
        r = await self._client()
        vals = await r.lrange(self._key(product_id, kind), 0, self._limit - 1)
        return [v.decode("utf-8") if isinstance(v, bytes) else str(v) for v in vals or []]

    async def get(self, product_id: str) -> LearnedExamples:
        return LearnedExamples(
            verified_examples=await self._read(product_id, "verified"),
            false_positive_examples=await self._read(product_id, "false_positive"),
        )

    async def clear(self, product_id: str) -> int:
        r = await self._client()
        return int(
            await r.delete(
                self._key(product_id, "verified"), self._key(product_id, "false_positive")
            )
        )


def format_example(platform: str, url: str, note: str = "") -> str:
    line = f"{platform}: {url}"
    return f"{line} ({note})" if note else line
