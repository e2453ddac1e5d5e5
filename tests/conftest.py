"""Shared fixtures: environment defaults, a scripted model gateway and in-memory repositories."""

import os
from typing import Any, Callable, Dict, List, Optional

import pytest

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("WAYBACK_ENABLED", "false")
os.environ.setdefault("CLASSIFIER_BATCH_DELAY_MS", "0")

from core.entities import LLMMetadata, LLMResponse  # noqa: E402
from model.notice import DmcaContact  # noqa: E402
from model.product import CandidateResult, LearnedExamples, Product  # noqa: E402


class FakeGateway:
    """
    Stands in for LLMGateway. `reply` is either a fixed value or a callable taking
    the user prompt; an Exception value is raised instead of returned.
    """

    def __init__(self, reply: Any = None) -> None:
        self.reply = reply
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs) -> LLMResponse:
        self.calls.append({"system": system_prompt, "user": user_prompt, **kwargs})
        reply = self.reply(user_prompt) if callable(self.reply) else self.reply
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            data=reply,
            metadata=LLMMetadata(
                model="fake", tokens_used=0, processing_time_ms=0, finish_reason="end_turn"
            ),
        )


class InMemorySnapshots:
    def __init__(self, fail: bool = False) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.fail = fail

    async def put_html(self, path: str, data: bytes) -> str:
        if self.fail:
            raise ConnectionError("redis down")
        if path in self.blobs:
            raise FileExistsError(path)
        self.blobs[path] = data
        return path

    async def get_html(self, path: str) -> Optional[bytes]:
        return self.blobs.get(path)

    async def delete(self, path: str) -> int:
        return 1 if self.blobs.pop(path, None) is not None else 0


class InMemoryExamples:
    def __init__(self, fail_reads: bool = False) -> None:
        self.verified: Dict[str, List[str]] = {}
        self.false_positive: Dict[str, List[str]] = {}
        self.fail_reads = fail_reads

    async def record(self, product_id: str, example: str, *, confirmed: bool) -> None:
        bucket = self.verified if confirmed else self.false_positive
        bucket.setdefault(product_id, []).insert(0, example)

    async def get(self, product_id: str) -> LearnedExamples:
        if self.fail_reads:
            raise ConnectionError("redis down")
        return LearnedExamples(
            verified_examples=self.verified.get(product_id, []),
            false_positive_examples=self.false_positive.get(product_id, []),
        )


def verdict_reply(is_infringement: bool, confidence: float, reasoning: str = "checked") -> dict:
    return {
        "is_infringement": is_infringement,
        "confidence": confidence,
        "reasoning": reasoning,
        "infringement_type": "piracy" if is_infringement else None,
    }


def by_url(table: Dict[str, Any]) -> Callable[[str], Any]:
    """Route a scripted reply by which candidate URL appears in the user prompt."""

    def _reply(user_prompt: str) -> Any:
        for url, reply in table.items():
            if f"- URL: {url}\n" in user_prompt:
                return reply
        raise AssertionError("unexpected prompt")

    return _reply


@pytest.fixture
def product() -> Product:
    return Product(
        id="prod-1",
        name="10x Bars Indicator",
        type="trading_indicator",
        price=199,
        keywords=["MT4"],
    )


@pytest.fixture
def candidate() -> CandidateResult:
    return CandidateResult(
        platform="telegram",
        source_url="https://leaks.example.com/10x-bars",
        title="10x Bars Indicator free download",
    )


@pytest.fixture
def contact() -> DmcaContact:
    return DmcaContact(
        full_name="Jordan Reyes",
        email="jordan@example.com",
        company="Bar Charts LLC",
        phone="+1 555 0100",
        address="12 Market St, Springfield",
    )
