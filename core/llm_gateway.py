# core/llm_gateway.py
import json
import time
from typing import Any, Dict, Literal, Optional
import httpx
from config.settings import settings
from core.entities import LLMMetadata, LLMResponse
from util.errors import GatewayError
import logging
from util.timing import timed

logger = logging.getLogger(__name__)

ResponseFormat = Literal["json", "text"]

# USD per 1M tokens (input, output), keyed by model family
MODEL_PRICING: Dict[str, tuple[float, float]] = {
    "haiku": (0.80, 4.00),
    "sonnet": (3.00, 15.00),
    "opus": (15.00, 75.00),
}
DEFAULT_PRICING_FAMILY = "haiku"


def pricing_family(model: str) -> Optional[str]:
    name = (model or "").lower()
    for family in MODEL_PRICING:
        if family in name:
            return family
    return None


def estimate_cost(input_tokens: int, output_tokens: int, model: Optional[str] = None) -> float:
    model = model or settings.LLM_MODEL_MINI
    family = pricing_family(model)
    if family is None:
        logger.debug("llm.pricing.unknown model=%s using=%s", model, DEFAULT_PRICING_FAMILY)
        family = DEFAULT_PRICING_FAMILY
    rates = MODEL_PRICING[family]
    return (input_tokens / 1_000_000) * rates[0] + (output_tokens / 1_000_000) * rates[1]


def _first_text(data: Dict[str, Any]) -> str:
    content = data.get("content") or []
    if content and isinstance(content, list):
        node = content[0]
        if isinstance(node, dict) and node.get("type") == "text":
            return node.get("text") or ""
    return ""


def _token_count(usage: Any, key: str) -> int:
    """
    Usage is accounting only; a malformed block counts as zero tokens.
    """
    if not isinstance(usage, dict):
        return 0
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if value is not None:
            logger.debug("llm.usage.unreadable key=%s value=%r", key, value)
        return 0
    return max(0, int(value))


def _strip_fences(raw: str) -> str:
    raw = (raw or "").strip()
    if raw.startswith("```"):
        raw = raw.strip("`")
        if raw.startswith("json"):
            raw = raw[4:]
    return raw.strip()


def parse_json_payload(raw: str) -> Any:
    """
    Decode a model reply into JSON. Anything that does not decode is a hard error.
    """
    text = _strip_fences(raw)
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise GatewayError(f"Malformed JSON from model: {e}") from e


class LLMGateway:
    """
    Structured completions against the Anthropic Messages API.

    Owns model selection and token accounting. Every failure surfaces as
    GatewayError so callers can apply their own degradation policy.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self._api_url = api_url or settings.ANTHROPIC_API_URL
        self._default_model = default_model or settings.LLM_MODEL_MINI
        self._timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport
        self.tokens_used = 0

    async def _post_json(self, headers: Dict[str, str], payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            r = await client.post(self._api_url, headers=headers, json=payload)
            r.raise_for_status()
            return r.json()

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        response_format: ResponseFormat = "json",
    ) -> LLMResponse:
        model = model or self._default_model
        if not self._api_key:
            raise GatewayError("ANTHROPIC_API_KEY is not set", model=model)

        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": settings.ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "temperature": temperature,
        }

        t0 = time.perf_counter()
        try:
            with timed(logger, "llm.complete", model=model, fmt=response_format):
                data = await self._post_json(headers, payload)
        except httpx.HTTPStatusError as e:
            logger.error("llm.bad_status model=%s status=%d", model, e.response.status_code)
            raise GatewayError(f"Model API returned {e.response.status_code}", model=model) from e
        except httpx.HTTPError as e:
            logger.error("llm.request_error model=%s err=%s", model, type(e).__name__)
            raise GatewayError(f"Model API request failed: {type(e).__name__}", model=model) from e
        except ValueError as e:
            logger.error("llm.body_not_json model=%s", model)
            raise GatewayError("Model API returned a non-JSON body", model=model) from e

        if not isinstance(data, dict):
            logger.error("llm.bad_envelope model=%s type=%s", model, type(data).__name__)
            raise GatewayError("Model API returned an unexpected envelope", model=model)

        text = _first_text(data)
        parsed = parse_json_payload(text) if response_format == "json" else text

        usage = data.get("usage")
        in_tok = _token_count(usage, "input_tokens")
        out_tok = _token_count(usage, "output_tokens")
        self.tokens_used += in_tok + out_tok

        meta = LLMMetadata(
            model=model,
            tokens_used=in_tok + out_tok,
            processing_time_ms=int((time.perf_counter() - t0) * 1000),
            finish_reason=str(data.get("stop_reason") or "unknown"),
            input_tokens=in_tok,
            output_tokens=out_tok,
        )
        logger.info(
            "llm.usage model=%s tokens=%d cost=%.6f finish=%s",
            model,
            meta.tokens_used,
            estimate_cost(in_tok, out_tok, model),
            meta.finish_reason,
        )
        return LLMResponse(data=parsed, metadata=meta)
