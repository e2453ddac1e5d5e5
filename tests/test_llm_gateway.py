import json
import logging

import httpx
import pytest

from core.llm_gateway import LLMGateway, estimate_cost, parse_json_payload
from util.errors import GatewayError


def _anthropic_body(text: str, input_tokens: int = 120, output_tokens: int = 30) -> dict:
    return {
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


def _gateway(handler, api_key: str = "k") -> LLMGateway:
    return LLMGateway(
        api_key=api_key,
        api_url="https://api.test/v1/messages",
        transport=httpx.MockTransport(handler),
    )


def test_parse_json_payload_strips_code_fences():
    assert parse_json_payload('```json\n{"ok": true}\n```') == {"ok": True}


def test_parse_json_payload_rejects_garbage():
    with pytest.raises(GatewayError):
        parse_json_payload("not json at all")


@pytest.mark.asyncio
async def test_complete_sends_headers_and_sums_usage():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_anthropic_body('{"answer": 42}'))

    gw = _gateway(handler)
    res = await gw.complete("sys", "user", model="claude-3-5-haiku-latest", temperature=0.1)

    assert res.data == {"answer": 42}
    assert res.metadata.tokens_used == 150
    assert res.metadata.finish_reason == "end_turn"
    assert gw.tokens_used == 150
    assert seen["headers"]["x-api-key"] == "k"
    assert "anthropic-version" in seen["headers"]
    assert seen["body"]["system"] == "sys"
    assert seen["body"]["temperature"] == 0.1


@pytest.mark.asyncio
async def test_complete_text_mode_returns_raw_text():
    gw = _gateway(lambda r: httpx.Response(200, json=_anthropic_body("plain words")))
    res = await gw.complete("sys", "user", response_format="text")
    assert res.data == "plain words"


@pytest.mark.asyncio
async def test_malformed_model_json_is_gateway_error():
    gw = _gateway(lambda r: httpx.Response(200, json=_anthropic_body("{broken")))
    with pytest.raises(GatewayError):
        await gw.complete("sys", "user")


@pytest.mark.asyncio
async def test_non_2xx_is_gateway_error():
    gw = _gateway(lambda r: httpx.Response(529, json={"error": "overloaded"}))
    with pytest.raises(GatewayError):
        await gw.complete("sys", "user")


@pytest.mark.asyncio
async def test_missing_api_key_is_gateway_error():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=_anthropic_body("{}"))

    with pytest.raises(GatewayError):
        await _gateway(handler, api_key="").complete("sys", "user")
    assert calls == []


def test_estimate_cost_uses_price_table():
    assert estimate_cost(1_000_000, 0, "claude-3-5-haiku-latest") == pytest.approx(0.80)
    assert estimate_cost(0, 1_000_000, "claude-3-5-sonnet-latest") == pytest.approx(15.0)


def test_estimate_cost_matches_model_family():
    assert estimate_cost(1_000_000, 0, "claude-sonnet-4-20250514") == pytest.approx(3.0)
    assert estimate_cost(0, 1_000_000, "claude-opus-4-1") == pytest.approx(75.0)


def test_estimate_cost_unknown_model_uses_default_family(caplog):
    with caplog.at_level(logging.DEBUG, logger="core.llm_gateway"):
        cost = estimate_cost(1_000_000, 0, "some-other-model")
    assert cost == pytest.approx(0.80)
    assert "llm.pricing.unknown model=some-other-model" in caplog.text


@pytest.mark.asyncio
async def test_malformed_usage_counts_as_zero_tokens():
    body = _anthropic_body('{"ok": true}')
    body["usage"] = {"input_tokens": "n/a", "output_tokens": None}
    gw = _gateway(lambda r: httpx.Response(200, json=body))
    res = await gw.complete("sys", "user")
    assert res.data == {"ok": True}
    assert res.metadata.tokens_used == 0
    assert gw.tokens_used == 0


@pytest.mark.asyncio
async def test_non_object_envelope_is_gateway_error():
    gw = _gateway(lambda r: httpx.Response(200, json=[{"type": "text", "text": "{}"}]))
    with pytest.raises(GatewayError):
        await gw.complete("sys", "user")
