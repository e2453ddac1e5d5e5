import hashlib
import json
from datetime import datetime, timezone

import httpx
import pytest

from conftest import FakeGateway
from core.evidence_extractor import (
    EvidenceExtractor,
    extract_fallback,
    ground_quote,
    page_metadata,
    verify_html,
)
from core.llm_gateway import LLMGateway
from model.evidence import PageSnapshot
from model.product import Product
from util.errors import GatewayError

RAW = (
    b"<html><head><title>Free 10x Bars</title>"
    b'<meta name="description" content="Grab the indicator for free"></head>'
    b"<body>Download 10x Bars Indicator free for MT4 here</body></html>"
)
TEXT = "Download 10x Bars Indicator free for MT4 here"
LONG_TEXT = TEXT + " with every template and lifetime updates included"


def _snapshot(text: str = TEXT, raw: bytes = RAW) -> PageSnapshot:
    return PageSnapshot(
        url="https://leaks.example.com/10x-bars",
        page_title="Free 10x Bars",
        page_text=text,
        page_html_hash=hashlib.sha256(raw).hexdigest() if raw else "",
        captured_at=datetime.now(timezone.utc),
        raw_html=raw,
    )


def _assert_grounded(snapshot: PageSnapshot, matches) -> None:
    for m in matches:
        assert m.matched_text.lower() in snapshot.page_text.lower()
        assert snapshot.page_text[m.position : m.position + len(m.matched_text)] == m.matched_text


def test_ground_quote_returns_page_slice():
    assert ground_quote(TEXT, "10X BARS indicator") == (9, "10x Bars Indicator")
    assert ground_quote(TEXT, "not on the page") is None
    assert ground_quote(TEXT, "   ") is None
    assert ground_quote(TEXT, None) is None


def test_page_metadata_reads_title_and_description():
    assert page_metadata(RAW.decode()) == ("Free 10x Bars", "Grab the indicator for free")


def test_page_metadata_accepts_any_attribute_order():
    raw = (
        "<html><head><TITLE>Free &amp; fast</TITLE>"
        '<meta content="Indicator  mirror" NAME="Description"></head></html>'
    )
    assert page_metadata(raw) == ("Free & fast", "Indicator mirror")
    assert page_metadata("<html><body>no head</body></html>") == ("", "")


def test_end_to_end_fallback_finds_product_name():
    matches = extract_fallback(TEXT, Product(name="10x Bars Indicator", price=199))
    assert len(matches) == 1
    assert matches[0].matched_text == "10x Bars Indicator"
    assert matches[0].position == 9
    assert matches[0].context == TEXT


def test_fallback_matches_are_literal_substrings():
    product = Product(name="Nonexistent Course", keywords=["mt4", "DOWNLOAD", "", "zzz"])
    matches = extract_fallback(TEXT, product)
    assert {m.matched_text for m in matches} == {"MT4", "Download"}
    needles = {"nonexistent course", "mt4", "download", "zzz"}
    for m in matches:
        assert m.matched_text.lower() in needles
        assert m.confidence <= 0.7
        assert m.severity in {"medium", "low"}
    _assert_grounded(_snapshot(), matches)


@pytest.mark.asyncio
async def test_hallucinated_quotes_are_discarded(product):
    reply = {
        "matches": [
            {"type": "brand_mention", "exact_quote": "10X BARS INDICATOR", "confidence": 0.95,
             "severity": "critical", "surrounding_context": "made up context"},
            {"type": "download_link", "exact_quote": "Download now from mega.nz", "confidence": 0.9,
             "severity": "critical"},
            {"type": "nonsense", "exact_quote": "for MT4", "confidence": 7, "severity": "extreme"},
            {"type": "keyword_match", "exact_quote": "", "confidence": 0.5},
            "not even an object",
        ]
    }
    extractor = EvidenceExtractor(FakeGateway(reply))
    snap = _snapshot()
    evidence = await extractor.extract(snap, product)

    assert evidence.method == "ai"
    assert evidence.rejected_quotes == 3
    assert [m.matched_text for m in evidence.matches] == ["10x Bars Indicator", "for MT4"]
    _assert_grounded(snap, evidence.matches)
    first, second = evidence.matches
    assert first.position == 9
    assert first.context == TEXT
    assert second.type == "keyword_match"
    assert second.severity == "medium"
    assert second.confidence == 1.0
    assert evidence.critical_findings == ['brand mention: "10x Bars Indicator"']


@pytest.mark.asyncio
async def test_gateway_error_falls_back_to_substring_search(product):
    extractor = EvidenceExtractor(FakeGateway(GatewayError("down")))
    evidence = await extractor.extract(_snapshot(), product)
    assert evidence.method == "fallback"
    assert [m.matched_text for m in evidence.matches] == ["10x Bars Indicator", "MT4"]
    assert evidence.page_hash == hashlib.sha256(RAW).hexdigest()
    assert evidence.page_description == "Grab the indicator for free"


@pytest.mark.asyncio
async def test_malformed_matches_payload_falls_back(product):
    extractor = EvidenceExtractor(FakeGateway({"matches": "oops"}))
    evidence = await extractor.extract(_snapshot(), product)
    assert evidence.method == "fallback"


@pytest.mark.asyncio
async def test_no_gateway_uses_fallback(product):
    evidence = await EvidenceExtractor().extract(_snapshot(), product)
    assert evidence.method == "fallback"
    assert evidence.total_matches == 2


@pytest.mark.asyncio
async def test_analyze_filters_and_grounds_matches(product):
    reply = {
        "matches": [
            {"type": "exact_reproduction", "original_text": "10x Bars Indicator for MetaTrader",
             "infringing_text": "10x bars indicator", "legal_significance": "critical",
             "confidence": 0.9, "dmca_language": "The page reproduces the product name."},
            {"type": "brand_usage", "original_text": "Official 10x Bars",
             "infringing_text": "download cracked copy", "legal_significance": "strong",
             "confidence": 0.9},
            {"type": "unique_phrase", "original_text": "short", "infringing_text": "free for MT4",
             "legal_significance": "strong", "confidence": 0.9},
            {"type": "pricing_copy", "original_text": "Only $199 today",
             "infringing_text": "free for MT4 here", "legal_significance": "supporting",
             "confidence": 0.3},
        ]
    }
    extractor = EvidenceExtractor(FakeGateway(reply))
    analysis = await extractor.analyze(_snapshot(LONG_TEXT), product, "telegram")
    assert len(analysis) == 1
    assert analysis[0].infringing_text == "10x Bars Indicator"
    assert analysis[0].legal_significance == "critical"


@pytest.mark.asyncio
async def test_analyze_skips_short_pages_and_errors(product):
    assert await EvidenceExtractor(FakeGateway({"matches": []})).analyze(_snapshot("tiny"), product) is None
    assert await EvidenceExtractor(FakeGateway(GatewayError("x"))).analyze(_snapshot(LONG_TEXT), product) is None
    assert await EvidenceExtractor().analyze(_snapshot(LONG_TEXT), product) is None


def test_verify_detects_changed_content():
    snap = _snapshot()
    assert EvidenceExtractor.verify(snap, snap.page_html_hash)
    assert EvidenceExtractor.verify(snap, snap.page_html_hash.upper())
    tampered = snap.model_copy(update={"raw_html": RAW.replace(b"free", b"paid")})
    assert not EvidenceExtractor.verify(tampered, snap.page_html_hash)
    assert not verify_html(RAW, "")


@pytest.mark.asyncio
async def test_unexpected_model_failure_falls_back(product):
    extractor = EvidenceExtractor(FakeGateway(ValueError("bad usage block")))
    evidence = await extractor.extract(_snapshot(), product)
    assert evidence.method == "fallback"
    assert [m.matched_text for m in evidence.matches] == ["10x Bars Indicator", "MT4"]
    assert await extractor.analyze(_snapshot(LONG_TEXT), product) is None


@pytest.mark.asyncio
async def test_real_gateway_with_malformed_usage_still_extracts(product):
    reply = {"matches": [{"type": "brand_mention", "exact_quote": "10x bars indicator",
                          "confidence": 0.9, "severity": "high"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "content": [{"type": "text", "text": json.dumps(reply)}],
                "stop_reason": "end_turn",
                "usage": {"input_tokens": "n/a", "output_tokens": {"x": 1}},
            },
        )

    gateway = LLMGateway(api_key="k", api_url="https://api.test/v1/messages",
                         transport=httpx.MockTransport(handler))
    evidence = await EvidenceExtractor(gateway).extract(_snapshot(), product)
    assert evidence.method == "ai"
    assert [m.matched_text for m in evidence.matches] == ["10x Bars Indicator"]


@pytest.mark.asyncio
async def test_real_gateway_with_list_envelope_falls_back(product):
    gateway = LLMGateway(api_key="k", api_url="https://api.test/v1/messages",
                         transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[1, 2])))
    evidence = await EvidenceExtractor(gateway).extract(_snapshot(), product)
    assert evidence.method == "fallback"
