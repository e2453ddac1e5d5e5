import hashlib

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeGateway, InMemoryExamples, InMemorySnapshots, verdict_reply
from controller.controller_dependencies import get_enforcement_service
from core.evidence_extractor import EvidenceExtractor
from core.infringement_classifier import InfringementClassifier
from core.page_capture import PageCapturer
from main import app
from service.enforcement_service import EnforcementService

HTML = b"<html><head><title>10x Bars free</title></head><body>Download 10x Bars Indicator free for MT4 here</body></html>"
SOURCE = "https://leaks.example.com/10x-bars"
PRODUCT = {"id": "prod-1", "name": "10x Bars Indicator", "price": 199, "keywords": ["MT4"]}
CONTACT = {
    "full_name": "Jordan Reyes",
    "email": "jordan@example.com",
    "address": "12 Market St, Springfield",
}


@pytest.fixture
def blobs():
    return InMemorySnapshots()


@pytest.fixture
def examples():
    return InMemoryExamples()


@pytest.fixture
def client(blobs, examples):
    def page(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=HTML, headers={"content-type": "text/html"})

    service = EnforcementService(
        InfringementClassifier(FakeGateway(verdict_reply(True, 0.9, "leak")), batch_delay_ms=0),
        PageCapturer(blobs, transport=httpx.MockTransport(page), wayback_enabled=False),
        EvidenceExtractor(None),
        blobs,
        examples,
    )
    app.dependency_overrides[get_enforcement_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_classify(client):
    res = client.post(
        "/api/v1/classify",
        json={"product": PRODUCT, "candidate": {"platform": "web", "source_url": SOURCE}},
    )
    assert res.status_code == 200
    assert res.json()["promoted"] is True
    assert res.json()["verdict"]["reasoning"] == "leak"


def test_classify_rejects_empty_candidate_url(client):
    res = client.post(
        "/api/v1/classify",
        json={"product": PRODUCT, "candidate": {"platform": "web", "source_url": "  "}},
    )
    assert res.status_code == 422


def test_classify_batch_reports_filtered_count(client):
    res = client.post(
        "/api/v1/classify-batch",
        json={
            "product": PRODUCT,
            "candidates": [{"platform": "web", "source_url": SOURCE}],
            "minConfidence": 0.95,
        },
    )
    assert res.json() == {"promoted": [], "filtered": 1}


def test_capture_then_verify_hash(client, blobs):
    res = client.post(
        "/api/v1/capture", json={"url": SOURCE, "ownerId": "owner-1", "subjectId": "inf-1"}
    )
    assert res.status_code == 201
    body = res.json()
    assert body["page_html_hash"] == hashlib.sha256(HTML).hexdigest()
    assert "raw_html" not in body

    path = body["html_storage_path"]
    ok = client.post(
        "/api/v1/verify-hash", json={"storagePath": path, "recordedHash": body["page_html_hash"]}
    )
    assert ok.json() == {"valid": True, "currentHash": body["page_html_hash"]}

    blobs.blobs[path] = HTML.replace(b"free", b"paid")
    tampered = client.post(
        "/api/v1/verify-hash", json={"storagePath": path, "recordedHash": body["page_html_hash"]}
    )
    assert tampered.json()["valid"] is False


def test_capture_rejects_non_http_url(client):
    res = client.post("/api/v1/capture", json={"url": "ftp://x", "ownerId": "o", "subjectId": "s"})
    assert res.status_code == 422


def test_verify_hash_unknown_path_is_404(client):
    res = client.post("/api/v1/verify-hash", json={"storagePath": "nope", "recordedHash": "abc"})
    assert res.status_code == 404
    assert res.json()["detail"] == "Snapshot not found"


def test_extract_from_inline_html(client):
    res = client.post(
        "/api/v1/extract", json={"product": PRODUCT, "url": SOURCE, "html": HTML.decode()}
    )
    evidence = res.json()["evidence"]
    assert evidence["method"] == "fallback"
    assert [m["matched_text"] for m in evidence["matches"]] == ["10x Bars Indicator", "MT4"]
    assert evidence["page_title"] == "10x Bars free"


def test_extract_without_source_is_404(client):
    res = client.post("/api/v1/extract", json={"product": PRODUCT, "url": SOURCE})
    assert res.status_code == 404


def test_comparisons(client):
    res = client.post(
        "/api/v1/comparisons",
        json={
            "product": PRODUCT,
            "sourceUrl": SOURCE,
            "evidence": {"matched_excerpts": ["10x Bars Indicator"]},
        },
    )
    items = res.json()["items"]
    assert items[0]["tier"] == "raw_excerpts"
    assert 1 <= len(items) <= 10


def test_notice_and_quality(client):
    res = client.post(
        "/api/v1/notice",
        json={
            "noticeType": "dmca",
            "tone": "urgent",
            "product": PRODUCT,
            "sourceUrl": SOURCE,
            "contact": CONTACT,
            "comparisonItems": [{"original": "a original", "infringing": "a copy"}],
        },
    )
    assert res.status_code == 200
    data = res.json()
    assert SOURCE in data["notice"]["body"]
    assert data["notice"]["tone"] == "urgent"
    assert data["quality"]["passed"] is True


def test_notice_unknown_type_is_422(client):
    res = client.post(
        "/api/v1/notice",
        json={"noticeType": "fax", "product": PRODUCT, "sourceUrl": SOURCE, "contact": CONTACT},
    )
    assert res.status_code == 422
    assert res.json()["detail"] == "Unknown notice type"


def test_enforce_runs_the_whole_chain(client):
    res = client.post(
        "/api/v1/enforce",
        json={
            "product": PRODUCT,
            "candidate": {"platform": "telegram", "source_url": SOURCE},
            "contact": CONTACT,
            "ownerId": "owner-1",
            "subjectId": "inf-1",
        },
    )
    data = res.json()
    assert data["promoted"] is True
    assert data["snapshot"]["page_html_hash"] == hashlib.sha256(HTML).hexdigest()
    assert data["comparisonItems"][0]["tier"] == "raw_excerpts"
    assert "10x Bars Indicator" in data["notice"]["body"]


def test_record_example(client, examples):
    res = client.post(
        "/api/v1/examples",
        json={"productId": "prod-1", "platform": "telegram", "url": SOURCE, "confirmed": True},
    )
    assert res.status_code == 201
    assert examples.verified["prod-1"] == [f"telegram: {SOURCE}"]


def test_readyz_without_redis_is_503(client):
    res = client.get("/readyz")
    assert res.status_code == 503
    assert res.json() == {"ok": False}
