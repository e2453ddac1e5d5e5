import pytest

from conftest import FakeGateway, by_url, verdict_reply
from core.infringement_classifier import (
    InfringementClassifier,
    build_product_context,
    build_system_prompt,
    estimate_filtering_cost,
    parse_verdict,
)
from model.product import CandidateResult, LearnedExamples
from model.verdict import FilterVerdict
from util.errors import GatewayError


def _candidate(n: int) -> CandidateResult:
    return CandidateResult(platform="web", source_url=f"https://site{n}.example.com/page")


@pytest.mark.asyncio
async def test_gateway_error_fails_open(candidate, product):
    classifier = InfringementClassifier(FakeGateway(GatewayError("boom")), fail_open=True)
    verdict = await classifier.classify(candidate, product)
    assert verdict.is_infringement is True
    assert verdict.confidence == 0.5
    assert "manual verification" in verdict.reasoning
    assert verdict.fail_open is True


@pytest.mark.asyncio
async def test_invalid_shape_fails_open(candidate, product):
    bad = {"is_infringement": "yes", "confidence": 0.9, "reasoning": "x"}
    classifier = InfringementClassifier(FakeGateway(bad), fail_open=True)
    verdict = await classifier.classify(candidate, product)
    assert (verdict.is_infringement, verdict.confidence) == (True, 0.5)


@pytest.mark.asyncio
async def test_fail_closed_drops_broken_verdicts(candidate, product):
    classifier = InfringementClassifier(FakeGateway(GatewayError("boom")), fail_open=False)
    verdict = await classifier.classify(candidate, product)
    assert (verdict.is_infringement, verdict.confidence) == (False, 0.0)


@pytest.mark.parametrize(
    "data",
    [
        None,
        [],
        {"is_infringement": True, "confidence": 1.5, "reasoning": "x"},
        {"is_infringement": True, "confidence": True, "reasoning": "x"},
        {"is_infringement": True, "confidence": 0.9, "reasoning": "   "},
        {"is_infringement": True, "confidence": "0.9", "reasoning": "x"},
    ],
)
def test_parse_verdict_rejects_bad_shapes(data):
    assert parse_verdict(data) is None


def test_parse_verdict_normalises_infringement_type():
    v = parse_verdict({"is_infringement": True, "confidence": 0.8, "reasoning": "r", "infringement_type": "?"})
    assert v.infringement_type == "unknown"
    v = parse_verdict({"is_infringement": False, "confidence": 0.8, "reasoning": "r", "infringement_type": "piracy"})
    assert v.infringement_type is None


@pytest.mark.asyncio
async def test_batch_promotes_only_confident_infringements(product):
    cands = [_candidate(i) for i in range(3)]
    gw = FakeGateway(
        by_url(
            {
                cands[0].source_url: verdict_reply(True, 0.9),
                cands[1].source_url: verdict_reply(True, 0.5),
                cands[2].source_url: verdict_reply(False, 0.99),
            }
        )
    )
    classifier = InfringementClassifier(gw, batch_delay_ms=0)
    passed = await classifier.classify_batch(cands, product, min_confidence=0.75)
    assert passed == [cands[0]]


@pytest.mark.asyncio
async def test_batch_keeps_input_order_across_groups(product):
    cands = [_candidate(i) for i in range(7)]
    gw = FakeGateway(by_url({c.source_url: verdict_reply(True, 0.95) for c in cands}))
    classifier = InfringementClassifier(gw, batch_size=3, batch_delay_ms=0)
    passed = await classifier.classify_batch(cands, product)
    assert passed == cands
    assert len(gw.calls) == 7


@pytest.mark.asyncio
async def test_batch_survives_item_errors(product):
    cands = [_candidate(i) for i in range(3)]
    gw = FakeGateway(
        by_url(
            {
                cands[0].source_url: verdict_reply(True, 0.9),
                cands[1].source_url: GatewayError("timeout"),
                cands[2].source_url: verdict_reply(False, 0.8),
            }
        )
    )
    classifier = InfringementClassifier(gw, batch_delay_ms=0, fail_open=True)
    passed = await classifier.classify_batch(cands, product, min_confidence=0.75)
    assert passed == [cands[0], cands[1]]


@pytest.mark.asyncio
async def test_batch_with_gateway_down_promotes_everything_at_default_threshold(product):
    cands = [_candidate(i) for i in range(3)]
    classifier = InfringementClassifier(FakeGateway(GatewayError("down")), batch_delay_ms=0)
    assert classifier.min_confidence == 0.75
    assert await classifier.classify_batch(cands, product) == cands


@pytest.mark.asyncio
async def test_batch_with_gateway_down_fail_closed_promotes_nothing(product):
    cands = [_candidate(i) for i in range(3)]
    classifier = InfringementClassifier(
        FakeGateway(GatewayError("down")), batch_delay_ms=0, fail_open=False
    )
    assert await classifier.classify_batch(cands, product) == []


def test_model_verdict_at_fail_open_confidence_is_still_gated():
    classifier = InfringementClassifier(FakeGateway({}), fail_open=True)
    real = FilterVerdict(is_infringement=True, confidence=0.5, reasoning="unsure")
    assert classifier.passes(real, 0.75) is False
    assert classifier.passes(classifier.default_verdict("AI filter error"), 0.75) is True


def test_system_prompt_includes_learned_examples():
    prompt = build_system_prompt(
        LearnedExamples(
            verified_examples=["telegram: https://t.me/leak"],
            false_positive_examples=["youtube: https://youtube.com/review"],
        )
    )
    assert "1. telegram: https://t.me/leak" in prompt
    assert "FALSE POSITIVES" in prompt
    assert "1. youtube: https://youtube.com/review" in prompt


def test_product_context_lists_paid_price(product):
    ctx = build_product_context(product)
    assert "- Name: 10x Bars Indicator" in ctx
    assert "$199" in ctx
    assert "- Keywords: MT4" in ctx


def test_estimate_filtering_cost_scales_linearly():
    assert estimate_filtering_cost(10) == pytest.approx(10 * estimate_filtering_cost(1))
