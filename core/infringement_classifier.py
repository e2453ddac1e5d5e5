# core/infringement_classifier.py
import asyncio
from typing import Any, List, Optional, Sequence
from config.settings import settings
from core.llm_gateway import LLMGateway
from model.product import CandidateResult, LearnedExamples, Product
from model.verdict import FilterVerdict
from util.errors import GatewayError
import logging
from util.timing import timed

logger = logging.getLogger(__name__)

_INFRINGEMENT_TYPES = {"piracy", "unauthorized_sale", "counterfeit", "unknown"}

# Rough per-result spend with the mini model, in USD.
COST_PER_RESULT = 0.0002


def estimate_filtering_cost(result_count: int) -> float:
    return result_count * COST_PER_RESULT


def build_system_prompt(examples: Optional[LearnedExamples]) -> str:
    """
    Base instructions + few-shot examples from prior human verification + response schema.
    """
    prompt = settings.CLASSIFY_SYSTEM_PROMPT
    if examples and examples.verified_examples:
        prompt += "\n\nLEARNED EXAMPLES OF REAL INFRINGEMENTS (verified by user):"
        for i, ex in enumerate(examples.verified_examples, start=1):
            prompt += f"\n{i}. {ex}"
    if examples and examples.false_positive_examples:
        prompt += "\n\nLEARNED EXAMPLES OF FALSE POSITIVES (rejected by user):"
        for i, ex in enumerate(examples.false_positive_examples, start=1):
            prompt += f"\n{i}. {ex}"
    return prompt + "\n\n" + settings.CLASSIFY_RESPONSE_FORMAT


def build_product_context(product: Product) -> str:
    lines = [
        "PRODUCT INFORMATION:",
        f"- Name: {product.name}",
        f"- Type: {product.type or 'unknown'}",
    ]
    if product.brand_name:
        lines.append(f"- Brand: {product.brand_name}")
    if product.description:
        lines.append(f"- Description: {product.description[:200]}...")
    if product.price:
        lines.append(
            f"- Price: ${product.price:g} (this is a PAID product, free downloads are infringements)"
        )
    if product.url:
        lines.append(f"- Official URL: {product.url} (this is the ONLY authorized source)")

    ai = product.ai_extracted_data
    if ai:
        if ai.brand_identifiers:
            lines.append(f"- Brand Identifiers: {', '.join(ai.brand_identifiers)}")
        if ai.unique_phrases:
            quoted = '", "'.join(ai.unique_phrases[:3])
            lines.append(f'- Unique Marketing Phrases: "{quoted}"')
        if ai.copyrighted_terms:
            lines.append(f"- Copyrighted Terms: {', '.join(ai.copyrighted_terms)}")
    if product.keywords:
        lines.append(f"- Keywords: {', '.join(product.keywords[:5])}")
    return "\n".join(lines)


def build_result_context(candidate: CandidateResult) -> str:
    lines = [
        "SEARCH RESULT TO ANALYZE:",
        f"- Platform: {candidate.platform}",
        f"- URL: {candidate.source_url}",
        f"- Risk Level: {candidate.risk_level}",
        f"- Audience Size: {candidate.audience_size or 'unknown'}",
    ]
    if candidate.title:
        lines.append(f"- Page Title: {candidate.title}")
    if candidate.snippet:
        lines.append(f"- Search Snippet: {candidate.snippet}")
    lines.append(
        "\nTASK: Determine if this URL represents an actual infringement of the product or a "
        "false positive. Consider the URL domain, page title, search snippet, the platform "
        "type, and the context clues. When in doubt, lean toward marking it as a potential "
        "infringement; the user will verify it manually.\n\nRespond with JSON only."
    )
    return "\n".join(lines)


def parse_verdict(data: Any) -> Optional[FilterVerdict]:
    """
    Strict shape check. Returns None for anything other than
    {is_infringement: bool, confidence: number in [0,1], reasoning: non-empty str}.
    """
    if not isinstance(data, dict):
        return None
    verdict = data.get("is_infringement")
    conf = data.get("confidence")
    reasoning = data.get("reasoning")
    if not isinstance(verdict, bool):
        return None
    if isinstance(conf, bool) or not isinstance(conf, (int, float)):
        return None
    if not 0.0 <= float(conf) <= 1.0:
        return None
    if not isinstance(reasoning, str) or not reasoning.strip():
        return None

    kind = data.get("infringement_type")
    if verdict:
        kind = kind if kind in _INFRINGEMENT_TYPES else "unknown"
    else:
        kind = None
    return FilterVerdict(
        is_infringement=verdict,
        confidence=float(conf),
        reasoning=reasoning.strip(),
        infringement_type=kind,
    )


class InfringementClassifier:
    """
    LLM gate between discovery and evidence capture.

    Broken or failed verdicts resolve through the fail-open policy: the item is let
    through at a fixed confidence, marked `fail_open`, and promoted regardless of
    the threshold so a human reviewer sees it. Turning the policy off makes the
    same cases resolve to "not an infringement".
    """

    def __init__(
        self,
        gateway: LLMGateway,
        *,
        fail_open: Optional[bool] = None,
        fail_open_confidence: Optional[float] = None,
        min_confidence: Optional[float] = None,
        batch_size: Optional[int] = None,
        batch_delay_ms: Optional[int] = None,
    ) -> None:
        self._gateway = gateway
        self.fail_open = settings.CLASSIFIER_FAIL_OPEN if fail_open is None else fail_open
        self.fail_open_confidence = (
            settings.CLASSIFIER_FAIL_OPEN_CONFIDENCE
            if fail_open_confidence is None
            else fail_open_confidence
        )
        self.min_confidence = (
            settings.CLASSIFIER_MIN_CONFIDENCE if min_confidence is None else min_confidence
        )
        self.batch_size = max(1, batch_size or settings.CLASSIFIER_BATCH_SIZE)
        self.batch_delay_ms = (
            settings.CLASSIFIER_BATCH_DELAY_MS if batch_delay_ms is None else batch_delay_ms
        )

    def default_verdict(self, reason: str) -> FilterVerdict:
        if self.fail_open:
            return FilterVerdict(
                is_infringement=True,
                confidence=self.fail_open_confidence,
                reasoning=f"{reason}, requires manual verification",
                fail_open=True,
            )
        return FilterVerdict(
            is_infringement=False,
            confidence=0.0,
            reasoning=f"{reason}, dropped (fail-closed)",
        )

    async def classify(
        self,
        candidate: CandidateResult,
        product: Product,
        learned_examples: Optional[LearnedExamples] = None,
    ) -> FilterVerdict:
        system_prompt = build_system_prompt(learned_examples)
        user_prompt = f"{build_product_context(product)}\n\n{build_result_context(candidate)}"
        try:
            response = await self._gateway.complete(
                system_prompt,
                user_prompt,
                model=settings.LLM_MODEL_MINI,
                temperature=0.2,
                max_tokens=200,
                response_format="json",
            )
        except GatewayError as e:
            logger.error("classify.gateway_error url=%s err=%s", candidate.source_url, e)
            return self.default_verdict("AI filter error")
        except Exception:
            logger.error("classify.unexpected_error url=%s", candidate.source_url, exc_info=True)
            return self.default_verdict("AI filter error")

        verdict = parse_verdict(response.data)
        if verdict is None:
            logger.warning("classify.invalid_response url=%s", candidate.source_url)
            return self.default_verdict("AI filter returned invalid response")
        return verdict

    def passes(self, verdict: FilterVerdict, min_confidence: float) -> bool:
        # unverified items go to manual review whatever the threshold
        if verdict.fail_open and self.fail_open:
            return True
        return verdict.is_infringement and verdict.confidence >= min_confidence

    async def classify_batch(
        self,
        candidates: Sequence[CandidateResult],
        product: Product,
        min_confidence: Optional[float] = None,
        learned_examples: Optional[LearnedExamples] = None,
    ) -> List[CandidateResult]:
        """
        Classify in fixed-size concurrent groups with a pause between groups.
        Returns the promoted candidates in input order.
        """
        threshold = self.min_confidence if min_confidence is None else min_confidence
        total = len(candidates)
        logger.info(
            "classify.batch.start product=%s n=%d threshold=%.2f", product.name, total, threshold
        )

        passed: List[CandidateResult] = []
        with timed(logger, "classify.batch", n=total, size=self.batch_size):
            for start in range(0, total, self.batch_size):
                group = list(candidates[start : start + self.batch_size])
                verdicts = await asyncio.gather(
                    *(self.classify(c, product, learned_examples) for c in group)
                )
                for cand, verdict in zip(group, verdicts):
                    if self.passes(verdict, threshold):
                        passed.append(cand)
                        logger.info(
                            "classify.pass conf=%.2f url=%s reason=%s",
                            verdict.confidence,
                            cand.source_url,
                            verdict.reasoning,
                        )
                    else:
                        logger.info(
                            "classify.filtered conf=%.2f url=%s reason=%s",
                            verdict.confidence,
                            cand.source_url,
                            verdict.reasoning,
                        )
                if start + self.batch_size < total and self.batch_delay_ms > 0:
                    await asyncio.sleep(self.batch_delay_ms / 1000)

        logger.info("classify.batch.result passed=%d filtered=%d", len(passed), total - len(passed))
        return passed
