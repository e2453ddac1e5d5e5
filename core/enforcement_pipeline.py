# core/enforcement_pipeline.py
from datetime import date
from typing import List, Optional
from core import comparison_builder, notice_assembler
from core.entities import EnforcementRecord
from core.evidence_extractor import EvidenceExtractor
from core.infringement_classifier import InfringementClassifier
from core.page_capture import PageCapturer
from core.quality_checker import check_notice_quality, quality_input_for
from model.evidence import AnalyzedEvidenceMatch, EvidenceTiers, ExtractedEvidence, PageSnapshot
from model.notice import DmcaContact, NoticeEvidence
from model.product import CandidateResult, LearnedExamples, Product
from model.verdict import FilterVerdict
import logging
from util.timing import timed

logger = logging.getLogger(__name__)


def evidence_tiers_from(
    snapshot: PageSnapshot,
    evidence: ExtractedEvidence,
    analysis: Optional[List[AnalyzedEvidenceMatch]] = None,
) -> EvidenceTiers:
    """
    Model-extracted matches feed the structured tier; substring hits from the
    fallback path feed the raw excerpt tier.
    """
    if evidence.method == "ai":
        structured, excerpts = list(evidence.matches), []
    else:
        structured, excerpts = [], [m.matched_text for m in evidence.matches]
    return EvidenceTiers(
        ai_matches=list(analysis or []),
        evidence_matches=structured,
        matched_excerpts=excerpts,
        page_title=evidence.page_title or snapshot.page_title or None,
        page_text=snapshot.page_text,
    )


def notice_evidence_from(snapshot: PageSnapshot) -> NoticeEvidence:
    return NoticeEvidence(
        content_hash=snapshot.page_html_hash or None,
        wayback_url=snapshot.wayback_url,
        captured_at=snapshot.captured_at,
        html_storage_path=snapshot.html_storage_path,
        page_links_count=len(snapshot.page_links),
        page_text_length=len(snapshot.page_text),
    )


class EnforcementPipeline:
    """
    classify -> capture -> extract -> analyze -> compare -> render -> quality.

    Each stage degrades on its own (see the individual components); the only
    early exit is a candidate that does not pass the classifier gate.
    """

    def __init__(
        self,
        classifier: InfringementClassifier,
        capturer: PageCapturer,
        extractor: EvidenceExtractor,
    ) -> None:
        self._classifier = classifier
        self._capturer = capturer
        self._extractor = extractor

    async def gate(
        self,
        candidate: CandidateResult,
        product: Product,
        learned_examples: Optional[LearnedExamples] = None,
        min_confidence: Optional[float] = None,
    ) -> tuple[FilterVerdict, bool]:
        threshold = self._classifier.min_confidence if min_confidence is None else min_confidence
        verdict = await self._classifier.classify(candidate, product, learned_examples)
        return verdict, self._classifier.passes(verdict, threshold)

    async def run(
        self,
        candidate: CandidateResult,
        product: Product,
        *,
        owner_id: str,
        subject_id: str,
        contact: DmcaContact,
        tone: Optional[str] = None,
        notice_type: str = "dmca",
        learned_examples: Optional[LearnedExamples] = None,
        min_confidence: Optional[float] = None,
        today: Optional[date] = None,
    ) -> EnforcementRecord:
        url = candidate.source_url
        with timed(logger, "enforce.run", url=url):
            verdict, promoted = await self.gate(
                candidate, product, learned_examples, min_confidence
            )
            if not promoted:
                logger.info(
                    "enforce.gate.filtered url=%s conf=%.2f reason=%s",
                    url,
                    verdict.confidence,
                    verdict.reasoning,
                )
                return EnforcementRecord(verdict=verdict, promoted=False)

            snapshot = await self._capturer.capture(url, owner_id, subject_id)
            evidence = await self._extractor.extract(snapshot, product)
            analysis = await self._extractor.analyze(snapshot, product, candidate.platform)

            items = comparison_builder.build(
                product, url, evidence_tiers_from(snapshot, evidence, analysis)
            )
            notice = notice_assembler.render(
                notice_type,
                items,
                contact,
                tone,
                product=product,
                source_url=url,
                platform=candidate.platform,
                infringement_type=verdict.infringement_type,
                evidence=notice_evidence_from(snapshot),
                today=today,
            )
            quality = check_notice_quality(
                quality_input_for(
                    notice,
                    contact,
                    product,
                    url,
                    content_hash=snapshot.page_html_hash,
                    wayback_url=snapshot.wayback_url,
                )
            )

        logger.info(
            "enforce.ok url=%s hash=%s matches=%d items=%d score=%d",
            url,
            snapshot.page_html_hash[:12],
            len(evidence.matches),
            len(items),
            quality.score,
        )
        return EnforcementRecord(
            verdict=verdict,
            promoted=True,
            snapshot=snapshot,
            evidence=evidence,
            analysis=analysis,
            comparison_items=items,
            notice=notice,
            quality=quality,
        )
