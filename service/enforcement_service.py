# service/enforcement_service.py
import logging
from datetime import datetime, timezone
from typing import List, NoReturn, Optional, Tuple
from core import comparison_builder, notice_assembler
from core.enforcement_pipeline import EnforcementPipeline
from core.entities import EnforcementRecord
from core.evidence_extractor import EvidenceExtractor, verify_html
from core.infringement_classifier import InfringementClassifier
from core.page_capture import PageCapturer, snapshot_from_bytes
from core.quality_checker import check_notice_quality, quality_input_for
from model.api import EnforceRequest, NoticeRequest
from model.evidence import AnalyzedEvidenceMatch, EvidenceTiers, ExtractedEvidence, PageSnapshot
from model.notice import ComparisonItem, Notice, QualityResult
from model.product import CandidateResult, LearnedExamples, Product
from model.verdict import FilterVerdict
from repository.learned_example_repository import LearnedExampleRepository, format_example
from repository.snapshot_repository import SnapshotRepository
from util import functions
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


def _raise(err: ErrorMessage) -> NoReturn:
    raise AppError(err.value.message, err.value.http_status)


def _require_http(url: str) -> None:
    if not url.lower().startswith(("http://", "https://")):
        _raise(ErrorMessage.INVALID_URL)


class EnforcementService:
    def __init__(
        self,
        classifier: InfringementClassifier,
        capturer: PageCapturer,
        extractor: EvidenceExtractor,
        snapshots: SnapshotRepository,
        examples: LearnedExampleRepository,
    ) -> None:
        self._classifier = classifier
        self._capturer = capturer
        self._extractor = extractor
        self._snapshots = snapshots
        self._examples = examples
        self._pipeline = EnforcementPipeline(classifier, capturer, extractor)

    async def learned_examples(self, product_id: str) -> LearnedExamples:
        """
        Few-shot examples for the classifier. A read failure degrades to none.
        """
        if not product_id:
            return LearnedExamples()
        try:
            return await self._examples.get(product_id)
        except Exception:
            logger.error("examples.read.error product=%s", product_id)
            return LearnedExamples()

    async def record_example(
        self, product_id: str, platform: str, url: str, *, confirmed: bool, note: str = ""
    ) -> None:
        try:
            await self._examples.record(
                product_id, format_example(platform, url, note), confirmed=confirmed
            )
        except Exception:
            logger.error("examples.write.error product=%s", product_id)
            raise
        logger.info("examples.recorded product=%s confirmed=%s", product_id, confirmed)

    async def classify(
        self,
        candidate: CandidateResult,
        product: Product,
        learned: Optional[LearnedExamples] = None,
        min_confidence: Optional[float] = None,
    ) -> Tuple[FilterVerdict, bool]:
        learned = learned or await self.learned_examples(product.id)
        return await self._pipeline.gate(candidate, product, learned, min_confidence)

    async def classify_batch(
        self,
        candidates: List[CandidateResult],
        product: Product,
        min_confidence: Optional[float] = None,
    ) -> List[CandidateResult]:
        learned = await self.learned_examples(product.id)
        return await self._classifier.classify_batch(
            candidates, product, min_confidence=min_confidence, learned_examples=learned
        )

    async def capture(self, url: str, owner_id: str, subject_id: str) -> PageSnapshot:
        _require_http(url)
        snapshot = await self._capturer.capture(url, owner_id, subject_id)
        logger.info(
            "capture.ok url=%s hash=%s stored=%s archived=%s",
            url,
            snapshot.page_html_hash[:12],
            bool(snapshot.html_storage_path),
            bool(snapshot.wayback_url),
        )
        return snapshot

    async def _stored_bytes(self, storage_path: str) -> bytes:
        try:
            raw = await self._snapshots.get_html(storage_path)
        except Exception:
            logger.error("snapshot.read.error path=%s", storage_path)
            raise
        if not raw:
            logger.warning("snapshot.missing path=%s", storage_path)
            _raise(ErrorMessage.SNAPSHOT_NOT_FOUND)
        return raw

    async def load_snapshot(
        self, url: str, storage_path: Optional[str] = None, html: Optional[str] = None
    ) -> PageSnapshot:
        """
        Rebuild a snapshot from stored bytes (preferred) or from caller-supplied HTML.
        """
        if storage_path:
            raw = await self._stored_bytes(storage_path)
            captured_at = SnapshotRepository.captured_at_from_path(storage_path)
        elif html:
            raw = html.encode("utf-8")
            captured_at = None
        else:
            _raise(ErrorMessage.SNAPSHOT_NOT_FOUND)
        return snapshot_from_bytes(
            url,
            raw,
            captured_at=captured_at or datetime.now(timezone.utc),
            storage_path=storage_path,
        )

    async def extract(
        self,
        snapshot: PageSnapshot,
        product: Product,
        *,
        analyze: bool = False,
        platform: str = "unknown",
    ) -> Tuple[ExtractedEvidence, Optional[List[AnalyzedEvidenceMatch]]]:
        evidence = await self._extractor.extract(snapshot, product)
        analysis = None
        if analyze:
            analysis = await self._extractor.analyze(snapshot, product, platform)
        return evidence, analysis

    async def verify_hash(self, storage_path: str, recorded_hash: str) -> Tuple[bool, str]:
        raw = await self._stored_bytes(storage_path)
        valid = verify_html(raw, recorded_hash)
        if not valid:
            logger.warning("evidence.verify.mismatch path=%s", storage_path)
        return valid, functions.sha256_hex(raw)

    @staticmethod
    def comparisons(
        product: Product, source_url: str, evidence: EvidenceTiers
    ) -> List[ComparisonItem]:
        return comparison_builder.build(product, source_url, evidence)

    @staticmethod
    def notice(payload: NoticeRequest) -> Tuple[Notice, QualityResult]:
        try:
            notice = notice_assembler.render(
                payload.noticeType,
                payload.comparisonItems,
                payload.contact,
                payload.tone,
                product=payload.product,
                source_url=payload.sourceUrl,
                platform=payload.platform,
                recipient_name=payload.recipientName,
                infringement_type=payload.infringementType,
                evidence=payload.evidence,
            )
        except ValueError:
            logger.warning("notice.unknown_type type=%s", payload.noticeType)
            _raise(ErrorMessage.UNKNOWN_NOTICE_TYPE)

        ev = payload.evidence
        quality = check_notice_quality(
            quality_input_for(
                notice,
                payload.contact,
                payload.product,
                payload.sourceUrl,
                content_hash=(ev.content_hash or "") if ev else "",
                wayback_url=ev.wayback_url if ev else None,
            )
        )
        return notice, quality

    async def enforce(self, payload: EnforceRequest) -> EnforcementRecord:
        if payload.noticeType not in notice_assembler.NOTICE_TYPES:
            _raise(ErrorMessage.UNKNOWN_NOTICE_TYPE)
        _require_http(payload.candidate.source_url)
        learned = await self.learned_examples(payload.product.id)
        return await self._pipeline.run(
            payload.candidate,
            payload.product,
            owner_id=payload.ownerId,
            subject_id=payload.subjectId,
            contact=payload.contact,
            tone=payload.tone,
            notice_type=payload.noticeType,
            learned_examples=learned,
            min_confidence=payload.minConfidence,
        )
