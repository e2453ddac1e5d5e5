# controller/controller_dependencies.py
from config.settings import settings
from core.evidence_extractor import EvidenceExtractor
from core.infringement_classifier import InfringementClassifier
from core.llm_gateway import LLMGateway
from core.page_capture import PageCapturer
from repository.learned_example_repository import LearnedExampleRepository
from repository.snapshot_repository import SnapshotRepository
from service.enforcement_service import EnforcementService


def get_enforcement_service() -> EnforcementService:
    _gateway = LLMGateway()
    _snapshots = SnapshotRepository()
    _examples = LearnedExampleRepository()
    _classifier = InfringementClassifier(_gateway)
    _capturer = PageCapturer(_snapshots)
    # Without a key the extractor goes straight to substring matching.
    _extractor = EvidenceExtractor(_gateway if settings.ANTHROPIC_API_KEY else None)
    _service = EnforcementService(_classifier, _capturer, _extractor, _snapshots, _examples)
    return _service
