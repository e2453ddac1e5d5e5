# core/entities.py
from dataclasses import dataclass, field
from typing import Any, List, Optional
from model.evidence import AnalyzedEvidenceMatch, ExtractedEvidence, PageSnapshot
from model.notice import ComparisonItem, Notice, QualityResult
from model.verdict import FilterVerdict


@dataclass
class LLMMetadata:
    model: str
    tokens_used: int
    processing_time_ms: int
    finish_reason: str
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class LLMResponse:
    """
    Parsed model output (`data` is the decoded JSON object in json mode, raw text otherwise).
    """

    data: Any
    metadata: LLMMetadata


@dataclass
class EnforcementRecord:
    """
    Full chain a reviewer sees for one candidate: verdict, snapshot hash,
    surviving evidence, comparison items (with tiers), notice and its quality.
    Only `verdict` is set when the candidate did not pass the classifier gate.
    """

    verdict: FilterVerdict
    promoted: bool
    snapshot: Optional[PageSnapshot] = None
    evidence: Optional[ExtractedEvidence] = None
    analysis: Optional[List[AnalyzedEvidenceMatch]] = None
    comparison_items: List[ComparisonItem] = field(default_factory=list)
    notice: Optional[Notice] = None
    quality: Optional[QualityResult] = None
