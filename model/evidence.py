# model/evidence.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from util.types import (
    AnalyzedMatchType,
    EvidenceMatchType,
    ExtractionMethod,
    LegalSignificance,
    Severity,
)


class PageLink(BaseModel):
    href: str
    text: str = ""


class PageSnapshot(BaseModel):
    """
    Evidence of one URL at one point in time. Frozen: re-capturing builds a new
    snapshot, never edits this one.

    `raw_html` holds the fetched bytes exactly as received and
    `page_html_hash` is their SHA-256; both stay empty when the fetch failed.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    page_title: str = ""
    page_text: str = ""
    page_links: list[PageLink] = Field(default_factory=list)
    page_html_hash: str = ""
    html_storage_path: str | None = None
    wayback_url: str | None = None
    captured_at: datetime
    raw_html: bytes = Field(default=b"", exclude=True, repr=False)


class EvidenceMatch(BaseModel):
    type: EvidenceMatchType
    matched_text: str
    context: str = ""
    position: int = Field(ge=0)
    confidence: float = Field(ge=0.0, le=1.0)
    severity: Severity


class ExtractedEvidence(BaseModel):
    matches: list[EvidenceMatch] = Field(default_factory=list)
    page_hash: str
    page_title: str = ""
    page_description: str = ""
    extracted_at: datetime
    total_matches: int = 0
    critical_findings: list[str] = Field(default_factory=list)
    method: ExtractionMethod
    rejected_quotes: int = 0


class AnalyzedEvidenceMatch(BaseModel):
    type: AnalyzedMatchType
    original_text: str
    infringing_text: str
    context: str = ""
    legal_significance: LegalSignificance
    explanation: str = ""
    dmca_language: str = ""
    confidence: float = Field(ge=0.0, le=1.0)


class EvidenceTiers(BaseModel):
    """
    Everything the comparison builder may draw on, highest quality first.
    Missing sources are simply empty.
    """

    ai_matches: list[AnalyzedEvidenceMatch] = Field(default_factory=list)
    evidence_matches: list[EvidenceMatch] = Field(default_factory=list)
    matched_excerpts: list[str] = Field(default_factory=list)
    page_title: str | None = None
    page_text: str = ""
