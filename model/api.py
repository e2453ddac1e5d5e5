# model/api.py
from pydantic import BaseModel, Field
from model.evidence import AnalyzedEvidenceMatch, EvidenceTiers, ExtractedEvidence, PageSnapshot
from model.notice import ComparisonItem, DmcaContact, Notice, NoticeEvidence, QualityResult
from model.product import CandidateResult, LearnedExamples, Product
from model.verdict import FilterVerdict


class ClassifyRequest(BaseModel):
    product: Product
    candidate: CandidateResult
    learnedExamples: LearnedExamples | None = None
    minConfidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ClassifyResponse(BaseModel):
    verdict: FilterVerdict
    promoted: bool


class ClassifyBatchRequest(BaseModel):
    product: Product
    candidates: list[CandidateResult]
    minConfidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ClassifyBatchResponse(BaseModel):
    promoted: list[CandidateResult]
    filtered: int


class CaptureRequest(BaseModel):
    url: str = Field(min_length=1)
    ownerId: str = Field(min_length=1)
    subjectId: str = Field(min_length=1)


class ExtractRequest(BaseModel):
    """Either `storagePath` of a stored capture or the raw `html` itself."""

    product: Product
    url: str = Field(min_length=1)
    storagePath: str | None = None
    html: str | None = None
    analyze: bool = False
    platform: str = "unknown"


class ExtractResponse(BaseModel):
    evidence: ExtractedEvidence
    analysis: list[AnalyzedEvidenceMatch] | None = None


class VerifyHashRequest(BaseModel):
    storagePath: str = Field(min_length=1)
    recordedHash: str = Field(min_length=1)


class VerifyHashResponse(BaseModel):
    valid: bool
    currentHash: str


class ComparisonsRequest(BaseModel):
    product: Product
    sourceUrl: str = Field(min_length=1)
    evidence: EvidenceTiers = Field(default_factory=EvidenceTiers)


class ComparisonsResponse(BaseModel):
    items: list[ComparisonItem]


class NoticeRequest(BaseModel):
    noticeType: str = "dmca"
    tone: str | None = None
    product: Product
    sourceUrl: str = Field(min_length=1)
    platform: str = ""
    recipientName: str | None = None
    infringementType: str | None = None
    contact: DmcaContact
    comparisonItems: list[ComparisonItem] = Field(default_factory=list)
    evidence: NoticeEvidence | None = None


class NoticeResponse(BaseModel):
    notice: Notice
    quality: QualityResult


class EnforceRequest(BaseModel):
    product: Product
    candidate: CandidateResult
    contact: DmcaContact
    ownerId: str = Field(min_length=1)
    subjectId: str = Field(min_length=1)
    noticeType: str = "dmca"
    tone: str | None = None
    minConfidence: float | None = Field(default=None, ge=0.0, le=1.0)


class EnforceResponse(BaseModel):
    verdict: FilterVerdict
    promoted: bool
    snapshot: PageSnapshot | None = None
    evidence: ExtractedEvidence | None = None
    analysis: list[AnalyzedEvidenceMatch] | None = None
    comparisonItems: list[ComparisonItem] = Field(default_factory=list)
    notice: Notice | None = None
    quality: QualityResult | None = None


class RecordExampleRequest(BaseModel):
    productId: str = Field(min_length=1)
    platform: str = Field(min_length=1)
    url: str = Field(min_length=1)
    confirmed: bool
    note: str = ""


class RecordExampleResponse(BaseModel):
    ok: bool
