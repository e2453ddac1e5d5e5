# model/notice.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from util.types import NoticeStrength, NoticeType, Tone


class ComparisonItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    original: str
    infringing: str
    tier: str = ""  # evidence tier that produced the pair (audit trail)


class DmcaContact(BaseModel):
    full_name: str
    email: str
    company: str | None = None
    phone: str | None = None
    address: str | None = None
    is_copyright_owner: bool = True
    relationship_to_owner: str | None = None


class NoticeEvidence(BaseModel):
    content_hash: str | None = None
    wayback_url: str | None = None
    captured_at: datetime | None = None
    html_storage_path: str | None = None
    page_links_count: int = 0
    page_text_length: int = 0


class Notice(BaseModel):
    notice_type: NoticeType
    tone: Tone
    subject: str
    body: str
    recipient_name: str
    comparison_items: list[ComparisonItem] = Field(default_factory=list)
    legal_references: list[str] = Field(default_factory=list)
    sworn_statement: str = ""
    generated_at: datetime


class QualityIssue(BaseModel):
    code: str
    message: str
    fix: str


class QualityResult(BaseModel):
    passed: bool
    score: int
    strength: NoticeStrength
    errors: list[QualityIssue] = Field(default_factory=list)
    warnings: list[QualityIssue] = Field(default_factory=list)


class QualityInput(BaseModel):
    contact_name: str = ""
    contact_email: str = ""
    contact_address: str = ""
    contact_phone: str = ""
    product_name: str = ""
    product_description: str = ""
    product_url: str | None = None
    copyright_reg_number: str | None = None
    infringing_url: str = ""
    has_good_faith_statement: bool = False
    has_perjury_statement: bool = False
    has_signature: bool = False
    comparison_items: list[ComparisonItem] = Field(default_factory=list)
    has_evidence_packet: bool = False
    has_unique_markers: bool = False
    has_wayback_archive: bool = False
