# model/product.py
from pydantic import BaseModel, Field, field_validator


class AiExtractedData(BaseModel):
    brand_identifiers: list[str] = Field(default_factory=list)
    unique_phrases: list[str] = Field(default_factory=list)
    copyrighted_terms: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    product_description: str | None = None


class CopyrightInfo(BaseModel):
    registration_number: str | None = None
    year: str | int | None = None
    holder_name: str | None = None


class Product(BaseModel):
    id: str = ""
    name: str = Field(min_length=1)
    type: str | None = None
    price: float | None = None
    url: str | None = None
    description: str | None = None
    brand_name: str | None = None
    keywords: list[str] = Field(default_factory=list)
    ai_extracted_data: AiExtractedData | None = None
    copyright_info: CopyrightInfo | None = None


class CandidateResult(BaseModel):
    """
    One URL surfaced by upstream discovery. Consumed by the classifier and either
    promoted to an infringement or dropped.
    """

    platform: str
    source_url: str
    risk_level: str = "medium"
    audience_size: str | None = None
    title: str | None = None
    snippet: str | None = None

    @field_validator("platform", "source_url")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must be non-empty")
        return v


class LearnedExamples(BaseModel):
    verified_examples: list[str] = Field(default_factory=list)
    false_positive_examples: list[str] = Field(default_factory=list)
