# util/types.py
from typing import Literal


# Flow: Narrow string types shared by models, tables and templates.
Severity = Literal["critical", "high", "medium", "low"]
LegalSignificance = Literal["critical", "strong", "supporting"]
EvidenceMatchType = Literal[
    "brand_mention",
    "keyword_match",
    "unique_phrase",
    "copyrighted_content",
    "pricing_info",
    "download_link",
]
AnalyzedMatchType = Literal[
    "exact_reproduction",
    "brand_usage",
    "unique_phrase",
    "content_structure",
    "pricing_copy",
    "keyword_cluster",
]
InfringementType = Literal["piracy", "unauthorized_sale", "counterfeit", "unknown"]
Tone = Literal["formal_legal", "urgent", "friendly_firm", "default"]
NoticeType = Literal["dmca", "cease_desist"]
ExtractionMethod = Literal["ai", "fallback"]
NoticeStrength = Literal["strong", "standard", "weak"]
