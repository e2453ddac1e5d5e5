# config/lookup_tables.py
from typing import Dict, Final, FrozenSet, Tuple

# Flow: everything that varies by product type, match type or tone lives here so
# new entries never need a code change in the builders.

PRODUCT_TYPE_LABELS: Final[Dict[str, str]] = {
    "video_course": "Video course",
    "ebook": "E-book",
    "pdf": "PDF document",
    "software": "Software application",
    "images": "Image collection",
    "audio": "Audio content",
    "slides": "Presentation slides",
    "trading_indicator": "Trading indicator",
    "template": "Digital template",
    "digital_asset": "Digital asset",
    "course": "Online course",
}
DEFAULT_PRODUCT_TYPE_LABEL: Final[str] = "Digital product"

MATCH_TYPE_LABELS: Final[Dict[str, str]] = {
    "exact_reproduction": "copyrighted content",
    "brand_usage": "brand identifier",
    "unique_phrase": "unique phrase",
    "content_structure": "content structure",
    "pricing_copy": "pricing information",
    "keyword_cluster": "keyword pattern",
    "keyword_match": "keyword",
    "text_match": "text",
    "brand_mention": "brand mention",
    "copyrighted_content": "copyrighted content",
    "pricing_info": "pricing information",
    "download_link": "download link",
}
DEFAULT_MATCH_TYPE_LABEL: Final[str] = "content"

SIGNIFICANCE_ORDER: Final[Dict[str, int]] = {
    "critical": 0,
    "strong": 1,
    "supporting": 2,
}

# Terms the analyzer must never treat as evidence on their own.
GENERIC_TERMS: Final[FrozenSet[str]] = frozenset(
    {
        "trading", "indicator", "course", "review", "chart", "strategy",
        "software", "tool", "system", "template", "download", "premium",
        "free", "analysis", "market", "stock", "forex", "crypto", "signal",
        "alert", "profit", "video", "tutorial", "guide", "ebook", "beginner",
        "advanced", "platform", "broker",
    }
)

TRADEMARK_SYMBOLS: Final[Tuple[str, ...]] = ("®", "™", "©")

TONE_OPENINGS: Final[Dict[str, str]] = {
    "formal_legal": "This is a formal legal notice of copyright infringement pursuant to",
    "urgent": (
        "This is an urgent notice requiring immediate attention regarding copyright "
        "infringement pursuant to"
    ),
    "friendly_firm": (
        "I am writing to bring to your attention a copyright infringement matter pursuant to"
    ),
    "default": "I am writing to notify you of copyright infringement pursuant to",
}

TONE_CLOSINGS: Final[Dict[str, str]] = {
    "formal_legal": (
        "LEGAL NOTICE:\n"
        "Please be advised that under 17 U.S.C. § 512(f), any person who knowingly materially "
        "misrepresents that material or activity is infringing may be subject to liability. "
        "Additionally, failure to expeditiously remove or disable access to infringing material "
        "may result in loss of safe harbor protections under the DMCA and potential liability "
        "for contributory copyright infringement.\n\n"
        "Statutory damages for copyright infringement can reach up to $150,000 per work "
        "infringed (17 U.S.C. § 504(c)). I reserve all rights to pursue legal action if this "
        "matter is not resolved promptly."
    ),
    "urgent": (
        "URGENT ACTION REQUIRED:\n"
        "This infringement is causing immediate and ongoing damage to my business and "
        "reputation. Under the DMCA, service providers must act expeditiously to remove "
        "infringing content upon notification. Failure to do so may result in loss of safe "
        "harbor protection and potential legal liability.\n\n"
        "I request confirmation of content removal within 24-48 hours."
    ),
    "friendly_firm": (
        "I understand that your platform receives many such notices and appreciate your "
        "cooperation in this matter. Under the DMCA, service providers are required to remove "
        "or disable access to infringing material upon proper notification. I trust that you "
        "will handle this matter expeditiously and in accordance with applicable law."
    ),
    "default": (
        "Please note that under the DMCA, service providers must expeditiously remove or "
        "disable access to infringing material upon notification to maintain safe harbor "
        "protections."
    ),
}

INFRINGEMENT_TYPE_DESCRIPTIONS: Final[Dict[str, str]] = {
    "piracy": "Distribution of the copyrighted work without permission",
    "unauthorized_sale": "Commercial sale of unauthorized copies",
    "counterfeit": "Counterfeit copy or clone of the copyrighted work",
    "unknown": "Unauthorized reproduction of the copyrighted work",
}


def product_type_label(product_type: str | None) -> str:
    return PRODUCT_TYPE_LABELS.get(product_type or "", DEFAULT_PRODUCT_TYPE_LABEL)


def match_type_label(match_type: str | None) -> str:
    return MATCH_TYPE_LABELS.get(match_type or "", DEFAULT_MATCH_TYPE_LABEL)
