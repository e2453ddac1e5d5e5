# core/evidence_extractor.py
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple
from bs4 import BeautifulSoup
from config.lookup_tables import GENERIC_TERMS, match_type_label
from config.settings import settings
from core.llm_gateway import LLMGateway
from model.evidence import (
    AnalyzedEvidenceMatch,
    EvidenceMatch,
    ExtractedEvidence,
    PageSnapshot,
)
from model.product import Product
from util import functions
from util.errors import GatewayError
import logging
from util.timing import timed

logger = logging.getLogger(__name__)

PROMPT_TEXT_CHARS = 8000
CONTEXT_RADIUS = 50
MIN_ANALYZE_CHARS = 50
MAX_ANALYZED_MATCHES = 8

_DESC_NAME = re.compile(r"^description$", re.I)

_MATCH_TYPES = {
    "brand_mention",
    "keyword_match",
    "unique_phrase",
    "copyrighted_content",
    "pricing_info",
    "download_link",
}
_SEVERITIES = {"critical", "high", "medium", "low"}
_ANALYZED_TYPES = {
    "exact_reproduction",
    "brand_usage",
    "unique_phrase",
    "content_structure",
    "pricing_copy",
    "keyword_cluster",
}
_SIGNIFICANCE = {"critical", "strong", "supporting"}


def _clamp_confidence(v: Any, default: float = 0.5) -> float:
    try:
        conf = float(v)
    except (TypeError, ValueError):
        return default
    return max(0.0, min(1.0, conf))


def page_metadata(raw_html: str) -> Tuple[str, str]:
    """
    (title, description) from the markup; attribute order and case do not matter.
    """
    soup = BeautifulSoup(raw_html or "", "html.parser")
    title = soup.title.get_text() if soup.title else ""
    meta = soup.find("meta", attrs={"name": _DESC_NAME})
    desc = (meta.get("content") or "") if meta else ""
    return functions.normalize_ws(title), functions.normalize_ws(desc)


def ground_quote(page_text: str, quote: Any) -> Optional[Tuple[int, str]]:
    """
    Locate `quote` case-insensitively in `page_text`.
    Returns (position, page_slice) or None. The slice is what gets stored, so
    the stored text is always a substring of the page.
    """
    if not isinstance(quote, str):
        return None
    quote = quote.strip()
    if not quote:
        return None
    pos = functions.locate_ci(page_text, quote)
    if pos == -1:
        return None
    return pos, page_text[pos : pos + len(quote)]


def extract_fallback(page_text: str, product: Product) -> List[EvidenceMatch]:
    """
    Deterministic substring search for the product name and configured keywords.
    Every match is a literal slice of the page text.
    """
    matches: List[EvidenceMatch] = []
    seen: set[str] = set()

    needles: List[Tuple[str, float, str]] = [(product.name, 0.7, "medium")]
    needles += [(kw, 0.5, "low") for kw in product.keywords]

    for needle, confidence, severity in needles:
        needle = (needle or "").strip()
        if not needle or needle.lower() in seen:
            continue
        seen.add(needle.lower())
        found = ground_quote(page_text, needle)
        if found is None:
            continue
        pos, matched = found
        matches.append(
            EvidenceMatch(
                type="keyword_match",
                matched_text=matched,
                context=functions.context_window(page_text, pos, len(matched), CONTEXT_RADIUS),
                position=pos,
                confidence=confidence,
                severity=severity,
            )
        )
    return matches


def _extract_user(snapshot: PageSnapshot, product: Product, page_title: str) -> str:
    copyrighted = []
    if product.ai_extracted_data:
        copyrighted = product.ai_extracted_data.copyrighted_terms
    price = f"${product.price:g}" if product.price is not None else "N/A"
    return (
        "Analyze this page for IP infringement evidence.\n\n"
        "PRODUCT INFORMATION:\n"
        f"- Name: {product.name}\n"
        f"- Brand: {product.brand_name or 'N/A'}\n"
        f"- Keywords: {', '.join(product.keywords) or 'N/A'}\n"
        f"- Copyrighted phrases: {', '.join(copyrighted) or 'N/A'}\n"
        f"- Price: {price}\n\n"
        f"PAGE URL: {snapshot.url}\n"
        f"PAGE TITLE: {page_title}\n\n"
        f"ACTUAL PAGE CONTENT (first {PROMPT_TEXT_CHARS} chars):\n"
        f"{snapshot.page_text[:PROMPT_TEXT_CHARS]}\n\n"
        "Extract evidence that proves IP infringement. Remember: ONLY extract text that "
        "actually exists in the content above."
    )


def _analyze_user(snapshot: PageSnapshot, product: Product, platform: str) -> str:
    lines = [
        "ORIGINAL PRODUCT DATA:",
        f"Product Name: {product.name}",
        f"Product Type: {product.type or 'unknown'}",
    ]
    if product.url:
        lines.append(f"Original URL: {product.url}")
    if product.description:
        lines.append(f"\nProduct Description:\n{product.description[:1000]}")
    ai = product.ai_extracted_data
    if ai:
        if ai.product_description:
            lines.append(f"\nAI-Generated Description:\n{ai.product_description}")
        if ai.brand_identifiers:
            lines.append(f"\nBrand Identifiers: {', '.join(ai.brand_identifiers)}")
        if ai.unique_phrases:
            phrases = "\n".join(f'- "{p}"' for p in ai.unique_phrases)
            lines.append(f"\nUnique Phrases (copyrighted):\n{phrases}")
        if ai.copyrighted_terms:
            lines.append(f"\nCopyrighted Terms: {', '.join(ai.copyrighted_terms)}")
        if ai.keywords:
            lines.append(f"\nProduct Keywords: {', '.join(ai.keywords[:20])}")
    if product.keywords:
        lines.append(f"\nUser-Provided Keywords: {', '.join(product.keywords)}")

    return (
        "\n".join(lines)
        + "\n\nCAPTURED INFRINGING PAGE CONTENT:\n"
        + f"URL: {snapshot.url}\nPlatform: {platform}\n"
        + f"Page Title: {snapshot.page_title or 'N/A'}\n\n"
        + f"--- PAGE TEXT (first {PROMPT_TEXT_CHARS} chars) ---\n"
        + f"{snapshot.page_text[:PROMPT_TEXT_CHARS]}\n--- END PAGE TEXT ---\n\n"
        + "Compare the infringing page against the original product data and find matches."
    )


class EvidenceExtractor:
    """
    Quotes suspicious passages out of a captured page.

    The model is untrusted input: every quote it returns is located in the page
    text and dropped if absent. Without a usable model the extractor falls back
    to plain substring search, which cannot produce text that is not on the page.
    """

    def __init__(self, gateway: Optional[LLMGateway] = None) -> None:
        self._gateway = gateway

    def ground_matches(self, page_text: str, raw_matches: Any) -> Tuple[List[EvidenceMatch], int]:
        """
        Returns (grounded_matches, rejected_count).
        """
        if not isinstance(raw_matches, list):
            raise GatewayError("Model response has no matches list")

        kept: List[EvidenceMatch] = []
        seen: set[Tuple[int, str]] = set()
        rejected = 0
        for m in raw_matches:
            quote = m.get("exact_quote") if isinstance(m, dict) else None
            found = ground_quote(page_text, quote)
            if found is None:
                rejected += 1
                logger.warning("evidence.hallucination quote=%r", str(quote)[:120])
                continue
            pos, matched = found
            key = (pos, matched.lower())
            if key in seen:
                continue
            seen.add(key)
            kind = m.get("type")
            severity = m.get("severity")
            kept.append(
                EvidenceMatch(
                    type=kind if kind in _MATCH_TYPES else "keyword_match",
                    matched_text=matched,
                    # context is rebuilt from the page, never taken from the model
                    context=functions.context_window(page_text, pos, len(matched), CONTEXT_RADIUS),
                    position=pos,
                    confidence=_clamp_confidence(m.get("confidence")),
                    severity=severity if severity in _SEVERITIES else "medium",
                )
            )
        return kept, rejected

    async def extract(self, snapshot: PageSnapshot, product: Product) -> ExtractedEvidence:
        raw_html = snapshot.raw_html.decode("utf-8", errors="replace")
        page_hash = functions.sha256_hex(snapshot.raw_html)
        page_title, page_description = page_metadata(raw_html)
        page_title = page_title or snapshot.page_title
        text = snapshot.page_text

        if self._gateway is not None and text:
            try:
                with timed(logger, "evidence.extract.ai", chars=len(text)):
                    response = await self._gateway.complete(
                        settings.EXTRACT_SYSTEM_PROMPT,
                        _extract_user(snapshot, product, page_title),
                        model=settings.LLM_MODEL_MINI,
                        temperature=0.1,
                        max_tokens=2000,
                        response_format="json",
                    )
                    data = response.data if isinstance(response.data, dict) else {}
                    matches, rejected = self.ground_matches(text, data.get("matches"))
                findings = [
                    f'{match_type_label(m.type)}: "{m.matched_text}"'
                    for m in matches
                    if m.severity == "critical"
                ]
                logger.info(
                    "evidence.extract.ok url=%s kept=%d rejected=%d",
                    snapshot.url,
                    len(matches),
                    rejected,
                )
                return ExtractedEvidence(
                    matches=matches,
                    page_hash=page_hash,
                    page_title=page_title,
                    page_description=page_description,
                    extracted_at=datetime.now(timezone.utc),
                    total_matches=len(matches),
                    critical_findings=findings,
                    method="ai",
                    rejected_quotes=rejected,
                )
            except GatewayError as e:
                logger.error("evidence.extract.ai_failed url=%s err=%s", snapshot.url, e)
            except Exception:
                logger.error("evidence.extract.unexpected_error url=%s", snapshot.url, exc_info=True)

        matches = extract_fallback(text, product)
        logger.info("evidence.extract.fallback url=%s matches=%d", snapshot.url, len(matches))
        return ExtractedEvidence(
            matches=matches,
            page_hash=page_hash,
            page_title=page_title,
            page_description=page_description,
            extracted_at=datetime.now(timezone.utc),
            total_matches=len(matches),
            critical_findings=["Product name or keywords found on page"] if matches else [],
            method="fallback",
        )

    async def analyze(
        self, snapshot: PageSnapshot, product: Product, platform: str = "unknown"
    ) -> Optional[List[AnalyzedEvidenceMatch]]:
        """
        Legal-significance analysis of the captured page against the product.
        Returns None when skipped or when the model is unavailable; the
        infringing side of every returned match is grounded in the page text.
        """
        text = snapshot.page_text
        if self._gateway is None or len(text) < MIN_ANALYZE_CHARS:
            logger.info("evidence.analyze.skipped url=%s chars=%d", snapshot.url, len(text))
            return None

        system_prompt = settings.ANALYZE_SYSTEM_PROMPT.replace(
            "{generic_terms}", ", ".join(f'"{t}"' for t in sorted(GENERIC_TERMS)[:8])
        )
        try:
            response = await self._gateway.complete(
                system_prompt,
                _analyze_user(snapshot, product, platform),
                model=settings.LLM_MODEL_STANDARD,
                temperature=0.2,
                max_tokens=2000,
                response_format="json",
            )
        except GatewayError as e:
            logger.error("evidence.analyze.failed url=%s err=%s", snapshot.url, e)
            return None
        except Exception:
            logger.error("evidence.analyze.unexpected_error url=%s", snapshot.url, exc_info=True)
            return None

        data = response.data if isinstance(response.data, dict) else {}
        raw = data.get("matches") if isinstance(data.get("matches"), list) else []

        out: List[AnalyzedEvidenceMatch] = []
        for m in raw:
            if not isinstance(m, dict):
                continue
            original = str(m.get("original_text") or "").strip()
            infringing = str(m.get("infringing_text") or "").strip()
            confidence = _clamp_confidence(m.get("confidence"), default=0.0)
            if len(original) <= 5 or len(infringing) <= 5 or confidence < 0.5:
                continue
            if infringing.lower() in GENERIC_TERMS:
                continue
            found = ground_quote(text, infringing)
            if found is None:
                logger.warning("evidence.analyze.hallucination quote=%r", infringing[:120])
                continue
            pos, matched = found
            kind = m.get("type")
            sig = m.get("legal_significance")
            out.append(
                AnalyzedEvidenceMatch(
                    type=kind if kind in _ANALYZED_TYPES else "exact_reproduction",
                    original_text=original,
                    infringing_text=matched,
                    context=functions.context_window(text, pos, len(matched), CONTEXT_RADIUS),
                    legal_significance=sig if sig in _SIGNIFICANCE else "supporting",
                    explanation=str(m.get("explanation") or "").strip(),
                    dmca_language=str(m.get("dmca_language") or "").strip(),
                    confidence=confidence,
                )
            )
            if len(out) >= MAX_ANALYZED_MATCHES:
                break
        logger.info("evidence.analyze.ok url=%s matches=%d", snapshot.url, len(out))
        return out

    @staticmethod
    def verify(snapshot: PageSnapshot, recorded_hash: str) -> bool:
        """
        Recompute the SHA-256 of the stored page bytes and compare to `recorded_hash`.
        False means the content changed since capture (or the record was tampered with).
        """
        return verify_html(snapshot.raw_html, recorded_hash)


def verify_html(raw_html: bytes | str, recorded_hash: str) -> bool:
    if not recorded_hash:
        return False
    return functions.sha256_hex(raw_html) == recorded_hash.strip().lower()
