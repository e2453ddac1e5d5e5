# core/comparison_builder.py
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Sequence, Tuple
from config.lookup_tables import (
    SIGNIFICANCE_ORDER,
    TRADEMARK_SYMBOLS,
    match_type_label,
    product_type_label,
)
from model.evidence import EvidenceTiers
from model.notice import ComparisonItem
from model.product import Product
import logging

logger = logging.getLogger(__name__)

MAX_ITEMS = 10
MIN_EXCERPT_CHARS = 10
EXCERPT_CHARS = 150
AI_TEXT_CHARS = 200

Pair = Tuple[str, str]


@dataclass(frozen=True)
class ComparisonContext:
    product: Product
    source_url: str
    evidence: EvidenceTiers


@dataclass(frozen=True)
class ComparisonTier:
    """
    A named evidence source. `pairs` yields (original, infringing) lazily so the
    builder can stop pulling once the notice is full.
    """

    name: str
    pairs: Callable[[ComparisonContext], Iterable[Pair]]


def _listing(ctx: ComparisonContext) -> Iterator[Pair]:
    if ctx.product.url:
        yield (
            f"Original product page: {ctx.product.url}",
            f"Unauthorized copy found at: {ctx.source_url}",
        )


def _ai_curated(ctx: ComparisonContext) -> Iterator[Pair]:
    ranked = sorted(
        ctx.evidence.ai_matches,
        key=lambda m: SIGNIFICANCE_ORDER.get(m.legal_significance, 2),
    )
    name = ctx.product.name
    for m in ranked[:7]:
        original = (
            f'Original {match_type_label(m.type)} from "{name}": '
            f'"{m.original_text[:AI_TEXT_CHARS]}"'
        )
        if m.dmca_language:
            yield original, m.dmca_language
        else:
            yield (
                original,
                f"Reproduced without authorization at {ctx.source_url}: "
                f'"{m.infringing_text[:AI_TEXT_CHARS]}"',
            )


def _structured(ctx: ComparisonContext) -> Iterator[Pair]:
    for m in ctx.evidence.evidence_matches[:5]:
        if len(m.matched_text) <= MIN_EXCERPT_CHARS:
            continue
        text = m.matched_text[:EXCERPT_CHARS]
        yield (
            f'Original {match_type_label(m.type)} from "{ctx.product.name}": "{text}"',
            f'Reproduced at {ctx.source_url}: "{text}"',
        )


def _excerpts(ctx: ComparisonContext) -> Iterator[Pair]:
    for excerpt in ctx.evidence.matched_excerpts[:5]:
        text = excerpt.strip()[:EXCERPT_CHARS]
        if len(text) <= MIN_EXCERPT_CHARS:
            continue
        yield (
            f'Original text from "{ctx.product.name}": "{text}"',
            f'Same text found at {ctx.source_url}: "{text}"',
        )


def _page_title(ctx: ComparisonContext) -> Iterator[Pair]:
    title = (ctx.evidence.page_title or "").strip()
    if title and ctx.product.name.lower() in title.lower():
        yield (
            f'Original product name: "{ctx.product.name}"',
            f'Product name used without authorization in page title: "{title}"',
        )


def _product_type(ctx: ComparisonContext) -> Iterator[Pair]:
    # Always yields, so every notice carries at least one comparison.
    label = product_type_label(ctx.product.type)
    if ctx.product.url:
        original = f"{label} legitimately sold at {ctx.product.url}"
    else:
        original = f'{label} "{ctx.product.name}" distributed by the copyright owner'
    yield original, f"{label} made available without authorization at {ctx.source_url}"


def _strip_marks(term: str) -> str:
    for sym in TRADEMARK_SYMBOLS:
        term = term.replace(sym, "")
    return term.strip()


def _ai_extracted(ctx: ComparisonContext) -> Iterator[Pair]:
    ai = ctx.product.ai_extracted_data
    page = ctx.evidence.page_text.lower()
    if ai is None or not page:
        return
    name = ctx.product.name
    for phrase in ai.unique_phrases[:3]:
        if phrase.strip() and phrase.lower() in page:
            yield (
                f'Original copyrighted phrase from "{name}": "{phrase}"',
                f"Identical phrase reproduced without authorization at {ctx.source_url}",
            )
    for brand in ai.brand_identifiers[:2]:
        if brand.strip() and brand.lower() in page:
            yield (
                f'Trademarked brand identifier: "{brand}"',
                f"Brand used without authorization at {ctx.source_url}",
            )
    for term in ai.copyrighted_terms[:2]:
        bare = _strip_marks(term)
        if bare and bare.lower() in page:
            yield (
                f'Copyrighted term: "{term}"',
                f"Protected term reproduced at {ctx.source_url}",
            )


DEFAULT_TIERS: Tuple[ComparisonTier, ...] = (
    ComparisonTier("listing", _listing),
    ComparisonTier("ai_curated", _ai_curated),
    ComparisonTier("structured_matches", _structured),
    ComparisonTier("raw_excerpts", _excerpts),
    ComparisonTier("page_title", _page_title),
    ComparisonTier("product_type", _product_type),
    ComparisonTier("ai_extracted_terms", _ai_extracted),
)


def build(
    product: Product,
    source_url: str,
    evidence: EvidenceTiers,
    tiers: Sequence[ComparisonTier] = DEFAULT_TIERS,
    max_items: int = MAX_ITEMS,
) -> List[ComparisonItem]:
    """
    Walk `tiers` in priority order collecting (original, infringing) pairs until
    `max_items` is reached. Pairs repeated case-insensitively are skipped.
    """
    ctx = ComparisonContext(product=product, source_url=source_url, evidence=evidence)
    items: List[ComparisonItem] = []
    seen: set[str] = set()

    for tier in tiers:
        if len(items) >= max_items:
            break
        for original, infringing in tier.pairs(ctx):
            key = f"{original}|||{infringing}".lower()
            if key in seen:
                continue
            seen.add(key)
            items.append(ComparisonItem(original=original, infringing=infringing, tier=tier.name))
            if len(items) >= max_items:
                break

    logger.info(
        "comparison.build url=%s items=%d tiers=%s",
        source_url,
        len(items),
        ",".join(sorted({i.tier for i in items})),
    )
    return items
