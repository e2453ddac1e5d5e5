from datetime import date, datetime, timezone

import pytest

from config.lookup_tables import TONE_CLOSINGS, TONE_OPENINGS
from core.notice_assembler import render
from model.notice import ComparisonItem, NoticeEvidence

SOURCE = "https://leaks.example.com/10x-bars"
DAY = date(2026, 1, 15)
ITEMS = [
    ComparisonItem(
        original='Original text from "10x Bars Indicator": "10x Bars Indicator"',
        infringing=f'Same text found at {SOURCE}: "10x Bars Indicator"',
        tier="raw_excerpts",
    )
]


def _render(product, contact, **kw):
    args = dict(product=product, source_url=SOURCE, platform="telegram", today=DAY)
    args.update(kw)
    return render(args.pop("notice_type", "dmca"), ITEMS, contact, args.pop("tone", None), **args)


def test_dmca_contains_product_url_and_statements(product, contact):
    notice = _render(product, contact)
    body = notice.body
    assert "10x Bars Indicator" in body
    assert SOURCE in body
    assert "January 15, 2026" in body
    assert "1. Original: " in body
    assert "good faith belief" in body
    assert "penalty of perjury" in body
    assert "/ Jordan Reyes /" in body
    assert notice.recipient_name == "telegram DMCA Agent"
    assert notice.comparison_items == ITEMS


def test_same_inputs_same_text(product, contact):
    assert _render(product, contact).body == _render(product, contact).body


@pytest.mark.parametrize("tone", ["formal_legal", "urgent", "friendly_firm", "default"])
def test_tone_selects_opening_and_closing(product, contact, tone):
    notice = _render(product, contact, tone=tone)
    assert notice.tone == tone
    assert TONE_OPENINGS[tone] in notice.body
    assert TONE_CLOSINGS[tone] in notice.body


def test_unknown_tone_renders_as_default(product, contact):
    weird = _render(product, contact, tone="sarcastic")
    assert weird.tone == "default"
    assert weird.body == _render(product, contact, tone="default").body


def test_evidence_block_is_optional(product, contact):
    assert "SUPPLEMENTAL EVIDENCE" not in _render(product, contact).body
    evidence = NoticeEvidence(
        content_hash="ab" * 32,
        wayback_url="https://web.archive.org/web/20260115000000/" + SOURCE,
        captured_at=datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc),
    )
    body = _render(product, contact, evidence=evidence).body
    assert "SUPPLEMENTAL EVIDENCE" in body
    assert "ab" * 32 in body
    assert "2026-01-15T09:30:00+00:00" in body


def test_cease_desist_template(product, contact):
    notice = _render(product, contact, notice_type="cease_desist", tone="urgent")
    assert notice.notice_type == "cease_desist"
    assert notice.body.startswith("CEASE AND DESIST LETTER")
    assert SOURCE in notice.body
    assert TONE_OPENINGS["urgent"] in notice.body


def test_unknown_notice_type_raises(product, contact):
    with pytest.raises(ValueError):
        _render(product, contact, notice_type="fax")
