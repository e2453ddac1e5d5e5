# core/notice_assembler.py
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence
from config.lookup_tables import (
    INFRINGEMENT_TYPE_DESCRIPTIONS,
    TONE_CLOSINGS,
    TONE_OPENINGS,
    product_type_label,
)
from model.notice import ComparisonItem, DmcaContact, Notice, NoticeEvidence
from model.product import Product

DIVIDER = "\n\n" + "─" * 42 + "\n\n"

GOOD_FAITH_STATEMENT = (
    "I have a good faith belief that the use of the copyrighted material described above is "
    "not authorized by the copyright owner, its agent, or the law."
)
PERJURY_STATEMENT = (
    "I swear, under penalty of perjury, that the information in this notification is accurate "
    "and that I am the copyright owner, or am authorized to act on behalf of the owner, of an "
    "exclusive right that is allegedly infringed."
)
NOTICE_TYPES = ("dmca", "cease_desist")


def format_date(d: date) -> str:
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def normalize_tone(tone: Optional[str]) -> str:
    return tone if tone in TONE_OPENINGS else "default"


def _contact_block(contact: DmcaContact) -> str:
    if contact.is_copyright_owner:
        standing = "I am the copyright owner of the work described below."
    else:
        rel = f" as {contact.relationship_to_owner}" if contact.relationship_to_owner else ""
        standing = f"I am authorized to act on behalf of the copyright owner{rel}."
    lines = [f"  Name: {contact.full_name}"]
    if contact.company:
        lines.append(f"  Company: {contact.company}")
    lines.append(f"  Email: {contact.email}")
    if contact.phone:
        lines.append(f"  Phone: {contact.phone}")
    if contact.address:
        lines.append(f"  Address: {contact.address}")
    return f"COPYRIGHT OWNER INFORMATION\n\n{standing}\n\nContact Information:\n" + "\n".join(lines)


def _work_block(product: Product) -> str:
    lines = [f"  Title: {product.name}"]
    if product.type:
        lines.append(f"  Type: {product_type_label(product.type)}")
    if product.price:
        lines.append(f"  Retail Price: ${product.price:g}")
    if product.url:
        lines.append(f"  Original URL: {product.url}")
    if product.description:
        lines.append(f"  Description: {product.description[:300]}")
    info = product.copyright_info
    if info and info.registration_number:
        year = f" ({info.year})" if info.year else ""
        lines.append(f"  Copyright Registration: {info.registration_number}{year}")
    if info and info.holder_name:
        lines.append(f"  Copyright Holder: {info.holder_name}")
    return (
        "IDENTIFICATION OF COPYRIGHTED WORK\n\n"
        + "\n".join(lines)
        + "\n\nNo authorization has been granted to the infringing party to reproduce, "
        "distribute, display, sell, or create derivative works from this content."
    )


def _comparison_lines(items: Sequence[ComparisonItem]) -> str:
    out: List[str] = []
    for i, item in enumerate(items, start=1):
        out.append(f"  {i}. Original: {item.original}\n     Infringing: {item.infringing}")
    return "\n\n".join(out)


def _infringement_block(
    source_url: str,
    platform: str,
    infringement_type: Optional[str],
    items: Sequence[ComparisonItem],
) -> str:
    block = "IDENTIFICATION OF INFRINGING MATERIAL\n\n"
    if infringement_type:
        desc = INFRINGEMENT_TYPE_DESCRIPTIONS.get(
            infringement_type, INFRINGEMENT_TYPE_DESCRIPTIONS["unknown"]
        )
        block += f"The infringing material constitutes: {desc}.\n\n"
    block += f"  Infringing URL: {source_url}"
    if platform:
        block += f"\n  Platform: {platform}"
    if items:
        block += "\n\nComparison of Original and Infringing Material:\n\n"
        block += _comparison_lines(items)
    return block


def _evidence_block(evidence: NoticeEvidence) -> Optional[str]:
    lines: List[str] = []
    if evidence.captured_at:
        lines.append(f"  Evidence Captured: {evidence.captured_at.isoformat(timespec='seconds')}")
    if evidence.content_hash:
        lines.append(f"  Content Fingerprint (SHA-256): {evidence.content_hash}")
    if evidence.wayback_url:
        lines.append(f"  Wayback Machine Archive: {evidence.wayback_url}")
    if evidence.page_text_length:
        lines.append(
            f"  Captured Page Content: {round(evidence.page_text_length / 1000)}KB of text preserved"
        )
    if evidence.page_links_count:
        lines.append(f"  Page Links Captured: {evidence.page_links_count} outbound links recorded")
    if evidence.html_storage_path:
        lines.append("  Full HTML Archive: Preserved in secure storage")
    if not lines:
        return None
    return (
        "SUPPLEMENTAL EVIDENCE\n\n"
        + "\n".join(lines)
        + "\n\nThe above evidence is supplemental and is provided to assist in identifying the "
        "infringing material."
    )


def _render_dmca(
    items: Sequence[ComparisonItem],
    contact: DmcaContact,
    tone: str,
    product: Product,
    source_url: str,
    platform: str,
    recipient: str,
    infringement_type: Optional[str],
    evidence: Optional[NoticeEvidence],
    today: str,
) -> str:
    sections = [
        "DMCA TAKEDOWN NOTICE PURSUANT TO 17 U.S.C. § 512(c)\n\n"
        f"Date: {today}\n"
        f"To: {recipient}\n\n"
        f"Dear {recipient},\n\n"
        f"{TONE_OPENINGS[tone]} the Digital Millennium Copyright Act (DMCA), 17 U.S.C. § 512(c)(3).",
        _contact_block(contact),
        _work_block(product),
        _infringement_block(source_url, platform, infringement_type, items),
    ]
    if evidence is not None:
        block = _evidence_block(evidence)
        if block:
            sections.append(block)
    sections += [
        "STATEMENTS PURSUANT TO 17 U.S.C. §512(c)(3)\n\n"
        f"{GOOD_FAITH_STATEMENT}\n\n{PERJURY_STATEMENT}",
        "REQUESTED ACTION\n\n"
        "Pursuant to 17 U.S.C. §512(c), I respectfully request that you:\n\n"
        "  1. Expeditiously remove or disable access to the infringing material identified above.\n"
        "  2. Notify the individual responsible for the infringing material of this takedown request.\n"
        f"  3. Inform me in writing at {contact.email} of the actions taken in response to this notice.\n"
        "  4. Take reasonable steps to identify and remove any additional copies of this material "
        "hosted on your service.",
        "RESERVATION OF RIGHTS\n\n"
        "Nothing in this notice constitutes a waiver of any rights or remedies available to the "
        f"copyright owner, all of which are expressly reserved.\n\n{TONE_CLOSINGS[tone]}",
        _signature_block(contact, today),
    ]
    return DIVIDER.join(sections)


def _signature_block(contact: DmcaContact, today: str) -> str:
    company = f"\n{contact.company}" if contact.company else ""
    return (
        "ELECTRONIC SIGNATURE\n\n"
        f"/ {contact.full_name} /\n\n"
        f"{contact.full_name}{company}\n"
        f"Date: {today}\n\n"
        "This notice is submitted in compliance with the Digital Millennium Copyright Act "
        "(17 U.S.C. §512)."
    )


def _render_cease_desist(
    items: Sequence[ComparisonItem],
    contact: DmcaContact,
    tone: str,
    product: Product,
    source_url: str,
    platform: str,
    recipient: str,
    today: str,
) -> str:
    where = f" ({product.url})" if product.url else ""
    body = (
        "CEASE AND DESIST LETTER\n\n"
        f"Date: {today}\n"
        f"To: {recipient}\n"
        + (f"Platform: {platform}\n" if platform else "")
        + "\nRE: Unauthorized Use and Distribution of Copyrighted Material\n\n"
        f"Dear {recipient},\n\n"
        f'{TONE_OPENINGS[tone]} U.S. Copyright Law (17 U.S.C. § 101 et seq.). I am the owner of '
        f'the copyright in the work titled "{product.name}" (the "Work"){where}.\n\n'
        "You are using, reproducing, and/or distributing the Work without permission at the "
        f"following location:\n{source_url}"
    )
    if items:
        body += "\n\nComparison of Original and Infringing Material:\n\n" + _comparison_lines(items)
    body += (
        "\n\nDEMAND FOR IMMEDIATE ACTION:\n"
        "I hereby demand that you:\n"
        "1. Immediately cease and desist all use, reproduction, and distribution of the Work\n"
        "2. Remove all infringing content from the URL specified above\n"
        "3. Confirm in writing within 7 days that you have complied with this demand\n\n"
        f"{GOOD_FAITH_STATEMENT}\n\n"
        f"{TONE_CLOSINGS[tone]}\n\n"
        "This letter is not a complete statement of my rights and remedies, all of which are "
        "expressly reserved.\n\n"
        "Sincerely,\n\n"
        f"{contact.full_name}\n{contact.email}"
        + (f"\n{contact.address}" if contact.address else "")
        + f"\n{today}"
    )
    return body


def render(
    notice_type: str,
    comparison_items: Sequence[ComparisonItem],
    contact: DmcaContact,
    tone: Optional[str],
    *,
    product: Product,
    source_url: str,
    platform: str = "",
    recipient_name: Optional[str] = None,
    infringement_type: Optional[str] = None,
    evidence: Optional[NoticeEvidence] = None,
    today: Optional[date] = None,
) -> Notice:
    """
    Render a takedown document. Pure: same inputs and date, same text.
    Raises ValueError for an unknown notice type; unknown tones render as "default".
    """
    if notice_type not in NOTICE_TYPES:
        raise ValueError(f"Unknown notice type: {notice_type}")
    tone = normalize_tone(tone)
    day = format_date(today or datetime.now(timezone.utc).date())
    items = list(comparison_items)

    if notice_type == "dmca":
        recipient = recipient_name or f"{platform or 'Service Provider'} DMCA Agent"
        subject = f'DMCA Takedown Notice — Unauthorized use of "{product.name}"'
        body = _render_dmca(
            items, contact, tone, product, source_url, platform, recipient,
            infringement_type, evidence, day,
        )
        references = [
            "17 U.S.C. §512(c)(3) — DMCA Safe Harbor Notification Requirements",
            "17 U.S.C. §106 — Exclusive Rights in Copyrighted Works",
        ]
        sworn = PERJURY_STATEMENT
    else:
        recipient = recipient_name or "Website Operator"
        subject = f'Cease and Desist — Unauthorized use of "{product.name}"'
        body = _render_cease_desist(
            items, contact, tone, product, source_url, platform, recipient, day
        )
        references = ["17 U.S.C. § 101 et seq. — U.S. Copyright Law"]
        sworn = ""

    return Notice(
        notice_type=notice_type,
        tone=tone,
        subject=subject,
        body=body,
        recipient_name=recipient,
        comparison_items=items,
        legal_references=references,
        sworn_statement=sworn,
        generated_at=datetime.now(timezone.utc),
    )
