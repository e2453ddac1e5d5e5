# core/quality_checker.py
from typing import Dict, List, Optional, Tuple
from core.notice_assembler import GOOD_FAITH_STATEMENT, PERJURY_STATEMENT
from model.notice import DmcaContact, Notice, QualityInput, QualityIssue, QualityResult
from model.product import Product
import logging

logger = logging.getLogger(__name__)

ERROR_PENALTY = 15
WARNING_PENALTY = 4
MIN_COMPARISONS = 3
MIN_DESCRIPTION_CHARS = 20

# code -> (message, fix)
HARD_ERRORS: Dict[str, Tuple[str, str]] = {
    "NO_CONTACT_NAME": (
        "Rights holder name is missing",
        "Add the full legal name of the rights holder to the contact details",
    ),
    "NO_CONTACT_EMAIL": (
        "Contact email is missing",
        "Add an email address to the contact details",
    ),
    "NO_CONTACT_ADDRESS": (
        "Mailing address is missing (required by §512)",
        "Add a mailing address to the contact details",
    ),
    "NO_PRODUCT_NAME": (
        "Copyrighted work title is missing",
        "Ensure the product has a name",
    ),
    "NO_INFRINGING_URL": (
        "No infringing URL specified",
        "An infringing URL must be provided",
    ),
    "NO_GOOD_FAITH": (
        "Good faith belief statement is missing",
        "Regenerate the notice; the statement is included automatically",
    ),
    "NO_PERJURY": (
        "Accuracy statement under penalty of perjury is missing",
        "Regenerate the notice; the statement is included automatically",
    ),
    "NO_SIGNATURE": (
        "Electronic signature is missing",
        "Regenerate the notice; the signature is included automatically",
    ),
}

SOFT_WARNINGS: Dict[str, Tuple[str, str]] = {
    "FEW_COMPARISONS": (
        "Only {n} comparison item(s) (3+ recommended)",
        "Capture the page again or add unique phrases to the product so more evidence is found",
    ),
    "NO_EVIDENCE": (
        "No evidence packet attached",
        "Capture the infringing page so its HTML hash and archive are recorded",
    ),
    "NO_COPYRIGHT_REG": (
        "No copyright registration number",
        "Add a copyright registration number to the product; not required but it strengthens the notice",
    ),
    "NO_UNIQUE_MARKERS": (
        "No unique markers identified (watermarks, distinctive phrases)",
        "Add unique phrases or brand identifiers to the product",
    ),
    "NO_PHONE": (
        "No phone number provided",
        "Add a phone number to the contact details",
    ),
    "NO_PRODUCT_URL": (
        "No original product URL provided",
        "Add the official product URL to the product",
    ),
    "WEAK_DESCRIPTION": (
        "Product description is missing or too short",
        "Add a description of 20+ characters to the product",
    ),
}


def _issue(table: Dict[str, Tuple[str, str]], code: str, **fmt) -> QualityIssue:
    message, fix = table[code]
    return QualityIssue(code=code, message=message.format(**fmt), fix=fix)


def check_notice_quality(data: QualityInput) -> QualityResult:
    """
    Score a notice 0-100. Hard errors (elements required by §512(c)(3)) fail the
    check; soft warnings only lower the score.
    """
    errors: List[QualityIssue] = []
    warnings: List[QualityIssue] = []

    required = [
        ("NO_CONTACT_NAME", data.contact_name),
        ("NO_CONTACT_EMAIL", data.contact_email),
        ("NO_CONTACT_ADDRESS", data.contact_address),
        ("NO_PRODUCT_NAME", data.product_name),
        ("NO_INFRINGING_URL", data.infringing_url),
        ("NO_GOOD_FAITH", data.has_good_faith_statement),
        ("NO_PERJURY", data.has_perjury_statement),
        ("NO_SIGNATURE", data.has_signature),
    ]
    for code, present in required:
        if not present:
            errors.append(_issue(HARD_ERRORS, code))

    n_items = len(data.comparison_items)
    if n_items < MIN_COMPARISONS:
        warnings.append(_issue(SOFT_WARNINGS, "FEW_COMPARISONS", n=n_items))
    if not data.has_evidence_packet:
        warnings.append(_issue(SOFT_WARNINGS, "NO_EVIDENCE"))
    if not data.copyright_reg_number:
        warnings.append(_issue(SOFT_WARNINGS, "NO_COPYRIGHT_REG"))
    if not data.has_unique_markers:
        warnings.append(_issue(SOFT_WARNINGS, "NO_UNIQUE_MARKERS"))
    if not data.contact_phone:
        warnings.append(_issue(SOFT_WARNINGS, "NO_PHONE"))
    if not data.product_url:
        warnings.append(_issue(SOFT_WARNINGS, "NO_PRODUCT_URL"))
    if len(data.product_description or "") < MIN_DESCRIPTION_CHARS:
        warnings.append(_issue(SOFT_WARNINGS, "WEAK_DESCRIPTION"))

    score = 100 - ERROR_PENALTY * len(errors) - WARNING_PENALTY * len(warnings)
    if n_items >= MIN_COMPARISONS:
        score += 5
    if data.has_evidence_packet:
        score += 5
    if data.copyright_reg_number:
        score += 3
    if data.has_wayback_archive:
        score += 2
    if data.has_unique_markers:
        score += 2
    score = max(0, min(100, score))

    passed = not errors
    if passed and score >= 85 and len(warnings) <= 2:
        strength = "strong"
    elif passed and score >= 60:
        strength = "standard"
    else:
        strength = "weak"

    logger.info(
        "quality.check score=%d strength=%s errors=%d warnings=%d",
        score,
        strength,
        len(errors),
        len(warnings),
    )
    return QualityResult(
        passed=passed, score=score, strength=strength, errors=errors, warnings=warnings
    )


def quality_input_for(
    notice: Notice,
    contact: DmcaContact,
    product: Product,
    source_url: str,
    *,
    content_hash: str = "",
    wayback_url: Optional[str] = None,
) -> QualityInput:
    """Derive the checker's input from a rendered notice and what went into it."""
    ai = product.ai_extracted_data
    markers = bool(ai and (ai.unique_phrases or ai.brand_identifiers))
    info = product.copyright_info
    return QualityInput(
        contact_name=contact.full_name,
        contact_email=contact.email,
        contact_address=contact.address or "",
        contact_phone=contact.phone or "",
        product_name=product.name,
        product_description=product.description or "",
        product_url=product.url,
        copyright_reg_number=info.registration_number if info else None,
        infringing_url=source_url if source_url in notice.body else "",
        has_good_faith_statement=GOOD_FAITH_STATEMENT in notice.body,
        has_perjury_statement=notice.notice_type != "dmca" or PERJURY_STATEMENT in notice.body,
        has_signature=f"{contact.full_name}\n" in notice.body,
        comparison_items=notice.comparison_items,
        has_evidence_packet=bool(content_hash),
        has_unique_markers=markers,
        has_wayback_archive=bool(wayback_url),
    )
