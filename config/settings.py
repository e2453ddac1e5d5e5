# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")
    ALLOWED_ORIGIN: str = Field(
        default="http://localhost:3000", validation_alias="ALLOWED_ORIGIN"
    )

    # Anthropic Settings
    ANTHROPIC_API_URL: str = Field(
        default="https://api.anthropic.com/v1/messages",
        validation_alias="ANTHROPIC_API_URL",
    )
    ANTHROPIC_API_KEY: str = Field(default="", validation_alias="ANTHROPIC_API_KEY")
    ANTHROPIC_VERSION: str = Field(
        default="2023-06-01", validation_alias="ANTHROPIC_VERSION"
    )
    LLM_MODEL_MINI: str = Field(
        default="claude-3-5-haiku-latest", validation_alias="LLM_MODEL_MINI"
    )
    LLM_MODEL_STANDARD: str = Field(
        default="claude-3-5-sonnet-latest", validation_alias="LLM_MODEL_STANDARD"
    )
    LLM_TIMEOUT_SECONDS: float = Field(
        default=45.0, validation_alias="LLM_TIMEOUT_SECONDS"
    )

    # Classifier
    CLASSIFIER_MIN_CONFIDENCE: float = Field(
        default=0.75, validation_alias="CLASSIFIER_MIN_CONFIDENCE"
    )
    CLASSIFIER_BATCH_SIZE: int = Field(
        default=5, validation_alias="CLASSIFIER_BATCH_SIZE"
    )
    CLASSIFIER_BATCH_DELAY_MS: int = Field(
        default=100, validation_alias="CLASSIFIER_BATCH_DELAY_MS"
    )
    # Uncertain or broken verdicts go to a human instead of being dropped.
    CLASSIFIER_FAIL_OPEN: bool = Field(
        default=True, validation_alias="CLASSIFIER_FAIL_OPEN"
    )
    CLASSIFIER_FAIL_OPEN_CONFIDENCE: float = Field(
        default=0.5, validation_alias="CLASSIFIER_FAIL_OPEN_CONFIDENCE"
    )

    # Page capture
    CAPTURE_TIMEOUT_SECONDS: float = Field(
        default=15.0, validation_alias="CAPTURE_TIMEOUT_SECONDS"
    )
    CAPTURE_MAX_TEXT_CHARS: int = Field(
        default=50_000, validation_alias="CAPTURE_MAX_TEXT_CHARS"
    )
    CAPTURE_MAX_LINKS: int = Field(default=500, validation_alias="CAPTURE_MAX_LINKS")
    CAPTURE_USER_AGENT: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        validation_alias="CAPTURE_USER_AGENT",
    )
    WAYBACK_ENABLED: bool = Field(default=True, validation_alias="WAYBACK_ENABLED")
    WAYBACK_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="WAYBACK_TIMEOUT_SECONDS"
    )

    # Persistence
    SNAPSHOT_TTL_SECONDS: int = Field(
        default=0, validation_alias="SNAPSHOT_TTL_SECONDS"
    )
    LEARNED_EXAMPLE_LIMIT: int = Field(
        default=10, validation_alias="LEARNED_EXAMPLE_LIMIT"
    )

    # Logging knobs
    LOGGER_NAME: str = "takedown-trail"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    CLASSIFY_SYSTEM_PROMPT: str = (
        "You are an expert at identifying copyright infringement, piracy, and unauthorized "
        "distribution of digital products.\n"
        "\n"
        "Your task is to analyze a search result and decide whether it COULD represent an "
        "infringement. Results you approve go to a human review queue; they are NOT actioned "
        "automatically. When in doubt, lean toward flagging the result and let the human decide.\n"
        "\n"
        "LIKELY INFRINGEMENTS (flag these):\n"
        "- Free downloads of paid content (torrents, direct downloads, file sharing)\n"
        "- Cracked, nulled, or pirated versions\n"
        "- Unauthorized redistribution on piracy sites\n"
        "- Counterfeit copies or clones\n"
        "- Unauthorized sales on unofficial platforms\n"
        "- Leaked premium content\n"
        "- Sites that list the product alongside pirated content\n"
        "- URLs on known piracy domains even if context is unclear\n"
        "\n"
        "CLEAR FALSE POSITIVES (only filter these out):\n"
        "- The product's own official website or authorized sales pages\n"
        "- Official resellers and affiliates\n"
        "- Reviews (e.g., Trustpilot, G2, Capterra) and tutorials about the product\n"
        "- News articles from established publications\n"
        "- Casual mentions, forum questions, or the creator's own social accounts\n"
        "- Official documentation or help pages"
    )

    CLASSIFY_RESPONSE_FORMAT: str = (
        "Respond ONLY with valid JSON in this exact format:\n"
        "{\n"
        '  "is_infringement": true or false,\n'
        '  "confidence": 0.0 to 1.0,\n'
        '  "reasoning": "brief explanation of your decision",\n'
        '  "infringement_type": "piracy" | "unauthorized_sale" | "counterfeit" | "unknown" '
        "(only if is_infringement is true)\n"
        "}"
    )

    EXTRACT_SYSTEM_PROMPT: str = (
        "You are a forensic content analyzer for intellectual property protection.\n"
        "\n"
        "CRITICAL RULES:\n"
        "1. Extract ONLY text that actually appears in the provided page content\n"
        "2. Return exact quotes - never paraphrase or generate text\n"
        "3. Include surrounding context for each match\n"
        "4. Identify matches for: brand names, product names, unique phrases, copyrighted "
        "content, pricing, download links\n"
        "5. Rate confidence based on exactness of match\n"
        "6. Flag critical evidence (direct copies, download links, pricing that undercuts the "
        "legitimate product)\n"
        "\n"
        "NEVER make up quotes. ONLY extract what is actually there. Every quote is checked "
        "against the page text and discarded if it is not found verbatim.\n"
        "\n"
        "Return JSON in this format:\n"
        "{\n"
        '  "matches": [\n'
        "    {\n"
        '      "type": "brand_mention" | "keyword_match" | "unique_phrase" | '
        '"copyrighted_content" | "pricing_info" | "download_link",\n'
        '      "exact_quote": "Exact text from page",\n'
        '      "surrounding_context": "...text before... [MATCH] ...text after...",\n'
        '      "confidence": 0.0-1.0,\n'
        '      "reasoning": "Why this is evidence",\n'
        '      "severity": "critical" | "high" | "medium" | "low"\n'
        "    }\n"
        "  ],\n"
        '  "critical_findings": ["High-priority evidence summaries"],\n'
        '  "summary": "Brief analysis of evidence strength"\n'
        "}"
    )

    ANALYZE_SYSTEM_PROMPT: str = (
        "You are a legal evidence analyst specializing in intellectual property and DMCA "
        "takedown cases. Compare captured web page content against the original product data "
        "and identify specific evidence of copyright infringement.\n"
        "\n"
        "RULES:\n"
        "1. Only identify GENUINE matches: text that clearly came from the original product\n"
        "2. Prioritize unique, distinctive content over generic industry terms\n"
        "3. infringing_text MUST be copied verbatim from the captured page text\n"
        "4. Context should include 50-100 characters of surrounding page text\n"
        "5. Legal significance depends on how distinctive the matched content is\n"
        "6. DMCA language must be formal, specific, and legally actionable\n"
        "7. Do NOT manufacture matches. If the evidence is weak, say so\n"
        "8. A single generic word (e.g. {generic_terms}) is NEVER valid evidence\n"
        "9. Evidence must be PRODUCT-SPECIFIC\n"
        "\n"
        "LEGAL SIGNIFICANCE LEVELS:\n"
        '- "critical": exact reproduction of unique copyrighted content\n'
        '- "strong": brand identifiers, trademarked terms, or substantial similar phrasing\n'
        '- "supporting": keyword clusters or partial reproductions that corroborate\n'
        "\n"
        "Return JSON ONLY:\n"
        "{\n"
        '  "matches": [{"type": "exact_reproduction" | "brand_usage" | "unique_phrase" | '
        '"content_structure" | "pricing_copy" | "keyword_cluster", "original_text": "...", '
        '"infringing_text": "...", "context": "...", "legal_significance": "critical" | '
        '"strong" | "supporting", "explanation": "...", "dmca_language": "...", '
        '"confidence": 0.0-1.0}],\n'
        '  "summary": "2-3 sentences",\n'
        '  "strength_score": 0-100,\n'
        '  "recommended_for_dmca": true/false\n'
        "}\n"
        "Limit to 8 best matches, ordered by legal significance."
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
