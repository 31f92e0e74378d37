"""
Configuration module for the LLM Visibility Checker.
Centralizes environment variable access and feature flags.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_ENABLED = bool(OPENAI_API_KEY)

PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY")
PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar")
PERPLEXITY_BASE_URL = os.getenv("PERPLEXITY_BASE_URL", "https://api.perplexity.ai")
PERPLEXITY_ENABLED = bool(PERPLEXITY_API_KEY)

GEMINI_API_KEY = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_ENABLED = bool(GEMINI_API_KEY)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-3-5-haiku-20241022")
ANTHROPIC_ENABLED = bool(ANTHROPIC_API_KEY)

PLATFORM_TIMEOUT_SECONDS = float(os.getenv("PLATFORM_TIMEOUT_SECONDS", "30"))
HISTORICAL_DAY_DELAY_SECONDS = float(os.getenv("HISTORICAL_DAY_DELAY_SECONDS", "2"))
MAX_HISTORICAL_DAYS = 30

BRAND_ALIASES_FILE = os.getenv("BRAND_ALIASES_FILE")

LEADS_DB_URL = os.getenv("LEADS_DB_URL", "sqlite:///./leads.db")
LEADS_BACKUP_FILE = os.getenv("LEADS_BACKUP_FILE", "leads.jsonl")

GS_ENDPOINT = os.getenv("GS_ENDPOINT", "")
GS_SECRET = os.getenv("GS_SECRET", "")

MAILER_URL = os.getenv("MAILER_URL", "")
MAILER_TOKEN = os.getenv("MAILER_TOKEN", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "")
SALES_EMAIL = os.getenv("SALES_EMAIL", "sales@greenbananaseo.com")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Hand-authored spellings that LLMs use for brands whose names are ambiguous
# once the domain is split into words. Keys are a domain or a lowercase name.
DEFAULT_BRAND_ALIASES: Dict[str, List[str]] = {
    "greenbananaseo.com": [
        "greenbanana seo",
        "green banana seo",
        "greenbananaseo",
        "GreenBananaSEO",
        "green banana",
        "greenbanana",
        "GreenBanana SEO",
        "Green Banana SEO",
    ],
}
DEFAULT_BRAND_ALIASES["greenbanana seo"] = DEFAULT_BRAND_ALIASES["greenbananaseo.com"]


def load_brand_aliases(path: Optional[str] = None) -> Dict[str, List[str]]:
    """
    Load the brand alias mapping.

    The defaults are always present; a JSON object at `path` (or
    BRAND_ALIASES_FILE) is merged on top of them, one list of literal
    match strings per identity.
    """
    aliases = {key: list(values) for key, values in DEFAULT_BRAND_ALIASES.items()}
    path = path or BRAND_ALIASES_FILE
    if not path:
        return aliases

    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not load brand aliases from %s: %s", path, e)
        return aliases

    if not isinstance(data, dict):
        logger.warning("Brand aliases file %s must contain a JSON object", path)
        return aliases

    for identity, values in data.items():
        if isinstance(values, list):
            aliases[identity.lower()] = [str(v) for v in values]
    return aliases


@dataclass(frozen=True)
class VisibilityConfig:
    """Read-only settings handed to the visibility hub at construction."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "sonar"
    perplexity_base_url: str = "https://api.perplexity.ai"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-3-5-haiku-20241022"
    platform_timeout: float = 30.0
    historical_day_delay: float = 2.0
    # Multiplier applied to every adapter delay; tests set it to 0.
    delay_scale: float = 1.0
    brand_aliases: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def credential_for(self, platform: str) -> Optional[str]:
        return {
            "chatgpt": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "perplexity": self.perplexity_api_key,
            "claude": self.anthropic_api_key,
        }.get(platform)


def load_visibility_config() -> VisibilityConfig:
    """Build the immutable config from the environment."""
    aliases = load_brand_aliases()
    return VisibilityConfig(
        openai_api_key=OPENAI_API_KEY,
        openai_model=OPENAI_MODEL,
        perplexity_api_key=PERPLEXITY_API_KEY,
        perplexity_model=PERPLEXITY_MODEL,
        perplexity_base_url=PERPLEXITY_BASE_URL,
        gemini_api_key=GEMINI_API_KEY,
        gemini_model=GEMINI_MODEL,
        anthropic_api_key=ANTHROPIC_API_KEY,
        claude_model=CLAUDE_MODEL,
        platform_timeout=PLATFORM_TIMEOUT_SECONDS,
        historical_day_delay=HISTORICAL_DAY_DELAY_SECONDS,
        brand_aliases={key: tuple(values) for key, values in aliases.items()},
    )


def is_perplexity_enabled() -> bool:
    """Check if Perplexity API is configured and enabled."""
    return PERPLEXITY_ENABLED


def is_openai_enabled() -> bool:
    """Check if OpenAI API is configured."""
    return OPENAI_ENABLED


def is_gemini_enabled() -> bool:
    """Check if Gemini API is configured."""
    return GEMINI_ENABLED


def is_anthropic_enabled() -> bool:
    """Check if Anthropic API is configured."""
    return ANTHROPIC_ENABLED


def get_enabled_providers() -> list:
    """Get list of enabled visibility platforms."""
    providers = []
    if OPENAI_ENABLED:
        providers.append("chatgpt")
    if GEMINI_ENABLED:
        providers.append("gemini")
    if PERPLEXITY_ENABLED:
        providers.append("perplexity")
    if ANTHROPIC_ENABLED:
        providers.append("claude")
    return providers
