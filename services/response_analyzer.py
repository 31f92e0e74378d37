"""
Response Analyzer for the LLM Visibility Checker.
Decides whether a free-form platform answer mentions the target brand and
estimates where in the answer it was ranked.

Everything here is pure: same text and identity in, same analysis out.
"""

import logging
import re
from typing import Iterable, List, Mapping, Optional, Sequence

from services.domain_utils import extract_domain, extract_company_name
from services.visibility_models import CompetitorMention, MentionAnalysis

logger = logging.getLogger(__name__)

MIN_PATTERN_LENGTH = 4
UNCLEAR_POSITION = 5
MAX_LINE_POSITION = 10
MENTIONED_CONFIDENCE = 0.8
NOT_MENTIONED_CONFIDENCE = 0.2

LEADING_NUMBER_RE = re.compile(r"^\s*(\d+)[.)\s]")
BULLET_RE = re.compile(r"^\s*[-*•]\s")
# Pipe rows containing any of these are headers, separators or labels.
TABLE_HEADER_MARKERS = ("agency", "highlights", "---", "rank", "company")


def _name_variants(name: str) -> List[str]:
    lowered = name.lower()
    return [
        lowered,
        re.sub(r"\s+", "", lowered),
        re.sub(r"\s+", " ", lowered),
    ]


def build_search_patterns(
    website: str,
    company: Optional[str] = None,
    aliases: Optional[Mapping[str, Iterable[str]]] = None,
) -> List[str]:
    """
    Build the lowercase strings whose presence counts as a mention.

    Patterns are deduplicated in first-seen order and anything of three
    characters or fewer is dropped.
    """
    domain = extract_domain(website)
    company = company or ""

    candidates = [domain.lower(), (website or "").lower()]
    candidates.extend(_name_variants(company))
    candidates.extend(_name_variants(extract_company_name(domain)))

    if aliases:
        for key in (domain, company.strip().lower()):
            if key and key in aliases:
                candidates.extend(alias.lower() for alias in aliases[key])

    patterns: List[str] = []
    for candidate in candidates:
        if candidate and len(candidate) >= MIN_PATTERN_LENGTH and candidate not in patterns:
            patterns.append(candidate)
    return patterns


def _count_table_rows(lines: Sequence[str], upto: int) -> int:
    count = 0
    for line in lines[:upto + 1]:
        lowered = line.lower()
        if "|" in lowered and not any(marker in lowered for marker in TABLE_HEADER_MARKERS):
            count += 1
    return count


def estimate_position(content: str, patterns: Sequence[str]) -> int:
    """
    Estimate a 1-based rank for the first line that mentions any pattern.

    Tries, in order: a leading "N." / "N)" / "N " numeral, a markdown row
    "| N | ... pattern ... |", the number of table rows seen so far, and the
    line number for bullet items. Returns UNCLEAR_POSITION when none apply.
    """
    lines = content.split("\n")
    position = None

    for index, line in enumerate(lines):
        lowered = line.lower()
        matched = [p for p in patterns if p in lowered]
        if not matched:
            continue

        number_match = LEADING_NUMBER_RE.match(lowered)
        if number_match:
            position = int(number_match.group(1))
            break

        table_position = None
        for pattern in matched:
            table_match = re.search(r"\|\s*(\d+)\s*\|.*" + re.escape(pattern), lowered)
            if table_match:
                table_position = int(table_match.group(1))
                break
        if table_position is not None:
            position = table_position
            break

        row_count = _count_table_rows(lines, index)
        if row_count > 0:
            position = row_count
            break

        if BULLET_RE.match(line):
            position = min(index + 1, MAX_LINE_POSITION)
        break

    if not position:
        position = UNCLEAR_POSITION
    return position


def default_analysis(competitors: Optional[Sequence[str]] = None) -> MentionAnalysis:
    """The "nothing found yet" analysis a keyword starts from."""
    return MentionAnalysis(
        mentioned=False,
        position=None,
        competitor_mentions=[
            CompetitorMention(domain=extract_domain(url), mentioned=False)
            for url in competitors or []
        ],
        response_length=0,
        confidence=NOT_MENTIONED_CONFIDENCE,
    )


def analyze_response(
    content: str,
    website: str,
    company: Optional[str] = None,
    competitors: Optional[Sequence[str]] = None,
    aliases: Optional[Mapping[str, Iterable[str]]] = None,
) -> MentionAnalysis:
    """
    Analyze one platform answer for the target website/company.

    Args:
        content: Raw text returned by the platform
        website: Target website URL or domain
        company: Target company name, if known
        competitors: Competitor URLs; each is checked against the whole text
        aliases: Identity -> literal spellings to treat as the target

    Returns:
        MentionAnalysis for this answer
    """
    content = content or ""
    lowered = content.lower()
    patterns = build_search_patterns(website, company, aliases)

    matched = [p for p in patterns if p in lowered]
    mentioned = bool(matched)
    logger.debug("Patterns for %s: %s (matched: %s)", website, patterns, matched)

    position = estimate_position(content, patterns) if mentioned else None

    competitor_mentions = []
    for url in competitors or []:
        domain = extract_domain(url)
        competitor_mentions.append(CompetitorMention(
            domain=domain,
            mentioned=bool(domain) and domain.lower() in lowered,
        ))

    return MentionAnalysis(
        mentioned=mentioned,
        position=position,
        competitor_mentions=competitor_mentions,
        response_length=len(content),
        confidence=MENTIONED_CONFIDENCE if mentioned else NOT_MENTIONED_CONFIDENCE,
    )
