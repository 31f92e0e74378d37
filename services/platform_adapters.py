"""
Platform Query Adapters for the LLM Visibility Checker.
Each adapter asks one chat platform about every keyword using a short list
of prompt phrasings, keeps the best answer per keyword and scores the platform.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from services.config import VisibilityConfig
from services.domain_utils import extract_company_name, extract_domain
from services.errors import ConfigurationError, MalformedResponseError, TransportError
from services.platform_clients import ChatClient, build_chat_client
from services.response_analyzer import analyze_response, default_analysis
from services.scoring import calculate_platform_score
from services.visibility_models import KeywordError, MentionAnalysis, PlatformResult, PromptAttempt

logger = logging.getLogger(__name__)

TIE_BREAK_CONFIDENCE = "confidence"
TIE_BREAK_RESPONSE_LENGTH = "response_length"


TOPIC_SERVICES = (
    "Tell me about {keyword} services. What companies and agencies provide these services? "
    "Include any providers you know about."
)
TOPIC_LANDSCAPE = (
    "What do you know about {keyword}? Discuss the companies, agencies, and providers in this space."
)
TOPIC_RESEARCH = (
    "I'm researching {keyword}. Can you tell me about companies that provide these services, "
    "including any specific agencies or providers you're aware of?"
)
TOPIC_SPECIALISTS = (
    "What companies specialize in {keyword}? Tell me about the business landscape and key players."
)
BRAND_DIRECT = (
    "Do you know anything about {company} or {website}? "
    "What services do they provide related to {keyword}?"
)


@dataclass(frozen=True)
class PlatformSpec:
    """
    Static description of one platform's probing behaviour.

    tie_break decides which answer is kept for a keyword when no attempt
    mentions the target. ChatGPT and Perplexity compare confidence, Gemini and
    Claude keep the longest answer. Since every non-mention scores the same
    confidence, the confidence platforms effectively keep the empty seed
    analysis.
    """
    key: str
    display_name: str
    vendor: str
    templates: Tuple[str, ...]
    max_attempts: int
    tie_break: str
    attempt_delay: float = 0.0
    keyword_delay: float = 0.0


PLATFORM_SPECS: Dict[str, PlatformSpec] = {
    "chatgpt": PlatformSpec(
        key="chatgpt",
        display_name="ChatGPT",
        vendor="OpenAI",
        templates=(TOPIC_SERVICES, TOPIC_LANDSCAPE, TOPIC_RESEARCH, TOPIC_SPECIALISTS, BRAND_DIRECT),
        max_attempts=3,
        tie_break=TIE_BREAK_CONFIDENCE,
        attempt_delay=0.8,
    ),
    "gemini": PlatformSpec(
        key="gemini",
        display_name="Gemini",
        vendor="Google",
        templates=(TOPIC_SERVICES, TOPIC_LANDSCAPE, BRAND_DIRECT, TOPIC_SPECIALISTS),
        max_attempts=3,
        tie_break=TIE_BREAK_RESPONSE_LENGTH,
        keyword_delay=1.0,
    ),
    "perplexity": PlatformSpec(
        key="perplexity",
        display_name="Perplexity",
        vendor="Perplexity",
        templates=(
            'Who are the leading companies in "{keyword}"? Please provide the top 10 companies '
            "with their websites. Include both national and local/regional companies.",
            'List the top 10 "{keyword}" companies and agencies with websites and locations.',
            'What are the best "{keyword}" providers? Include top 10 companies with websites.',
            'Top "{keyword}" companies - provide a comprehensive list with websites.',
        ),
        max_attempts=2,
        tie_break=TIE_BREAK_CONFIDENCE,
        attempt_delay=1.0,
    ),
    "claude": PlatformSpec(
        key="claude",
        display_name="Claude",
        vendor="Anthropic",
        templates=(TOPIC_SERVICES, TOPIC_LANDSCAPE, BRAND_DIRECT, TOPIC_SPECIALISTS),
        max_attempts=3,
        tie_break=TIE_BREAK_RESPONSE_LENGTH,
        keyword_delay=1.0,
    ),
}


def is_better(candidate: MentionAnalysis, best: MentionAnalysis, tie_break: str) -> bool:
    """Whether a non-mentioning answer should replace the current best one."""
    if tie_break == TIE_BREAK_RESPONSE_LENGTH:
        return candidate.response_length > best.response_length
    return candidate.confidence > best.confidence


class PlatformAdapter:
    """Runs the prompt variants for one platform and scores the outcome."""

    def __init__(
        self,
        spec: PlatformSpec,
        config: VisibilityConfig,
        client: Optional[ChatClient] = None,
    ):
        self.spec = spec
        self.config = config
        self._client = client

    @property
    def key(self) -> str:
        return self.spec.key

    @property
    def display_name(self) -> str:
        return self.spec.display_name

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when the platform has no API key."""
        if self._client is not None:
            return
        if not self.config.credential_for(self.spec.key):
            raise ConfigurationError(f"{self.spec.vendor} API key not configured")

    def get_client(self) -> ChatClient:
        self.ensure_configured()
        if self._client is None:
            self._client = build_chat_client(self.spec.key, self.config)
        return self._client

    def build_prompts(self, keyword: str, website: str, company: Optional[str]) -> List[str]:
        company_label = company or extract_company_name(extract_domain(website))
        return [
            template.format(keyword=keyword, company=company_label, website=website)
            for template in self.spec.templates[:self.spec.max_attempts]
        ]

    async def _sleep(self, seconds: float) -> None:
        delay = seconds * self.config.delay_scale
        if delay > 0:
            await asyncio.sleep(delay)

    async def probe_keyword(
        self,
        client: ChatClient,
        keyword: str,
        website: str,
        company: Optional[str],
        competitors: Sequence[str],
    ) -> MentionAnalysis:
        """
        Try the prompt variants for one keyword.

        Stops at the first answer that mentions the target. Transport and
        envelope failures are logged and the next variant is tried; when every
        attempt fails the last error is raised.
        """
        best = default_analysis(competitors)
        prompts = self.build_prompts(keyword, website, company)
        last_error: Optional[Exception] = None
        answered = False

        for attempt, prompt in enumerate(prompts):
            if attempt > 0:
                await self._sleep(self.spec.attempt_delay)

            record = PromptAttempt(
                platform=self.spec.key, keyword=keyword, prompt=prompt, attempt=attempt
            )
            try:
                content = await client.complete(prompt, attempt)
            except (TransportError, MalformedResponseError) as e:
                record.error = str(e)
                last_error = e
                logger.warning(
                    "%s attempt %d for '%s' failed: %s",
                    self.display_name, attempt + 1, keyword, e
                )
                continue

            answered = True
            record.response = content
            logger.debug("Prompt attempt: %s", record.model_dump(exclude={"response"}))

            analysis = analyze_response(
                content, website, company, competitors, self.config.brand_aliases
            )
            if analysis.mentioned:
                logger.info(
                    "%s found mention on attempt %d at position %s",
                    self.display_name, attempt + 1, analysis.position
                )
                return analysis

            if is_better(analysis, best, self.spec.tie_break):
                best = analysis

        if not answered and last_error is not None:
            raise last_error
        return best

    async def query(
        self,
        website: str,
        company: Optional[str],
        competitors: Sequence[str],
        keywords: Sequence[str],
    ) -> PlatformResult:
        """
        Probe every keyword on this platform.

        Raises ConfigurationError when the API key is missing; failures on a
        single keyword are recorded in its keyword_results slot instead.
        """
        client = self.get_client()
        result = PlatformResult(platform=self.display_name)
        failures: List[str] = []

        for keyword in keywords:
            try:
                analysis = await self.probe_keyword(client, keyword, website, company, competitors)
            except Exception as e:
                logger.error("Error querying %s for keyword '%s': %s", self.display_name, keyword, e)
                result.keyword_results[keyword] = KeywordError(error=str(e))
                failures.append(str(e))
            else:
                result.keyword_results[keyword] = analysis
                if analysis.mentioned:
                    result.mentions += 1
                    if result.ranking is None or analysis.position < result.ranking:
                        result.ranking = analysis.position

            await self._sleep(self.spec.keyword_delay)

        result.score = calculate_platform_score(result.mentions, len(keywords), result.ranking)

        if keywords and len(failures) == len(keywords):
            result.error = f"All {len(keywords)} keyword probes failed: {failures[-1]}"

        return result


def build_default_adapters(config: VisibilityConfig) -> Dict[str, PlatformAdapter]:
    """One adapter per known platform, in reporting order."""
    return {key: PlatformAdapter(spec, config) for key, spec in PLATFORM_SPECS.items()}
