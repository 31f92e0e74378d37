"""
Visibility Hub - Orchestrates multi-LLM visibility analysis.
Runs every platform adapter, optionally over a simulated day range, and
aggregates the per-platform results into a single visibility summary.
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Union

from services.config import VisibilityConfig
from services.domain_utils import extract_domain
from services.platform_adapters import PlatformAdapter, build_default_adapters
from services.scoring import calculate_historical_score, round_half_up, round_one_decimal
from services.visibility_models import (
    AnalysisResult, CompetitorEstimate, HistoricalDayResult, HistoricalPlatformResult,
    MentionAnalysis, PlatformResult, TimelineMention, VisibilityRequest, VisibilitySummary
)

logger = logging.getLogger(__name__)

AnyPlatformResult = Union[PlatformResult, HistoricalPlatformResult]

# Historical mode re-asks the live platforms with a different phrasing per
# simulated day; the dates are labels, not a real time series.
HISTORICAL_PROMPT_VARIANTS = (
    "current top {keywords}",
    "latest {keywords} companies",
    "best {keywords} services",
    "top rated {keywords}",
    "leading {keywords} providers",
    "recommended {keywords}",
    "popular {keywords} agencies",
)


class CompetitorEstimator:
    """
    Estimates a visibility score per competitor.

    The estimate adds a uniform random term in [0, 30) on top of the observed
    mention count, so it is not reproducible unless a seeded Random is passed.
    Whether that term is placeholder filler or intended smoothing is still
    undecided; it is kept as-is and isolated here.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def estimate(
        self,
        platform_results: Mapping[str, AnyPlatformResult],
        competitors: Sequence[str],
    ) -> List[CompetitorEstimate]:
        estimates = []
        for competitor in competitors:
            domain = extract_domain(competitor)
            total_mentions = 0
            platforms_found = 0

            for analysis in iter_mention_analyses(platform_results):
                for mention in analysis.competitor_mentions:
                    if mention.domain == domain and mention.mentioned:
                        total_mentions += 1
                        platforms_found += 1
                        break

            score = min(
                100.0,
                (total_mentions / len(competitors)) * 25 + self.rng.random() * 30 + 40
            )
            estimates.append(CompetitorEstimate(
                url=competitor,
                domain=domain,
                mentions=total_mentions,
                platforms_found=platforms_found,
                estimated_score=round_one_decimal(score),
            ))
        return estimates


def iter_mention_analyses(platform_results: Mapping[str, AnyPlatformResult]):
    """Yield every keyword analysis across standard and historical results."""
    for result in platform_results.values():
        if isinstance(result, HistoricalPlatformResult):
            responses = [day.response for day in result.historical_data if day.response]
        else:
            responses = [result]
        for response in responses:
            for analysis in response.keyword_results.values():
                if isinstance(analysis, MentionAnalysis):
                    yield analysis


def calculate_summary(
    platform_results: Mapping[str, AnyPlatformResult],
    competitors: Sequence[str],
    estimator: Optional[CompetitorEstimator] = None,
) -> VisibilitySummary:
    """
    Summarize the run over the platforms that did not fail outright.

    A run where every platform failed still yields a zero summary.
    """
    valid = [p for p in platform_results.values() if not p.error]
    if not valid:
        return VisibilitySummary()

    estimator = estimator or CompetitorEstimator()

    total_mentions = sum(p.mentions for p in valid)
    average_score = sum(p.score for p in valid) / len(valid)
    rankings = [p.ranking for p in valid if p.ranking]
    average_ranking = round_one_decimal(sum(rankings) / len(rankings)) if rankings else None

    return VisibilitySummary(
        overall_score=round_half_up(average_score),
        total_mentions=total_mentions,
        average_ranking=average_ranking,
        platform_count=len(valid),
        competitor_analysis=estimator.estimate(platform_results, competitors),
    )


def process_historical_data(
    platform: str,
    historical_data: List[HistoricalDayResult],
) -> HistoricalPlatformResult:
    """Turn a list of simulated days into mention-rate and position statistics."""
    timeline: List[TimelineMention] = []
    positions: List[int] = []
    total_mentions = 0
    total_queries = len(historical_data)

    for day in historical_data:
        if not (day.success and day.response):
            continue
        for keyword, analysis in day.response.keyword_results.items():
            if isinstance(analysis, MentionAnalysis) and analysis.mentioned:
                total_mentions += 1
                timeline.append(TimelineMention(
                    date=day.date,
                    keyword=keyword,
                    position=analysis.position,
                    day_offset=day.day_offset,
                ))
                if analysis.position:
                    positions.append(analysis.position)

    mention_rate = (total_mentions / total_queries) * 100 if total_queries else 0
    avg_position = sum(positions) / len(positions) if positions else None
    best_position = min(positions) if positions else None

    result = HistoricalPlatformResult(
        platform=platform,
        mentions=total_mentions,
        total_queries=total_queries,
        mention_rate=round_half_up(mention_rate),
        avg_position=round_one_decimal(avg_position) if avg_position else None,
        best_position=best_position,
        ranking=best_position,
        score=calculate_historical_score(total_mentions, total_queries, positions),
        historical_data=historical_data,
        timeline=timeline,
    )

    failed = [day for day in historical_data if not day.success]
    if historical_data and len(failed) == len(historical_data):
        result.error = f"All {len(failed)} historical queries failed: {failed[0].error}"
    return result


class VisibilityHub:
    """Runs the visibility probe across every configured platform."""

    def __init__(
        self,
        config: VisibilityConfig,
        adapters: Optional[Dict[str, PlatformAdapter]] = None,
        estimator: Optional[CompetitorEstimator] = None,
    ):
        self.config = config
        self.adapters = adapters if adapters is not None else build_default_adapters(config)
        self.estimator = estimator or CompetitorEstimator()

    async def analyze_visibility(self, request: VisibilityRequest) -> AnalysisResult:
        """
        Run a standard or historical visibility analysis.

        Never raises for platform failures; those are recorded per platform.
        """
        result = AnalysisResult(
            timestamp=datetime.now(timezone.utc).isoformat(),
            website=request.website,
            company=request.company,
            competitors=list(request.competitors),
            keywords=list(request.keywords),
            historical=request.historical,
            days=request.days if request.historical else 1,
        )

        if request.historical:
            logger.info("Starting %d-day historical analysis for %s", request.days, request.website)
            runs = [self._run_historical_platform(adapter, request) for adapter in self.adapters.values()]
        else:
            logger.info("Starting analysis for %s across %s", request.website, list(self.adapters))
            runs = [self._run_platform(adapter, request) for adapter in self.adapters.values()]

        platform_results = await asyncio.gather(*runs)
        for key, platform_result in zip(self.adapters.keys(), platform_results):
            result.platform_results[key] = platform_result

        result.summary = calculate_summary(result.platform_results, request.competitors, self.estimator)
        logger.info(
            "Analysis for %s complete: score %d across %d platforms",
            request.website, result.summary.overall_score, result.summary.platform_count
        )
        return result

    async def _run_platform(self, adapter: PlatformAdapter, request: VisibilityRequest) -> PlatformResult:
        timeout = self.config.platform_timeout
        logger.info("Querying %s...", adapter.display_name)
        try:
            return await asyncio.wait_for(
                adapter.query(request.website, request.company, request.competitors, request.keywords),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            message = f"Platform query timeout after {timeout:g} seconds"
            logger.error("%s query failed: %s", adapter.display_name, message)
            return PlatformResult(platform=adapter.display_name, error=message)
        except Exception as e:
            logger.error("%s query failed: %s", adapter.display_name, e)
            return PlatformResult(platform=adapter.display_name, error=str(e))

    async def _run_historical_platform(
        self,
        adapter: PlatformAdapter,
        request: VisibilityRequest,
    ) -> HistoricalPlatformResult:
        logger.info("Analyzing %s over %d days...", adapter.display_name, request.days)
        try:
            adapter.ensure_configured()
            historical_data = await self.query_platform_historical(adapter, request)
        except Exception as e:
            logger.error("Error in historical analysis for %s: %s", adapter.display_name, e)
            return HistoricalPlatformResult(platform=adapter.display_name, error=str(e))
        return process_historical_data(adapter.display_name, historical_data)

    async def query_platform_historical(
        self,
        adapter: PlatformAdapter,
        request: VisibilityRequest,
    ) -> List[HistoricalDayResult]:
        """
        Re-run the platform once per simulated day with a rotating phrasing.

        There is no per-call timeout here, so a hanging platform stalls the
        day loop for that platform.
        """
        today = datetime.now(timezone.utc).date()
        joined_keywords = ", ".join(request.keywords)
        days: List[HistoricalDayResult] = []

        for day_offset in range(request.days):
            date_str = (today - timedelta(days=day_offset)).isoformat()
            variant = HISTORICAL_PROMPT_VARIANTS[day_offset % len(HISTORICAL_PROMPT_VARIANTS)]
            modified_keywords = variant.format(keywords=joined_keywords)

            try:
                logger.info("%s day %d (%s): testing '%s'", adapter.display_name, day_offset, date_str, modified_keywords)
                response = await adapter.query(
                    request.website, request.company, request.competitors, [modified_keywords]
                )
            except Exception as e:
                logger.warning("%s day %d failed: %s", adapter.display_name, day_offset, e)
                days.append(HistoricalDayResult(
                    date=date_str,
                    day_offset=day_offset,
                    keywords=modified_keywords,
                    response=None,
                    error=str(e),
                    success=False,
                ))
                continue

            days.append(HistoricalDayResult(
                date=date_str,
                day_offset=day_offset,
                keywords=modified_keywords,
                response=response,
                error=response.error,
                success=response.error is None,
            ))

            if self.config.historical_day_delay > 0 and day_offset < request.days - 1:
                await asyncio.sleep(self.config.historical_day_delay)

        return days
