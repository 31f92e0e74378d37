"""
Tests for the visibility hub.

Covers standard runs across several platforms, per-platform timeouts and
configuration failures, summary math, competitor estimates and the
simulated-day historical mode.
"""
import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from services import visibility_hub
from services.config import VisibilityConfig
from services.errors import TransportError
from services.platform_adapters import PLATFORM_SPECS, PlatformAdapter
from services.visibility_hub import (
    HISTORICAL_PROMPT_VARIANTS, CompetitorEstimator, VisibilityHub, calculate_summary,
    process_historical_data
)
from services.visibility_models import (
    HistoricalDayResult, HistoricalPlatformResult, MentionAnalysis, PlatformResult, VisibilityRequest
)

from tests.helpers import ScriptedClient


WEBSITE = "https://acme.com"


def make_hub(config, clients, estimator=None):
    adapters = {
        key: PlatformAdapter(PLATFORM_SPECS[key], config, client=client)
        for key, client in clients.items()
    }
    return VisibilityHub(config, adapters=adapters, estimator=estimator)


class TestStandardAnalysis:

    @pytest.mark.asyncio
    async def test_table_mention_end_to_end(self, fast_config):
        hub = make_hub(fast_config, {"chatgpt": ScriptedClient(["| 2 | Acme | acme.com |"])})
        request = VisibilityRequest(website=WEBSITE, company="Acme", keywords=["seo"])

        result = await hub.analyze_visibility(request)

        chatgpt = result.platform_results["chatgpt"]
        assert chatgpt.mentions == 1
        assert chatgpt.ranking == 2
        assert chatgpt.score == 92
        assert result.summary.overall_score == 92
        assert result.summary.platform_count == 1
        assert result.historical is False
        assert result.days == 1

    @pytest.mark.asyncio
    async def test_summary_over_several_platforms(self, fast_config):
        hub = make_hub(fast_config, {
            "chatgpt": ScriptedClient(responder=lambda p, a: "1. acme.com"),
            "gemini": ScriptedClient(responder=lambda p, a: "Nobody you know."),
            "perplexity": ScriptedClient(responder=lambda p, a: "4) Acme - acme.com"),
        })
        request = VisibilityRequest(website=WEBSITE, keywords=["seo", "ppc"])

        result = await hub.analyze_visibility(request)

        scores = {k: r.score for k, r in result.platform_results.items()}
        # 60 + 40, 0, 60 + 16
        assert scores == {"chatgpt": 100, "gemini": 0, "perplexity": 76}
        assert result.summary.overall_score == 59
        assert result.summary.total_mentions == 4
        assert result.summary.average_ranking == 2.5
        assert result.summary.platform_count == 3

    @pytest.mark.asyncio
    async def test_results_keep_adapter_order(self, fast_config):
        clients = {key: ScriptedClient(responder=lambda p, a: "") for key in PLATFORM_SPECS}
        result = await make_hub(fast_config, clients).analyze_visibility(
            VisibilityRequest(website=WEBSITE, keywords=["seo"])
        )
        assert list(result.platform_results) == ["chatgpt", "gemini", "perplexity", "claude"]

    @pytest.mark.asyncio
    async def test_timeout_is_isolated_to_one_platform(self, fast_config):
        config = replace(fast_config, platform_timeout=0.05)
        hub = make_hub(config, {
            "chatgpt": ScriptedClient(responder=lambda p, a: "1. acme.com"),
            "claude": ScriptedClient(responder=lambda p, a: "1. acme.com", delay=1.0),
        })

        result = await hub.analyze_visibility(VisibilityRequest(website=WEBSITE, keywords=["seo"]))

        assert result.platform_results["claude"].error == "Platform query timeout after 0.05 seconds"
        assert result.platform_results["claude"].platform == "Claude"
        assert result.platform_results["chatgpt"].error is None
        assert result.summary.platform_count == 1
        assert result.summary.overall_score == 100

    @pytest.mark.asyncio
    async def test_unconfigured_platform_is_reported(self, fast_config):
        config = replace(fast_config, anthropic_api_key=None)
        adapters = {
            "chatgpt": PlatformAdapter(PLATFORM_SPECS["chatgpt"], config, client=ScriptedClient(["1. acme.com"])),
            "claude": PlatformAdapter(PLATFORM_SPECS["claude"], config),
        }
        hub = VisibilityHub(config, adapters=adapters)

        result = await hub.analyze_visibility(VisibilityRequest(website=WEBSITE, keywords=["seo"]))

        assert result.platform_results["claude"].error == "Anthropic API key not configured"
        assert result.summary.platform_count == 1

    @pytest.mark.asyncio
    async def test_every_platform_failing_gives_zero_summary(self, fast_config):
        failing = lambda p, a: TransportError("down")  # noqa: E731
        hub = make_hub(fast_config, {
            "chatgpt": ScriptedClient(responder=failing),
            "gemini": ScriptedClient(responder=failing),
        })

        result = await hub.analyze_visibility(
            VisibilityRequest(website=WEBSITE, competitors=["rival.com"], keywords=["seo"])
        )

        assert all(r.error for r in result.platform_results.values())
        assert result.summary.overall_score == 0
        assert result.summary.platform_count == 0
        assert result.summary.average_ranking is None
        assert result.summary.competitor_analysis == []

    @pytest.mark.asyncio
    async def test_result_serializes(self, fast_config):
        hub = make_hub(fast_config, {"chatgpt": ScriptedClient(["1. acme.com"])})
        result = await hub.analyze_visibility(VisibilityRequest(website=WEBSITE, keywords=["seo"]))
        data = result.model_dump()
        assert data["platform_results"]["chatgpt"]["keyword_results"]["seo"]["position"] == 1
        assert data["summary"]["overall_score"] == 100


@pytest.mark.unit
class TestSummary:

    def test_rankings_ignore_platforms_without_one(self):
        results = {
            "chatgpt": PlatformResult(platform="ChatGPT", mentions=1, ranking=3, score=60),
            "gemini": PlatformResult(platform="Gemini", mentions=0, ranking=None, score=0),
            "claude": PlatformResult(platform="Claude", error="boom"),
        }
        summary = calculate_summary(results, [])
        assert summary.overall_score == 30
        assert summary.average_ranking == 3.0
        assert summary.platform_count == 2

    def test_seeded_competitor_estimate_is_reproducible(self):
        results = {
            "chatgpt": PlatformResult(platform="ChatGPT", keyword_results={
                "seo": MentionAnalysis(competitor_mentions=[
                    {"domain": "rival.com", "mentioned": True},
                    {"domain": "other.net", "mentioned": False},
                ]),
            }),
        }
        competitors = ["https://www.rival.com", "other.net"]

        first = calculate_summary(results, competitors, CompetitorEstimator(random.Random(7)))
        second = calculate_summary(results, competitors, CompetitorEstimator(random.Random(7)))

        assert first.competitor_analysis == second.competitor_analysis
        rival, other = first.competitor_analysis
        assert (rival.domain, rival.mentions, rival.platforms_found) == ("rival.com", 1, 1)
        assert (other.domain, other.mentions) == ("other.net", 0)
        for estimate in first.competitor_analysis:
            assert 40 <= estimate.estimated_score <= 100

    def test_estimate_formula(self):
        class FixedRandom:
            def random(self):
                return 0.5

        results = {"chatgpt": PlatformResult(platform="ChatGPT", keyword_results={
            "seo": MentionAnalysis(competitor_mentions=[{"domain": "rival.com", "mentioned": True}]),
        })}
        estimates = CompetitorEstimator(FixedRandom()).estimate(results, ["rival.com"])
        # 1/1 * 25 + 0.5 * 30 + 40
        assert estimates[0].estimated_score == 80.0


@pytest.mark.unit
class TestProcessHistoricalData:

    def test_statistics(self):
        def day(offset, position):
            analysis = MentionAnalysis(mentioned=position is not None, position=position)
            response = PlatformResult(platform="Gemini", keyword_results={"kw": analysis})
            return HistoricalDayResult(date=f"2024-01-0{offset + 1}", day_offset=offset,
                                       keywords="kw", response=response)

        data = [day(0, 2), day(1, None), day(2, 4), day(3, None)]
        result = process_historical_data("Gemini", data)

        assert result.mentions == 2
        assert result.total_queries == 4
        assert result.mention_rate == 50
        assert result.avg_position == 3.0
        assert result.best_position == 2
        assert result.ranking == 2
        assert result.score == 60
        assert [t.day_offset for t in result.timeline] == [0, 2]
        assert result.error is None

    def test_failed_days_count_as_queries(self):
        data = [
            HistoricalDayResult(date="2024-01-01", day_offset=0, keywords="kw", error="down", success=False),
            HistoricalDayResult(date="2023-12-31", day_offset=1, keywords="kw", error="down", success=False),
        ]
        result = process_historical_data("Claude", data)
        assert result.total_queries == 2
        assert result.mentions == 0
        assert result.score == 0
        assert result.error == "All 2 historical queries failed: down"


class TestHistoricalAnalysis:

    @pytest.mark.asyncio
    async def test_day_variants_and_statistics(self, fast_config):
        def responder(prompt, attempt):
            if "best seo, ppc services" in prompt:
                return "1. acme.com is great"
            return "No brands here."

        client = ScriptedClient(responder=responder)
        hub = make_hub(fast_config, {"chatgpt": client})
        request = VisibilityRequest(website=WEBSITE, keywords=["seo", "ppc"], historical=True, days=3)

        result = await hub.analyze_visibility(request)

        assert result.historical is True
        assert result.days == 3
        chatgpt = result.platform_results["chatgpt"]
        assert isinstance(chatgpt, HistoricalPlatformResult)
        assert [d.keywords for d in chatgpt.historical_data] == [
            "current top seo, ppc", "latest seo, ppc companies", "best seo, ppc services",
        ]
        assert chatgpt.total_queries == 3
        assert chatgpt.mentions == 1
        assert chatgpt.mention_rate == 33
        assert chatgpt.avg_position == 1.0
        assert chatgpt.best_position == 1
        assert chatgpt.score == 62
        assert result.summary.overall_score == 62

        today = datetime.now(timezone.utc).date()
        assert chatgpt.historical_data[0].date == today.isoformat()
        assert chatgpt.timeline[0].day_offset == 2
        assert chatgpt.timeline[0].date == (today - timedelta(days=2)).isoformat()

    @pytest.mark.asyncio
    async def test_variants_wrap_after_a_week(self, fast_config):
        hub = make_hub(fast_config, {"gemini": ScriptedClient(responder=lambda p, a: "")})
        request = VisibilityRequest(website=WEBSITE, keywords=["seo"], historical=True, days=9)

        result = await hub.analyze_visibility(request)

        keywords = [d.keywords for d in result.platform_results["gemini"].historical_data]
        assert len(keywords) == 9
        assert keywords[7] == HISTORICAL_PROMPT_VARIANTS[0].format(keywords="seo")
        assert keywords[8] == keywords[1]

    @pytest.mark.asyncio
    async def test_unconfigured_platform_has_no_days(self, fast_config):
        config = replace(fast_config, perplexity_api_key=None)
        hub = VisibilityHub(config, adapters={
            "perplexity": PlatformAdapter(PLATFORM_SPECS["perplexity"], config),
        })
        request = VisibilityRequest(website=WEBSITE, keywords=["seo"], historical=True, days=2)

        result = await hub.analyze_visibility(request)

        perplexity = result.platform_results["perplexity"]
        assert perplexity.error == "Perplexity API key not configured"
        assert perplexity.historical_data == []
        assert result.summary.platform_count == 0

    @pytest.mark.asyncio
    async def test_failing_platform_marks_every_day(self, fast_config):
        client = ScriptedClient(responder=lambda p, a: TransportError("Claude API error: 500", 500))
        hub = make_hub(fast_config, {"claude": client})
        request = VisibilityRequest(website=WEBSITE, keywords=["seo"], historical=True, days=2)

        result = await hub.analyze_visibility(request)

        claude = result.platform_results["claude"]
        assert [d.success for d in claude.historical_data] == [False, False]
        assert claude.error.startswith("All 2 historical queries failed")

    @pytest.mark.asyncio
    async def test_day_delay_only_between_days(self, fast_config):
        config = replace(fast_config, historical_day_delay=2.0)
        hub = make_hub(config, {"chatgpt": ScriptedClient(responder=lambda p, a: "1. acme.com")})
        request = VisibilityRequest(website=WEBSITE, keywords=["seo"], historical=True, days=3)

        with patch.object(visibility_hub.asyncio, "sleep", AsyncMock()) as sleep:
            result = await hub.analyze_visibility(request)

        assert len(result.platform_results["chatgpt"].historical_data) == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(2.0)
