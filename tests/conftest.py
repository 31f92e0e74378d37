"""Shared fixtures: a config with no delays and an adapter factory."""

from typing import Optional

import pytest

from services.config import VisibilityConfig
from services.platform_adapters import PLATFORM_SPECS, PlatformAdapter
from services.platform_clients import ChatClient


@pytest.fixture
def fast_config() -> VisibilityConfig:
    return VisibilityConfig(
        openai_api_key="test-openai",
        perplexity_api_key="test-perplexity",
        gemini_api_key="test-gemini",
        anthropic_api_key="test-anthropic",
        platform_timeout=5.0,
        historical_day_delay=0.0,
        delay_scale=0.0,
    )


@pytest.fixture
def make_adapter(fast_config):
    def _make(platform: str = "chatgpt", client: Optional[ChatClient] = None, config=None):
        return PlatformAdapter(PLATFORM_SPECS[platform], config or fast_config, client=client)
    return _make
