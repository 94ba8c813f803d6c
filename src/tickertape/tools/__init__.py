"""Tool registry and the research tools available to the agent."""

from __future__ import annotations

import logging

from tickertape.config import Settings
from tickertape.llm.protocols import LanguageModel
from tickertape.tools.finance import AlphaVantageClient, create_financial_search
from tickertape.tools.registry import ToolDefinition, ToolRegistry
from tickertape.tools.web import create_web_search

logger = logging.getLogger(__name__)


def build_default_tools(settings: Settings, llm: LanguageModel) -> ToolRegistry:
    """Build the agent's tools from the configured API keys.

    ``financial_search`` is included when an Alpha Vantage key is set and
    ``web_search`` when a Tavily key is set. The registry may be empty.
    """
    registry = ToolRegistry()
    if settings.alpha_vantage_api_key:
        client = AlphaVantageClient(settings.alpha_vantage_api_key)
        registry.register(create_financial_search(llm, settings.model, client))
    if settings.tavily_api_key:
        registry.register(create_web_search(settings.tavily_api_key))
    logger.debug("Registered tools: %s", registry.names())
    return registry


__all__ = ["ToolDefinition", "ToolRegistry", "build_default_tools"]
