"""AI agents package."""

from zenledger.agents.insights import (
    FinancialInsight,
    InsightAgent,
    InsightRequest,
    build_insight_request,
    build_prompt,
    parse_insight,
)

__all__ = [
    "FinancialInsight",
    "InsightAgent",
    "InsightRequest",
    "build_insight_request",
    "build_prompt",
    "parse_insight",
]
