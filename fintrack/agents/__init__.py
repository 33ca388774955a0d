"""AI Agents package."""

from fintrack.agents.ai_agents import (
    CardIntelligenceAgent,
    EnrichmentError,
    EnrichmentFetcher,
    ParseError,
    TextParser,
    TransactionParsingAgent,
    intelligence_unavailable,
    parsing_unavailable,
)

__all__ = [
    "CardIntelligenceAgent",
    "EnrichmentError",
    "EnrichmentFetcher",
    "ParseError",
    "TextParser",
    "TransactionParsingAgent",
    "intelligence_unavailable",
    "parsing_unavailable",
]
