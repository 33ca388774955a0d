"""
AI Agents for FinTrack

Two Gemini-backed collaborators, both consumed by the rest of the system as
plain async callables:

1. CARD INTELLIGENCE AGENT:
   - CAN: Look up PUBLIC benefits and milestones for a card product
   - RECEIVES: bank name and variant name, nothing else
   - CANNOT: See balances, card numbers or transactions

2. TRANSACTION PARSING AGENT:
   - CAN: Turn one pasted message (bank SMS, e-mail line) into fields
   - CANNOT: Save anything. Its output is a proposal the user confirms.

Failures are raised as EnrichmentError / ParseError. The callers decide how
to record them; neither agent retries on its own.
"""

import json
from typing import Any, Awaitable, Callable, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from fintrack.config import get_settings
from fintrack.models.card import CardIntelligence, IntelligenceSource, MilestoneOffer
from fintrack.models.transaction import ParsedTransaction, TransactionCategory


logger = structlog.get_logger(__name__)

EnrichmentFetcher = Callable[[str, str], Awaitable[CardIntelligence]]
TextParser = Callable[[str], Awaitable[ParsedTransaction]]


class EnrichmentError(Exception):
    """The card intelligence lookup failed."""
    pass


class ParseError(Exception):
    """A pasted message could not be turned into a transaction."""
    pass


def _extract_json(text: Optional[str]) -> dict:
    """Pull the first JSON object out of a model response."""
    text = (text or "").strip()
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model response")
    data = json.loads(text[start:end])
    if not isinstance(data, dict):
        raise ValueError("Model response is not a JSON object")
    return data


class CardIntelligenceAgent:
    """
    Fetches public card benefits in two phases.

    Phase 1: a search-grounded model gathers public information.
    Phase 2: a JSON-mode model formats that text into benefits/milestones.

    PRIVACY BOUNDARY: The only inputs are bank name and variant name.
    """

    def __init__(
        self,
        search_model: Any = None,
        format_model: Any = None,
    ):
        self._search_model = search_model
        self._format_model = format_model
        if search_model is None or format_model is None:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        if self._search_model is None:
            self._search_model = genai.GenerativeModel(
                model_name=settings.enrichment_model,
                tools="google_search_retrieval",
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                },
            )
        if self._format_model is None:
            self._format_model = genai.GenerativeModel(
                model_name=settings.enrichment_model,
                generation_config={
                    "temperature": 0.0,
                    "max_output_tokens": settings.max_tokens,
                    "response_mime_type": "application/json",
                },
            )

    async def fetch_card_intelligence(
        self,
        bank_name: str,
        variant_name: str,
    ) -> CardIntelligence:
        """
        Look up public benefits and milestone targets for a card product.

        Raises:
            EnrichmentError: on any failure (network, quota, bad output)
        """
        if not bank_name or not variant_name:
            raise EnrichmentError("Bank name and variant name are both required")

        search_prompt = f"""Find the official benefits, rewards, and milestone targets for the "{bank_name} {variant_name}" credit card in India.
Specifically look for:
- Lounge access rules (Domestic/International)
- Reward points per ₹150 or ₹100 spent
- Milestone rewards (Annual fee waiver, vouchers)
- Milestone values must be in INR (₹)."""

        try:
            search_response = await self._search_model.generate_content_async(search_prompt)
            raw_text = search_response.text
            sources = self._extract_sources(search_response)

            format_prompt = f"""Extract card details into JSON from this public text:
{raw_text}

Respond with ONLY a JSON object in this exact format:
{{"benefits": ["feature", ...], "milestones": [{{"label": "...", "target": 400000, "reward": "..."}}]}}

"target" must be a plain number in INR."""

            format_response = await self._format_model.generate_content_async(format_prompt)
            data = _extract_json(format_response.text)
        except Exception as e:
            logger.warning("card_intelligence_failed", bank=bank_name, variant=variant_name, error=str(e))
            raise EnrichmentError(f"Card intelligence lookup failed: {e}") from e

        benefits = [str(b).strip() for b in data.get("benefits") or [] if str(b).strip()]

        milestones = []
        for item in data.get("milestones") or []:
            try:
                milestones.append(MilestoneOffer.model_validate(item))
            except ValidationError:
                logger.info("milestone_skipped", bank=bank_name, variant=variant_name, item=str(item)[:100])

        return CardIntelligence(benefits=benefits, milestones=milestones, sources=sources)

    def _extract_sources(self, response: Any) -> list[IntelligenceSource]:
        """Collect the web pages the search answer was grounded on."""
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return []
        metadata = getattr(candidates[0], "grounding_metadata", None)
        chunks = getattr(metadata, "grounding_chunks", None) or []

        sources = []
        for chunk in chunks:
            web = getattr(chunk, "web", None)
            uri = getattr(web, "uri", None)
            if uri:
                sources.append(IntelligenceSource(title=getattr(web, "title", "") or "", uri=uri))
        return sources


class TransactionParsingAgent:
    """
    Parses one pasted message into transaction fields.

    Used on demand only, when the user pastes text.
    """

    def __init__(self, model: Any = None):
        self._model = model
        if model is None:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=settings.parsing_model,
            generation_config={
                "temperature": 0.0,
                "max_output_tokens": 512,
                "response_mime_type": "application/json",
            },
        )

    async def parse_transaction_text(self, raw_text: str) -> ParsedTransaction:
        """
        Extract amount, description, date, category and card digits.

        Raises:
            ParseError: if the model fails or returns unusable data
        """
        categories = [cat.value for cat in TransactionCategory]

        prompt = f"""Extract transaction details from this single message: "{raw_text}"

Use Indian context. Respond with ONLY a JSON object in this exact format:
{{"amount": 1234.5, "description": "merchant", "date": "YYYY-MM-DD", "category": "one of the categories", "cardLastFour": "1234"}}

Available categories: {', '.join(categories)}
If unsure about the category, use "Other"."""

        try:
            response = await self._model.generate_content_async(prompt)
            data = _extract_json(response.text)
            return ParsedTransaction.model_validate(data)
        except Exception as e:
            logger.info("transaction_parse_failed", error=str(e))
            raise ParseError("SMS parsing failed.") from e


async def intelligence_unavailable(bank_name: str, variant_name: str) -> CardIntelligence:
    """Stand-in collaborator used when AI features are switched off."""
    raise EnrichmentError("Card intelligence is disabled")


async def parsing_unavailable(raw_text: str) -> ParsedTransaction:
    """Stand-in collaborator used when AI features are switched off."""
    raise ParseError("Message parsing is disabled")
