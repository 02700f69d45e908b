# =============================================================================
# POLYMARKET CLAIM VALIDATOR
# Module: claim_validator/extractor.py
# Purpose: LLM extraction collaborator and response parsing
# =============================================================================
#
# Provider priority (fallback), from config/claim_validator.yaml:
#   1. OpenRouter
#   2. OpenAI
# A provider is skipped when its API key env var is unset.
#
# The extractor only turns a prompt into raw model text. Prompt assembly
# and JSON interpretation live here as plain functions so the pipeline
# can use them with any collaborator exposing complete(prompt) -> str.
#
# =============================================================================

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from shared.config_loader import ProviderConfig

logger = logging.getLogger(__name__)

CONTENT_PLACEHOLDER = "{{CONTENT}}"

EXTRACTION_PROMPT = """You are analyzing a trading/prediction market claim from social media. Extract structured information about the claimed trading edge.

<content>
{{CONTENT}}
</content>

Analyze this and return a JSON object with:
{
  "parseConfidence": 0.0-1.0,
  "marketType": "btc" | "crypto" | "weather" | "elections" | "sports" | "economics" | "events" | "unknown",
  "strategyType": "momentum" | "mean-reversion" | "breakout" | "arbitrage" | "structural" | "information" | "sentiment" | "unknown",
  "edgeSource": "structural" | "informational" | "behavioral" | "technical" | "fundamental" | "unknown",
  "summary": "One paragraph summary of the claimed edge",
  "parameters": {
    "windows": [numbers if mentioned],
    "thresholds": [price levels, percentages],
    "ratios": [z-scores, ratios],
    "timeframes": ["5 minutes", "1 hour", etc],
    "indicators": ["MA", "RSI", etc],
    "entryConditions": ["description of when to enter"],
    "exitConditions": ["description of when to exit"]
  },
  "marketIdentifiers": {
    "keywords": ["bitcoin", "election", etc],
    "strikes": [100000, 95000] if price targets mentioned,
    "expirations": ["March 2026", "Q2"] if deadlines mentioned,
    "specificMarkets": ["BTC > $100k by March"]
  },
  "claimedEdge": {
    "returnPercent": number if claimed,
    "sharpeRatio": number if claimed,
    "winRate": number if claimed,
    "description": "what they claim the edge is"
  },
  "warnings": ["any red flags or unclear aspects"]
}

Be conservative with parseConfidence. If the post is vague or hype without specifics, confidence should be low (<0.5).
If there's no actual trading claim, set marketType and strategyType to "unknown".
Return ONLY the JSON object, no other text."""


class ExtractionError(Exception):
    """The extraction collaborator produced no usable structured result."""


def build_extraction_prompt(sanitized_content: str) -> str:
    """Embed sanitized content into the fixed instruction template."""
    return EXTRACTION_PROMPT.replace(CONTENT_PLACEHOLDER, sanitized_content)


def _balanced_end(text: str, start: int) -> int:
    """Index just past the brace that closes text[start], or len(text)."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return len(text)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Return the first top-level JSON object embedded in text.

    Surrounding prose (or a markdown fence) is ignored. Objects nested
    inside a malformed candidate are never returned on their own.

    Raises:
        ExtractionError: If no JSON object can be decoded
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", _balanced_end(text, start))
            continue
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)
    raise ExtractionError("Failed to extract JSON from model response")


class LLMExtractor:
    """
    OpenAI-compatible chat completion client with provider fallback.
    """

    def __init__(
        self,
        providers: Sequence[ProviderConfig],
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ):
        """
        Initialize the extractor.

        Args:
            providers: Providers in fallback order
            max_tokens: Completion token budget
            temperature: Sampling temperature
        """
        self.providers = list(providers)
        self.max_tokens = max_tokens
        self.temperature = temperature

    @staticmethod
    def _get_client(provider: ProviderConfig) -> Optional[OpenAI]:
        api_key = provider.api_key
        if not api_key:
            return None
        kwargs: dict = {"api_key": api_key}
        if provider.base_url:
            kwargs["base_url"] = provider.base_url
        return OpenAI(**kwargs)

    def available_providers(self) -> List[str]:
        """Names of providers whose API key is set."""
        return [p.name for p in self.providers if p.api_key]

    def complete(self, prompt: str) -> str:
        """
        Send the prompt and return the raw model text.

        Raises:
            ExtractionError: No provider configured, or all providers failed
        """
        errors = []
        for provider in self.providers:
            client = self._get_client(provider)
            if client is None:
                continue

            try:
                response = client.chat.completions.create(
                    model=provider.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                )
            except Exception as e:
                logger.warning(f"{provider.name} failed: {e}")
                errors.append(f"{provider.name}: {e}")
                continue

            content = response.choices[0].message.content if response.choices else None
            if not content:
                logger.warning(f"{provider.name} returned an empty completion")
                errors.append(f"{provider.name}: empty completion")
                continue

            logger.info(f"Extraction via {provider.name} ({provider.model})")
            return content

        if not errors:
            raise ExtractionError("No LLM provider available")
        raise ExtractionError(f"All providers failed: {'; '.join(errors)}")
