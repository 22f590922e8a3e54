"""
AI Translation Service Module

This module provides the client that performs one remote translation call:
- TranslationClient for chunk + prompt -> translated text + usage
- Response token budgeting and cost calculation
- Configuration validation and pre-flight cost estimates

For the HTTP call and error mapping, see ai/providers.py
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from translation_machine import config as app_config
from translation_machine.ai.exceptions import ConfigurationError
from translation_machine.ai.providers import call_chat_completion, extract_content, extract_usage, get_httpx_timeout
from translation_machine.logger import get_logger
from translation_machine.translation.chunker import estimate_tokens
from translation_machine.translation.prompts import PromptConfig

logger = get_logger(__name__)


def validate_ai_config(settings: Optional[Dict[str, Any]] = None) -> None:
    """
    Validate that API credentials are set up.

    Raises:
        ConfigurationError: If the API key or URL is missing, with code and details.
    """
    settings = settings if settings is not None else app_config.load_config()
    openai_config = settings.get('openai', {})

    api_key = openai_config.get('api_key', '')
    if not api_key or api_key == app_config.API_KEY_PLACEHOLDER:
        raise ConfigurationError(
            "OpenAI API key not configured. Please set it in Settings.",
            code="ai_config_missing",
            details={"missing_field": "api_key"}
        )
    if not openai_config.get('api_url'):
        raise ConfigurationError(
            "OpenAI API URL not configured",
            code="ai_config_missing",
            details={"missing_field": "api_url"}
        )


def compute_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Cost in USD from the model's per-1K-token prices."""
    pricing = app_config.get_model_pricing(model)
    if pricing is None:
        raise ConfigurationError(f"No pricing known for model '{model}'", code="unknown_model",
                                 details={"model": model})
    return (input_tokens / 1000) * pricing['input'] + (output_tokens / 1000) * pricing['output']


def max_output_tokens(model: str, text: str) -> int:
    """
    Response token budget for a chunk.

    Estimated from the input size with an expansion multiplier, never below
    the floor and never above the model's completion ceiling.
    """
    ceiling = app_config.get_output_limit(model)
    estimated = math.ceil(estimate_tokens(text) * app_config.OUTPUT_EXPANSION)
    return min(ceiling, max(app_config.MIN_OUTPUT_TOKENS, estimated))


def estimate_cost(text: str, system_prompt: str, model: str) -> Dict[str, Any]:
    """Pre-flight estimate for translating a whole document."""
    input_tokens = estimate_tokens(text + system_prompt)
    output_tokens = math.ceil(input_tokens * app_config.OUTPUT_EXPANSION)
    return {
        'model': model,
        'input_tokens': input_tokens,
        'output_tokens': output_tokens,
        'cost': compute_cost(model, input_tokens, output_tokens),
    }


@dataclass(frozen=True)
class TranslationResponse:
    """Result of a single remote translation call."""

    translated_text: str
    input_tokens: int
    output_tokens: int
    cost: float

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class TranslationClient:
    """
    Performs one blocking chat completion call per translate().

    Without an http_client each call opens and closes its own httpx.Client,
    so an idle job holds no connections. A supplied http_client is used as
    is and stays owned by the caller.
    """

    def __init__(self, api_key: str, api_url: str = app_config.DEFAULT_API_URL,
                 timeout: Any = 120, http_client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._http_client = http_client
        logger.info(f"Initialized translation client for {api_url}")

    @classmethod
    def from_config(cls, settings: Optional[Dict[str, Any]] = None,
                    http_client: Optional[httpx.Client] = None) -> "TranslationClient":
        settings = settings if settings is not None else app_config.load_config()
        validate_ai_config(settings)
        openai_config = settings['openai']
        return cls(
            api_key=openai_config['api_key'],
            api_url=openai_config['api_url'],
            timeout=openai_config.get('timeout', 120),
            http_client=http_client,
        )

    def close(self):
        if self._http_client is not None:
            self._http_client.close()

    def translate(self, chunk_text: str, prompt: PromptConfig, model: str) -> TranslationResponse:
        """
        Translate one chunk.

        Raises:
            QuotaError: The API is rate limiting us
            ChunkTooLargeError: The chunk does not fit the model at this size
            RemoteError / TransientRemoteError: Any other failure
        """
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": prompt.system_prompt},
                {"role": "user", "content": prompt.user_message(chunk_text)},
            ],
            "temperature": prompt.temperature,
            "max_tokens": max_output_tokens(model, chunk_text),
        }

        if self._http_client is not None:
            result = call_chat_completion(self._http_client, self.api_url, self.api_key, body, self.timeout)
        else:
            with httpx.Client(timeout=get_httpx_timeout(self.timeout)) as http_client:
                result = call_chat_completion(http_client, self.api_url, self.api_key, body, self.timeout)
        content = extract_content(result)
        usage = extract_usage(result)
        cost = compute_cost(model, usage['prompt_tokens'], usage['completion_tokens'])

        logger.debug(f"  Received {len(content)} chars (tokens: {usage}, cost: ${cost:.6f})")
        return TranslationResponse(
            translated_text=content,
            input_tokens=usage['prompt_tokens'],
            output_tokens=usage['completion_tokens'],
            cost=cost,
        )
