"""
AI Provider API Implementation

This module contains the HTTP call to an OpenAI-compatible chat completions
endpoint and maps failures onto the translation error hierarchy:
- 429 / rate limit / quota        -> QuotaError
- 413 / context length / too large -> ChunkTooLargeError
- other non-2xx                    -> RemoteError
- timeouts and transport failures  -> TransientRemoteError
"""

from typing import Any, Dict, Optional
import httpx

from translation_machine.logger import get_logger
from translation_machine.ai.exceptions import (
    ChunkTooLargeError,
    QuotaError,
    RemoteError,
    TranslationError,
    TransientRemoteError,
)

logger = get_logger(__name__)

RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests", "quota")
TOO_LARGE_MARKERS = ("context_length_exceeded", "maximum context length", "max_tokens", "too large", "too long")


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    timeout_value = float(timeout_config) if timeout_config else 120.0
    return httpx.Timeout(
        connect=10.0,
        write=60.0,
        read=timeout_value,
        pool=10.0,
    )


def _error_text(response: httpx.Response) -> str:
    try:
        error_json = response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                parts = [error_detail.get("message") or "", error_detail.get("code") or ""]
                return " ".join(p for p in parts if p) or str(error_detail)
            return str(error_detail)
    except Exception:
        pass
    return response.text[:500] if response.text else "API request failed"


def classify_http_error(response: httpx.Response) -> RemoteError:
    """Build the typed error for a non-success response."""
    status_code = response.status_code
    error_text = _error_text(response)
    lowered = error_text.lower()

    if status_code == 429 or any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        return QuotaError(f"Rate limited: {error_text}", status=status_code)
    if status_code == 413 or any(marker in lowered for marker in TOO_LARGE_MARKERS):
        return ChunkTooLargeError(f"Chunk too large: {error_text}", status=status_code)
    return RemoteError(f"API error: {error_text}", status=status_code)


def call_chat_completion(
    client: httpx.Client,
    api_url: str,
    api_key: str,
    body: Dict[str, Any],
    timeout: Optional[Any] = None,
) -> Dict[str, Any]:
    """
    POST one chat completion request and return the decoded JSON payload.

    Raises:
        QuotaError, ChunkTooLargeError, RemoteError, TransientRemoteError
    """
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }

    logger.debug(f"  Calling chat completions (model: {body.get('model')}, max_tokens: {body.get('max_tokens')})...")

    try:
        response = client.post(api_url, headers=headers, json=body, timeout=get_httpx_timeout(timeout))
    except httpx.TimeoutException:
        raise TransientRemoteError("API request timeout")
    except httpx.TransportError as e:
        raise TransientRemoteError(f"API connection failed: {e}")

    if response.is_error:
        error = classify_http_error(response)
        logger.error(f"Chat completion failed: {error}")
        raise error

    try:
        return response.json()
    except ValueError as e:
        raise RemoteError(f"Invalid JSON in API response: {e}", status=response.status_code)


def extract_content(result: Dict[str, Any]) -> str:
    """Pull the assistant message out of a chat completion payload."""
    choices = result.get('choices') or []
    if choices:
        content = (choices[0].get('message') or {}).get('content')
        if content is not None:
            return content
        if choices[0].get('finish_reason') == 'length':
            raise ChunkTooLargeError("Response truncated at max_tokens")
    raise TranslationError("No content in API response", code="empty_response")


def extract_usage(result: Dict[str, Any]) -> Dict[str, int]:
    """Token usage reported by the API."""
    usage = result.get('usage') or {}
    return {
        'prompt_tokens': int(usage.get('prompt_tokens', 0) or 0),
        'completion_tokens': int(usage.get('completion_tokens', 0) or 0),
    }
