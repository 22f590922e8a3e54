"""
AI Module

This module provides the remote translation client and its error types.
"""

from translation_machine.ai.exceptions import (
    ChunkTooLargeError,
    ConfigurationError,
    EmptyDocumentError,
    JobStateError,
    QuotaError,
    RemoteError,
    SlotAlreadySetError,
    TranslationError,
    TransientRemoteError,
)
from translation_machine.ai.service import (
    TranslationClient,
    TranslationResponse,
    compute_cost,
    estimate_cost,
    max_output_tokens,
    validate_ai_config,
)

__all__ = [
    'ChunkTooLargeError',
    'ConfigurationError',
    'EmptyDocumentError',
    'JobStateError',
    'QuotaError',
    'RemoteError',
    'SlotAlreadySetError',
    'TranslationClient',
    'TranslationError',
    'TranslationResponse',
    'TransientRemoteError',
    'compute_cost',
    'estimate_cost',
    'max_output_tokens',
    'validate_ai_config',
]
