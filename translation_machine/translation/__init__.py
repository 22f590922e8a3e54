"""
Translation module - Core translation pipeline

This module provides:
- chunk_text: Paragraph/sentence aware document splitting
- Prompt building and style presets
- Quality guard for untranslated output
- RetryController: Bounded retries with backoff
- TranslationJob / PipelineOrchestrator: The resumable job and its driver
"""

# chunker and prompts first: ai.service imports them while this package initializes
from translation_machine.translation.chunker import (
    estimate_tokens,
    chunk_text,
    input_budget,
)
from translation_machine.translation.prompts import (
    STYLE_PRESETS,
    PromptConfig,
    build_system_prompt,
    build_prompt,
    build_corrective_prompt,
    check_system_prompt,
)
from translation_machine.translation.quality import Assessment, Verdict, assess
from translation_machine.translation.retry import FinalFailure, RetryController, RetryPolicy
from translation_machine.translation.progress import ProgressEvent
from translation_machine.translation.job import (
    Chunk,
    ChunkResult,
    JobConfig,
    RunState,
    TranslationJob,
    Usage,
)
from translation_machine.translation.orchestrator import PipelineOrchestrator
