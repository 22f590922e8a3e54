"""
Translation Job Model

The TranslationJob value owned by a PipelineOrchestrator, its per-chunk
results, accumulated usage and configuration, plus the snapshot format
written to the checkpoint store.
"""

import time
import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from translation_machine import config as app_config
from translation_machine.ai.exceptions import ConfigurationError, SlotAlreadySetError
from translation_machine.language_codes import is_valid_language_code, languages_match
from translation_machine.translation.chunker import chunk_text, input_budget
from translation_machine.translation.prompts import (
    CUSTOM_STYLE,
    DEFAULT_STYLE,
    STYLE_PRESETS,
    PromptConfig,
    build_prompt,
    build_system_prompt,
)

SNAPSHOT_VERSION = 1

FAILED_MARKER = "[TRANSLATION FAILED: {text}]"
TOO_LARGE_MARKER = "[TRANSLATION FAILED - CHUNK TOO LARGE: {text}]"
PENDING_MARKER = "[UNTRANSLATED: {text}]"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"


class ResultStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Chunk:
    index: int
    text: str


@dataclass(frozen=True)
class ChunkResult:
    """Outcome for one chunk slot."""

    status: ResultStatus = ResultStatus.PENDING
    text: str = ""
    reason: str = ""
    original_text: str = ""
    too_large: bool = False
    suspect: bool = False      # Quality guard still doubted the language
    corrected: bool = False    # A corrective re-request was issued

    @classmethod
    def success(cls, text: str, suspect: bool = False, corrected: bool = False) -> "ChunkResult":
        return cls(ResultStatus.SUCCESS, text=text, suspect=suspect, corrected=corrected)

    @classmethod
    def failed(cls, reason: str, original_text: str, too_large: bool = False) -> "ChunkResult":
        return cls(ResultStatus.FAILED, reason=reason, original_text=original_text, too_large=too_large)

    @property
    def is_pending(self) -> bool:
        return self.status is ResultStatus.PENDING

    @property
    def is_success(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status is ResultStatus.FAILED

    @property
    def outcome(self) -> str:
        """Short label used in progress events."""
        if self.is_failed:
            return "too_large" if self.too_large else "failed"
        if self.is_success:
            return "suspect" if self.suspect else "success"
        return "pending"

    def render(self, source_text: str) -> str:
        """Text for export: the translation, or an inline failure marker."""
        if self.is_success:
            return self.text
        if self.is_failed:
            marker = TOO_LARGE_MARKER if self.too_large else FAILED_MARKER
            return marker.format(text=self.original_text or source_text)
        return PENDING_MARKER.format(text=source_text)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkResult":
        return cls(
            status=ResultStatus(data.get("status", ResultStatus.PENDING.value)),
            text=data.get("text", ""),
            reason=data.get("reason", ""),
            original_text=data.get("original_text", ""),
            too_large=bool(data.get("too_large", False)),
            suspect=bool(data.get("suspect", False)),
            corrected=bool(data.get("corrected", False)),
        )


@dataclass
class Usage:
    """Accumulated token counts and cost. Only ever grows."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, input_tokens: int, output_tokens: int, cost: float) -> None:
        if input_tokens < 0 or output_tokens < 0 or cost < 0:
            raise ValueError("Usage can only increase")
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.cost += cost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "cost": self.cost,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Usage":
        return cls(
            input_tokens=int(data.get("input_tokens", 0)),
            output_tokens=int(data.get("output_tokens", 0)),
            cost=float(data.get("cost", 0.0)),
        )


@dataclass(frozen=True)
class JobConfig:
    """Model, prompt and chunk budget for a job. Fixed once translation starts."""

    model: str
    system_prompt: str
    chunk_size: int = app_config.DEFAULT_CHUNK_SIZE_TOKENS
    source_language: str = "pt"
    target_language: str = "en"
    style: str = DEFAULT_STYLE
    temperature: float = app_config.DEFAULT_TEMPERATURE

    @property
    def chunk_budget(self) -> int:
        """Token budget left for chunk text after the system prompt."""
        return input_budget(self.chunk_size, self.system_prompt)

    def prompt(self) -> PromptConfig:
        return build_prompt(self.system_prompt, self.source_language, self.target_language, self.temperature)

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On an unknown model or language, empty prompt or bad budget.
        """
        if app_config.get_model_pricing(self.model) is None:
            raise ConfigurationError(
                f"Unsupported model '{self.model}'",
                code="unknown_model",
                details={"model": self.model, "supported": sorted(app_config.MODEL_PRICING)},
            )
        if not self.system_prompt.strip():
            raise ConfigurationError("System prompt is empty", code="invalid_config",
                                     details={"missing_field": "system_prompt"})
        if self.chunk_size <= 0:
            raise ConfigurationError(f"Chunk size must be positive, got {self.chunk_size}",
                                     code="invalid_config", details={"field": "chunk_size"})
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(f"Temperature out of range: {self.temperature}",
                                     code="invalid_config", details={"field": "temperature"})
        for field_name in ("source_language", "target_language"):
            code = getattr(self, field_name)
            if not is_valid_language_code(code):
                raise ConfigurationError(f"Unknown language code '{code}'", code="invalid_language",
                                         details={"field": field_name})
        if languages_match(self.source_language, self.target_language):
            raise ConfigurationError("Source and target language are the same", code="invalid_language",
                                     details={"source": self.source_language, "target": self.target_language})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobConfig":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]] = None, **overrides) -> "JobConfig":
        """
        Merge request overrides over stored translation settings.

        A style preset is resolved into a system prompt; an explicit
        system_prompt without a style means a custom prompt.
        """
        settings = settings if settings is not None else app_config.load_config()
        values = dict(settings.get('translation', {}))
        values.update({k: v for k, v in overrides.items() if v is not None})

        style = values.get('style') or DEFAULT_STYLE
        if overrides.get('system_prompt') and not overrides.get('style'):
            style = CUSTOM_STYLE
        if style != CUSTOM_STYLE and style not in STYLE_PRESETS:
            raise ConfigurationError(f"Unknown style '{style}'", code="invalid_config",
                                     details={"field": "style", "supported": sorted(STYLE_PRESETS)})

        source_language = values.get('source_language') or "pt"
        target_language = values.get('target_language') or "en"
        try:
            chunk_size = int(values.get('chunk_size') or app_config.DEFAULT_CHUNK_SIZE_TOKENS)
            temperature = float(values.get('temperature', app_config.DEFAULT_TEMPERATURE))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}", code="invalid_config")

        return cls(
            model=values.get('model') or "gpt-4o-mini",
            system_prompt=build_system_prompt(style, source_language, target_language,
                                              values.get('system_prompt') or ""),
            chunk_size=chunk_size,
            source_language=source_language,
            target_language=target_language,
            style=style,
            temperature=temperature,
        )


@dataclass
class TranslationJob:
    """One document's end-to-end translation run."""

    id: str
    chunks: List[Chunk]
    config: JobConfig
    source_descriptor: Dict[str, Any] = field(default_factory=dict)
    cursor: int = 0
    results: List[ChunkResult] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    run_state: RunState = RunState.IDLE
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.results:
            self.results = [ChunkResult() for _ in self.chunks]
        if len(self.results) != len(self.chunks):
            raise ValueError(f"{len(self.results)} results for {len(self.chunks)} chunks")
        if not 0 <= self.cursor <= len(self.chunks):
            raise ValueError(f"Cursor {self.cursor} out of range for {len(self.chunks)} chunks")

    @classmethod
    def create(cls, text: str, config: JobConfig,
               source_descriptor: Optional[Dict[str, Any]] = None) -> "TranslationJob":
        """Chunk a document and wrap it in a new idle job."""
        pieces = chunk_text(text, config.chunk_budget)
        descriptor = dict(source_descriptor or {})
        descriptor.setdefault('size', len(text))
        return cls(
            id=uuid.uuid4().hex,
            chunks=[Chunk(i, piece) for i, piece in enumerate(pieces)],
            config=config,
            source_descriptor=descriptor,
        )

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    @property
    def is_finished(self) -> bool:
        return self.cursor >= len(self.chunks)

    def reset(self) -> None:
        """Clear progress before a fresh start."""
        self.cursor = 0
        self.results = [ChunkResult() for _ in self.chunks]
        self.usage = Usage()

    def record(self, index: int, result: ChunkResult, overwrite: bool = False) -> None:
        """
        Store a chunk outcome.

        Raises:
            SlotAlreadySetError: If the slot is already decided and overwrite is False.
        """
        if not self.results[index].is_pending and not overwrite:
            raise SlotAlreadySetError(
                f"Result for chunk {index} is already {self.results[index].status.value}",
                code="slot_already_set",
                details={"index": index},
            )
        self.results[index] = result

    def advance(self) -> None:
        if self.cursor < len(self.chunks):
            self.cursor += 1

    def failed_indices(self) -> List[int]:
        return [i for i, result in enumerate(self.results) if result.is_failed]

    def summary(self) -> Dict[str, Any]:
        succeeded = sum(1 for r in self.results if r.is_success)
        failed = sum(1 for r in self.results if r.is_failed)
        return {
            "job_id": self.id,
            "run_state": self.run_state.value,
            "total": len(self.chunks),
            "succeeded": succeeded,
            "failed": failed,
            "pending": len(self.chunks) - succeeded - failed,
            "suspect": sum(1 for r in self.results if r.is_success and r.suspect),
            "cursor": self.cursor,
            "usage": self.usage.to_dict(),
        }

    def export_text(self) -> str:
        """Ordered results joined by blank lines, failures marked inline."""
        return "\n\n".join(
            result.render(chunk.text) for chunk, result in zip(self.chunks, self.results)
        )

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "job_id": self.id,
            "timestamp": time.time(),
            "created_at": self.created_at,
            "source_descriptor": dict(self.source_descriptor),
            "config": self.config.to_dict(),
            "chunks": [chunk.text for chunk in self.chunks],
            "cursor": self.cursor,
            "results": [result.to_dict() for result in self.results],
            "usage": self.usage.to_dict(),
            "run_state": self.run_state.value,
        }

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any]) -> "TranslationJob":
        chunks = [Chunk(i, text) for i, text in enumerate(snapshot.get("chunks", []))]
        return cls(
            id=snapshot["job_id"],
            chunks=chunks,
            config=JobConfig.from_dict(snapshot["config"]),
            source_descriptor=dict(snapshot.get("source_descriptor") or {}),
            cursor=int(snapshot.get("cursor", 0)),
            results=[ChunkResult.from_dict(r) for r in snapshot.get("results", [])],
            usage=Usage.from_dict(snapshot.get("usage") or {}),
            run_state=RunState(snapshot.get("run_state", RunState.IDLE.value)),
            created_at=float(snapshot.get("created_at", snapshot.get("timestamp", time.time()))),
        )
