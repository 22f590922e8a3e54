"""
Background job helpers: each translation job runs its orchestrator loop in a
daemon thread while the HTTP layer pauses, resumes, stops and polls it.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from translation_machine import config as app_config
from translation_machine.ai.exceptions import EmptyDocumentError, JobStateError
from translation_machine.ai.service import TranslationClient
from translation_machine.core.checkpoints import CheckpointStore
from translation_machine.logger import get_logger
from translation_machine.translation.job import JobConfig, RunState, TranslationJob
from translation_machine.translation.orchestrator import PipelineOrchestrator
from translation_machine.translation.progress import ProgressEvent
from translation_machine.translation.retry import RetryController, RetryPolicy

logger = get_logger(__name__)

# Builds the remote client from settings; replaced in tests
client_factory: Callable[[Dict[str, Any]], Any] = TranslationClient.from_config

_PROGRESS_HISTORY_LIMIT = 200


@dataclass
class JobHandle:
    """In-memory registration of a job and the orchestrator driving it."""

    job_id: str
    job: TranslationJob = field(repr=False)
    orchestrator: PipelineOrchestrator = field(repr=False)
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    last_update: float = field(default_factory=time.time)
    progress: Dict[str, Any] = field(default_factory=dict)
    progress_history: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    thread: Optional[threading.Thread] = field(default=None, repr=False)


_jobs: Dict[str, JobHandle] = {}
_jobs_lock = threading.Lock()
_JOB_RETENTION_SECONDS = 600  # Retain finished job info for 10 minutes


def _build_orchestrator(settings: Dict[str, Any], handle_ref: List[JobHandle]) -> PipelineOrchestrator:
    pipeline = settings.get('pipeline', {})
    max_attempts = settings.get('openai', {}).get('max_retries', app_config.DEFAULT_MAX_ATTEMPTS)

    def on_progress(event: ProgressEvent):
        serialized = event.to_dict()
        with _jobs_lock:
            handle = handle_ref[0]
            handle.progress = serialized
            handle.progress_history.append(serialized)
            del handle.progress_history[:-_PROGRESS_HISTORY_LIMIT]
            handle.last_update = time.time()

    return PipelineOrchestrator(
        client=client_factory(settings),
        store=CheckpointStore(),
        retry=RetryController(RetryPolicy(max_attempts=int(max_attempts))),
        progress_callback=on_progress,
        checkpoint_every=int(pipeline.get('checkpoint_every', app_config.DEFAULT_CHECKPOINT_EVERY)),
        pause_poll_interval=float(pipeline.get('pause_poll_interval', app_config.DEFAULT_PAUSE_POLL_INTERVAL)),
    )


def _register(job: TranslationJob, settings: Dict[str, Any]) -> JobHandle:
    handle_ref: List[JobHandle] = []
    orchestrator = _build_orchestrator(settings, handle_ref)
    handle = JobHandle(job_id=job.id, job=job, orchestrator=orchestrator)
    handle_ref.append(handle)

    with _jobs_lock:
        _cleanup_jobs_locked()
        existing = _jobs.get(job.id)
        if existing and existing.orchestrator.is_active:
            raise JobStateError(f"Job {job.id} is already running", code="already_running")
        _jobs[job.id] = handle
    return handle


def _launch(handle: JobHandle, action: Callable[[], Dict[str, Any]], label: str) -> None:
    """Run an orchestrator call in a daemon thread."""
    handle.finished_at = None
    handle.error = None
    thread = threading.Thread(
        target=_run_worker,
        args=(handle, action, label),
        name=f"translation-{label}-{handle.job_id}",
        daemon=True,
    )
    handle.thread = thread
    thread.start()


def _run_worker(handle: JobHandle, action: Callable[[], Dict[str, Any]], label: str):
    """Worker function executed in a background thread."""
    handle.started_at = handle.started_at or time.time()
    handle.last_update = time.time()
    try:
        summary = action()
        logger.info(
            "Job %s %s finished (state=%s, succeeded=%s/%s, failed=%s)",
            handle.job_id,
            label,
            summary["run_state"],
            summary["succeeded"],
            summary["total"],
            summary["failed"],
        )
    except Exception as exc:
        handle.error = f"{type(exc).__name__}: {exc}"
        logger.exception("✗ Job %s %s failed: %s", handle.job_id, label, handle.error)
    finally:
        handle.last_update = time.time()
        if handle.orchestrator.state in (RunState.COMPLETED, RunState.STOPPED) or handle.error:
            handle.finished_at = handle.last_update


def create_translation_job(
    text: str,
    source_descriptor: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> JobHandle:
    """
    Chunk a document and start translating it in the background.

    Raises:
        ConfigurationError: Missing API key, unknown model or style, bad prompt
        EmptyDocumentError: The document has no translatable text
    """
    settings = app_config.load_config()
    config = JobConfig.from_settings(settings, **(overrides or {}))
    config.validate()

    job = TranslationJob.create(text, config, source_descriptor)
    if not job.chunks:
        raise EmptyDocumentError("Document has no text to translate", code="empty_document")

    handle = _register(job, settings)
    _launch(handle, lambda: handle.orchestrator.start(job), "translate")
    logger.info(
        "Translation job %s started (%s chunks, model=%s, %s -> %s)",
        job.id,
        job.total_chunks,
        config.model,
        config.source_language,
        config.target_language,
    )
    return handle


def restore_job(job_id: str) -> Optional[JobHandle]:
    """
    Load a saved checkpoint and continue it. Unfinished jobs resume in the
    background; completed ones are only registered (export / retry-failed).

    Returns:
        The handle, or None when no checkpoint exists for job_id.
    """
    snapshot = CheckpointStore().get(job_id)
    if snapshot is None:
        return None

    settings = app_config.load_config()
    job = TranslationJob.from_snapshot(snapshot)
    handle = _register(job, settings)
    handle.job = handle.orchestrator.restore(snapshot)

    if handle.job.run_state is RunState.PAUSED:
        _launch(handle, handle.orchestrator.resume, "resume")
        logger.info("Resuming job %s from chunk %s/%s", job_id, handle.job.cursor, handle.job.total_chunks)
    return handle


def get_job(job_id: str) -> Optional[JobHandle]:
    """Fetch a job by ID (if still retained)."""
    with _jobs_lock:
        handle = _jobs.get(job_id)
        if handle and handle.finished_at and (time.time() - handle.finished_at) > _JOB_RETENTION_SECONDS:
            _jobs.pop(job_id, None)
            return None
        return handle


def _require(job_id: str) -> JobHandle:
    handle = get_job(job_id)
    if handle is None:
        raise JobStateError(f"Job {job_id} not found or expired", code="job_not_found")
    return handle


def pause_job(job_id: str) -> JobHandle:
    handle = _require(job_id)
    handle.orchestrator.pause()
    return handle


def resume_job(job_id: str) -> JobHandle:
    """Release a paused loop, or restart the loop in a new thread if none is alive."""
    handle = _require(job_id)
    if handle.orchestrator.is_active:
        handle.orchestrator.resume()
    else:
        if handle.orchestrator.state is not RunState.PAUSED:
            raise JobStateError(f"Cannot resume a {handle.orchestrator.state.value} job", code="invalid_state")
        _launch(handle, handle.orchestrator.resume, "resume")
    return handle


def stop_job(job_id: str) -> JobHandle:
    handle = _require(job_id)
    handle.orchestrator.stop()
    return handle


def retry_failed_job(job_id: str) -> JobHandle:
    """Re-translate failed chunks of a completed job in the background."""
    handle = _require(job_id)
    summary = handle.orchestrator.summary()
    if summary["run_state"] != RunState.COMPLETED.value:
        raise JobStateError(f"Retry is only available for completed jobs, not {summary['run_state']}",
                            code="invalid_state")
    if summary["failed"]:
        _launch(handle, handle.orchestrator.retry_failed, "retry")
    return handle


def job_summary(handle: JobHandle) -> Dict[str, Any]:
    try:
        return handle.orchestrator.summary()
    except JobStateError:
        # Worker thread has not picked the job up yet
        return handle.job.summary()


def serialize_job(handle: JobHandle) -> Dict[str, Any]:
    """Convert a JobHandle into a JSON-safe dict."""
    with _jobs_lock:
        progress = dict(handle.progress)
        history = list(handle.progress_history)
    return {
        "job_id": handle.job_id,
        "source": dict(handle.job.source_descriptor),
        "model": handle.job.config.model,
        "summary": job_summary(handle),
        "progress": progress,
        "progress_history": history,
        "error": handle.error,
        "created_at": handle.created_at,
        "started_at": handle.started_at,
        "finished_at": handle.finished_at,
        "last_update": handle.last_update,
    }


def _cleanup_jobs_locked():
    """Remove finished jobs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        job_id
        for job_id, handle in _jobs.items()
        if handle.finished_at and (now - handle.finished_at) > _JOB_RETENTION_SECONDS
    ]
    for job_id in expired:
        _jobs.pop(job_id, None)
