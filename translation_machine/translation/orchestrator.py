"""
Pipeline Orchestrator

Owns a TranslationJob while it runs: walks the chunks in order through the
retry controller, translation client and quality guard, records results and
usage, writes checkpoints and emits progress events.

States: idle -> running -> {paused, stopped, completed}; paused -> running
or stopped. Pause and stop only take effect between chunks; an in-flight
remote call always finishes first.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from translation_machine.ai.exceptions import EmptyDocumentError, JobStateError, TranslationError
from translation_machine.config import DEFAULT_CHECKPOINT_EVERY, DEFAULT_PAUSE_POLL_INTERVAL
from translation_machine.logger import get_logger
from translation_machine.translation.job import ChunkResult, RunState, TranslationJob, Usage, Chunk
from translation_machine.translation.progress import ProgressEvent
from translation_machine.translation.prompts import build_corrective_prompt
from translation_machine.translation.quality import assess
from translation_machine.translation.retry import FinalFailure, RetryController

logger = get_logger(__name__)


class PipelineOrchestrator:
    """
    Drives one job at a time, strictly sequentially.

    Args:
        client: Object with translate(chunk_text, prompt, model) -> TranslationResponse
        store: Optional checkpoint store with put(job_id, snapshot)
        retry: Retry controller; defaults to the standard policy
        progress_callback: Called with a ProgressEvent after each chunk attempt
        checkpoint_every: Write a checkpoint every N processed chunks
        pause_poll_interval: Seconds between pause-flag checks while paused
    """

    def __init__(
        self,
        client,
        store=None,
        retry: Optional[RetryController] = None,
        progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
        checkpoint_every: int = DEFAULT_CHECKPOINT_EVERY,
        pause_poll_interval: float = DEFAULT_PAUSE_POLL_INTERVAL,
    ):
        self.client = client
        self.store = store
        self.retry = retry or RetryController()
        self.progress_callback = progress_callback
        self.checkpoint_every = max(1, int(checkpoint_every))
        self.pause_poll_interval = pause_poll_interval

        self._job: Optional[TranslationJob] = None
        self._lock = threading.Lock()
        self._checkpoint_lock = threading.Lock()
        self._resume_event = threading.Event()
        self._loop_active = False
        self._last_event: Optional[ProgressEvent] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def job(self) -> Optional[TranslationJob]:
        return self._job

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._job.run_state if self._job else RunState.IDLE

    @property
    def last_progress(self) -> Optional[ProgressEvent]:
        return self._last_event

    @property
    def is_active(self) -> bool:
        """True while a processing loop is running (or blocked on pause)."""
        with self._lock:
            return self._loop_active

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            if self._job is None:
                raise JobStateError("No job loaded", code="no_job")
            return self._job.summary()

    def export_text(self) -> str:
        with self._lock:
            if self._job is None:
                raise JobStateError("No job loaded", code="no_job")
            return self._job.export_text()

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def start(self, job: TranslationJob) -> Dict[str, Any]:
        """
        Start translating a job from its first chunk. Runs the loop in the
        calling thread and returns the job summary when the loop ends.

        Raises:
            EmptyDocumentError: The job has no chunks
            ConfigurationError: The job configuration is invalid
            JobStateError: A loop is already running or the job is not idle
        """
        if not job.chunks:
            raise EmptyDocumentError("Document has no text to translate", code="empty_document",
                                     details={"job_id": job.id})
        job.config.validate()

        with self._lock:
            if self._loop_active:
                raise JobStateError("A translation loop is already running", code="already_running",
                                    details={"job_id": self._job.id if self._job else None})
            if job.run_state is not RunState.IDLE:
                raise JobStateError(
                    f"Job {job.id} is {job.run_state.value}; create a new job to restart",
                    code="invalid_state", details={"state": job.run_state.value},
                )
            job.reset()
            job.run_state = RunState.RUNNING
            self._job = job
            self._loop_active = True
            self._resume_event.set()

        logger.info(
            f"Starting job {job.id}: {job.total_chunks} chunks, model={job.config.model}, "
            f"budget={job.config.chunk_budget} tokens"
        )
        self._checkpoint("start")
        return self._drive(self._run_chunks)

    def pause(self) -> None:
        """Request a pause; honoured at the next chunk boundary."""
        with self._lock:
            job = self._require_job()
            if job.run_state is not RunState.RUNNING:
                raise JobStateError(f"Cannot pause a {job.run_state.value} job", code="invalid_state",
                                    details={"state": job.run_state.value})
            job.run_state = RunState.PAUSED
            self._resume_event.clear()
        logger.info(f"Pause requested for job {job.id} at chunk {job.cursor}")
        self._checkpoint("pause")

    def resume(self) -> Dict[str, Any]:
        """
        Continue a paused job from its cursor.

        If a loop is blocked on the pause it is released; otherwise (a job
        restored from a checkpoint) the loop runs in the calling thread.
        Resuming a running job is a no-op.
        """
        with self._lock:
            job = self._require_job()
            if job.run_state is RunState.RUNNING:
                logger.debug(f"Job {job.id} already running, resume ignored")
                return job.summary()
            if job.run_state is not RunState.PAUSED:
                raise JobStateError(f"Cannot resume a {job.run_state.value} job", code="invalid_state",
                                    details={"state": job.run_state.value})
            job.run_state = RunState.RUNNING
            self._resume_event.set()
            if self._loop_active:
                logger.info(f"Resuming job {job.id} at chunk {job.cursor}")
                return job.summary()
            self._loop_active = True

        logger.info(f"Resuming job {job.id} from checkpoint at chunk {job.cursor}/{job.total_chunks}")
        return self._drive(self._run_chunks)

    def stop(self) -> None:
        """Stop the job for good; no further chunks are processed."""
        with self._lock:
            job = self._require_job()
            if job.run_state not in (RunState.RUNNING, RunState.PAUSED):
                raise JobStateError(f"Cannot stop a {job.run_state.value} job", code="invalid_state",
                                    details={"state": job.run_state.value})
            job.run_state = RunState.STOPPED
            self._resume_event.set()
        logger.info(f"Stop requested for job {job.id} at chunk {job.cursor}")
        self._checkpoint("stop")

    def retry_failed(self) -> Dict[str, Any]:
        """
        Re-run only the chunks recorded as failed, overwriting those slots.

        With no failed chunks this is a no-op: no state change, no remote calls.
        """
        with self._lock:
            job = self._require_job()
            if job.run_state is not RunState.COMPLETED:
                raise JobStateError(f"Retry is only available for completed jobs, not {job.run_state.value}",
                                    code="invalid_state", details={"state": job.run_state.value})
            failed = job.failed_indices()
            if not failed:
                logger.info(f"No failed chunks to retry for job {job.id}")
                return job.summary()
            if self._loop_active:
                raise JobStateError("A translation loop is already running", code="already_running")
            job.run_state = RunState.RUNNING
            self._loop_active = True
            self._resume_event.set()

        logger.info(f"Retrying {len(failed)} failed chunks for job {job.id}: {[i + 1 for i in failed]}")
        return self._drive(lambda: self._run_retry(failed))

    def restore(self, snapshot: Dict[str, Any]) -> TranslationJob:
        """
        Load a job from a checkpoint snapshot.

        Completed jobs stay completed (retry_failed is available); anything
        else comes back paused at its saved cursor, ready for resume().
        """
        job = TranslationJob.from_snapshot(snapshot)
        with self._lock:
            if self._loop_active:
                raise JobStateError("A translation loop is already running", code="already_running")
            if job.run_state is not RunState.COMPLETED:
                job.run_state = RunState.PAUSED
            self._job = job
            self._resume_event.clear()
        logger.info(f"Restored job {job.id} at chunk {job.cursor}/{job.total_chunks} ({job.run_state.value})")
        return job

    # ------------------------------------------------------------------
    # Processing loops
    # ------------------------------------------------------------------

    def _require_job(self) -> TranslationJob:
        if self._job is None:
            raise JobStateError("No job loaded", code="no_job")
        return self._job

    def _drive(self, loop: Callable[[], None]) -> Dict[str, Any]:
        try:
            loop()
        finally:
            with self._lock:
                self._loop_active = False
        return self.summary()

    def _await_running(self) -> bool:
        """Block while paused. Returns False once the job is no longer running."""
        saved = False
        while True:
            with self._lock:
                state = self._job.run_state
            if state is RunState.RUNNING:
                return True
            if state is not RunState.PAUSED:
                return False
            if not saved:
                # pause() saved before the in-flight chunk landed
                self._checkpoint("paused at boundary")
                saved = True
            self._resume_event.wait(self.pause_poll_interval)

    def _run_chunks(self) -> None:
        job = self._job
        while True:
            with self._lock:
                if job.is_finished:
                    break
            if not self._await_running():
                break

            with self._lock:
                index = job.cursor
                if not job.results[index].is_pending:
                    # Already decided in a previous run
                    job.advance()
                    continue
            chunk = job.chunks[index]

            logger.debug(f"Chunk {index + 1}/{job.total_chunks}: starting translation")
            result, spent = self._translate_chunk(chunk)

            with self._lock:
                job.record(index, result)
                job.usage.add(spent.input_tokens, spent.output_tokens, spent.cost)
                job.advance()
                event = self._progress_event(index, result, "translating")
                due = job.cursor % self.checkpoint_every == 0 and not job.is_finished

            self._emit(event)
            if due:
                self._checkpoint("periodic")

        self._finish()

    def _run_retry(self, indices: List[int]) -> None:
        job = self._job
        for index in indices:
            if not self._await_running():
                break
            result, spent = self._translate_chunk(job.chunks[index])
            with self._lock:
                job.record(index, result, overwrite=True)
                job.usage.add(spent.input_tokens, spent.output_tokens, spent.cost)
                event = self._progress_event(index, result, "retrying")
            self._emit(event)

        self._finish()

    def _finish(self) -> None:
        job = self._job
        with self._lock:
            completed = job.is_finished and job.run_state in (RunState.RUNNING, RunState.PAUSED)
            if completed:
                job.run_state = RunState.COMPLETED
                summary = job.summary()
                event = self._progress_event(None, None, "completed")

        if not completed:
            logger.info(f"Job {job.id} halted in state {job.run_state.value} at chunk {job.cursor}")
            return

        self._checkpoint("complete")
        if summary["failed"]:
            logger.warning(
                f"Job {job.id} completed with issues: {summary['succeeded']}/{summary['total']} chunks "
                f"translated, {summary['failed']} failed"
            )
        else:
            logger.info(f"Job {job.id} completed: all {summary['total']} chunks translated")
        self._emit(event)

    # ------------------------------------------------------------------
    # Per-chunk pipeline
    # ------------------------------------------------------------------

    def _translate_chunk(self, chunk: Chunk) -> Tuple[ChunkResult, Usage]:
        """Retry controller around (translation client + quality guard)."""
        config = self._job.config
        prompt = config.prompt()

        def attempt() -> Tuple[ChunkResult, Usage]:
            response = self.client.translate(chunk.text, prompt, config.model)
            spent = Usage()
            spent.add(response.input_tokens, response.output_tokens, response.cost)

            verdict = assess(response.translated_text, config.target_language, config.source_language)
            if not verdict.is_suspect:
                return ChunkResult.success(response.translated_text), spent

            logger.warning(f"Chunk {chunk.index + 1} looks untranslated, issuing corrective request")
            corrective = build_corrective_prompt(config.source_language, config.target_language)
            try:
                retried = self.client.translate(chunk.text, corrective, config.model)
            except TranslationError as e:
                logger.warning(f"Corrective request for chunk {chunk.index + 1} failed: {e}. Keeping first result")
                return ChunkResult.success(response.translated_text, suspect=True), spent

            spent.add(retried.input_tokens, retried.output_tokens, retried.cost)
            still_suspect = assess(retried.translated_text, config.target_language,
                                   config.source_language).is_suspect
            if still_suspect:
                logger.error(f"Corrective request for chunk {chunk.index + 1} also came back suspect")
            return ChunkResult.success(retried.translated_text, suspect=still_suspect, corrected=True), spent

        outcome = self.retry.run(attempt, chunk.text)
        if isinstance(outcome, FinalFailure):
            logger.error(f"Chunk {chunk.index + 1} failed after {outcome.attempts} attempts: {outcome.reason}")
            return ChunkResult.failed(outcome.reason, outcome.original_text, outcome.too_large), Usage()
        return outcome

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _progress_event(self, index: Optional[int], result: Optional[ChunkResult], phase: str) -> ProgressEvent:
        """Build a progress event. Call with the lock held."""
        job = self._job
        return ProgressEvent(
            job_id=job.id,
            cursor=job.cursor,
            total_chunks=job.total_chunks,
            tokens_used=job.usage.total_tokens,
            cost_so_far=job.usage.cost,
            last_chunk_outcome=result.outcome if result else job.run_state.value,
            chunk_index=index,
            phase=phase,
            success_count=sum(1 for r in job.results if r.is_success),
            failure_count=sum(1 for r in job.results if r.is_failed),
        )

    def _emit(self, event: ProgressEvent) -> None:
        self._last_event = event
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(event)
        except Exception:
            logger.exception(f"Progress callback failed for job {event.job_id}")

    def _checkpoint(self, reason: str) -> None:
        """Persist a snapshot. Failures are logged and never abort the job."""
        if self.store is None:
            return
        # Writes land in snapshot order, so the stored copy is never older than the last one taken
        with self._checkpoint_lock:
            with self._lock:
                job_id = self._job.id
                snapshot = self._job.to_snapshot()
            try:
                self.store.put(job_id, snapshot)
            except Exception as e:
                logger.error(f"Checkpoint ({reason}) failed for job {job_id}: {e}")
