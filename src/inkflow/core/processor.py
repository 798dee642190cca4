"""Job execution for inkflow.

Each job runs one algorithm over one image in a worker process. Jobs
communicate with the submitter only through messages: zero or more progress
strings followed by exactly one terminal result.

Key components:
- run_job: Top-level picklable function for worker processes
- JobProcessor: Submits jobs, relays progress and enforces
  cancel-by-replacement per slot
"""

import threading
import time
import traceback
from collections.abc import Callable
from concurrent.futures import Future, InvalidStateError, ProcessPoolExecutor
from dataclasses import dataclass
from multiprocessing import Manager
from typing import Any

import structlog

from inkflow.config import EmitterConfig, InkflowSettings, get_default_settings
from inkflow.core.algorithms import get_algorithm
from inkflow.core.boundary import BoundaryCache
from inkflow.core.context import JobContext
from inkflow.core.emitter import PathEmitter
from inkflow.domain import Job, JobResult
from inkflow.exceptions import JobCancelledError, JobFailedError
from inkflow.utils import JobLogger

ProgressCallback = Callable[[str], None]


class QueueReporter:
    """Picklable progress callback that forwards messages to a queue."""

    def __init__(self, queue: Any, job_id: str) -> None:
        self.queue = queue
        self.job_id = job_id

    def __call__(self, message: str) -> None:
        self.queue.put((self.job_id, message))


def run_job(
    job_dict: dict[str, Any],
    emitter_dict: dict[str, Any] | None = None,
    progress: ProgressCallback | None = None,
    cancel_event: Any = None,
    progress_every: int = 100,
    boundary_cache: BoundaryCache | None = None,
) -> dict[str, Any]:
    """Run a single job to completion.

    Top-level function designed to be picklable for use with
    ProcessPoolExecutor. Never raises: failures come back as error
    dictionaries.

    Args:
        job_dict: Serialized job (from Job.to_dict())
        emitter_dict: Serialized emitter configuration
        progress: Optional callback receiving progress messages
        cancel_event: Optional event; once set the job stops at its next checkpoint
        progress_every: Work items between periodic progress messages
        boundary_cache: Optional face-boundary cache owned by the caller

    Returns:
        Dictionary containing either:
        - Success: JobResult.to_dict()
        - Cancelled: {"error": str, "cancelled": True, "job_id": str, "duration_ms": float}
        - Error: {"error": str, "error_type": str, "job_id": str, "traceback": str,
          "duration_ms": float}
    """
    start_time = time.time()
    job_id = job_dict.get("job_id") or "unknown"

    try:
        job = Job.from_dict(job_dict)
        job_id = job.job_id
        emitter_config = EmitterConfig(**(emitter_dict or {}))
        context = JobContext(job.job_id, progress, cancel_event, progress_every)

        algorithm = get_algorithm(job.algorithm)
        context.checkpoint()
        output = algorithm.run(job, context, boundary_cache)

        clip = output.boundary.clip_polygon if output.boundary is not None else None
        segments = PathEmitter(emitter_config, clip).emit_segments(output.pathset)

        duration_ms = (time.time() - start_time) * 1000
        return JobResult(
            job_id=job.job_id,
            algorithm=job.algorithm,
            path=" ".join(segments),
            segments=segments,
            seed=output.seed,
            stroke_width=output.pathset.stroke_width,
            messages=context.messages,
            duration_ms=duration_ms,
        ).to_dict()

    except JobCancelledError as e:
        return {
            "error": str(e),
            "cancelled": True,
            "job_id": job_id,
            "duration_ms": (time.time() - start_time) * 1000,
        }

    except Exception as e:
        return {
            "error": str(e),
            "error_type": type(e).__name__,
            "job_id": job_id,
            "traceback": traceback.format_exc(),
            "duration_ms": (time.time() - start_time) * 1000,
        }


@dataclass
class _Submission:
    job: Job
    outer: Future
    inner: Future
    cancel_event: Any


class JobProcessor:
    """Runs jobs in worker processes with progress and cancel-by-replacement.

    Submitting a job to a slot that already holds an unfinished job cancels
    the older one: a pending job never starts, a running job stops at its next
    checkpoint. Either way its future fails with :class:`JobCancelledError`.

    Example:
        with JobProcessor() as processor:
            future = processor.submit(job, on_progress=print)
            result = future.result()
    """

    def __init__(
        self,
        settings: InkflowSettings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            settings: Inkflow settings (defaults if None)
            logger: Logger to use (module logger if None)
        """
        self.settings = settings or get_default_settings()
        self.logger = logger or structlog.get_logger("inkflow.processor")
        self.job_logger = JobLogger(self.logger)
        self._lock = threading.Lock()
        self._slots: dict[str, _Submission] = {}
        self._callbacks: dict[str, ProgressCallback] = {}
        self._executor: ProcessPoolExecutor | None = None
        self._manager: Any = None
        self._queue: Any = None
        self._listener: threading.Thread | None = None

    def __enter__(self) -> "JobProcessor":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    @property
    def running(self) -> bool:
        return self._executor is not None

    def start(self) -> ProcessPoolExecutor:
        """Start the worker pool and the progress listener.

        Returns:
            The running pool; calling again returns the same pool
        """
        if self._executor is not None:
            return self._executor
        self._manager = Manager()
        self._queue = self._manager.Queue()
        self._executor = ProcessPoolExecutor(max_workers=self.settings.processing.max_workers)
        self._listener = threading.Thread(target=self._listen, name="inkflow-progress", daemon=True)
        self._listener.start()
        self.logger.info(
            "Job processor started",
            max_workers=self.settings.processing.max_workers,
        )
        return self._executor

    def shutdown(self, wait: bool = True) -> None:
        """Cancel pending work and stop the pool."""
        if self._executor is None:
            return
        with self._lock:
            submissions = list(self._slots.values())
        for submission in submissions:
            self._cancel(submission)

        self._executor.shutdown(wait=wait, cancel_futures=True)
        self._queue.put(None)
        if self._listener is not None:
            self._listener.join()
        self._manager.shutdown()
        self._executor = None
        self._listener = None
        self._queue = None
        self._manager = None
        self.logger.info("Job processor stopped")

    def submit(self, job: Job, on_progress: ProgressCallback | None = None) -> Future:
        """Queue a job, replacing any unfinished job in the same slot.

        Args:
            job: Job to run
            on_progress: Optional callback receiving progress messages

        Returns:
            Future resolving to a JobResult, or failing with
            JobCancelledError or JobFailedError
        """
        executor = self.start()

        cancel_event = self._manager.Event()
        if on_progress is not None:
            self._callbacks[job.job_id] = on_progress

        inner = executor.submit(
            run_job,
            job.to_dict(),
            self.settings.emitter.model_dump(),
            QueueReporter(self._queue, job.job_id),
            cancel_event,
            self.settings.processing.progress_every,
        )
        outer: Future = Future()
        submission = _Submission(job=job, outer=outer, inner=inner, cancel_event=cancel_event)

        with self._lock:
            previous = self._slots.get(job.slot)
            self._slots[job.slot] = submission
        if previous is not None and not previous.outer.done():
            self.logger.debug("Replacing job in slot", slot=job.slot, old=previous.job.job_id)
            self._cancel(previous)

        self.job_logger.log_job_submitted(job.job_id, job.algorithm, job.slot)
        inner.add_done_callback(lambda f: self._on_done(submission))
        outer.add_done_callback(lambda f: self._on_outer_done(submission))
        return outer

    def process(self, job: Job, on_progress: ProgressCallback | None = None) -> JobResult:
        """Submit a job and wait for its result."""
        return self.submit(job, on_progress).result()

    def _cancel(self, submission: _Submission) -> None:
        if not submission.inner.cancel():
            submission.cancel_event.set()

    def _on_outer_done(self, submission: _Submission) -> None:
        # Dropping the returned future cancels the job
        if submission.outer.cancelled():
            self._cancel(submission)

    def _on_done(self, submission: _Submission) -> None:
        job = submission.job
        self._callbacks.pop(job.job_id, None)
        with self._lock:
            if self._slots.get(job.slot) is submission:
                del self._slots[job.slot]

        error: Exception | None = None
        result: JobResult | None = None
        if submission.inner.cancelled():
            error = JobCancelledError(job.job_id)
            self.job_logger.log_job_cancelled(job.job_id, reason="cancelled before start")
        else:
            exc = submission.inner.exception()
            if exc is not None:
                error = JobFailedError(job.job_id, str(exc))
                self.job_logger.log_job_error(job.job_id, exc)
            else:
                data = submission.inner.result()
                if data.get("cancelled"):
                    error = JobCancelledError(job.job_id)
                    self.job_logger.log_job_cancelled(job.job_id)
                elif "error" in data:
                    error = JobFailedError(job.job_id, data["error"])
                    self.job_logger.log_job_error(
                        job.job_id,
                        Exception(data["error"]),
                        traceback=data.get("traceback"),
                    )
                else:
                    result = JobResult.from_dict(data)
                    self.job_logger.log_job_complete(
                        job.job_id,
                        result.algorithm,
                        segments=len(result.segments),
                        seed=result.seed,
                        duration_ms=result.duration_ms,
                    )

        try:
            if error is not None:
                submission.outer.set_exception(error)
            else:
                submission.outer.set_result(result)
        except InvalidStateError:
            # The caller cancelled the returned future first
            self.logger.debug("Result dropped for settled future", job_id=job.job_id)

    def _listen(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            job_id, message = item
            self.job_logger.log_job_progress(job_id, message)
            callback = self._callbacks.get(job_id)
            if callback is None:
                continue
            try:
                callback(message)
            except Exception as e:
                self.logger.warning("Progress callback failed", job_id=job_id, error=str(e))
