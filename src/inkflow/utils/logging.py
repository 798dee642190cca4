"""Structured logging setup and job lifecycle accounting."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import structlog

_CONSOLE_HANDLER = "inkflow-console"
_FILE_HANDLER = "inkflow-file"


@dataclass
class JobStats:
    """Statistics across the jobs of one processor."""

    completed_count: int = 0
    empty_count: int = 0
    cancelled_count: int = 0
    error_count: int = 0
    segments_emitted: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)
    job_timings_ms: list[float] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        """Jobs that reached a terminal state."""
        return self.completed_count + self.cancelled_count + self.error_count

    @property
    def mean_duration_ms(self) -> float:
        """Average wall time of completed jobs."""
        if not self.job_timings_ms:
            return 0.0
        return sum(self.job_timings_ms) / len(self.job_timings_ms)


def configure_logging(
    log_file: Path | None = None,
    console_level: str = "WARNING",
    file_level: str = "DEBUG",
    quiet: bool = False,
) -> structlog.stdlib.BoundLogger:
    """Route structlog through stdlib handlers for the console and an optional file.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        log_file: Path to log file (no file output if None)
        console_level: Logging level for console output
        file_level: Logging level for file output
        quiet: If True, suppress console output except errors

    Returns:
        Configured structlog logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        if handler.get_name() in (_CONSOLE_HANDLER, _FILE_HANDLER):
            root_logger.removeHandler(handler)
            handler.close()

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.set_name(_FILE_HANDLER)
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.set_name(_CONSOLE_HANDLER)
    console_handler.setLevel(logging.ERROR if quiet else getattr(logging, console_level.upper()))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("inkflow")
    logger.info("Logging initialized", log_file=str(log_file) if log_file else None, level=file_level)

    return logger


class JobLogger:
    """Logger for tracking job lifecycle and statistics."""

    def __init__(self, logger: structlog.stdlib.BoundLogger) -> None:
        self._logger = logger
        self._stats = JobStats()

    def log_job_submitted(self, job_id: str, algorithm: str, slot: str) -> None:
        """Log a job handed to the worker pool."""
        self._logger.debug("Job submitted", job_id=job_id, algorithm=algorithm, slot=slot)

    def log_job_progress(self, job_id: str, message: str) -> None:
        """Log a progress message from a running job."""
        self._logger.debug("Job progress", job_id=job_id, message=message)

    def log_job_complete(
        self,
        job_id: str,
        algorithm: str,
        segments: int,
        seed: int | None,
        duration_ms: float,
    ) -> None:
        """Log a finished job."""
        self._logger.info(
            "Job completed",
            job_id=job_id,
            algorithm=algorithm,
            segments=segments,
            seed=seed,
            duration_ms=round(duration_ms, 2),
        )
        self._stats.completed_count += 1
        self._stats.segments_emitted += segments
        self._stats.job_timings_ms.append(duration_ms)
        if segments == 0:
            self._stats.empty_count += 1

    def log_job_cancelled(self, job_id: str, reason: str = "replaced") -> None:
        """Log a cancelled job."""
        self._logger.info("Job cancelled", job_id=job_id, reason=reason)
        self._stats.cancelled_count += 1

    def log_job_error(
        self,
        job_id: str,
        error: Exception,
        traceback: str | None = None,
    ) -> None:
        """Log a failed job."""
        self._logger.error(
            "Job failed",
            job_id=job_id,
            error=str(error),
            error_type=type(error).__name__,
            traceback=traceback,
        )
        self._stats.error_count += 1
        self._stats.errors.append((job_id, str(error)))

    @property
    def stats(self) -> JobStats:
        """Get current job statistics."""
        return self._stats
