"""Per-job progress and cancellation hooks."""

from collections.abc import Callable
from typing import Any

from inkflow.exceptions import JobCancelledError

ProgressCallback = Callable[[str], None]


class JobContext:
    """Channel between a running algorithm and whoever submitted it.

    Long-running loops call :meth:`checkpoint` between iterations. It raises
    :class:`JobCancelledError` once the job has been replaced, and otherwise
    forwards an optional status message.

    Args:
        job_id: Identifier used in cancellation errors
        progress: Callback receiving each status message
        cancel_event: Any object with an ``is_set()`` method
        progress_every: Work items between periodic progress messages
    """

    def __init__(
        self,
        job_id: str = "",
        progress: ProgressCallback | None = None,
        cancel_event: Any = None,
        progress_every: int = 100,
    ) -> None:
        self.job_id = job_id
        self.progress_every = max(1, progress_every)
        self._progress = progress
        self._cancel_event = cancel_event
        self.messages: list[str] = []

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancel_event is not None and self._cancel_event.is_set()

    def report(self, message: str) -> None:
        """Record and forward a status message."""
        self.messages.append(message)
        if self._progress is not None:
            self._progress(message)

    def checkpoint(self, message: str | None = None) -> None:
        """Yield point: abort if cancelled, then report ``message``.

        Raises:
            JobCancelledError: If the job was cancelled
        """
        if self.cancelled:
            raise JobCancelledError(self.job_id)
        if message:
            self.report(message)
