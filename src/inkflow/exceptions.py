"""Exception hierarchy for Inkflow."""


class InkflowError(Exception):
    """Base exception for all Inkflow errors."""

    pass


class InputError(InkflowError):
    """Errors related to loading job inputs."""

    pass


class ImageLoadError(InputError):
    """Error loading a source image."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load image '{path}': {reason}")


class AuxiliaryDataError(InputError):
    """Error loading a face polygon or depth map."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load auxiliary data '{path}': {reason}")


class ResultSaveError(InkflowError):
    """Error writing a job result."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to save result '{path}': {reason}")


class ConfigError(InkflowError):
    """Errors related to algorithm configuration."""

    pass


class UnknownAlgorithmError(ConfigError):
    """Requested algorithm is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown algorithm '{name}'")


class SpatialIndexError(InkflowError):
    """Internal invariant violation inside the spatial index."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class JobError(InkflowError):
    """Errors raised while running a job."""

    pass


class JobFailedError(JobError):
    """A job terminated with an internal error."""

    def __init__(self, job_id: str, reason: str) -> None:
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Job '{job_id}' failed: {reason}")


class JobCancelledError(JobError):
    """A job was replaced by a newer job for the same slot."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job '{job_id}' was cancelled")
