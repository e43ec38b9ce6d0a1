"""Exceptions raised across the generation pipeline."""
from typing import List, Optional, Tuple


class DanceVideoError(Exception):
    """Base class for every pipeline failure."""


class ValidationError(DanceVideoError):
    """Missing credentials, missing input, or a state-machine guard violation."""


class TransportError(DanceVideoError):
    """A remote call failed or returned a malformed envelope."""


class SubmissionError(TransportError):
    """Task creation was rejected or its response carried no task id."""


class TaskFailedError(DanceVideoError):
    """The provider marked the task as failed."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class TaskTimeoutError(DanceVideoError, TimeoutError):
    """Polling exceeded its time budget."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class AnalysisError(TransportError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(AnalysisError):
    pass


class QuotaExhaustedError(AnalysisError):
    pass


class AllSlotsFailedError(DanceVideoError):
    """Every slot of an image fan-out failed."""

    def __init__(self, failures: List[Tuple[int, str]]):
        self.failures = failures
        details = "; ".join(f"Image {index + 1}: {message}" for index, message in failures)
        super().__init__(f"All {len(failures)} image generations failed: {details}")


class GenerationCancelled(DanceVideoError):
    pass
