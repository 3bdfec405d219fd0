"""Exceptions raised across the caseflow public API.

Expected workflow failures (illegal transitions, failed tasks, invalid
plans) are reported as data. These exceptions are reserved for host
programming errors.
"""


class CaseflowError(Exception):
    """Base class for caseflow exceptions."""

    pass


class ExecutorConfigurationError(CaseflowError):
    """Raised when a TaskExecutor runs without an execute_task callback."""

    pass


class ExecutionInProgressError(CaseflowError):
    """Raised when execute() is called while a run is already in flight."""

    pass


class StorageKeyError(CaseflowError):
    """Raised when a storage key could escape the storage directory."""

    pass
