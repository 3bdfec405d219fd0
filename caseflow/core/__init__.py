"""Shared infrastructure: results, settings, exceptions."""

from caseflow.core.exceptions import (
    CaseflowError,
    ExecutionInProgressError,
    ExecutorConfigurationError,
    StorageKeyError,
)
from caseflow.core.result import Err, Ok, Result

__all__ = [
    "CaseflowError",
    "Err",
    "ExecutionInProgressError",
    "ExecutorConfigurationError",
    "Ok",
    "Result",
    "StorageKeyError",
]
