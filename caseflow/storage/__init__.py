"""Caseflow - Workflow snapshot persistence"""

from caseflow.storage.store import Storage, WorkflowStateStorage

__all__ = ["Storage", "WorkflowStateStorage"]
