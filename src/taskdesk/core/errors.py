# src/taskdesk/core/errors.py

"""
Error taxonomy.

Zero matching tasks or companies is a valid state and has no exception.
"""

from __future__ import annotations


class TaskdeskError(Exception):
    """Base class for every error the application raises on purpose."""


class UnauthorizedAccess(TaskdeskError):
    """Identity is absent or malformed (missing role, company user without a company)."""


class InconsistentReference(TaskdeskError):
    """A task references a company that is not in the current company snapshot."""

    def __init__(self, task_id: str, company_id: str) -> None:
        super().__init__(f"task {task_id} references unknown company {company_id}")
        self.task_id = task_id
        self.company_id = company_id


class PermissionDenied(TaskdeskError):
    """The identity is known but may not perform this write."""


class ValidationError(TaskdeskError, ValueError):
    """Rejected input: bad enum value, empty text, oversize attachment, ..."""


class NotFound(TaskdeskError, LookupError):
    """Unknown task, company or profile id."""
