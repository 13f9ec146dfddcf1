"""
Ghana PCA Engine - Audit Errors

Finding-level issues are never exceptions. These cover the rest:
- MalformedDeclarationError: one declaration cannot be analyzed (logged, not raised to caller)
- AuditConfigurationError: rejected before any declaration is processed
- ExecutionStateError: illegal execution status transition
"""
from ..agents.base import MalformedDeclarationError


class AuditConfigurationError(Exception):
    """Raised when an audit configuration is invalid."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class ExecutionStateError(Exception):
    """Raised when an execution status transition is invalid."""
    pass


__all__ = [
    "MalformedDeclarationError",
    "AuditConfigurationError",
    "ExecutionStateError",
]
