"""Error translation system for user-friendly messages."""

from .translator import ErrorTranslator, UserFriendlyError, WorkflowValidationError

__all__ = ["ErrorTranslator", "UserFriendlyError", "WorkflowValidationError"]
