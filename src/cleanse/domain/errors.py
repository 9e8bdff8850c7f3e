"""Domain error taxonomy."""

from __future__ import annotations


class CleanseError(Exception):
    """Base class for errors raised by the cleanse domain."""


class ValidationError(CleanseError, ValueError):
    """Raised synchronously at a call boundary for malformed input. Nothing is persisted."""


class NotFoundError(CleanseError, LookupError):
    """Raised when a command targets an aggregate that does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' not found.")
        self.kind = kind
        self.identifier = identifier


class IssueNotFoundError(NotFoundError):
    def __init__(self, issue_id: str) -> None:
        super().__init__("Issue", issue_id)


class AnalysisRunNotFoundError(NotFoundError):
    def __init__(self, run_id: str) -> None:
        super().__init__("Analysis run", run_id)


class AnalysisRunStateError(CleanseError, RuntimeError):
    """Raised when a transition is attempted on a run that is no longer running."""


class AnalysisCancelledError(CleanseError):
    """Raised between records when a pass has been asked to stop."""
