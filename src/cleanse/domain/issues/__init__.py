"""Issue commands and the reconciliation sweep."""

from __future__ import annotations

from .service import IssueCommandService, RecordIssueCommand

__all__ = ["IssueCommandService", "RecordIssueCommand"]
