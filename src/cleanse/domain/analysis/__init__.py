"""Analysis passes and the runs that track them."""

from __future__ import annotations

from .engine import AnalysisEngine, AnalysisMetrics, IssueSubject, run_analysis
from .runs import AnalysisRunTracker

__all__ = [
    "AnalysisEngine",
    "AnalysisMetrics",
    "AnalysisRunTracker",
    "IssueSubject",
    "run_analysis",
]
