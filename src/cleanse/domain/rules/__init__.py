"""Rule contracts and the ordered rule pipeline.

Rules are evaluated per record inside a :class:`RulePipeline`. Each rule returns
a :class:`RuleResult`; the pipeline tags it with the rule's code and decides,
from the predicate registered alongside the rule, whether to continue.
"""

from __future__ import annotations

from .contracts import AnalysisContext, PipelineRuleResult, Rule, RuleResult, StopPredicate
from .pipeline import RuleConfiguration, RulePipeline, RulePipelineBuilder, RuleRegistration

__all__ = [
    "AnalysisContext",
    "PipelineRuleResult",
    "Rule",
    "RuleConfiguration",
    "RulePipeline",
    "RulePipelineBuilder",
    "RuleRegistration",
    "RuleResult",
    "StopPredicate",
]
