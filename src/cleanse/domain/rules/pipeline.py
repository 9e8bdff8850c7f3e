"""Ordered, short-circuiting execution of rules against a single record."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from cleanse.domain.rules.contracts import PipelineRuleResult

if TYPE_CHECKING:
    from cleanse.domain.rules.contracts import AnalysisContext, Rule, RuleResult, StopPredicate

log = getLogger(__name__)


def _never(_result: RuleResult) -> bool:
    return False


def _has_issue(result: RuleResult) -> bool:
    return result.has_issue


@dataclass(frozen=True, slots=True)
class RuleRegistration[TInput]:
    """A rule paired with the predicate deciding whether the pipeline stops after it."""

    rule: Rule[TInput]
    should_stop: StopPredicate


@dataclass(frozen=True, slots=True)
class RulePipeline[TInput]:
    """Execute registered rules in order until one asks the pipeline to stop.

    Rules are never reordered based on outcome: for a given record, context and
    rule set, repeated execution invokes the same rules and stops at the same point.
    """

    registrations: tuple[RuleRegistration[TInput], ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.registrations)

    @property
    def rule_codes(self) -> tuple[str, ...]:
        return tuple(registration.rule.rule_code for registration in self.registrations)

    def execute(self, record: TInput, context: AnalysisContext) -> list[PipelineRuleResult]:
        """Run rules against ``record`` and return one result per invoked rule."""

        results: list[PipelineRuleResult] = []
        for registration in self.registrations:
            rule_code = registration.rule.rule_code
            result = registration.rule.execute(record, context)
            stop = bool(registration.should_stop(result))
            results.append(
                PipelineRuleResult(result=result, rule_code=rule_code, stop_processing=stop)
            )
            if stop:
                log.debug("Rule %s stopped the pipeline", rule_code)
                break
        return results


class RuleConfiguration[TInput]:
    """Stop policy for a rule that has just been added to a builder."""

    __slots__ = ("_builder", "_rule")

    def __init__(self, builder: RulePipelineBuilder[TInput], rule: Rule[TInput]) -> None:
        self._builder = builder
        self._rule = rule

    def stop_processing_when(self, predicate: StopPredicate) -> RulePipelineBuilder[TInput]:
        registration = RuleRegistration(rule=self._rule, should_stop=predicate)
        return self._builder._register(registration)  # noqa: SLF001

    def continue_always(self) -> RulePipelineBuilder[TInput]:
        return self.stop_processing_when(_never)

    def stop_on_issue(self) -> RulePipelineBuilder[TInput]:
        return self.stop_processing_when(_has_issue)


class RulePipelineBuilder[TInput]:
    """Fluent builder assembling the ordered rule registrations of a pipeline.

    Example::

        pipeline = (
            RulePipelineBuilder[Holding]()
            .add_rule(MissingInRegistry()).stop_on_issue()
            .add_rule(NoEmailAddresses()).continue_always()
            .build()
        )
    """

    def __init__(self) -> None:
        self._registrations: list[RuleRegistration[TInput]] = []

    def add_rule(self, rule: Rule[TInput]) -> RuleConfiguration[TInput]:
        return RuleConfiguration(self, rule)

    def build(self) -> RulePipeline[TInput]:
        return RulePipeline(registrations=tuple(self._registrations))

    def _register(self, registration: RuleRegistration[TInput]) -> RulePipelineBuilder[TInput]:
        self._registrations.append(registration)
        return self
