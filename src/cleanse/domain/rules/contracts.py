"""Contracts shared by rules and the rule pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from cleanse.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Mapping


@dataclass(frozen=True, slots=True)
class RuleResult:
    """Outcome of running one rule against one record."""

    has_issue: bool
    issue_code: str | None = None
    context_data: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.has_issue and not self.issue_code:
            raise ValidationError("issue_code is required when a rule reports an issue")
        if not self.has_issue and self.issue_code is not None:
            raise ValidationError("issue_code must be empty when a rule reports no issue")
        if self.context_data is not None:
            object.__setattr__(self, "context_data", MappingProxyType(dict(self.context_data)))

    @classmethod
    def no_issue(cls) -> RuleResult:
        return cls(has_issue=False)

    @classmethod
    def issue(cls, issue_code: str, context_data: Mapping[str, Any] | None = None) -> RuleResult:
        return cls(has_issue=True, issue_code=issue_code, context_data=context_data)


@dataclass(frozen=True, slots=True)
class PipelineRuleResult:
    """A rule result tagged with the rule that produced it and the pipeline's stop decision."""

    result: RuleResult
    rule_code: str
    stop_processing: bool = False


@dataclass(slots=True)
class AnalysisContext:
    """State shared by every rule invoked for a single record.

    A fresh context is created per record. Rules use :meth:`get_or_compute` to
    share derived lookups (for example a registry query) without repeating them.
    """

    operation_id: str
    _memo: dict[Hashable, object] = field(default_factory=dict, init=False, repr=False)

    def get_or_compute[T](self, key: Hashable, factory: Callable[[], T]) -> T:
        if key in self._memo:
            return self._memo[key]  # type: ignore[return-value]
        value = factory()
        self._memo[key] = value
        return value


@runtime_checkable
class Rule[TInput](Protocol):
    """Unit of domain logic evaluated against one input record."""

    @property
    def rule_code(self) -> str: ...

    def execute(self, record: TInput, context: AnalysisContext) -> RuleResult: ...


type StopPredicate = Callable[[RuleResult], bool]
