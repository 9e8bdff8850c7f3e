"""Pydantic model describing the optional context payload a rule attaches to an issue."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from cleanse.domain.errors import ValidationError


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _as_string_list(value: object) -> object:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return [stripped] if stripped else None
    if isinstance(value, list | tuple | set | frozenset):
        items = [str(item).strip() for item in cast("list[object]", list(value))]
        cleaned = [item for item in items if item]
        return cleaned or None
    return value


class IssueContext(BaseModel):
    """Contact details captured alongside an issue.

    Rules hand over a free-form mapping; both snake_case keys and the
    registry's column names (``EmailCTS``, ``TelSAM`` and so on) are accepted.
    Other keys (``SamCph``, ``LocationNameCTS`` and so on) are not modelled
    but stay verbatim in the issue's ``context_data``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    email_cts: list[str] | None = Field(default=None, alias="EmailCTS")
    email_sam: str | None = Field(default=None, alias="EmailSAM")
    tel_cts: list[str] | None = Field(default=None, alias="TelCTS")
    tel_sam: str | None = Field(default=None, alias="TelSAM")
    fsa: str | None = Field(default=None, alias="FSA")

    @field_validator("email_cts", "tel_cts", mode="before")
    @classmethod
    def _normalize_lists(cls, value: object) -> object:
        return _as_string_list(value)

    @field_validator("email_sam", "tel_sam", "fsa", mode="before")
    @classmethod
    def _normalize_strings(cls, value: object) -> object:
        return _blank_to_none(value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> IssueContext | None:
        if not data:
            return None
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid issue context: {exc}") from exc
