"""Registry identifiers for the holdings being analysed."""

from __future__ import annotations

from dataclasses import dataclass

from cleanse.domain.errors import ValidationError


@dataclass(frozen=True, slots=True)
class Cph:
    """County/parish/holding number formatted as ``CC/PPP/HHHH``."""

    value: str
    county_code: str
    parish_code: str
    holding_code: str

    @classmethod
    def parse(cls, value: str) -> Cph:
        result = cls.try_parse(value)
        if result is None:
            raise ValidationError(
                f"The value '{value}' is not a valid CPH. Expected format: CC/PPP/HHHH"
            )
        return result

    @classmethod
    def try_parse(cls, value: str | None) -> Cph | None:
        if value is None or not value.strip():
            return None
        parts = value.split("/")
        if len(parts) != 3 or any(not part.strip() for part in parts):  # noqa: PLR2004
            return None
        county, parish, holding = parts
        return cls(value=value, county_code=county, parish_code=parish, holding_code=holding)

    def __str__(self) -> str:
        return f"{self.county_code}/{self.parish_code}/{self.holding_code}"


@dataclass(frozen=True, slots=True)
class LidFullIdentifier:
    """CTS location identifier formatted as ``XX-CC/PPP/HHHH``."""

    value: str
    region: str
    cph: Cph

    @classmethod
    def parse(cls, value: str) -> LidFullIdentifier:
        result = cls.try_parse(value)
        if result is None:
            raise ValidationError(
                f"The value '{value}' is not a valid LID full identifier. "
                "Expected format: XX-CC/PPP/HHHH"
            )
        return result

    @classmethod
    def try_parse(cls, value: str | None) -> LidFullIdentifier | None:
        if value is None or not value.strip():
            return None
        region, separator, remainder = value.partition("-")
        if not separator or not region.strip() or not remainder:
            return None
        cph = Cph.try_parse(remainder)
        if cph is None:
            return None
        return cls(value=value, region=region, cph=cph)

    def __str__(self) -> str:
        return f"{self.region}-{self.cph}"


def parse_location(cph: str, lid_full_identifier: str | None = None) -> Cph:
    """Parse the CPH of an issue and check that its LID, if any, points at it."""

    holding = Cph.parse(cph)
    if not lid_full_identifier:
        return holding
    lid = LidFullIdentifier.parse(lid_full_identifier)
    if str(lid.cph) != str(holding):
        raise ValidationError(
            f"The LID '{lid_full_identifier}' refers to CPH {lid.cph}, not {holding}"
        )
    return holding
