"""
Raw estimate payload models.

Validates the estimate structure returned by the backend before the
hierarchy builder sees it. The backend is not consistent about field
names, so ids and amounts are accepted under every alias in use:

- group ids as id / _id / grpId
- section ids as id / _id / secId
- subsection ids as id / _id / subId
- amounts as amount / total

Child arrays may be missing or null. The structure endpoint wraps the
groups in {"hierarchical": {"groups": [...]}}; that wrapper is unwrapped.
"""
import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from ..domain.exceptions import ValidationError
from .etl import parse_decimal, parse_optional_decimal, parse_text


def _drop_missing(value: Any) -> Any:
    """Null child arrays are empty; null entries are skipped."""
    if value is None:
        return []
    if isinstance(value, list):
        return [v for v in value if v is not None]
    return value


class RawLineItem(BaseModel):
    """Fields shared by every level of the raw payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field("", validation_alias=AliasChoices("id", "_id"))
    code: str = ""
    name: str = ""
    description: str = ""
    quantity: Decimal = Decimal("0")
    unit: str = ""
    rate: Decimal = Decimal("0")
    amount: Optional[Decimal] = Field(None, validation_alias=AliasChoices("amount", "total"))
    spent: Decimal = Decimal("0")

    @field_validator("id", "code", "name", "description", "unit", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return parse_text(value)

    @field_validator("quantity", "rate", "spent", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> Decimal:
        # Dirty numeric input is zero, never a validation failure
        return parse_decimal(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Optional[Decimal]:
        return parse_optional_decimal(value)


class RawSubsection(RawLineItem):
    id: str = Field("", validation_alias=AliasChoices("id", "_id", "subId"))


class RawSection(RawLineItem):
    id: str = Field("", validation_alias=AliasChoices("id", "_id", "secId"))
    subsections: List[RawSubsection] = Field(default_factory=list)

    @field_validator("subsections", mode="before")
    @classmethod
    def _missing_children(cls, value: Any) -> Any:
        return _drop_missing(value)


class RawGroup(RawLineItem):
    id: str = Field("", validation_alias=AliasChoices("id", "_id", "grpId"))
    sections: List[RawSection] = Field(default_factory=list)

    @field_validator("sections", mode="before")
    @classmethod
    def _missing_children(cls, value: Any) -> Any:
        return _drop_missing(value)


class RawEstimate(BaseModel):
    """Top-level estimate payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    estimate_id: str = Field(
        "", validation_alias=AliasChoices("estimateId", "estimate_id", "id", "_id")
    )
    project_id: str = Field("", validation_alias=AliasChoices("projectId", "project_id"))
    name: str = ""
    status: str = ""
    date: Optional[datetime.date] = None
    groups: List[RawGroup] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_hierarchical(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("groups"):
            hierarchical = data.get("hierarchical")
            if isinstance(hierarchical, dict) and hierarchical.get("groups"):
                data = {**data, "groups": hierarchical["groups"]}
        return data

    @field_validator("project_id", mode="before")
    @classmethod
    def _coerce_project(cls, value: Any) -> str:
        # Populated references arrive as {"_id": ..., "name": ...}
        if isinstance(value, dict):
            value = value.get("_id") or value.get("id")
        return parse_text(value)

    @field_validator("estimate_id", "name", "status", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return parse_text(value)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Optional[datetime.date]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        try:
            return datetime.date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            return None

    @field_validator("groups", mode="before")
    @classmethod
    def _missing_children(cls, value: Any) -> Any:
        return _drop_missing(value)


def parse_raw_estimate(data: Any) -> RawEstimate:
    """
    Validate a decoded estimate payload.

    Args:
        data: Mapping decoded from the backend, or an existing RawEstimate

    Returns:
        RawEstimate

    Raises:
        ValidationError: If the payload structure is unusable (no estimate
            id, or groups is not a list). Numeric garbage never raises.
    """
    if isinstance(data, RawEstimate):
        raw = data
    elif not isinstance(data, dict):
        raise ValidationError("estimate", f"expected a mapping, got {type(data).__name__}")
    else:
        try:
            raw = RawEstimate.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError("estimate", str(e))

    # Allocation targets are keyed by estimate id
    if not raw.estimate_id:
        raise ValidationError("estimate", "payload has no estimate id")
    return raw
