"""
Domain models for the price catalog engine.

`PriceRecord` mirrors what the remote price store returns (camelCase on the
wire, snake_case in Python). Records are read leniently: a bad price or date
from the store must not sink a whole query, so those fields degrade to a
neutral value instead of raising.

`PriceDraft` and `PricePatch` are the strict inputs for add and edit. They are
validated locally, before any network call.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from price_catalog.domain.errors import ValidationFailed


class Category(str, Enum):
    SIGNAGE = "signage"
    MARKING = "marking"
    BARRIER = "barrier"
    LIGHTING = "lighting"
    SURFACING = "surfacing"
    EQUIPMENT = "equipment"
    OTHER = "other"


class Source(str, Enum):
    CPWD_SOR = "CPWD_SOR"
    GEM = "GeM"
    AOR = "AOR"
    MANUAL = "MANUAL"
    AI_ESTIMATED = "AI_ESTIMATED"


EDITABLE_FIELDS = frozenset(
    {"item_name", "category", "unit_price", "unit", "source", "item_code", "description"}
)


def _clean_references(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    cleaned = []
    for entry in value:
        text = str(entry).strip() if entry is not None else ""
        if text:
            cleaned.append(text)
    return cleaned


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _decimal_to_number(value: Optional[Decimal]) -> Union[int, float, None]:
    """Store speaks JSON numbers, not decimal strings."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class PriceRecord(BaseModel):
    """
    A priced catalog entry as held by the remote store.

    `unit_price` is None when the store sent something missing, unparsable,
    or negative. `last_verified` and `created_at` keep the raw string when it
    is not a valid date-time so exports can flag it.
    """

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    item_name: str = Field(..., description="Display name.")
    category: Optional[str] = Field(None, description="Category label.")
    unit_price: Optional[Decimal] = Field(None, description="Price in base currency units.")
    unit: Optional[str] = Field(None, description="Unit of measure, e.g. sqm or nos.")
    source: str = Field(Source.MANUAL.value, description="Provenance tag.")
    item_code: Optional[str] = None
    irc_reference: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    currency: Optional[str] = None
    last_verified: Optional[Union[datetime, str]] = Field(None, union_mode="left_to_right")
    created_at: Optional[Union[datetime, str]] = Field(None, union_mode="left_to_right")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("unit_price", mode="before")
    @classmethod
    def _lenient_price(cls, value: Any) -> Optional[Decimal]:
        if value is None or isinstance(value, bool):
            return None
        try:
            price = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
        if not price.is_finite() or price < 0:
            return None
        return price

    @field_validator("source", mode="before")
    @classmethod
    def _default_source(cls, value: Any) -> Any:
        return _blank_to_none(value) or Source.MANUAL.value

    @field_validator("irc_reference", mode="before")
    @classmethod
    def _strip_references(cls, value: Any) -> List[str]:
        return _clean_references(value)

    @field_validator("category", "unit", "item_code", "description", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @property
    def price_or_zero(self) -> Decimal:
        return self.unit_price if self.unit_price is not None else Decimal(0)

    @property
    def verified_at(self) -> Optional[datetime]:
        return self.last_verified if isinstance(self.last_verified, datetime) else None


class PriceFilter(BaseModel):
    """Search input. Blank strings mean 'no constraint'."""

    text: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("text", "category", "source", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            value = value.value
        return _blank_to_none(value)

    def to_params(self) -> Dict[str, str]:
        params = {"query": self.text or ""}
        if self.category:
            params["category"] = self.category
        if self.source:
            params["source"] = self.source
        return params


class _StrictInput(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
        str_strip_whitespace=True,
    )

    @field_serializer("unit_price", check_fields=False)
    def _price_as_number(self, value: Optional[Decimal]) -> Union[int, float, None]:
        return _decimal_to_number(value)


class PriceDraft(_StrictInput):
    """Input for adding a record. `id` and `createdAt` are assigned by the store."""

    item_name: str = Field(..., min_length=1)
    unit_price: Decimal = Field(..., ge=0)
    category: str = Category.OTHER.value
    unit: str = "nos"
    source: str = Source.MANUAL.value
    item_code: Optional[str] = None
    description: Optional[str] = None
    irc_reference: List[str] = Field(default_factory=list)

    @field_validator("category", "unit", "source", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value

    @field_validator("irc_reference", mode="before")
    @classmethod
    def _strip_references(cls, value: Any) -> List[str]:
        return _clean_references(value)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PricePatch(_StrictInput):
    """
    Edit input. Only the editable fields exist here; anything else in the
    caller's mapping (`id`, `createdAt`, ...) is dropped on parse.
    """

    item_name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    unit_price: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = None
    source: Optional[str] = None
    item_code: Optional[str] = None
    description: Optional[str] = None

    @field_validator("category", "source", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value

    @model_validator(mode="after")
    def _required_fields_not_cleared(self) -> "PricePatch":
        for name in ("item_name", "unit_price", "category", "unit", "source"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set

    def to_payload(self, record_id: str) -> Dict[str, Any]:
        fields = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        return {"id": record_id, **fields}


class SourceTotals(BaseModel):
    count: int = 0
    total_price: Decimal = Decimal(0)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class CatalogStats(BaseModel):
    """Summary statistics over one result set."""

    total: int = 0
    categories: int = 0
    avg_price: int = 0
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    last_updated: Optional[datetime] = None
    by_source: Dict[str, SourceTotals] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


InputT = TypeVar("InputT", PriceDraft, PricePatch)


def _parse_input(model: Type[InputT], data: Mapping[str, Any], what: str) -> InputT:
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in err['loc']) or what}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ValidationFailed(f"Invalid {what}: " + "; ".join(problems), problems) from exc


def parse_draft(data: Union[PriceDraft, Mapping[str, Any]]) -> PriceDraft:
    """Validate add-form input; raises `ValidationFailed` on bad input."""
    if isinstance(data, PriceDraft):
        return data
    return _parse_input(PriceDraft, data, "price record")


def parse_patch(data: Union[PricePatch, Mapping[str, Any]]) -> PricePatch:
    """
    Validate edit input; raises `ValidationFailed` on bad values.

    Keys outside the editable set are dropped, so a mapping holding only such
    keys parses to an empty patch (see `PricePatch.is_empty`).
    """
    if isinstance(data, PricePatch):
        return data
    return _parse_input(PricePatch, data, "price edit")


__all__ = [
    "EDITABLE_FIELDS",
    "CatalogStats",
    "Category",
    "PriceDraft",
    "PriceFilter",
    "PricePatch",
    "PriceRecord",
    "Source",
    "SourceTotals",
    "parse_draft",
    "parse_patch",
]
