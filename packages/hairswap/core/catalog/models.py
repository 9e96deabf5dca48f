"""Reference style records and catalog queries."""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

E = TypeVar("E", bound=Enum)

DEFAULT_MAX_RECORDS = 20
MAX_RECORDS_LIMIT = 100


class HairColor(str, Enum):
    BLACK = "black"
    BROWN = "brown"
    BLONDE = "blonde"


class Ethnicity(str, Enum):
    ASIAN = "asian"
    BLACK = "black"
    WHITE = "white"
    BROWN = "brown"


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Length(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


def parse_choice(value: str | None, enum_cls: type[E]) -> E | None:
    """Map a free-form string to an enum member, case-insensitively.

    Unknown or empty values map to None rather than raising.

    Example:
        >>> parse_choice("Blonde", HairColor)
        <HairColor.BLONDE: 'blonde'>
        >>> parse_choice("purple", HairColor) is None
        True
    """
    if value is None:
        return None
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


_ATTRIBUTE_ENUMS: dict[str, type[Enum]] = {
    "haircolor": HairColor,
    "ethnicity": Ethnicity,
    "sex": Sex,
    "length": Length,
}


class ReferenceStyle(BaseModel):
    """One reference hairstyle in the catalog.

    Attribute values outside the known categories are stored as None.
    """

    name: str = Field(min_length=1)
    image_url: str = Field(min_length=1, description="URL or local path of the photo")
    haircolor: HairColor | None = None
    ethnicity: Ethnicity | None = None
    sex: Sex | None = None
    length: Length | None = None
    external_link: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("haircolor", "ethnicity", "sex", "length", mode="before")
    @classmethod
    def _lenient_choice(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or isinstance(value, Enum):
            return value
        return parse_choice(value, _ATTRIBUTE_ENUMS[info.field_name])


class StyleQuery(BaseModel):
    """Attribute filter for catalog lookups. Unset attributes match anything."""

    haircolor: HairColor | None = None
    ethnicity: Ethnicity | None = None
    sex: Sex | None = None
    length: Length | None = None
    max_records: int = DEFAULT_MAX_RECORDS

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("max_records", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        try:
            count = int(value)
        except (TypeError, ValueError):
            return DEFAULT_MAX_RECORDS
        return min(MAX_RECORDS_LIMIT, max(1, count))

    def matches(self, style: ReferenceStyle) -> bool:
        """True if every set attribute equals the style's attribute."""
        for field in ("haircolor", "ethnicity", "sex", "length"):
            wanted = getattr(self, field)
            if wanted is not None and getattr(style, field) != wanted:
                return False
        return True
