"""Reference style catalog."""

from hairswap.core.catalog.models import (
    Ethnicity,
    HairColor,
    Length,
    ReferenceStyle,
    Sex,
    StyleQuery,
    parse_choice,
)
from hairswap.core.catalog.store import (
    CatalogError,
    FileStyleCatalog,
    StyleCatalog,
    load_reference_image,
)

__all__ = [
    "CatalogError",
    "Ethnicity",
    "FileStyleCatalog",
    "HairColor",
    "Length",
    "ReferenceStyle",
    "Sex",
    "StyleCatalog",
    "StyleQuery",
    "load_reference_image",
    "parse_choice",
]
