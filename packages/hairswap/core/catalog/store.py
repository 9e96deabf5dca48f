"""Read-only reference style catalog."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

import httpx
import pydantic

from hairswap.core.catalog.models import ReferenceStyle, StyleQuery
from hairswap.core.config.loader import load_config

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the catalog or a reference image cannot be read."""


class StyleCatalog(Protocol):
    """Source of reference styles."""

    async def find(self, query: StyleQuery) -> list[ReferenceStyle]: ...


class FileStyleCatalog:
    """Catalog backed by a JSON or YAML file.

    The file holds a mapping with a ``styles`` list of records. Records
    without a name or image are skipped. Relative image paths resolve
    against the catalog file's directory.

    Args:
        path: Catalog file (.json, .yaml, or .yml)
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._styles: list[ReferenceStyle] | None = None

    async def find(self, query: StyleQuery) -> list[ReferenceStyle]:
        """Return up to ``query.max_records`` styles matching the query, in file order."""
        styles = self._load()
        matches = [style for style in styles if query.matches(style)]
        return matches[: query.max_records]

    def _load(self) -> list[ReferenceStyle]:
        if self._styles is not None:
            return self._styles

        try:
            raw = load_config(self.path)
        except (FileNotFoundError, ValueError) as e:
            raise CatalogError(f"Cannot read style catalog {self.path}: {e}") from e

        records = raw.get("styles", [])
        if not isinstance(records, list):
            raise CatalogError(f"Style catalog {self.path} must contain a list of styles")

        styles: list[ReferenceStyle] = []
        for position, record in enumerate(records):
            style = self._parse_record(record)
            if style is None:
                logger.debug(f"Skipping catalog record {position}: missing name or image")
                continue
            styles.append(style)

        logger.debug(f"Loaded {len(styles)} styles from {self.path}")
        self._styles = styles
        return styles

    def _parse_record(self, record: Any) -> ReferenceStyle | None:
        if not isinstance(record, dict):
            return None
        name = record.get("name")
        image_url = record.get("image_url")
        if not name or not image_url or not isinstance(image_url, str):
            return None

        if not _is_remote(image_url) and not Path(image_url).is_absolute():
            record = {**record, "image_url": str(self.path.parent / image_url)}

        try:
            return ReferenceStyle.model_validate(record)
        except pydantic.ValidationError as e:
            logger.warning(f"Invalid catalog record {name!r}: {e}")
            return None


def _is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


async def load_reference_image(
    style: ReferenceStyle,
    http_client: httpx.AsyncClient | None = None,
) -> bytes:
    """Fetch the photo for ``style`` from its URL or local path.

    Raises:
        CatalogError: If the image cannot be read
    """
    location = style.image_url
    if not _is_remote(location):
        try:
            return await asyncio.to_thread(Path(location).read_bytes)
        except OSError as e:
            raise CatalogError(f"Cannot read reference image for {style.name!r}: {e}") from e

    try:
        if http_client is not None:
            response = await http_client.get(location)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(location)
    except httpx.HTTPError as e:
        raise CatalogError(f"Failed to fetch reference image for {style.name!r}: {e}") from e

    if response.status_code != 200:
        raise CatalogError(
            f"Failed to fetch reference image for {style.name!r}: status={response.status_code}"
        )
    return response.content
