"""Prompt templates for the image and judging models.

Templates are Jinja2 files stored beside this module and rendered with
StrictUndefined so a missing variable fails loudly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent

REMOVE_HAIR = "remove_hair"
RELIGHT = "relight"
COMPOSITE = "composite"
JUDGE = "judge"
SIMILARITY = "similarity"
DESCRIBE_HAIR = "describe_hair"


class RenderError(Exception):
    """Raised when a prompt template cannot be rendered."""


class PromptRenderer:
    """Renders named prompt templates.

    Args:
        base_path: Directory containing ``<name>.j2`` templates
    """

    def __init__(self, base_path: str | Path = PROMPTS_DIR) -> None:
        self.base_path = Path(base_path)
        self.env = Environment(
            loader=FileSystemLoader(str(self.base_path)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        logger.debug(f"PromptRenderer initialized: base_path={self.base_path}")

    def render(self, name: str, /, **variables: Any) -> str:
        """Render template ``name`` with ``variables``.

        Raises:
            RenderError: If the template is missing, invalid, or lacks a variable
        """
        try:
            template = self.env.get_template(f"{name}.j2")
            return template.render(**variables).strip()
        except TemplateNotFound as e:
            raise RenderError(f"Prompt template '{name}' not found in {self.base_path}") from e
        except UndefinedError as e:
            raise RenderError(f"Missing variable in prompt '{name}': {e}") from e
        except TemplateSyntaxError as e:
            raise RenderError(f"Invalid template syntax in prompt '{name}': {e}") from e


_default_renderer: PromptRenderer | None = None


def render_prompt(name: str, /, **variables: Any) -> str:
    """Render a bundled prompt with the shared renderer."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = PromptRenderer()
    return _default_renderer.render(name, **variables)


__all__ = [
    "COMPOSITE",
    "DESCRIBE_HAIR",
    "JUDGE",
    "PROMPTS_DIR",
    "PromptRenderer",
    "RELIGHT",
    "REMOVE_HAIR",
    "RenderError",
    "SIMILARITY",
    "render_prompt",
]
