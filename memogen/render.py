from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)

from .errors import RenderError, WriteError

POST_TEMPLATE = "post.html"
INDEX_TEMPLATE = "index.html"

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    path: str
    data: bytes


class TemplateRenderer:
    """Jinja2 environment over every ``*.html`` template under a directory.

    All templates are compiled on construction, so a broken template fails
    the run before any document is touched. Undefined variables raise
    instead of rendering as empty strings.
    """

    def __init__(self, template_dir: Path) -> None:
        self.template_dir = Path(template_dir)
        if not self.template_dir.is_dir():
            raise RenderError(f"Templates directory not found: {self.template_dir}")
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.templates = {}
        try:
            for name in self.env.list_templates(extensions=["html"]):
                self.templates[name] = self.env.get_template(name)
        except (TemplateError, OSError, UnicodeDecodeError) as exc:
            raise RenderError(f"Failed to initialize template engine from {self.template_dir}: {exc}") from exc
        LOGGER.debug("Loaded %d templates from %s", len(self.templates), self.template_dir)

    def render(self, template_name: str, **context: Any) -> str:
        template = self.templates.get(template_name)
        if template is None:
            raise RenderError(f"Template not found: {template_name} (in {self.template_dir})")
        try:
            return template.render(**context)
        except TemplateNotFound as exc:
            raise RenderError(f"Template {template_name} references missing template {exc.name}") from exc
        except TemplateError as exc:
            raise RenderError(f"Failed to render {template_name}: {exc}") from exc
        except Exception as exc:
            # Errors raised by template expressions themselves, e.g. division by zero.
            raise RenderError(f"Failed to render {template_name}: {type(exc).__name__}: {exc}") from exc


def write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def write_artifacts(output_dir: Path, artifacts: list[Artifact]) -> list[Path]:
    output_dir = Path(output_dir)
    written = []
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        for artifact in artifacts:
            path = output_dir / artifact.path
            write_bytes(path, artifact.data)
            written.append(path)
    except OSError as exc:
        raise WriteError(f"Cannot write output to {output_dir}: {exc}") from exc
    return written
