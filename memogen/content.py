from __future__ import annotations

import datetime as dt
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

import markdown
import yaml

from .errors import FormatError, MetadataError, ReadError, ScanError

DOCUMENT_EXTENSIONS = (".md",)
DELIMITER_RE = re.compile(r"^---[ \t]*\n", re.MULTILINE)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    title: str
    date: dt.datetime
    description: str = ""


@dataclass(frozen=True)
class Document:
    metadata: Metadata
    content: str
    slug: str
    formatted_date: str
    source: Path

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def date(self) -> dt.datetime:
        return self.metadata.date

    @property
    def description(self) -> str:
        return self.metadata.description


def scan_documents(root: Path, extensions: tuple[str, ...] = DOCUMENT_EXTENSIONS) -> list[Path]:
    """Return every source document under ``root``, sorted by POSIX path.

    Any directory that cannot be listed aborts the scan with ScanError.
    """
    root = Path(root)
    if not root.is_dir():
        raise ScanError(f"Content directory not found: {root}")

    def on_error(exc: OSError) -> None:
        raise ScanError(f"Cannot read content directory {exc.filename}: {exc.strerror}") from exc

    suffixes = {ext.lower() for ext in extensions}
    paths = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        for name in filenames:
            path = Path(dirpath) / name
            if path.suffix.lower() in suffixes:
                paths.append(path)
    return sorted(paths, key=lambda p: p.as_posix())


def read_document(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ReadError(f"{path} is not valid UTF-8 text: {exc}") from exc
    except OSError as exc:
        raise ReadError(f"Cannot read {path}: {exc}") from exc
    return text.lstrip("\ufeff").replace("\r\n", "\n")


def split_document(text: str, path: Path | str = "<document>") -> tuple[str, str]:
    """Split ``text`` into its front matter block and Markdown body.

    The body is the text between the second and third delimiter lines;
    anything after a third delimiter is dropped.
    """
    parts = DELIMITER_RE.split(text)
    if len(parts) < 3:
        raise FormatError(f"Invalid markdown file format: {path}")
    return parts[1], parts[2]


def parse_timestamp(value: object, path: Path | str = "<document>") -> dt.datetime:
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(raw)
        except ValueError as exc:
            raise MetadataError(f"Unparsable date {value!r} in {path}") from exc
    else:
        raise MetadataError(f"Field 'date' must be a timestamp with timezone in {path}, got {value!r}")
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise MetadataError(f"Date {value!s} in {path} has no timezone")
    try:
        return parsed.astimezone(dt.timezone.utc)
    except (OverflowError, ValueError) as exc:
        raise MetadataError(f"Date {value!s} in {path} is out of range in UTC") from exc


def parse_metadata(block: str, path: Path | str = "<document>") -> Metadata:
    try:
        meta = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MetadataError(f"Invalid YAML front matter in {path}: {exc}") from exc
    if not isinstance(meta, dict):
        raise MetadataError(f"Front matter must be a mapping in {path}")

    title = meta.get("title")
    if title is None:
        raise MetadataError(f"Missing required field 'title' in {path}")
    if not isinstance(title, str) or not title.strip():
        raise MetadataError(f"Field 'title' must be a non-empty string in {path}")
    if meta.get("date") is None:
        raise MetadataError(f"Missing required field 'date' in {path}")
    date = parse_timestamp(meta["date"], path)
    description = meta.get("description")
    if description is None:
        description = ""
    if not isinstance(description, str):
        raise MetadataError(f"Field 'description' must be a string in {path}")
    return Metadata(title=title, date=date, description=description)


def format_date(value: dt.datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def render_markdown(text: str) -> str:
    md = markdown.Markdown(
        extensions=["tables", "fenced_code", "codehilite", "pymdownx.tilde"],
        extension_configs={
            "codehilite": {"guess_lang": False},
            "pymdownx.tilde": {"subscript": False},
        },
    )
    return md.convert(text)


def parse_document(path: Path) -> Document:
    path = Path(path)
    text = read_document(path)
    block, body = split_document(text, path)
    metadata = parse_metadata(block, path)
    LOGGER.debug("Parsed %s (%s)", path, metadata.title)
    return Document(
        metadata=metadata,
        content=render_markdown(body),
        slug=path.stem,
        formatted_date=format_date(metadata.date),
        source=path,
    )


def sort_documents(documents: list[Document]) -> list[Document]:
    """Newest first; documents sharing a date keep their input order."""
    return sorted(documents, key=lambda doc: doc.date, reverse=True)


def find_slug_collisions(documents: list[Document]) -> dict[str, list[Path]]:
    sources: dict[str, list[Path]] = {}
    for doc in documents:
        sources.setdefault(doc.slug, []).append(doc.source)
    return {slug: paths for slug, paths in sources.items() if len(paths) > 1}
