from __future__ import annotations

import argparse
from pathlib import Path

import pytest

POST_TEMPLATE = "<h1>{{ title }}</h1>\n<time>{{ date }}</time>\n{{ content | safe }}\n"
INDEX_TEMPLATE = (
    "{% for post in posts %}"
    '<a href="{{ post.slug }}.html">{{ post.title }}</a> {{ post.date }}\n'
    "{% endfor %}"
)


def write_post(root: Path, name: str, title: str | None, date: str | None, body: str = "Body text.", **extra: str) -> Path:
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    if date is not None:
        lines.append(f"date: {date}")
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines.append("---")
    lines.append(body)
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def site(tmp_path: Path) -> argparse.Namespace:
    content = tmp_path / "content"
    templates = tmp_path / "templates"
    content.mkdir()
    templates.mkdir()
    (templates / "post.html").write_text(POST_TEMPLATE, encoding="utf-8")
    (templates / "index.html").write_text(INDEX_TEMPLATE, encoding="utf-8")
    return argparse.Namespace(
        content=str(content),
        templates=str(templates),
        output=str(tmp_path / "public"),
        site_name="Memo",
        site_url="https://example.test",
        site_description="My memo posts",
        build_workers=1,
    )
