from __future__ import annotations

import html

from .content import Document
from .render import INDEX_TEMPLATE, POST_TEMPLATE, Artifact, TemplateRenderer
from .utils import join_url, rfc822_date

SITE_NAME = "Memo"
SITE_URL = "https://trkw.github.io"
SITE_DESCRIPTION = "My memo posts"
FEED_FILE = "feed.xml"
INDEX_FILE = "index.html"


def post_link(site_url: str, doc: Document) -> str:
    return join_url(site_url, f"{doc.slug}.html")


def post_summary(doc: Document, site_url: str) -> dict:
    return {
        "title": doc.title,
        "content": doc.content,
        "date": doc.formatted_date,
        "slug": doc.slug,
        "description": doc.description,
        "link": post_link(site_url, doc),
    }


def build_posts(renderer: TemplateRenderer, posts: list[Document]) -> list[Artifact]:
    artifacts = []
    for post in posts:
        html_doc = renderer.render(
            POST_TEMPLATE,
            title=post.title,
            content=post.content,
            date=post.formatted_date,
        )
        artifacts.append(Artifact(f"{post.slug}.html", html_doc.encode("utf-8")))
    return artifacts


def build_index(renderer: TemplateRenderer, posts: list[Document], site_url: str = SITE_URL) -> Artifact:
    html_doc = renderer.render(INDEX_TEMPLATE, posts=[post_summary(post, site_url) for post in posts])
    return Artifact(INDEX_FILE, html_doc.encode("utf-8"))


def build_rss(
    posts: list[Document],
    site_url: str = SITE_URL,
    site_name: str = SITE_NAME,
    site_description: str = SITE_DESCRIPTION,
) -> bytes:
    """Serialize ``posts`` as an RSS 2.0 channel, one item per post in order."""
    site_url = site_url.rstrip("/")
    items = []
    for post in posts:
        link = post_link(site_url, post)
        items.append(
            "\n".join(
                [
                    "<item>",
                    f"<title>{html.escape(post.title)}</title>",
                    f"<link>{html.escape(link)}</link>",
                    f"<guid>{html.escape(link)}</guid>",
                    f"<description>{html.escape(post.description)}</description>",
                    f"<pubDate>{rfc822_date(post.date)}</pubDate>",
                    "</item>",
                ]
            )
        )
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0">',
        "<channel>",
        f"<title>{html.escape(site_name)}</title>",
        f"<link>{html.escape(site_url)}</link>",
        f"<description>{html.escape(site_description)}</description>",
    ]
    if posts:
        lines.append(f"<lastBuildDate>{rfc822_date(posts[0].date)}</lastBuildDate>")
    lines.extend(items)
    lines.extend(["</channel>", "</rss>"])
    return ("\n".join(lines) + "\n").encode("utf-8")


def build_feed(posts: list[Document], args: object) -> Artifact:
    data = build_rss(
        posts,
        site_url=getattr(args, "site_url", SITE_URL),
        site_name=getattr(args, "site_name", SITE_NAME),
        site_description=getattr(args, "site_description", SITE_DESCRIPTION),
    )
    return Artifact(FEED_FILE, data)
