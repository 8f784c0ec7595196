from __future__ import annotations

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .config import CONFIG_FILE, load_config
from .content import find_slug_collisions, parse_document, scan_documents, sort_documents
from .errors import SiteError
from .pages import SITE_DESCRIPTION, SITE_NAME, SITE_URL, build_feed, build_index, build_posts
from .render import TemplateRenderer, write_artifacts
from .server import start_server
from .utils import parse_int, resolve_workers
from .watch import RegenerationLoop, SiteWatcher

DEFAULT_PORT = 3000
DEFAULT_DEBOUNCE_MS = 100

LOGGER = logging.getLogger(__name__)


def build_site(args: argparse.Namespace) -> list[Path]:
    """Regenerate the whole site from scratch.

    Everything is rendered in memory before the first write, so a scan,
    parse or render failure leaves the output tree untouched.
    """
    content_dir = Path(args.content)
    templates_dir = Path(args.templates)
    output_dir = Path(args.output)
    start = time.perf_counter()

    renderer = TemplateRenderer(templates_dir)
    post_files = scan_documents(content_dir)

    workers = resolve_workers(getattr(args, "build_workers", 0), len(post_files))
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            parsed = list(executor.map(parse_document, post_files))
    else:
        parsed = [parse_document(path) for path in post_files]

    posts = sort_documents(parsed)
    for slug, sources in find_slug_collisions(posts).items():
        LOGGER.warning(
            "Slug %r is shared by %s; the last one overwrites %s.html",
            slug,
            ", ".join(str(path) for path in sources),
            slug,
        )

    artifacts = build_posts(renderer, posts)
    artifacts.append(build_index(renderer, posts, getattr(args, "site_url", SITE_URL)))
    artifacts.append(build_feed(posts, args))
    written = write_artifacts(output_dir, artifacts)

    elapsed = time.perf_counter() - start
    LOGGER.info("Site generated in %s (%d posts, %.2fs)", output_dir, len(posts), elapsed)
    return written


def run_dev(args: argparse.Namespace) -> None:
    build_site(args)
    watcher = SiteWatcher([Path(args.content), Path(args.templates)])
    loop = RegenerationLoop(
        lambda: build_site(args),
        debounce_seconds=max(0, args.debounce_ms) / 1000.0,
        health_check=watcher.is_alive,
    )
    httpd = None
    try:
        httpd = start_server(Path(args.output), args.port)
        watcher.start(loop.notify)
        loop.run()
    finally:
        watcher.stop()
        if httpd is not None:
            httpd.shutdown()
            httpd.server_close()


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    def cfg_int(key: str, default: int) -> int:
        return parse_int(config.get(key), default)

    parser = argparse.ArgumentParser(prog="memogen", description="Simple static site generator for Markdown memos.")
    parser.add_argument("--config", default=config_path, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument(
        "-c", "--content", "--content-dir",
        dest="content",
        default=cfg_str("content", "content"),
        help="Directory containing Markdown posts.",
    )
    parser.add_argument(
        "-t", "--templates", "--template-dir",
        dest="templates",
        default=cfg_str("templates", "templates"),
        help="Directory containing Jinja2 templates.",
    )
    parser.add_argument(
        "-o", "--output", "--output-dir",
        dest="output",
        default=cfg_str("output", "public"),
        help="Output directory for the site.",
    )
    parser.add_argument("--site-name", default=cfg_str("site_name", SITE_NAME), help="Feed channel title.")
    parser.add_argument("--site-url", default=cfg_str("site_url", SITE_URL), help="Public site URL used for feed links.")
    parser.add_argument(
        "--site-description",
        default=cfg_str("site_description", SITE_DESCRIPTION),
        help="Feed channel description.",
    )
    parser.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for parsing (0 = auto).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("generate", help="Generate the static site.")
    dev = commands.add_parser("dev", help="Serve the site and regenerate it on changes.")
    dev.add_argument("-p", "--port", default=cfg_int("port", DEFAULT_PORT), type=int, help="HTTP port.")
    dev.add_argument(
        "--debounce-ms",
        default=cfg_int("debounce_ms", DEFAULT_DEBOUNCE_MS),
        type=int,
        help="Quiet period before a burst of changes triggers a rebuild.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default=CONFIG_FILE)
    pre_args, _ = pre_parser.parse_known_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        config = load_config(Path(pre_args.config))
    except SiteError as exc:
        LOGGER.error("%s", exc)
        return 1

    args = build_parser(config, pre_args.config).parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.command == "dev":
            run_dev(args)
        else:
            build_site(args)
    except SiteError as exc:
        LOGGER.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        LOGGER.info("Shutdown requested")
    return 0
