from __future__ import annotations

import argparse
from pathlib import Path

import pytest

from conftest import write_post
from memogen import cli
from memogen.errors import ServeError, WatchError


def _argv(site: argparse.Namespace, *extra: str) -> list[str]:
    return [
        "--config",
        str(Path(site.content).parent / "site.toml"),
        "--content",
        site.content,
        "--templates",
        site.templates,
        "--output",
        site.output,
        *extra,
    ]


def test_parser_defaults() -> None:
    args = cli.build_parser({}, "site.toml").parse_args(["generate"])
    assert args.content == "content"
    assert args.templates == "templates"
    assert args.output == "public"
    assert args.site_url == "https://trkw.github.io"
    assert args.command == "generate"


def test_parser_uses_config_values_and_flags_win() -> None:
    config = {"output": "dist", "port": "8000", "site_name": "Notes"}
    parser = cli.build_parser(config, "site.toml")

    args = parser.parse_args(["--site-name", "Flags", "dev"])

    assert args.output == "dist"
    assert args.port == 8000
    assert args.site_name == "Flags"
    assert args.debounce_ms == 100


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser({}, "site.toml").parse_args([])


def test_main_generate_succeeds(site) -> None:
    write_post(Path(site.content), "a.md", "A", "2024-01-01T00:00:00Z")
    assert cli.main(_argv(site, "generate")) == 0
    assert (Path(site.output) / "a.html").exists()


def test_main_generate_reports_failure(site) -> None:
    write_post(Path(site.content), "a.md", None, "2024-01-01T00:00:00Z")
    assert cli.main(_argv(site, "generate")) == 1
    assert not Path(site.output).exists()


def test_main_reads_config_file(site) -> None:
    config = Path(site.content).parent / "site.toml"
    config.write_text(f'output = "{Path(site.output).as_posix()}-from-config"\n', encoding="utf-8")
    argv = ["--config", str(config), "--content", site.content, "--templates", site.templates, "generate"]

    assert cli.main(argv) == 0
    assert (Path(site.output + "-from-config") / "index.html").exists()


def test_main_invalid_config_fails(site) -> None:
    config = Path(site.content).parent / "site.toml"
    config.write_text("output = ", encoding="utf-8")
    assert cli.main(_argv(site, "generate")) == 1


def test_run_dev_wires_watcher_loop_and_server(site, monkeypatch) -> None:
    events = []

    class FakeServer:
        def shutdown(self) -> None:
            events.append("shutdown")

        def server_close(self) -> None:
            events.append("server_close")

    class FakeWatcher:
        def __init__(self, paths) -> None:
            events.append(("watch", [str(p) for p in paths]))

        def start(self, notify) -> None:
            notify(None)

        def is_alive(self) -> bool:
            return True

        def stop(self) -> None:
            events.append("watcher_stop")

    class FakeLoop:
        def __init__(self, rebuild, debounce_seconds, health_check) -> None:
            self.rebuild = rebuild
            self.notified = 0
            events.append(("debounce", debounce_seconds))

        def notify(self, event=None) -> None:
            self.notified += 1

        def run(self) -> None:
            events.append(("notified", self.notified))
            self.rebuild()

    monkeypatch.setattr(cli, "start_server", lambda directory, port: events.append(("serve", port)) or FakeServer())
    monkeypatch.setattr(cli, "SiteWatcher", FakeWatcher)
    monkeypatch.setattr(cli, "RegenerationLoop", FakeLoop)
    builds = []
    monkeypatch.setattr(cli, "build_site", lambda args: builds.append(args))

    site.port = 4000
    site.debounce_ms = 250
    cli.run_dev(site)

    assert len(builds) == 2
    assert ("serve", 4000) in events
    assert ("watch", [site.content, site.templates]) in events
    assert ("debounce", 0.25) in events
    assert ("notified", 1) in events
    assert events[-3:] == ["watcher_stop", "shutdown", "server_close"]


def test_run_dev_closes_server_when_watcher_fails(site, monkeypatch) -> None:
    events = []

    class FakeServer:
        def shutdown(self) -> None:
            events.append("shutdown")

        def server_close(self) -> None:
            events.append("server_close")

    class BrokenWatcher:
        def __init__(self, paths) -> None:
            pass

        def start(self, notify) -> None:
            raise WatchError("Watch directory does not exist or is not a directory: content")

        def is_alive(self) -> bool:
            return False

        def stop(self) -> None:
            events.append("watcher_stop")

    monkeypatch.setattr(cli, "start_server", lambda directory, port: FakeServer())
    monkeypatch.setattr(cli, "SiteWatcher", BrokenWatcher)
    monkeypatch.setattr(cli, "build_site", lambda args: None)

    site.port = 4000
    site.debounce_ms = 100
    with pytest.raises(WatchError):
        cli.run_dev(site)

    assert events == ["watcher_stop", "shutdown", "server_close"]


def test_main_dev_reports_port_in_use(site, monkeypatch) -> None:
    def refuse(directory, port):
        raise ServeError(f"Cannot serve on 127.0.0.1:{port}: [Errno 98] Address already in use")

    stopped = []
    monkeypatch.setattr(cli, "start_server", refuse)
    monkeypatch.setattr(cli.SiteWatcher, "stop", lambda self: stopped.append(True))

    assert cli.main(_argv(site, "dev")) == 1
    assert stopped == [True]
