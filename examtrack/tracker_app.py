from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.prompt import Prompt

from .table_source import FetchError, load_table
from .tracker_config import (
    TrackerConfig,
    apply_overrides,
    load_tracker_config,
    resolve_config_path,
)
from .tracker_core import ScheduleSession
from .tracker_render import (
    render_command_help,
    render_legend,
    render_schedule,
    render_summary,
)

TableLoader = Callable[[], list[list[str]]]


def parse_app_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track exam slots per subject for one student.")
    parser.add_argument("source", nargs="?", help="CSV URL or path (default: from config).")
    parser.add_argument("--config", help="Path to a TOML config file (or set EXAMTRACK_CONFIG).")
    parser.add_argument("--student", help="Student id to highlight.")
    parser.add_argument("--delimiter", help="Field delimiter (default: ',').")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds.")
    parser.add_argument("--retries", type=int, help="HTTP attempts before giving up.")
    parser.add_argument("--once", action="store_true", help="Print the schedule once, then exit.")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print derived row state as JSON.")
    parser.add_argument(
        "--ui",
        choices=["textual", "prompt"],
        default="textual",
        help="Viewer mode (default: textual).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TrackerConfig:
    config_path = resolve_config_path(args.config)
    config = load_tracker_config(config_path) if config_path is not None else TrackerConfig()
    return apply_overrides(
        config,
        source=args.source,
        delimiter=args.delimiter,
        timeout=args.timeout,
        retries=args.retries,
        student_id=args.student,
    )


def make_loader(config: TrackerConfig) -> TableLoader:
    search_roots = [Path(__file__).resolve().parents[1]]

    def _load() -> list[list[str]]:
        return load_table(
            config.source,
            delimiter=config.delimiter,
            timeout=config.timeout,
            retries=config.retries,
            search_roots=search_roots,
        )

    return _load


def _parse_row_number(value: str, session: ScheduleSession) -> int | None:
    try:
        number = int(value)
    except ValueError:
        return None
    if number < 1 or number > len(session.rows):
        return None
    return number - 1


def run_prompt_app(console: Console, session: ScheduleSession, loader: TableLoader, source: str) -> int:
    render_summary(console, session, source)
    render_legend(console)
    render_schedule(console, session)
    render_command_help(console)

    while True:
        command_line = Prompt.ask("[bold green]exams>[/bold green]").strip()
        if not command_line:
            continue
        parts = command_line.split(maxsplit=1)
        command = parts[0].lower()
        value = parts[1].strip() if len(parts) > 1 else ""

        if command in {"quit", "exit"}:
            return 0
        if command == "help":
            render_command_help(console)
            continue
        if command == "show":
            render_summary(console, session, source)
            render_schedule(console, session)
            continue
        if command == "id":
            if not value:
                console.print("[red]Usage: id <student_id>[/red]")
                continue
            session.set_query(value)
            render_schedule(console, session)
            continue
        if command == "clear":
            session.clear_query()
            render_schedule(console, session)
            continue
        if command in {"next", "+", "prev", "-"}:
            row_index = _parse_row_number(value, session)
            if row_index is None:
                console.print(f"[red]Invalid row: {value or '-'} (1-{len(session.rows)})[/red]")
                continue
            delta = 1 if command in {"next", "+"} else -1
            session.nudge(row_index, delta)
            render_schedule(console, session)
            continue
        if command == "refresh":
            try:
                table = loader()
            except FetchError as error:
                console.print(f"[red]Could not load schedule: {error}[/red]")
                continue
            session.apply_refresh(table)
            render_summary(console, session, source)
            render_schedule(console, session)
            continue

        console.print(f"[red]Unknown command: {command}[/red]")
        render_command_help(console)


def run_textual_app(session: ScheduleSession, loader: TableLoader, source: str) -> int:
    try:
        from .tracker_textual import launch_textual_tracker
    except ImportError as error:
        print(
            f"[error] textual UI is unavailable: {error}. "
            "Install dependencies: python -m pip install -r requirements.txt",
            file=sys.stderr,
        )
        return 1
    return launch_textual_tracker(session, loader, source)


def run_app(argv: list[str]) -> int:
    args = parse_app_args(argv)
    if args.timeout is not None and args.timeout <= 0:
        print("[error] --timeout must be > 0", file=sys.stderr)
        return 2
    if args.retries is not None and args.retries < 1:
        print("[error] --retries must be >= 1", file=sys.stderr)
        return 2
    if args.delimiter is not None and len(args.delimiter) != 1:
        print("[error] --delimiter must be a single character", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    try:
        config = build_config(args)
    except RuntimeError as error:
        print(f"[error] {error}", file=sys.stderr)
        return 1

    loader = make_loader(config)
    session = ScheduleSession(query=config.student_id)

    if args.ui == "textual" and not (args.once or args.as_json):
        return run_textual_app(session, loader, config.source)

    try:
        session.apply_refresh(loader())
    except FetchError as error:
        print(f"[error] {error}", file=sys.stderr)
        return 1

    if args.as_json:
        print(json.dumps(session.to_payload(), ensure_ascii=False, indent=2))
        return 0

    console = Console()
    if args.once:
        render_summary(console, session, config.source)
        render_legend(console)
        render_schedule(console, session)
        return 0
    return run_prompt_app(console, session, loader, config.source)


def main() -> int:
    return run_app(sys.argv[1:])
