"""Switchboard CLI: read-only diagnostics for the cc-switch adapter."""

from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table

from switchboard.engine.adapter import SwitchAdapter
from switchboard.engine.config import CoreConfig
from switchboard.engine.errors import ValidationError
from switchboard.engine.models import AppType
from switchboard.engine.yaml_config import SwitchboardConfig, load_yaml_config
from switchboard.shared.services.local_settings import MemorySettings

logger = logging.getLogger(__name__)

COMMANDS = (
    "status", "providers", "current", "mcp", "prompts",
    "skills", "repos", "env", "config-path", "tools",
)


def _configure_logging(level_name: str) -> Path:
    log_dir = Path.home() / ".switchboard" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "switchboard.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    # stdout carries the tables; only problems go to the terminal
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.WARNING)
    stream_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    return log_file


def _load_config(path: str | None) -> SwitchboardConfig:
    if path:
        return load_yaml_config(path)
    for candidate in (Path.cwd() / "switchboard.yaml",
                      Path.home() / ".switchboard" / "switchboard.yaml"):
        if candidate.exists():
            return load_yaml_config(candidate)
    return SwitchboardConfig(core=CoreConfig.from_env())


def _table(title: str, columns: list[str], rows: list[list[str]]) -> Table:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*row)
    return table


def _mark(flag: bool | None) -> str:
    return "✓" if flag else ""


async def _render(
    command: str,
    adapter: SwitchAdapter,
    app: AppType,
    console: Console,
) -> int:
    if command == "status":
        report = await adapter.get_status(app)
        console.print(f"available: {report.available}")
        console.print(f"version:   {report.version}")
        current = report.current_provider
        console.print(f"current:   {current.id if current else '-'}")
        return 0 if report.available else 1

    if command == "providers":
        listing = await adapter.list_providers(app)
        console.print(_table(
            f"Providers ({app.value})",
            ["", "ID", "Name", "Type"],
            [[_mark(p.is_active or p.id == listing.current_provider_id),
              p.id, p.name, p.type.value] for p in listing.providers],
        ))
        return 0

    if command == "current":
        provider_id = await adapter.resolve_current_provider_id(app)
        console.print(provider_id or "-")
        return 0 if provider_id else 1

    if command == "mcp":
        servers = await adapter.list_mcp_servers(app)
        console.print(_table(
            f"MCP servers ({app.value})",
            ["", "ID", "Name", "Command"],
            [[_mark(s.is_enabled_for(app)), s.id, s.name,
              " ".join([s.command, *s.args]).strip()] for s in servers],
        ))
        return 0

    if command == "prompts":
        prompts = await adapter.list_prompts(app)
        console.print(_table(
            f"Prompts ({app.value})",
            ["", "ID", "Name", "Description", "Updated"],
            [[_mark(p.is_active), p.id, p.name, p.description, p.updated]
             for p in prompts],
        ))
        return 0

    if command == "skills":
        skills = await adapter.list_skills(app)
        console.print(_table(
            f"Skills ({app.value})",
            ["ID", "Name", "Description"],
            [[s.id, s.name, s.description] for s in skills],
        ))
        return 0

    if command == "repos":
        repos = await adapter.list_skill_repos()
        console.print(_table(
            "Skill repositories",
            ["Repository", "Branch", "Enabled"],
            [[r.full_name, r.branch, _mark(r.enabled)] for r in repos],
        ))
        return 0

    if command == "env":
        env_vars = await adapter.list_env_vars(app)
        console.print(_table(
            f"Environment ({app.value})",
            ["Variable", "Value", "Source", "Location"],
            [[v.variable, v.value, v.source_type, v.source_location]
             for v in env_vars],
        ))
        return 0

    if command == "config-path":
        path = await adapter.get_config_path(app)
        console.print(path or "-")
        return 0 if path else 1

    if command == "tools":
        tools = adapter.tools.list_tools()
        console.print(_table(
            "Custom tools",
            ["Name", "Command", "Description"],
            [[t.name, " ".join([t.command, *t.args]), t.description or ""]
             for t in tools],
        ))
        return 0

    raise ValueError(f"unknown command: {command}")


async def _run(args, config: SwitchboardConfig) -> int:
    core = config.core
    if args.binary:
        core.binary_path = args.binary
    log_file = _configure_logging(args.log_level or core.log_level)
    logger.info(
        "switchboard %s app=%s binary=%s log=%s",
        args.command, args.app, core.binary_path, log_file,
    )

    adapter = SwitchAdapter(core, MemorySettings())
    for request in config.tools:
        try:
            await adapter.tools.register_tool(request, probe=False)
        except ValidationError as exc:
            logger.warning("Skipping configured tool %s: %s", request.name, exc)

    return await _render(
        args.command, adapter, AppType.parse(args.app), Console()
    )


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(
        prog="switchboard",
        description="Switchboard: inspect what cc-switch currently manages",
    )
    parser.add_argument("command", choices=COMMANDS, help="What to show")
    parser.add_argument(
        "--app", default="claude",
        help="Application to inspect (claude, codex, gemini, opencode, "
             "kilocode-cli, amp)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: ./switchboard.yaml, "
             "~/.switchboard/switchboard.yaml)",
    )
    parser.add_argument(
        "--binary", metavar="PATH",
        help="cc-switch binary to drive (overrides config)",
    )
    parser.add_argument(
        "--log-level", metavar="LEVEL",
        help="Log level for ~/.switchboard/logs/switchboard.log",
    )
    args = parser.parse_args()

    try:
        AppType.parse(args.app)
    except ValidationError as exc:
        parser.error(str(exc))
    try:
        config = _load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        parser.error(f"cannot load config: {exc}")

    sys.exit(asyncio.run(_run(args, config)))


if __name__ == "__main__":
    main()
