"""Tests for the diagnostic CLI rendering and config discovery."""
from __future__ import annotations

import io

import pytest
from rich.console import Console

from switchboard.app import _load_config, _render
from switchboard.engine.adapter import SwitchAdapter
from switchboard.engine.config import CoreConfig
from switchboard.engine.models import AppType, RegisterToolRequest
from switchboard.shared.services.local_settings import MemorySettings


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=120, color_system=None), buffer


@pytest.mark.asyncio
async def test_render_providers_table(fake_cli, store_db):
    fake_cli.respond(
        "--app claude provider list",
        "│ ✓ ┆ work ┆ Work Proxy ┆ https://w │\n→ Current: work\n",
    )
    adapter = SwitchAdapter(
        CoreConfig(binary_path=str(fake_cli.path), default_db_path=str(store_db)),
        MemorySettings(),
    )
    console, buffer = _console()

    code = await _render("providers", adapter, AppType.CLAUDE, console)

    assert code == 0
    assert "Work Proxy" in buffer.getvalue()
    assert "✓" in buffer.getvalue()


@pytest.mark.asyncio
async def test_render_current_without_cli_exits_nonzero(tmp_path, store_db):
    adapter = SwitchAdapter(
        CoreConfig(binary_path=str(tmp_path / "missing"), default_db_path=str(store_db)),
        MemorySettings(),
    )
    console, buffer = _console()

    assert await _render("current", adapter, AppType.CLAUDE, console) == 1
    assert buffer.getvalue().strip() == "-"


@pytest.mark.asyncio
async def test_render_tools(store_db):
    adapter = SwitchAdapter(
        CoreConfig(default_db_path=str(store_db)), MemorySettings()
    )
    await adapter.tools.register_tool(
        RegisterToolRequest(name="jq", command="jq", args=["."]), probe=False
    )
    console, buffer = _console()

    assert await _render("tools", adapter, AppType.CLAUDE, console) == 0
    assert "jq ." in buffer.getvalue()


def test_load_config_prefers_explicit_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / "switchboard.yaml").write_text(
        "cli:\n  binary: /from/cwd\n", encoding="utf-8"
    )
    explicit = tmp_path / "other.yaml"
    explicit.write_text("cli:\n  binary: /from/flag\n", encoding="utf-8")

    assert _load_config(None).core.binary_path == "/from/cwd"
    assert _load_config(str(explicit)).core.binary_path == "/from/flag"
