"""Shared fixtures: a cc-switch store on disk and a scriptable fake CLI."""
from __future__ import annotations

import json
import sqlite3
import stat
import sys
from pathlib import Path

import pytest

STORE_SCHEMA = """
CREATE TABLE providers (
    id TEXT NOT NULL,
    app_type TEXT NOT NULL,
    name TEXT NOT NULL,
    settings_config TEXT NOT NULL,
    website_url TEXT,
    category TEXT,
    created_at INTEGER,
    sort_index INTEGER,
    notes TEXT,
    icon TEXT,
    icon_color TEXT,
    meta TEXT NOT NULL DEFAULT '{}',
    is_current BOOLEAN NOT NULL DEFAULT 0,
    in_failover_queue BOOLEAN NOT NULL DEFAULT 0,
    cost_multiplier TEXT NOT NULL DEFAULT '1.0',
    limit_daily_usd TEXT,
    limit_monthly_usd TEXT,
    provider_type TEXT,
    PRIMARY KEY (id, app_type)
);
CREATE TABLE mcp_servers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    server_config TEXT NOT NULL,
    description TEXT,
    homepage TEXT,
    docs TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    enabled_claude BOOLEAN NOT NULL DEFAULT 0,
    enabled_codex BOOLEAN NOT NULL DEFAULT 0,
    enabled_gemini BOOLEAN NOT NULL DEFAULT 0,
    enabled_opencode BOOLEAN NOT NULL DEFAULT 0,
    enabled_kilocode_cli BOOLEAN NOT NULL DEFAULT 0,
    enabled_amp BOOLEAN NOT NULL DEFAULT 0
);
CREATE TABLE prompts (
    id TEXT NOT NULL,
    app_type TEXT NOT NULL,
    name TEXT NOT NULL,
    content TEXT NOT NULL,
    description TEXT,
    enabled BOOLEAN NOT NULL DEFAULT 1,
    created_at INTEGER,
    updated_at INTEGER,
    PRIMARY KEY (id, app_type)
);
"""

CLAUDE_SETTINGS = {
    "env": {
        "ANTHROPIC_AUTH_TOKEN": "sk-ant-test",
        "ANTHROPIC_BASE_URL": "https://api.anthropic.com",
        "ANTHROPIC_MODEL": "claude-3-5-sonnet-20241022",
    }
}


def query(db_path: Path, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


def insert_provider(
    db_path: Path,
    provider_id: str,
    app: str = "claude",
    *,
    name: str | None = None,
    settings: dict | None = None,
    is_current: bool = False,
    notes: str = "",
) -> None:
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "INSERT INTO providers (id, app_type, name, settings_config, "
            "website_url, category, created_at, sort_index, notes, icon, "
            "icon_color, meta, is_current, in_failover_queue, cost_multiplier, "
            "limit_daily_usd, limit_monthly_usd, provider_type) "
            "VALUES (?, ?, ?, ?, 'https://example.com', 'custom', 1700000000, "
            "3, ?, 'star', '#ff0000', '{\"k\": 1}', ?, 1, '1.5', '10', '100', "
            "'custom')",
            (
                provider_id, app, name or provider_id,
                json.dumps(settings if settings is not None else CLAUDE_SETTINGS),
                notes, int(is_current),
            ),
        )
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def store_db(tmp_path) -> Path:
    db_path = tmp_path / "cc-switch.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(STORE_SCHEMA)
        conn.commit()
    finally:
        conn.close()
    return db_path


_FAKE_CLI = """#!{python}
import json
import pathlib
import sys
import time

here = pathlib.Path(__file__).resolve().parent
args = sys.argv[1:]
with open(here / "calls.log", "a", encoding="utf-8") as log:
    log.write(json.dumps(args) + "\\n")
responses = json.loads((here / "responses.json").read_text(encoding="utf-8"))
key = " ".join(args)
reply = responses.get(key)
if reply is None:
    reply = responses.get("*", {{"exit": 2, "stderr": "unknown command: " + key}})
time.sleep(reply.get("sleep", 0))
sys.stdout.write(reply.get("stdout", ""))
sys.stderr.write(reply.get("stderr", ""))
sys.exit(reply.get("exit", 0))
"""


class FakeCli:
    """A cc-switch stand-in answering from a table of canned replies.

    Replies are keyed by the space-joined argument list; every
    invocation is appended to calls.log.
    """

    def __init__(self, directory: Path) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self.path = directory / "cc-switch"
        self._responses_file = directory / "responses.json"
        self._calls_file = directory / "calls.log"
        self._responses: dict[str, dict] = {}
        self.path.write_text(_FAKE_CLI.format(python=sys.executable), encoding="utf-8")
        self.path.chmod(self.path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP)
        self._flush()

    def _flush(self) -> None:
        self._responses_file.write_text(json.dumps(self._responses), encoding="utf-8")

    def respond(
        self,
        command: str,
        stdout: str = "",
        *,
        stderr: str = "",
        exit_code: int = 0,
        sleep: float = 0,
    ) -> None:
        self._responses[command] = {
            "stdout": stdout, "stderr": stderr, "exit": exit_code, "sleep": sleep,
        }
        self._flush()

    def calls(self) -> list[list[str]]:
        if not self._calls_file.exists():
            return []
        return [
            json.loads(line)
            for line in self._calls_file.read_text(encoding="utf-8").splitlines()
        ]


@pytest.fixture
def fake_cli(tmp_path) -> FakeCli:
    return FakeCli(tmp_path / "bin")
