"""Per-entity parsers and footer/message extractors for driven-CLI output."""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..errors import ParseAmbiguityError
from ..models import (
    AppType,
    DiscoveredSkill,
    EnvVarRecord,
    McpServer,
    Prompt,
    Provider,
    ProviderType,
    Skill,
    SkillInfo,
    SkillRepo,
    UnmanagedSkill,
)
from .base import (
    CELL_SEPARATOR,
    CHECK_MARK,
    RULE_GLYPHS,
    OutputParser,
    has_alnum,
    is_checked,
    is_footer,
    split_cells,
)
from .plain import ColumnParser, KeyValueParser, PlainListParser
from .table import TableParser

_VENDOR_KEYWORDS: tuple[tuple[tuple[str, ...], ProviderType], ...] = (
    (("claude", "anthropic"), ProviderType.CLAUDE),
    (("gemini", "google"), ProviderType.GEMINI),
    (("codex", "openai"), ProviderType.CODEX),
)


def infer_provider_type(provider_id: str) -> ProviderType:
    lowered = provider_id.lower()
    for keywords, provider_type in _VENDOR_KEYWORDS:
        if any(k in lowered for k in keywords):
            return provider_type
    return ProviderType.CUSTOM


# ── Providers ──


class ProviderTableParser(TableParser[Provider]):
    """``active ┆ id ┆ name ┆ api url`` rows from ``provider list``."""

    header_titles = frozenset({"ID", "Name", "API URL"})

    def build(self, cells: list[str]) -> Provider:
        ident = cells[1]
        return Provider(
            id=ident,
            name=cells[2] or ident,
            type=infer_provider_type(ident),
            is_active=is_checked(cells[0]),
        )


class ProviderListParser:
    """Selects the table or the legacy plain shape per output.

    Composes the two line parsers rather than parsing lines itself.
    """

    def __init__(self) -> None:
        self._table = ProviderTableParser()
        self._plain = PlainListParser()

    def parse(self, output: str | None) -> list[Provider]:
        if not output:
            return []
        if CELL_SEPARATOR in output:
            return self._table.parse(output)
        return [
            Provider(
                id=entry.id,
                name=entry.name,
                type=infer_provider_type(entry.id),
                is_active=entry.active,
            )
            for entry in self._plain.parse(output)
        ]


# ── MCP servers ──


class McpServerTableParser(TableParser[McpServer]):
    """``status ┆ id ┆ name ┆ command`` rows from ``mcp list``.

    The status check mark is recorded as the enabled flag of the app the
    listing was requested for.
    """

    sentinels = ("No MCP servers found", "no servers found")

    def __init__(self, app: AppType = AppType.CLAUDE) -> None:
        self.app = app

    def for_app(self, app: AppType) -> McpServerTableParser:
        return type(self)(app)

    def build(self, cells: list[str]) -> McpServer:
        command_line = self.cell(cells, 3).split()
        return McpServer(
            id=cells[1],
            name=cells[2] or cells[1],
            command=command_line[0] if command_line else "",
            args=command_line[1:],
            enabled={self.app: is_checked(cells[0])},
        )


# ── Prompts ──


class PromptTableParser(TableParser[Prompt]):
    """``active ┆ id ┆ name ┆ description ┆ updated`` rows."""

    def build(self, cells: list[str]) -> Prompt:
        return Prompt(
            id=cells[1],
            name=cells[2] or cells[1],
            description=self.cell(cells, 3),
            is_active=is_checked(cells[0]),
            updated=self.cell(cells, 4),
        )


# ── Skills ──


class SkillTableParser(TableParser[Skill]):
    """``id ┆ name ┆ description`` rows from ``skills list``."""

    sentinels = ("No installed skills found",)
    min_cells = 2
    id_index = 0

    def build(self, cells: list[str]) -> Skill:
        return Skill(
            id=cells[0],
            name=cells[1] or cells[0],
            description=self.cell(cells, 2),
            installed=True,
            enabled=any(is_checked(c) for c in cells[3:]),
        )


class SkillRepoTableParser(TableParser[SkillRepo]):
    """``owner/name ┆ branch ┆ enabled`` rows from ``skills repos list``."""

    header_titles = frozenset({"Repository", "Repo", "Branch", "Enabled"})
    id_index = 0

    def build(self, cells: list[str]) -> SkillRepo:
        owner, _, name = cells[0].partition("/")
        if not owner or not name:
            raise ParseAmbiguityError(cells[0], "expected owner/name")
        return SkillRepo(
            owner=owner,
            name=name,
            branch=cells[1],
            enabled=is_checked(cells[2]),
        )


_INSTALLED_MARKER = "[installed]"


class DiscoveredSkillParser(OutputParser[DiscoveredSkill]):
    """``skills discover`` output, table or two-space columns.

    Table rows have an optional indicator cell, then the skill directory
    (its identifier) and display name.
    """

    header_titles = frozenset({"Directory", "Name"})

    def __init__(self) -> None:
        self._columns = ColumnParser(min_columns=1)

    def parse_line(self, line: str) -> DiscoveredSkill | None:
        if CELL_SEPARATOR in line:
            return self._parse_row(line)
        columns = self._columns.parse_line(line)
        if columns is None or not columns[0] or is_footer(columns[0]):
            return None
        if columns[0].startswith("Available"):
            return None
        description = columns[1] if len(columns) > 1 else ""
        return DiscoveredSkill(
            name=columns[0],
            description=description.replace(_INSTALLED_MARKER, "").strip(),
            installed=_INSTALLED_MARKER in line,
        )

    def _parse_row(self, line: str) -> DiscoveredSkill | None:
        if any(glyph in line for glyph in RULE_GLYPHS) or is_footer(line):
            return None
        cells = split_cells(line)
        if any(c in self.header_titles for c in cells):
            return None
        if len(cells) < 2:
            raise ParseAmbiguityError(line, "too few cells")
        indicator = cells[0] if len(cells) > 2 else ""
        ident, name = (cells[1], cells[2]) if len(cells) > 2 else cells[:2]
        if "Available" in ident or not has_alnum(ident):
            return None
        return DiscoveredSkill(
            name=ident,
            description=name if name != ident else "",
            installed=CHECK_MARK in indicator,
        )


class SkillSearchParser(OutputParser[DiscoveredSkill]):
    """``name  description  [installed]`` lines from ``skills search``."""

    def __init__(self) -> None:
        self._columns = ColumnParser(min_columns=2)

    def parse_line(self, line: str) -> DiscoveredSkill | None:
        columns = self._columns.parse_line(line)
        if columns is None:
            return None
        return DiscoveredSkill(
            name=columns[0],
            description=columns[1].replace(_INSTALLED_MARKER, "").strip(),
            installed=_INSTALLED_MARKER in line,
        )


class UnmanagedSkillTableParser(TableParser[UnmanagedSkill]):
    """``name ┆ path ┆ app`` rows from ``skills scan-unmanaged``."""

    sentinels = ("No unmanaged skills found",)
    header_titles = frozenset({"Name", "Path", "App"})
    id_index = 0

    def build(self, cells: list[str]) -> UnmanagedSkill:
        return UnmanagedSkill(name=cells[0], path=cells[1], app=cells[2])


# ── Environment ──


class EnvVarTableParser(TableParser[EnvVarRecord]):
    """``variable ┆ value ┆ source type ┆ source location`` rows."""

    header_titles = frozenset({"Variable", "Value"})
    min_cells = 4
    id_index = 0

    def build(self, cells: list[str]) -> EnvVarRecord:
        return EnvVarRecord(
            variable=cells[0],
            value=cells[1],
            source_type=cells[2],
            source_location=cells[3],
        )


# ── Extractors ──

_CURRENT_MARKER_RE = re.compile(r"→\s*Current:\s*(\S+)")
_CURRENT_PROVIDER_RE = re.compile(r"Current Provider:\s*(\S+)")
_DB_PATH_RE = re.compile(r"DB file:\s*(.+)")
_LATENCY_RE = re.compile(r"Latency:\s*(\d+)ms")
_BACKUP_PATH_RE = re.compile(
    r"(?:saved to|created at|backed up to):\s*(.+)", re.IGNORECASE
)
_IMPORTED_RE = re.compile(r"Imported:\s*(.+)", re.IGNORECASE)
_SYNC_METHOD_RE = re.compile(r"(?:method|sync.method):\s*(\w+)", re.IGNORECASE)


def _first_group(pattern: re.Pattern[str], output: str | None) -> str | None:
    if not output:
        return None
    match = pattern.search(output)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_current_marker(output: str | None) -> str | None:
    """Provider id from the ``→ Current: «id»`` footer of a list."""
    return _first_group(_CURRENT_MARKER_RE, output)


def extract_current_provider_line(output: str | None) -> str | None:
    return _first_group(_CURRENT_PROVIDER_RE, output)


def extract_db_path(output: str | None) -> str | None:
    return _first_group(_DB_PATH_RE, output)


def extract_latency_ms(output: str | None) -> int | None:
    value = _first_group(_LATENCY_RE, output)
    return int(value) if value is not None else None


def extract_backup_path(output: str | None) -> str | None:
    return _first_group(_BACKUP_PATH_RE, output)


def extract_imported(output: str | None) -> list[str]:
    value = _first_group(_IMPORTED_RE, output)
    if value is None:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


def extract_sync_method(output: str | None) -> str | None:
    return _first_group(_SYNC_METHOD_RE, output)


_TRUTHY = {"true", "yes"}


def parse_skill_info(output: str | None) -> SkillInfo | None:
    """``skills info`` key/value dump; None unless a name is present."""
    entries = {
        key.lower(): value
        for key, value in KeyValueParser().parse(output)
    }
    name = entries.get("name")
    if not name:
        return None

    def flag(key: str) -> bool | None:
        if key not in entries:
            return None
        return entries[key].lower() in _TRUTHY

    return SkillInfo(
        name=name,
        description=entries.get("description"),
        version=entries.get("version"),
        author=entries.get("author"),
        path=entries.get("path"),
        enabled=flag("enabled"),
        installed=flag("installed"),
    )


@dataclass
class ParserSet:
    """One parser per output shape the adapter consumes."""
    providers: ProviderListParser = field(default_factory=ProviderListParser)
    mcp_servers: McpServerTableParser = field(default_factory=McpServerTableParser)
    prompts: PromptTableParser = field(default_factory=PromptTableParser)
    skills: SkillTableParser = field(default_factory=SkillTableParser)
    skill_repos: SkillRepoTableParser = field(default_factory=SkillRepoTableParser)
    discovered_skills: DiscoveredSkillParser = field(
        default_factory=DiscoveredSkillParser
    )
    skill_search: SkillSearchParser = field(default_factory=SkillSearchParser)
    unmanaged_skills: UnmanagedSkillTableParser = field(
        default_factory=UnmanagedSkillTableParser
    )
    env_vars: EnvVarTableParser = field(default_factory=EnvVarTableParser)
    key_values: KeyValueParser = field(default_factory=KeyValueParser)
