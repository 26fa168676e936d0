"""Core data models for the adapter core.

All dataclasses, enums, and parameter objects. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .errors import ValidationError


class AppType(str, Enum):
    """Downstream applications whose configuration the CLI manages.

    Core apps are understood by the CLI's --app flag; the others only
    exist in the store.
    """
    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"
    OPENCODE = "opencode"
    KILOCODE_CLI = "kilocode-cli"
    AMP = "amp"

    @property
    def is_core(self) -> bool:
        return self in _CORE_APPS

    @property
    def enabled_column(self) -> str:
        """mcp_servers column holding this app's enabled flag."""
        return "enabled_" + self.value.replace("-", "_")

    @classmethod
    def parse(cls, value: str | AppType | None) -> AppType:
        """Resolve an app name; None or empty means claude."""
        if isinstance(value, AppType):
            return value
        if not value:
            return cls.CLAUDE
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid app: {value}") from None


_CORE_APPS = frozenset({AppType.CLAUDE, AppType.CODEX, AppType.GEMINI})


class ProviderType(str, Enum):
    """Vendor family inferred from a provider id."""
    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"
    CUSTOM = "custom"


@dataclass
class ExecutionResult:
    """Captured outcome of one subprocess run."""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def error_text(self) -> str:
        """stderr, falling back to stdout."""
        return self.stderr or self.stdout


# ── Records parsed from CLI output ──


@dataclass
class Provider:
    id: str
    name: str
    type: ProviderType = ProviderType.CUSTOM
    is_active: bool = False
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderListing:
    providers: list[Provider] = field(default_factory=list)
    current_provider_id: str | None = None


@dataclass
class McpServer:
    id: str
    name: str
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    enabled: dict[AppType, bool] = field(default_factory=dict)

    def is_enabled_for(self, app: AppType) -> bool:
        return self.enabled.get(app, False)


@dataclass
class Prompt:
    id: str
    name: str
    content: str = ""
    description: str = ""
    is_active: bool = False
    updated: str = ""
    created: str = ""


@dataclass
class Skill:
    id: str
    name: str
    description: str = ""
    installed: bool = True
    enabled: bool = False


@dataclass
class SkillRepo:
    owner: str
    name: str
    branch: str = ""
    enabled: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class DiscoveredSkill:
    name: str
    description: str = ""
    installed: bool = False


@dataclass
class UnmanagedSkill:
    name: str
    path: str
    app: str


@dataclass
class SkillInfo:
    name: str
    description: str | None = None
    version: str | None = None
    author: str | None = None
    path: str | None = None
    enabled: bool | None = None
    installed: bool | None = None


@dataclass
class EnvVarRecord:
    """Environment variable as reported by the CLI; informational only."""
    variable: str
    value: str
    source_type: str
    source_location: str


# ── Operation results ──


@dataclass
class OperationResult:
    """Uniform outcome of a mutation; never raised, always returned."""
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SwitchResult(OperationResult):
    previous_provider_id: str | None = None
    current_provider_id: str | None = None


@dataclass
class SpeedtestResult(OperationResult):
    latency_ms: int | None = None


@dataclass
class BackupResult(OperationResult):
    backup_path: str | None = None


@dataclass
class ImportResult(OperationResult):
    imported: list[str] = field(default_factory=list)


@dataclass
class StatusReport:
    available: bool
    version: str
    current_provider: Provider | None = None


@dataclass
class CustomTool:
    id: str
    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    description: str | None = None
    created_at: str = ""
    updated_at: str = ""


# ── Parameter objects ──


@dataclass
class ProviderParams:
    """Fields for a new provider row."""
    id: str
    name: str
    api_url: str
    api_key: str = ""
    app: AppType = AppType.CLAUDE
    website_url: str = ""
    notes: str = ""
    sort_index: int = 0
    model: str | None = None
    haiku_model: str | None = None
    sonnet_model: str | None = None
    opus_model: str | None = None


@dataclass
class ProviderUpdate:
    """Partial provider edit; None leaves a field unchanged.

    For the tier models an empty string removes the override.
    """
    id: str
    app: AppType = AppType.CLAUDE
    name: str | None = None
    api_url: str | None = None
    api_key: str | None = None
    website_url: str | None = None
    notes: str | None = None
    sort_index: int | None = None
    model: str | None = None
    haiku_model: str | None = None
    sonnet_model: str | None = None
    opus_model: str | None = None

    def touches_settings(self) -> bool:
        return any(
            value is not None
            for value in (
                self.api_url, self.api_key, self.model,
                self.haiku_model, self.sonnet_model, self.opus_model,
            )
        )


@dataclass
class McpServerParams:
    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    app: AppType = AppType.CLAUDE
    description: str = ""


@dataclass
class McpServerUpdate:
    id: str
    name: str | None = None
    command: str | None = None
    args: list[str] | None = None
    env: dict[str, str] | None = None


@dataclass
class PromptParams:
    id: str
    name: str
    content: str
    description: str = ""
    app: AppType = AppType.CLAUDE


@dataclass
class PromptUpdate:
    id: str
    app: AppType = AppType.CLAUDE
    name: str | None = None
    content: str | None = None
    description: str | None = None


@dataclass
class RegisterToolRequest:
    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    description: str | None = None
