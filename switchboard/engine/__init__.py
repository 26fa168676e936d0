"""Switchboard adapter core for the cc-switch provider-switching CLI."""
from .models import (
    AppType,
    BackupResult,
    CustomTool,
    DiscoveredSkill,
    EnvVarRecord,
    ExecutionResult,
    ImportResult,
    McpServer,
    McpServerParams,
    McpServerUpdate,
    OperationResult,
    Prompt,
    PromptParams,
    PromptUpdate,
    Provider,
    ProviderListing,
    ProviderParams,
    ProviderType,
    ProviderUpdate,
    RegisterToolRequest,
    Skill,
    SkillInfo,
    SkillRepo,
    SpeedtestResult,
    StatusReport,
    SwitchResult,
    UnmanagedSkill,
)
from .config import CoreConfig
from .errors import (
    NonZeroExitError,
    ParseAmbiguityError,
    ProcessSpawnError,
    ProcessTimeoutError,
    StoreClientError,
    SwitchboardError,
    ToolNotFoundError,
    ValidationError,
)

__all__ = [
    # Facade (lazy import to avoid circular deps)
    "SwitchAdapter",
    # Components (lazy import)
    "ProcessExecutor",
    "StateResolver",
    "StoreClient",
    "DirectStoreMutator",
    "CustomToolRunner",
    "ParserSet",
    # YAML config (lazy import)
    "SwitchboardConfig",
    "load_yaml_config",
    # Models
    "AppType",
    "BackupResult",
    "CustomTool",
    "DiscoveredSkill",
    "EnvVarRecord",
    "ExecutionResult",
    "ImportResult",
    "McpServer",
    "McpServerParams",
    "McpServerUpdate",
    "OperationResult",
    "Prompt",
    "PromptParams",
    "PromptUpdate",
    "Provider",
    "ProviderListing",
    "ProviderParams",
    "ProviderType",
    "ProviderUpdate",
    "RegisterToolRequest",
    "Skill",
    "SkillInfo",
    "SkillRepo",
    "SpeedtestResult",
    "StatusReport",
    "SwitchResult",
    "UnmanagedSkill",
    # Config
    "CoreConfig",
    # Errors
    "NonZeroExitError",
    "ParseAmbiguityError",
    "ProcessSpawnError",
    "ProcessTimeoutError",
    "StoreClientError",
    "SwitchboardError",
    "ToolNotFoundError",
    "ValidationError",
]


def __getattr__(name: str):
    if name == "SwitchAdapter":
        from .adapter import SwitchAdapter
        return SwitchAdapter
    if name == "ProcessExecutor":
        from .executor import ProcessExecutor
        return ProcessExecutor
    if name == "StateResolver":
        from .state import StateResolver
        return StateResolver
    if name == "StoreClient":
        from .store import StoreClient
        return StoreClient
    if name == "DirectStoreMutator":
        from .mutator import DirectStoreMutator
        return DirectStoreMutator
    if name == "CustomToolRunner":
        from .custom_tools import CustomToolRunner
        return CustomToolRunner
    if name == "ParserSet":
        from .parsers import ParserSet
        return ParserSet
    if name == "SwitchboardConfig":
        from .yaml_config import SwitchboardConfig
        return SwitchboardConfig
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
