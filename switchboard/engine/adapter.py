"""SwitchAdapter: the facade callers use to drive cc-switch.

Reads go CLI → parser → typed records and degrade to an empty result
on any failure. Mutations return an OperationResult and never raise.
Operations the CLI cannot perform go through DirectStoreMutator, after
which the CLI is asked to re-apply the live configuration.

Mutations are serialized per scope: provider writes per app, MCP
writes globally, prompt writes per app.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Sequence
from typing import Any

from switchboard.shared.services.local_settings import LocalSettings

from .config import CoreConfig
from .custom_tools import CustomToolRunner
from .errors import NonZeroExitError, SwitchboardError, ValidationError
from .executor import ProcessExecutor
from .models import (
    AppType,
    BackupResult,
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
    ProviderUpdate,
    Skill,
    SkillInfo,
    SkillRepo,
    SpeedtestResult,
    StatusReport,
    SwitchResult,
    UnmanagedSkill,
)
from .mutator import DirectStoreMutator
from .parsers import (
    ParserSet,
    extract_backup_path,
    extract_current_provider_line,
    extract_db_path,
    extract_imported,
    extract_latency_ms,
    extract_sync_method,
    infer_provider_type,
    parse_skill_info,
)
from .state import StateResolver, app_flag_args
from .store import StoreClient

logger = logging.getLogger(__name__)

AppArg = AppType | str | None

SYNC_METHODS = ("auto", "symlink", "copy")


class KeyedLocks:
    """One asyncio.Lock per key, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def __call__(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


def _read_path(default: Callable[[], Any]):
    """Turn any adapter-core failure into *default()*, logging the cause."""
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            try:
                return await fn(self, *args, **kwargs)
            except SwitchboardError as exc:
                logger.warning("%s failed: %s", fn.__name__, exc)
                return default()
        return wrapper
    return decorator


def _mutation(action: str, result_type: type[OperationResult] = OperationResult):
    """Turn failures into ``result_type(success=False, ...)``.

    A non-zero exit becomes ``Failed to «action»: «stderr or stdout»``.
    """
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            try:
                return await fn(self, *args, **kwargs)
            except NonZeroExitError as exc:
                message = f"Failed to {action}: {exc.stderr or exc.stdout}"
            except SwitchboardError as exc:
                message = str(exc)
            logger.warning("%s failed: %s", fn.__name__, message)
            return result_type(False, message)
        return wrapper
    return decorator


class SwitchAdapter:
    """Drives the cc-switch CLI and its store on behalf of callers.

    Construct one per process and share it; it holds no cached state
    beyond its locks.
    """

    def __init__(
        self,
        config: CoreConfig,
        settings: LocalSettings,
        *,
        executor: ProcessExecutor | None = None,
        store: StoreClient | None = None,
        parsers: ParserSet | None = None,
    ) -> None:
        self._config = config
        self._settings = settings
        self._executor = executor or ProcessExecutor(
            config.binary_path,
            default_timeout=config.cli_timeout_seconds,
            probe_timeout=config.probe_timeout_seconds,
        )
        self._store = store
        self._parsers = parsers or ParserSet()
        self._state = StateResolver(self._executor, settings)
        self._mutator = DirectStoreMutator(self._open_store)
        self._tools = CustomToolRunner(
            settings,
            default_timeout=config.tool_timeout_seconds,
            probe_timeout=config.probe_timeout_seconds,
        )
        self._locks = KeyedLocks()

    @property
    def tools(self) -> CustomToolRunner:
        return self._tools

    # ── Plumbing ──

    async def _run(
        self,
        args: Sequence[str],
        app: AppType | None = None,
    ) -> ExecutionResult:
        argv = [*(app_flag_args(app) if app is not None else []), *args]
        result = await self._executor.execute(argv)
        if not result.ok:
            raise NonZeroExitError(
                argv, result.exit_code, result.stderr, result.stdout
            )
        return result

    async def _db_path(self) -> str:
        try:
            result = await self._run(["config", "path"])
        except SwitchboardError as exc:
            logger.debug("config path failed, using default store: %s", exc)
        else:
            path = extract_db_path(result.stdout)
            if path:
                return path
        return self._config.default_db_path

    async def _open_store(self) -> StoreClient:
        if self._store is not None:
            return self._store
        return StoreClient(
            await self._db_path(),
            busy_timeout=self._config.store_busy_timeout_seconds,
        )

    async def _replay(self, args: Sequence[str], app: AppType | None) -> str:
        """Re-run a CLI step after a store write; returns a message suffix."""
        if not self._config.replay_side_effects:
            return ""
        try:
            await self._run(args, app)
        except SwitchboardError as exc:
            logger.warning("Replay of %s failed: %s", list(args), exc)
            return f" (warning: '{' '.join(args)}' failed: {exc})"
        return ""

    @staticmethod
    def _with_suffix(result: OperationResult, suffix: str) -> OperationResult:
        if suffix:
            result.message += suffix
        return result

    # ── Probes ──

    async def is_available(self) -> bool:
        return await self._executor.is_available()

    @_read_path(lambda: "unknown")
    async def get_version(self) -> str:
        result = await self._run(["--version"])
        return result.stdout or "unknown"

    async def get_status(self, app: AppArg = None) -> StatusReport:
        available = await self.is_available()
        if not available:
            return StatusReport(available=False, version="unknown")
        return StatusReport(
            available=True,
            version=await self.get_version(),
            current_provider=await self.get_current_provider(app),
        )

    # ── Providers ──

    @_read_path(ProviderListing)
    async def list_providers(self, app: AppArg = None) -> ProviderListing:
        target = AppType.parse(app)
        result = await self._run(["provider", "list"], target)
        providers = self._parsers.providers.parse(result.stdout)
        configs = await self._mutator.provider_configs(target)
        for provider in providers:
            if provider.id in configs:
                provider.config = configs[provider.id]
        return ProviderListing(
            providers=providers,
            current_provider_id=self._state.resolve_from_output(
                target, result.stdout
            ),
        )

    @_read_path(lambda: None)
    async def get_current_provider(self, app: AppArg = None) -> Provider | None:
        target = AppType.parse(app)
        result = await self._run(["provider", "current"], target)
        provider_id = extract_current_provider_line(result.stdout)
        if provider_id is None:
            return None
        provider = await self._mutator.get_provider(provider_id, target)
        if provider is None:
            provider = Provider(
                id=provider_id,
                name=provider_id,
                type=infer_provider_type(provider_id),
            )
        provider.is_active = True
        return provider

    @_read_path(lambda: None)
    async def resolve_current_provider_id(self, app: AppArg = None) -> str | None:
        return await self._state.resolve_current_provider_id(AppType.parse(app))

    @_mutation("switch provider", SwitchResult)
    async def switch_provider(self, provider_id: str, app: AppArg = None) -> SwitchResult:
        target = AppType.parse(app)
        async with self._locks(f"provider:{target.value}"):
            previous = self._settings.get_last_provider_id(target)
            try:
                await self._run(["provider", "switch", provider_id], target)
            except SwitchboardError as exc:
                detail = (
                    exc.stderr or exc.stdout
                    if isinstance(exc, NonZeroExitError) else str(exc)
                )
                self._settings.add_log(
                    "error", "switch_provider",
                    f"Failed to switch provider: {detail}",
                    {"provider_id": provider_id, "app": target.value,
                     "error": detail},
                )
                raise
            self._settings.set_last_provider_id(target, provider_id)
            self._settings.add_log(
                "info", "switch_provider", f"Switched to provider: {provider_id}",
                {"previous_provider_id": previous,
                 "current_provider_id": provider_id, "app": target.value},
            )
        logger.info(
            "Switched app=%s provider %s -> %s", target.value, previous, provider_id
        )
        return SwitchResult(
            True,
            f"Successfully switched to provider: {provider_id}",
            previous_provider_id=previous,
            current_provider_id=provider_id,
        )

    @_mutation("delete provider")
    async def delete_provider(self, provider_id: str, app: AppArg = None) -> OperationResult:
        target = AppType.parse(app)
        async with self._locks(f"provider:{target.value}"):
            result = await self._mutator.delete_provider(provider_id, target)
        if result.success:
            self._settings.add_log(
                "info", "delete_provider", f"Deleted provider: {provider_id}",
                {"provider_id": provider_id, "app": target.value},
            )
        return result

    @_mutation("speedtest provider", SpeedtestResult)
    async def speedtest_provider(
        self, provider_id: str, app: AppArg = None
    ) -> SpeedtestResult:
        result = await self._run(
            ["provider", "speedtest", provider_id], AppType.parse(app)
        )
        return SpeedtestResult(
            True, result.stdout, latency_ms=extract_latency_ms(result.stdout)
        )

    @_read_path(lambda: None)
    async def get_provider(self, provider_id: str, app: AppArg = None) -> Provider | None:
        return await self._mutator.get_provider(provider_id, AppType.parse(app))

    @_mutation("add provider")
    async def add_provider(self, params: ProviderParams) -> OperationResult:
        async with self._locks(f"provider:{params.app.value}"):
            return await self._mutator.add_provider(params)

    @_mutation("edit provider")
    async def edit_provider(self, update: ProviderUpdate) -> OperationResult:
        """Edit a provider in the store.

        When the edited provider is the app's current one, the switch is
        replayed so the CLI rewrites the live configuration.
        """
        app = update.app
        async with self._locks(f"provider:{app.value}"):
            result = await self._mutator.edit_provider(update)
            if not result.success or result.message == "No changes provided":
                return result
            if not app.is_core:
                return result
            current = await self._state.resolve_current_provider_id(app)
            if current != update.id:
                return result
            suffix = await self._replay(["provider", "switch", update.id], app)
        return self._with_suffix(result, suffix)

    @_mutation("duplicate provider")
    async def duplicate_provider(
        self,
        provider_id: str,
        new_id: str,
        app: AppArg = None,
        target_app: AppArg = None,
    ) -> OperationResult:
        source = AppType.parse(app)
        target = AppType.parse(target_app) if target_app else source
        async with self._locks(f"provider:{target.value}"):
            return await self._mutator.duplicate_provider(
                provider_id, new_id, source, target
            )

    # ── MCP servers ──

    @_read_path(list)
    async def list_mcp_servers(self, app: AppArg = None) -> list[McpServer]:
        target = AppType.parse(app)
        result = await self._run(["mcp", "list"], target)
        return self._parsers.mcp_servers.for_app(target).parse(result.stdout)

    @_mutation("sync MCP servers")
    async def sync_mcp_servers(self, app: AppArg = None) -> OperationResult:
        await self._run(["mcp", "sync"], AppType.parse(app))
        return OperationResult(True, "Successfully synced MCP servers")

    async def _after_mcp_write(
        self, result: OperationResult, app: AppType | None
    ) -> OperationResult:
        if not result.success:
            return result
        return self._with_suffix(result, await self._replay(["mcp", "sync"], app))

    @_mutation("add MCP server")
    async def add_mcp_server(self, params: McpServerParams) -> OperationResult:
        async with self._locks("mcp"):
            result = await self._mutator.add_mcp_server(params)
            return await self._after_mcp_write(result, params.app)

    @_mutation("edit MCP server")
    async def edit_mcp_server(
        self, update: McpServerUpdate, app: AppArg = None
    ) -> OperationResult:
        async with self._locks("mcp"):
            result = await self._mutator.edit_mcp_server(update)
            if result.message == "No changes provided":
                return result
            return await self._after_mcp_write(
                result, AppType.parse(app) if app else None
            )

    @_mutation("delete MCP server")
    async def delete_mcp_server(
        self, server_id: str, app: AppArg = None
    ) -> OperationResult:
        async with self._locks("mcp"):
            result = await self._mutator.delete_mcp_server(server_id)
            return await self._after_mcp_write(
                result, AppType.parse(app) if app else None
            )

    @_mutation("toggle MCP server")
    async def toggle_mcp_server(
        self, server_id: str, enabled: bool, app: AppArg
    ) -> OperationResult:
        async with self._locks("mcp"):
            result = await self._mutator.toggle_mcp_server(server_id, enabled, app)
            if not result.success:
                return result
            return await self._after_mcp_write(result, AppType.parse(app))

    # ── Prompts ──

    @_read_path(list)
    async def list_prompts(self, app: AppArg = None) -> list[Prompt]:
        result = await self._run(["prompts", "list"], AppType.parse(app))
        return self._parsers.prompts.parse(result.stdout)

    @_mutation("activate prompt")
    async def activate_prompt(self, prompt_id: str, app: AppArg = None) -> OperationResult:
        await self._run(["prompts", "activate", prompt_id], AppType.parse(app))
        return OperationResult(True, f"Successfully activated prompt: {prompt_id}")

    @_mutation("deactivate prompt")
    async def deactivate_prompt(self, app: AppArg = None) -> OperationResult:
        await self._run(["prompts", "deactivate"], AppType.parse(app))
        return OperationResult(True, "Successfully deactivated prompt")

    @_mutation("create prompt")
    async def create_prompt(self, params: PromptParams) -> OperationResult:
        async with self._locks(f"prompts:{params.app.value}"):
            return await self._mutator.create_prompt(params)

    @_mutation("edit prompt")
    async def edit_prompt(self, update: PromptUpdate) -> OperationResult:
        """Edit a prompt; an active prompt is re-activated afterwards."""
        app = update.app
        async with self._locks(f"prompts:{app.value}"):
            active = any(
                p.id == update.id and p.is_active
                for p in await self.list_prompts(app)
            )
            result = await self._mutator.edit_prompt(update)
            if not result.success or not active:
                return result
            if result.message == "No changes provided":
                return result
            suffix = await self._replay(["prompts", "activate", update.id], app)
        return self._with_suffix(result, suffix)

    @_mutation("delete prompt")
    async def delete_prompt(self, prompt_id: str, app: AppArg = None) -> OperationResult:
        target = AppType.parse(app)
        async with self._locks(f"prompts:{target.value}"):
            return await self._mutator.delete_prompt(prompt_id, target)

    # ── Skills ──

    @_read_path(list)
    async def list_skills(self, app: AppArg = None) -> list[Skill]:
        result = await self._run(["skills", "list"], AppType.parse(app))
        return self._parsers.skills.parse(result.stdout)

    @_mutation("install skill")
    async def install_skill(self, name: str, app: AppArg = None) -> OperationResult:
        await self._run(["skills", "install", name], AppType.parse(app))
        return OperationResult(True, f"Successfully installed skill: {name}")

    @_mutation("uninstall skill")
    async def uninstall_skill(self, name: str, app: AppArg = None) -> OperationResult:
        await self._run(["skills", "uninstall", name], AppType.parse(app))
        return OperationResult(True, f"Successfully uninstalled skill: {name}")

    @_read_path(list)
    async def search_skills(self, query: str) -> list[DiscoveredSkill]:
        result = await self._run(["skills", "search", query])
        return self._parsers.skill_search.parse(result.stdout)

    @_mutation("enable skill")
    async def enable_skill(self, name: str, app: AppArg = None) -> OperationResult:
        await self._run(["skills", "enable", name], AppType.parse(app))
        return OperationResult(True, f"Successfully enabled skill: {name}")

    @_mutation("disable skill")
    async def disable_skill(self, name: str, app: AppArg = None) -> OperationResult:
        await self._run(["skills", "disable", name], AppType.parse(app))
        return OperationResult(True, f"Successfully disabled skill: {name}")

    @_read_path(list)
    async def discover_skills(self, app: AppArg = None) -> list[DiscoveredSkill]:
        result = await self._run(["skills", "discover"], AppType.parse(app))
        return self._parsers.discovered_skills.parse(result.stdout)

    @_mutation("sync skills")
    async def sync_skills(self, app: AppArg = None) -> OperationResult:
        result = await self._run(["skills", "sync"], AppType.parse(app))
        return OperationResult(True, result.stdout or "Successfully synced skills")

    @_read_path(list)
    async def scan_unmanaged_skills(self, app: AppArg = None) -> list[UnmanagedSkill]:
        result = await self._run(["skills", "scan-unmanaged"], AppType.parse(app))
        return self._parsers.unmanaged_skills.parse(result.stdout)

    @_mutation("import skills", ImportResult)
    async def import_skills_from_apps(self, app: AppArg = None) -> ImportResult:
        result = await self._run(["skills", "import-from-apps"], AppType.parse(app))
        return ImportResult(
            True,
            result.stdout or "Successfully imported skills",
            imported=extract_imported(result.stdout),
        )

    @_read_path(lambda: None)
    async def get_skill_info(self, name: str, app: AppArg = None) -> SkillInfo | None:
        result = await self._run(["skills", "info", name], AppType.parse(app))
        return parse_skill_info(result.stdout)

    @_read_path(lambda: "auto")
    async def get_sync_method(self) -> str:
        result = await self._run(["skills", "sync-method"])
        method = extract_sync_method(result.stdout)
        return method.lower() if method else "auto"

    @_mutation("set sync method")
    async def set_sync_method(self, method: str) -> OperationResult:
        if method not in SYNC_METHODS:
            raise ValidationError(
                f"Invalid sync method: {method} (expected one of "
                f"{', '.join(SYNC_METHODS)})"
            )
        await self._run(["skills", "sync-method", method])
        return OperationResult(True, f"Successfully set sync method to: {method}")

    @_read_path(list)
    async def list_skill_repos(self) -> list[SkillRepo]:
        result = await self._run(["skills", "repos", "list"])
        return self._parsers.skill_repos.parse(result.stdout)

    @_mutation("add repo")
    async def add_skill_repo(self, repo: str) -> OperationResult:
        await self._run(["skills", "repos", "add", repo])
        return OperationResult(True, f"Successfully added repo: {repo}")

    @_mutation("remove repo")
    async def remove_skill_repo(self, repo: str) -> OperationResult:
        await self._run(["skills", "repos", "remove", repo])
        return OperationResult(True, f"Successfully removed repo: {repo}")

    # ── Config ──

    @_read_path(dict)
    async def show_config(self) -> dict[str, str]:
        result = await self._run(["config", "show"])
        return self._parsers.key_values.parse_dict(result.stdout)

    @_read_path(str)
    async def get_raw_config(self) -> str:
        result = await self._run(["config", "show"])
        return result.stdout

    @_read_path(lambda: None)
    async def get_config_path(self, app: AppArg = None) -> str | None:
        result = await self._run(["config", "path"], AppType.parse(app))
        return result.stdout or None

    @_mutation("export config")
    async def export_config(self, output_path: str, app: AppArg = None) -> OperationResult:
        await self._run(["config", "export", output_path], AppType.parse(app))
        return OperationResult(True, f"Successfully exported config to: {output_path}")

    @_mutation("import config")
    async def import_config(self, input_path: str, app: AppArg = None) -> OperationResult:
        await self._run(["config", "import", input_path], AppType.parse(app))
        return OperationResult(True, f"Successfully imported config from: {input_path}")

    @_mutation("backup config", BackupResult)
    async def backup_config(self, app: AppArg = None) -> BackupResult:
        result = await self._run(["config", "backup"], AppType.parse(app))
        return BackupResult(
            True,
            "Successfully created config backup",
            backup_path=extract_backup_path(result.stdout),
        )

    @_mutation("restore config")
    async def restore_config(self, backup_path: str, app: AppArg = None) -> OperationResult:
        await self._run(["config", "restore", backup_path], AppType.parse(app))
        return OperationResult(True, f"Successfully restored config from: {backup_path}")

    # ── Environment ──

    @_read_path(list)
    async def list_env_vars(self, app: AppArg = None) -> list[EnvVarRecord]:
        result = await self._run(["env", "list"], AppType.parse(app))
        return self._parsers.env_vars.parse(result.stdout)
