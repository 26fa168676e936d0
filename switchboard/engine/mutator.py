"""Store-bypass mutations for operations the CLI does not offer.

Adding, editing and duplicating providers, every MCP server write and
every prompt write go straight to the CLI's store. Each operation
returns an OperationResult; store and validation failures never
escape.
"""
from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import StoreClientError, ValidationError
from .models import (
    AppType,
    McpServerParams,
    McpServerUpdate,
    OperationResult,
    PromptParams,
    PromptUpdate,
    Provider,
    ProviderParams,
    ProviderUpdate,
)
from .parsers import infer_provider_type
from .settings_builders import merge_settings, settings_for_params, transform_settings
from .store import StoreClient

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_MCP_ID_UNSAFE_RE = re.compile(r"[^a-z0-9-]")

_NOW = "strftime('%s', 'now')"

# Columns a duplicate never copies verbatim.
_DUPLICATE_OVERRIDES = {
    "name": "name || ' (Copy)'",
    "is_current": "0",
    "in_failover_queue": "0",
    "created_at": _NOW,
}

StoreOpener = Callable[[], Awaitable[StoreClient]]


def validate_identifier(value: str, what: str = "ID") -> str:
    if not value or not _ID_RE.match(value):
        raise ValidationError(
            f"{what} must contain only alphanumeric characters, "
            "hyphens, and underscores."
        )
    return value


def mcp_server_id(name: str) -> str:
    """Store id for an MCP server name: lower-case, unsafe chars -> ``-``."""
    server_id = _MCP_ID_UNSAFE_RE.sub("-", name.strip().lower())
    if not server_id.strip("-"):
        raise ValidationError(f"Invalid MCP server name: {name!r}")
    return server_id


def _load_json(raw: Any, what: str) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        logger.debug("Unparseable %s document: %.80r", what, raw)
        return {}
    return value if isinstance(value, dict) else {}


def _quote(column: str) -> str:
    return '"' + column.replace('"', '""') + '"'


class DirectStoreMutator:
    """Writes to the providers, mcp_servers and prompts tables.

    *open_store* is awaited once per operation so that the store file
    location is re-resolved every time.
    """

    def __init__(self, open_store: StoreOpener) -> None:
        self._open_store = open_store

    @staticmethod
    def _failed(operation: str, exc: Exception, **context: Any) -> OperationResult:
        logger.error("%s failed (%s): %s", operation, context, exc)
        message = exc.reason if isinstance(exc, StoreClientError) else str(exc)
        return OperationResult(False, message)

    # ── Providers ──

    async def add_provider(self, params: ProviderParams) -> OperationResult:
        try:
            validate_identifier(params.id, "Provider ID")
            store = await self._open_store()
            await store.execute(
                "INSERT INTO providers (id, app_type, name, settings_config, "
                "website_url, category, meta, is_current, in_failover_queue, "
                "cost_multiplier, provider_type, notes, sort_index, created_at) "
                "VALUES (?, ?, ?, ?, ?, 'custom', '{}', 0, 0, '1.0', 'custom', "
                f"?, ?, {_NOW})",
                (
                    params.id,
                    params.app.value,
                    params.name,
                    json.dumps(settings_for_params(params)),
                    params.website_url,
                    params.notes,
                    params.sort_index,
                ),
            )
        except (StoreClientError, ValidationError) as exc:
            return self._failed("add_provider", exc, id=params.id, app=params.app.value)
        logger.info("Added provider %s for app=%s", params.id, params.app.value)
        return OperationResult(True, f"Successfully added provider '{params.id}'")

    async def edit_provider(self, update: ProviderUpdate) -> OperationResult:
        app = update.app
        try:
            store = await self._open_store()
            row = await store.fetch_one(
                "SELECT settings_config FROM providers WHERE id = ? AND app_type = ?",
                (update.id, app.value),
            )
            if row is None:
                return OperationResult(False, "Provider not found")

            sets: list[tuple[str, Any]] = []
            if update.name:
                sets.append(("name", update.name))
            if update.website_url is not None:
                sets.append(("website_url", update.website_url))
            if update.notes is not None:
                sets.append(("notes", update.notes))
            if update.sort_index is not None:
                sets.append(("sort_index", update.sort_index))
            if update.touches_settings():
                current = _load_json(row["settings_config"], "settings_config")
                merged = merge_settings(app, current, update)
                sets.append(("settings_config", json.dumps(merged)))
            if not sets:
                return OperationResult(True, "No changes provided")

            assignments = ", ".join(f"{column} = ?" for column, _ in sets)
            await store.execute(
                f"UPDATE providers SET {assignments} WHERE id = ? AND app_type = ?",
                (*(value for _, value in sets), update.id, app.value),
            )
        except StoreClientError as exc:
            return self._failed("edit_provider", exc, id=update.id, app=app.value)
        logger.info("Edited provider %s for app=%s", update.id, app.value)
        return OperationResult(True, "Provider updated successfully")

    async def duplicate_provider(
        self,
        provider_id: str,
        new_id: str,
        app: AppType,
        target_app: AppType | None = None,
    ) -> OperationResult:
        """Copy a provider row under *new_id*, optionally into another app.

        The copy keeps every column of the source except its id, gets a
        " (Copy)" name suffix and is neither current nor queued. A copy
        into a different app has its settings re-shaped for that app.
        """
        target = target_app or app
        context = {"id": provider_id, "new_id": new_id, "app": app.value,
                   "target_app": target.value}
        try:
            validate_identifier(new_id, "New provider ID")
            store = await self._open_store()
            source = await store.fetch_one(
                "SELECT settings_config FROM providers WHERE id = ? AND app_type = ?",
                (provider_id, app.value),
            )
            if source is None:
                return OperationResult(
                    False, f"Provider '{provider_id}' not found in app '{app.value}'"
                )
            clash = await store.fetch_one(
                "SELECT id FROM providers WHERE id = ? AND app_type = ?",
                (new_id, target.value),
            )
            if clash is not None:
                return OperationResult(
                    False,
                    f"Provider with ID '{new_id}' already exists in app "
                    f"'{target.value}'",
                )

            overrides: dict[str, tuple[str, tuple[Any, ...]]] = {
                column: (expr, ()) for column, expr in _DUPLICATE_OVERRIDES.items()
            }
            overrides["id"] = ("?", (new_id,))
            if target is not app:
                settings = transform_settings(
                    _load_json(source["settings_config"], "settings_config"),
                    app, target,
                )
                overrides["app_type"] = ("?", (target.value,))
                overrides["settings_config"] = ("?", (json.dumps(settings),))

            columns = await store.columns("providers")
            select: list[str] = []
            params: list[Any] = []
            for column in columns:
                expr, values = overrides.get(column, (_quote(column), ()))
                select.append(expr)
                params.extend(values)
            await store.execute(
                f"INSERT INTO providers ({', '.join(map(_quote, columns))}) "
                f"SELECT {', '.join(select)} FROM providers "
                "WHERE id = ? AND app_type = ?",
                (*params, provider_id, app.value),
            )
        except (StoreClientError, ValidationError) as exc:
            return self._failed("duplicate_provider", exc, **context)

        logger.info("Duplicated provider %s", context)
        if target is not app:
            return OperationResult(
                True,
                f"Successfully copied provider '{provider_id}' from {app.value} "
                f"to {target.value} as '{new_id}'",
            )
        return OperationResult(
            True, f"Successfully duplicated provider '{provider_id}' to '{new_id}'"
        )

    async def delete_provider(self, provider_id: str, app: AppType) -> OperationResult:
        try:
            store = await self._open_store()
            row = await store.fetch_one(
                "SELECT is_current FROM providers WHERE id = ? AND app_type = ?",
                (provider_id, app.value),
            )
            if row is None:
                return OperationResult(False, f"Provider '{provider_id}' not found")
            if row["is_current"]:
                return OperationResult(
                    False,
                    "Cannot delete the current active provider. "
                    "Please switch to another provider first.",
                )
            await store.execute(
                "DELETE FROM providers WHERE id = ? AND app_type = ?",
                (provider_id, app.value),
            )
        except StoreClientError as exc:
            return self._failed("delete_provider", exc, id=provider_id, app=app.value)
        logger.info("Deleted provider %s for app=%s", provider_id, app.value)
        return OperationResult(True, f"Deleted provider: {provider_id}")

    async def get_provider(self, provider_id: str, app: AppType) -> Provider | None:
        try:
            store = await self._open_store()
            row = await store.fetch_one(
                "SELECT id, name, settings_config, website_url, notes, sort_index, "
                "is_current FROM providers WHERE id = ? AND app_type = ?",
                (provider_id, app.value),
            )
        except StoreClientError as exc:
            logger.warning("get_provider %s app=%s: %s", provider_id, app.value, exc)
            return None
        if row is None:
            return None
        return Provider(
            id=row["id"],
            name=row["name"],
            type=infer_provider_type(row["id"]),
            is_active=bool(row["is_current"]),
            config=self._provider_config(row),
        )

    async def provider_configs(self, app: AppType) -> dict[str, dict[str, Any]]:
        """Settings of every provider of *app*, keyed by id; ``{}`` on error."""
        try:
            store = await self._open_store()
            rows = await store.fetch_all(
                "SELECT id, settings_config, website_url, notes, sort_index "
                "FROM providers WHERE app_type = ?",
                (app.value,),
            )
        except StoreClientError as exc:
            logger.warning("provider_configs app=%s: %s", app.value, exc)
            return {}
        return {row["id"]: self._provider_config(row) for row in rows}

    @staticmethod
    def _provider_config(row: dict[str, Any]) -> dict[str, Any]:
        return {
            **_load_json(row["settings_config"], "settings_config"),
            "website_url": row["website_url"] or "",
            "notes": row["notes"] or "",
            "sort_index": row["sort_index"] or 0,
        }

    # ── MCP servers ──

    async def add_mcp_server(self, params: McpServerParams) -> OperationResult:
        try:
            server_id = mcp_server_id(params.name)
            server_config = {
                "command": params.command,
                "args": list(params.args),
                "env": dict(params.env),
                "disabled": False,
                "autoUpdate": False,
            }
            flags = [int(app is params.app) for app in AppType]
            enabled_columns = ", ".join(app.enabled_column for app in AppType)
            placeholders = ", ".join("?" for _ in AppType)
            store = await self._open_store()
            await store.execute(
                "INSERT OR REPLACE INTO mcp_servers (id, name, server_config, "
                f"description, {enabled_columns}) VALUES (?, ?, ?, ?, {placeholders})",
                (server_id, params.name, json.dumps(server_config),
                 params.description, *flags),
            )
        except (StoreClientError, ValidationError) as exc:
            return self._failed("add_mcp_server", exc, name=params.name,
                                app=params.app.value)
        logger.info("Added MCP server %s for app=%s", server_id, params.app.value)
        return OperationResult(True, f"Successfully added MCP server '{server_id}'")

    async def edit_mcp_server(self, update: McpServerUpdate) -> OperationResult:
        try:
            store = await self._open_store()
            row = await store.fetch_one(
                "SELECT server_config FROM mcp_servers WHERE id = ?", (update.id,)
            )
            if row is None:
                return OperationResult(False, f"MCP server '{update.id}' not found")

            statements: list[tuple[str, tuple[Any, ...]]] = []
            if update.name:
                statements.append(
                    ("UPDATE mcp_servers SET name = ? WHERE id = ?",
                     (update.name, update.id))
                )
            if update.command or update.args is not None or update.env is not None:
                config = _load_json(row["server_config"], "server_config")
                if update.command:
                    config["command"] = update.command
                if update.args is not None:
                    config["args"] = list(update.args)
                if update.env is not None:
                    config["env"] = dict(update.env)
                statements.append(
                    ("UPDATE mcp_servers SET server_config = ? WHERE id = ?",
                     (json.dumps(config), update.id))
                )
            if not statements:
                return OperationResult(True, "No changes provided")
            await store.run(statements)
        except StoreClientError as exc:
            return self._failed("edit_mcp_server", exc, id=update.id)
        logger.info("Edited MCP server %s", update.id)
        return OperationResult(True, "MCP server updated")

    async def delete_mcp_server(self, server_id: str) -> OperationResult:
        try:
            store = await self._open_store()
            changed = await store.execute(
                "DELETE FROM mcp_servers WHERE id = ?", (server_id,)
            )
        except StoreClientError as exc:
            return self._failed("delete_mcp_server", exc, id=server_id)
        if not changed:
            return OperationResult(False, f"MCP server '{server_id}' not found")
        logger.info("Deleted MCP server %s", server_id)
        return OperationResult(True, f"Deleted MCP server: {server_id}")

    async def toggle_mcp_server(
        self,
        server_id: str,
        enabled: bool,
        app: AppType | str,
    ) -> OperationResult:
        try:
            target = AppType.parse(app)
            store = await self._open_store()
            changed = await store.execute(
                f"UPDATE mcp_servers SET {target.enabled_column} = ? WHERE id = ?",
                (int(enabled), server_id),
            )
        except (StoreClientError, ValidationError) as exc:
            return self._failed("toggle_mcp_server", exc, id=server_id, app=app)
        if not changed:
            return OperationResult(False, f"MCP server '{server_id}' not found")
        state = "enabled" if enabled else "disabled"
        logger.info("MCP server %s %s for app=%s", server_id, state, target.value)
        return OperationResult(
            True, f"MCP server '{server_id}' {state} for {target.value}"
        )

    # ── Prompts ──

    async def create_prompt(self, params: PromptParams) -> OperationResult:
        try:
            validate_identifier(params.id, "Prompt ID")
            store = await self._open_store()
            await store.execute(
                "INSERT INTO prompts (id, app_type, name, content, description, "
                f"enabled, created_at, updated_at) VALUES (?, ?, ?, ?, ?, 1, {_NOW}, "
                f"{_NOW})",
                (params.id, params.app.value, params.name, params.content,
                 params.description),
            )
        except (StoreClientError, ValidationError) as exc:
            return self._failed("create_prompt", exc, id=params.id,
                                app=params.app.value)
        logger.info("Created prompt %s for app=%s", params.id, params.app.value)
        return OperationResult(True, f"Successfully created prompt '{params.id}'")

    async def edit_prompt(self, update: PromptUpdate) -> OperationResult:
        sets: list[tuple[str, Any]] = []
        if update.name:
            sets.append(("name", update.name))
        if update.content:
            sets.append(("content", update.content))
        if update.description is not None:
            sets.append(("description", update.description))
        if not sets:
            return OperationResult(True, "No changes provided")

        assignments = ", ".join(f"{column} = ?" for column, _ in sets)
        try:
            store = await self._open_store()
            changed = await store.execute(
                f"UPDATE prompts SET {assignments}, updated_at = {_NOW} "
                "WHERE id = ? AND app_type = ?",
                (*(value for _, value in sets), update.id, update.app.value),
            )
        except StoreClientError as exc:
            return self._failed("edit_prompt", exc, id=update.id,
                                app=update.app.value)
        if not changed:
            return OperationResult(False, "Prompt not found")
        logger.info("Edited prompt %s for app=%s", update.id, update.app.value)
        return OperationResult(True, "Prompt updated successfully")

    async def delete_prompt(self, prompt_id: str, app: AppType) -> OperationResult:
        try:
            store = await self._open_store()
            changed = await store.execute(
                "DELETE FROM prompts WHERE id = ? AND app_type = ?",
                (prompt_id, app.value),
            )
        except StoreClientError as exc:
            return self._failed("delete_prompt", exc, id=prompt_id, app=app.value)
        if not changed:
            return OperationResult(False, "Prompt not found")
        logger.info("Deleted prompt %s for app=%s", prompt_id, app.value)
        return OperationResult(True, f"Deleted prompt: {prompt_id}")
