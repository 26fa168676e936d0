"""User-registered command-line tools.

A custom tool is a command with predefined arguments and environment
overrides. Registration validates the request and optionally probes
the command; execution appends caller arguments after the predefined
ones and overlays the tool's environment on the ambient one.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from datetime import datetime, timezone

from switchboard.shared.services.local_settings import LocalSettings

from .errors import (
    ProcessSpawnError,
    ProcessTimeoutError,
    SwitchboardError,
    ToolNotFoundError,
    ValidationError,
)
from .executor import run_process
from .models import CustomTool, ExecutionResult, RegisterToolRequest

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CustomToolRunner:
    def __init__(
        self,
        settings: LocalSettings,
        default_timeout: float = 60.0,
        probe_timeout: float = 5.0,
    ) -> None:
        self._settings = settings
        self._default_timeout = default_timeout
        self._probe_timeout = probe_timeout

    async def validate(
        self,
        request: RegisterToolRequest,
        *,
        probe: bool = True,
    ) -> None:
        """Raise ValidationError if *request* cannot be registered.

        The probe only rejects a command that ran and reported "not
        found"; a probe that times out or cannot spawn lets the tool
        through.
        """
        if not request.name or not request.name.strip():
            raise ValidationError("Tool name is required")
        if not request.command or not request.command.strip():
            raise ValidationError("Command is required")

        wanted = request.name.strip().lower()
        for tool in self._settings.list_custom_tools():
            if tool.name.lower() == wanted:
                raise ValidationError(
                    f'Tool with name "{request.name}" already exists'
                )

        if not probe:
            return
        argv = [request.command, *(request.args or ["--help"])]
        try:
            result = await run_process(argv, timeout=self._probe_timeout)
        except ProcessTimeoutError:
            logger.debug("Probe of %s timed out; assuming it exists", request.command)
            return
        except ProcessSpawnError as exc:
            logger.warning("Could not verify command %s: %s", request.command, exc)
            return
        if result.exit_code != 0 and "not found" in result.stderr:
            raise ValidationError(f"Command not found: {request.command}")

    async def register_tool(
        self,
        request: RegisterToolRequest,
        *,
        probe: bool = True,
    ) -> CustomTool:
        await self.validate(request, probe=probe)
        now = _now_iso()
        tool = CustomTool(
            id=self._settings.generate_id(),
            name=request.name.strip(),
            command=request.command.strip(),
            args=list(request.args),
            env=dict(request.env),
            description=request.description,
            created_at=now,
            updated_at=now,
        )
        self._settings.save_custom_tool(tool)
        self._settings.add_log(
            "info", "register_tool", f"Registered custom tool: {tool.name}",
            {"tool_id": tool.id, "command": tool.command},
        )
        logger.info("Registered custom tool %s (%s)", tool.name, tool.id)
        return tool

    def unregister_tool(self, tool_id: str) -> bool:
        tool = self._settings.get_custom_tool(tool_id)
        if tool is None:
            return False
        deleted = self._settings.delete_custom_tool(tool_id)
        if deleted:
            self._settings.add_log(
                "info", "unregister_tool", f"Unregistered custom tool: {tool.name}",
                {"tool_id": tool_id},
            )
        return deleted

    def list_tools(self) -> list[CustomTool]:
        return self._settings.list_custom_tools()

    def get_tool(self, tool_id: str) -> CustomTool | None:
        return self._settings.get_custom_tool(tool_id)

    async def run_tool(
        self,
        tool_id: str,
        args: Sequence[str] = (),
    ) -> ExecutionResult:
        """Run a registered tool.

        Raises ToolNotFoundError, ProcessSpawnError or ProcessTimeoutError;
        a non-zero exit is returned, not raised.
        """
        tool = self.get_tool(tool_id)
        if tool is None:
            raise ToolNotFoundError(tool_id)

        argv = [tool.command, *tool.args, *args]
        self._settings.add_log(
            "info", "run_tool", f"Running custom tool: {tool.name}",
            {"tool_id": tool_id, "args": list(args)},
        )
        logger.info("Running custom tool %s: %s", tool.name, argv)
        try:
            result = await run_process(
                argv,
                timeout=self._default_timeout,
                env={**os.environ, **tool.env},
            )
        except SwitchboardError as exc:
            self._settings.add_log(
                "error", "tool_error", f"Tool {tool.name} failed: {exc}",
                {"tool_id": tool_id, "error": str(exc)},
            )
            logger.error("Custom tool %s failed: %s", tool.name, exc)
            raise

        self._settings.add_log(
            "info" if result.ok else "warn",
            "tool_result",
            f"Tool {tool.name} completed with exit code {result.exit_code}",
            {"tool_id": tool_id, "exit_code": result.exit_code},
        )
        return result
