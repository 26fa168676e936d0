"""Tests for CustomToolRunner."""
from __future__ import annotations

import sys

import pytest

from switchboard.engine.custom_tools import CustomToolRunner
from switchboard.engine.errors import ProcessTimeoutError, ToolNotFoundError, ValidationError
from switchboard.engine.models import RegisterToolRequest
from switchboard.shared.services.local_settings import MemorySettings

ECHO_ENV = "import os, sys; print(os.environ['GREETING'], *sys.argv[1:])"


@pytest.mark.asyncio
async def test_register_and_run_tool_with_env_and_args():
    settings = MemorySettings()
    runner = CustomToolRunner(settings)
    tool = await runner.register_tool(
        RegisterToolRequest(
            name="greeter",
            command=sys.executable,
            args=["-c", ECHO_ENV],
            env={"GREETING": "hello"},
        ),
        probe=False,
    )

    result = await runner.run_tool(tool.id, ["big", "world"])

    assert result.ok
    assert result.stdout == "hello big world"
    operations = [e.operation for e in settings.get_logs()]
    assert operations == ["tool_result", "run_tool", "register_tool"]


@pytest.mark.asyncio
async def test_nonzero_exit_is_returned():
    settings = MemorySettings()
    runner = CustomToolRunner(settings)
    tool = await runner.register_tool(
        RegisterToolRequest(
            name="failer", command=sys.executable,
            args=["-c", "import sys; sys.exit(4)"],
        ),
        probe=False,
    )

    result = await runner.run_tool(tool.id)

    assert result.exit_code == 4
    (entry,) = settings.get_logs(operation="tool_result")
    assert entry.level == "warn"


@pytest.mark.asyncio
async def test_run_unknown_tool():
    runner = CustomToolRunner(MemorySettings())
    with pytest.raises(ToolNotFoundError):
        await runner.run_tool("nope")


@pytest.mark.asyncio
async def test_run_tool_timeout_propagates_and_is_logged():
    settings = MemorySettings()
    runner = CustomToolRunner(settings, default_timeout=0.5)
    tool = await runner.register_tool(
        RegisterToolRequest(
            name="sleeper", command=sys.executable,
            args=["-c", "import time; time.sleep(30)"],
        ),
        probe=False,
    )

    with pytest.raises(ProcessTimeoutError):
        await runner.run_tool(tool.id)
    (entry,) = settings.get_logs(operation="tool_error")
    assert entry.level == "error"


@pytest.mark.asyncio
async def test_validation_rejects_blank_and_duplicate_names():
    runner = CustomToolRunner(MemorySettings())
    with pytest.raises(ValidationError, match="Tool name is required"):
        await runner.validate(RegisterToolRequest(name="  ", command="jq"))
    with pytest.raises(ValidationError, match="Command is required"):
        await runner.validate(RegisterToolRequest(name="jq", command=""))

    await runner.register_tool(RegisterToolRequest(name="JQ", command="jq"), probe=False)
    with pytest.raises(ValidationError, match="already exists"):
        await runner.register_tool(
            RegisterToolRequest(name="jq", command="jq"), probe=False
        )


@pytest.mark.asyncio
async def test_probe_rejects_command_reporting_not_found(fake_cli):
    fake_cli.respond("--help", stderr="cc-switch: command not found", exit_code=127)
    runner = CustomToolRunner(MemorySettings())

    with pytest.raises(ValidationError, match="Command not found"):
        await runner.register_tool(
            RegisterToolRequest(name="broken", command=str(fake_cli.path))
        )
    assert runner.list_tools() == []


@pytest.mark.asyncio
async def test_probe_lets_unspawnable_command_through(tmp_path):
    runner = CustomToolRunner(MemorySettings())
    tool = await runner.register_tool(
        RegisterToolRequest(name="later", command=str(tmp_path / "installed-later"))
    )
    assert runner.get_tool(tool.id) is not None


@pytest.mark.asyncio
async def test_unregister_tool():
    settings = MemorySettings()
    runner = CustomToolRunner(settings)
    tool = await runner.register_tool(
        RegisterToolRequest(name="jq", command="jq"), probe=False
    )

    assert runner.unregister_tool(tool.id) is True
    assert runner.unregister_tool(tool.id) is False
    assert runner.list_tools() == []
    assert len(settings.get_logs(operation="unregister_tool")) == 1
