"""Tests for MemorySettings."""
from __future__ import annotations

from switchboard.engine.models import AppType, CustomTool
from switchboard.shared.services.local_settings import MemorySettings


def test_log_keeps_newest_entries_only():
    settings = MemorySettings(max_log_entries=3)
    for i in range(5):
        settings.add_log("info", "op", f"entry {i}")

    messages = [e.message for e in settings.get_logs()]
    assert messages == ["entry 4", "entry 3", "entry 2"]


def test_logs_filter_by_operation_and_limit():
    settings = MemorySettings()
    settings.add_log("info", "switch_provider", "a")
    settings.add_log("info", "run_tool", "b")
    settings.add_log("error", "switch_provider", "c", {"error": "x"})

    switches = settings.get_logs(operation="switch_provider")
    assert [e.message for e in switches] == ["c", "a"]
    assert switches[0].details == {"error": "x"}
    assert len(settings.get_logs(limit=1)) == 1


def test_last_provider_is_per_app():
    settings = MemorySettings()
    settings.set_last_provider_id(AppType.CLAUDE, "c1")
    settings.set_last_provider_id(AppType.CODEX, "x1")

    assert settings.get_last_provider_id(AppType.CLAUDE) == "c1"
    assert settings.get_last_provider_id(AppType.CODEX) == "x1"
    assert settings.get_last_provider_id(AppType.GEMINI) is None


def test_custom_tools_are_copied_on_the_way_in_and_out():
    settings = MemorySettings()
    tool = CustomTool(id=settings.generate_id(), name="jq", command="jq", args=["."])
    settings.save_custom_tool(tool)
    tool.args.append("mutated")

    stored = settings.get_custom_tool(tool.id)
    assert stored is not None
    assert stored.args == ["."]
    stored.args.clear()
    assert settings.list_custom_tools()[0].args == ["."]

    assert settings.delete_custom_tool(tool.id) is True
    assert settings.get_custom_tool(tool.id) is None


def test_generated_ids_are_unique():
    settings = MemorySettings()
    assert len({settings.generate_id() for _ in range(100)}) == 100
