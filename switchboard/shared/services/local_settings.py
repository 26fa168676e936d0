"""Local (non-canonical) settings consumed by the adapter core.

The adapter needs a place to remember the last provider switched to
per app, an operation log and the registry of custom tools. The
durable implementation lives with the host application;
MemorySettings keeps everything in process.
"""
from __future__ import annotations

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from switchboard.engine.models import AppType, CustomTool

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 1000


@dataclass
class LogEntry:
    id: str
    timestamp: str
    level: str
    operation: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


class LocalSettings(ABC):
    """Settings collaborator interface."""

    @abstractmethod
    def generate_id(self) -> str:
        ...

    @abstractmethod
    def add_log(
        self,
        level: str,
        operation: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        ...

    @abstractmethod
    def get_last_provider_id(self, app: AppType) -> str | None:
        ...

    @abstractmethod
    def set_last_provider_id(self, app: AppType, provider_id: str) -> None:
        ...

    @abstractmethod
    def list_custom_tools(self) -> list[CustomTool]:
        ...

    @abstractmethod
    def get_custom_tool(self, tool_id: str) -> CustomTool | None:
        ...

    @abstractmethod
    def save_custom_tool(self, tool: CustomTool) -> None:
        ...

    @abstractmethod
    def delete_custom_tool(self, tool_id: str) -> bool:
        ...


class MemorySettings(LocalSettings):
    """In-process LocalSettings; the log keeps the newest entries only."""

    def __init__(self, max_log_entries: int = MAX_LOG_ENTRIES) -> None:
        self._last_provider: dict[AppType, str] = {}
        self._tools: dict[str, CustomTool] = {}
        self._logs: deque[LogEntry] = deque(maxlen=max_log_entries)

    def generate_id(self) -> str:
        return uuid.uuid4().hex

    def add_log(
        self,
        level: str,
        operation: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self._logs.append(LogEntry(
            id=self.generate_id(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            operation=operation,
            message=message,
            details=dict(details or {}),
        ))

    def get_logs(
        self,
        limit: int | None = None,
        operation: str | None = None,
    ) -> list[LogEntry]:
        """Newest first."""
        entries = [
            e for e in reversed(self._logs)
            if operation is None or e.operation == operation
        ]
        return entries[:limit] if limit is not None else entries

    def get_last_provider_id(self, app: AppType) -> str | None:
        return self._last_provider.get(AppType.parse(app))

    def set_last_provider_id(self, app: AppType, provider_id: str) -> None:
        self._last_provider[AppType.parse(app)] = provider_id

    def list_custom_tools(self) -> list[CustomTool]:
        return [copy.deepcopy(t) for t in self._tools.values()]

    def get_custom_tool(self, tool_id: str) -> CustomTool | None:
        tool = self._tools.get(tool_id)
        return copy.deepcopy(tool) if tool is not None else None

    def save_custom_tool(self, tool: CustomTool) -> None:
        self._tools[tool.id] = copy.deepcopy(tool)
        logger.debug("Saved custom tool %s (%s)", tool.id, tool.name)

    def delete_custom_tool(self, tool_id: str) -> bool:
        return self._tools.pop(tool_id, None) is not None
