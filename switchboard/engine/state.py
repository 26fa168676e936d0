"""Which provider is current for an app.

The driven CLI is authoritative and can change underneath us, so the
answer is recomputed on every call: the ``→ Current:`` footer of a
fresh ``provider list`` wins, then the id we last switched to, then
nothing.
"""
from __future__ import annotations

import logging

from switchboard.shared.services.local_settings import LocalSettings

from .errors import SwitchboardError
from .executor import ProcessExecutor
from .models import AppType
from .parsers import extract_current_marker

logger = logging.getLogger(__name__)


def app_flag_args(app: AppType) -> list[str]:
    """``--app «name»`` for apps the CLI understands, nothing otherwise."""
    return ["--app", app.value] if app.is_core else []


class StateResolver:
    def __init__(
        self,
        executor: ProcessExecutor,
        settings: LocalSettings,
    ) -> None:
        self._executor = executor
        self._settings = settings

    def resolve_from_output(self, app: AppType, output: str | None) -> str | None:
        marker = extract_current_marker(output)
        if marker:
            return marker
        return self._settings.get_last_provider_id(app)

    async def resolve_current_provider_id(self, app: AppType) -> str | None:
        output: str | None = None
        try:
            result = await self._executor.execute(
                [*app_flag_args(app), "provider", "list"]
            )
        except SwitchboardError as exc:
            logger.warning("provider list failed for app=%s: %s", app.value, exc)
        else:
            if result.ok:
                output = result.stdout
            else:
                logger.warning(
                    "provider list exited %d for app=%s: %s",
                    result.exit_code, app.value, result.error_text,
                )
        return self.resolve_from_output(app, output)
