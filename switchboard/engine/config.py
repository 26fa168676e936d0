"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via SWITCHBOARD_* env
vars (CC_SWITCH_PATH is also honoured for the binary location).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _default_db_path() -> str:
    return str(Path.home() / ".cc-switch" / "cc-switch.db")


@dataclass
class CoreConfig:
    """Adapter-core configuration."""

    # Driven CLI binary. Bare names are looked up on PATH.
    binary_path: str = "cc-switch"

    # Deadlines (seconds). No call is ever retried.
    cli_timeout_seconds: float = 30.0
    tool_timeout_seconds: float = 60.0
    probe_timeout_seconds: float = 5.0

    # Used when `config path` does not report a DB file.
    default_db_path: str = field(default_factory=_default_db_path)
    # How long the store client waits on a locked database.
    store_busy_timeout_seconds: float = 5.0

    # Re-run CLI sync/activation after writing to the store directly.
    replay_side_effects: bool = True

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> CoreConfig:
        """Load configuration from SWITCHBOARD_* environment variables."""
        overrides = {
            k: v for k, v in os.environ.items()
            if k.startswith("SWITCHBOARD_") or k == "CC_SWITCH_PATH"
        }
        if overrides:
            logger.info(
                "CoreConfig.from_env: env overrides: %s",
                ", ".join(sorted(overrides)),
            )
        else:
            logger.debug("CoreConfig.from_env: no env overrides, using defaults")

        defaults = cls()
        return cls(
            binary_path=(
                os.getenv("SWITCHBOARD_BINARY")
                or os.getenv("CC_SWITCH_PATH")
                or defaults.binary_path
            ),
            cli_timeout_seconds=float(os.getenv(
                "SWITCHBOARD_CLI_TIMEOUT", str(defaults.cli_timeout_seconds)
            )),
            tool_timeout_seconds=float(os.getenv(
                "SWITCHBOARD_TOOL_TIMEOUT", str(defaults.tool_timeout_seconds)
            )),
            probe_timeout_seconds=float(os.getenv(
                "SWITCHBOARD_PROBE_TIMEOUT", str(defaults.probe_timeout_seconds)
            )),
            default_db_path=os.getenv(
                "SWITCHBOARD_DB_PATH", defaults.default_db_path
            ),
            store_busy_timeout_seconds=float(os.getenv(
                "SWITCHBOARD_STORE_BUSY_TIMEOUT",
                str(defaults.store_busy_timeout_seconds),
            )),
            replay_side_effects=(
                os.getenv("SWITCHBOARD_REPLAY_SIDE_EFFECTS", "1").lower()
                in {"1", "true", "yes"}
            ),
            log_level=os.getenv("SWITCHBOARD_LOG_LEVEL", defaults.log_level),
        )
