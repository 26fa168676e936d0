"""YAML configuration loader.

Overlays a YAML file on top of the environment-derived CoreConfig.
When no YAML is provided, env vars work exactly as before.

Example YAML:
    cli:
      binary: /usr/local/bin/cc-switch
      timeout_seconds: 30
      probe_timeout_seconds: 5

    store:
      db_path: ~/.cc-switch/cc-switch.db
      busy_timeout_seconds: 5
      replay_side_effects: true

    tools:
      timeout_seconds: 60
      register:
        - name: jq
          command: jq
          args: ["--version"]
          description: JSON processor

    logging:
      level: DEBUG
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .config import CoreConfig
from .models import RegisterToolRequest

logger = logging.getLogger(__name__)


@dataclass
class SwitchboardConfig:
    """Complete parsed YAML configuration."""
    core: CoreConfig
    tools: list[RegisterToolRequest] = field(default_factory=list)


# (yaml section, yaml key) -> CoreConfig attribute
_CORE_KEYS: dict[tuple[str, str], str] = {
    ("cli", "binary"): "binary_path",
    ("cli", "timeout_seconds"): "cli_timeout_seconds",
    ("cli", "probe_timeout_seconds"): "probe_timeout_seconds",
    ("store", "db_path"): "default_db_path",
    ("store", "busy_timeout_seconds"): "store_busy_timeout_seconds",
    ("store", "replay_side_effects"): "replay_side_effects",
    ("tools", "timeout_seconds"): "tool_timeout_seconds",
    ("logging", "level"): "log_level",
}


def _coerce(attr: str, value: Any) -> Any:
    kinds = {f.name: f.type for f in fields(CoreConfig)}
    kind = kinds[attr]
    if kind == "float":
        return float(value)
    if kind == "bool":
        if isinstance(value, str):
            return value.lower() in {"1", "true", "yes"}
        return bool(value)
    text = str(value)
    if attr == "default_db_path":
        text = os.path.expanduser(text)
    return text


def _parse_tools(raw: Any) -> list[RegisterToolRequest]:
    tools: list[RegisterToolRequest] = []
    if not isinstance(raw, list):
        return tools
    for entry in raw:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-mapping tool entry: %r", entry)
            continue
        name = str(entry.get("name") or "").strip()
        command = str(entry.get("command") or "").strip()
        if not name or not command:
            logger.warning("Skipping tool entry without name/command: %r", entry)
            continue
        tools.append(RegisterToolRequest(
            name=name,
            command=command,
            args=[str(a) for a in entry.get("args") or []],
            env={str(k): str(v) for k, v in (entry.get("env") or {}).items()},
            description=entry.get("description"),
        ))
    return tools


def load_yaml_config(
    path: str | Path,
    base: CoreConfig | None = None,
) -> SwitchboardConfig:
    """Load and parse a YAML config file.

    Values present in the file override *base* (default:
    ``CoreConfig.from_env()``); absent keys keep the base value.
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: attempting to load config from %s (exists=%s)",
        path, path.exists()
    )
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute()
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    top_sections = sorted(raw.keys())
    logger.info(
        "Parsed YAML config %s, sections: %s",
        path.name, ", ".join(top_sections) if top_sections else "(empty)",
    )

    core = base if base is not None else CoreConfig.from_env()
    overrides: dict[str, Any] = {}
    for (section, key), attr in _CORE_KEYS.items():
        section_raw = raw.get(section)
        if isinstance(section_raw, dict) and key in section_raw:
            try:
                overrides[attr] = _coerce(attr, section_raw[key])
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"{path}: invalid value for {section}.{key}: {exc}"
                ) from exc

    tools_raw = raw.get("tools")
    tools = _parse_tools(
        tools_raw.get("register") if isinstance(tools_raw, dict) else None
    )
    return SwitchboardConfig(core=replace(core, **overrides), tools=tools)
