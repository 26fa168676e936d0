"""Provider settings documents, one shape per app.

The CLI stores each provider's live configuration as an opaque JSON
document in ``providers.settings_config``. These pure functions build,
merge and re-shape that document; nothing here touches the store.
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .models import AppType, ProviderParams, ProviderUpdate

DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_CODEX_MODEL = "gpt-4o"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"

# Tier overrides in the claude env map.
_CLAUDE_TIER_KEYS = {
    "haiku_model": "ANTHROPIC_DEFAULT_HAIKU_MODEL",
    "sonnet_model": "ANTHROPIC_DEFAULT_SONNET_MODEL",
    "opus_model": "ANTHROPIC_DEFAULT_OPUS_MODEL",
}

_TOML_STRING = r'"((?:[^"\\\n]|\\.)*)"'
_TOML_MODEL_RE = re.compile(r"^model\s*=\s*" + _TOML_STRING, re.MULTILINE)
_TOML_BASE_URL_RE = re.compile(r"^base_url\s*=\s*" + _TOML_STRING, re.MULTILINE)
_TOML_ESCAPES = {"\\": "\\\\", "\"": "\\\"", "\b": "\\b", "\t": "\\t",
                 "\n": "\\n", "\f": "\\f", "\r": "\\r"}
_TOML_UNESCAPE_RE = re.compile(r"\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)")
_TOML_UNESCAPES = {escaped[1:]: char for char, escaped in _TOML_ESCAPES.items()}


@dataclass
class Credentials:
    """App-independent view of a provider's endpoint."""
    api_key: str = ""
    base_url: str = ""
    model: str = ""


def toml_string(value: str) -> str:
    """Quote *value* as a TOML basic string."""
    out = []
    for char in value:
        if char in _TOML_ESCAPES:
            out.append(_TOML_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{ord(char):04X}")
        else:
            out.append(char)
    return '"' + "".join(out) + '"'


def _toml_unescape(body: str) -> str:
    def replace(match: re.Match[str]) -> str:
        code = match.group(1)
        if code[0] in "uU" and len(code) > 1:
            return chr(int(code[1:], 16))
        return _TOML_UNESCAPES.get(code, code)

    return _TOML_UNESCAPE_RE.sub(replace, body)


def codex_config_toml(model: str, base_url: str) -> str:
    return (
        f"model = {toml_string(model)}\n"
        'model_provider = "openai-chat-completions"\n'
        'preferred_auth_method = "apikey"\n'
        "\n"
        "[model_providers.openai-chat-completions]\n"
        'name = "OpenAI"\n'
        f"base_url = {toml_string(base_url)}\n"
        'wire_api = "responses"\n'
    )


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _claude(creds: Credentials, tiers: dict[str, str | None]) -> dict[str, Any]:
    env = {
        "ANTHROPIC_AUTH_TOKEN": creds.api_key,
        "ANTHROPIC_BASE_URL": creds.base_url,
        "ANTHROPIC_MODEL": creds.model or DEFAULT_CLAUDE_MODEL,
    }
    for attr, key in _CLAUDE_TIER_KEYS.items():
        if tiers.get(attr):
            env[key] = tiers[attr]
    return {"env": env}


def _codex(creds: Credentials, tiers: dict[str, str | None]) -> dict[str, Any]:
    return {
        "auth": {"OPENAI_API_KEY": creds.api_key},
        "config": codex_config_toml(
            creds.model or DEFAULT_CODEX_MODEL, creds.base_url
        ),
    }


def _gemini(creds: Credentials, tiers: dict[str, str | None]) -> dict[str, Any]:
    return {
        "env": {
            "GEMINI_API_KEY": creds.api_key,
            "GOOGLE_API_KEY": creds.api_key,
            "GEMINI_MODEL": creds.model or DEFAULT_GEMINI_MODEL,
            "GEMINI_BASE_URL": creds.base_url,
        }
    }


def _generic(creds: Credentials, tiers: dict[str, str | None]) -> dict[str, Any]:
    return {"env": {"API_KEY": creds.api_key, "BASE_URL": creds.base_url}}


_Builder = Callable[[Credentials, dict[str, "str | None"]], dict[str, Any]]

_BUILDERS: dict[AppType, _Builder] = {
    AppType.CLAUDE: _claude,
    AppType.CODEX: _codex,
    AppType.GEMINI: _gemini,
}


def build_settings(
    app: AppType,
    creds: Credentials,
    tiers: dict[str, str | None] | None = None,
) -> dict[str, Any]:
    return _BUILDERS.get(app, _generic)(creds, tiers or {})


def settings_for_params(params: ProviderParams) -> dict[str, Any]:
    return build_settings(
        params.app,
        Credentials(params.api_key, params.api_url, params.model or ""),
        {attr: getattr(params, attr) for attr in _CLAUDE_TIER_KEYS},
    )


def extract_credentials(app: AppType, settings: dict[str, Any]) -> Credentials:
    """Read key, URL and model back out of an app's settings document.

    The document may have been edited outside this package; parts with an
    unexpected shape read as empty.
    """
    env = _mapping(settings.get("env"))
    if app is AppType.CLAUDE:
        return Credentials(
            _text(env.get("ANTHROPIC_AUTH_TOKEN")),
            _text(env.get("ANTHROPIC_BASE_URL")),
            _text(env.get("ANTHROPIC_MODEL")),
        )
    if app is AppType.CODEX:
        toml = settings.get("config")
        if not isinstance(toml, str):
            toml = ""
        model = _TOML_MODEL_RE.search(toml)
        base_url = _TOML_BASE_URL_RE.search(toml)
        return Credentials(
            _text(_mapping(settings.get("auth")).get("OPENAI_API_KEY")),
            _toml_unescape(base_url.group(1)) if base_url else "",
            _toml_unescape(model.group(1)) if model else "",
        )
    if app is AppType.GEMINI:
        return Credentials(
            _text(env.get("GEMINI_API_KEY")) or _text(env.get("GOOGLE_API_KEY")),
            _text(env.get("GEMINI_BASE_URL")),
            _text(env.get("GEMINI_MODEL")),
        )
    return Credentials(_text(env.get("API_KEY")), _text(env.get("BASE_URL")))


def transform_settings(
    settings: dict[str, Any],
    source: AppType,
    target: AppType,
) -> dict[str, Any]:
    """Re-shape a settings document for another app.

    Same-app copies and copies to a non-core app are returned unchanged.
    """
    if source is target or not target.is_core:
        return dict(settings)
    return build_settings(target, extract_credentials(source, settings))


def merge_settings(
    app: AppType,
    current: dict[str, Any],
    update: ProviderUpdate,
) -> dict[str, Any]:
    """Apply the credential/model fields of *update* to *current*.

    Keys the update does not mention are preserved. An ``env`` or ``auth``
    part that is not a mapping is rebuilt from the update alone. For claude
    an empty tier model removes the override.
    """
    merged = dict(current)
    if app is AppType.CODEX:
        creds = extract_credentials(app, current)
        auth = dict(_mapping(current.get("auth")))
        if update.api_key is not None:
            auth["OPENAI_API_KEY"] = update.api_key
        merged["auth"] = auth
        merged["config"] = codex_config_toml(
            update.model or creds.model or DEFAULT_CODEX_MODEL,
            update.api_url if update.api_url is not None else creds.base_url,
        )
        return merged

    env = dict(_mapping(current.get("env")))
    if app is AppType.CLAUDE:
        if update.api_key is not None:
            env["ANTHROPIC_AUTH_TOKEN"] = update.api_key
        if update.api_url is not None:
            env["ANTHROPIC_BASE_URL"] = update.api_url
        if update.model is not None:
            env["ANTHROPIC_MODEL"] = update.model
        for attr, key in _CLAUDE_TIER_KEYS.items():
            value = getattr(update, attr)
            if value is None:
                continue
            if value:
                env[key] = value
            else:
                env.pop(key, None)
    elif app is AppType.GEMINI:
        if update.api_key is not None:
            env["GEMINI_API_KEY"] = update.api_key
            env["GOOGLE_API_KEY"] = update.api_key
        if update.api_url is not None:
            env["GEMINI_BASE_URL"] = update.api_url
        if update.model:
            env["GEMINI_MODEL"] = update.model
        env.setdefault("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
    else:
        if update.api_key is not None:
            env["API_KEY"] = update.api_key
        if update.api_url is not None:
            env["BASE_URL"] = update.api_url
    merged["env"] = env
    return merged
