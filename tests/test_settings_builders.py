"""Tests for provider settings document builders."""
from __future__ import annotations

import pytest

from switchboard.engine.models import AppType, ProviderParams, ProviderUpdate
from switchboard.engine.settings_builders import (
    DEFAULT_CLAUDE_MODEL,
    DEFAULT_CODEX_MODEL,
    Credentials,
    build_settings,
    extract_credentials,
    merge_settings,
    settings_for_params,
    toml_string,
    transform_settings,
)


def test_claude_settings_include_tier_overrides():
    params = ProviderParams(
        id="work", name="Work", api_url="https://proxy", api_key="sk-1",
        sonnet_model="claude-sonnet-x",
    )
    env = settings_for_params(params)["env"]
    assert env["ANTHROPIC_AUTH_TOKEN"] == "sk-1"
    assert env["ANTHROPIC_BASE_URL"] == "https://proxy"
    assert env["ANTHROPIC_MODEL"] == DEFAULT_CLAUDE_MODEL
    assert env["ANTHROPIC_DEFAULT_SONNET_MODEL"] == "claude-sonnet-x"
    assert "ANTHROPIC_DEFAULT_HAIKU_MODEL" not in env


def test_codex_settings_embed_toml():
    settings = build_settings(
        AppType.CODEX, Credentials("sk-o", "https://api.openai.com/v1", "")
    )
    assert settings["auth"] == {"OPENAI_API_KEY": "sk-o"}
    assert f'model = "{DEFAULT_CODEX_MODEL}"' in settings["config"]
    assert 'base_url = "https://api.openai.com/v1"' in settings["config"]


def test_non_core_app_gets_generic_document():
    settings = build_settings(AppType.AMP, Credentials("k", "https://amp"))
    assert settings == {"env": {"API_KEY": "k", "BASE_URL": "https://amp"}}


def test_extract_credentials_from_codex_toml():
    settings = build_settings(AppType.CODEX, Credentials("sk", "https://u", "o3"))
    creds = extract_credentials(AppType.CODEX, settings)
    assert creds == Credentials("sk", "https://u", "o3")


def test_transform_claude_to_gemini_carries_credentials():
    claude = build_settings(
        AppType.CLAUDE, Credentials("sk-c", "https://relay", "claude-x")
    )
    gemini = transform_settings(claude, AppType.CLAUDE, AppType.GEMINI)
    env = gemini["env"]
    assert env["GEMINI_API_KEY"] == "sk-c"
    assert env["GOOGLE_API_KEY"] == "sk-c"
    assert env["GEMINI_BASE_URL"] == "https://relay"
    assert env["GEMINI_MODEL"] == "claude-x"


def test_transform_to_non_core_app_is_unchanged_copy():
    original = {"env": {"ANTHROPIC_AUTH_TOKEN": "sk"}}
    copied = transform_settings(original, AppType.CLAUDE, AppType.OPENCODE)
    assert copied == original
    assert copied is not original


def test_merge_claude_preserves_unmentioned_keys_and_drops_empty_tier():
    current = {
        "env": {
            "ANTHROPIC_AUTH_TOKEN": "old",
            "ANTHROPIC_BASE_URL": "https://a",
            "ANTHROPIC_DEFAULT_OPUS_MODEL": "opus-x",
            "EXTRA": "keep",
        },
        "permissions": {"allow": []},
    }
    merged = merge_settings(
        AppType.CLAUDE, current,
        ProviderUpdate(id="p", api_key="new", opus_model=""),
    )
    env = merged["env"]
    assert env["ANTHROPIC_AUTH_TOKEN"] == "new"
    assert env["ANTHROPIC_BASE_URL"] == "https://a"
    assert env["EXTRA"] == "keep"
    assert "ANTHROPIC_DEFAULT_OPUS_MODEL" not in env
    assert merged["permissions"] == {"allow": []}
    assert current["env"]["ANTHROPIC_AUTH_TOKEN"] == "old"


def test_merge_codex_keeps_existing_model_and_url():
    current = build_settings(AppType.CODEX, Credentials("sk", "https://u", "o3"))
    merged = merge_settings(
        AppType.CODEX, current, ProviderUpdate(id="p", app=AppType.CODEX, api_key="sk2")
    )
    assert merged["auth"]["OPENAI_API_KEY"] == "sk2"
    assert 'model = "o3"' in merged["config"]
    assert 'base_url = "https://u"' in merged["config"]


def test_codex_toml_escapes_injected_tables():
    hostile = 'https://x"\n[mcp_servers.evil]\ncommand = "sh'
    settings = settings_for_params(ProviderParams(
        id="p", name="P", api_url=hostile, api_key="k", app=AppType.CODEX,
    ))
    config = settings["config"]

    assert "\n[mcp_servers" not in config
    assert [line for line in config.splitlines() if line.startswith("[")] == [
        "[model_providers.openai-chat-completions]",
    ]
    assert extract_credentials(AppType.CODEX, settings).base_url == hostile

    tomllib = pytest.importorskip("tomllib")
    parsed = tomllib.loads(config)
    assert set(parsed) == {
        "model", "model_provider", "preferred_auth_method", "model_providers",
    }
    assert parsed["model_providers"]["openai-chat-completions"]["base_url"] == hostile


def test_toml_string_escapes_quotes_backslashes_and_controls():
    assert toml_string('a"b\\c') == '"a\\"b\\\\c"'
    assert toml_string("line\nnext\x01") == '"line\\nnext\\u0001"'


def test_extract_credentials_ignores_unexpected_shapes():
    assert extract_credentials(AppType.CLAUDE, {"env": "broken"}) == Credentials()
    assert extract_credentials(
        AppType.CODEX, {"auth": ["k"], "config": {"model": "x"}}
    ) == Credentials()
    assert extract_credentials(
        AppType.GEMINI, {"env": {"GEMINI_API_KEY": 7, "GOOGLE_API_KEY": "g"}}
    ).api_key == "g"
