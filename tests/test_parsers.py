"""Tests for the CLI output parsers and extractors."""
from __future__ import annotations

from switchboard.engine.models import AppType, ProviderType
from switchboard.engine.parsers import (
    ColumnParser,
    DiscoveredSkillParser,
    EnvVarTableParser,
    KeyValueParser,
    McpServerTableParser,
    PlainListParser,
    PromptTableParser,
    ProviderListParser,
    SkillRepoTableParser,
    SkillSearchParser,
    SkillTableParser,
    UnmanagedSkillTableParser,
    extract_backup_path,
    extract_current_marker,
    extract_current_provider_line,
    extract_db_path,
    extract_imported,
    extract_latency_ms,
    extract_sync_method,
    infer_provider_type,
    parse_skill_info,
)

PROVIDER_TABLE = """\
┌───┬────────────────────┬────────────────────┬───────────────────────────┐
│   ┆ ID                 ┆ Name               ┆ API URL                   │
╞═══╪════════════════════╪════════════════════╪═══════════════════════════╡
│ ✓ ┆ anthropic-official ┆ Anthropic Official ┆ https://api.anthropic.com │
├╌╌╌┼╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌┼╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌┼╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌┤
│   ┆ work-proxy         ┆ Work Proxy         ┆ https://proxy.example.com │
├╌╌╌┼╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌┼╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌┼╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌╌┤
│   ┆ openai-compat      ┆ OpenAI Compatible  ┆ https://api.openai.com    │
└───┴────────────────────┴────────────────────┴───────────────────────────┘

ℹ Application: claude
→ Current: anthropic-official
"""


# ── Providers ──


def test_provider_table_yields_one_record_per_row():
    providers = ProviderListParser().parse(PROVIDER_TABLE)
    assert [p.id for p in providers] == [
        "anthropic-official", "work-proxy", "openai-compat",
    ]
    assert providers[1].name == "Work Proxy"


def test_provider_table_marks_only_checked_row_active():
    providers = ProviderListParser().parse(PROVIDER_TABLE)
    assert [p.is_active for p in providers] == [True, False, False]


def test_provider_table_infers_type_from_id():
    providers = ProviderListParser().parse(PROVIDER_TABLE)
    assert providers[0].type == ProviderType.CLAUDE
    assert providers[1].type == ProviderType.CUSTOM
    assert providers[2].type == ProviderType.CODEX


def test_provider_plain_shape():
    output = (
        "anthropic-official Anthropic Official [active]\n"
        "work-proxy Work Proxy\n"
        "solo\n"
        "ℹ Application: claude\n"
    )
    providers = ProviderListParser().parse(output)
    assert [(p.id, p.name, p.is_active) for p in providers] == [
        ("anthropic-official", "Anthropic Official", True),
        ("work-proxy", "Work Proxy", False),
        ("solo", "solo", False),
    ]


def test_provider_parser_empty_output():
    assert ProviderListParser().parse("") == []
    assert ProviderListParser().parse(None) == []


def test_infer_provider_type_keywords():
    assert infer_provider_type("my-anthropic") == ProviderType.CLAUDE
    assert infer_provider_type("Google-AI") == ProviderType.GEMINI
    assert infer_provider_type("openrouter") == ProviderType.CUSTOM


def test_plain_parser_skips_border_identifiers():
    output = "│ stray\nreal-id Real\n"
    assert [e.id for e in PlainListParser().parse(output)] == ["real-id"]


# ── MCP servers ──


MCP_TABLE = """\
┌───┬────────┬────────────┬──────────────────────────────┐
│   ┆ ID     ┆ Name       ┆ Command                      │
╞═══╪════════╪════════════╪══════════════════════════════╡
│ ✓ ┆ fs     ┆ Filesystem ┆ npx -y @mcp/server-fs /tmp   │
│   ┆ github ┆ GitHub     ┆ uvx mcp-github               │
└───┴────────┴────────────┴──────────────────────────────┘
"""


def test_mcp_table_splits_command_and_args():
    servers = McpServerTableParser().parse(MCP_TABLE)
    assert len(servers) == 2
    fs = servers[0]
    assert fs.id == "fs"
    assert fs.command == "npx"
    assert fs.args == ["-y", "@mcp/server-fs", "/tmp"]


def test_mcp_check_mark_is_recorded_for_requested_app():
    servers = McpServerTableParser().for_app(AppType.CODEX).parse(MCP_TABLE)
    assert servers[0].is_enabled_for(AppType.CODEX) is True
    assert servers[0].is_enabled_for(AppType.CLAUDE) is False
    assert servers[1].is_enabled_for(AppType.CODEX) is False


def test_mcp_sentinel_yields_nothing():
    assert McpServerTableParser().parse("No MCP servers found.") == []
    assert McpServerTableParser().parse("ℹ NO SERVERS FOUND") == []


# ── Prompts ──


def test_prompt_table():
    output = """\
│   ┆ ID     ┆ Name   ┆ Description      ┆ Updated    │
│ ✓ ┆ review ┆ Review ┆ Code review tone ┆ 2024-05-01 │
│   ┆ terse  ┆ Terse  ┆                  ┆ 2024-04-11 │
"""
    prompts = PromptTableParser().parse(output)
    assert [p.id for p in prompts] == ["review", "terse"]
    assert prompts[0].is_active is True
    assert prompts[0].description == "Code review tone"
    assert prompts[1].updated == "2024-04-11"


def test_table_row_with_too_few_cells_is_skipped():
    output = "│ ✓ ┆ lonely │\n│   ┆ ok ┆ Ok ┆ d ┆ u │\n"
    assert [p.id for p in PromptTableParser().parse(output)] == ["ok"]


# ── Skills ──


def test_skill_table():
    output = """\
│ ID  ┆ Name      ┆ Description │
│ pdf ┆ PDF Tools ┆ Read PDFs   │
│ xls ┆           ┆             │
"""
    skills = SkillTableParser().parse(output)
    assert [(s.id, s.name) for s in skills] == [("pdf", "PDF Tools"), ("xls", "xls")]
    assert all(s.installed for s in skills)


def test_skill_sentinel():
    assert SkillTableParser().parse("No installed skills found") == []


def test_skill_repo_table_skips_malformed_rows():
    output = """\
│ Repository        ┆ Branch ┆ Enabled │
│ anthropics/skills ┆ main   ┆ ✓       │
│ not-a-repo        ┆ main   ┆         │
│ acme/extras       ┆ dev    ┆         │
"""
    repos = SkillRepoTableParser().parse(output)
    assert [r.full_name for r in repos] == ["anthropics/skills", "acme/extras"]
    assert repos[0].enabled is True
    assert repos[1].branch == "dev"


def test_discover_table_with_indicator_column():
    output = """\
│   ┆ Directory ┆ Name       │
│ ✓ ┆ pdf       ┆ PDF Tools  │
│   ┆ docx      ┆ Word Tools │
"""
    found = DiscoveredSkillParser().parse(output)
    assert [(d.name, d.description, d.installed) for d in found] == [
        ("pdf", "PDF Tools", True),
        ("docx", "Word Tools", False),
    ]


def test_discover_column_shape():
    output = (
        "Available skills:\n"
        "pdf  Read and write PDFs  [installed]\n"
        "docx  Word documents\n"
    )
    found = DiscoveredSkillParser().parse(output)
    assert [(d.name, d.installed) for d in found] == [("pdf", True), ("docx", False)]
    assert found[0].description == "Read and write PDFs"


def test_skill_search():
    output = (
        "Name  Description\n"
        "pdf-tools  Extract text from PDFs  [installed]\n"
        "csv-kit  CSV helpers\n"
    )
    results = SkillSearchParser().parse(output)
    assert [r.name for r in results] == ["pdf-tools", "csv-kit"]
    assert results[0].installed is True
    assert results[1].description == "CSV helpers"


def test_unmanaged_skill_table():
    output = """\
│ Name   ┆ Path                      ┆ App    │
│ notes  ┆ /home/u/.claude/skills/n  ┆ claude │
"""
    found = UnmanagedSkillTableParser().parse(output)
    assert len(found) == 1
    assert found[0].path == "/home/u/.claude/skills/n"
    assert found[0].app == "claude"


def test_skill_info():
    output = (
        "Name: pdf\n"
        "Description: PDF tools\n"
        "Version: 1.2.0\n"
        "Path: /home/u/.cc-switch/skills/pdf\n"
        "Enabled: yes\n"
    )
    info = parse_skill_info(output)
    assert info is not None
    assert info.name == "pdf"
    assert info.version == "1.2.0"
    assert info.enabled is True
    assert info.installed is None


def test_skill_info_without_name():
    assert parse_skill_info("Version: 1.0") is None
    assert parse_skill_info("") is None


# ── Env / generic shapes ──


def test_env_var_table():
    output = """\
│ Variable          ┆ Value   ┆ Source ┆ Location  │
│ ANTHROPIC_API_KEY ┆ sk-***  ┆ shell  ┆ ~/.zshrc  │
│ BROKEN            ┆ x       ┆ shell  │
"""
    records = EnvVarTableParser().parse(output)
    assert len(records) == 1
    assert records[0].variable == "ANTHROPIC_API_KEY"
    assert records[0].source_location == "~/.zshrc"


def test_key_value_first_separator_wins():
    pairs = KeyValueParser().parse(
        "URL: https://example.com\nmodel = gpt-4o\nmode=a:b\nnot a pair\n"
    )
    assert pairs == [
        ("URL", "https://example.com"),
        ("model", "gpt-4o"),
        ("mode", "a:b"),
    ]


def test_column_parser_skips_headers_and_rules():
    output = "Name  Value\n───────────\nalpha  one\nsingle\n"
    assert ColumnParser().parse(output) == [["alpha", "one"]]


# ── Extractors ──


def test_extractors():
    assert extract_current_marker(PROVIDER_TABLE) == "anthropic-official"
    assert extract_current_provider_line("Current Provider: work-proxy\n") == "work-proxy"
    assert extract_db_path("DB file: /home/u/.cc-switch/cc-switch.db") == (
        "/home/u/.cc-switch/cc-switch.db"
    )
    assert extract_latency_ms("✓ work-proxy Latency: 212ms") == 212
    assert extract_backup_path("Backup saved to: /tmp/backup.json") == "/tmp/backup.json"
    assert extract_imported("Imported: pdf, docx ,") == ["pdf", "docx"]
    assert extract_sync_method("Sync method: symlink") == "symlink"


def test_extractors_on_missing_input():
    assert extract_current_marker(None) is None
    assert extract_latency_ms("timed out") is None
    assert extract_imported("") == []
