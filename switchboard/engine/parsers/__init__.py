"""Parsers for the driven CLI's text output."""
from .base import OutputParser, clean_cell, content_lines, has_alnum
from .plain import ColumnParser, KeyValueParser, PlainEntry, PlainListParser
from .records import (
    DiscoveredSkillParser,
    EnvVarTableParser,
    McpServerTableParser,
    ParserSet,
    PromptTableParser,
    ProviderListParser,
    ProviderTableParser,
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
from .table import TableParser

__all__ = [
    "ColumnParser",
    "DiscoveredSkillParser",
    "EnvVarTableParser",
    "KeyValueParser",
    "McpServerTableParser",
    "OutputParser",
    "ParserSet",
    "PlainEntry",
    "PlainListParser",
    "PromptTableParser",
    "ProviderListParser",
    "ProviderTableParser",
    "SkillRepoTableParser",
    "SkillSearchParser",
    "SkillTableParser",
    "TableParser",
    "UnmanagedSkillTableParser",
    "clean_cell",
    "content_lines",
    "extract_backup_path",
    "extract_current_marker",
    "extract_current_provider_line",
    "extract_db_path",
    "extract_imported",
    "extract_latency_ms",
    "extract_sync_method",
    "has_alnum",
    "infer_provider_type",
    "parse_skill_info",
]
