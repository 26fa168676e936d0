"""Exception hierarchy for the switchboard adapter core.

One exception per failure mode. Read paths catch these and degrade
to empty results; mutation paths turn them into OperationResult
failures; the custom tool runner lets them propagate.
"""
from __future__ import annotations

from collections.abc import Sequence


class SwitchboardError(Exception):
    """Base exception for all adapter-core errors."""


class ProcessSpawnError(SwitchboardError):
    """The binary is missing or cannot be executed."""
    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to spawn '{command}': {reason}")


class ProcessTimeoutError(SwitchboardError):
    """A subprocess exceeded its deadline and was killed."""
    def __init__(self, argv: Sequence[str], timeout_seconds: float):
        self.argv = list(argv)
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Command timed out after {timeout_seconds:g}s: "
            f"{' '.join(self.argv)}"
        )


class NonZeroExitError(SwitchboardError):
    """The process ran but reported failure."""
    def __init__(
        self,
        argv: Sequence[str],
        exit_code: int,
        stderr: str = "",
        stdout: str = "",
    ):
        self.argv = list(argv)
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr or stdout or "no output"
        super().__init__(
            f"'{' '.join(self.argv)}' exited with {exit_code}: {detail}"
        )


class ParseAmbiguityError(SwitchboardError):
    """A line of CLI output could not be interpreted.

    Raised inside parsers only; OutputParser.parse() swallows it and
    skips the offending line.
    """
    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f"Unrecognized output line ({reason}): {line!r}")


class ValidationError(SwitchboardError):
    """An identifier, name or parameter failed a format/uniqueness check."""


class StoreClientError(SwitchboardError):
    """The direct-store client failed to execute a statement."""
    def __init__(self, db_path: str, reason: str):
        self.db_path = db_path
        self.reason = reason
        super().__init__(f"Store operation failed on {db_path}: {reason}")


class ToolNotFoundError(SwitchboardError):
    """Requested custom tool is not registered."""
    def __init__(self, tool_id: str):
        self.tool_id = tool_id
        super().__init__(f"Tool not found: {tool_id}")
