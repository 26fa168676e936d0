"""Subprocess execution with deadlines.

Every external program (the driven CLI, custom tools, probes) is run
through run_process(): argument vector, no shell, no stdin, output
captured in full, and a hard deadline after which the child is killed.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Mapping, Sequence

from .errors import ProcessSpawnError, ProcessTimeoutError
from .models import ExecutionResult

logger = logging.getLogger(__name__)


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace").strip()


async def run_process(
    argv: Sequence[str],
    *,
    timeout: float,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> ExecutionResult:
    """Run *argv* to completion or until *timeout* seconds elapse.

    Raises ProcessSpawnError if the binary cannot be started and
    ProcessTimeoutError (after killing the child) on deadline expiry.
    A missing or signal-derived exit status is reported as 1.
    """
    argv = list(argv)
    if not argv:
        raise ProcessSpawnError("", "empty command")

    try:
        # argument vector, never a shell
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
    except OSError as exc:
        raise ProcessSpawnError(argv[0], str(exc)) from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(
            "Killing pid=%s after %.1fs deadline: %s",
            proc.pid, timeout, argv,
        )
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise ProcessTimeoutError(argv, timeout) from None

    returncode = proc.returncode
    exit_code = returncode if returncode is not None and returncode >= 0 else 1
    result = ExecutionResult(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        exit_code=exit_code,
    )
    logger.debug("%s exited with %d", argv, exit_code)
    return result


class ProcessExecutor:
    """Runs the driven CLI.

    The environment is inherited from this process; each call gets its
    own deadline, so any number of calls may be in flight at once.
    """

    def __init__(
        self,
        binary: str,
        default_timeout: float = 30.0,
        probe_timeout: float = 5.0,
    ) -> None:
        self._binary = shutil.which(binary) or binary
        self._default_timeout = default_timeout
        self._probe_timeout = probe_timeout

    @property
    def binary(self) -> str:
        return self._binary

    async def execute(
        self,
        args: Sequence[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        return await run_process(
            [self._binary, *args],
            cwd=cwd,
            timeout=timeout if timeout is not None else self._default_timeout,
        )

    async def is_available(self) -> bool:
        """Health probe: True iff ``--help`` exits 0. Never raises."""
        try:
            result = await self.execute(["--help"], timeout=self._probe_timeout)
        except Exception as exc:
            logger.debug("Availability probe for %s failed: %s", self._binary, exc)
            return False
        return result.exit_code == 0
