from __future__ import annotations
import asyncio
import logging
import os
import sys
import tempfile
from typing import Optional

from .errors import CodeExecutionError
from .settings import settings


logger = logging.getLogger(__name__)

# stdout/stderr beyond this are cut off
MAX_OUTPUT_BYTES = 64 * 1024


async def _drain(stream: asyncio.StreamReader) -> bytes:
    """Read a pipe to EOF, keeping at most MAX_OUTPUT_BYTES."""
    buf = bytearray()
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            return bytes(buf)
        if len(buf) < MAX_OUTPUT_BYTES:
            buf += chunk[: MAX_OUTPUT_BYTES - len(buf)]


class CodeRunner:
    """Runs Python source in a separate isolated interpreter and returns its stdout.

    The child gets ``-I`` (no user site, no PYTHON* env vars), an empty scratch
    working directory and a minimal environment. Only standard output is
    returned; stderr is used for the error message when the program fails.
    """

    def __init__(self, *, timeout: Optional[float] = None, python: Optional[str] = None) -> None:
        self.timeout = timeout if timeout is not None else settings.code_run_timeout_seconds
        self.python = python or sys.executable

    async def run(self, code: str) -> str:
        with tempfile.TemporaryDirectory(prefix="lumin-run-") as workdir:
            try:
                proc = await asyncio.create_subprocess_exec(
                    self.python, "-I", "-c", code,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                    env={"PATH": os.environ.get("PATH", ""), "PYTHONIOENCODING": "utf-8"},
                )
            except OSError as e:
                raise CodeExecutionError(f"could not start interpreter: {e}") from e
            try:
                stdout, stderr, _ = await asyncio.wait_for(
                    asyncio.gather(_drain(proc.stdout), _drain(proc.stderr), proc.wait()),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
                raise CodeExecutionError(f"execution timed out after {self.timeout:g}s")

        out = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            # Last traceback line carries the exception
            message = err.splitlines()[-1] if err else f"exit status {proc.returncode}"
            logger.info("Code run failed: %s", message)
            raise CodeExecutionError(message)
        return out
