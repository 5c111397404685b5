"""
Script executor for running install scripts as child processes.
"""

import asyncio
import codecs
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors import SpawnError
from ..models.installation import ScriptOutcome

OutputCallback = Callable[[str], None]

DEFAULT_ENVIRONMENT = {
    "DEBIAN_FRONTEND": "noninteractive",
    # Many installers respect this
    "CI": "true",
}

PROMPT_MARKERS = ("?", "[Y/n]", "[y/N]")


def looks_like_prompt(text: str) -> bool:
    """Best-effort check for a yes/no prompt in a chunk of output."""
    return any(marker in text for marker in PROMPT_MARKERS)


class ScriptExecutor:
    """
    Runs one install script and answers its prompts affirmatively.

    Prompt detection is a substring heuristic on raw output chunks. Only
    single affirmative answers are supported; scripts expecting other input
    will see the same answer.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the executor.

        Args:
            config: Executor configuration dictionary
        """
        config = config or {}
        self.logger = logging.getLogger(__name__)
        self.interpreter = config.get('interpreter', 'bash')
        self.environment = {**DEFAULT_ENVIRONMENT, **(config.get('environment') or {})}
        self.affirmative_response = config.get('affirmative_response', 'y\n').encode()
        self.timeout_seconds = config.get('timeout_seconds')
        self.read_chunk_size = config.get('read_chunk_size', 4096)

    async def run(self,
                  script_path: Union[str, Path],
                  environment: Optional[Dict[str, str]] = None,
                  on_output: Optional[OutputCallback] = None) -> ScriptOutcome:
        """
        Run an install script to completion.

        Args:
            script_path: Path to the script
            environment: Extra environment variables for this run
            on_output: Called with each non-blank line of output

        Returns:
            Script outcome; success means exit status 0

        Raises:
            SpawnError: the script or interpreter could not be launched
        """
        path = Path(script_path)
        self._check_script(path)

        env = {**os.environ, **self.environment, **(environment or {})}
        started = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                self.interpreter, str(path),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env
            )
        except OSError as e:
            raise SpawnError(f"Failed to launch {path}: {e}", script_path=str(path)) from e

        self.logger.info(f"Started {path} (pid {process.pid})")

        output: List[str] = []
        errors: List[str] = []
        stdin_lock = asyncio.Lock()

        # Answer a leading yes/no prompt before any output arrives
        await self._answer(process, stdin_lock)

        async def communicate() -> int:
            await asyncio.gather(
                self._pump(process, process.stdout, output, None, on_output, stdin_lock),
                self._pump(process, process.stderr, output, errors, on_output, stdin_lock)
            )
            return await process.wait()

        timed_out = False
        try:
            if self.timeout_seconds:
                exit_code = await asyncio.wait_for(communicate(), timeout=self.timeout_seconds)
            else:
                exit_code = await communicate()
        except asyncio.TimeoutError:
            timed_out = True
            exit_code = None
            self.logger.warning(f"{path} timed out after {self.timeout_seconds} seconds, killing")
            process.kill()
            await process.wait()
        finally:
            if process.stdin and not process.stdin.is_closing():
                process.stdin.close()

        duration = time.monotonic() - started
        outcome = ScriptOutcome(
            success=not timed_out and exit_code == 0,
            exit_code=exit_code,
            output="".join(output),
            error_output="".join(errors),
            timed_out=timed_out,
            duration_seconds=duration
        )

        if outcome.success:
            self.logger.info(f"{path} finished successfully in {duration:.1f}s")
        else:
            self.logger.warning(f"{path} failed with exit code {exit_code} after {duration:.1f}s")
        return outcome

    def _check_script(self, path: Path) -> None:
        """Reject scripts that bash would fail to open."""
        if not path.exists():
            raise SpawnError(f"Script not found: {path}", script_path=str(path))
        if not path.is_file():
            raise SpawnError(f"Script is not a file: {path}", script_path=str(path))
        if not os.access(path, os.R_OK):
            raise SpawnError(f"Permission denied: {path}", script_path=str(path))

    async def _pump(self,
                    process: asyncio.subprocess.Process,
                    stream: asyncio.StreamReader,
                    output: List[str],
                    errors: Optional[List[str]],
                    on_output: Optional[OutputCallback],
                    stdin_lock: asyncio.Lock) -> None:
        """Read one output stream until EOF, emitting lines and answering prompts."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""

        while True:
            chunk = await stream.read(self.read_chunk_size)
            final = not chunk
            text = decoder.decode(chunk, final=final)

            if text:
                output.append(text)
                if errors is not None:
                    errors.append(text)

                pending += text
                *lines, pending = pending.split("\n")
                for line in lines:
                    self._emit(line, on_output)

                if looks_like_prompt(text):
                    await self._answer(process, stdin_lock)

            if final:
                break

        self._emit(pending, on_output)

    def _emit(self, line: str, on_output: Optional[OutputCallback]) -> None:
        line = line.rstrip("\r")
        if on_output and line.strip():
            on_output(line)

    async def _answer(self, process: asyncio.subprocess.Process, stdin_lock: asyncio.Lock) -> None:
        """Write one affirmative response to the child's stdin."""
        stdin = process.stdin
        if stdin is None or stdin.is_closing():
            return
        async with stdin_lock:
            try:
                stdin.write(self.affirmative_response)
                await stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                self.logger.debug(f"stdin of pid {process.pid} closed, prompt left unanswered")


class DryRunExecutor(ScriptExecutor):
    """Executor that only logs the scripts it would run."""

    async def run(self,
                  script_path: Union[str, Path],
                  environment: Optional[Dict[str, str]] = None,
                  on_output: Optional[OutputCallback] = None) -> ScriptOutcome:
        message = f"[DRY RUN] Would run {self.interpreter} {script_path}"
        self.logger.info(message)
        if on_output:
            on_output(message)
        return ScriptOutcome(success=True, exit_code=0, output=message + "\n", duration_seconds=0.0)
