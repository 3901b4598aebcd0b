"""
Claude CLI process supervision for design conversations.

One child process per request. The prompt is written to stdin (never argv,
to stay clear of ARG_MAX), stderr is drained by a background task so the
child never blocks on a full pipe, and every stdout read is time-bounded.
The child is killed when the context exits before it has finished on its
own, whether by error, timeout or cancellation of the request task.
"""
import asyncio
import logging
import os
from enum import Enum
from typing import AsyncIterator, List, Optional

from design_chat.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class AgentProcessError(RuntimeError):
    """Base error for Claude CLI failures."""


class AgentSpawnError(AgentProcessError):
    """The CLI could not be started or its pipes are unavailable."""


class AgentIOError(AgentProcessError):
    """Writing the prompt or reading output failed."""


class AgentTimeoutError(AgentProcessError):
    """The CLI went silent for longer than allowed."""


class AgentExitError(AgentProcessError):
    """The CLI exited with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class SessionMode(str, Enum):
    """How the CLI should treat the conversation session."""
    NEW = "new"  # --session-id <id>
    RESUME = "resume"  # --resume <id>
    EPHEMERAL = "ephemeral"  # --no-session-persistence


def build_cli_args(
    session_id: Optional[str],
    mode: SessionMode,
    streaming: bool = True,
    settings: Settings = default_settings,
) -> List[str]:
    """Build the full argv for one CLI invocation."""
    args = settings.get_cli_command() + ["--print"]
    if streaming:
        args.extend([
            "--output-format=stream-json",
            "--include-partial-messages",
            "--verbose",
        ])
    args.extend([
        f"--tools={settings.CLAUDE_ALLOWED_TOOLS}",
        f"--permission-mode={settings.CLAUDE_PERMISSION_MODE}",
    ])

    if mode == SessionMode.RESUME:
        args.extend(["--resume", session_id])
    elif mode == SessionMode.NEW:
        args.extend(["--session-id", session_id])
    else:
        args.append("--no-session-persistence")
    return args


class AgentProcess:
    """
    Owns one Claude CLI child process and its pipes.

    Usage::

        async with AgentProcess(args) as agent:
            await agent.send_prompt(prompt)
            async for line in agent.lines():
                ...
            await agent.wait()
    """

    def __init__(
        self,
        args: List[str],
        cwd: Optional[str] = None,
        settings: Settings = default_settings,
    ):
        self.args = args
        self.cwd = cwd or settings.get_working_directory()
        self.line_timeout = settings.LINE_READ_TIMEOUT_SECONDS
        self.read_limit = settings.STREAM_READ_LIMIT
        self.process: Optional[asyncio.subprocess.Process] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._stderr_lines: List[str] = []

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode if self.process else None

    @property
    def stderr_text(self) -> str:
        return "\n".join(self._stderr_lines)

    async def start(self) -> None:
        """Spawn the CLI with all three pipes attached."""
        logger.info(f"[AGENT_PROCESS] Spawning Claude CLI in {self.cwd}: {' '.join(self.args)}")
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env={**os.environ, "NPM_CONFIG_LOGLEVEL": "error"},
                limit=self.read_limit,
            )
        except OSError as e:
            logger.error(f"[AGENT_PROCESS] Failed to spawn Claude CLI: {e}")
            raise AgentSpawnError(
                f"Failed to spawn Claude CLI: {e}. Make sure the CLI launcher is installed and on PATH."
            ) from e

        logger.debug(f"[AGENT_PROCESS] Claude CLI started with pid {self.process.pid}")
        if self.process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._drain_stderr(self.process.stderr))

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        """Consume stderr so the child never blocks on a full pipe."""
        try:
            while True:
                line = await stream.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="replace").strip()
                if text:
                    self._stderr_lines.append(text)
                    logger.debug(f"[AGENT_PROCESS] Claude CLI stderr: {text}")
        except (OSError, ValueError) as e:
            logger.warning(f"[AGENT_PROCESS] Error reading stderr: {e}")

    async def send_prompt(self, prompt: str) -> None:
        """Write the prompt to stdin and close it to signal end of input."""
        if self.process is None or self.process.stdin is None:
            raise AgentSpawnError("Failed to open Claude CLI stdin")

        stdin = self.process.stdin
        try:
            stdin.write(prompt.encode("utf-8"))
            await stdin.drain()
            stdin.close()
            await stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError, OSError) as e:
            logger.error(f"[AGENT_PROCESS] Failed to write prompt to Claude CLI stdin: {e}")
            raise AgentIOError(f"Failed to write prompt to Claude CLI: {e}") from e

    async def lines(self) -> AsyncIterator[str]:
        """Yield decoded stdout lines until EOF.

        Each read waits at most ``line_timeout`` seconds; going over raises
        :class:`AgentTimeoutError`. There is no bound on the total run time.
        """
        if self.process is None or self.process.stdout is None:
            raise AgentSpawnError("Failed to get Claude CLI stdout")

        stdout = self.process.stdout
        while True:
            try:
                raw = await asyncio.wait_for(stdout.readline(), timeout=self.line_timeout)
            except asyncio.TimeoutError:
                logger.error(f"[AGENT_PROCESS] Claude CLI timed out after {self.line_timeout:g} seconds")
                raise AgentTimeoutError(
                    f"Claude CLI timed out after {self.line_timeout:g} seconds"
                ) from None
            except (OSError, ValueError) as e:
                # ValueError: a single line exceeded the stream read limit
                logger.error(f"[AGENT_PROCESS] Error reading CLI stdout: {e}")
                raise AgentIOError(f"Error reading from Claude CLI: {e}") from e

            if not raw:
                logger.debug("[AGENT_PROCESS] Claude CLI EOF")
                return
            yield raw.decode("utf-8", errors="replace")

    async def wait(self) -> int:
        """Wait for the child to exit.

        Output still pending on stdout (anything written after the
        ``result`` envelope) is read and discarded so the child cannot
        block on a full pipe. Each read keeps the per-line timeout.
        """
        discarded = 0
        async for _ in self.lines():
            discarded += 1
        if discarded:
            logger.debug(f"[AGENT_PROCESS] Discarded {discarded} trailing stdout lines")
        returncode = await self.process.wait()
        if returncode != 0:
            logger.warning(f"[AGENT_PROCESS] Claude CLI exited with status {returncode}")
        else:
            logger.debug("[AGENT_PROCESS] Claude CLI exited cleanly")
        return returncode

    async def run_to_completion(self, prompt: str, timeout: float) -> str:
        """Send the prompt and collect the whole stdout as text.

        Used by the non-streaming chat; ``timeout`` bounds the entire run.
        """
        if self.process is None:
            raise AgentSpawnError("Claude CLI is not running")
        if self.process.stdout is None:
            raise AgentSpawnError("Failed to get Claude CLI stdout")

        async def collect():
            data = await self.process.stdout.read()
            code = await self.wait()
            if self._stderr_task is not None:
                await self._stderr_task
            return data, code

        await self.send_prompt(prompt)
        try:
            stdout, returncode = await asyncio.wait_for(collect(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"[AGENT_PROCESS] Claude CLI timed out after {timeout:g} seconds")
            raise AgentTimeoutError(
                "Claude CLI timed out. Please try again with a shorter message."
            ) from None
        except OSError as e:
            raise AgentIOError(f"Failed to run Claude CLI: {e}") from e

        output = stdout.decode("utf-8", errors="replace")
        if returncode != 0:
            detail = self.stderr_text.strip() or output.strip()
            logger.error(f"[AGENT_PROCESS] Claude CLI error (stderr): {self.stderr_text}")
            raise AgentExitError(f"Claude CLI error: {detail}", returncode=returncode)

        logger.debug(f"[AGENT_PROCESS] Claude CLI response length: {len(output)} chars")
        return output.strip()

    async def terminate(self) -> None:
        """Kill the child if it is still running and reap it."""
        if self.process is None:
            return
        if self.process.returncode is None:
            logger.warning(f"[AGENT_PROCESS] Killing Claude CLI (pid {self.process.pid})")
            try:
                self.process.kill()
            except ProcessLookupError:
                pass
            await self.process.wait()

        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()
            try:
                await self._stderr_task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "AgentProcess":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.terminate()
