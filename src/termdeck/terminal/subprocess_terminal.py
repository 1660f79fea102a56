"""Subprocess-backed terminal for local interactive sessions.

Each terminal is a long-lived shell process fed over a stdin pipe. Output
is streamed to the console while the session is shown and to the log
otherwise.

Platform Behavior:
    - Windows: powershell.exe reading commands from stdin
    - Unix: /bin/bash (falls back to /bin/sh)

Note:
    This uses pipe-based I/O rather than a PTY, so full-screen programs and
    readline editing inside the session do not work.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import signal
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from termdeck.logging import VERBOSE, get_logger, session_output_logger

if TYPE_CHECKING:
    from termdeck.config.schema import ShellConfig

log = get_logger("terminal")

# Seconds to wait after terminate before killing
TERMINATE_GRACE = 2.0

_WINDOWS_SHELL = ["powershell.exe", "-NoLogo", "-NoProfile", "-Command", "-"]
_POSIX_SHELLS = ["/bin/bash", "/bin/sh"]


def default_shell_command() -> list[str]:
    """Shell command list for the current platform."""
    if sys.platform == "win32":
        return list(_WINDOWS_SHELL)
    for shell in _POSIX_SHELLS:
        if os.path.exists(shell):
            return [shell]
    return [shutil.which("sh") or "sh"]


class SubprocessTerminal:
    """A named interactive shell running as a child process."""

    def __init__(
        self,
        name: str,
        shell_cmd: list[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        console: Console | None = None,
        on_closed: Callable[[SubprocessTerminal], None] | None = None,
    ) -> None:
        """Create the terminal and schedule its process on the running loop.

        Args:
            name: Session name, used as the output prefix.
            shell_cmd: Shell executable and arguments.
            cwd: Working directory. Defaults to the current directory.
            env: Additional environment variables.
            console: Rich console for visible output.
            on_closed: Called once when the session ends for any reason.
        """
        self._name = name
        self._shell_cmd = shell_cmd
        self._cwd = cwd or os.getcwd()
        self._env = env
        self._console = console or Console()
        self._on_closed = on_closed
        self._output_log = session_output_logger(name)

        self._visible = False
        self._disposed = False
        self._closed = False
        self._process: asyncio.subprocess.Process | None = None
        self._input: asyncio.Queue[str] = asyncio.Queue()
        self.exit_code: int | None = None

        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def name(self) -> str:
        return self._name

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def disposed(self) -> bool:
        return self._disposed or self._closed

    @property
    def visible(self) -> bool:
        return self._visible

    def show(self) -> None:
        self._visible = True

    def send_text(self, text: str) -> None:
        if self.disposed:
            log.debug("Ignoring input for closed terminal %s", self._name)
            return
        self._input.put_nowait(text + "\n")

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        # Before the process exists, _run() sees the flag right after spawning
        if self._process is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> int | None:
        """Wait until the process is gone; returns its exit code."""
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.shield(self._task)
        return self.exit_code

    def _emit(self, line: str) -> None:
        if self._visible:
            self._console.print(f"[bold cyan]{escape(self._name)}[/] | {escape(line)}")
        else:
            self._output_log.log(VERBOSE, "%s", line)

    async def _pump_output(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout
        while True:
            chunk = await stdout.readline()
            if not chunk:
                break
            self._emit(chunk.decode("utf-8", errors="replace").rstrip("\r\n"))

    async def _pump_input(self) -> None:
        assert self._process is not None and self._process.stdin is not None
        stdin = self._process.stdin
        while True:
            text = await self._input.get()
            try:
                stdin.write(text.encode("utf-8"))
                await stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                break

    async def _run(self) -> None:
        process_env = os.environ.copy()
        if self._env:
            process_env.update(self._env)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._shell_cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self._cwd,
                env=process_env,
            )
        except FileNotFoundError:
            log.error("Shell not found for %s: %s", self._name, self._shell_cmd[0])
            self.exit_code = 127
            self._notify_closed()
            return
        except PermissionError:
            log.error("Permission denied starting %s: %s", self._name, self._shell_cmd[0])
            self.exit_code = 126
            self._notify_closed()
            return
        except OSError as e:
            log.error("Error starting shell for %s: %s", self._name, e)
            self.exit_code = 1
            self._notify_closed()
            return

        log.debug("Terminal %s started (pid=%s, cwd=%s)", self._name, self._process.pid, self._cwd)
        if self._disposed:
            await self._terminate()
            self._notify_closed()
            return

        output_task = asyncio.create_task(self._pump_output())
        input_task = asyncio.create_task(self._pump_input())

        try:
            self.exit_code = await self._process.wait()
            # Drain whatever the shell printed before exiting
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(asyncio.shield(output_task), timeout=1.0)
        except asyncio.CancelledError:
            pass
        finally:
            input_task.cancel()
            output_task.cancel()
            for task in (input_task, output_task):
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task
            await self._terminate()
            self._notify_closed()

    async def _terminate(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            if sys.platform == "win32":
                process.terminate()
            else:
                process.send_signal(signal.SIGTERM)

            try:
                await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
        except ProcessLookupError:
            pass
        self.exit_code = process.returncode

    def _notify_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        log.debug("Terminal %s closed (exit=%s)", self._name, self.exit_code)
        if self._on_closed is not None:
            self._on_closed(self)

    def __repr__(self) -> str:
        state = "closed" if self.disposed else "running"
        return f"<SubprocessTerminal {self._name!r} {state}>"


class SubprocessTerminalFactory:
    """Creates SubprocessTerminals and fans out their close notifications."""

    def __init__(
        self,
        shell: ShellConfig | None = None,
        console: Console | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self._shell = shell
        self._console = console or Console()
        self._env = env
        self._listeners: list[Callable[[SubprocessTerminal], None]] = []
        self._live: set[SubprocessTerminal] = set()

    def shell_command(self) -> list[str]:
        if self._shell and self._shell.executable:
            return [self._shell.executable, *self._shell.args]
        return default_shell_command()

    def create(self, name: str, cwd: str | None = None) -> SubprocessTerminal:
        terminal = SubprocessTerminal(
            name,
            self.shell_command(),
            cwd=cwd,
            env=self._env,
            console=self._console,
            on_closed=self._closed,
        )
        self._live.add(terminal)
        return terminal

    async def wait_closed(self) -> None:
        """Wait until every terminal this factory created has exited."""
        if self._live:
            await asyncio.gather(*(t.wait_closed() for t in list(self._live)))

    def on_did_close(
        self, callback: Callable[[SubprocessTerminal], None]
    ) -> Callable[[], None]:
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister

    def _closed(self, terminal: SubprocessTerminal) -> None:
        self._live.discard(terminal)
        for listener in list(self._listeners):
            try:
                listener(terminal)
            except Exception as e:
                log.error("Error in terminal close callback: %s", e)
