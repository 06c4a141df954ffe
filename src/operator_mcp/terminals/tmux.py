"""tmux-backed terminal host."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
from dataclasses import dataclass
from itertools import count
from pathlib import Path
from typing import Callable, Mapping

from ..agent.utils import sanitize_environment
from .host import HostEvent, HostListener, HostUnavailableError, TerminalStyle

logger = logging.getLogger(__name__)

_SHELLS = {"bash", "zsh", "sh", "fish", "dash", "ksh", "tcsh", "csh", "nu"}


def _target(session: str, *, pane: bool = False) -> str:
    """Exact-match tmux target; a bare name would also match longer session names."""

    return f"={session}:" if pane else f"={session}"


@dataclass(slots=True)
class TmuxResult:
    """Holds the outcome of a tmux invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class TmuxHandle:
    session: str
    serial: int


class TmuxHost:
    """Run each operator terminal as a detached tmux session.

    tmux has no push notifications for command start or pane exit, so
    activity is sampled by :meth:`refresh` when a caller asks for it.
    """

    def __init__(self, executable: Path | str | None = None) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._listeners: list[HostListener] = []
        self._serial = count(1)
        self._running: dict[TmuxHandle, bool] = {}

    @staticmethod
    def _resolve_executable(explicit: Path | str | None) -> Path | None:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            logger.warning("tmux executable not found", extra={"path": str(candidate)})
            return None

        binary = shutil.which("tmux")
        return Path(binary) if binary is not None else None

    @property
    def executable(self) -> Path | None:
        return self._executable_path

    @property
    def available(self) -> bool:
        return self._executable_path is not None

    async def create_handle(
        self,
        name: str,
        cwd: str | None,
        env: Mapping[str, str],
        style: TerminalStyle,
    ) -> TmuxHandle:
        if self._executable_path is None:
            raise HostUnavailableError("tmux executable not found on PATH")

        stale = await self._invoke("has-session", "-t", _target(name))
        if stale.ok:
            logger.warning("Removing stale tmux session", extra={"session": name})
            await self._invoke("kill-session", "-t", _target(name))

        args = ["new-session", "-d", "-s", name]
        if cwd:
            args.extend(["-c", cwd])
        for key, value in env.items():
            args.extend(["-e", f"{key}={value}"])

        result = await self._invoke(*args)
        if not result.ok:
            raise HostUnavailableError(
                result.stderr.strip() or f"tmux new-session exited with {result.returncode}"
            )

        target = _target(name)
        try:
            await self._invoke("set-option", "-t", target, "status-style", f"bg={style.color}")
            await self._invoke("set-option", "-t", target, "@operator_icon", style.icon)
        except HostUnavailableError:
            logger.warning("Styling tmux session failed, removing it", extra={"session": name})
            with contextlib.suppress(HostUnavailableError):
                await self._invoke("kill-session", "-t", target)
            raise

        handle = TmuxHandle(session=name, serial=next(self._serial))
        self._running[handle] = False
        return handle

    async def send_text(self, handle: TmuxHandle, text: str) -> None:
        await self._invoke("send-keys", "-t", _target(handle.session, pane=True), "-l", text)
        await self._invoke("send-keys", "-t", _target(handle.session, pane=True), "Enter")

    async def reveal(self, handle: TmuxHandle, steal_focus: bool) -> None:
        if steal_focus:
            result = await self._invoke("switch-client", "-t", _target(handle.session))
        else:
            result = await self._invoke("select-window", "-t", _target(handle.session, pane=True))
        if not result.ok:
            # Expected when no tmux client is attached.
            logger.debug(
                "tmux reveal had no effect",
                extra={"session": handle.session, "stderr": result.stderr.strip()},
            )

    async def dispose(self, handle: TmuxHandle) -> None:
        self._running.pop(handle, None)
        await self._invoke("kill-session", "-t", _target(handle.session))

    def subscribe(self, listener: HostListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def refresh(self) -> None:
        """Sample every known session and emit activity or closure events."""

        for handle, was_running in list(self._running.items()):
            result = await self._invoke(
                "display-message", "-p", "-t", _target(handle.session, pane=True), "#{pane_current_command}"
            )
            if not result.ok:
                self._running.pop(handle, None)
                self._emit(handle, HostEvent.CLOSED)
                continue

            running = result.stdout.strip() not in _SHELLS
            if running == was_running:
                continue
            self._running[handle] = running
            self._emit(handle, HostEvent.EXECUTION_STARTED if running else HostEvent.EXECUTION_ENDED)

    def _emit(self, handle: TmuxHandle, event: HostEvent) -> None:
        for listener in list(self._listeners):
            listener(handle, event)

    async def _invoke(self, *args: str) -> TmuxResult:
        if self._executable_path is None:
            raise HostUnavailableError("tmux executable not found on PATH")
        cmd = [str(self._executable_path), *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=sanitize_environment(),
            )
        except OSError as exc:
            raise HostUnavailableError(f"Unable to run tmux: {exc}") from exc
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return TmuxResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


__all__ = ["TmuxHandle", "TmuxHost", "TmuxResult"]
