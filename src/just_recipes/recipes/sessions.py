"""Named persistent shell sessions for attached recipe runs."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import rich_click as click

from just_recipes.recipes.process import SpawnError

logger = logging.getLogger(__name__)

POSIX_DEFAULT_SHELL = ("bash", "-c")
WINDOWS_DEFAULT_SHELL = ("powershell.exe", "-Command")


class Session(Protocol):
    """A live execution context that accepts command lines."""

    name: str

    def send_command(self, command_line: str) -> None:
        """Queue one command line for execution."""

    def is_alive(self) -> bool:
        """Return whether the session can still accept commands."""

    def show(self) -> None:
        """Make the session visible to the user."""

    def close(self, *, timeout: float | None = None) -> None:
        """Stop accepting commands and wait up to ``timeout`` for queued ones."""


class SessionFactory(Protocol):
    """Creates sessions for ``SessionManager``."""

    def create(self, *, name: str, cwd: Path, shell_path: str | None) -> Session:
        """Start a new session."""


class ShellSession:
    """Long-lived shell process fed through stdin; output goes to the user's terminal."""

    def __init__(self, *, name: str, argv: Sequence[str], cwd: Path) -> None:
        self.name = name
        self._process = subprocess.Popen(  # noqa: S603
            list(argv),
            cwd=cwd,
            stdin=subprocess.PIPE,
            text=True,
        )

    def send_command(self, command_line: str) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.closed or not self.is_alive():
            raise SpawnError(f"Session '{self.name}' is closed.")
        try:
            stdin.write(command_line + "\n")
            stdin.flush()
        except (BrokenPipeError, ValueError) as error:
            raise SpawnError(f"Session '{self.name}' is closed.") from error

    def is_alive(self) -> bool:
        return self._process.poll() is None

    def show(self) -> None:
        click.secho(f"── {self.name} ──", err=True, bold=True)

    def close(self, *, timeout: float | None = None) -> None:
        stdin = self._process.stdin
        if stdin is not None and not stdin.closed:
            try:
                stdin.close()
            except BrokenPipeError:
                pass
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            _terminate_process(self._process)


class ShellSessionFactory:
    """Start ``ShellSession`` objects using the configured or platform shell."""

    def __init__(self, *, os_name: str | None = None) -> None:
        self._os_name = os_name or os.name

    def create(self, *, name: str, cwd: Path, shell_path: str | None) -> ShellSession:
        executable = shell_path or _platform_shell(self._os_name)
        try:
            return ShellSession(name=name, argv=[executable], cwd=cwd)
        except FileNotFoundError as error:
            raise SpawnError(f"Shell not found: {executable}") from error
        except OSError as error:
            raise SpawnError(f"Failed to start shell {executable}: {error}") from error


class SessionManager:
    """Registry of named sessions; dead entries are replaced lazily on the next lookup."""

    def __init__(
        self,
        factory: SessionFactory,
        *,
        cwd: Path,
        shell: Sequence[str] = (),
        os_name: str | None = None,
    ) -> None:
        self._factory = factory
        self._cwd = cwd
        self.shell = tuple(shell)
        self._os_name = os_name or os.name
        self._sessions: dict[str, Session] = {}
        self._displaced: list[Session] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, name: str) -> Session | None:
        return self._sessions.get(name)

    def resolve_or_create(self, name: str, reuse_allowed: bool) -> Session:
        """Return a live session registered under ``name``, creating one when needed."""

        with self._lock:
            existing = self._sessions.get(name)
            if existing is not None and existing.is_alive():
                if reuse_allowed:
                    logger.info("Reusing session: %s", name)
                    return existing
                # Still running queued commands; close_all() waits for it later.
                self._displaced.append(existing)
            elif existing is not None:
                logger.warning("Session '%s' had exited. Creating a new one.", name)

            session = self._factory.create(
                name=name,
                cwd=self._cwd,
                shell_path=self.shell[0] if self.shell else None,
            )
            self._sessions[name] = session
            logger.info("Created new session: %s cwd=%s", name, self._cwd)
            return session

    def execute(
        self,
        *,
        session_name: str,
        command: str,
        args: Sequence[str],
        reuse_allowed: bool,
        show: bool = True,
    ) -> str:
        """Send ``command args...`` to the named session and return the composed line."""

        session = self.resolve_or_create(session_name, reuse_allowed)
        if show:
            session.show()
        command_line = compose_shell_command(
            self.shell,
            command,
            args,
            os_name=self._os_name,
        )
        session.send_command(command_line)
        logger.info("Executing command in session '%s': %s", session_name, command_line)
        return command_line

    def close_all(self, *, timeout: float | None = None) -> None:
        with self._lock:
            sessions = [*self._sessions.values(), *self._displaced]
            self._sessions.clear()
            self._displaced.clear()
        for session in sessions:
            if session.is_alive():
                session.close(timeout=timeout)


def resolve_shell_command(
    *,
    shell: Sequence[str] = (),
    windows_shell: Sequence[str] = (),
    os_name: str | None = None,
) -> tuple[str, ...]:
    """Pick the shell invocation prefix for the current platform, honoring overrides."""

    if (os_name or os.name) == "nt":
        if windows_shell:
            logger.info("Using custom Windows shell: %s", " ".join(windows_shell))
            return tuple(windows_shell)
        logger.info("Using default Windows shell (powershell.exe)")
        return WINDOWS_DEFAULT_SHELL

    if shell:
        logger.info("Using custom shell: %s", " ".join(shell))
        return tuple(shell)
    logger.info("Using default shell (bash)")
    return POSIX_DEFAULT_SHELL


def compose_shell_command(
    shell: Sequence[str],
    command: str,
    args: Sequence[str],
    *,
    os_name: str | None = None,
) -> str:
    """Quote ``command args...`` for the shell dialect and prefix the shell invocation."""

    if (os_name or os.name) == "nt":
        inner = subprocess.list2cmdline([command, *args])
        if not shell:
            return inner
        return f'{subprocess.list2cmdline(list(shell))} "{_escape_windows_embedded_quote_value(inner)}"'

    inner = shlex.join([command, *args])
    if not shell:
        return inner
    return shlex.join([*shell, inner])


def _platform_shell(os_name: str) -> str:
    if os_name == "nt":
        return os.environ.get("COMSPEC", "cmd.exe")
    return os.environ.get("SHELL", "/bin/sh")


def _escape_windows_embedded_quote_value(value: str) -> str:
    return value.replace('"', '\\"')


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)
