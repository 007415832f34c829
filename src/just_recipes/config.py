"""Runtime configuration for recipe discovery and dispatch."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

LOG_LEVELS = ("debug", "info", "warning", "error", "none")


@dataclass(slots=True)
class Settings:
    """Recipe runner settings."""

    just_path: str = "just"
    workspace_root: Path = field(default_factory=Path.cwd)
    shell: tuple[str, ...] = ()
    windows_shell: tuple[str, ...] = ()
    run_in_terminal: bool = False
    reuse_terminal: bool = True
    discovery_timeout_seconds: float = 10.0
    log_level: str = "warning"

    @classmethod
    def from_env(cls, workspace_root: Path | None = None) -> Settings:
        """Load settings from environment with defaults suitable for a local checkout."""

        return cls(
            just_path=os.getenv("JUST_RECIPES_JUST_PATH", "just").strip(),
            workspace_root=workspace_root
            or Path(os.getenv("JUST_RECIPES_WORKSPACE_ROOT", "") or Path.cwd()),
            shell=_env_command("JUST_RECIPES_SHELL", posix=True),
            windows_shell=_env_command("JUST_RECIPES_WINDOWS_SHELL", posix=False),
            run_in_terminal=_env_bool("JUST_RECIPES_RUN_IN_TERMINAL", default=False),
            reuse_terminal=_env_bool("JUST_RECIPES_REUSE_TERMINAL", default=True),
            discovery_timeout_seconds=float(
                os.getenv("JUST_RECIPES_DISCOVERY_TIMEOUT_SECONDS", "10"),
            ),
            log_level=os.getenv("JUST_RECIPES_LOG_LEVEL", "warning").strip().lower(),
        )

    def validate(self) -> None:
        """Raise configuration error for values that cannot drive a dispatch."""

        if not self.just_path:
            raise ValueError("JUST_RECIPES_JUST_PATH must not be empty.")
        if self.discovery_timeout_seconds <= 0:
            raise ValueError("JUST_RECIPES_DISCOVERY_TIMEOUT_SECONDS must be > 0.")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid JUST_RECIPES_LOG_LEVEL: {self.log_level!r}. "
                f"Expected one of: {', '.join(LOG_LEVELS)}.",
            )


def _env_command(name: str, *, posix: bool) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return ()
    try:
        return tuple(shlex.split(raw, posix=posix))
    except ValueError as error:
        raise ValueError(f"Invalid shell command for {name}: {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
