"""Discovery collaborator: ask `just` for a machine-readable recipe dump."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DUMP_ARGS = ("--dump", "--dump-format=json")


class DiscoveryError(RuntimeError):
    """Recipe discovery failed: tool not runnable, timed out, or output unusable."""


class RecipeDiscovery(Protocol):
    """Protocol implemented by recipe dump sources."""

    async def dump(self) -> str:
        """Return the raw JSON dump text."""


class JustDumpDiscovery:
    """Run ``just --dump --dump-format=json`` in the workspace root."""

    def __init__(self, *, just_path: str, workspace_root: Path, timeout_seconds: float) -> None:
        self.just_path = just_path
        self.workspace_root = workspace_root
        self.timeout_seconds = timeout_seconds

    async def dump(self) -> str:
        logger.info(
            "Fetching recipes: command=%s %s cwd=%s",
            self.just_path,
            " ".join(DUMP_ARGS),
            self.workspace_root,
        )
        try:
            process = await asyncio.create_subprocess_exec(
                self.just_path,
                *DUMP_ARGS,
                cwd=self.workspace_root,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as error:
            raise DiscoveryError(f"Cannot start {self.just_path}: {error}") from error

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as error:
            process.kill()
            await process.wait()
            raise DiscoveryError(
                f"{self.just_path} --dump timed out after {self.timeout_seconds:g}s",
            ) from error

        stderr_text = stderr.decode("utf-8", errors="replace").strip()
        if stderr_text:
            logger.warning("Recipe dump produced stderr output: %s", stderr_text)
        if process.returncode != 0:
            raise DiscoveryError(
                f"{self.just_path} --dump exited with code {process.returncode}"
                + (f": {stderr_text}" if stderr_text else ""),
            )
        return stdout.decode("utf-8", errors="replace")
