"""Detached subprocess execution with incremental output."""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

_READ_SIZE = 4096


class SpawnError(RuntimeError):
    """The executable could not be started at all."""


class ProcessRun:
    """A started process: one pass over its output chunks, then one exit code.

    stdout and stderr are merged; chunks are decoded text of arbitrary length
    and do not follow line boundaries.
    """

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self._consumed = False

    @property
    def pid(self) -> int:
        return self._process.pid

    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("process output can only be consumed once")
        self._consumed = True
        return self._read_chunks()

    async def _read_chunks(self) -> AsyncIterator[str]:
        stream = self._process.stdout
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(_READ_SIZE)
            if not data:
                break
            text = decoder.decode(data)
            if text:
                yield text
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail

    async def wait(self) -> int:
        return await self._process.wait()


async def spawn_process(argv: Sequence[str], *, cwd: Path) -> ProcessRun:
    """Start ``argv`` in ``cwd`` with the inherited environment."""

    if not argv:
        raise SpawnError("Empty command.")
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as error:
        raise SpawnError(f"Command not found: {argv[0]}") from error
    except OSError as error:
        raise SpawnError(f"Failed to start {argv[0]}: {error}") from error
    logger.debug("Spawned pid=%s argv=%s", process.pid, list(argv))
    return ProcessRun(process)
