"""Shared test fixtures."""

from __future__ import annotations

import json
import stat
import sys
from collections.abc import Sequence
from pathlib import Path

import pytest

from just_recipes.recipes.discovery import DiscoveryError
from just_recipes.recipes.ui import InputValidator, PickItem

SAMPLE_DUMP = {
    "recipes": {
        "build": {
            "name": "build",
            "doc": "Build the project",
            "parameters": [
                {"name": "target", "kind": "singular", "default": "debug"},
                {"name": "flags", "kind": "plus", "default": None},
            ],
            "attributes": [{"group": "dev"}],
            "private": False,
        },
        "deploy": {
            "name": "deploy",
            "doc": "Deploy",
            "parameters": [{"name": "env", "kind": "singular", "default": None}],
            "attributes": [{"confirm": "Deploy to prod?"}, {"group": "ops"}],
            "private": False,
        },
        "lint": {
            "name": "lint",
            "doc": None,
            "parameters": [],
            "attributes": [],
            "private": False,
        },
        "fail": {
            "name": "fail",
            "doc": "Always fails",
            "parameters": [],
            "attributes": [],
            "private": False,
        },
        "_setup": {
            "name": "_setup",
            "doc": "Internal helper",
            "parameters": [],
            "attributes": [],
            "private": True,
        },
    },
}

_FAKE_JUST_SOURCE = """\
import pathlib
import sys

args = sys.argv[1:]
if args[:1] == ["--dump"]:
    sys.stdout.write(pathlib.Path(__file__).with_name("dump.json").read_text())
    sys.exit(0)
sys.stdout.write("ran " + " ".join(args) + "\\n")
sys.stdout.flush()
if args[:1] == ["fail"]:
    sys.stderr.write("boom\\n")
    sys.exit(3)
"""


class FakeDiscovery:
    """In-memory discovery collaborator counting its invocations."""

    def __init__(self, payload: str) -> None:
        self.payload = payload
        self.error: str | None = None
        self.calls = 0

    async def dump(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise DiscoveryError(self.error)
        return self.payload


class RecordingSink:
    def __init__(self, name: str) -> None:
        self.name = name
        self.chunks: list[str] = []
        self.shown = False

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    def append(self, text: str) -> None:
        self.chunks.append(text)

    def append_line(self, text: str) -> None:
        self.chunks.append(text + "\n")

    def show(self) -> None:
        self.shown = True


class ScriptedUi:
    """UI collaborator answering from pre-loaded queues.

    ``picks`` holds labels (or ``None`` to cancel), ``inputs`` holds text
    answers (or ``None``), ``confirms`` holds booleans.
    """

    def __init__(self) -> None:
        self.picks: list[str | None] = []
        self.inputs: list[str | None] = []
        self.confirms: list[bool] = []
        self.picked_from: list[list[str]] = []
        self.pick_items: list[list[PickItem]] = []
        self.prompts: list[str] = []
        self.rejections: list[str] = []
        self.confirm_messages: list[str] = []
        self.outputs: list[RecordingSink] = []
        self.infos: list[str] = []
        self.errors: list[str] = []

    async def pick(self, items: Sequence[PickItem], *, placeholder: str) -> PickItem | None:
        self.pick_items.append(list(items))
        selectable = [item for item in items if not item.separator]
        self.picked_from.append([item.label for item in selectable])
        label = self.picks.pop(0)
        if label is None:
            return None
        return next(item for item in selectable if item.label == label)

    async def input_text(
        self,
        *,
        prompt: str,
        placeholder: str = "",
        value: str = "",
        validate: InputValidator | None = None,
    ) -> str | None:
        self.prompts.append(prompt)
        while True:
            answer = self.inputs.pop(0)
            if answer is None:
                return None
            message = validate(answer) if validate is not None else None
            if message is None:
                return answer
            self.rejections.append(message)

    async def confirm(
        self,
        message: str,
        *,
        confirm_label: str = "Yes",
        cancel_label: str = "No",
        modal: bool = False,
    ) -> bool:
        self.confirm_messages.append(message)
        return self.confirms.pop(0)

    def create_output(self, name: str) -> RecordingSink:
        sink = RecordingSink(name)
        self.outputs.append(sink)
        return sink

    def show_info(self, message: str) -> None:
        self.infos.append(message)

    def show_error(self, message: str) -> None:
        self.errors.append(message)


class FakeSession:
    def __init__(self, name: str) -> None:
        self.name = name
        self.alive = True
        self.commands: list[str] = []
        self.shown = 0

    def send_command(self, command_line: str) -> None:
        self.commands.append(command_line)

    def is_alive(self) -> bool:
        return self.alive

    def show(self) -> None:
        self.shown += 1

    def close(self, *, timeout: float | None = None) -> None:
        self.alive = False


class FakeSessionFactory:
    def __init__(self) -> None:
        self.created: list[FakeSession] = []
        self.shell_paths: list[str | None] = []

    def create(self, *, name: str, cwd: Path, shell_path: str | None) -> FakeSession:
        session = FakeSession(name)
        self.created.append(session)
        self.shell_paths.append(shell_path)
        return session


@pytest.fixture()
def discovery() -> FakeDiscovery:
    return FakeDiscovery(json.dumps(SAMPLE_DUMP))


@pytest.fixture()
def ui() -> ScriptedUi:
    return ScriptedUi()


@pytest.fixture()
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture()
def fake_just(tmp_path: Path) -> Path:
    """Executable stand-in for `just` that dumps SAMPLE_DUMP and echoes its arguments."""

    (tmp_path / "dump.json").write_text(json.dumps(SAMPLE_DUMP), "utf-8")
    script = tmp_path / "fake-just"
    script.write_text(f"#!{sys.executable}\n{_FAKE_JUST_SOURCE}", "utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
