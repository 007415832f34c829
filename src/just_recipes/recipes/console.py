"""Terminal implementation of the interactive collaborators."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

import rich_click as click

from just_recipes.recipes.ui import InputValidator, PickItem

T = TypeVar("T")


class ConsoleOutputSink:
    """Echo streamed output to stdout and keep a transcript."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._chunks: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    def append(self, text: str) -> None:
        self._chunks.append(text)
        click.echo(text, nl=False)

    def append_line(self, text: str) -> None:
        self.append(text + "\n")

    def show(self) -> None:
        click.secho(f"── {self.name} ──", bold=True)


class ConsoleUi:
    """Prompt on the terminal; Ctrl-C / Ctrl-D at any prompt counts as cancel.

    Prompts block the calling thread, so run the coroutines on the main thread
    with `run_coroutine`, which leaves SIGINT to Python's default handler.
    """

    def __init__(self) -> None:
        self.outputs: list[ConsoleOutputSink] = []

    async def pick(self, items: Sequence[PickItem[T]], *, placeholder: str) -> PickItem[T] | None:
        return self._pick(items, placeholder)

    def _pick(self, items: Sequence[PickItem[T]], placeholder: str) -> PickItem[T] | None:
        choices: list[PickItem[T]] = []
        click.secho(placeholder, bold=True)
        for item in items:
            if item.separator:
                click.secho(item.label, fg="cyan")
                continue
            choices.append(item)
            line = f"  {len(choices):>3}. {item.label}"
            if item.description:
                line += f"  {click.style(item.description, dim=True)}"
            click.echo(line)
            if item.detail:
                click.echo(f"       {click.style(item.detail, dim=True)}")
        if not choices:
            return None

        try:
            index = click.prompt(
                "Recipe number (0 to cancel)",
                type=click.IntRange(0, len(choices)),
                default=0,
                show_default=False,
            )
        except click.Abort:
            return None
        if index == 0:
            return None
        return choices[index - 1]

    async def input_text(
        self,
        *,
        prompt: str,
        placeholder: str = "",
        value: str = "",
        validate: InputValidator | None = None,
    ) -> str | None:
        return self._input_text(prompt, placeholder, value, validate)

    def _input_text(
        self,
        prompt: str,
        placeholder: str,
        value: str,
        validate: InputValidator | None,
    ) -> str | None:
        if placeholder:
            click.secho(placeholder, dim=True)
        while True:
            try:
                text = click.prompt(
                    prompt,
                    default=value,
                    show_default=bool(value),
                    prompt_suffix=" ",
                )
            except click.Abort:
                return None
            message = validate(text) if validate is not None else None
            if message is None:
                return text
            click.secho(message, fg="red", err=True)

    async def confirm(
        self,
        message: str,
        *,
        confirm_label: str = "Yes",
        cancel_label: str = "No",
        modal: bool = False,
    ) -> bool:
        return self._confirm(message, confirm_label, cancel_label)

    def _confirm(self, message: str, confirm_label: str, cancel_label: str) -> bool:
        click.echo(message)
        try:
            return click.confirm(f"{confirm_label}? (no = {cancel_label})", default=False)
        except click.Abort:
            return False

    def create_output(self, name: str) -> ConsoleOutputSink:
        sink = ConsoleOutputSink(name)
        self.outputs.append(sink)
        return sink

    def show_info(self, message: str) -> None:
        click.echo(message)

    def show_error(self, message: str) -> None:
        click.secho(message, fg="red", err=True)
