"""Interfaces of the interactive collaborators used by the recipe pipeline."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")

InputValidator = Callable[[str], str | None]


@dataclass(slots=True)
class PickItem(Generic[T]):
    """One entry of a single-choice list."""

    label: str
    value: T
    description: str = ""
    detail: str = ""
    separator: bool = field(default=False, kw_only=True)


class OutputSink(Protocol):
    """Append-only output target for detached runs."""

    def append(self, text: str) -> None:
        """Append raw text without adding a newline."""

    def append_line(self, text: str) -> None:
        """Append text followed by a newline."""

    def show(self) -> None:
        """Bring the sink to the user's attention."""


class RecipeUi(Protocol):
    """Prompts and notifications; every ``None`` / ``False`` answer means the user backed out."""

    async def pick(self, items: Sequence[PickItem[T]], *, placeholder: str) -> PickItem[T] | None:
        """Let the user choose one non-separator item."""

    async def input_text(
        self,
        *,
        prompt: str,
        placeholder: str = "",
        value: str = "",
        validate: InputValidator | None = None,
    ) -> str | None:
        """Ask for free text; ``validate`` returns an error message to reject a value."""

    async def confirm(
        self,
        message: str,
        *,
        confirm_label: str = "Yes",
        cancel_label: str = "No",
        modal: bool = False,
    ) -> bool:
        """Ask a yes/no question."""

    def create_output(self, name: str) -> OutputSink:
        """Create a named output sink."""

    def show_info(self, message: str) -> None:
        """Show an informational notification."""

    def show_error(self, message: str) -> None:
        """Show an error notification."""
