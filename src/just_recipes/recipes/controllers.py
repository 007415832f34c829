"""Controllers for recipe CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, TypeVar

from just_recipes.config import Settings
from just_recipes.recipes.catalog import RecipeCatalog, format_parameters
from just_recipes.recipes.console import ConsoleUi
from just_recipes.recipes.discovery import JustDumpDiscovery, RecipeDiscovery
from just_recipes.recipes.dispatcher import ExecutionDispatcher
from just_recipes.recipes.models import ExecutionOutcome, ExecutionStatus
from just_recipes.recipes.parameters import ParameterNegotiator, parse_assignments
from just_recipes.recipes.sessions import (
    SessionFactory,
    SessionManager,
    ShellSessionFactory,
    resolve_shell_command,
)
from just_recipes.recipes.ui import RecipeUi

T = TypeVar("T")


@dataclass(slots=True)
class RecipeListCommand:
    """CLI input for recipe listing."""

    workspace_root: Path | None
    include_private: bool


@dataclass(slots=True)
class RecipeRunCommand:
    """CLI input for running one recipe, picked interactively or by name."""

    workspace_root: Path | None
    recipe_name: str | None
    params: str | None
    run_in_terminal: bool | None
    reuse_terminal: bool | None
    browse: bool = False


@dataclass(slots=True)
class RecipeRunResult:
    """Run report to render in CLI."""

    lines: list[str]
    success: bool


@dataclass(slots=True)
class RecipeRuntime:
    """Wired collaborators for one CLI process."""

    settings: Settings
    ui: RecipeUi
    catalog: RecipeCatalog
    negotiator: ParameterNegotiator
    sessions: SessionManager
    dispatcher: ExecutionDispatcher


def build_runtime(
    settings: Settings,
    *,
    ui: RecipeUi | None = None,
    discovery: RecipeDiscovery | None = None,
    session_factory: SessionFactory | None = None,
) -> RecipeRuntime:
    """Create the catalog, negotiator, session registry and dispatcher once."""

    ui = ui or ConsoleUi()
    catalog = RecipeCatalog(
        discovery
        or JustDumpDiscovery(
            just_path=settings.just_path,
            workspace_root=settings.workspace_root,
            timeout_seconds=settings.discovery_timeout_seconds,
        ),
    )
    negotiator = ParameterNegotiator(ui)
    sessions = SessionManager(
        session_factory or ShellSessionFactory(),
        cwd=settings.workspace_root,
        shell=resolve_shell_command(shell=settings.shell, windows_shell=settings.windows_shell),
    )
    dispatcher = ExecutionDispatcher(
        catalog=catalog,
        negotiator=negotiator,
        sessions=sessions,
        ui=ui,
        just_path=settings.just_path,
        workspace_root=settings.workspace_root,
        run_in_terminal=settings.run_in_terminal,
        reuse_terminal=settings.reuse_terminal,
    )
    return RecipeRuntime(
        settings=settings,
        ui=ui,
        catalog=catalog,
        negotiator=negotiator,
        sessions=sessions,
        dispatcher=dispatcher,
    )


class RecipeCliController:
    """Coordinates listing and running recipes for the CLI."""

    def list_recipes(self, command: RecipeListCommand) -> list[str]:
        settings = _load_settings(command.workspace_root)
        runtime = build_runtime(settings)
        grouped = run_coroutine(
            runtime.catalog.get_recipes_by_group(include_private=command.include_private),
        )
        if not any(grouped.values()):
            return ["No recipes found."]

        lines: list[str] = []
        for group in sorted(grouped):
            recipes = grouped[group]
            if not recipes:
                continue
            lines.append(f"[{group}]" if group else "Recipes:")
            for recipe in sorted(recipes, key=lambda item: item.name):
                line = f"    {recipe.name}"
                if recipe.parameters:
                    line += f" {format_parameters(recipe.parameters)}"
                if recipe.private:
                    line += " (private)"
                if recipe.doc:
                    line += f"  # {recipe.doc}"
                lines.append(line)
        return lines

    def run(self, command: RecipeRunCommand) -> RecipeRunResult:
        settings = _load_settings(command.workspace_root)
        if command.run_in_terminal is not None:
            settings = replace(settings, run_in_terminal=command.run_in_terminal)
        if command.reuse_terminal is not None:
            settings = replace(settings, reuse_terminal=command.reuse_terminal)

        runtime = build_runtime(settings)
        preset = parse_assignments(command.params) if command.params else None
        try:
            if command.recipe_name:
                outcome = run_coroutine(
                    runtime.dispatcher.run_recipe_by_name(command.recipe_name, preset),
                )
            elif command.browse:
                outcome = run_coroutine(runtime.dispatcher.show_recipe_browser(preset))
            else:
                outcome = run_coroutine(runtime.dispatcher.run_recipe_command(preset))
        finally:
            runtime.sessions.close_all()

        return RecipeRunResult(lines=render_outcome(outcome), success=not outcome.is_failure)


def run_coroutine(coroutine: Coroutine[Any, Any, T]) -> T:
    """Run ``coroutine`` on a fresh event loop that leaves SIGINT to Python's default handler.

    Ctrl-C at a blocking prompt then raises inside click, which reports it as
    ``Abort`` and the prompt returns a cancel answer.
    """

    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coroutine)
    finally:
        try:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            asyncio.set_event_loop(None)
            loop.close()


def render_outcome(outcome: ExecutionOutcome) -> list[str]:
    name = outcome.recipe_name
    if outcome.status == ExecutionStatus.CANCELLED:
        return ["Cancelled."]
    if outcome.status == ExecutionStatus.SUCCESS and outcome.attached:
        return [f"Sent to session 'Just: {name}': {outcome.message}"]
    if outcome.status == ExecutionStatus.SUCCESS:
        return [f"Recipe '{name}' completed successfully."]
    if outcome.status == ExecutionStatus.RUNTIME_FAILURE:
        return [f"Recipe '{name}' failed with exit code {outcome.exit_code}."]
    if outcome.status == ExecutionStatus.VALIDATION_FAILED:
        return [f"Recipe '{name}' was not run:", *(f"  {error}" for error in outcome.errors)]
    return [outcome.message or f"Recipe '{name}' was not run."]


def _load_settings(workspace_root: Path | None) -> Settings:
    settings = Settings.from_env(workspace_root=workspace_root)
    settings.validate()
    return settings
