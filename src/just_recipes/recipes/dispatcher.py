"""Select a recipe, negotiate its parameters and dispatch it."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from just_recipes.recipes.catalog import RecipeCatalog
from just_recipes.recipes.models import ExecutionOutcome, ExecutionStatus, Recipe
from just_recipes.recipes.parameters import (
    ParameterNegotiator,
    build_command_arguments,
    get_parameter_display_string,
    validate_parameters,
)
from just_recipes.recipes.process import SpawnError, spawn_process
from just_recipes.recipes.sessions import SessionManager
from just_recipes.recipes.ui import PickItem, RecipeUi

logger = logging.getLogger(__name__)

_RULE = "─" * 50


class DispatchState(str, Enum):
    """Steps of one dispatch invocation."""

    IDLE = "idle"
    SELECTING = "selecting"
    PRIVATE_CONFIRM = "private_confirm"
    ATTRIBUTE_CONFIRM = "attribute_confirm"
    PARAMETER_COLLECTION = "parameter_collection"
    VALIDATING = "validating"
    SUMMARY_CONFIRM = "summary_confirm"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionDispatcher:
    """Drive selection, confirmation gates and parameter collection up to dispatch.

    Every step before ``DISPATCHING`` may end in ``CANCELLED`` without side
    effects. Once dispatched, the process runs to its own completion.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        catalog: RecipeCatalog,
        negotiator: ParameterNegotiator,
        sessions: SessionManager,
        ui: RecipeUi,
        just_path: str,
        workspace_root: Path,
        run_in_terminal: bool = False,
        reuse_terminal: bool = True,
    ) -> None:
        self.catalog = catalog
        self.negotiator = negotiator
        self.sessions = sessions
        self.ui = ui
        self.just_path = just_path
        self.workspace_root = workspace_root
        self.run_in_terminal = run_in_terminal
        self.reuse_terminal = reuse_terminal

    async def run_recipe_command(
        self,
        preset: Mapping[str, str] | None = None,
    ) -> ExecutionOutcome:
        """Pick any public recipe and run it."""

        _enter(DispatchState.SELECTING)
        items = await self.recipe_pick_items(include_private=False, force_refresh=True)
        if not items:
            message = "No recipes found. Make sure there is a valid Justfile in your workspace."
            self.ui.show_info(message)
            return ExecutionOutcome(status=ExecutionStatus.NOT_FOUND, message=message)

        selected = await self.ui.pick(items, placeholder="Select a recipe to run")
        if selected is None:
            return _cancelled()
        return await self.execute_recipe(selected.value, preset)

    async def run_recipe_by_name(
        self,
        name: str,
        preset: Mapping[str, str] | None = None,
    ) -> ExecutionOutcome:
        _enter(DispatchState.SELECTING, name)
        recipe = await self.catalog.find_recipe(name)
        if recipe is None:
            message = f"Recipe '{name}' not found."
            self.ui.show_error(message)
            return ExecutionOutcome(
                status=ExecutionStatus.NOT_FOUND,
                recipe_name=name,
                message=message,
            )

        if recipe.private:
            _enter(DispatchState.PRIVATE_CONFIRM, name)
            proceed = await self.ui.confirm(
                f"Recipe '{name}' is marked as private. Continue anyway?",
                confirm_label="Yes",
                cancel_label="No",
            )
            if not proceed:
                return _cancelled(name)

        return await self.execute_recipe(recipe, preset)

    async def show_recipe_browser(
        self,
        preset: Mapping[str, str] | None = None,
    ) -> ExecutionOutcome:
        """Pick from public recipes listed under their group headings."""

        _enter(DispatchState.SELECTING)
        grouped = await self.catalog.get_recipes_by_group(include_private=False, force_refresh=True)

        items: list[PickItem[Recipe]] = []
        for group in sorted(grouped):
            recipes = grouped[group]
            if not recipes:
                continue
            if group:
                items.append(PickItem(label=f"[{group}]", value=recipes[0], separator=True))
            items.extend(
                _pick_item(recipe) for recipe in sorted(recipes, key=lambda item: item.name)
            )

        if not items:
            message = "No recipes found."
            self.ui.show_info(message)
            return ExecutionOutcome(status=ExecutionStatus.NOT_FOUND, message=message)

        selected = await self.ui.pick(items, placeholder="Select a recipe to run")
        if selected is None:
            return _cancelled()
        return await self.execute_recipe(selected.value, preset)

    async def execute_recipe(
        self,
        recipe: Recipe,
        preset: Mapping[str, str] | None = None,
    ) -> ExecutionOutcome:
        if recipe.confirmation is not None:
            _enter(DispatchState.ATTRIBUTE_CONFIRM, recipe.name)
            proceed = await self.ui.confirm(
                recipe.confirmation,
                confirm_label="Continue",
                cancel_label="Cancel",
                modal=True,
            )
            if not proceed:
                return _cancelled(recipe.name)

        _enter(DispatchState.PARAMETER_COLLECTION, recipe.name)
        inputs = await self.negotiator.prompt_for_parameters(recipe, preset)
        if inputs is None:
            return _cancelled(recipe.name)

        _enter(DispatchState.VALIDATING, recipe.name)
        errors = validate_parameters(recipe, inputs)
        if errors:
            self.ui.show_error("Parameter validation failed:\n" + "\n".join(errors))
            _enter(DispatchState.FAILED, recipe.name)
            return ExecutionOutcome(
                status=ExecutionStatus.VALIDATION_FAILED,
                recipe_name=recipe.name,
                errors=tuple(errors),
            )

        if recipe.parameters:
            _enter(DispatchState.SUMMARY_CONFIRM, recipe.name)
            if not await self.negotiator.show_parameter_summary(recipe.name, inputs):
                return _cancelled(recipe.name)

        _enter(DispatchState.DISPATCHING, recipe.name)
        args = build_command_arguments(recipe.name, inputs, declared=recipe.parameters)
        logger.info("Executing: %s", shlex.join([self.just_path, *args]))
        if self.run_in_terminal:
            outcome = self._run_attached(recipe, args)
        else:
            outcome = await self._run_detached(recipe, args)
        _enter(
            DispatchState.FAILED if outcome.is_failure else DispatchState.COMPLETED,
            recipe.name,
        )
        return outcome

    async def recipe_pick_items(
        self,
        *,
        include_private: bool = False,
        force_refresh: bool = False,
    ) -> list[PickItem[Recipe]]:
        if include_private:
            recipes = list(await self.catalog.get_recipes(force_refresh=force_refresh))
        else:
            recipes = await self.catalog.get_public_recipes(force_refresh=force_refresh)
        return [_pick_item(recipe) for recipe in sorted(recipes, key=lambda recipe: recipe.name)]

    def _run_attached(self, recipe: Recipe, args: list[str]) -> ExecutionOutcome:
        session_name = f"Just: {recipe.name}"
        try:
            command_line = self.sessions.execute(
                session_name=session_name,
                command=self.just_path,
                args=args,
                reuse_allowed=self.reuse_terminal,
            )
        except SpawnError as error:
            self.ui.show_error(f"Failed to execute recipe: {error}")
            return ExecutionOutcome(
                status=ExecutionStatus.SPAWN_ERROR,
                recipe_name=recipe.name,
                message=str(error),
                attached=True,
            )
        return ExecutionOutcome(
            status=ExecutionStatus.SUCCESS,
            recipe_name=recipe.name,
            message=command_line,
            attached=True,
        )

    async def _run_detached(self, recipe: Recipe, args: list[str]) -> ExecutionOutcome:
        sink = self.ui.create_output(f"Just Recipe: {recipe.name}")
        sink.show()
        sink.append_line(f"[{_timestamp()}] Executing: {shlex.join([self.just_path, *args])}")
        sink.append_line(f"Working directory: {self.workspace_root}")
        sink.append_line(_RULE)

        try:
            run = await spawn_process([self.just_path, *args], cwd=self.workspace_root)
        except SpawnError as error:
            sink.append_line(f"[{_timestamp()}] Error: {error}")
            self.ui.show_error(f"Failed to execute recipe: {error}")
            return ExecutionOutcome(
                status=ExecutionStatus.SPAWN_ERROR,
                recipe_name=recipe.name,
                message=str(error),
            )

        async for chunk in run:
            sink.append(chunk)
        exit_code = await run.wait()

        sink.append_line(_RULE)
        if exit_code == 0:
            sink.append_line(f"[{_timestamp()}] Recipe '{recipe.name}' completed successfully.")
            return ExecutionOutcome(
                status=ExecutionStatus.SUCCESS,
                recipe_name=recipe.name,
                exit_code=0,
            )

        sink.append_line(
            f"[{_timestamp()}] Recipe '{recipe.name}' failed with exit code {exit_code}.",
        )
        self.ui.show_error(
            f"Recipe '{recipe.name}' failed with exit code {exit_code}. Check output for details.",
        )
        return ExecutionOutcome(
            status=ExecutionStatus.RUNTIME_FAILURE,
            recipe_name=recipe.name,
            exit_code=exit_code,
        )


def describe_recipe(recipe: Recipe) -> str:
    parts: list[str] = []
    if recipe.parameters:
        parts.append(f"Parameters: {get_parameter_display_string(recipe)}")
    if recipe.groups:
        parts.append(f"Groups: {', '.join(recipe.groups)}")
    return " • ".join(parts)


def _pick_item(recipe: Recipe) -> PickItem[Recipe]:
    return PickItem(
        label=f"{recipe.name} (private)" if recipe.private else recipe.name,
        value=recipe,
        description=recipe.doc or "No description",
        detail=describe_recipe(recipe),
    )


def _enter(state: DispatchState, recipe_name: str | None = None) -> None:
    logger.debug("Dispatch state -> %s recipe=%s", state.value, recipe_name)


def _cancelled(recipe_name: str | None = None) -> ExecutionOutcome:
    _enter(DispatchState.CANCELLED, recipe_name)
    return ExecutionOutcome.cancelled(recipe_name)


def _timestamp() -> str:
    return datetime.now(tz=UTC).isoformat()
