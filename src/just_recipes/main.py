"""CLI entrypoint for just-recipes."""

import logging
import os
from pathlib import Path

import rich_click as click

from just_recipes import __version__
from just_recipes.config import LOG_LEVELS
from just_recipes.recipes.controllers import (
    RecipeCliController,
    RecipeListCommand,
    RecipeRunCommand,
    RecipeRunResult,
)

click.rich_click.USE_MARKDOWN = True
RECIPE_CONTROLLER = RecipeCliController()

_workspace_option = click.option(
    "--workspace",
    "workspace_root",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Directory holding the justfile. Defaults to JUST_RECIPES_WORKSPACE_ROOT or cwd.",
)
_params_option = click.option(
    "--params",
    default=None,
    help="Pre-answered parameters as `name=value` pairs, for example `env=prod tag=v1`.",
)
_terminal_option = click.option(
    "--terminal/--background",
    "run_in_terminal",
    default=None,
    help="Run attached in a persistent shell session, or detached with captured output.",
)
_reuse_option = click.option(
    "--reuse/--no-reuse",
    "reuse_terminal",
    default=None,
    help="Reuse a live session with the same name in attached mode.",
)


@click.group()
@click.version_option(version=__version__, prog_name="just-recipes")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Diagnostics verbosity. Defaults to JUST_RECIPES_LOG_LEVEL or `warning`.",
)
def just_recipes(log_level: str | None) -> None:
    """Browse and run recipes declared in a justfile."""

    _configure_logging(log_level or os.getenv("JUST_RECIPES_LOG_LEVEL", "warning"))


@just_recipes.command("list")
@_workspace_option
@click.option(
    "--all/--public",
    "include_private",
    default=False,
    show_default=True,
    help="Include private recipes.",
)
def list_recipes(workspace_root: Path | None, include_private: bool) -> None:
    """List recipes grouped by their `group` attribute."""

    try:
        lines = RECIPE_CONTROLLER.list_recipes(
            RecipeListCommand(workspace_root=workspace_root, include_private=include_private),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@just_recipes.command("run")
@click.argument("recipe_name", required=False)
@_params_option
@_terminal_option
@_reuse_option
@_workspace_option
def run_recipe(
    recipe_name: str | None,
    params: str | None,
    run_in_terminal: bool | None,
    reuse_terminal: bool | None,
    workspace_root: Path | None,
) -> None:
    """Run a recipe by name, or pick one interactively when no name is given."""

    _emit_result(
        RecipeRunCommand(
            workspace_root=workspace_root,
            recipe_name=recipe_name,
            params=params,
            run_in_terminal=run_in_terminal,
            reuse_terminal=reuse_terminal,
        ),
    )


@just_recipes.command("browse")
@_params_option
@_terminal_option
@_reuse_option
@_workspace_option
def browse_recipes(
    params: str | None,
    run_in_terminal: bool | None,
    reuse_terminal: bool | None,
    workspace_root: Path | None,
) -> None:
    """Pick a recipe from a grouped listing and run it."""

    _emit_result(
        RecipeRunCommand(
            workspace_root=workspace_root,
            recipe_name=None,
            params=params,
            run_in_terminal=run_in_terminal,
            reuse_terminal=reuse_terminal,
            browse=True,
        ),
    )


def _emit_result(command: RecipeRunCommand) -> None:
    try:
        result: RecipeRunResult = RECIPE_CONTROLLER.run(command)
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Recipe run failed.")


def _configure_logging(level: str) -> None:
    normalized = level.strip().lower()
    if normalized == "none":
        logging.disable(logging.CRITICAL)
        return
    logging.disable(logging.NOTSET)
    logging.basicConfig(
        level=getattr(logging, normalized.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    just_recipes()
