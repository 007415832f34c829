"""Prompt for, validate and render recipe parameters."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from just_recipes.recipes.catalog import display_order
from just_recipes.recipes.models import ParameterInput, ParameterKind, Recipe, RecipeParameter
from just_recipes.recipes.ui import RecipeUi

logger = logging.getLogger(__name__)


class ParameterNegotiator:
    """Collect parameter values for one recipe and turn them into `just` arguments."""

    def __init__(self, ui: RecipeUi) -> None:
        self._ui = ui

    async def prompt_for_parameters(
        self,
        recipe: Recipe,
        preset: Mapping[str, str] | None = None,
    ) -> list[ParameterInput] | None:
        """Prompt for every declared parameter in declaration order.

        Values present in ``preset`` are taken without prompting. Preset names
        the recipe does not declare are passed through so validation can
        report them. Returns ``None`` as soon as any prompt is cancelled.
        """

        preset = dict(preset or {})
        inputs: list[ParameterInput] = []
        for parameter in recipe.parameters:
            if parameter.name in preset:
                inputs.append(_input_from_text(parameter, preset.pop(parameter.name)))
                continue
            parameter_input = await self._prompt_for_single_parameter(parameter, recipe.name)
            if parameter_input is None:
                logger.debug("Parameter prompt cancelled: recipe=%s", recipe.name)
                return None
            inputs.append(parameter_input)

        for name, value in preset.items():
            inputs.append(ParameterInput(name=name, kind=ParameterKind.SINGULAR, value=value))
        return inputs

    async def _prompt_for_single_parameter(
        self,
        parameter: RecipeParameter,
        recipe_name: str,
    ) -> ParameterInput | None:
        def require_value(value: str) -> str | None:
            if not value.strip():
                return f"Parameter '{parameter.name}' is required"
            return None

        text = await self._ui.input_text(
            prompt=build_parameter_prompt(parameter, recipe_name),
            placeholder=build_parameter_placeholder(parameter),
            value=parameter.default or "",
            validate=require_value if parameter.is_required and not parameter.is_variadic else None,
        )
        if text is None:
            return None
        return _input_from_text(parameter, text)

    async def show_parameter_summary(
        self,
        recipe_name: str,
        inputs: Sequence[ParameterInput],
    ) -> bool:
        if not inputs:
            return True
        return await self._ui.confirm(
            format_parameter_summary(recipe_name, inputs),
            confirm_label="Execute",
            cancel_label="Cancel",
            modal=True,
        )


def _input_from_text(parameter: RecipeParameter, text: str) -> ParameterInput:
    if parameter.is_variadic:
        return ParameterInput(name=parameter.name, kind=parameter.kind, value=tuple(text.split()))
    return ParameterInput(name=parameter.name, kind=parameter.kind, value=text)


def build_parameter_prompt(parameter: RecipeParameter, recipe_name: str) -> str:
    prefix = parameter.kind.prefix
    required = " (required)" if parameter.is_required else " (optional)"
    return (
        f"Recipe '{recipe_name}' - Enter value for parameter "
        f"'{prefix}{parameter.name}'{required}:"
    )


def build_parameter_placeholder(parameter: RecipeParameter) -> str:
    parts: list[str] = []
    if parameter.is_variadic:
        parts.append("Space-separated values")
    if parameter.default is not None:
        parts.append(f"Default: {parameter.default}")
    elif parameter.is_required:
        parts.append("Required parameter")
    return " • ".join(parts)


def build_command_arguments(
    recipe_name: str,
    inputs: Sequence[ParameterInput],
    *,
    declared: Sequence[RecipeParameter] | None = None,
) -> list[str]:
    """Build the positional argument vector, recipe name first.

    With ``declared`` the inputs are re-sequenced into declaration order
    before building; inputs without a declaration keep their relative order
    at the end. Blank singular values and blank variadic tokens are dropped.
    """

    ordered = list(inputs)
    if declared is not None:
        position = {parameter.name: index for index, parameter in enumerate(declared)}
        ordered.sort(key=lambda item: position.get(item.name, len(position)))

    args = [recipe_name]
    for item in ordered:
        if isinstance(item.value, tuple):
            args.extend(token for token in item.value if token.strip())
        elif item.value.strip():
            args.append(item.value)
    return args


def validate_parameters(recipe: Recipe, inputs: Sequence[ParameterInput]) -> list[str]:
    errors: list[str] = []
    by_name = {item.name: item for item in inputs}
    declared = {parameter.name for parameter in recipe.parameters}

    for parameter in recipe.parameters:
        supplied = by_name.get(parameter.name)
        if parameter.is_required and (supplied is None or not supplied.has_value()):
            errors.append(f"Required parameter '{parameter.name}' is missing or empty")

    for item in inputs:
        if item.name not in declared:
            errors.append(f"Unknown parameter '{item.name}'")
    return errors


def get_parameter_display_string(recipe: Recipe) -> str:
    """Render ``[+]name[=default][*]`` entries; ``*`` marks required parameters."""

    if not recipe.parameters:
        return "No parameters"
    return ", ".join(
        f"{parameter.kind.prefix}{parameter.name}"
        f"{f'={parameter.default}' if parameter.default is not None else ''}"
        f"{'*' if parameter.is_required else ''}"
        for parameter in display_order(recipe.parameters)
    )


def format_parameter_summary(recipe_name: str, inputs: Sequence[ParameterInput]) -> str:
    lines = []
    for item in inputs:
        prefix = item.kind.prefix
        value = " ".join(item.value) if isinstance(item.value, tuple) else item.value
        lines.append(f"  {prefix}{item.name}: {value or '(empty)'}")
    return f"Execute recipe '{recipe_name}' with parameters:\n\n" + "\n".join(lines)


def parse_assignments(text: str) -> dict[str, str]:
    """Parse whitespace-separated ``key=value`` tokens; other tokens are ignored."""

    assignments: dict[str, str] = {}
    for token in text.split():
        key, separator, value = token.partition("=")
        if separator and key:
            assignments[key] = value
    return assignments
