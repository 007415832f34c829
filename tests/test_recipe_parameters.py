from __future__ import annotations

import asyncio

import allure

from just_recipes.recipes.models import ParameterInput, ParameterKind, Recipe, RecipeParameter
from just_recipes.recipes.parameters import (
    ParameterNegotiator,
    build_command_arguments,
    format_parameter_summary,
    get_parameter_display_string,
    parse_assignments,
    validate_parameters,
)

pytestmark = [
    allure.epic("Recipes"),
    allure.feature("Parameter Negotiation"),
]


def _recipe(name: str, *parameters: RecipeParameter) -> Recipe:
    return Recipe(
        name=name,
        doc="",
        parameters=parameters,
        groups=(),
        private=False,
        confirmation=None,
    )


ENV = RecipeParameter(name="env", kind=ParameterKind.SINGULAR)
TARGET = RecipeParameter(name="target", kind=ParameterKind.SINGULAR, default="debug")
FLAGS = RecipeParameter(name="flags", kind=ParameterKind.PLUS)


def test_missing_required_parameter_yields_one_error() -> None:
    errors = validate_parameters(_recipe("deploy", ENV), [])

    assert len(errors) == 1
    assert "env" in errors[0]
    assert "missing" in errors[0]


def test_unknown_parameter_yields_one_error() -> None:
    errors = validate_parameters(
        _recipe("lint"),
        [ParameterInput(name="bogus", kind=ParameterKind.SINGULAR, value="1")],
    )

    assert errors == ["Unknown parameter 'bogus'"]


def test_validation_accumulates_missing_and_unknown() -> None:
    errors = validate_parameters(
        _recipe("deploy", ENV, FLAGS),
        [
            ParameterInput(name="env", kind=ParameterKind.SINGULAR, value="   "),
            ParameterInput(name="flags", kind=ParameterKind.PLUS, value=("", " ")),
            ParameterInput(name="bogus", kind=ParameterKind.SINGULAR, value="1"),
        ],
    )

    assert errors == [
        "Required parameter 'env' is missing or empty",
        "Required parameter 'flags' is missing or empty",
        "Unknown parameter 'bogus'",
    ]


def test_optional_parameter_may_be_blank() -> None:
    errors = validate_parameters(
        _recipe("build", TARGET),
        [ParameterInput(name="target", kind=ParameterKind.SINGULAR, value="")],
    )

    assert errors == []


def test_variadic_blank_tokens_are_dropped() -> None:
    args = build_command_arguments(
        "build",
        [ParameterInput(name="flags", kind=ParameterKind.PLUS, value=("--a", "", "--b"))],
    )

    assert args == ["build", "--a", "--b"]


def test_blank_singular_value_is_omitted() -> None:
    args = build_command_arguments(
        "build",
        [
            ParameterInput(name="target", kind=ParameterKind.SINGULAR, value="  "),
            ParameterInput(name="flags", kind=ParameterKind.PLUS, value=("-v",)),
        ],
    )

    assert args == ["build", "-v"]


def test_arguments_follow_declared_order_when_given() -> None:
    inputs = [
        ParameterInput(name="flags", kind=ParameterKind.PLUS, value=("-x", "-y")),
        ParameterInput(name="target", kind=ParameterKind.SINGULAR, value="release"),
    ]

    assert build_command_arguments("build", inputs) == ["build", "-x", "-y", "release"]
    assert build_command_arguments("build", inputs, declared=(TARGET, FLAGS)) == [
        "build",
        "release",
        "-x",
        "-y",
    ]


def test_display_string_marks_variadic_defaults_and_required() -> None:
    recipe = _recipe("build", FLAGS, TARGET, ENV)

    assert get_parameter_display_string(recipe) == "env*, target=debug, +flags*"
    assert get_parameter_display_string(_recipe("lint")) == "No parameters"


def test_display_sort_does_not_change_argument_order() -> None:
    recipe = _recipe("build", TARGET, ENV)
    get_parameter_display_string(recipe)
    inputs = [
        ParameterInput(name="target", kind=ParameterKind.SINGULAR, value="release"),
        ParameterInput(name="env", kind=ParameterKind.SINGULAR, value="prod"),
    ]

    assert build_command_arguments("build", inputs, declared=recipe.parameters) == [
        "build",
        "release",
        "prod",
    ]


def test_summary_renders_arrays_and_empty_values() -> None:
    summary = format_parameter_summary(
        "build",
        [
            ParameterInput(name="target", kind=ParameterKind.SINGULAR, value=""),
            ParameterInput(name="flags", kind=ParameterKind.PLUS, value=("-a", "-b")),
        ],
    )

    assert summary == (
        "Execute recipe 'build' with parameters:\n\n"
        "  target: (empty)\n"
        "  +flags: -a -b"
    )


def test_prompts_in_declaration_order_and_splits_variadic(ui) -> None:
    ui.inputs = ["release", "  --a   --b "]
    negotiator = ParameterNegotiator(ui)

    inputs = asyncio.run(negotiator.prompt_for_parameters(_recipe("build", TARGET, FLAGS)))

    assert inputs == [
        ParameterInput(name="target", kind=ParameterKind.SINGULAR, value="release"),
        ParameterInput(name="flags", kind=ParameterKind.PLUS, value=("--a", "--b")),
    ]
    assert ui.prompts == [
        "Recipe 'build' - Enter value for parameter 'target' (optional):",
        "Recipe 'build' - Enter value for parameter '+flags' (required):",
    ]


def test_required_singular_prompt_rejects_blank_answers(ui) -> None:
    ui.inputs = ["", "   ", "prod"]
    negotiator = ParameterNegotiator(ui)

    inputs = asyncio.run(negotiator.prompt_for_parameters(_recipe("deploy", ENV)))

    assert inputs == [ParameterInput(name="env", kind=ParameterKind.SINGULAR, value="prod")]
    assert ui.rejections == ["Parameter 'env' is required", "Parameter 'env' is required"]


def test_cancel_on_any_prompt_aborts_whole_sequence(ui) -> None:
    ui.inputs = ["release", None]
    negotiator = ParameterNegotiator(ui)

    assert asyncio.run(negotiator.prompt_for_parameters(_recipe("build", TARGET, FLAGS))) is None


def test_preset_values_skip_prompts_and_pass_unknown_names_through(ui) -> None:
    ui.inputs = ["-v"]
    negotiator = ParameterNegotiator(ui)

    inputs = asyncio.run(
        negotiator.prompt_for_parameters(
            _recipe("build", TARGET, FLAGS),
            preset={"target": "release", "bogus": "1"},
        ),
    )

    assert [item.name for item in inputs] == ["target", "flags", "bogus"]
    assert len(ui.prompts) == 1


def test_summary_confirmation_skipped_without_inputs(ui) -> None:
    negotiator = ParameterNegotiator(ui)

    assert asyncio.run(negotiator.show_parameter_summary("lint", [])) is True
    assert ui.confirm_messages == []

    ui.confirms = [False]
    inputs = [ParameterInput(name="env", kind=ParameterKind.SINGULAR, value="prod")]
    assert asyncio.run(negotiator.show_parameter_summary("deploy", inputs)) is False
    assert ui.confirm_messages[0].startswith("Execute recipe 'deploy' with parameters:")


def test_parse_assignments_keeps_only_key_value_tokens() -> None:
    assert parse_assignments("env=prod  tag=v1 stray =x empty=") == {
        "env": "prod",
        "tag": "v1",
        "empty": "",
    }
