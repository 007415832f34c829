"""Domain models for recipe discovery, parameter negotiation and dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_CONFIRMATION_PROMPT = "Continue?"


class ParameterKind(str, Enum):
    """How many values a recipe parameter accepts."""

    SINGULAR = "singular"
    PLUS = "plus"
    STAR = "star"

    @property
    def prefix(self) -> str:
        return {"plus": "+", "star": "*"}.get(self.value, "")


@dataclass(frozen=True, slots=True)
class RecipeParameter:
    """One declared recipe parameter; ``default is None`` means required."""

    name: str
    kind: ParameterKind
    default: str | None = None

    @property
    def is_required(self) -> bool:
        return self.default is None and self.kind != ParameterKind.STAR

    @property
    def is_variadic(self) -> bool:
        return self.kind != ParameterKind.SINGULAR


@dataclass(frozen=True, slots=True)
class TagAttribute:
    """Bare attribute such as ``[private]``."""

    name: str


@dataclass(frozen=True, slots=True)
class KeyValueAttribute:
    """Single-key attribute such as ``[group('ci')]``."""

    name: str
    value: str


RecipeAttribute = TagAttribute | KeyValueAttribute


@dataclass(frozen=True, slots=True)
class Recipe:
    """Normalized recipe definition from one discovery entry."""

    name: str
    doc: str
    parameters: tuple[RecipeParameter, ...]
    groups: tuple[str, ...]
    private: bool
    confirmation: str | None
    attributes: tuple[RecipeAttribute, ...] = ()


@dataclass(slots=True)
class ParameterInput:
    """User-supplied value for one parameter during a single negotiation."""

    name: str
    kind: ParameterKind
    value: str | tuple[str, ...]

    def has_value(self) -> bool:
        if isinstance(self.value, tuple):
            return any(item.strip() for item in self.value)
        return bool(self.value.strip())


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Recipes captured by one successful discovery call."""

    recipes: tuple[Recipe, ...]
    captured_at: float


class ExecutionStatus(str, Enum):
    """Terminal result of one dispatch pipeline run."""

    SUCCESS = "success"
    RUNTIME_FAILURE = "runtime_failure"
    SPAWN_ERROR = "spawn_error"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """Outcome of one dispatch, produced once and never persisted."""

    status: ExecutionStatus
    recipe_name: str | None = None
    exit_code: int | None = None
    message: str | None = None
    errors: tuple[str, ...] = ()
    attached: bool = False

    @property
    def is_failure(self) -> bool:
        return self.status not in (ExecutionStatus.SUCCESS, ExecutionStatus.CANCELLED)

    @classmethod
    def cancelled(cls, recipe_name: str | None = None) -> ExecutionOutcome:
        return cls(status=ExecutionStatus.CANCELLED, recipe_name=recipe_name)
