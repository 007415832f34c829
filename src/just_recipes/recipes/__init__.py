"""Recipe discovery, parameter negotiation and dispatch."""

from just_recipes.recipes.catalog import RecipeCatalog
from just_recipes.recipes.discovery import DiscoveryError, JustDumpDiscovery
from just_recipes.recipes.dispatcher import DispatchState, ExecutionDispatcher
from just_recipes.recipes.models import (
    ExecutionOutcome,
    ExecutionStatus,
    ParameterInput,
    ParameterKind,
    Recipe,
    RecipeParameter,
)
from just_recipes.recipes.parameters import ParameterNegotiator
from just_recipes.recipes.process import SpawnError
from just_recipes.recipes.sessions import SessionManager

__all__ = [
    "DiscoveryError",
    "DispatchState",
    "ExecutionDispatcher",
    "ExecutionOutcome",
    "ExecutionStatus",
    "JustDumpDiscovery",
    "ParameterInput",
    "ParameterKind",
    "ParameterNegotiator",
    "Recipe",
    "RecipeCatalog",
    "RecipeParameter",
    "SessionManager",
    "SpawnError",
]
