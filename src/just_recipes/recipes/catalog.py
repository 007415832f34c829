"""Recipe catalog: parse discovery dumps and cache them for a short TTL."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from just_recipes.recipes.discovery import DiscoveryError, RecipeDiscovery
from just_recipes.recipes.models import (
    DEFAULT_CONFIRMATION_PROMPT,
    CatalogSnapshot,
    KeyValueAttribute,
    ParameterKind,
    Recipe,
    RecipeAttribute,
    RecipeParameter,
    TagAttribute,
)

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 5.0


class RecipeCatalog:
    """Serve recipes from the last successful discovery while it is fresh."""

    def __init__(
        self,
        discovery: RecipeDiscovery,
        *,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._discovery = discovery
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: CatalogSnapshot | None = None
        self._lock = asyncio.Lock()

    async def get_recipes(self, force_refresh: bool = False) -> tuple[Recipe, ...]:
        async with self._lock:
            now = self._clock()
            snapshot = self._snapshot
            if (
                not force_refresh
                and snapshot is not None
                and now - snapshot.captured_at < self._ttl_seconds
            ):
                return snapshot.recipes

            try:
                recipes = parse_dump(await self._discovery.dump())
            except DiscoveryError as error:
                logger.error("Failed to get recipes: %s", error)
                return ()

            self._snapshot = CatalogSnapshot(recipes=recipes, captured_at=now)
            logger.info("Found %d recipes", len(recipes))
            return recipes

    async def get_public_recipes(self, force_refresh: bool = False) -> list[Recipe]:
        return [
            recipe
            for recipe in await self.get_recipes(force_refresh=force_refresh)
            if not recipe.private
        ]

    async def get_recipes_by_group(
        self,
        include_private: bool = False,
        force_refresh: bool = False,
    ) -> dict[str, list[Recipe]]:
        """Bucket recipes by group; ungrouped recipes go under ``""``.

        A recipe listed in several groups lands in each of those buckets and
        never in the ungrouped one.
        """

        if include_private:
            recipes: Sequence[Recipe] = await self.get_recipes(force_refresh=force_refresh)
        else:
            recipes = await self.get_public_recipes(force_refresh=force_refresh)

        grouped: dict[str, list[Recipe]] = {"": []}
        for recipe in recipes:
            if not recipe.groups:
                grouped[""].append(recipe)
                continue
            for group in recipe.groups:
                grouped.setdefault(group, []).append(recipe)
        return grouped

    async def find_recipe(self, name: str, force_refresh: bool = False) -> Recipe | None:
        for recipe in await self.get_recipes(force_refresh=force_refresh):
            if recipe.name == name:
                return recipe
        return None

    def clear_cache(self) -> None:
        self._snapshot = None


def parse_dump(output: str) -> tuple[Recipe, ...]:
    """Parse ``just --dump --dump-format=json`` output.

    Raises ``DiscoveryError`` when the document itself is unusable; single
    malformed recipe entries are skipped with a warning.
    """

    try:
        document = json.loads(output)
    except json.JSONDecodeError as error:
        raise DiscoveryError(f"Invalid recipe dump JSON: {error}") from error

    if not isinstance(document, dict) or not isinstance(document.get("recipes"), dict):
        raise DiscoveryError("Invalid recipe dump format: missing 'recipes' mapping")

    recipes: list[Recipe] = []
    for key, entry in document["recipes"].items():
        try:
            recipes.append(parse_recipe(entry, fallback_name=key))
        except (KeyError, TypeError, ValueError) as error:
            logger.warning("Skipping malformed recipe %r: %s", key, error)
    return tuple(recipes)


def parse_recipe(entry: Mapping[str, Any], *, fallback_name: str | None = None) -> Recipe:
    if not isinstance(entry, Mapping):
        raise TypeError(f"recipe entry must be an object, got {type(entry).__name__}")

    name = entry.get("name", fallback_name)
    if not isinstance(name, str) or not name:
        raise ValueError("recipe name is missing")

    attributes = tuple(_decode_attributes(entry.get("attributes") or ()))
    return Recipe(
        name=name,
        doc=entry.get("doc") or "",
        parameters=tuple(_parse_parameter(raw) for raw in entry.get("parameters") or ()),
        groups=extract_groups(attributes),
        private=bool(entry.get("private")) or _is_private_from_attributes(attributes),
        confirmation=extract_confirmation(attributes),
        attributes=attributes,
    )


def extract_groups(attributes: Sequence[RecipeAttribute]) -> tuple[str, ...]:
    # Duplicates are kept as the tool reports them.
    return tuple(
        attribute.value
        for attribute in attributes
        if isinstance(attribute, KeyValueAttribute) and attribute.name == "group" and attribute.value
    )


def extract_confirmation(attributes: Sequence[RecipeAttribute]) -> str | None:
    for attribute in attributes:
        if isinstance(attribute, KeyValueAttribute) and attribute.name == "confirm":
            return attribute.value or DEFAULT_CONFIRMATION_PROMPT
    return None


def format_parameters(parameters: Sequence[RecipeParameter]) -> str:
    """Render a compact ``+name=default`` listing, variadic parameters last."""

    return " ".join(
        f"{parameter.kind.prefix}{parameter.name}"
        + (f"={parameter.default}" if parameter.default is not None else "")
        for parameter in display_order(parameters)
    )


def display_order(parameters: Sequence[RecipeParameter]) -> list[RecipeParameter]:
    return sorted(
        parameters,
        key=lambda parameter: (parameter.is_variadic, "" if parameter.is_variadic else parameter.name),
    )


def _is_private_from_attributes(attributes: Sequence[RecipeAttribute]) -> bool:
    return any(attribute.name == "private" for attribute in attributes)


def _decode_attributes(raw_attributes: Sequence[Any]) -> list[RecipeAttribute]:
    decoded: list[RecipeAttribute] = []
    for raw in raw_attributes:
        if isinstance(raw, str):
            decoded.append(TagAttribute(name=raw))
        elif isinstance(raw, Mapping):
            for name, value in raw.items():
                decoded.append(KeyValueAttribute(name=str(name), value=_attribute_value(value)))
        else:
            logger.warning("Ignoring unsupported recipe attribute: %r", raw)
    return decoded


def _attribute_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _parse_parameter(raw: Mapping[str, Any]) -> RecipeParameter:
    if not isinstance(raw, Mapping) or not isinstance(raw.get("name"), str):
        raise TypeError(f"invalid parameter declaration: {raw!r}")
    default = raw.get("default")
    if default is not None and not isinstance(default, str):
        default = json.dumps(default)
    return RecipeParameter(
        name=raw["name"],
        kind=ParameterKind(raw.get("kind", ParameterKind.SINGULAR.value)),
        default=default,
    )
