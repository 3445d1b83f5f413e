"""Bridge to the external recipe engine."""

from __future__ import annotations

from dataclasses import dataclass

from ralphos.backends.base import RecipeEngine
from ralphos.distro import RecipeSpec
from ralphos.errors import ExternalToolError, MissingRecipeError
from ralphos.models import SourceLayout


@dataclass(slots=True)
class RecipeBridge:
    engine: RecipeEngine

    def run(self, source: SourceLayout, recipe: RecipeSpec) -> None:
        recipe_path = source.recipe_path(recipe.filename)
        if not recipe_path.is_file():
            raise MissingRecipeError(
                f"{recipe.description} recipe not found at: {recipe_path}",
                context={"operation": "run_recipe", "path": str(recipe_path)},
            )

        result = self.engine.run(recipe_path, source.downloads)
        if not result.ok:
            raise ExternalToolError(
                f"Running recipe '{recipe_path}' ({recipe.description}) failed.",
                hint="Check the recipe output; rerun once the cause is fixed.",
                context={**result.context(), "recipe": str(recipe_path)},
            )
