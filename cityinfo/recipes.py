from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, asdict
from typing import Dict, List, Any

from cityinfo.errors import ValidationError

logger = logging.getLogger(__name__)

CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 2000


@dataclass(frozen=True)
class Recipe:
    id: int
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RecipeStore:
    """In-memory recipes, keyed by city identifier.

    Identifiers come from one counter shared by every city and are never
    reused, even after a delete. Nothing survives a restart.
    """

    def __init__(self) -> None:
        self._by_city: Dict[str, List[Recipe]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, city_id: str, content: str) -> Recipe:
        with self._lock:
            recipe = Recipe(id=next(self._ids), content=content)
            self._by_city.setdefault(city_id, []).append(recipe)
        logger.info("Recipe created", extra={"city_id": city_id, "recipe_id": recipe.id})
        return recipe

    def list(self, city_id: str) -> List[Recipe]:
        with self._lock:
            return list(self._by_city.get(city_id, []))

    def delete(self, city_id: str, recipe_id: int) -> bool:
        with self._lock:
            recipes = self._by_city.get(city_id)
            if recipes is None:
                logger.debug("No recipes for city", extra={"city_id": city_id, "recipe_id": recipe_id})
                return False
            for i, recipe in enumerate(recipes):
                if recipe.id == recipe_id:
                    del recipes[i]
                    break
            else:
                logger.debug("Recipe id not in city", extra={"city_id": city_id, "recipe_id": recipe_id})
                return False
        logger.info("Recipe deleted", extra={"city_id": city_id, "recipe_id": recipe_id})
        return True


def validate_content(content: Any) -> str:
    """Check a submitted recipe body; raise ValidationError with the first rule it breaks."""
    if not isinstance(content, str):
        raise ValidationError("content required.")
    if len(content) < CONTENT_MIN_LENGTH:
        raise ValidationError("content too short.")
    if len(content) > CONTENT_MAX_LENGTH:
        raise ValidationError("content too long.")
    return content
