from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from chefscript.app.domain.models import Recipe

logger = logging.getLogger(__name__)

HISTORY_EXPIRATION_MS = 12 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class RecipeHistory:
    """
    Rolling per-user recipe history kept in one JSON file.

    Entries are keyed `recipeHistory:<user_id>` and hold recipes newest
    first. Recipes older than twelve hours are dropped whenever a user's
    history is loaded, and the file is rewritten if anything was dropped.
    """

    def __init__(
        self,
        path: str | Path,
        expiration_ms: int = HISTORY_EXPIRATION_MS,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.path = Path(path)
        self.expiration_ms = expiration_ms
        self._clock = clock or now_ms
        self._lock = threading.Lock()

    @staticmethod
    def key(user_id: str) -> str:
        return f"recipeHistory:{user_id}"

    def _read(self) -> dict[str, list[dict]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading recipe history: path=%s error=%s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, list[dict]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    def _is_fresh(self, entry: dict, now: int) -> bool:
        timestamp = entry.get("timestamp")
        return bool(timestamp) and (now - int(timestamp)) < self.expiration_ms

    def _load_locked(self, data: dict[str, list[dict]], user_id: str) -> list[Recipe]:
        """Fresh recipes for the user; prunes and rewrites the file. Caller holds the lock."""
        entries = data.get(self.key(user_id)) or []
        now = self._clock()
        fresh = [entry for entry in entries if isinstance(entry, dict) and self._is_fresh(entry, now)]
        if len(fresh) != len(entries):
            data[self.key(user_id)] = fresh
            self._write(data)
            logger.info("history.pruned user=%s removed=%d", user_id, len(entries) - len(fresh))

        recipes = []
        for entry in fresh:
            try:
                recipes.append(Recipe.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("history.skip_invalid user=%s error=%s", user_id, exc)
        return recipes

    def load(self, user_id: str) -> list[Recipe]:
        with self._lock:
            return self._load_locked(self._read(), user_id)

    def save(self, user_id: str, recipes: Iterable[Recipe]) -> None:
        with self._lock:
            data = self._read()
            data[self.key(user_id)] = [recipe.to_dict() for recipe in recipes]
            self._write(data)

    def upsert(self, user_id: str, recipe: Recipe) -> None:
        """Replace the recipe with the same id, or put it first."""
        with self._lock:
            data = self._read()
            recipes = self._load_locked(data, user_id)
            for index, existing in enumerate(recipes):
                if existing.id == recipe.id:
                    recipes[index] = recipe
                    break
            else:
                recipes.insert(0, recipe)
            data[self.key(user_id)] = [item.to_dict() for item in recipes]
            self._write(data)

    def get(self, user_id: str, recipe_id: str) -> Optional[Recipe]:
        for recipe in self.load(user_id):
            if recipe.id == recipe_id:
                return recipe
        return None

    def clear(self, user_id: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(self.key(user_id), None) is not None:
                self._write(data)
