from __future__ import annotations

import json
import threading

from chefscript.app.domain.models import Recipe, RecipeStatus
from chefscript.services.history import HISTORY_EXPIRATION_MS, RecipeHistory


class MutableClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def _recipe(recipe_id: str, timestamp: int, status: RecipeStatus = RecipeStatus.PENDING) -> Recipe:
    return Recipe(id=recipe_id, name=f"Recipe {recipe_id}", status=status, timestamp=timestamp)


class TestRecipeHistory:
    def test_upsert_puts_new_recipes_first(self, tmp_path) -> None:
        clock = MutableClock(1_000)
        history = RecipeHistory(tmp_path / "history.json", clock=clock)

        history.upsert("u1", _recipe("a", 1_000))
        history.upsert("u1", _recipe("b", 1_000))

        assert [recipe.id for recipe in history.load("u1")] == ["b", "a"]

    def test_upsert_replaces_in_place(self, tmp_path) -> None:
        history = RecipeHistory(tmp_path / "history.json", clock=MutableClock(1_000))
        history.upsert("u1", _recipe("a", 1_000))
        history.upsert("u1", _recipe("b", 1_000))

        done = _recipe("a", 1_000, RecipeStatus.COMPLETED)
        done.image_url = "https://img.test/a.png"
        history.upsert("u1", done)

        recipes = history.load("u1")
        assert [recipe.id for recipe in recipes] == ["b", "a"]
        assert recipes[1].status is RecipeStatus.COMPLETED
        assert history.get("u1", "a").image_url == "https://img.test/a.png"

    def test_expired_entries_are_pruned_from_disk(self, tmp_path) -> None:
        path = tmp_path / "history.json"
        clock = MutableClock(1_000)
        history = RecipeHistory(path, clock=clock)
        history.upsert("u1", _recipe("old", 1_000))
        clock.now = 1_000 + HISTORY_EXPIRATION_MS - 1
        history.upsert("u1", _recipe("new", clock.now))

        clock.now = 1_000 + HISTORY_EXPIRATION_MS
        assert [recipe.id for recipe in history.load("u1")] == ["new"]

        stored = json.loads(path.read_text())
        assert [entry["id"] for entry in stored["recipeHistory:u1"]] == ["new"]

    def test_users_are_isolated(self, tmp_path) -> None:
        history = RecipeHistory(tmp_path / "history.json", clock=MutableClock(5))
        history.upsert("u1", _recipe("a", 5))
        history.upsert("u2", _recipe("b", 5))

        history.clear("u1")

        assert history.load("u1") == []
        assert [recipe.id for recipe in history.load("u2")] == ["b"]

    def test_corrupt_file_reads_as_empty(self, tmp_path) -> None:
        path = tmp_path / "history.json"
        path.write_text("{broken")

        assert RecipeHistory(path).load("u1") == []

    def test_missing_recipe(self, tmp_path) -> None:
        assert RecipeHistory(tmp_path / "history.json").get("u1", "nope") is None

    def test_concurrent_upserts_keep_every_recipe(self, tmp_path) -> None:
        history = RecipeHistory(tmp_path / "history.json", clock=MutableClock(1_000))
        barrier = threading.Barrier(16)

        def worker(index: int) -> None:
            barrier.wait()
            history.upsert("u1", _recipe(f"r{index}", 1_000))

        threads = [threading.Thread(target=worker, args=(index,)) for index in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(recipe.id for recipe in history.load("u1")) == sorted(f"r{index}" for index in range(16))
