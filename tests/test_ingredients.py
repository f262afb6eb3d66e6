from __future__ import annotations

import random

import pytest

from chopped_app.services.ingredients import IngredientCatalog, get_ingredients, get_random_basket
from chopped_app.services.utils import COURSE_TYPES


@pytest.fixture
def catalog() -> IngredientCatalog:
    return IngredientCatalog.from_json()


def test_every_course_has_options(catalog: IngredientCatalog) -> None:
    for course in COURSE_TYPES:
        assert len(catalog.get_ingredients(course)) >= 4


def test_options_are_unique_and_sorted(catalog: IngredientCatalog) -> None:
    desserts = [option.value for option in catalog.get_ingredients("Dessert")]

    assert desserts.count("Honey") == 1
    assert desserts.count("Dark Chocolate") == 1
    assert desserts == sorted(desserts, key=str.lower)


def test_provenance_labels_use_first_appearance(catalog: IngredientCatalog) -> None:
    plain = {option.value: option.label for option in catalog.get_ingredients("Appetizer")}
    detailed = {option.value: option.label for option in catalog.get_ingredients("Appetizer", True)}

    assert plain["Bok Choy"] == "Bok Choy"
    assert detailed["Bok Choy"] == "Bok Choy (S1 E1)"
    assert len(catalog.appearances_of("Bok Choy")) == 2


def test_unknown_course_falls_back_to_appetizer(catalog: IngredientCatalog) -> None:
    assert catalog.get_ingredients("Mystery Round") == catalog.get_ingredients("Appetizer")


def test_random_basket_is_four_distinct_labels(catalog: IngredientCatalog) -> None:
    basket = catalog.get_random_basket("Entree", random.Random(3))

    assert len(basket) == 4
    assert len(set(basket)) == 4
    entrees = {option.value for option in catalog.get_ingredients("Entree")}
    assert set(basket) <= entrees
    assert basket == catalog.get_random_basket("Entree", random.Random(3))


def test_small_catalogue_returns_everything() -> None:
    catalog = IngredientCatalog.from_episodes(
        [{"season": 9, "episode_number": 1, "episode_title": "Tiny", "ingredients": {"Dessert": ["Figs", " Figs ", "Salt"]}}]
    )

    assert sorted(catalog.get_random_basket("Dessert")) == ["Figs", "Salt"]
    assert catalog.get_ingredients("Entree") == []


def test_module_helpers_use_the_bundled_dataset() -> None:
    assert get_ingredients("Appetizer")
    assert len(get_random_basket("Dessert")) == 4
