import pytest

from cashlyzer.constants.categories import CATEGORY_REGISTRY


def test_catalog_is_fixed():
    assert len(CATEGORY_REGISTRY) == 17
    assert CATEGORY_REGISTRY.ids[0] == "food"
    assert CATEGORY_REGISTRY.ids[-1] == "other"


def test_lookup():
    assert CATEGORY_REGISTRY.is_valid("housing")
    assert not CATEGORY_REGISTRY.is_valid("casino")
    assert not CATEGORY_REGISTRY.is_valid(None)
    assert "pets" in CATEGORY_REGISTRY
    assert CATEGORY_REGISTRY.get("casino") is None


def test_subcategories():
    assert CATEGORY_REGISTRY.is_valid_subcategory("food", "Groceries")
    assert not CATEGORY_REGISTRY.is_valid_subcategory("food", "Rent")
    assert not CATEGORY_REGISTRY.is_valid_subcategory("casino", "Poker")


def test_display_name_falls_back_to_id():
    assert CATEGORY_REGISTRY.display_name("food") == "Food & Dining"
    assert CATEGORY_REGISTRY.display_name("casino") == "casino"


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        CATEGORY_REGISTRY._categories["casino"] = None
    with pytest.raises(AttributeError):
        CATEGORY_REGISTRY.get("food").name = "Groceries"
