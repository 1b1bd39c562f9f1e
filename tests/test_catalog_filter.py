from decimal import Decimal

from canteen.schemas.catalog import MenuItem, Restaurant
from canteen.services.catalog_filter import (
    ALL_CATEGORIES,
    collect_categories,
    collect_tags,
    filter_menu_items,
    filter_restaurants,
    toggle_selection,
)


def _restaurants() -> list[Restaurant]:
    return [
        Restaurant(id="r1", vendor_id="v", name="Campus Cafe", description="Fresh meals", location="Main Building", tags=["Lunch", "Snacks"]),
        Restaurant(id="r2", vendor_id="v", name="Night Owl", description="Late snacks", location="Library", tags=["Snacks"]),
        Restaurant(id="r3", vendor_id="v", name="Green Bowl", description="Salads", location="Sports Hall", tags=["Healthy"]),
    ]


def _items() -> list[MenuItem]:
    return [
        MenuItem(id="m1", restaurant_id="r1", name="Classic Burger", description="Beef patty", price=Decimal("8.99"), category="Burgers"),
        MenuItem(id="m2", restaurant_id="r1", name="Caesar Salad", description="Romaine and parmesan", price=Decimal("6.99"), category="Salads"),
        MenuItem(id="m3", restaurant_id="r1", name="Veggie Burger", description="Bean patty", price=Decimal("7.49"), category="Burgers"),
    ]


def test_empty_term_and_no_tag_returns_everything_in_order() -> None:
    restaurants = _restaurants()

    assert filter_restaurants(restaurants) == restaurants


def test_search_is_case_insensitive_across_name_description_location() -> None:
    restaurants = _restaurants()

    assert [r.id for r in filter_restaurants(restaurants, "CAMPUS")] == ["r1"]
    assert [r.id for r in filter_restaurants(restaurants, "snacks")] == ["r2"]
    assert [r.id for r in filter_restaurants(restaurants, "library")] == ["r2"]


def test_tag_and_term_combine() -> None:
    restaurants = _restaurants()

    assert [r.id for r in filter_restaurants(restaurants, selected_tag="Snacks")] == ["r1", "r2"]
    assert [r.id for r in filter_restaurants(restaurants, "owl", "Snacks")] == ["r2"]
    assert filter_restaurants(restaurants, "green", "Snacks") == []


def test_filter_is_idempotent_and_a_subset() -> None:
    restaurants = _restaurants()
    once = filter_restaurants(restaurants, "a", "Snacks")

    assert filter_restaurants(once, "a", "Snacks") == once
    assert all(r in restaurants for r in once)


def test_menu_category_all_means_no_filter() -> None:
    items = _items()

    assert filter_menu_items(items, selected_category=ALL_CATEGORIES) == items
    assert [i.id for i in filter_menu_items(items, selected_category="Burgers")] == ["m1", "m3"]
    assert [i.id for i in filter_menu_items(items, "patty", "Burgers")] == ["m1", "m3"]
    assert [i.id for i in filter_menu_items(items, "bean")] == ["m3"]


def test_toggle_selection_clears_current_value() -> None:
    assert toggle_selection(None, "Lunch") == "Lunch"
    assert toggle_selection("Lunch", "Lunch") is None
    assert toggle_selection("Lunch", "Snacks") == "Snacks"


def test_collect_tags_and_categories_keep_first_seen_order() -> None:
    assert collect_tags(_restaurants()) == ["Lunch", "Snacks", "Healthy"]
    assert collect_categories(_items()) == [ALL_CATEGORIES, "Burgers", "Salads"]


def test_toggling_a_tag_twice_restores_the_filtered_view() -> None:
    restaurants = _restaurants()
    selected = "Snacks"

    cleared = toggle_selection(selected, selected)
    restored = toggle_selection(cleared, selected)

    assert filter_restaurants(restaurants, "a", cleared) == filter_restaurants(restaurants, "a")
    assert filter_restaurants(restaurants, "a", restored) == filter_restaurants(restaurants, "a", selected)


def test_search_term_whitespace_is_part_of_the_match() -> None:
    restaurants = [
        Restaurant(id="r1", vendor_id="v", name="Burger Barn"),
        Restaurant(id="r2", vendor_id="v", name="Classic Burger"),
    ]

    assert [r.id for r in filter_restaurants(restaurants, " burger")] == ["r2"]
    assert [r.id for r in filter_restaurants(restaurants, "burger ")] == ["r1"]
    assert filter_restaurants(_restaurants(), "   ") == []
