"""Search and tag/category filtering over restaurants and menu items."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from canteen.schemas.catalog import MenuItem, Restaurant

T = TypeVar("T")

ALL_CATEGORIES = "All"


def toggle_selection(current: str | None, value: str) -> str | None:
    """Selecting the already-selected tag clears it."""
    return None if current == value else value


def filter_catalog(
    entities: Iterable[T],
    search_term: str,
    selected: str | None,
    text_fields: Callable[[T], Sequence[str]],
    facets: Callable[[T], Iterable[str]],
) -> list[T]:
    """Keep entities matching the term (case-insensitive substring) and the facet.

    Source order is preserved.
    """
    needle: str = (search_term or "").lower()
    result: list[T] = []
    for entity in entities:
        if needle and not any(needle in (text or "").lower() for text in text_fields(entity)):
            continue
        if selected and selected not in set(facets(entity)):
            continue
        result.append(entity)
    return result


def filter_restaurants(
    restaurants: Iterable[Restaurant],
    search_term: str = "",
    selected_tag: str | None = None,
) -> list[Restaurant]:
    return filter_catalog(
        restaurants,
        search_term,
        selected_tag,
        text_fields=lambda r: (r.name, r.description, r.location),
        facets=lambda r: r.tags,
    )


def filter_menu_items(
    items: Iterable[MenuItem],
    search_term: str = "",
    selected_category: str | None = None,
) -> list[MenuItem]:
    category = None if selected_category == ALL_CATEGORIES else selected_category
    return filter_catalog(
        items,
        search_term,
        category,
        text_fields=lambda item: (item.name, item.description),
        facets=lambda item: (item.category,),
    )


def collect_tags(restaurants: Iterable[Restaurant]) -> list[str]:
    """Unique tags in first-seen order."""
    seen: dict[str, None] = {}
    for restaurant in restaurants:
        for tag in restaurant.tags:
            seen.setdefault(tag, None)
    return list(seen)


def collect_categories(items: Iterable[MenuItem]) -> list[str]:
    seen: dict[str, None] = {ALL_CATEGORIES: None}
    for item in items:
        if item.category:
            seen.setdefault(item.category, None)
    return list(seen)
