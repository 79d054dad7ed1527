"""
Pure helpers for composing a role draft before it is saved.

A draft is just the set of selected permission ids. Category toggling works on
the permissions currently visible to the operator, so a search term narrows
what "select all in category" touches.
"""
from typing import Iterable, Optional, Protocol


class PermissionLike(Protocol):
    id: str
    key: str
    name: str
    category: str


def matches_search(permission: PermissionLike, search: Optional[str]) -> bool:
    """Case-insensitive substring match on the permission name or key."""
    if not search or not search.strip():
        return True
    needle = search.strip().lower()
    return needle in permission.name.lower() or needle in permission.key.lower()


def category_candidates(
    permissions: Iterable[PermissionLike],
    category: str,
    search: Optional[str] = None,
) -> list[str]:
    """Ids of the visible permissions in ``category``."""
    category = (category or "").strip().lower()
    return [
        p.id for p in permissions
        if p.category.lower() == category and matches_search(p, search)
    ]


def toggle_category(selected: Iterable[str], category_ids: Iterable[str]) -> frozenset[str]:
    """
    Toggle a whole category in a draft.
    
    If every id of the category is already selected they are all removed,
    otherwise they are all added. An empty category leaves the draft unchanged.
    
    Examples:
        toggle_category({"a"}, ["a", "b"])      -> {"a", "b"}
        toggle_category({"a", "b"}, ["a", "b"]) -> set()
    """
    draft = frozenset(selected)
    ids = frozenset(category_ids)
    if not ids:
        return draft
    if ids <= draft:
        return draft - ids
    return draft | ids


def group_by_category(permissions: Iterable[PermissionLike]) -> dict[str, list[PermissionLike]]:
    """Group permissions by category, categories and members sorted."""
    groups: dict[str, list[PermissionLike]] = {}
    for permission in permissions:
        groups.setdefault(permission.category, []).append(permission)
    return {
        category: sorted(groups[category], key=lambda p: p.key)
        for category in sorted(groups)
    }
