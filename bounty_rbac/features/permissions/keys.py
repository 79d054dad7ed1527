"""
Permission key helpers.

Keys have the shape ``<category>:<action>``; the action part may itself contain
further colons (``admin:reports:export``). Keys compare case-insensitively.
"""
import re

from bounty_rbac.core.exceptions import InvalidKey


KEY_PATTERN = re.compile(r"^[a-z0-9_.-]+(:[a-z0-9_.-]+)+$")


def normalize_key(key: str) -> str:
    """Canonical (lower-cased, trimmed) form of a permission key."""
    return (key or "").strip().lower()


def validate_key(key: str) -> str:
    """
    Return the normalized key or raise InvalidKey.
    
    Examples:
        validate_key("Report:Export") -> "report:export"
        validate_key("report")        -> InvalidKey
    """
    normalized = normalize_key(key)
    if not normalized:
        raise InvalidKey("Permission key is required")
    if not KEY_PATTERN.match(normalized):
        raise InvalidKey(f"Permission key '{key}' must look like 'category:action'")
    return normalized


def derive_category(key: str) -> str:
    """Category implied by a key: the part before the first colon."""
    return normalize_key(key).split(":", 1)[0]
