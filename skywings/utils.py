"""Shared utilities used across the add-on agent."""

import re


def join_spoken(items: list[str], conjunction: str = "and") -> str:
    """Join items the way they are read out loud.

    Examples:
        >>> join_spoken(["seat selection"])
        'seat selection'
        >>> join_spoken(["seat selection", "extra baggage", "priority check-in"])
        'seat selection, extra baggage and priority check-in'
    """
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} {conjunction} {items[-1]}"


def title_name(value: str) -> str:
    """Normalize a spoken name to title case with single spaces.

    Examples:
        >>> title_name("  rahul   SHARMA ")
        'Rahul Sharma'
    """
    return " ".join(part.capitalize() for part in re.split(r"\s+", value.strip()) if part)
