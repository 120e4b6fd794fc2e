"""Priority-ordered filter hooks used to rewrite rendered asset tags.

Synopsis:
A filter is a named chain of callbacks. Each callback receives the running
value plus any extra arguments and returns the new value. Callbacks run by
ascending priority, then in the order they were added.

Glossary:
- Hook: Name of a filter chain (``script_loader_tag``, ``style_loader_tag``).
- Priority: Integer ordering key; lower runs first.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable

DEFAULT_PRIORITY = 10

SCRIPT_LOADER_TAG = "script_loader_tag"
STYLE_LOADER_TAG = "style_loader_tag"


@dataclass(order=True, frozen=True)
class _Callback:
    priority: int
    sequence: int
    callback: Callable[..., Any] = field(compare=False)


class FilterRegistry:
    """Named filter chains."""

    def __init__(self) -> None:
        self._filters: dict[str, list[_Callback]] = {}
        self._counter = itertools.count()

    def add_filter(self, hook: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        entries = self._filters.setdefault(hook, [])
        entries.append(_Callback(priority, next(self._counter), callback))
        entries.sort()

    def remove_filter(self, hook: str, callback: Callable[..., Any], priority: int | None = None) -> bool:
        entries = self._filters.get(hook, [])
        for entry in entries:
            if entry.callback == callback and (priority is None or entry.priority == priority):
                entries.remove(entry)
                return True
        return False

    def has_filter(self, hook: str, callback: Callable[..., Any] | None = None) -> bool:
        entries = self._filters.get(hook, [])
        if callback is None:
            return bool(entries)
        return any(entry.callback == callback for entry in entries)

    def apply_filters(self, hook: str, value: Any, *args: Any) -> Any:
        for entry in list(self._filters.get(hook, ())):
            value = entry.callback(value, *args)
        return value

    def clear(self, hook: str | None = None) -> None:
        if hook is None:
            self._filters.clear()
        else:
            self._filters.pop(hook, None)
