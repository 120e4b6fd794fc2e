"""Registered asset records and dependency-first ordering.

Synopsis:
Keeps the registered/enqueued/printed state for one kind of asset (scripts or
styles) and turns a list of enqueued handles into the order the tags must be
printed in, with every dependency ahead of the handles that need it.

Glossary:
- Handle: Unique name an asset is registered under.
- Group: Script placement; 0 prints in the head, 1 in the footer.
- Done: Handles already printed during the current request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

logger = logging.getLogger(__name__)

HEADER_GROUP = 0
FOOTER_GROUP = 1


@dataclass
class Dependency:
    handle: str
    src: str
    deps: list[str] = field(default_factory=list)
    ver: str | int | None = None
    args: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    def add_data(self, key: str, value: Any) -> None:
        self.extra[key] = value

    @property
    def group(self) -> int:
        return int(self.extra.get("group", HEADER_GROUP))


class AssetRegistry:
    """Registered, enqueued and printed handles for one asset kind."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.registered: dict[str, Dependency] = {}
        self.queue: list[str] = []
        self.done: set[str] = set()

    def add(
        self,
        handle: str,
        src: str,
        deps: Iterable[str] = (),
        ver: str | int | None = None,
        args: Any = None,
    ) -> bool:
        if handle in self.registered:
            logger.debug("%s %r already registered; keeping the first registration", self.kind, handle)
            return False
        self.registered[handle] = Dependency(handle=handle, src=src or "", deps=list(deps), ver=ver, args=args)
        return True

    def remove(self, handle: str) -> None:
        self.registered.pop(handle, None)
        self.dequeue(handle)

    def add_data(self, handle: str, key: str, value: Any) -> bool:
        dependency = self.registered.get(handle)
        if dependency is None:
            return False
        dependency.add_data(key, value)
        return True

    def get_data(self, handle: str, key: str, default: Any = None) -> Any:
        dependency = self.registered.get(handle)
        if dependency is None:
            return default
        return dependency.extra.get(key, default)

    def enqueue(self, handle: str) -> None:
        if handle not in self.queue:
            self.queue.append(handle)

    def dequeue(self, handle: str) -> None:
        if handle in self.queue:
            self.queue.remove(handle)

    def query(self, handle: str, list_name: str = "registered") -> bool:
        if list_name == "registered":
            return handle in self.registered
        if list_name in ("enqueued", "queue"):
            return handle in self.queue
        if list_name in ("done", "printed"):
            return handle in self.done
        raise ValueError(f"Unknown list {list_name!r}; expected registered, enqueued or done.")

    def resolve(self, handles: Iterable[str] | None = None) -> list[str]:
        """Return ``handles`` (default: the queue) expanded with their dependencies, dependencies first.

        A handle whose dependency chain contains an unregistered handle is
        dropped. Dependency cycles are broken at the first repeated handle.
        """
        ordered: list[str] = []
        rejected: set[str] = set()

        def visit(handle: str, trail: tuple[str, ...]) -> bool:
            if handle in ordered:
                return True
            if handle in rejected:
                return False
            if handle in trail:
                logger.warning("Dependency cycle for %s %r via %s", self.kind, handle, " -> ".join(trail))
                return True
            dependency = self.registered.get(handle)
            if dependency is None:
                logger.warning("Skipping unregistered %s %r", self.kind, handle)
                rejected.add(handle)
                return False
            for dep in dependency.deps:
                if not visit(dep, trail + (handle,)):
                    logger.warning("Skipping %s %r: dependency %r is unavailable", self.kind, handle, dep)
                    rejected.add(handle)
                    return False
            ordered.append(handle)
            return True

        for handle in self.queue if handles is None else handles:
            visit(handle, ())
        return ordered

    def reset(self) -> None:
        self.registered.clear()
        self.queue.clear()
        self.done.clear()
