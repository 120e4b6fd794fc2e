"""Request-scoped script and style pipeline for Flask apps.

Synopsis:
``AssetPipeline`` is the host side of asset registration. Code registers and
enqueues scripts and styles by handle during a request; templates then call
``render_head()`` and ``render_footer()`` to print the tags, dependencies
first, each handle once per request. Loader-tag filters let callers rewrite
the final HTML for a single handle.

Glossary:
- Enqueue callback: Function run once per request before the first render,
  where assets are declared.
- Loader tag: The HTML printed for one registered source.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping
from urllib.parse import quote

from flask import Flask, current_app, g, has_app_context
from markupsafe import Markup, escape

from .config import DEFAULT_MEDIA, DEFAULT_PROBE_TIMEOUT
from .dependencies import FOOTER_GROUP, HEADER_GROUP, AssetRegistry, Dependency
from .hooks import DEFAULT_PRIORITY, SCRIPT_LOADER_TAG, STYLE_LOADER_TAG, FilterRegistry

logger = logging.getLogger(__name__)

EXTENSION_KEY = "enqueue"
_CALLBACKS_KEY = "enqueue_callbacks"
_STATE_ATTR = "_enqueue_assets"


@dataclass
class RequestAssets:
    scripts: AssetRegistry = field(default_factory=lambda: AssetRegistry("script"))
    styles: AssetRegistry = field(default_factory=lambda: AssetRegistry("style"))
    filters: FilterRegistry = field(default_factory=FilterRegistry)
    callbacks_ran: bool = False


class AssetPipeline:
    """Flask extension that owns script/style registration for each request."""

    def __init__(self, app: Flask | None = None) -> None:
        self._callbacks: list[Callable[[], Any]] = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.config.setdefault("ENQUEUE_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT)
        app.config.setdefault("ENQUEUE_DEFAULT_VERSION", None)
        app.config.setdefault("ENQUEUE_DEFAULT_MEDIA", DEFAULT_MEDIA)
        app.extensions[EXTENSION_KEY] = self
        app.extensions.setdefault(_CALLBACKS_KEY, [])

    # --- enqueue callbacks ---

    def enqueue_assets(self, func: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator: run ``func`` once per request, for every app, before assets render."""
        self._callbacks.append(func)
        return func

    def add_enqueue_callback(self, app: Flask, func: Callable[[], Any]) -> None:
        """Run ``func`` once per request of ``app`` only."""
        app.extensions.setdefault(_CALLBACKS_KEY, []).append(func)

    def run_enqueue_callbacks(self) -> None:
        state = self.state
        if state.callbacks_ran:
            return
        state.callbacks_ran = True
        app_callbacks = current_app.extensions.get(_CALLBACKS_KEY, [])
        for callback in [*self._callbacks, *app_callbacks]:
            callback()

    # --- request state ---

    @property
    def state(self) -> RequestAssets:
        if not has_app_context():
            raise RuntimeError("Asset registration requires an active Flask application context.")
        state = getattr(g, _STATE_ATTR, None)
        if state is None:
            state = RequestAssets()
            setattr(g, _STATE_ATTR, state)
        return state

    @property
    def scripts(self) -> AssetRegistry:
        return self.state.scripts

    @property
    def styles(self) -> AssetRegistry:
        return self.state.styles

    @property
    def filters(self) -> FilterRegistry:
        return self.state.filters

    # --- scripts ---

    def register_script(
        self,
        handle: str,
        src: str,
        deps: Iterable[str] = (),
        ver: str | int | None = None,
        in_footer: bool = False,
    ) -> bool:
        added = self.scripts.add(handle, src, deps, ver)
        if added and in_footer:
            self.scripts.add_data(handle, "group", FOOTER_GROUP)
        if added:
            logger.debug("Registered script %r (src=%r, footer=%s)", handle, src, in_footer)
        return added

    def enqueue_script(
        self,
        handle: str,
        src: str | None = None,
        deps: Iterable[str] = (),
        ver: str | int | None = None,
        in_footer: bool = False,
    ) -> None:
        if src is not None and not self.scripts.query(handle):
            self.register_script(handle, src, deps, ver, in_footer)
        self.scripts.enqueue(handle)

    def dequeue_script(self, handle: str) -> None:
        self.scripts.dequeue(handle)

    def add_inline_script(self, handle: str, data: str, position: str = "after") -> bool:
        if not data:
            return False
        position = "before" if position == "before" else "after"
        existing = self.scripts.get_data(handle, position)
        if existing is None and not self.scripts.query(handle):
            logger.warning("Cannot add inline script to unregistered handle %r", handle)
            return False
        return self.scripts.add_data(handle, position, [*(existing or []), data])

    def localize_script(self, handle: str, object_name: str, data: Mapping[str, Any]) -> bool:
        if not isinstance(data, Mapping):
            logger.warning("Localized data for %r must be a mapping, got %s", handle, type(data).__name__)
            return False
        if not self.scripts.query(handle):
            logger.warning("Cannot localize unregistered script %r", handle)
            return False

        prepared = {key: _stringify_scalar(value) for key, value in data.items()}
        encoded = json.dumps(prepared, separators=(",", ":")).replace("</", "<\\/")
        script = f"var {object_name} = {encoded};"
        existing = self.scripts.get_data(handle, "data")
        if existing:
            script = f"{existing}\n{script}"
        return self.scripts.add_data(handle, "data", script)

    # --- styles ---

    def register_style(
        self,
        handle: str,
        src: str,
        deps: Iterable[str] = (),
        ver: str | int | None = None,
        media: str | None = None,
    ) -> bool:
        media = media or _default_media()
        added = self.styles.add(handle, src, deps, ver, media)
        if added:
            logger.debug("Registered style %r (src=%r, media=%s)", handle, src, media)
        return added

    def enqueue_style(
        self,
        handle: str,
        src: str | None = None,
        deps: Iterable[str] = (),
        ver: str | int | None = None,
        media: str | None = None,
    ) -> None:
        if src is not None and not self.styles.query(handle):
            self.register_style(handle, src, deps, ver, media)
        self.styles.enqueue(handle)

    def dequeue_style(self, handle: str) -> None:
        self.styles.dequeue(handle)

    # --- filters ---

    def add_filter(self, hook: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        self.filters.add_filter(hook, callback, priority)

    def remove_filter(self, hook: str, callback: Callable[..., Any], priority: int | None = None) -> bool:
        return self.filters.remove_filter(hook, callback, priority)

    def apply_filters(self, hook: str, value: Any, *args: Any) -> Any:
        return self.filters.apply_filters(hook, value, *args)

    # --- output ---

    def render_head(self) -> Markup:
        """Print enqueued styles and header scripts."""
        self.run_enqueue_callbacks()
        parts = self._print_styles()
        scripts = self.scripts
        order = [handle for handle in scripts.resolve() if handle not in scripts.done]
        head_handles = _header_closure(scripts, order)
        parts.extend(self._print_scripts([handle for handle in order if handle in head_handles]))
        return Markup("\n".join(parts))

    def render_footer(self) -> Markup:
        """Print late styles and every enqueued script not printed yet."""
        self.run_enqueue_callbacks()
        parts = self._print_styles()
        order = [handle for handle in self.scripts.resolve() if handle not in self.scripts.done]
        parts.extend(self._print_scripts(order))
        return Markup("\n".join(parts))

    def _print_styles(self) -> list[str]:
        styles = self.styles
        parts: list[str] = []
        for handle in styles.resolve():
            if handle in styles.done:
                continue
            styles.done.add(handle)
            tag = self._style_tag(styles.registered[handle])
            if tag:
                parts.append(tag)
        return parts

    def _print_scripts(self, handles: list[str]) -> list[str]:
        parts: list[str] = []
        for handle in handles:
            self.scripts.done.add(handle)
            parts.extend(self._script_tags(self.scripts.registered[handle]))
        return parts

    def _style_tag(self, dependency: Dependency) -> str:
        if not dependency.src:
            return ""
        href = self._versioned(dependency.src, dependency.ver)
        media = dependency.args or _default_media()
        tag = (
            f"<link rel='stylesheet' id='{escape(dependency.handle)}-css' "
            f"href='{escape(href)}' media='{escape(media)}' />"
        )
        return self.apply_filters(STYLE_LOADER_TAG, tag, dependency.handle, href, media)

    def _script_tags(self, dependency: Dependency) -> list[str]:
        handle = dependency.handle
        parts: list[str] = []
        data = dependency.extra.get("data")
        if data:
            parts.append(f"<script id='{escape(handle)}-js-extra'>\n{data}\n</script>")
        before = dependency.extra.get("before")
        if before:
            parts.append(f"<script id='{escape(handle)}-js-before'>\n" + "\n".join(before) + "\n</script>")
        if dependency.src:
            src = self._versioned(dependency.src, dependency.ver)
            tag = f"<script src='{escape(src)}' id='{escape(handle)}-js'></script>"
            parts.append(self.apply_filters(SCRIPT_LOADER_TAG, tag, handle, src))
        after = dependency.extra.get("after")
        if after:
            parts.append(f"<script id='{escape(handle)}-js-after'>\n" + "\n".join(after) + "\n</script>")
        return parts

    @staticmethod
    def _versioned(src: str, ver: str | int | None) -> str:
        if ver is None:
            ver = current_app.config.get("ENQUEUE_DEFAULT_VERSION")
        if ver is None or ver == "":
            return src
        separator = "&" if "?" in src else "?"
        return f"{src}{separator}ver={quote(str(ver), safe='.-_')}"


def current_pipeline() -> AssetPipeline:
    """Return the pipeline bound to the active Flask app."""
    if not has_app_context():
        raise RuntimeError("No application context; pass a pipeline explicitly or push an app context.")
    pipeline = current_app.extensions.get(EXTENSION_KEY)
    if pipeline is None:
        raise RuntimeError("AssetPipeline is not initialised on this app; call pipeline.init_app(app).")
    return pipeline


def _header_closure(scripts: AssetRegistry, order: list[str]) -> set[str]:
    # Footer scripts that a header script depends on must move to the head.
    wanted: set[str] = set()

    def pull(handle: str) -> None:
        if handle in wanted or handle not in scripts.registered:
            return
        wanted.add(handle)
        for dep in scripts.registered[handle].deps:
            pull(dep)

    for handle in order:
        if scripts.registered[handle].group == HEADER_GROUP:
            pull(handle)
    return wanted


def _stringify_scalar(value: Any) -> Any:
    if isinstance(value, (Mapping, list, tuple)):
        return value
    if isinstance(value, bool):
        return "1" if value else ""
    if value is None:
        return ""
    return str(value)


def _default_media() -> str:
    return current_app.config.get("ENQUEUE_DEFAULT_MEDIA") or DEFAULT_MEDIA
