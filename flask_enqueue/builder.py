"""Chainable declaration of scripts and styles.

Usage::

    Enqueue.script("charts")
        .src("https://cdn.example.com/charts.js")
        .deps("vendor")
        .localize({"endpoint": "/api/charts"})
        .defer()
        .register()

Every setter returns the builder. ``register()`` hands the collected
``AssetConfig`` to the app's ``AssetPipeline``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from markupsafe import escape

from .config import DEFAULT_SCRIPT_TYPE
from .hooks import SCRIPT_LOADER_TAG, STYLE_LOADER_TAG
from .pipeline import AssetPipeline, current_pipeline
from .sources import probe_source, read_source, source_exists

logger = logging.getLogger(__name__)

SCRIPT = "script"
STYLE = "style"
ASSET_KINDS = (SCRIPT, STYLE)

# Rewrites run ahead of default-priority filters.
LOADER_TAG_PRIORITY = 1


@dataclass
class AssetConfig:
    handle: str
    kind: str
    src: str = ""
    deps: list[str] = field(default_factory=list)
    ver: str | int | None = None
    footer: bool = True
    inline: bool = False
    localize: dict[str, Any] | None = None
    media: str | None = None
    attributes: dict[str, str | None] = field(default_factory=dict)
    for_block: bool = False
    script_type: str = DEFAULT_SCRIPT_TYPE


class Enqueue:
    def __init__(self, handle: str, kind: str):
        if kind not in ASSET_KINDS:
            raise ValueError(f"Unknown asset kind {kind!r}; expected one of {ASSET_KINDS}.")
        self.config = AssetConfig(handle=handle, kind=kind)

    @classmethod
    def script(cls, handle: str) -> "Enqueue":
        return cls(handle, SCRIPT)

    @classmethod
    def style(cls, handle: str) -> "Enqueue":
        return cls(handle, STYLE)

    def __repr__(self) -> str:
        return f"Enqueue({self.config.kind}={self.config.handle!r})"

    # --- setters ---

    def src(self, src: str) -> "Enqueue":
        self.config.src = src
        return self

    def deps(self, *deps: str) -> "Enqueue":
        self.config.deps = list(deps)
        return self

    def ver(self, ver: str | int) -> "Enqueue":
        self.config.ver = ver
        return self

    def media(self, media: str) -> "Enqueue":
        self.config.media = media
        return self

    def latest_version(self) -> "Enqueue":
        """Use the source's last-modified time as the version; unchanged if it can't be read."""
        probe = probe_source(self.config.src)
        if probe.exists and probe.last_modified is not None:
            self.config.ver = probe.last_modified
        return self

    def footer(self, footer: bool = True) -> "Enqueue":
        self.config.footer = footer
        return self

    def header(self) -> "Enqueue":
        self.config.footer = False
        return self

    def inline(self, inline: bool = True) -> "Enqueue":
        # Keep inlined files small; the whole body is printed into the page.
        self.config.inline = inline
        return self

    def localize(self, args: Mapping[str, Any]) -> "Enqueue":
        self.config.localize = dict(args)
        return self

    def flag(self, flag: str) -> "Enqueue":
        self.config.attributes[flag] = None
        return self

    def attribute(self, key: str, value: str) -> "Enqueue":
        self.config.attributes[key] = value
        return self

    def defer(self) -> "Enqueue":
        self.config.attributes.pop("async", None)
        self.config.attributes["defer"] = ""
        return self

    def async_(self) -> "Enqueue":
        self.config.attributes.pop("defer", None)
        self.config.attributes["async"] = ""
        return self

    def for_block(self, for_block: bool = True) -> "Enqueue":
        self.config.for_block = for_block
        return self

    def script_type(self, script_type: str) -> "Enqueue":
        self.config.script_type = script_type
        return self

    # --- registration ---

    def register(self, pipeline: AssetPipeline | None = None) -> None:
        pipeline = pipeline or current_pipeline()
        if self.config.kind == SCRIPT:
            self._register_script(pipeline)
        elif self.config.kind == STYLE:
            self._register_style(pipeline)

    def _register_style(self, pipeline: AssetPipeline) -> None:
        cfg = self.config
        pipeline.register_style(cfg.handle, cfg.src, cfg.deps, cfg.ver, cfg.media)
        if not cfg.for_block:
            pipeline.enqueue_style(cfg.handle)
        self._add_style_attributes(pipeline)

    def _register_script(self, pipeline: AssetPipeline) -> None:
        cfg = self.config
        pipeline.register_script(cfg.handle, "" if cfg.inline else cfg.src, cfg.deps, cfg.ver, cfg.footer)

        if cfg.inline:
            if source_exists(cfg.src):
                pipeline.add_inline_script(cfg.handle, read_source(cfg.src))
            else:
                logger.info("Inline source for script %r not found at %s; nothing inlined", cfg.handle, cfg.src)

        if cfg.localize:
            pipeline.localize_script(cfg.handle, cfg.handle, cfg.localize)

        if not cfg.for_block:
            pipeline.enqueue_script(cfg.handle)

        self._add_script_attributes(pipeline)

    def _add_script_attributes(self, pipeline: AssetPipeline) -> None:
        cfg = self.config
        if not cfg.attributes and cfg.script_type == DEFAULT_SCRIPT_TYPE:
            return

        attributes = self.script_attributes()
        handle = cfg.handle
        script_type = cfg.script_type

        def _rewrite_script_tag(tag: str, tag_handle: str, source: str) -> str:
            if tag_handle != handle:
                return tag
            return f'<script type="{escape(script_type)}" src="{escape(source)}" {" ".join(attributes)}></script>'

        pipeline.add_filter(SCRIPT_LOADER_TAG, _rewrite_script_tag, LOADER_TAG_PRIORITY)

    def _add_style_attributes(self, pipeline: AssetPipeline) -> None:
        attributes = self.html_attributes()
        if not attributes:
            return
        handle = self.config.handle

        def _rewrite_style_tag(tag: str, tag_handle: str, href: str, media: str) -> str:
            if tag_handle != handle:
                return tag
            return (
                f'<link rel="stylesheet" id="{escape(tag_handle)}-css" href="{escape(href)}" '
                f'type="text/css" media="{escape(media)}" {" ".join(attributes)}>'
            )

        pipeline.add_filter(STYLE_LOADER_TAG, _rewrite_style_tag, LOADER_TAG_PRIORITY)

    def script_attributes(self) -> list[str]:
        """HTML attributes for the script tag, with an ``id`` added unless one was given."""
        attributes = self.html_attributes()
        if any(attribute.startswith("id=") for attribute in attributes):
            return attributes
        return [*attributes, f"id='{escape(self.config.handle)}-js'"]

    def html_attributes(self) -> list[str]:
        return [
            str(escape(key)) if value is None else f"{escape(key)}='{escape(value)}'"
            for key, value in self.config.attributes.items()
        ]
