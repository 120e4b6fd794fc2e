from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from flask import Flask, current_app
from markupsafe import Markup

from .pipeline import current_pipeline


def register_template_context(app: Flask) -> None:
    """Expose asset output helpers to Jinja templates."""

    @app.context_processor
    def _inject_asset_output() -> Dict[str, Any]:
        return {
            "enqueue_head": enqueue_head,
            "enqueue_footer": enqueue_footer,
        }

    app.add_template_filter(static_file_exists_filter, "static_file_exists")


def enqueue_head() -> Markup:
    return current_pipeline().render_head()


def enqueue_footer() -> Markup:
    return current_pipeline().render_footer()


def static_file_exists_filter(relative_path: str) -> bool:
    """Check whether a file exists inside the configured static folder."""
    static_folder = Path(getattr(current_app, "static_folder", None) or "static")
    return (static_folder / relative_path).is_file()
