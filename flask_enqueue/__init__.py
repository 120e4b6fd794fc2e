from __future__ import annotations

import logging
from typing import Any

from flask import Flask

from .builder import AssetConfig, Enqueue
from .config import ENV_DIAGNOSTICS
from .extensions import pipeline
from .logging_config import configure_logging
from .pipeline import AssetPipeline, current_pipeline

__all__ = [
    "AssetConfig",
    "AssetPipeline",
    "Enqueue",
    "create_app",
    "current_pipeline",
    "pipeline",
]

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__, static_folder="static", static_url_path="/static")

    _load_base_config(app, config)

    pipeline.init_app(app)

    from .template_context import register_template_context

    register_template_context(app)
    configure_logging(app)

    from .management import register_commands

    register_commands(app)

    return app


def _load_base_config(app: Flask, config: dict[str, Any] | None) -> None:
    app.config.from_object("flask_enqueue.config.Config")
    if config:
        app.config.update(config)
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)

    if config and "STATIC_FOLDER" in config:
        app.static_folder = config["STATIC_FOLDER"]
