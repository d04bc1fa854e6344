from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from achistory.config import Settings, load_settings
from achistory.errors import ConfigError
from achistory.history import HistoryService
from achistory.store import JsonFileSession

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("achistory").setLevel(level.upper())


def build_service(
    config: Optional[Path], store: Optional[Path], log_level: Optional[str]
) -> HistoryService:
    """Settings from file/env, overridden by explicit CLI options"""
    settings = load_settings(config)
    updates = {}
    if store is not None:
        updates["store_path"] = store.expanduser()
    if log_level:
        updates["log_level"] = log_level
    if updates:
        try:
            settings = Settings(**{**settings.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
    configure_logging(settings.log_level)
    return HistoryService(JsonFileSession(settings.store_path), settings)


def get_service(ctx: typer.Context) -> HistoryService:
    service = (ctx.obj or {}).get("service")
    if service is None:
        raise RuntimeError("history service not initialised; run through the root command")
    return service


def write_output(content: str, out: Optional[Path]) -> None:
    if out:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(content, encoding="utf-8")
        typer.echo(f"✓ Saved to {out}")
    else:
        # Default to stdout
        typer.echo(content)
