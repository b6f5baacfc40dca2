"""Configuration for building a projection engine."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, PositiveInt, field_validator

logger = logging.getLogger(__name__)


class MercatorConfig(BaseModel):
    """Engine settings."""
    tile_size: PositiveInt = 256   # pixels per tile edge, usually 256 or 512
    antimeridian: bool = False     # allow pixel x up to two world widths
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def load_config(path: Path | None = None) -> MercatorConfig:
    """Load settings from a JSON file, falling back to defaults."""
    if path is None or not path.exists():
        return MercatorConfig()
    logger.debug("Loading config from %s", path)
    return MercatorConfig.model_validate_json(path.read_text())
