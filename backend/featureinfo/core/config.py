"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
the default query behaviour of the coordinate info aggregator (feature
count, drill-down, hit tolerance), the HTTP timeout handed to the
transport, the log level, CORS origins, and the WMS layers the HTTP
service exposes for querying.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from featureinfo.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.feature_count)

    Environment variables can override defaults:
        >>> FEATURE_COUNT=3
        >>> DRILL_DOWN=false
        >>> LAYERS='[{"id": "roads", "url": "https://wms.example/wms",
        ...           "layers": "topp:roads"}]'
"""

from __future__ import annotations

import functools
from typing import Literal

import pydantic
import pydantic_settings

BBox = tuple[float, float, float, float]


class LayerConfig(pydantic.BaseModel):
    """Declarative description of a queryable WMS layer.

    Attributes:
        id: Unique identifier used by API clients to pick layers.
        name: Human-readable layer name (defaults to the id).
        url: WMS endpoint base URL.
        layers: Value of the WMS ``LAYERS`` parameter.
        kind: ``"image"`` for single-image WMS, ``"tile"`` for tiled WMS.
        version: WMS protocol version.
        styles: Value of the WMS ``STYLES`` parameter.
        params: Extra static request parameters.
        tile_size: Tile edge in pixels, tiled sources only.
        extent: Optional (minx, miny, maxx, maxy) limiting where the layer
            is hit, in the map projection.
        visible: Hidden layers are never hit.
    """

    id: str
    name: str = ""
    url: str
    layers: str
    kind: Literal["image", "tile"] = "image"
    version: str = "1.3.0"
    styles: str = ""
    params: dict[str, str] = {}
    tile_size: int = pydantic.Field(default=256, gt=0)
    extent: BBox | None = None
    visible: bool = True


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        feature_count: Default ``FEATURE_COUNT`` sent with each query.
        drill_down: Query every layer under the click instead of the top one.
        hit_tolerance: Pixel radius used by the map engine hit test.
        request_timeout: Seconds before the HTTP transport gives up.
        log_level: Minimum level written by the log sink.
        allow_origins: List of allowed CORS origins (["*"] allows all).
        layers: WMS layers registered with the HTTP service.

    Example:
        Create settings with custom values:
            >>> settings = Settings(feature_count=3, drill_down=False)
    """

    feature_count: int = pydantic.Field(default=1, gt=0)
    drill_down: bool = True
    hit_tolerance: float = pydantic.Field(default=5.0, ge=0)
    request_timeout: float = pydantic.Field(default=10.0, gt=0)
    log_level: str = "INFO"
    allow_origins: list[str] = ["*"]
    layers: list[LayerConfig] = []

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Subsequent calls return the same
    cached instance.

    Returns:
        Settings instance with all configuration values populated.

    Example:
        The settings are cached, so multiple calls return the same instance:
            >>> settings1 = get_settings()
            >>> settings2 = get_settings()
            >>> assert settings1 is settings2  # Same instance
    """
    return Settings()
