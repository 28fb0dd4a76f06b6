"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator

import fastapi
import httpx

from featureinfo import registry
from featureinfo.core import config


def get_registry(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> registry.LayerRegistryProtocol:
    """Resolve the layer registry dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        Registry holding the configured WMS layers.
    """
    return registry.get_layer_registry(settings)


async def get_http_client(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield an HTTP client for feature-info requests, closed afterwards."""
    async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
        yield client
