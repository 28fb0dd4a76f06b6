"""Shared fixtures for the feature-info test suite.

Provides WMS layer factories, a GeoJSON FeatureCollection builder and a
capture of loguru output so tests can assert on logged warnings and errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from loguru import logger

from featureinfo import models, sources

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

WMS_URL = "https://wms.example/geoserver/wms"
OTHER_WMS_URL = "https://maps.example/ows"


def feature_collection(*feature_ids: Any) -> dict[str, Any]:
    """Build a FeatureCollection with one point feature per id.

    An id of None produces a feature without an ``id`` member.
    """
    features = []
    for index, feature_id in enumerate(feature_ids):
        feature: dict[str, Any] = {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [index, index]},
            "properties": {"index": index},
        }
        if feature_id is not None:
            feature["id"] = feature_id
        features.append(feature)
    return {"type": "FeatureCollection", "features": features}


@pytest.fixture
def make_collection() -> Callable[..., dict[str, Any]]:
    return feature_collection


@pytest.fixture
def image_layer() -> Callable[..., sources.ImageLayer]:
    """Factory for single-image WMS layers."""

    def factory(
        layers: str = "topp:roads",
        url: str = WMS_URL,
        **params: Any,
    ) -> sources.ImageLayer:
        source = sources.ImageWmsSource(url=url, params={"LAYERS": layers, **params})
        return sources.ImageLayer(source=source, name=layers)

    return factory


@pytest.fixture
def tile_layer() -> Callable[..., sources.TileLayer]:
    """Factory for tiled WMS layers."""

    def factory(
        layers: str = "topp:parcels",
        url: str = WMS_URL,
    ) -> sources.TileLayer:
        source = sources.TileWmsSource(url=url, params={"LAYERS": layers})
        return sources.TileLayer(source=source, name=layers)

    return factory


@pytest.fixture
def click() -> models.ClickEvent:
    return models.ClickEvent(
        pixel=(10.0, 20.0),
        coordinate=(1000.0, 2000.0),
        view_resolution=2.0,
        view_projection="EPSG:3857",
    )


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Messages logged through loguru while the test runs."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
