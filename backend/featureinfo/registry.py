"""Registry of the WMS layers the feature-info service can query.

The HTTP service has no browser map, so the layers a client may query are
declared in settings and materialized here as
:class:`~featureinfo.sources.Layer` objects. Hit testing and eligibility
both work on the instances a registry holds, so layers are compared by
identity within one registry.

Example:
    Build a registry from settings and look a layer up:
        >>> from featureinfo.registry import get_layer_registry
        >>> registry = get_layer_registry(settings)
        >>> roads = registry.get("roads")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from featureinfo import sources

if TYPE_CHECKING:
    from collections.abc import Iterable

    from featureinfo.core import config


class LayerRegistryProtocol(Protocol):
    """Protocol interface for storing and retrieving queryable layers."""

    def add(self, layer_id: str, layer: sources.Layer) -> sources.Layer: ...

    def get(self, layer_id: str) -> sources.Layer | None: ...

    def all(self) -> Iterable[tuple[str, sources.Layer]]: ...


class InMemoryLayerRegistry(LayerRegistryProtocol):
    """Layers kept in a dictionary, in registration order.

    Registration order is the map's layer order: the last layer added is
    drawn on top.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._store: dict[str, sources.Layer] = {}

    def add(self, layer_id: str, layer: sources.Layer) -> sources.Layer:
        """Add or replace a layer.

        Args:
            layer_id: Identifier clients use to select the layer.
            layer: Layer to register.

        Returns:
            The registered layer.
        """
        self._store[layer_id] = layer
        return layer

    def get(self, layer_id: str) -> sources.Layer | None:
        return self._store.get(layer_id)

    def all(self) -> Iterable[tuple[str, sources.Layer]]:
        return self._store.items()


def build_layer(layer_config: config.LayerConfig) -> sources.Layer:
    """Create the layer and WMS source described by ``layer_config``."""
    params: dict[str, str] = {
        "LAYERS": layer_config.layers,
        "STYLES": layer_config.styles,
        "VERSION": layer_config.version,
    }
    params.update(layer_config.params)
    name = layer_config.name or layer_config.id
    if layer_config.kind == "tile":
        return sources.TileLayer(
            source=sources.TileWmsSource(
                url=layer_config.url,
                params=params,
                tile_size=layer_config.tile_size,
            ),
            name=name,
            visible=layer_config.visible,
            extent=layer_config.extent,
        )

    return sources.ImageLayer(
        source=sources.ImageWmsSource(url=layer_config.url, params=params),
        name=name,
        visible=layer_config.visible,
        extent=layer_config.extent,
    )


def get_layer_registry(settings: config.Settings) -> LayerRegistryProtocol:
    """Factory function to create a registry holding ``settings.layers``.

    Args:
        settings: Application settings listing the WMS layers.

    Returns:
        InMemoryLayerRegistry with one layer per configured entry.
    """
    registry = InMemoryLayerRegistry()
    for layer_config in settings.layers:
        registry.add(layer_config.id, build_layer(layer_config))
    return registry
