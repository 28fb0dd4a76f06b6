"""Queryable layer listing API endpoint.

Example:
    List the registered layers:
        >>> response = client.get("/api/layers")
        >>> layers = response.json()
        >>> # Returns: [{"id": "roads", "name": "Roads", "kind": "image",
        >>> #            "url": "https://wms.example/wms",
        >>> #            "layers": "topp:roads", "visible": true}, ...]
"""

from __future__ import annotations

from typing import Any

import fastapi

from featureinfo import registry, sources
from featureinfo.api import dependencies

router = fastapi.APIRouter(prefix="/api/layers", tags=["layers"])


def _describe(layer_id: str, layer: sources.Layer) -> dict[str, Any]:
    source = layer.source
    return {
        "id": layer_id,
        "name": layer.name,
        "kind": "tile" if isinstance(source, sources.TileWmsSource) else "image",
        "url": getattr(source, "url", None),
        "layers": getattr(source, "params", {}).get("LAYERS"),
        "visible": layer.visible,
    }


@router.get("")
async def list_layers(
    layer_registry: registry.LayerRegistryProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_registry
    ),
) -> list[dict[str, Any]]:
    """List all layers clients may query, bottom-most first.

    Args:
        layer_registry: Layer registry (injected via FastAPI Depends).

    Returns:
        One description per registered layer.
    """
    return [_describe(layer_id, layer) for layer_id, layer in layer_registry.all()]
