"""Feature info API endpoint for a clicked map coordinate.

The endpoint answers one click the way a map widget would: it stacks the
registered layers, hit tests the ones covering the clicked coordinate,
queries the allowed WMS layers through :class:`CoordinateInfo` and returns
the features grouped by feature type as GeoJSON.

Example:
    Query two layers at a Web Mercator coordinate:
        >>> response = client.post(
        ...     "/api/feature-info",
        ...     json={
        ...         "coordinate": [1822585.2, 5751165.3],
        ...         "resolution": 38.21,
        ...         "projection": "EPSG:3857",
        ...         "layer_ids": ["roads", "parcels"],
        ...         "feature_count": 3,
        ...     },
        ... )
        >>> response.json()
        >>> # Returns: {"click_coordinate": [1822585.2, 5751165.3],
        >>> #           "features": {"roads": [{"type": "Feature", ...}]}}
"""

from __future__ import annotations

from typing import Any

import fastapi
import httpx
import pydantic

from featureinfo import engine, models, registry
from featureinfo.api import dependencies
from featureinfo.coordinate_info import CoordinateInfo, CoordinateInfoOptions
from featureinfo.core import config
from featureinfo.services import aggregate

router = fastapi.APIRouter(prefix="/api/feature-info", tags=["feature-info"])


class FeatureInfoRequest(pydantic.BaseModel):
    """A click to answer.

    Attributes:
        coordinate: Clicked coordinate in ``projection`` units.
        resolution: View resolution in map units per pixel.
        projection: View projection identifier.
        pixel: Clicked viewport pixel, informational only.
        layer_ids: Layers allowed to be queried; all registered if omitted.
        feature_count: Overrides the configured feature count.
        drill_down: Overrides the configured drill-down behaviour.
        hit_tolerance: Overrides the configured hit tolerance.
    """

    coordinate: tuple[float, float]
    resolution: float = pydantic.Field(gt=0)
    projection: str = "EPSG:3857"
    pixel: tuple[float, float] = (0.0, 0.0)
    layer_ids: list[str] | None = None
    feature_count: int | None = pydantic.Field(default=None, gt=0)
    drill_down: bool | None = None
    hit_tolerance: float | None = pydantic.Field(default=None, ge=0)


def _resolve_layers(
    layer_registry: registry.LayerRegistryProtocol,
    layer_ids: list[str] | None,
) -> list[Any]:
    if layer_ids is None:
        return [layer for _, layer in layer_registry.all()]

    layers = []
    for layer_id in layer_ids:
        layer = layer_registry.get(layer_id)
        if layer is None:
            raise fastapi.HTTPException(
                status_code=404,
                detail=f"Layer {layer_id} not found",
            )
        layers.append(layer)
    return layers


@router.post("")
async def query_feature_info(
    body: FeatureInfoRequest,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    layer_registry: registry.LayerRegistryProtocol = fastapi.Depends(  # noqa: B008
        dependencies.get_registry
    ),
    client: httpx.AsyncClient = fastapi.Depends(  # noqa: B008
        dependencies.get_http_client
    ),
) -> dict[str, Any]:
    """Return the features at a clicked coordinate, grouped by type.

    Args:
        body: The click to answer.
        settings: Application settings (injected via FastAPI Depends).
        layer_registry: Layer registry (injected via FastAPI Depends).
        client: HTTP client for the WMS requests (injected).

    Returns:
        The clicked coordinate and a mapping of feature type name to
        GeoJSON features.

    Raises:
        HTTPException: 404 if a requested layer is unknown, 502 if a WMS
            request failed or returned an unreadable payload.
    """
    query_layers = _resolve_layers(layer_registry, body.layer_ids)
    map_engine = engine.StaticMapEngine(
        layers=[layer for _, layer in layer_registry.all()],
        view=models.View(resolution=body.resolution, projection=body.projection),
        coordinate_at=lambda _pixel: body.coordinate,
    )
    options = CoordinateInfoOptions.from_settings(
        settings,
        query_layers=query_layers,
        feature_count=body.feature_count,
        drill_down=body.drill_down,
        hit_tolerance=body.hit_tolerance,
    )
    info = CoordinateInfo(
        engine=map_engine,
        click_source=engine.ClickEmitter(map_engine),
        client=client,
        options=options,
    )
    state = await info.query(
        models.ClickEvent(
            pixel=body.pixel,
            coordinate=body.coordinate,
            view_resolution=body.resolution,
            view_projection=body.projection,
        )
    )
    if state.click_coordinate is None:
        raise fastapi.HTTPException(
            status_code=502,
            detail="Feature info request failed",
        )

    return {
        "click_coordinate": list(state.click_coordinate),
        "features": {
            type_name: [aggregate.to_geojson(record) for record in records]
            for type_name, records in state.features.items()
        },
    }
