"""Data models for a single map click and its aggregated result.

This module defines the value types flowing through the feature-info
pipeline: the immutable :class:`ClickEvent` captured when the user clicks,
the per-layer :class:`LayerQuery` and the merged :class:`BatchedRequest`
built from it, the parsed :class:`FeatureRecord` and the externally
observable :class:`AggregatorState`.

Example:
    Describe a click in Web Mercator:
        >>> from featureinfo.models import ClickEvent
        >>> click = ClickEvent(
        ...     pixel=(120.0, 84.0),
        ...     coordinate=(1822585.2, 5751165.3),
        ...     view_resolution=38.21,
        ...     view_projection="EPSG:3857",
        ... )

    A feature parsed from a GetFeatureInfo payload:
        >>> record = FeatureRecord(
        ...     id="roads.42",
        ...     type_name="roads",
        ...     geometry=None,
        ...     properties={"name": "Ilica"},
        ... )
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

Pixel = tuple[float, float]
Coordinate = tuple[float, float]

TYPE_SEPARATOR = "."
UNTYPED_BUCKET = ""


@dataclasses.dataclass(frozen=True)
class View:
    """Resolution and projection of the map view at a point in time."""

    resolution: float
    projection: str


@dataclasses.dataclass(frozen=True)
class ClickEvent:
    """A single user click on the map.

    Attributes:
        pixel: Position of the click in map viewport pixels.
        coordinate: Position of the click in the view projection.
        view_resolution: Map units per pixel when the click happened.
        view_projection: Projection identifier, e.g. "EPSG:3857".
    """

    pixel: Pixel
    coordinate: Coordinate
    view_resolution: float
    view_projection: str


@dataclasses.dataclass(frozen=True)
class LayerQuery:
    """Feature-info URL produced by one layer for one click."""

    layer: Any
    url: str


@dataclasses.dataclass
class BatchedRequest:
    """One outbound request standing for one or more layer queries.

    Attributes:
        group_key: Base URL plus the static parameters shared by the group.
        urls: Unmerged per-layer URLs, in query order.
        url: The merged URL actually sent over the wire.
    """

    group_key: str
    urls: list[str]
    url: str


@dataclasses.dataclass
class FeatureRecord:
    """A feature returned by a feature-info service.

    Attributes:
        id: Feature identifier as returned by the service ("" if absent).
        type_name: Identifier prefix before the first separator; the
            untyped bucket ("") for identifiers without one.
        geometry: Parsed shapely geometry, None for null geometries.
        properties: Feature attributes.
    """

    id: str
    type_name: str
    geometry: BaseGeometry | None
    properties: dict[str, Any]


AggregationResult = dict[str, list[FeatureRecord]]


@dataclasses.dataclass
class AggregatorState:
    """Externally visible state of a coordinate info aggregator.

    Attributes:
        click_coordinate: Coordinate of the last committed click.
        features: Features of the last committed click, by type name.
        loading: True while the most recent click is unsettled.
    """

    click_coordinate: Coordinate | None = None
    features: AggregationResult = dataclasses.field(default_factory=dict)
    loading: bool = False
