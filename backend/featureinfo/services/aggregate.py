"""GeoJSON parsing and grouping of feature-info results.

WMS servers such as GeoServer return feature identifiers of the form
``<type name>.<feature id>`` (``roads.42``). Features are grouped under the
part before the first separator. Features without an identifier, or whose
identifier has no separator, are kept under the untyped bucket ``""``
rather than dropped.

Example:
    Group a GeoServer response:
        >>> from featureinfo.services import aggregate
        >>> result = aggregate.aggregate([{
        ...     "type": "FeatureCollection",
        ...     "features": [
        ...         {"type": "Feature", "id": "roads.1",
        ...          "geometry": {"type": "Point", "coordinates": [1, 2]},
        ...          "properties": {"name": "Ilica"}},
        ...     ],
        ... }])
        >>> list(result)
        ['roads']
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import shapely.errors
import shapely.geometry
from loguru import logger

from featureinfo import models
from featureinfo.core import errors

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shapely.geometry.base import BaseGeometry


def type_name_for(feature_id: str) -> str:
    """Feature type name encoded in ``feature_id``.

    Returns:
        The prefix before the first separator, or the untyped bucket when
        the identifier has no separator.
    """
    type_name, separator, _ = feature_id.partition(models.TYPE_SEPARATOR)
    if not separator:
        return models.UNTYPED_BUCKET

    return type_name


def _read_geometry(geometry: Any) -> BaseGeometry | None:
    if geometry is None:
        return None

    try:
        return shapely.geometry.shape(geometry)
    except (
        shapely.errors.ShapelyError,
        AttributeError,
        IndexError,
        KeyError,
        TypeError,
        ValueError,
    ) as exc:
        raise errors.PayloadParseError(f"Invalid GeoJSON geometry: {exc}") from exc


def read_feature(feature: Any) -> models.FeatureRecord:
    """Convert one GeoJSON feature object into a :class:`FeatureRecord`.

    Raises:
        PayloadParseError: If ``feature`` is not a GeoJSON feature.
    """
    if not isinstance(feature, dict):
        raise errors.PayloadParseError(f"Expected a GeoJSON feature, got {feature!r}")

    raw_id = feature.get("id")
    feature_id = "" if raw_id is None else str(raw_id)
    type_name = type_name_for(feature_id)
    if type_name == models.UNTYPED_BUCKET:
        logger.warning(
            f"Feature id {feature_id!r} carries no type name, "
            f"grouping it as untyped"
        )

    properties = feature.get("properties") or {}
    if not isinstance(properties, dict):
        raise errors.PayloadParseError(
            f"Feature {feature_id!r} has non-object properties"
        )

    return models.FeatureRecord(
        id=feature_id,
        type_name=type_name,
        geometry=_read_geometry(feature.get("geometry")),
        properties=dict(properties),
    )


def parse_features(payload: Any) -> list[models.FeatureRecord]:
    """Read the features of a GeoJSON FeatureCollection or Feature.

    Raises:
        PayloadParseError: If ``payload`` is neither.
    """
    if not isinstance(payload, dict):
        raise errors.PayloadParseError("Feature-info payload is not a JSON object")

    payload_type = payload.get("type")
    if payload_type == "Feature":
        return [read_feature(payload)]

    if payload_type == "FeatureCollection":
        features = payload.get("features")
        if not isinstance(features, list):
            raise errors.PayloadParseError(
                "FeatureCollection has no 'features' array"
            )
        return [read_feature(feature) for feature in features]

    raise errors.PayloadParseError(
        f"Unsupported GeoJSON payload type {payload_type!r}"
    )


def aggregate(payloads: Iterable[Any]) -> models.AggregationResult:
    """Group the features of all ``payloads`` by type name.

    Args:
        payloads: Decoded feature-info responses in batch order.

    Returns:
        Mapping of type name to features, in payload then feature order.
    """
    features: models.AggregationResult = {}
    for payload in payloads:
        for record in parse_features(payload):
            features.setdefault(record.type_name, []).append(record)
    return features


def to_geojson(record: models.FeatureRecord) -> dict[str, Any]:
    """Serialize ``record`` back into a GeoJSON feature object."""
    return {
        "type": "Feature",
        "id": record.id,
        "geometry": (
            None
            if record.geometry is None
            else shapely.geometry.mapping(record.geometry)
        ),
        "properties": record.properties,
    }
