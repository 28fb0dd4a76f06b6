"""Layer eligibility for feature-info queries.

A layer hit at the clicked pixel is queried only when its source is a WMS
source able to answer GetFeatureInfo and the caller explicitly allowed it.
Membership is by identity: a different layer instance with the same
configuration is not allowed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from featureinfo import sources

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

QUERYABLE_SOURCES = (sources.ImageWmsSource, sources.TileWmsSource)


def is_queryable_source(source: object) -> bool:
    return isinstance(source, QUERYABLE_SOURCES)


def is_eligible(layer: Any, allowed_layers: Iterable[Any]) -> bool:
    """Whether ``layer`` may be queried for feature info.

    Args:
        layer: Layer candidate reported by the map engine hit test.
        allowed_layers: Layers the caller permits to be queried.

    Returns:
        True if the layer has a WMS source and is one of ``allowed_layers``.
    """
    source = getattr(layer, "source", None)
    if not is_queryable_source(source):
        return False

    return any(layer is allowed for allowed in allowed_layers)


def make_layer_filter(allowed_layers: Iterable[Any]) -> Callable[[Any], bool]:
    """Bind ``allowed_layers`` into a filter for the map engine hit test."""
    allowed = list(allowed_layers)

    def layer_filter(layer: Any) -> bool:
        return is_eligible(layer, allowed)

    return layer_filter
