"""GetFeatureInfo request building and batching.

Each eligible layer produces one GetFeatureInfo URL for the click. URLs
aimed at the same WMS endpoint with the same static parameters differ only
in the per-layer parameters (``LAYERS``, ``QUERY_LAYERS`` and ``STYLES``),
so WMS lets them be sent as one request listing all layers. Batches keep
the first-seen order of their queries.

Example:
    Two layers on one GeoServer become one request:
        >>> from featureinfo.services import batching
        >>> batches = batching.bundle_requests([
        ...     "https://wms.example/wms?REQUEST=GetFeatureInfo&LAYERS=a"
        ...     "&QUERY_LAYERS=a&STYLES=",
        ...     "https://wms.example/wms?REQUEST=GetFeatureInfo&LAYERS=b"
        ...     "&QUERY_LAYERS=b&STYLES=",
        ... ])
        >>> len(batches)
        1
        >>> # batches[0].url lists LAYERS=a,b and QUERY_LAYERS=a,b
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from featureinfo import models
from featureinfo.core import errors

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

INFO_FORMAT = "application/json"
BUNDLE_PARAMS = ("LAYERS", "QUERY_LAYERS", "STYLES")


def feature_info_params(feature_count: int) -> dict[str, Any]:
    return {"INFO_FORMAT": INFO_FORMAT, "FEATURE_COUNT": feature_count}


def build_query_url(
    layer: Any,
    click: models.ClickEvent,
    feature_count: int,
) -> str:
    """Ask ``layer``'s source for a GetFeatureInfo URL for ``click``.

    Args:
        layer: Layer whose source builds the URL.
        click: The click being answered.
        feature_count: Maximum number of features per layer.

    Returns:
        The GetFeatureInfo URL.

    Raises:
        BuildQueryError: If the source cannot build a URL.
    """
    build = getattr(getattr(layer, "source", None), "build_feature_info_url", None)
    if build is None:
        raise errors.BuildQueryError(
            f"Layer {layer!r} has no feature-info capable source"
        )

    try:
        url = build(
            click.coordinate,
            click.view_resolution,
            click.view_projection,
            feature_info_params(feature_count),
        )
    except Exception as exc:  # noqa: BLE001
        raise errors.BuildQueryError(
            f"Layer {layer!r} failed to build a feature-info URL: {exc}"
        ) from exc

    if not url:
        raise errors.BuildQueryError(
            f"Layer {layer!r} returned no feature-info URL"
        )

    return str(url)


def build_layer_queries(
    click: models.ClickEvent,
    hit_layers: Iterable[Any],
    feature_count: int,
    drill_down: bool = True,
) -> list[models.LayerQuery]:
    """Build one query per hit layer, in hit order.

    Layers that fail to build a URL are logged and skipped. With
    ``drill_down`` disabled only the first hit layer is considered.

    Args:
        click: The click being answered.
        hit_layers: Eligible layers, top-most first.
        feature_count: Maximum number of features per layer.
        drill_down: Query every hit layer instead of the top-most one.

    Returns:
        The successfully built layer queries.
    """
    queries: list[models.LayerQuery] = []
    for layer in hit_layers:
        try:
            url = build_query_url(layer, click, feature_count)
        except errors.BuildQueryError as exc:
            logger.warning(f"Skipping layer in feature-info query: {exc}")
        else:
            queries.append(models.LayerQuery(layer=layer, url=url))

        if not drill_down:
            break

    return queries


def _is_bundle_param(key: str) -> bool:
    return key.upper() in BUNDLE_PARAMS


def group_key(url: str) -> str | None:
    """Endpoint and static parameters of ``url``; None if not bundleable.

    URLs without a ``LAYERS`` parameter cannot be merged.
    """
    parsed = httpx.URL(url)
    if not any(key.upper() == "LAYERS" for key in parsed.params.keys()):
        return None

    base = str(parsed.copy_with(query=None, fragment=None))
    static = sorted(
        (key.upper(), value)
        for key, value in parsed.params.multi_items()
        if not _is_bundle_param(key)
    )
    return f"{base}?{httpx.QueryParams(static)}"


def _merge_urls(urls: Sequence[str]) -> str:
    """Merge URLs of one group, joining per-layer parameters with commas."""
    first = httpx.URL(urls[0])
    joined: dict[str, list[str]] = {name: [] for name in BUNDLE_PARAMS}
    for url in urls:
        params = {
            key.upper(): value for key, value in httpx.URL(url).params.items()
        }
        for name in BUNDLE_PARAMS:
            joined[name].append(params.get(name, ""))

    items: list[tuple[str, str]] = []
    seen: set[str] = set()
    for key, value in first.params.multi_items():
        name = key.upper()
        if name in BUNDLE_PARAMS:
            if name not in seen:
                items.append((key, ",".join(joined[name])))
                seen.add(name)
        else:
            items.append((key, value))

    return str(first.copy_with(params=httpx.QueryParams(items)))


def bundle_requests(urls: Iterable[str]) -> list[models.BatchedRequest]:
    """Group feature-info URLs into the fewest WMS requests.

    Args:
        urls: Per-layer GetFeatureInfo URLs in query order.

    Returns:
        Batched requests ordered by the first appearance of their URLs.
    """
    groups: dict[str, list[str]] = {}
    for index, url in enumerate(urls):
        key = group_key(url)
        if key is None:
            groups[f"{url}#{index}"] = [url]
        else:
            groups.setdefault(key, []).append(url)

    batches = []
    for key, group in groups.items():
        url = group[0] if len(group) == 1 else _merge_urls(group)
        batches.append(models.BatchedRequest(group_key=key, urls=group, url=url))
    return batches


def build_batches(
    click: models.ClickEvent,
    hit_layers: Iterable[Any],
    feature_count: int,
    drill_down: bool = True,
) -> list[models.BatchedRequest]:
    """Build and batch the feature-info requests for ``click``."""
    queries = build_layer_queries(click, hit_layers, feature_count, drill_down)
    return bundle_requests(query.url for query in queries)
