"""WMS data sources and map layers that can answer feature-info queries.

Two source families support WMS GetFeatureInfo: :class:`ImageWmsSource`
(one image per view) and :class:`TileWmsSource` (a tiled WMS cut on a
:class:`TileGrid`). Both build a GetFeatureInfo URL for a coordinate,
resolution and projection through ``build_feature_info_url``. Layers wrap a
source and are owned by the host application; the aggregator only keeps
references to them.

The request window mirrors what a browser map engine would send: a
101x101 pixel image centred on the coordinate for single-image sources and
the tile containing the coordinate for tiled sources. WMS 1.3 with a CRS
whose first axis points north gets its BBOX axes swapped.

Example:
    Build a GetFeatureInfo URL for a single-image WMS layer:
        >>> from featureinfo.sources import ImageLayer, ImageWmsSource
        >>> source = ImageWmsSource(
        ...     url="https://wms.example/geoserver/wms",
        ...     params={"LAYERS": "topp:roads"},
        ... )
        >>> layer = ImageLayer(source=source, name="roads")
        >>> url = source.build_feature_info_url(
        ...     (1822585.2, 5751165.3),
        ...     38.21,
        ...     "EPSG:3857",
        ...     {"INFO_FORMAT": "application/json", "FEATURE_COUNT": 1},
        ... )
"""

from __future__ import annotations

import dataclasses
import functools
import math
from typing import TYPE_CHECKING, Any

import httpx
import pyproj
import pyproj.exceptions

if TYPE_CHECKING:
    from collections.abc import Mapping

    from featureinfo.models import Coordinate

BBox = tuple[float, float, float, float]

DEFAULT_WMS_VERSION = "1.3.0"
GETFEATUREINFO_IMAGE_SIZE = (101, 101)

WEB_MERCATOR_HALF_WORLD = 20037508.342789244
PROJECTION_EXTENTS: dict[str, BBox] = {
    "EPSG:3857": (
        -WEB_MERCATOR_HALF_WORLD,
        -WEB_MERCATOR_HALF_WORLD,
        WEB_MERCATOR_HALF_WORLD,
        WEB_MERCATOR_HALF_WORLD,
    ),
    "EPSG:4326": (-180.0, -90.0, 180.0, 90.0),
}


def _is_v13(version: str) -> bool:
    """Whether a WMS version string is 1.3 or newer."""
    parts = [int(part) for part in version.split(".") if part.isdigit()]
    return tuple(parts[:2]) >= (1, 3)


@functools.lru_cache(maxsize=64)
def is_north_east(projection: str) -> bool:
    """Whether the first axis of ``projection`` is northing.

    Unknown projection identifiers are treated as east-north.
    """
    try:
        crs = pyproj.CRS.from_user_input(projection)
    except pyproj.exceptions.CRSError:
        return False

    axes = crs.axis_info
    return bool(axes) and axes[0].direction.lower() in ("north", "south")


def _request_params(
    params: Mapping[str, Any],
    request: str,
) -> dict[str, Any]:
    """Default WMS request parameters overlaid with the source params."""
    merged: dict[str, Any] = {
        "SERVICE": "WMS",
        "VERSION": DEFAULT_WMS_VERSION,
        "REQUEST": request,
        "FORMAT": "image/png",
        "STYLES": "",
        "TRANSPARENT": True,
    }
    merged.update(params)
    return merged


def _request_url(
    base_url: str,
    extent: BBox,
    size: tuple[int, int],
    projection: str,
    params: dict[str, Any],
) -> str:
    """Append size, projection and BBOX to ``params`` and encode the URL."""
    params["WIDTH"] = size[0]
    params["HEIGHT"] = size[1]
    v13 = _is_v13(str(params["VERSION"]))
    params["CRS" if v13 else "SRS"] = projection
    if v13 and is_north_east(projection):
        bbox = (extent[1], extent[0], extent[3], extent[2])
    else:
        bbox = extent
    params["BBOX"] = ",".join(repr(float(v)) for v in bbox)
    query = {key: value for key, value in params.items() if value is not None}
    return str(httpx.URL(base_url).copy_merge_params(query))


def _feature_info_params(
    source_params: Mapping[str, Any],
    params: Mapping[str, Any],
) -> dict[str, Any]:
    base: dict[str, Any] = {"QUERY_LAYERS": source_params.get("LAYERS")}
    base.update(_request_params(source_params, "GetFeatureInfo"))
    base.update(params)
    return base


def _set_pixel(params: dict[str, Any], x: int, y: int) -> None:
    v13 = _is_v13(str(params["VERSION"]))
    params["I" if v13 else "X"] = x
    params["J" if v13 else "Y"] = y


@dataclasses.dataclass
class ImageWmsSource:
    """Single-image WMS source.

    Attributes:
        url: WMS endpoint base URL.
        params: Static WMS parameters; must contain ``LAYERS``.
    """

    url: str
    params: dict[str, Any] = dataclasses.field(default_factory=dict)

    def build_feature_info_url(
        self,
        coordinate: Coordinate,
        resolution: float,
        projection: str,
        params: Mapping[str, Any],
    ) -> str | None:
        """Return a GetFeatureInfo URL for ``coordinate`` or None.

        Args:
            coordinate: Clicked coordinate in ``projection`` units.
            resolution: View resolution in map units per pixel.
            projection: Projection identifier of the view.
            params: Extra request parameters (``INFO_FORMAT`` etc.).

        Returns:
            The encoded URL, or None when the source has no URL.
        """
        if not self.url:
            return None

        width, height = GETFEATUREINFO_IMAGE_SIZE
        dx = resolution * width / 2
        dy = resolution * height / 2
        extent = (
            coordinate[0] - dx,
            coordinate[1] - dy,
            coordinate[0] + dx,
            coordinate[1] + dy,
        )
        request_params = _feature_info_params(self.params, params)
        _set_pixel(
            request_params,
            math.floor((coordinate[0] - extent[0]) / resolution),
            math.floor((extent[3] - coordinate[1]) / resolution),
        )
        return _request_url(
            self.url,
            extent,
            GETFEATUREINFO_IMAGE_SIZE,
            projection,
            request_params,
        )


@dataclasses.dataclass(frozen=True)
class TileGrid:
    """Top-left anchored tile grid.

    Attributes:
        origin: Top-left corner of the grid.
        resolutions: Resolutions per zoom level, largest first.
        tile_size: Tile edge length in pixels.
    """

    origin: Coordinate
    resolutions: tuple[float, ...]
    tile_size: int = 256

    @classmethod
    def for_extent(
        cls,
        extent: BBox,
        tile_size: int = 256,
        max_zoom: int = 42,
    ) -> TileGrid:
        """Build a power-of-two grid covering ``extent`` at zoom 0."""
        width = extent[2] - extent[0]
        height = extent[3] - extent[1]
        max_resolution = max(width, height) / tile_size
        return cls(
            origin=(extent[0], extent[3]),
            resolutions=tuple(
                max_resolution / 2**z for z in range(max_zoom + 1)
            ),
            tile_size=tile_size,
        )

    def z_for_resolution(self, resolution: float) -> int:
        """Zoom level whose resolution is nearest to ``resolution``."""
        return min(
            range(len(self.resolutions)),
            key=lambda z: abs(self.resolutions[z] - resolution),
        )

    def tile_coord(self, coordinate: Coordinate, z: int) -> tuple[int, int, int]:
        span = self.resolutions[z] * self.tile_size
        x = math.floor((coordinate[0] - self.origin[0]) / span)
        y = math.floor((self.origin[1] - coordinate[1]) / span)
        return z, x, y

    def tile_extent(self, tile_coord: tuple[int, int, int]) -> BBox:
        z, x, y = tile_coord
        span = self.resolutions[z] * self.tile_size
        min_x = self.origin[0] + x * span
        max_y = self.origin[1] - y * span
        return min_x, max_y - span, min_x + span, max_y


@dataclasses.dataclass
class TileWmsSource:
    """Tiled WMS source.

    Without an explicit ``tile_grid`` a default grid is derived from the
    view projection's extent for EPSG:3857 and EPSG:4326.

    Attributes:
        url: WMS endpoint base URL.
        params: Static WMS parameters; must contain ``LAYERS``.
        tile_grid: Grid the tiles are cut on.
        tile_size: Tile size used for derived grids.
        gutter: Extra pixels rendered around each tile.
    """

    url: str
    params: dict[str, Any] = dataclasses.field(default_factory=dict)
    tile_grid: TileGrid | None = None
    tile_size: int = 256
    gutter: int = 0

    def grid_for_projection(self, projection: str) -> TileGrid | None:
        if self.tile_grid is not None:
            return self.tile_grid

        extent = PROJECTION_EXTENTS.get(projection.upper())
        if extent is None:
            return None

        return TileGrid.for_extent(extent, self.tile_size)

    def build_feature_info_url(
        self,
        coordinate: Coordinate,
        resolution: float,
        projection: str,
        params: Mapping[str, Any],
    ) -> str | None:
        """Return a GetFeatureInfo URL for the tile under ``coordinate``.

        Returns None when no grid is known for ``projection`` or the source
        has no URL.
        """
        grid = self.grid_for_projection(projection)
        if grid is None or not self.url:
            return None

        z = grid.z_for_resolution(resolution)
        tile_resolution = grid.resolutions[z]
        tile_coord = grid.tile_coord(coordinate, z)
        min_x, min_y, max_x, max_y = grid.tile_extent(tile_coord)
        if self.gutter:
            pad = self.gutter * tile_resolution
            min_x, min_y, max_x, max_y = (
                min_x - pad,
                min_y - pad,
                max_x + pad,
                max_y + pad,
            )

        request_params = _feature_info_params(self.params, params)
        _set_pixel(
            request_params,
            math.floor((coordinate[0] - min_x) / tile_resolution),
            math.floor((max_y - coordinate[1]) / tile_resolution),
        )
        size = grid.tile_size + 2 * self.gutter
        return _request_url(
            self.url,
            (min_x, min_y, max_x, max_y),
            (size, size),
            projection,
            request_params,
        )


@dataclasses.dataclass
class VectorSource:
    """Client-side vector data; cannot answer GetFeatureInfo."""

    features: list[dict[str, Any]] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(eq=False)
class Layer:
    """A map layer owned by the host application.

    Layers compare by identity: two layers with identical configuration are
    still different layers.

    Attributes:
        source: Data source backing the layer.
        name: Human-readable name.
        visible: Hidden layers are never hit.
        extent: Optional (minx, miny, maxx, maxy) outside which the layer
            is never hit.
    """

    source: Any
    name: str = ""
    visible: bool = True
    extent: BBox | None = None

    def covers(self, coordinate: Coordinate) -> bool:
        if self.extent is None:
            return True

        min_x, min_y, max_x, max_y = self.extent
        return min_x <= coordinate[0] <= max_x and min_y <= coordinate[1] <= max_y


class ImageLayer(Layer):
    """Layer rendered as one image per view."""


class TileLayer(Layer):
    """Layer rendered from tiles."""


class VectorLayer(Layer):
    """Layer rendered from client-side vector features."""
