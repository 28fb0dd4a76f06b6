"""Map engine and click source interfaces consumed by the aggregator.

The aggregator never renders or projects anything itself. It asks a
:class:`MapEngine` which layers sit under a pixel and what the view looks
like, and it listens for :class:`~featureinfo.models.ClickEvent` objects on
a :class:`ClickSource`. Browser hosts adapt their own map to these
protocols; :class:`StaticMapEngine` and :class:`ClickEmitter` are the
server-side implementations used by the HTTP service and the tests.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from featureinfo import models

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from featureinfo.sources import Layer

LayerFilter = Callable[[Any], bool]
ClickListener = Callable[[models.ClickEvent], None]


class MapEngine(Protocol):
    """Protocol for the map a coordinate info aggregator is attached to."""

    def layers_at_pixel(
        self,
        pixel: models.Pixel,
        layer_filter: LayerFilter,
        hit_tolerance: float,
    ) -> Sequence[Any]:
        """Layers hit at ``pixel`` passing ``layer_filter``, top-most first."""
        ...

    def current_view(self) -> models.View: ...


class ClickSource(Protocol):
    """Protocol for anything emitting map clicks."""

    def on_click(self, listener: ClickListener) -> None: ...

    def un_click(self, listener: ClickListener) -> None: ...


class StaticMapEngine(MapEngine):
    """Map engine over a fixed stack of layers.

    Without rendered pixels to test against, every visible layer whose
    extent contains the clicked coordinate counts as hit. The coordinate
    is taken from ``coordinate_at`` when set, otherwise every visible layer
    is hit. The hit tolerance is accepted for protocol compatibility and
    ignored: extents are tested exactly.

    Attributes:
        layers: Layer stack, bottom-most first as in a map's layer list.
        view: Current view resolution and projection.
        coordinate_at: Pixel to coordinate conversion for extent checks.
    """

    def __init__(
        self,
        layers: Iterable[Layer],
        view: models.View,
        coordinate_at: Callable[[models.Pixel], models.Coordinate] | None = None,
    ) -> None:
        self.layers = list(layers)
        self.view = view
        self.coordinate_at = coordinate_at

    def layers_at_pixel(
        self,
        pixel: models.Pixel,
        layer_filter: LayerFilter,
        hit_tolerance: float,
    ) -> list[Layer]:
        coordinate = self.coordinate_at(pixel) if self.coordinate_at else None
        hits = []
        for layer in reversed(self.layers):
            if not layer.visible:
                continue
            if coordinate is not None and not layer.covers(coordinate):
                continue
            if layer_filter(layer):
                hits.append(layer)
        return hits

    def current_view(self) -> models.View:
        return self.view


class ClickEmitter(ClickSource):
    """Click source dispatching to registered listeners in order.

    Events are stamped with the engine's view at the moment of the click.
    """

    def __init__(self, engine: MapEngine) -> None:
        self.engine = engine
        self._listeners: list[ClickListener] = []

    def on_click(self, listener: ClickListener) -> None:
        self._listeners.append(listener)

    def un_click(self, listener: ClickListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def click(
        self,
        pixel: models.Pixel,
        coordinate: models.Coordinate,
    ) -> models.ClickEvent:
        """Emit a click at ``pixel``/``coordinate`` and return the event."""
        view = self.engine.current_view()
        event = models.ClickEvent(
            pixel=pixel,
            coordinate=coordinate,
            view_resolution=view.resolution,
            view_projection=view.projection,
        )
        for listener in list(self._listeners):
            listener(event)
        return event
