"""Tests for the static map engine and the click emitter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from featureinfo import engine, models, sources

if TYPE_CHECKING:
    from collections.abc import Callable

VIEW = models.View(resolution=4.0, projection="EPSG:4326")


def test_layers_at_pixel_top_most_first(
    image_layer: Callable[..., sources.ImageLayer],
) -> None:
    """Test hit order and that hidden or filtered layers are skipped."""
    bottom = image_layer("topp:roads")
    hidden = image_layer("topp:hidden")
    hidden.visible = False
    filtered = image_layer("topp:filtered")
    top = image_layer("topp:rivers")
    map_engine = engine.StaticMapEngine([bottom, hidden, filtered, top], VIEW)
    hits = map_engine.layers_at_pixel(
        (0.0, 0.0),
        lambda layer: layer is not filtered,
        5.0,
    )
    assert hits == [top, bottom]


def test_layers_at_pixel_checks_extent() -> None:
    inside = sources.ImageLayer(source=None, extent=(0.0, 0.0, 10.0, 10.0))
    outside = sources.ImageLayer(source=None, extent=(20.0, 20.0, 30.0, 30.0))
    map_engine = engine.StaticMapEngine(
        [inside, outside],
        VIEW,
        coordinate_at=lambda pixel: (5.0, 5.0),
    )
    assert map_engine.layers_at_pixel((1.0, 1.0), lambda layer: True, 0.0) == [
        inside
    ]


def test_click_emitter_stamps_view_and_dispatches() -> None:
    """Test that listeners receive the click with the current view."""
    map_engine = engine.StaticMapEngine([], VIEW)
    emitter = engine.ClickEmitter(map_engine)
    received: list[models.ClickEvent] = []
    emitter.on_click(received.append)

    event = emitter.click((3.0, 4.0), (15.0, 45.0))

    assert received == [event]
    assert event.view_resolution == 4.0
    assert event.view_projection == "EPSG:4326"
    assert event.coordinate == (15.0, 45.0)


def test_click_emitter_unsubscribe() -> None:
    emitter = engine.ClickEmitter(engine.StaticMapEngine([], VIEW))
    received: list[models.ClickEvent] = []
    emitter.on_click(received.append)
    emitter.un_click(received.append)
    emitter.un_click(received.append)
    emitter.click((0.0, 0.0), (0.0, 0.0))
    assert received == []
    assert emitter.listener_count == 0


def test_layers_at_pixel_ignores_hit_tolerance() -> None:
    """Test that extents are checked exactly whatever the tolerance."""
    layer = sources.ImageLayer(source=None, extent=(0.0, 0.0, 10.0, 10.0))
    map_engine = engine.StaticMapEngine(
        [layer],
        VIEW,
        coordinate_at=lambda pixel: (10.5, 5.0),
    )
    assert map_engine.layers_at_pixel((0.0, 0.0), lambda layer: True, 0.0) == []
    assert map_engine.layers_at_pixel((0.0, 0.0), lambda layer: True, 50.0) == []
