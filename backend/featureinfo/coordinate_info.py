"""Coordinate info aggregator: feature info for the clicked coordinate.

:class:`CoordinateInfo` listens for clicks on a map, queries every allowed
WMS layer under the clicked pixel and publishes the features it found,
grouped by feature type, together with the clicked coordinate and a loading
flag. Each state change is pushed to an ``on_state_change`` callback as a
deep copy, so callers can render it without being able to corrupt it.

Clicks may overlap. Every click gets a fresh token; only the most recently
started click may commit its result. A slower, older click settling later
is ignored, whether it succeeded or failed. A failed click keeps the last
good result on display.

Example:
    Wire the aggregator to a map and print results:
        >>> import httpx
        >>> from featureinfo.coordinate_info import (
        ...     CoordinateInfo,
        ...     CoordinateInfoOptions,
        ... )
        >>> info = CoordinateInfo(
        ...     engine=engine,
        ...     click_source=emitter,
        ...     client=httpx.AsyncClient(),
        ...     options=CoordinateInfoOptions(query_layers=[roads]),
        ...     on_state_change=print,
        ... )
        >>> info.activate()
        >>> emitter.click((10, 10), (1822585.2, 5751165.3))
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
from typing import TYPE_CHECKING, Any

import pydantic
from loguru import logger

from featureinfo import models
from featureinfo.core import errors
from featureinfo.services import aggregate, batching, eligibility, executor

if TYPE_CHECKING:
    import types
    from collections.abc import Callable

    import httpx

    from featureinfo.core import config
    from featureinfo.engine import ClickSource, MapEngine


class CoordinateInfoOptions(pydantic.BaseModel):
    """Query options of a :class:`CoordinateInfo`.

    Attributes:
        query_layers: Layers that may be queried, compared by identity.
        feature_count: Maximum number of features returned per layer.
        drill_down: Query every layer under the click, not just the top one.
        hit_tolerance: Pixel radius for the map engine hit test.
    """

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)

    query_layers: list[Any] = []
    feature_count: int = pydantic.Field(default=1, gt=0)
    drill_down: bool = True
    hit_tolerance: float = pydantic.Field(default=5.0, ge=0)

    @classmethod
    def from_settings(
        cls,
        settings: config.Settings,
        **overrides: Any,
    ) -> CoordinateInfoOptions:
        """Options with defaults taken from ``settings``."""
        values: dict[str, Any] = {
            "feature_count": settings.feature_count,
            "drill_down": settings.drill_down,
            "hit_tolerance": settings.hit_tolerance,
        }
        values.update(
            {key: value for key, value in overrides.items() if value is not None}
        )
        return cls(**values)


@dataclasses.dataclass(frozen=True)
class _PendingClick:
    token: int
    coordinate: models.Coordinate
    batches: list[models.BatchedRequest]


class CoordinateInfo:
    """Aggregates feature info for clicks on a map.

    Attributes:
        engine: Map engine used for hit testing.
        click_source: Source of click events, subscribed while active.
        client: HTTP client used for feature-info requests.
        options: Query options.
        on_state_change: Called with a state snapshot on every change.
    """

    def __init__(
        self,
        engine: MapEngine,
        click_source: ClickSource,
        client: httpx.AsyncClient,
        options: CoordinateInfoOptions | None = None,
        on_state_change: Callable[[models.AggregatorState], None] | None = None,
    ) -> None:
        self.engine = engine
        self.click_source = click_source
        self.client = client
        self.options = options or CoordinateInfoOptions()
        self.on_state_change = on_state_change
        self._state = models.AggregatorState()
        self._last_token = 0
        self._active_token: int | None = None
        self._active = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> models.AggregatorState:
        """Deep copy of the current state."""
        return copy.deepcopy(self._state)

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> None:
        """Start listening for clicks."""
        if self._active:
            return

        self.click_source.on_click(self.handle_click)
        self._active = True

    def deactivate(self) -> None:
        """Stop listening for clicks and ignore clicks still in flight."""
        if not self._active:
            return

        self.click_source.un_click(self.handle_click)
        self._active = False
        self._active_token = None
        if self._state.loading:
            self._state.loading = False
            self._notify()

    def __enter__(self) -> CoordinateInfo:
        self.activate()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        self.deactivate()

    def handle_click(self, event: models.ClickEvent) -> None:
        """Click listener: start a query and settle it in the background.

        Must be called from within a running event loop. A click whose
        hit test or request building fails is logged and dropped; the click
        in flight, if any, stays current.
        """
        try:
            pending = self._begin(event)
        except Exception:  # noqa: BLE001
            logger.exception(f"Feature info for click at {event.coordinate} failed")
            return

        task = asyncio.get_running_loop().create_task(self._settle(pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def query(self, event: models.ClickEvent) -> models.AggregatorState:
        """Answer ``event`` and wait for it to settle.

        Returns:
            Snapshot of the state once this click has settled. If a newer
            click started meanwhile, the snapshot reflects that one.

        Raises:
            Exception: Whatever the map engine or a layer source raised while
                preparing the click. The state is left untouched.
        """
        await self._settle(self._begin(event))
        return self.state

    async def wait_settled(self) -> None:
        """Wait until all background clicks have settled."""
        while self._tasks:
            await asyncio.gather(*self._tasks)

    def _begin(self, event: models.ClickEvent) -> _PendingClick:
        layer_filter = eligibility.make_layer_filter(self.options.query_layers)
        hits = self.engine.layers_at_pixel(
            event.pixel,
            layer_filter,
            self.options.hit_tolerance,
        )
        batches = batching.build_batches(
            event,
            hits,
            self.options.feature_count,
            self.options.drill_down,
        )
        self._last_token += 1
        token = self._last_token
        self._active_token = token
        logger.debug(
            f"Click {token} at {event.coordinate}: {len(hits)} layer(s) hit, "
            f"{len(batches)} request(s)"
        )

        self._state.loading = True
        self._notify()
        return _PendingClick(token=token, coordinate=event.coordinate, batches=batches)

    async def _settle(self, pending: _PendingClick) -> None:
        try:
            payloads = await executor.execute(self.client, pending.batches)
            features = aggregate.aggregate(payloads)
        except errors.FeatureInfoError as exc:
            if pending.token != self._active_token:
                logger.debug(f"Ignoring failure of stale click {pending.token}")
                return

            logger.error(
                f"Feature info for click at {pending.coordinate} failed: {exc}"
            )
            self._state.loading = False
            self._notify()
            return

        if pending.token != self._active_token:
            logger.debug(f"Discarding result of stale click {pending.token}")
            return

        self._state = models.AggregatorState(
            click_coordinate=pending.coordinate,
            features=features,
            loading=False,
        )
        self._notify()

    def _notify(self) -> None:
        if self.on_state_change is not None:
            self.on_state_change(self.state)
