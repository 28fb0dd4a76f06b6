"""Concurrent execution of batched feature-info requests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from featureinfo.core import errors

if TYPE_CHECKING:
    from collections.abc import Sequence

    from featureinfo import models


async def fetch_payload(
    client: httpx.AsyncClient,
    batch: models.BatchedRequest,
) -> Any:
    """Send one batched request and decode its JSON body.

    Raises:
        QueryRequestError: On transport errors or non-success statuses.
        PayloadParseError: If the body is not JSON.
    """
    try:
        response = await client.get(batch.url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise errors.QueryRequestError(
            f"Feature-info request to {batch.url} failed: {exc}"
        ) from exc

    try:
        return response.json()
    except ValueError as exc:
        raise errors.PayloadParseError(
            f"Feature-info response from {batch.url} is not JSON"
        ) from exc


async def execute(
    client: httpx.AsyncClient,
    batches: Sequence[models.BatchedRequest],
) -> list[Any]:
    """Run all ``batches`` concurrently and join them.

    The join is all-or-nothing: the first failing request fails the whole
    call. Requests still in flight are not cancelled.

    Args:
        client: HTTP client shared by the aggregator.
        batches: One request per batch.

    Returns:
        Decoded payloads in batch order.
    """
    logger.debug(f"Issuing {len(batches)} feature-info request(s)")
    return list(
        await asyncio.gather(*(fetch_payload(client, batch) for batch in batches))
    )
