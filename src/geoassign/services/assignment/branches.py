"""Backfill of missing branch coordinates from their street address."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Sequence

from ...data.reference_repository import save_branch_coordinates
from ...errors import AddressNotFound, ProviderError
from ...models.domain import Branch, Coordinate
from ..providers.geocoding import GeocodingClient

logger = logging.getLogger(__name__)


async def ensure_branch_coordinates(
    branches: Sequence[Branch],
    geocoder: GeocodingClient,
    *,
    persist: Callable[[str, Coordinate], bool] = save_branch_coordinates,
) -> list[Branch]:
    """Geocode branches that have an address but no coordinate.

    Resolved coordinates are written back so later sessions can rank the
    branch without geocoding it again. Branches that cannot be resolved are
    returned unchanged and stay manual-only.
    """

    updated: list[Branch] = []
    for branch in branches:
        if branch.coordinate is not None or not branch.address:
            updated.append(branch)
            continue
        try:
            found = await geocoder.geocode(branch.address)
        except (AddressNotFound, ProviderError) as exc:
            logger.warning(f"Could not geocode branch {branch.id} address '{branch.address}': {exc}")
            updated.append(branch)
            continue

        if not await asyncio.to_thread(persist, branch.id, found.coordinate):
            logger.info(f"Branch {branch.id} coordinates resolved but not saved")
        updated.append(replace(branch, coordinate=found.coordinate))
    return updated
