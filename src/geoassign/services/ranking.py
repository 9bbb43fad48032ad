"""Nearest-branch selection by road distance."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..errors import ProviderError
from ..models.domain import Branch, BranchWithDistance, Coordinate, RankingResult, RouteLeg
from .providers.routing import RouteDistanceClient

logger = logging.getLogger(__name__)


def candidate_branches(branches: Sequence[Branch]) -> list[Branch]:
    """Branches that can be ranked: accepting orders and with a known coordinate."""

    return [branch for branch in branches if branch.coordinate is not None and branch.is_accepting_orders]


class BranchRanker:
    def __init__(self, route_client: RouteDistanceClient) -> None:
        self.route_client = route_client

    async def measure(self, branch: Branch, destination: Coordinate) -> Optional[RouteLeg]:
        """One leg from ``branch`` to ``destination``; None when unavailable."""

        if branch.coordinate is None:
            return None
        try:
            return await self.route_client.route_distance(branch.coordinate, destination)
        except ProviderError as exc:
            logger.warning(f"Route unavailable for branch {branch.id}: {exc}")
            return None

    async def rank(self, branches: Sequence[Branch], destination: Coordinate) -> RankingResult:
        """Measure every candidate concurrently and pick the shortest leg.

        Branches whose leg is unavailable are left out. Equal distances keep
        the order the branches were supplied in.
        """

        candidates = candidate_branches(branches)
        if not candidates:
            return RankingResult()

        legs = await asyncio.gather(*(self.measure(branch, destination) for branch in candidates))

        ranked = [
            BranchWithDistance(branch=branch, leg=leg)
            for branch, leg in zip(candidates, legs)
            if leg is not None
        ]
        skipped = len(candidates) - len(ranked)
        if skipped:
            logger.info(f"Skipped {skipped}/{len(candidates)} branches without a route to {destination}")

        # sorted() is stable, so ties keep supply order
        ranked = sorted(ranked, key=lambda item: item.distance_km)
        return RankingResult(ranked=ranked, nearest=ranked[0] if ranked else None)
