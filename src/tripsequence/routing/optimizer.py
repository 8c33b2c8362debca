"""
Stop sequencing for one itinerary day.

Two stages, both pure functions over index permutations:
1. nearest-neighbor construction (greedy, ties go to the earliest input stop),
2. 2-opt local search on the open path (no return-to-start leg).

Time-block mode keeps every stop inside its part of the day: blocks are ordered
morning -> afternoon -> evening -> night -> unspecified, each block is built with
nearest neighbor, and 2-opt only reverses segments that stay inside one block.
"""

from __future__ import annotations

import logging
from typing import Sequence

from tripsequence.config.overrides import apply_settings_overrides
from tripsequence.config.settings import RoutingSettings, Settings, get_settings
from tripsequence.core.geo import Coordinate, estimate_walking_minutes, haversine_km, path_distance_km
from tripsequence.domain.models import (
    TIME_BLOCK_ORDER,
    Improvement,
    OptimizationResult,
    OptimizeRequest,
    Route,
    Stop,
    TimeBlock,
    ensure_unique_ids,
)

logger = logging.getLogger(__name__)

# A 2-opt move must beat the current path by more than this (km) to count.
IMPROVEMENT_EPSILON_KM = 1e-12


def nearest_index(coords: Sequence[Coordinate], target: Coordinate) -> int:
    """Index of the coordinate closest to `target` (first one on ties)."""
    if not coords:
        raise ValueError("nearest_index needs at least one coordinate")
    best_i = 0
    best_d = haversine_km(target, coords[0])
    for i in range(1, len(coords)):
        d = haversine_km(target, coords[i])
        if d < best_d:
            best_i, best_d = i, d
    return best_i


def nearest_neighbor_order(coords: Sequence[Coordinate], start_index: int = 0) -> list[int]:
    """Greedy visiting order: always go to the closest unvisited point next."""
    n = len(coords)
    if n == 0:
        return []
    if not 0 <= start_index < n:
        raise ValueError(f"start_index {start_index} out of range for {n} stops")

    visited = [False] * n
    order = [start_index]
    visited[start_index] = True
    current = start_index
    while len(order) < n:
        nearest = -1
        nearest_d = float("inf")
        for i in range(n):
            if visited[i]:
                continue
            d = haversine_km(coords[current], coords[i])
            if d < nearest_d:
                nearest, nearest_d = i, d
        order.append(nearest)
        visited[nearest] = True
        current = nearest
    return order


def two_opt_order(
    coords: Sequence[Coordinate],
    order: Sequence[int],
    *,
    max_iterations: int = 100,
    blocks: Sequence[object] | None = None,
) -> tuple[list[int], int]:
    """Improve an open path by reversing segments while that shortens it.

    Reverses positions `i+1..j` for edge pairs `(i, i+1)` / `(j, j+1)` whenever the swap
    strictly shortens the path. `j` never reaches the last position, so the first and the
    last stop stay where they are. With `blocks` (one key per position), a reversal is
    only allowed when the whole segment shares one key.

    Returns the new order and the number of full passes run.
    """
    route = list(order)
    n = len(route)
    if blocks is not None and len(blocks) != n:
        raise ValueError("blocks must have one entry per position")
    keys = list(blocks) if blocks is not None else None

    def dist(a: int, b: int) -> float:
        return haversine_km(coords[route[a]], coords[route[b]])

    passes = 0
    improved = True
    while improved and passes < max_iterations:
        improved = False
        passes += 1
        for i in range(n - 2):
            for j in range(i + 2, n - 1):
                if keys is not None and keys[i + 1] != keys[j]:
                    continue
                current = dist(i, i + 1) + dist(j, j + 1)
                candidate = dist(i, j) + dist(i + 1, j + 1)
                if candidate < current - IMPROVEMENT_EPSILON_KM:
                    route[i + 1 : j + 1] = reversed(route[i + 1 : j + 1])
                    improved = True

    if improved and passes:
        logger.warning("2-opt stopped at the %d pass limit before converging (%d stops)", max_iterations, n)
    return route, passes


def group_by_time_block(stops: Sequence[Stop]) -> dict[TimeBlock, list[int]]:
    """Stop indices per time block, blocks in canonical day order (empty blocks omitted)."""
    groups: dict[TimeBlock, list[int]] = {block: [] for block in TIME_BLOCK_ORDER}
    for i, stop in enumerate(stops):
        groups[stop.effective_time_block].append(i)
    return {block: idx for block, idx in groups.items() if idx}


def _is_block_consistent(stops: Sequence[Stop], order: Sequence[int]) -> bool:
    ranks = [TIME_BLOCK_ORDER.index(stops[i].effective_time_block) for i in order]
    return all(a <= b for a, b in zip(ranks, ranks[1:]))


def _time_block_order(
    stops: Sequence[Stop], coords: Sequence[Coordinate], start_location: Coordinate | None
) -> list[int]:
    order: list[int] = []
    for block, members in group_by_time_block(stops).items():
        member_coords = [coords[i] for i in members]
        # Each block is seeded next to where the previous block ended.
        anchor = coords[order[-1]] if order else start_location
        start = nearest_index(member_coords, anchor) if anchor is not None else 0
        local = nearest_neighbor_order(member_coords, start)
        order.extend(members[k] for k in local)
        logger.debug("time block %s: %d stops", block, len(members))
    return order


def _order_distance(coords: Sequence[Coordinate], order: Sequence[int]) -> float:
    return path_distance_km([coords[i] for i in order])


def optimize_route(
    stops: Sequence[Stop],
    *,
    respect_time_blocks: bool | None = None,
    use_two_opt: bool | None = None,
    start_location: Coordinate | None = None,
    settings: RoutingSettings | None = None,
) -> OptimizationResult:
    """Reorder `stops` to (approximately) minimize total walking distance.

    The optimized route is never longer than the input order, except when the input
    order itself mixes up the parts of the day (time-block mode) or does not start at
    the stop nearest `start_location`; the route always starts at that stop.
    """
    cfg = settings or get_settings().routing
    respect_time_blocks = cfg.respect_time_blocks if respect_time_blocks is None else respect_time_blocks
    use_two_opt = cfg.use_two_opt if use_two_opt is None else use_two_opt

    stops = list(stops)
    ensure_unique_ids([s.id for s in stops], kind="stop")
    coords = [s.coordinate for s in stops]
    original = Route.from_stops(stops)
    identity = list(range(len(stops)))

    meta: dict[str, object] = {
        "respect_time_blocks": respect_time_blocks,
        "use_two_opt": use_two_opt,
        "two_opt_passes": 0,
        "strategy": "input",
    }

    if len(stops) < 2:
        return _result(original, original, cfg, meta)

    if respect_time_blocks:
        order = _time_block_order(stops, coords, start_location)
        strategy = "time_blocks"
    else:
        start = nearest_index(coords, start_location) if start_location is not None else 0
        order = nearest_neighbor_order(coords, start)
        strategy = "nearest_neighbor"

    two_opt = use_two_opt and len(stops) > cfg.two_opt_min_stops
    if two_opt:
        keys = [stops[i].effective_time_block for i in order] if respect_time_blocks else None
        order, passes = two_opt_order(coords, order, max_iterations=cfg.max_two_opt_iterations, blocks=keys)
        meta["two_opt_passes"] = passes
        strategy += "+two_opt"

    # Greedy construction can lose to a good input order; keep whichever is shorter.
    # 2-opt keeps endpoints, so the input order can only win when it already starts
    # at the stop nearest `start_location`.
    if not respect_time_blocks or _is_block_consistent(stops, identity):
        if start_location is not None and order[0] != identity[0]:
            meta["input_fallback"] = "skipped_start_location"
        else:
            fallback = identity
            if two_opt:
                keys = [s.effective_time_block for s in stops] if respect_time_blocks else None
                fallback, _ = two_opt_order(
                    coords, identity, max_iterations=cfg.max_two_opt_iterations, blocks=keys
                )
            if _order_distance(coords, fallback) < _order_distance(coords, order):
                order = fallback
                strategy = "input+two_opt" if two_opt else "input"

    meta["strategy"] = strategy
    optimized = Route.from_stops([stops[i] for i in order])
    logger.debug(
        "optimized %d stops via %s: %.3f km -> %.3f km",
        len(stops),
        strategy,
        original.total_distance_km,
        optimized.total_distance_km,
    )
    return _result(original, optimized, cfg, meta)


def _result(original: Route, optimized: Route, cfg: RoutingSettings, meta: dict) -> OptimizationResult:
    saved = max(0.0, original.total_distance_km - optimized.total_distance_km)
    percent = saved / original.total_distance_km * 100 if original.total_distance_km > 0 else 0.0
    return OptimizationResult(
        original_route=original,
        optimized_route=optimized,
        improvement=Improvement(
            distance_saved_km=saved,
            percent_improvement=min(100.0, percent),
            time_saved_minutes=estimate_walking_minutes(saved, speed_kmh=cfg.walking_speed_kmh),
        ),
        meta=meta,
    )


def plan_route(request: OptimizeRequest, *, settings: Settings | None = None) -> OptimizationResult:
    """Run `optimize_route` for a validated request (per-request overrides applied)."""
    settings = apply_settings_overrides(settings or get_settings(), request.settings_overrides)
    return optimize_route(
        request.stops,
        respect_time_blocks=request.respect_time_blocks,
        use_two_opt=request.use_two_opt,
        start_location=request.start_location,
        settings=settings.routing,
    )
