"""
TripSequence CLI entrypoint.

This CLI is intended for quick local demos and debugging without the API.
Input files are JSON: a list of stops (or `{"stops": [...]}`) for `optimize` / `advise`,
a list of points (or `{"points": [...]}`) for `clusters`.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tripsequence.clustering.service import query_clusters
from tripsequence.config.settings import get_settings
from tripsequence.core.format import format_distance, format_duration
from tripsequence.core.geo import Coordinate
from tripsequence.core.logging import configure_logging
from tripsequence.domain.models import Bounds, ClusterQuery, OptimizeRequest, Stop
from tripsequence.routing.advice import estimate_optimization_savings, should_optimize
from tripsequence.routing.directions import leg_directions_urls
from tripsequence.routing.optimizer import plan_route


def _load_items(path: str, key: str) -> list[Any]:
    """Read a JSON file holding either a list or an object with a `key` list."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list or an object with a '{key}' list")
    return data


def _start_location(args: argparse.Namespace) -> Coordinate | None:
    if args.start_lat is None and args.start_lng is None:
        return None
    if args.start_lat is None or args.start_lng is None:
        raise ValueError("--start-lat and --start-lng must be given together")
    return Coordinate(lat=float(args.start_lat), lng=float(args.start_lng))


def _cmd_optimize(args: argparse.Namespace) -> int:
    """Handle the `optimize` subcommand."""
    request = OptimizeRequest(
        stops=_load_items(args.stops, "stops"),
        respect_time_blocks=True if args.respect_time_blocks else None,
        use_two_opt=False if args.no_two_opt else None,
        start_location=_start_location(args),
    )
    result = plan_route(request)

    links = (
        leg_directions_urls(result.optimized_route.stops, provider=args.directions)
        if args.directions
        else []
    )

    if args.json:
        payload = result.model_dump(mode="json")
        if args.directions:
            payload["directions"] = links
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    unit = args.unit
    original = result.original_route
    optimized = result.optimized_route
    print(f"Original:  {format_distance(original.total_distance_km, unit)}  {' -> '.join(original.order)}")
    print(f"Optimized: {format_distance(optimized.total_distance_km, unit)}  {' -> '.join(optimized.order)}")
    for i, stop in enumerate(optimized.stops, start=1):
        block = f" [{stop.time_block}]" if stop.time_block else ""
        print(f"{i:>3}. {stop.name or stop.id}{block}")
    imp = result.improvement
    print(
        f"Saved {format_distance(imp.distance_saved_km, unit)} ({imp.percent_improvement:.1f}%), "
        f"about {format_duration(imp.time_saved_minutes)} on foot"
    )
    for i, url in enumerate(links, start=1):
        print(f"Leg {i}: {url}")
    return 0


def _cmd_advise(args: argparse.Namespace) -> int:
    stops = [Stop.model_validate(s) for s in _load_items(args.stops, "stops")]
    settings = get_settings()
    estimate = estimate_optimization_savings(stops, settings=settings.routing)
    payload = {
        "should_optimize": should_optimize(stops, settings=settings.routing),
        "estimate": estimate.model_dump(mode="json"),
    }
    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    print(f"Should optimize: {'yes' if payload['should_optimize'] else 'no'}")
    print(
        f"Estimated savings (rough): {format_distance(estimate.potential_savings_km)} "
        f"({estimate.savings_percent:.1f}%, confidence={estimate.confidence})"
    )
    return 0


def _cmd_clusters(args: argparse.Namespace) -> int:
    west, south, east, north = args.bbox
    query = ClusterQuery(
        points=_load_items(args.points, "points"),
        bounds=Bounds(west=west, south=south, east=east, north=north),
        zoom=args.zoom,
    )
    payload = query_clusters(query)
    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    print(f"Clustering: {'on' if payload['clustering_enabled'] else 'off'}  zoom={payload['zoom']}")
    for f in payload["features"]:
        c = f["coordinate"]
        label = f"cluster #{f['cluster_id']} ({f['count_abbreviated']})" if f["cluster"] else f["id"]
        print(f"  {label} @ {c['lat']:.5f},{c['lng']:.5f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the TripSequence CLI."""
    parser = argparse.ArgumentParser(prog="tripsequence")
    parser.add_argument("--log-level", default=None, help="Override app.log_level (e.g. DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    opt = sub.add_parser("optimize", help="Reorder a day's stops to cut walking distance.")
    opt.add_argument("--stops", required=True, help="JSON file with the stops in their current order")
    opt.add_argument("--respect-time-blocks", action="store_true", help="Keep morning/afternoon/evening order")
    opt.add_argument("--no-two-opt", action="store_true", help="Nearest-neighbor construction only")
    opt.add_argument("--start-lat", type=float, default=None, help="Start location (e.g. the hotel)")
    opt.add_argument("--start-lng", type=float, default=None)
    opt.add_argument("--unit", choices=["km", "mi"], default="km")
    opt.add_argument(
        "--directions", choices=["google", "apple"], default=None, help="Print a walking directions link per leg"
    )
    opt.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    opt.set_defaults(func=_cmd_optimize)

    adv = sub.add_parser("advise", help="Cheap check whether optimizing is worth it (no reordering).")
    adv.add_argument("--stops", required=True)
    adv.add_argument("--json", action="store_true")
    adv.set_defaults(func=_cmd_advise)

    clu = sub.add_parser("clusters", help="Cluster map points for a viewport and zoom level.")
    clu.add_argument("--points", required=True, help="JSON file with geo points")
    clu.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        metavar=("WEST", "SOUTH", "EAST", "NORTH"),
        default=[-180.0, -90.0, 180.0, 90.0],
    )
    clu.add_argument("--zoom", type=float, required=True)
    clu.add_argument("--json", action="store_true")
    clu.set_defaults(func=_cmd_clusters)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m tripsequence.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    try:
        configure_logging(args.log_level)
        return int(func(args))
    except (ValidationError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
