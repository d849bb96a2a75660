"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from birdride import __version__
from birdride.config import get_settings
from birdride.errors import BirdRideError, InvalidArgumentError
from birdride.flows.sightings import route_sightings
from birdride.schemas import AggregationResult, SortOrder

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="birdride",
        description="Find recent bird sightings along a route",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    # 'sightings' command - birds near a route
    sightings_parser = subparsers.add_parser("sightings", help="List birds seen near a route")
    sightings_parser.add_argument(
        "route",
        nargs="?",
        default=None,
        help="RideWithGPS route/trip URL or route ID",
    )
    sightings_parser.add_argument(
        "--coords",
        type=str,
        default=None,
        help='Inline path instead of a route: "lat,lng;lat,lng;..."',
    )
    sightings_parser.add_argument("--days", type=int, default=None, help="Days to look back")
    sightings_parser.add_argument(
        "--radius-km", type=float, default=None, help="Query radius per sample point"
    )
    sightings_parser.add_argument(
        "--max-points", type=int, default=None, help="Sample points along the path"
    )
    sightings_parser.add_argument(
        "--within-miles",
        type=float,
        default=None,
        help="Only species whose latest sighting is within this distance of the path",
    )
    sightings_parser.add_argument(
        "--sort",
        choices=[o.value for o in SortOrder],
        default=SortOrder.RECENT.value,
        help="Order results by recency or rarity (default: recent)",
    )
    sightings_parser.add_argument(
        "--notable-only", action="store_true", help="Only rare/notable species"
    )
    sightings_parser.add_argument(
        "--json", action="store_true", help="Print JSON instead of a table"
    )

    return parser


def parse_coords(value: str) -> list[tuple[float, float]]:
    """Parse ``"lat,lng;lat,lng"`` into pairs."""
    pairs: list[tuple[float, float]] = []
    for raw in value.split(";"):
        chunk = raw.strip()
        if not chunk:
            continue
        parts = chunk.split(",")
        if len(parts) != 2:
            raise InvalidArgumentError(f"Expected 'lat,lng', got {chunk!r}")
        try:
            pairs.append((float(parts[0]), float(parts[1])))
        except ValueError as e:
            raise InvalidArgumentError(f"Not a number in {chunk!r}") from e
    if not pairs:
        raise InvalidArgumentError("No coordinates given")
    return pairs


def format_result(result: AggregationResult) -> str:
    """Plain-text table of species, one per line."""
    if not len(result):
        if result.incomplete:
            reason = result.incomplete.reason
            return f"No results: the observation source was unreachable ({reason})."
        return "No birds reported near this route."

    lines = []
    for agg in result:
        seen = agg.observed_at.strftime("%Y-%m-%d %H:%M") if agg.observed_at else "unknown date"
        where = agg.primary.location_name or f"{agg.primary.lat:.4f},{agg.primary.lng:.4f}"
        marker = result.location_of(agg)
        line = (
            f"[{agg.rarity.value:<6}] {agg.display_name} - {len(agg.sightings)} sighting(s), "
            f"latest {seen} @ {where}"
        )
        if marker:
            line += f" ({marker})"
        lines.append(line)
    if result.failed_queries:
        lines.append(f"({result.failed_queries} of {result.total_queries} queries failed)")
    return "\n".join(lines)


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"eBird API key: {'configured' if settings.ebird_api_key else 'missing'}")
    print(
        f"Defaults: {settings.lookback_days} days, {settings.search_radius_km} km radius, "
        f"{settings.max_sample_points} sample points"
    )
    return 0


def cmd_sightings(args: argparse.Namespace) -> int:
    """Handle the 'sightings' command."""
    if (args.route is None) == (args.coords is None):
        print("Error: give a route URL/ID or --coords (not both)", file=sys.stderr)
        return 2

    try:
        coords = parse_coords(args.coords) if args.coords is not None else None
        result = route_sightings(
            route=args.route,
            coords=coords,
            lookback_days=args.days,
            radius_km=args.radius_km,
            max_points=args.max_points,
            proximity_miles=args.within_miles,
            order=SortOrder(args.sort),
            notable_only=args.notable_only,
        )
    except BirdRideError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_result(result))
    return 1 if result.incomplete else 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    level = logging.DEBUG if args.debug or settings.debug else settings.log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "sightings": cmd_sightings,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
