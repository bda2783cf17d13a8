import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from journey_planner.app import mcp
from journey_planner.data.config import get_config
from journey_planner.data.store import NetworkStore
from journey_planner.tools import journey_tools, network_tools, stop_tools  # noqa: F401


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    network_loaded: bool
    network_loaded_at: str | None = None


@mcp.tool()
def health() -> HealthResponse:
    """Check if the journey planner server is running and healthy.

    Returns the server status, version, current timestamp and whether a
    transit network is loaded.
    """
    from journey_planner import __version__

    loaded_at = NetworkStore.loaded_at()
    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        network_loaded=NetworkStore.is_loaded(),
        network_loaded_at=loaded_at.isoformat() if loaded_at else None,
    )


def run_build(data_dir: Path) -> None:
    """Build the network once and report its size."""
    from journey_planner.data.dataset import load_network

    network = load_network(data_dir)

    print("\nBuild complete. Counts:")
    for name, count in network.stats().items():
        print(f"  {name}: {count:,}")


def run_plan(args: argparse.Namespace) -> int:
    """Plan one journey from the command line and print it."""
    from journey_planner.data.dataset import load_network
    from journey_planner.errors import PlannerInputError
    from journey_planner.services.journey_planner import build_summary, plan_by_names
    from journey_planner.services.schedule_service import minutes_to_clock_time

    network = load_network(args.data_dir)
    try:
        plan, _, _ = plan_by_names(
            network,
            args.origin,
            args.destination,
            args.time,
            date=args.date,
            modes=args.modes,
            max_walk_meters=args.max_walk,
        )
    except PlannerInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if not plan.found:
        print("No route found.")
        return 1

    for step in plan.steps:
        walk = f"  (walk {step.distance_km * 1000:.0f} m)" if step.walking else ""
        print(f"  {minutes_to_clock_time(step.time)}  {step.stop_name:<30} {step.trip_id}{walk}")
    summary = build_summary(plan)
    if summary:
        print(
            f"\n{summary.departure_time} -> {summary.arrival_time}, "
            f"{summary.duration_minutes} min, {summary.transfers} transfers "
            f"({summary.day_type}, {summary.algorithm})"
        )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="journey-planner",
        description="Cape Town Transit journey planner MCP server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")
    default_data_dir = Path(get_config().data_dir)

    # build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build the transit network from CSV timetables and report counts",
    )
    build_parser.add_argument(
        "data_dir",
        type=Path,
        nargs="?",
        default=default_data_dir,
        help="Dataset directory (default: JOURNEY_DATA_DIR or CapeTownTransitData)",
    )

    # plan command
    plan_parser = subparsers.add_parser("plan", help="Plan a journey between two stops")
    plan_parser.add_argument("origin", help="Origin stop name")
    plan_parser.add_argument("destination", help="Destination stop name")
    plan_parser.add_argument("--time", required=True, help="Departure time HH:MM")
    plan_parser.add_argument("--date", default=None, help="ISO date or day name")
    plan_parser.add_argument("--modes", default=None, help="Comma-separated modes, e.g. train,bus")
    plan_parser.add_argument("--max-walk", default=None, help="Maximum walking distance in metres")
    plan_parser.add_argument("--data-dir", type=Path, default=default_data_dir)

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "build":
        run_build(args.data_dir)
    elif args.command == "plan":
        sys.exit(run_plan(args))
    else:
        # Default: run MCP server
        mcp.run()


if __name__ == "__main__":
    main()
