"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from dawn_chorus import __version__
from dawn_chorus.analysis.activity import build_curve, local_hour_and_month
from dawn_chorus.client import BirdClient
from dawn_chorus.datasources.ebird import has_usable_key
from dawn_chorus.config import get_settings
from dawn_chorus.errors import InvalidInput
from dawn_chorus.schemas import ActivityCurve, BirdReport, WeatherSnapshot
from dawn_chorus.store import DataStore
from dawn_chorus.web.app import create_app


def _add_weather_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--temp-c", type=float, default=10.0, help="Temperature in °C (default: 10)")
    parser.add_argument("--rain", type=float, default=0.0, help="Rain probability %% (default: 0)")
    parser.add_argument("--wind", type=float, default=0.0, help="Wind speed m/s (default: 0)")
    parser.add_argument("--cloud", type=float, default=50.0, help="Cloud cover %% (default: 50)")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="dawn-chorus",
        description="Nearby bird sightings ranked by time of day, with an activity forecast",
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
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address (default: api_host)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to serve on (default: api_port from settings)",
    )

    birds_parser = subparsers.add_parser("birds", help="Show notable birds near a location")
    birds_parser.add_argument("--lat", type=float, default=None, help="Latitude (default: settings)")
    birds_parser.add_argument("--lon", type=float, default=None, help="Longitude (default: settings)")
    birds_parser.add_argument("--hour", type=int, default=None, help="Local hour 0-23 for ranking")
    birds_parser.add_argument("--month", type=int, default=None, help="Month 0-11 (0 = January)")
    birds_parser.add_argument(
        "--refresh", action="store_true", help="Ignore the cached report and ask the server"
    )
    _add_weather_args(birds_parser)

    activity_parser = subparsers.add_parser("activity", help="Print the 24-hour activity curve")
    activity_parser.add_argument("--hour", type=int, default=None, help="Current hour 0-23")
    activity_parser.add_argument("--month", type=int, default=None, help="Month 0-11 (0 = January)")
    _add_weather_args(activity_parser)

    return parser


_WEATHER_FLAGS = {
    "temp_c": "--temp-c",
    "rain_probability": "--rain",
    "wind_speed_ms": "--wind",
    "cloud_percent": "--cloud",
}


def _weather_from_args(args: argparse.Namespace) -> WeatherSnapshot:
    """Build the weather snapshot, reporting range errors against the CLI flag."""
    try:
        return WeatherSnapshot(
            temp_c=args.temp_c,
            rain_probability=args.rain,
            wind_speed_ms=args.wind,
            cloud_percent=args.cloud,
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "weather"
        raise InvalidInput(_WEATHER_FLAGS.get(field, field), error["msg"]) from e


def _print_curve(activity: ActivityCurve) -> None:
    current = activity.current
    print(f"Now ({current.hour:02d}:00): {current.score} - {current.label} [{current.level}]")
    print(f"Dawn peak: {activity.dawn_peak.hour:02d}:00 ({activity.dawn_peak.score})")
    print(f"Dusk peak: {activity.dusk_peak.hour:02d}:00 ({activity.dusk_peak.score})")


def _print_report(report: BirdReport) -> None:
    loc = report.location
    print(
        f"{report.total_species_count} species within {report.observation_radius_km:g} km "
        f"of {loc.lat}, {loc.lon}{' (cached)' if report.cached else ''}"
    )
    for obs in report.notable_species:
        hour = f"{obs.obs_hour:02d}:00" if obs.obs_hour is not None else "time unknown"
        print(f"  {obs.common_name} ({obs.scientific_name}) x{obs.how_many} - {hour}, {obs.location_name}")
    _print_curve(report.activity)


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"eBird configured: {has_usable_key(settings.ebird_api_key)}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle the 'serve' command: run the API with uvicorn."""
    settings = get_settings()
    host = args.host if args.host is not None else settings.api_host
    port = args.port if args.port is not None else settings.api_port

    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
    return 0


def cmd_birds(args: argparse.Namespace) -> int:
    """Handle the 'birds' command: fetch (or reuse) a report via the client."""
    settings = get_settings()
    lat = args.lat if args.lat is not None else settings.lat
    lon = args.lon if args.lon is not None else settings.lon

    client = BirdClient(
        settings.api_base_url,
        DataStore(settings.data_dir),
        ttl_seconds=settings.client_cache_ttl,
    )
    if args.refresh:
        client.clear_cache(lat, lon)

    try:
        report = client.load(lat, lon, _weather_from_args(args), hour=args.hour, month=args.month)
    except InvalidInput as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if report is None:
        if client.feature_available is False:
            print("Bird data unavailable: the server has no eBird API key.", file=sys.stderr)
        else:
            print("Could not load bird data.", file=sys.stderr)
        return 1

    _print_report(report)
    return 0


def cmd_activity(args: argparse.Namespace) -> int:
    """Handle the 'activity' command: compute the curve locally, no network."""
    clock_hour, clock_month = local_hour_and_month()
    hour = args.hour if args.hour is not None else clock_hour
    month = args.month if args.month is not None else clock_month
    if not 0 <= hour <= 23 or not 0 <= month <= 11:
        print("Error: --hour must be 0-23 and --month 0-11", file=sys.stderr)
        return 1

    try:
        weather = _weather_from_args(args)
    except InvalidInput as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    activity = build_curve(weather, month, hour)
    for point in activity.curve:
        marker = "*" if point.hour == hour else " "
        print(f"{marker} {point.hour:02d}:00 {point.score:3d} {'#' * (point.score // 5):<20} {point.label}")
    _print_curve(activity)
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "serve": cmd_serve,
        "birds": cmd_birds,
        "activity": cmd_activity,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
