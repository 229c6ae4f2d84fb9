#!/usr/bin/env python3
"""
CLI for importing listings and running valuations offline.

Usage:
    python -m scraper.cli import <listings_json>
    python -m scraper.cli estimate --lat <lat> --lng <lng> --area <sqft>

Examples:
    # Import a listings file into the store under DATA_DIR
    python -m scraper.cli import scraper/data/seed_properties.json

    # Value a 2 acre residential lot near a lake
    python -m scraper.cli estimate --lat 36.85 --lng 10.2 --area 87120 --near-water
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from core.errors import LandValuationError
from core.geocoder import get_geocoder
from core.store import get_property_store
from core.validation import parse_valuation_request
from core.valuation_service import LandValuationService
from utils.config import Config
from utils.formatting import format_area, format_price

from .importer import import_listings
from .json_source import JsonFileListingSource


def cmd_import(args):
    """Import a JSON listings file into the property store."""
    input_path = Path(args.listings_file)

    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    print(f"Loading listings from: {input_path}")

    try:
        raw_listings = JsonFileListingSource(input_path).load()
    except (json.JSONDecodeError, ValueError) as e:
        print(f"Error: Invalid listings file: {e}", file=sys.stderr)
        return 1

    store = get_property_store()
    summary = asyncio.run(import_listings(store, raw_listings))

    print(
        f"Imported {summary.imported} of {summary.fetched} listings "
        f"({summary.duplicates} duplicates, {summary.rejected} rejected)"
    )
    return 0


def cmd_estimate(args):
    """Estimate a parcel's value from the stored comparables."""
    payload = {
        "lat": args.lat,
        "lng": args.lng,
        "area": args.area,
        "category": args.category,
        "features": {
            "nearWater": args.near_water,
            "roadAccess": not args.no_road_access,
            "utilities": not args.no_utilities,
        },
    }

    config = Config.load()
    service = LandValuationService.from_config(config, get_property_store(), get_geocoder())

    try:
        request = parse_valuation_request(payload)
        report = asyncio.run(service.estimate(request))
    except LandValuationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return 0

    valuation = report.valuation
    print(f"Parcel: {format_area(request.area)} ({format_area(request.area, unit='acres')})")
    print(f"Estimated value: {format_price(valuation.estimated_value)}")
    print(f"Base price per sq ft: {format_price(valuation.base_price_per_sqft, include_cents=True)}")
    print(f"Comparables used: {valuation.comps_used}")
    for factor in valuation.adjustment_factors:
        print(f"  {factor.factor}: {factor.adjustment}")
    if report.low_confidence:
        print("Low confidence estimate")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Land Valuation Engine - listing import and offline valuation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m scraper.cli import scraper/data/seed_properties.json
    python -m scraper.cli estimate --lat 36.85 --lng 10.2 --area 87120 --near-water

Storage:
    Imported listings are saved to: $DATA_DIR/properties.json
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Import command
    import_parser = subparsers.add_parser(
        "import",
        help="Import listings from a JSON file",
    )
    import_parser.add_argument(
        "listings_file",
        help="Path to JSON listings file",
    )
    import_parser.set_defaults(func=cmd_import)

    # Estimate command
    est_parser = subparsers.add_parser(
        "estimate",
        help="Estimate the value of a parcel",
    )
    est_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    est_parser.add_argument("--lng", type=float, required=True, help="Longitude")
    est_parser.add_argument("--area", type=float, required=True, help="Area in square feet")
    est_parser.add_argument("--category", default="residential", help="Zoning category")
    est_parser.add_argument("--near-water", action="store_true", help="Parcel is near water")
    est_parser.add_argument("--no-road-access", action="store_true", help="Parcel has no road access")
    est_parser.add_argument("--no-utilities", action="store_true", help="Parcel has no utilities")
    est_parser.add_argument("--json", action="store_true", help="Print the full JSON report")
    est_parser.set_defaults(func=cmd_estimate)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else Config.load().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
