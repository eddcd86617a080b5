"""
Main entry point and CLI for the IDX listing search.

Provides a command-line interface for searching MLS listings through the
IDX API, printing normalized properties as text or JSON.
"""

import asyncio
import argparse
import json
import logging
import sys
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from idx_listings.config import get_idx_settings
from idx_listings.filtering import SORT_OPTIONS, PropertyFilter
from idx_listings.models import Property, SearchCriteria
from idx_listings.search_service import IDXSearchService


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_property(property_: Property) -> str:
    """
    Format a property for console output.

    Args:
        property_: Property to format

    Returns:
        Formatted multi-line string
    """
    lines = []

    lines.append(f"🏠 {property_.title or '[No address]'}")
    lines.append(f"   MLS: {property_.mls_number}")

    location = ", ".join(part for part in (property_.city, property_.province) if part)
    if location:
        lines.append(f"   Location: {location}")

    suffix = "/mo" if property_.listing_type.value == 'lease' else ""
    lines.append(
        f"   Price: ${property_.price:,.0f}{suffix} ({property_.listing_type.value}, "
        f"{property_.status.value})"
    )
    lines.append(
        f"   {property_.bedrooms} bd | {property_.bathrooms} ba | "
        f"{property_.sqft or '?'} sqft | {property_.property_type.value}"
    )

    if property_.images:
        lines.append(f"   Photos: {len(property_.images)} (first: {property_.images[0]})")

    lines.append("")  # Blank line for spacing

    return "\n".join(lines)


def format_results(properties: List[Property], total: int) -> str:
    """
    Format search results for console output.

    Args:
        properties: Properties on this page
        total: Upstream total match count

    Returns:
        Formatted string representation of all properties
    """
    if not properties:
        return "No listings found matching your criteria.\n"

    output = []
    output.append(f"\n{'='*60}")
    output.append(f"Showing {len(properties)} of {total} listing(s)")
    output.append(f"{'='*60}\n")

    for property_ in properties:
        output.append(format_property(property_))

    output.append(f"{'='*60}\n")

    return "\n".join(output)


def criteria_from_args(args: argparse.Namespace) -> SearchCriteria:
    """Build SearchCriteria from parsed CLI arguments."""
    cities = args.city or []
    return SearchCriteria(
        city=cities[0] if len(cities) == 1 else None,
        cities=cities if len(cities) > 1 else [],
        listing_type=args.listing_type,
        min_price=args.min_price,
        max_price=args.max_price,
        bedrooms=args.bedrooms,
        bathrooms=args.bathrooms,
        property_class=args.property_class,
        property_types=args.property_type or [],
        keywords=args.keywords,
        min_sqft=args.min_sqft,
        max_sqft=args.max_sqft,
        min_lot_size=args.min_lot_size,
        max_lot_size=args.max_lot_size,
        max_days_on_market=args.max_days_on_market,
        status=args.status,
        limit=args.limit,
        offset=args.offset,
    )


async def run_search(
    criteria: SearchCriteria,
    sort_by: Optional[str] = None,
    as_json: bool = False,
    verbose: bool = False,
    service: Optional[IDXSearchService] = None
) -> int:
    """
    Execute the listing search workflow.

    Args:
        criteria: Search criteria
        sort_by: Client-side sort option
        as_json: Print JSON instead of formatted text
        verbose: Enable verbose logging output
        service: Search service to use (default: built from the environment)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    # Set logging level based on verbose flag
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    if criteria.min_price and criteria.max_price is not None and criteria.min_price > criteria.max_price:
        logger.error(f"Invalid price range: min_price ({criteria.min_price}) > max_price ({criteria.max_price})")
        print(
            f"Error: Minimum price ({criteria.min_price}) cannot be greater than "
            f"maximum price ({criteria.max_price})",
            file=sys.stderr
        )
        return 1

    owns_service = service is None
    if service is None:
        service = IDXSearchService(settings=get_idx_settings())

    try:
        if not service.is_configured:
            print("Error: IDX_API_KEY is not set (environment or .env)", file=sys.stderr)
            return 1

        start_time = datetime.now()
        properties, result = await service.search_properties(criteria)
        elapsed_time = (datetime.now() - start_time).total_seconds()

        if not result.success:
            print(f"\n❌ Search failed: {result.error}", file=sys.stderr)
            return 1

        if sort_by:
            properties = PropertyFilter().sort_properties(properties, sort_by)

        if as_json:
            print(json.dumps({
                'total': result.total,
                'listings': [p.to_dict() for p in properties],
            }, indent=2))
        else:
            print(format_results(properties, result.total))
            print(f"✅ Search completed in {elapsed_time:.2f} seconds")

        logger.info(f"Search completed in {elapsed_time:.2f} seconds")
        return 0

    finally:
        if owns_service:
            await service.close()


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="idx-search",
        description="Search MLS listings through the IDX API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Active listings in Toronto
  idx-search --city Toronto

  # 3+ bedroom detached homes for sale in two cities
  idx-search --city Toronto --city Mississauga --listing-type sale \\
      --property-type detached --bedrooms 3

  # Leases with a pool, newest first, as JSON
  idx-search --listing-type lease --keywords pool --sort latest --json
        """
    )

    parser.add_argument("--city", action="append", help="City (repeat for several)")
    parser.add_argument("--listing-type", choices=["sale", "lease"], default=None)
    parser.add_argument("--min-price", type=int, default=None, help="Minimum list price")
    parser.add_argument("--max-price", type=int, default=None, help="Maximum list price")
    parser.add_argument("--bedrooms", type=int, default=None, help="Minimum bedrooms")
    parser.add_argument("--bathrooms", type=int, default=None, help="Minimum bathrooms")
    parser.add_argument("--property-class", choices=["residential", "commercial"], default=None)
    parser.add_argument(
        "--property-type",
        action="append",
        help="detached, semi-detached, townhouse or condo (repeat for several)"
    )
    parser.add_argument("--keywords", default=None, help="Text to find in the listing remarks")
    parser.add_argument("--min-sqft", type=int, default=None)
    parser.add_argument("--max-sqft", type=int, default=None)
    parser.add_argument("--min-lot-size", type=int, default=None)
    parser.add_argument("--max-lot-size", type=int, default=None)
    parser.add_argument("--max-days-on-market", type=int, default=None)
    parser.add_argument("--status", default=None, help="active, pending, sold or all (default: active)")
    parser.add_argument("--limit", type=int, default=50, help="Page size (default: 50)")
    parser.add_argument("--offset", type=int, default=0, help="Page offset (default: 0)")
    parser.add_argument("--sort", choices=SORT_OPTIONS, default=None, help="Client-side sort")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging output"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, 1 for error, 130 when interrupted)
    """
    load_dotenv()

    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        return asyncio.run(
            run_search(
                criteria=criteria_from_args(args),
                sort_by=args.sort,
                as_json=args.json,
                verbose=args.verbose
            )
        )
    except KeyboardInterrupt:
        logger.info("Search interrupted by user")
        print("\n\n⚠️  Search interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        logger.exception(f"Unexpected error in main: {str(e)}")
        print(f"❌ Unexpected error: {str(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
