#!/usr/bin/env python3
"""
Flickr Network Crawler — Entry Point.

This is the main script that users run to build the network of people around
one Flickr user. It reads configuration from a .env file, runs the crawl, and
saves the network as timestamped JSON files.

The crawl pipeline (managed by CrawlOrchestrator) performs 3 steps:
  1. Build the Flickr API client and the network analyzer
  2. Resolve the root username and crawl contacts and/or commenters up to
     the requested network level, optionally fetching per-user details
  3. Save the network and the run metadata as timestamped JSON files

Usage:
    python run.py johndoe                        # Crawl with .env / default settings
    python run.py johndoe --level 2              # Contacts of contacts, with their edges
    python run.py johndoe --kinds contact        # Contacts only
    python run.py johndoe --max-per-request 50   # Cap every listing at 50 items
    python run.py johndoe --details              # Fetch profile details per user
    python run.py --debug                        # Verbose output (root from ROOT_USERNAME)
    python run.py --version                      # Show version
    python run.py --env /path                    # Use alternate .env file

Exit status is 0 for a successful or partially successful crawl, and 1 for
configuration errors, failed crawls and cancelled crawls.
"""

import sys
import argparse
import logging
from pathlib import Path

from network_crawler import CrawlOrchestrator, ExpansionLevel, RelationKind

# Read version from the repo-root VERSION file (e.g., "0.1.0").
VERSION_FILE = Path(__file__).resolve().parent / "VERSION"
VERSION = VERSION_FILE.read_text().strip() if VERSION_FILE.exists() else "unknown"


def relation_kinds_arg(text: str):
    try:
        return RelationKind.parse(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def expansion_level_arg(text: str):
    try:
        return ExpansionLevel.parse(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Flickr Network Crawler - Build contact and commenter networks of Flickr users"
    )
    parser.add_argument("handle", nargs="?", help="Username to start from (default: ROOT_USERNAME)")
    parser.add_argument("--env", "-e", default="./.env", help="Path to .env file")
    parser.add_argument("--level", type=expansion_level_arg, help="Network level: 1, 1.5 or 2")
    parser.add_argument("--kinds", type=relation_kinds_arg,
                        help="Comma list of relation kinds (contact,commenter)")
    parser.add_argument("--max-per-request",
                        help="Cap on items per listing (0 or 'unlimited' for no cap)")
    parser.add_argument("--details", action="store_true", default=None,
                        help="Fetch profile details for every user")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug output")
    parser.add_argument("--version", "-v", action="store_true", help="Show version and exit")
    return parser


def main(argv=None):
    """Parse CLI arguments and run the crawl pipeline."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"flickr-network-crawler {VERSION}")
        sys.exit(0)

    # Trace HTTP requests when --debug is set
    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(name)s - %(levelname)s - %(message)s'
        )
        logging.getLogger('urllib3').setLevel(logging.DEBUG)

    # Initialize the orchestrator (loads .env and builds internal config)
    orchestrator = CrawlOrchestrator(env_file=args.env)

    # Apply CLI overrides on top of .env values
    try:
        orchestrator.apply_overrides(
            root_handle=args.handle,
            level=args.level,
            relation_kinds=args.kinds,
            max_per_request=args.max_per_request,
            include_details=args.details,
            debug=args.debug,
        )
    except ValueError as e:
        print(f"\nConfiguration Errors:\n  - MAX_PER_REQUEST: {e}")
        sys.exit(1)

    # Print header
    print(f"\n{'='*60}")
    print(f"FLICKR NETWORK CRAWLER v{VERSION}")
    print("="*60)
    print(f"Root: {orchestrator.root_handle or 'N/A'}")
    if orchestrator.level:
        print(f"Level: {orchestrator.level.value}")
    if orchestrator.relation_kinds:
        print(f"Kinds: {', '.join(k.value for k in orchestrator.relation_kinds)}")
    print(f"Max per request: {orchestrator.max_per_request or 'unlimited'}")
    print(f"Details: {'Enabled' if orchestrator.include_details else 'Disabled'}")

    # Validate required configuration before proceeding
    if not orchestrator.validate_config():
        sys.exit(1)

    # Cleanup old output folders based on retention policy
    if orchestrator.output_manager.retention_days > 0:
        deleted = orchestrator.output_manager.cleanup_old_folders(orchestrator.debug)
        if deleted > 0:
            print(f"Cleaned up {deleted} old output folder(s)")

    # Run the 3-step crawl pipeline
    results = orchestrator.run()

    # Print final summary
    orchestrator.print_summary(results)

    # Exit with error code if the crawl failed or was cancelled
    if not results.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
