"""
Crawl Orchestrator — Pipeline coordination for one Flickr network crawl.

This module is the application layer. It ties the configuration, the
FlickrClient, the NetworkAnalyzer and the OutputManager into a sequential
3-step workflow:

  Step 1: CONNECT
      Builds the FlickrClient (API key, endpoint, timeout, retries) and the
      NetworkAnalyzer that will own the crawl.

  Step 2: CRAWL NETWORK
      Starts the crawl on the analyzer's background worker and prints each
      progress message as it arrives. Ctrl+C requests cancellation; the crawl
      stops at its next polling point and the partial network is kept.

  Step 3: SAVE OUTPUT
      Writes the graph document (network.json) to a timestamped output
      directory. Run metadata (crawl_results.json) is saved alongside it for
      every run, including failed ones.

Configuration:
    All settings are loaded from environment variables (typically via .env file).
    Required: FLICKR_API_KEY, and a root username (ROOT_USERNAME or the CLI
    argument). See config/settings.py for defaults.

Typical usage:
    orchestrator = CrawlOrchestrator(env_file="./.env")
    if orchestrator.validate_config():
        results = orchestrator.run()
        orchestrator.print_summary(results)
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv

from config import DEFAULT_SETTINGS

from .analyzer import NetworkAnalyzer
from .flickr_client import FlickrClient
from .models import ExpansionLevel, ProgressEvent, RelationKind
from .output_manager import OutputManager

_UNLIMITED = ("", "0", "none", "unlimited")


def parse_max_per_request(text: str) -> Optional[int]:
    """Parse MAX_PER_REQUEST: a positive int, or 0/"unlimited" for no cap."""
    value = str(text).strip().lower()
    if value in _UNLIMITED:
        return None
    number = int(value)
    if number < 0:
        raise ValueError(f"must be a positive number or 'unlimited', got {text!r}")
    return number or None


def parse_bool(text: str) -> bool:
    return str(text).strip().lower() == "true"


class CrawlOrchestrator:
    """Orchestrates the Flickr network crawl pipeline.

    Attributes:
        api_key: Flickr API key (required).
        root_handle: Default username to start from (ROOT_USERNAME).
        level: Parsed ExpansionLevel, or None if NETWORK_LEVEL is invalid.
        relation_kinds: Parsed list of RelationKind, or None if invalid.
        max_per_request: Item cap per listing (None = unlimited).
        include_details: Whether to run the AttributeEnricher.
        api_base_url: Flickr REST endpoint.
        timeout: Per-request timeout in seconds.
        retries: Retries for transient failures.
        network_name: Label used in output folder naming.
        save_json: Whether to write network.json (default: True).
        debug: Whether to enable verbose output (default: False).
        config_errors: Setting name -> parse error, reported by validate_config().
        output_manager: Handles timestamped output directories and retention cleanup.
    """

    def __init__(self, env_file: str = "./.env"):
        """Load configuration from a .env file and the process environment.

        Args:
            env_file: Path to a .env file. If the file exists, it is loaded via
                      python-dotenv. Otherwise, falls back to system environment.
        """
        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path)
            print(f"Loaded configuration from: {env_file}")
        else:
            print(f"Warning: {env_file} not found, using defaults/environment")

        self.config_errors: Dict[str, str] = {}

        # Credential and starting point
        self.api_key = os.getenv("FLICKR_API_KEY", "")
        self.root_handle = os.getenv("ROOT_USERNAME", "").strip()

        # Crawl shape
        self.level = self._setting("NETWORK_LEVEL", ExpansionLevel.parse)
        self.relation_kinds = self._setting("RELATION_KINDS", RelationKind.parse)
        self.max_per_request = self._setting("MAX_PER_REQUEST", parse_max_per_request)
        self.include_details = self._setting("INCLUDE_DETAILS", parse_bool)

        # Transport
        self.api_base_url = os.getenv("API_BASE_URL", DEFAULT_SETTINGS["API_BASE_URL"])
        self.timeout = self._setting("HTTP_TIMEOUT_SECONDS", float)
        self.retries = self._setting("HTTP_RETRIES", int)

        # Output
        self.network_name = os.getenv("NETWORK_NAME", DEFAULT_SETTINGS["NETWORK_NAME"])
        output_dir = os.getenv("OUTPUT_DIR", DEFAULT_SETTINGS["OUTPUT_DIR"])
        retention_days = self._setting("OUTPUT_RETENTION_DAYS", int)
        if retention_days is None:
            retention_days = DEFAULT_SETTINGS["OUTPUT_RETENTION_DAYS"]
        self.save_json = self._setting("SAVE_JSON", parse_bool)
        self.debug = self._setting("DEBUG", parse_bool)

        self.output_manager = OutputManager(output_dir, self.network_name, retention_days)

    def _setting(self, name: str, parse: Callable[[str], Any]) -> Any:
        raw = os.getenv(name, str(DEFAULT_SETTINGS[name]))
        try:
            return parse(raw)
        except ValueError as e:
            self.config_errors[name] = f"{name}: {e}"
            return None

    def apply_overrides(
        self,
        root_handle: Optional[str] = None,
        level: Optional[ExpansionLevel] = None,
        relation_kinds: Optional[List[RelationKind]] = None,
        max_per_request: Optional[str] = None,
        include_details: Optional[bool] = None,
        debug: Optional[bool] = None,
    ):
        """Apply CLI flags on top of the environment. None leaves a setting as is.

        Raises:
            ValueError: max_per_request does not parse.
        """
        if root_handle:
            self.root_handle = root_handle.strip()
        if level is not None:
            self.level = level
            self.config_errors.pop("NETWORK_LEVEL", None)
        if relation_kinds is not None:
            self.relation_kinds = relation_kinds
            self.config_errors.pop("RELATION_KINDS", None)
        if max_per_request is not None:
            self.max_per_request = parse_max_per_request(max_per_request)
            self.config_errors.pop("MAX_PER_REQUEST", None)
        if include_details is not None:
            self.include_details = include_details
            self.config_errors.pop("INCLUDE_DETAILS", None)
        if debug is not None:
            self.debug = debug
            self.config_errors.pop("DEBUG", None)

    def validate_config(self) -> bool:
        """Validate that all required configuration values are present and parse.

        Returns:
            True if the crawl can start, False otherwise.
            Prints specific error messages for each problem.
        """
        errors = list(self.config_errors.values())
        if not self.api_key:
            errors.append("FLICKR_API_KEY is required")
        if not self.root_handle:
            errors.append("A root username is required (ROOT_USERNAME or the handle argument)")
        if self.retries is not None and self.retries < 0:
            errors.append("HTTP_RETRIES must not be negative")
        if self.timeout is not None and self.timeout <= 0:
            errors.append("HTTP_TIMEOUT_SECONDS must be positive")

        if errors:
            print("\nConfiguration Errors:")
            for err in errors:
                print(f"  - {err}")
            return False
        return True

    def run(self, root_handle: Optional[str] = None) -> Dict[str, Any]:
        """Execute the 3-step crawl pipeline.

        Args:
            root_handle: Username to start from; defaults to ROOT_USERNAME.

        Returns:
            A dict containing:
                - started_at/completed_at: ISO timestamps
                - crawler: "flickr-network"
                - config: The crawl shape that was requested
                - success: True for SUCCESS and PARTIAL_SUCCESS outcomes
                - outcome: The crawl Outcome value
                - crawl: CrawlResult.to_dict() (root, statistics, counts)
                - api_calls: HTTP requests issued
                - json_path: Path to saved network.json (if save_json=True)
                - error / warning: The outcome message, if any
        """
        handle = (root_handle or self.root_handle).strip()
        results: Dict[str, Any] = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "crawler": "flickr-network",
            "config": {
                "root_handle": handle,
                "level": self.level.value if self.level else None,
                "relation_kinds": [k.value for k in self.relation_kinds or []],
                "max_per_request": self.max_per_request,
                "include_details": self.include_details,
            },
            "success": False,
        }

        try:
            # Step 1: Build the client and analyzer
            print(f"\n{'='*60}")
            print("STEP 1: CONNECT")
            print("="*60)
            client = FlickrClient(
                self.api_key, self.api_base_url, self.timeout, self.retries, self.debug
            )
            analyzer = NetworkAnalyzer(client, self.debug)
            print(f"  Endpoint: {self.api_base_url}")

            # Step 2: Crawl, printing progress as it happens
            print(f"\n{'='*60}")
            print("STEP 2: CRAWL NETWORK")
            print("="*60)
            print(f"  Root: {handle}  Level: {self.level.value}  "
                  f"Kinds: {', '.join(k.value for k in self.relation_kinds)}")
            try:
                task = analyzer.get_network_async(
                    handle,
                    self.relation_kinds,
                    self.level,
                    max_per_request=self.max_per_request,
                    include_details=self.include_details,
                )
                try:
                    for event in task.events():
                        if isinstance(event, ProgressEvent):
                            print(f"  {event.message}")
                except KeyboardInterrupt:
                    print("\n  Cancelling crawl...")
                    task.cancel()
                result = task.result()
            finally:
                analyzer.close()

            results["outcome"] = result.outcome.value
            results["crawl"] = result.to_dict()
            results["api_calls"] = client.calls
            results["success"] = result.succeeded
            if result.message:
                results["error" if not result.succeeded else "warning"] = result.message

            print(f"  Outcome: {result.outcome.value}")
            print(f"  Vertices: {result.graph.vertex_count}")
            print(f"  Edges: {result.graph.edge_count}")

            # Step 3: Save output to timestamped directory
            print(f"\n{'='*60}")
            print("STEP 3: SAVE OUTPUT")
            print("="*60)

            self.output_manager.create_timestamped_dir()

            if self.save_json:
                json_path = self.output_manager.write_json("network.json", result.graph.to_dict())
                results["json_path"] = json_path
                print(f"  Saved network: {json_path}")

            results["summary"] = {
                "root": result.root.handle if result.root else handle,
                "vertices": result.graph.vertex_count,
                "edges": result.graph.edge_count,
                "pages_fetched": result.statistics.pages_fetched,
                "pages_failed": result.statistics.pages_failed,
            }

        except Exception as e:
            results["error"] = str(e)
            print(f"\n  ERROR: {e}")
            if self.debug:
                traceback.print_exc()

        results["completed_at"] = datetime.now(timezone.utc).isoformat()

        if self.output_manager.current_dir:
            results_path = self.output_manager.write_json("crawl_results.json", results)
            print(f"\n  Results saved to: {results_path}")

        return results

    def print_summary(self, results: Dict):
        """Print a human-readable execution summary.

        Args:
            results: The dict returned by run().
        """
        print(f"\n{'='*60}")
        print("CRAWL COMPLETE")
        print("="*60)
        outcome = results.get("outcome")
        print(f"Status: {'SUCCESS' if results.get('success') else 'FAILED'}"
              + (f" ({outcome})" if outcome else ""))

        summary = results.get("summary", {})
        if summary:
            print(f"Root: {summary.get('root', 'N/A')}")
            print(f"Vertices: {summary.get('vertices', 0)}")
            print(f"Edges: {summary.get('edges', 0)}")
            print(f"Pages fetched: {summary.get('pages_fetched', 0)}"
                  f" ({summary.get('pages_failed', 0)} failed)")

        if results.get("warning"):
            print(f"Warning: {results['warning']}")
        if results.get("error"):
            print(f"Error: {results['error']}")
