"""
Settings — Default configuration values for the Flickr network crawler.

This module provides the DEFAULT_SETTINGS dict that the orchestrator uses as
fallback values when environment variables are not set. The actual
configuration is loaded from .env at runtime; these defaults let a crawl run
with nothing more than an API key and a starting username.

Configuration precedence (highest to lowest):
  1. CLI flags (--level, --kinds, --max-per-request, --details, --debug)
  2. Environment variables (from .env file)
  3. DEFAULT_SETTINGS (this file)

Settings reference:
  NETWORK_NAME            Label used in output folder naming
  NETWORK_LEVEL           Expansion level: "1", "1.5" or "2"
  RELATION_KINDS          Comma list of relation kinds ("contact,commenter")
  MAX_PER_REQUEST         Cap on items per listing ("0" or "unlimited" = no cap)
  INCLUDE_DETAILS         Whether to fetch per-user detail attributes
  API_BASE_URL            Flickr REST endpoint
  HTTP_TIMEOUT_SECONDS    Per-request timeout
  HTTP_RETRIES            Retries for timeouts, connection errors and 5xx (paused 1s, 1s, 5s)
  OUTPUT_DIR              Where to write crawl output (default: ./output)
  OUTPUT_RETENTION_DAYS   How many days to keep old output folders (0 = keep forever)
  SAVE_JSON               Whether to write the graph document to disk
  DEBUG                   Whether to print verbose output
"""

NETWORK_NAME = "Flickr_User_Network"

DEFAULT_SETTINGS = {
    "NETWORK_NAME": NETWORK_NAME,
    "NETWORK_LEVEL": "1.5",
    "RELATION_KINDS": "contact,commenter",
    "MAX_PER_REQUEST": "200",
    "INCLUDE_DETAILS": False,
    "API_BASE_URL": "https://api.flickr.com/services/rest/",
    "HTTP_TIMEOUT_SECONDS": 10,
    "HTTP_RETRIES": 3,
    "OUTPUT_DIR": "./output",
    "OUTPUT_RETENTION_DAYS": 30,
    "SAVE_JSON": True,
    "DEBUG": False,
}
