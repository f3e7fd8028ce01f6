"""
Flickr API Client — Handles all HTTP communication with the Flickr REST API.

Every call is a GET against a single endpoint with the method name, the API
key and the JSON response format as query parameters:

    GET https://api.flickr.com/services/rest/
        ?method=flickr.contacts.getPublicList&user_id=...&page=1&per_page=200
        &api_key=...&format=json&nojsoncallback=1

    Response: {"contacts": {"page": 1, "pages": 3, "contact": [...]}, "stat": "ok"}
    Error:    {"stat": "fail", "code": 1, "message": "User not found"}

Methods used by the crawler:

  flickr.people.findByUsername      EntityResolver (once per crawl)
  flickr.contacts.getPublicList     "contact" relation kind (paged)
  flickr.people.getPublicPhotos     "commenter" relation kind, parent listing (paged)
  flickr.photos.comments.getList    "commenter" relation kind, per photo (unpaged)
  flickr.people.getInfo             AttributeEnricher (once per vertex)

This is the transport layer: it owns the timeout and the retry policy for
transient failures, and translates every failure into the crawler's error
taxonomy (see errors.py). The API key is opaque here and is never inspected.
"""

import time
from typing import Any, Dict, List, Optional

import requests

from .errors import PermanentServiceError, ProtocolFormatError, TransientServiceError

DEFAULT_API_BASE_URL = "https://api.flickr.com/services/rest/"

# Largest per_page values the listing methods accept.
MAX_CONTACTS_PER_PAGE = 1000
MAX_PHOTOS_PER_PAGE = 500

PROFILE_URL_PATTERN = "https://www.flickr.com/people/{0}/"
BUDDY_ICON_URL_PATTERN = "https://farm{0}.staticflickr.com/{1}/buddyicons/{2}.jpg"

# Seconds to pause before each retry of a transient failure. Retries past
# the end of the schedule reuse its last delay.
RETRY_DELAYS_SECONDS = (1, 1, 5)

# Flickr error codes that mean "try again later" rather than "this request is wrong".
_TRANSIENT_ERROR_CODES = {105, 106}


class FlickrClient:
    """Client for the Flickr REST API.

    Manages a requests.Session shared by all calls of one crawl.

    Attributes:
        api_key: Flickr API key, forwarded uninterpreted.
        base_url: REST endpoint URL.
        timeout: Per-request timeout in seconds.
        retries: How many times a transient failure is retried.
        debug: If True, print verbose request details.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        retries: int = len(RETRY_DELAYS_SECONDS),
        debug: bool = False,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.debug = debug
        self._session = requests.Session()
        self._calls = 0

    @property
    def calls(self) -> int:
        """Number of HTTP requests issued, retries included."""
        return self._calls

    def find_by_username(self, username: str) -> Dict[str, Any]:
        """Look up a user by username (any casing).

        Returns:
            The "user" object: {"id", "nsid", "username": {"_content"}}.

        Raises:
            PermanentServiceError: code 1 if no such user exists.
        """
        result = self.call("flickr.people.findByUsername", username=username)
        return self._require(result, "user", dict)

    def get_public_contacts(self, user_id: str, page: int, per_page: int) -> Dict[str, Any]:
        """One page of a user's public contacts.

        Returns:
            The "contacts" object: {"page", "pages", "perpage", "total", "contact": [...]}.
        """
        result = self.call(
            "flickr.contacts.getPublicList",
            user_id=user_id,
            page=page,
            per_page=min(per_page, MAX_CONTACTS_PER_PAGE),
        )
        return self._require(result, "contacts", dict)

    def get_public_photos(self, user_id: str, page: int, per_page: int) -> Dict[str, Any]:
        """One page of a user's public photos.

        Returns:
            The "photos" object: {"page", "pages", "perpage", "total", "photo": [...]}.
        """
        result = self.call(
            "flickr.people.getPublicPhotos",
            user_id=user_id,
            page=page,
            per_page=min(per_page, MAX_PHOTOS_PER_PAGE),
        )
        return self._require(result, "photos", dict)

    def get_photo_comments(self, photo_id: str) -> List[Dict[str, Any]]:
        """All comments on one photo (this method is not paged).

        Returns:
            A list of comment dicts with "author", "authorname", "datecreate",
            "permalink" and "_content" keys. Empty if the photo has no comments.
        """
        result = self.call("flickr.photos.comments.getList", photo_id=photo_id)
        comments = self._require(result, "comments", dict)
        items = comments.get("comment", [])
        if not isinstance(items, list):
            raise ProtocolFormatError("Expected a list under comments.comment")
        return items

    def get_person_info(self, user_id: str) -> Dict[str, Any]:
        """Profile details for one user.

        Returns:
            The "person" object (realname, location, photos, iconfarm, ...).
        """
        result = self.call("flickr.people.getInfo", user_id=user_id)
        return self._require(result, "person", dict)

    def call(self, method: str, **params) -> Dict[str, Any]:
        """Call a REST method, retrying transient failures up to self.retries times.

        Each retry waits for the next delay in RETRY_DELAYS_SECONDS first.

        Raises:
            TransientServiceError: Timeout, connection error, HTTP 5xx/429 or a
                "service unavailable" payload, after the last retry.
            PermanentServiceError: A "stat": "fail" payload or other HTTP 4xx.
            ProtocolFormatError: The body is not a JSON object.
        """
        attempt = 0
        while True:
            try:
                return self._call_once(method, params)
            except TransientServiceError as e:
                if attempt >= self.retries:
                    raise
                delay = RETRY_DELAYS_SECONDS[min(attempt, len(RETRY_DELAYS_SECONDS) - 1)]
                attempt += 1
                print(f"  Request failed, pausing {delay} seconds before retrying...")
                if self.debug:
                    print(f"    Retry {attempt}/{self.retries} for {method}: {e}")
                time.sleep(delay)

    def _call_once(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {
            "method": method,
            "api_key": self.api_key,
            "format": "json",
            "nojsoncallback": 1,
        }
        query.update(params)

        if self.debug:
            shown = ", ".join(f"{k}={v}" for k, v in params.items())
            print(f"    GET {method} ({shown})")

        self._calls += 1
        try:
            response = self._session.get(self.base_url, params=query, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientServiceError(f"{method}: {e}") from e
        except requests.RequestException as e:
            raise PermanentServiceError(f"{method}: {e}") from e

        status = response.status_code
        if status == 429 or status >= 500:
            raise TransientServiceError(f"{method}: HTTP {status}")
        if status >= 400:
            raise PermanentServiceError(f"{method}: HTTP {status}", code=status)

        try:
            result = response.json()
        except ValueError as e:
            raise ProtocolFormatError(f"{method}: response is not JSON") from e

        if not isinstance(result, dict):
            raise ProtocolFormatError(f"{method}: expected a JSON object")

        if result.get("stat") != "ok":
            code = result.get("code")
            message = result.get("message", "Unknown Flickr error")
            if code in _TRANSIENT_ERROR_CODES:
                raise TransientServiceError(f"{method}: {message}")
            raise PermanentServiceError(message, code=code)

        return result

    @staticmethod
    def _require(result: Dict[str, Any], key: str, expected_type: type) -> Any:
        value = result.get(key)
        if not isinstance(value, expected_type):
            raise ProtocolFormatError(f"Response has no {key!r} {expected_type.__name__}")
        return value

    @staticmethod
    def profile_url(user_id: str) -> str:
        return PROFILE_URL_PATTERN.format(user_id)

    @staticmethod
    def buddy_icon_url(person: Dict[str, Any]) -> Optional[str]:
        """Buddy icon URL for a "person" object, or None if the user has no icon."""
        server = person.get("iconserver")
        farm = person.get("iconfarm")
        nsid = person.get("nsid") or person.get("id")
        if not server or str(server) == "0" or not farm or not nsid:
            return None
        return BUDDY_ICON_URL_PATTERN.format(farm, server, nsid)
