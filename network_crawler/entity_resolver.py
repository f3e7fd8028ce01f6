"""
Entity Resolver — Turns a typed username into the user's canonical identity.

People type usernames with whatever casing they remember ("JOHNDOE",
"johndoe"). flickr.people.findByUsername matches case-insensitively and
returns the NSID plus the username as the account spells it:

    {"user": {"id": "12037949754@N01", "nsid": "12037949754@N01",
              "username": {"_content": "JohnDoe"}}, "stat": "ok"}

The crawl root is resolved exactly once, before traversal begins, so every
vertex id in the graph is an NSID and the root's label uses canonical casing.
"""

from .errors import EntityNotFoundError, PermanentServiceError, ProtocolFormatError
from .models import Entity

# flickr.people.findByUsername error code for an unknown username.
USER_NOT_FOUND_CODE = 1


def content_of(value) -> str:
    """Unwrap Flickr's {"_content": "..."} text nodes; plain strings pass through."""
    if isinstance(value, dict):
        value = value.get("_content")
    return "" if value is None else str(value)


class EntityResolver:
    """Resolves usernames to Entity values.

    Attributes:
        client: A FlickrClient.
        debug: If True, prints the resolved identity.
    """

    def __init__(self, client, debug: bool = False):
        self.client = client
        self.debug = debug

    def resolve(self, handle: str) -> Entity:
        """Resolve a username in any casing.

        Args:
            handle: The username as typed.

        Returns:
            Entity with the canonical ID and canonically-cased username.

        Raises:
            ValueError: If handle is blank.
            EntityNotFoundError: If no user has this username.
            ServiceError: Any other failure talking to the service.
        """
        handle = (handle or "").strip()
        if not handle:
            raise ValueError("A username is required")

        try:
            user = self.client.find_by_username(handle)
        except EntityNotFoundError:
            raise
        except PermanentServiceError as e:
            if e.code == USER_NOT_FOUND_CODE:
                raise EntityNotFoundError(f"User not found: {handle}", code=e.code) from e
            raise

        user_id = user.get("nsid") or user.get("id")
        canonical_handle = content_of(user.get("username"))
        if not user_id:
            raise ProtocolFormatError("findByUsername response has no user id")

        entity = Entity(id=str(user_id), handle=canonical_handle or handle)

        if self.debug:
            print(f"  Resolved {handle!r} to {entity.handle} ({entity.id})")

        return entity
