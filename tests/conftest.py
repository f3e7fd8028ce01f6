"""Shared fixtures: an in-memory Flickr client with Flickr-shaped responses."""

import json
import os

import pytest

from network_crawler.errors import PermanentServiceError

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def load_fixture(name):
    with open(os.path.join(FIXTURES_DIR, name)) as f:
        return json.load(f)


def nsid(name):
    return f"{name}@N01"


class FakeFlickrClient:
    """Deterministic stand-in for FlickrClient.

    Users are registered by name; their NSID is nsid(name). Listings behave
    like Flickr: a page past the last one returns the last page again.

    failures maps (method, key, page) to an exception raised for that call;
    page=None matches every page. key is the username for "find", the NSID
    for listings and person info, and the photo id for "comments".
    """

    def __init__(self):
        self.users = {}
        self.contacts = {}
        self.photos = {}
        self.comments = {}
        self.people = {}
        self.failures = {}
        self.requests = []
        self.before_call = None

    @property
    def calls(self):
        return len(self.requests)

    def count(self, method, key=None):
        return sum(
            1 for m, k, _ in self.requests
            if m == method and (key is None or k == key)
        )

    def add_user(self, name, **person):
        if name.lower() not in self.users:
            self.users[name.lower()] = {
                "id": nsid(name),
                "nsid": nsid(name),
                "username": {"_content": name},
            }
        if person:
            self.people[nsid(name)] = dict(person, id=nsid(name), nsid=nsid(name))

    def add_contacts(self, name, *others):
        self.add_user(name)
        items = self.contacts.setdefault(nsid(name), [])
        for other in others:
            self.add_user(other)
            items.append({"nsid": nsid(other), "username": other, "iconserver": "0"})

    def add_photo(self, owner, photo_id, commenters=(), datecreate="1229551617"):
        self.add_user(owner)
        self.photos.setdefault(nsid(owner), []).append(
            {"id": photo_id, "owner": nsid(owner), "title": photo_id, "ispublic": 1}
        )
        comments = self.comments.setdefault(photo_id, [])
        for i, other in enumerate(commenters):
            self.add_user(other)
            comments.append({
                "id": f"{photo_id}-c{i}",
                "author": nsid(other),
                "authorname": other,
                "datecreate": datecreate,
                "permalink": f"https://www.flickr.com/photos/{owner}/{photo_id}/#comment{i}",
                "_content": "Nice shot!",
            })

    def fail(self, method, key, page=None, error=None):
        self.failures[(method, key, page)] = error or PermanentServiceError("Service failure", code=99)

    def _call(self, method, key, page=None):
        self.requests.append((method, key, page))
        if self.before_call is not None:
            self.before_call(method, key, page)
        error = self.failures.get((method, key, page)) or self.failures.get((method, key, None))
        if error is not None:
            raise error

    @staticmethod
    def _listing(items, page, per_page, items_key):
        pages = -(-len(items) // per_page) if items else 0
        shown = min(page, pages)
        chunk = items[(shown - 1) * per_page: shown * per_page] if pages else []
        return {
            "page": page,
            "pages": pages,
            "perpage": per_page,
            "total": len(items),
            items_key: chunk,
        }

    def find_by_username(self, username):
        self._call("find", username.lower())
        user = self.users.get(username.lower())
        if user is None:
            raise PermanentServiceError("User not found", code=1)
        return dict(user)

    def get_public_contacts(self, user_id, page, per_page):
        self._call("contacts", user_id, page)
        return self._listing(self.contacts.get(user_id, []), page, per_page, "contact")

    def get_public_photos(self, user_id, page, per_page):
        self._call("photos", user_id, page)
        return self._listing(self.photos.get(user_id, []), page, per_page, "photo")

    def get_photo_comments(self, photo_id):
        self._call("comments", photo_id)
        return list(self.comments.get(photo_id, []))

    def get_person_info(self, user_id):
        self._call("person", user_id)
        person = self.people.get(user_id)
        if person is None:
            raise PermanentServiceError("User not found", code=1)
        return dict(person)


def build_contacts_client(contacts):
    """FakeFlickrClient from {name: [contact names]}."""
    client = FakeFlickrClient()
    for name, others in contacts.items():
        client.add_contacts(name, *others)
    return client


@pytest.fixture
def fake_client():
    return FakeFlickrClient()


@pytest.fixture
def scenario_client():
    """alice -> [bob, carol], bob -> [carol], carol -> [dave]."""
    return build_contacts_client({
        "alice": ["bob", "carol"],
        "bob": ["carol"],
        "carol": ["dave"],
    })
