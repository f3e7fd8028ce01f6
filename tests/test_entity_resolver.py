"""Tests for network_crawler.entity_resolver."""

from unittest.mock import MagicMock

import pytest

from conftest import load_fixture
from network_crawler.entity_resolver import EntityResolver, content_of
from network_crawler.errors import (
    EntityNotFoundError,
    PermanentServiceError,
    ProtocolFormatError,
    TransientServiceError,
)
from network_crawler.models import Entity


def make_client(user=None, error=None):
    client = MagicMock()
    if error is not None:
        client.find_by_username.side_effect = error
    else:
        client.find_by_username.return_value = user
    return client


def test_content_of():
    assert content_of({"_content": "JohnDoe"}) == "JohnDoe"
    assert content_of("plain") == "plain"
    assert content_of(None) == ""
    assert content_of({}) == ""


def test_resolve_returns_canonical_casing():
    client = make_client(user=load_fixture("find_by_username.json")["user"])

    entity = EntityResolver(client).resolve("JOHNDOE")

    assert entity == Entity(id="12037949754@N01", handle="JohnDoe")
    client.find_by_username.assert_called_once_with("JOHNDOE")


def test_resolve_strips_whitespace():
    client = make_client(user={"id": "1@N01", "username": {"_content": "alice"}})

    assert EntityResolver(client).resolve("  alice ").id == "1@N01"
    client.find_by_username.assert_called_once_with("alice")


def test_resolve_falls_back_to_typed_handle():
    client = make_client(user={"nsid": "1@N01"})

    assert EntityResolver(client).resolve("alice") == Entity(id="1@N01", handle="alice")


def test_resolve_blank_handle():
    with pytest.raises(ValueError):
        EntityResolver(MagicMock()).resolve("   ")


def test_resolve_unknown_user():
    client = make_client(error=PermanentServiceError("User not found", code=1))

    with pytest.raises(EntityNotFoundError) as excinfo:
        EntityResolver(client).resolve("nobody")
    assert "nobody" in str(excinfo.value)
    assert excinfo.value.code == 1


def test_resolve_other_service_errors_propagate():
    client = make_client(error=PermanentServiceError("Invalid API Key", code=100))

    with pytest.raises(PermanentServiceError) as excinfo:
        EntityResolver(client).resolve("alice")
    assert not isinstance(excinfo.value, EntityNotFoundError)

    client = make_client(error=TransientServiceError("timeout"))
    with pytest.raises(TransientServiceError):
        EntityResolver(client).resolve("alice")


def test_resolve_without_id():
    client = make_client(user={"username": {"_content": "alice"}})

    with pytest.raises(ProtocolFormatError):
        EntityResolver(client).resolve("alice")
