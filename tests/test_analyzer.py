"""Tests for network_crawler.analyzer.NetworkAnalyzer."""

import threading

import pytest

from conftest import nsid
from network_crawler.analyzer import NetworkAnalyzer
from network_crawler.errors import BusyError
from network_crawler.models import (
    CancellationToken,
    CompletedEvent,
    ExpansionLevel,
    Outcome,
    ProgressEvent,
    RelationKind,
)

CONTACT = [RelationKind.CONTACT]
BOTH = [RelationKind.CONTACT, RelationKind.COMMENTER]


def test_success(scenario_client):
    completed = []
    analyzer = NetworkAnalyzer(scenario_client)

    result = analyzer.get_network("ALICE", CONTACT, ExpansionLevel.TWO,
                                  completed_callback=completed.append)

    assert result.outcome is Outcome.SUCCESS
    assert result.succeeded
    assert result.message is None
    assert result.root.handle == "alice"
    assert result.graph.vertex_count == 4
    assert result.graph.metadata["root_id"] == nsid("alice")
    assert result.graph.metadata["level"] == "2"
    assert result.statistics.finished_at is not None
    assert completed == [result]
    assert analyzer.is_busy is False


def test_unknown_root_fails(fake_client):
    result = NetworkAnalyzer(fake_client).get_network("nobody", CONTACT, ExpansionLevel.ONE)

    assert result.outcome is Outcome.FAILED
    assert "User not found" in result.message
    assert result.root is None
    assert result.graph.vertex_count == 0


def test_first_page_failure_with_empty_graph_fails(fake_client):
    fake_client.add_contacts("alice", "bob", "carol")
    fake_client.fail("contacts", nsid("alice"), page=1)

    result = NetworkAnalyzer(fake_client).get_network("alice", CONTACT, ExpansionLevel.ONE)

    assert result.outcome is Outcome.FAILED
    assert result.graph.vertex_count == 0
    assert result.statistics.pages_failed == 1
    assert result.statistics.pages_fetched == 1


def test_page_three_failure_keeps_pages_one_and_two(fake_client, monkeypatch):
    monkeypatch.setattr("network_crawler.relationship_fetcher.MAX_CONTACTS_PER_PAGE", 2)
    others = [f"user{i}" for i in range(6)]
    fake_client.add_contacts("alice", *others)
    fake_client.fail("contacts", nsid("alice"), page=3)

    result = NetworkAnalyzer(fake_client).get_network("alice", CONTACT, ExpansionLevel.ONE)

    assert result.outcome is Outcome.SUCCESS
    assert [v.label for v in result.graph.vertices] == ["alice", "user0", "user1", "user2", "user3"]
    assert result.statistics.pages_fetched == 3
    assert result.statistics.pages_failed == 1
    assert result.statistics.pages_skipped == 1


def test_partial_success_when_kind_fails_after_vertices_exist(fake_client):
    fake_client.add_contacts("alice", "bob")
    fake_client.add_photo("alice", "p1", commenters=["carol"])
    fake_client.fail("photos", nsid("alice"), page=1)

    result = NetworkAnalyzer(fake_client).get_network("alice", BOTH, ExpansionLevel.ONE)

    assert result.outcome is Outcome.PARTIAL_SUCCESS
    assert result.succeeded
    assert result.graph.vertex_count == 2


def test_partial_success_when_first_kind_fails_and_second_succeeds(fake_client):
    fake_client.add_contacts("alice", "bob")
    fake_client.add_photo("alice", "p1", commenters=["carol"])
    fake_client.fail("contacts", nsid("alice"), page=1)

    result = NetworkAnalyzer(fake_client).get_network("alice", BOTH, ExpansionLevel.ONE)

    assert result.outcome is Outcome.PARTIAL_SUCCESS
    assert "contacts of" in result.message
    assert [v.label for v in result.graph.vertices] == ["alice", "carol"]


def test_details_are_fetched_when_requested(scenario_client):
    scenario_client.add_user("alice", realname={"_content": "Alice A."})
    scenario_client.add_user("bob", realname={"_content": "Bob B."})

    result = NetworkAnalyzer(scenario_client).get_network(
        "alice", CONTACT, ExpansionLevel.ONE, include_details=True
    )

    # carol has no profile in the fake, so her lookup fails and is skipped.
    assert result.outcome is Outcome.SUCCESS
    assert result.graph.get_vertex(nsid("bob")).attributes["real_name"] == "Bob B."
    assert result.statistics.vertices_enriched == 2
    assert result.statistics.enrichment_failures == 1


def test_cancel_during_enrichment(scenario_client):
    for name in ("alice", "bob", "carol"):
        scenario_client.add_user(name, realname={"_content": name.title()})
    token = CancellationToken()

    def cancel_on_bob(method, key, page):
        if method == "person" and key == nsid("bob"):
            token.cancel()

    scenario_client.before_call = cancel_on_bob

    result = NetworkAnalyzer(scenario_client).get_network(
        "alice", CONTACT, ExpansionLevel.ONE, include_details=True, cancel_token=token
    )

    assert result.outcome is Outcome.CANCELLED
    assert not result.succeeded
    assert [v.label for v in result.graph.vertices] == ["alice", "bob", "carol"]
    assert result.graph.edge_count == 2
    assert result.graph.get_vertex(nsid("alice")).attributes["real_name"] == "Alice"
    assert "real_name" not in result.graph.get_vertex(nsid("bob")).attributes
    assert "real_name" not in result.graph.get_vertex(nsid("carol")).attributes


def test_invalid_arguments(scenario_client):
    analyzer = NetworkAnalyzer(scenario_client)

    with pytest.raises(ValueError):
        analyzer.get_network("", CONTACT, ExpansionLevel.ONE)
    with pytest.raises(ValueError):
        analyzer.get_network("alice", [], ExpansionLevel.ONE)
    with pytest.raises(ValueError):
        analyzer.get_network("alice", ["contact"], ExpansionLevel.ONE)
    with pytest.raises(ValueError):
        analyzer.get_network("alice", CONTACT, "1")
    with pytest.raises(ValueError):
        analyzer.get_network("alice", CONTACT, ExpansionLevel.ONE, max_per_request=0)
    assert scenario_client.requests == []


def test_repeated_relation_kind_is_expanded_once(scenario_client):
    result = NetworkAnalyzer(scenario_client).get_network(
        "alice", [RelationKind.CONTACT, RelationKind.CONTACT], ExpansionLevel.ONE
    )

    assert result.outcome is Outcome.SUCCESS
    assert [(e.source, e.target) for e in result.graph.edges] == [
        (nsid("alice"), nsid("bob")),
        (nsid("alice"), nsid("carol")),
    ]
    assert result.graph.metadata["relation_kinds"] == ["contact"]
    assert scenario_client.count("contacts", nsid("alice")) == 1


def test_commenter_crawl_reports_each_photo(fake_client):
    fake_client.add_photo("alice", "p1", commenters=["bob"])
    fake_client.add_photo("alice", "p2", commenters=["carol"])
    messages = []

    result = NetworkAnalyzer(fake_client).get_network(
        "alice", [RelationKind.COMMENTER], ExpansionLevel.ONE,
        progress_callback=messages.append,
    )

    assert result.outcome is Outcome.SUCCESS
    assert messages == [
        'Getting commenters on photos of "alice"',
        'Getting comments for the photo "p1"',
        'Getting comments for the photo "p2"',
    ]


def test_async_events_are_ordered_and_end_with_completed(scenario_client):
    callback_messages = []
    analyzer = NetworkAnalyzer(scenario_client)

    task = analyzer.get_network_async(
        "alice", CONTACT, ExpansionLevel.ONE_POINT_FIVE,
        progress_callback=callback_messages.append,
    )
    events = list(task.events(timeout=5))
    result = task.result(timeout=5)
    analyzer.close()

    assert [e.message for e in events[:-1]] == [
        'Getting contacts of "alice"',
        'Getting contacts of "bob"',
        'Getting contacts of "carol"',
    ]
    assert all(isinstance(e, ProgressEvent) for e in events[:-1])
    assert isinstance(events[-1], CompletedEvent)
    assert events[-1].result is result
    assert callback_messages == [e.message for e in events[:-1]]
    assert result.outcome is Outcome.SUCCESS
    assert task.done()


def test_second_crawl_while_busy_raises(scenario_client):
    started = threading.Event()
    release = threading.Event()

    def block_first_listing(method, key, page):
        if method == "contacts":
            started.set()
            release.wait(5)

    scenario_client.before_call = block_first_listing
    analyzer = NetworkAnalyzer(scenario_client)

    task = analyzer.get_network_async("alice", CONTACT, ExpansionLevel.ONE)
    assert started.wait(5)
    assert analyzer.is_busy

    with pytest.raises(BusyError):
        analyzer.get_network_async("alice", CONTACT, ExpansionLevel.ONE)
    with pytest.raises(BusyError):
        analyzer.get_network("alice", CONTACT, ExpansionLevel.ONE)

    release.set()
    result = task.result(timeout=5)
    analyzer.close()

    assert result.outcome is Outcome.SUCCESS
    assert analyzer.is_busy is False


def test_analyzer_cancel_stops_async_crawl(scenario_client):
    started = threading.Event()
    release = threading.Event()

    def block_first_listing(method, key, page):
        if method == "contacts":
            started.set()
            release.wait(5)

    scenario_client.before_call = block_first_listing
    analyzer = NetworkAnalyzer(scenario_client)

    task = analyzer.get_network_async("alice", CONTACT, ExpansionLevel.TWO)
    assert started.wait(5)
    analyzer.cancel()
    release.set()
    result = task.result(timeout=5)
    analyzer.close()

    assert result.outcome is Outcome.CANCELLED
    # The page fetched before the cancel request is still applied.
    assert [v.label for v in result.graph.vertices] == ["alice", "bob", "carol"]
    assert scenario_client.count("contacts", nsid("bob")) == 0
