"""Tests for the run.py command line."""

import os
from unittest.mock import patch

import pytest

import run
from network_crawler.models import ExpansionLevel, RelationKind


def test_parser_reads_crawl_options():
    args = run.build_parser().parse_args(
        ["alice", "--level", "2", "--kinds", "commenter", "--max-per-request", "50", "--details"]
    )

    assert args.handle == "alice"
    assert args.level is ExpansionLevel.TWO
    assert args.kinds == [RelationKind.COMMENTER]
    assert args.max_per_request == "50"
    assert args.details is True
    assert args.debug is None


def test_parser_rejects_unknown_kind():
    with pytest.raises(SystemExit) as excinfo:
        run.build_parser().parse_args(["alice", "--kinds", "friends"])
    assert excinfo.value.code == 2


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        run.main(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == f"flickr-network-crawler {run.VERSION}"


def test_missing_api_key_exits_with_error(tmp_path):
    env = {"OUTPUT_DIR": str(tmp_path)}
    with patch.dict(os.environ, env, clear=True), pytest.raises(SystemExit) as excinfo:
        run.main(["alice", "--env", "/nonexistent/.env"])
    assert excinfo.value.code == 1


def test_invalid_max_per_request_exits_with_error(tmp_path):
    env = {"FLICKR_API_KEY": "key", "OUTPUT_DIR": str(tmp_path)}
    with patch.dict(os.environ, env, clear=True), pytest.raises(SystemExit) as excinfo:
        run.main(["alice", "--env", "/nonexistent/.env", "--max-per-request", "many"])
    assert excinfo.value.code == 1


def test_successful_crawl(tmp_path, scenario_client):
    env = {"FLICKR_API_KEY": "key", "OUTPUT_DIR": str(tmp_path)}
    with patch.dict(os.environ, env, clear=True), \
         patch("network_crawler.orchestrator.FlickrClient", return_value=scenario_client):
        run.main(["alice", "--env", "/nonexistent/.env", "--kinds", "contact"])

    folders = os.listdir(tmp_path)
    assert len(folders) == 1
    assert sorted(os.listdir(tmp_path / folders[0])) == ["crawl_results.json", "network.json"]


def test_failed_crawl_exits_with_error(tmp_path, fake_client):
    env = {"FLICKR_API_KEY": "key", "OUTPUT_DIR": str(tmp_path)}
    with patch.dict(os.environ, env, clear=True), \
         patch("network_crawler.orchestrator.FlickrClient", return_value=fake_client), \
         pytest.raises(SystemExit) as excinfo:
        run.main(["nobody", "--env", "/nonexistent/.env"])
    assert excinfo.value.code == 1
