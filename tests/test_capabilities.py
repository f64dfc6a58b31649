#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for capability discovery and the two cache tiers."""

import json
from unittest.mock import patch

from conftest import FakeAgent, commit_all, discovery_json, git

from verdict.agents.base import AgentResponse
from verdict.capabilities import (
    CapabilityCache,
    cache_path,
    detect_capabilities,
    is_stale,
    load_cache_file,
    parse_discovery_response,
    save_capabilities,
)
from verdict.models.capabilities import CHECK_KINDS, CapabilityInfo, CapabilitySource, ExtendedCapabilities


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryTier:
    def test_hit_for_same_project(self, tmp_path):
        cache = CapabilityCache(ttl=60)
        caps = ExtendedCapabilities.empty()
        cache.set(tmp_path, caps)

        assert cache.get(tmp_path) is caps
        assert cache.get_stats()["hits"] == 1

    def test_single_slot_last_write_wins(self, tmp_path):
        cache = CapabilityCache(ttl=60)
        first, second = tmp_path / "a", tmp_path / "b"
        first.mkdir()
        second.mkdir()

        cache.set(first, ExtendedCapabilities.empty())
        cache.set(second, ExtendedCapabilities.empty(has_git=True))

        assert cache.get(first) is None
        assert cache.get(second).has_git is True
        assert cache.get_stats()["evictions"] == 1

    def test_entry_expires_after_ttl(self, tmp_path):
        clock = FakeClock()
        cache = CapabilityCache(ttl=60, clock=clock)
        cache.set(tmp_path, ExtendedCapabilities.empty())

        clock.now += 59
        assert cache.get(tmp_path) is not None
        clock.now += 2
        assert cache.get(tmp_path) is None
        assert cache.get_stats()["expirations"] == 1

    def test_zero_ttl_never_expires(self, tmp_path):
        clock = FakeClock()
        cache = CapabilityCache(ttl=0, clock=clock)
        cache.set(tmp_path, ExtendedCapabilities.empty())
        clock.now += 10 ** 6
        assert cache.get(tmp_path) is not None

    def test_invalidate_only_drops_matching_project(self, tmp_path):
        cache = CapabilityCache(ttl=60)
        cache.set(tmp_path, ExtendedCapabilities.empty())

        assert cache.invalidate(tmp_path / "elsewhere") is False
        assert cache.invalidate(tmp_path) is True
        assert cache.get(tmp_path) is None


class TestDiscoveryParsing:
    def test_parses_commands_and_config_files(self):
        result = parse_discovery_response(discovery_json(), has_git=True)

        assert result.success
        caps = result.capabilities
        assert caps.test_command == "pytest -q"
        assert caps.test.framework == "pytest"
        assert caps.lint.runnable
        assert not caps.build.available
        assert caps.source == CapabilitySource.AI
        assert {caps.info_for(kind).source for kind in CHECK_KINDS} == {CapabilitySource.AI}
        assert caps.has_git is True
        assert caps.confidence == 0.8  # mean of 0.9 and 0.7
        assert result.config_files == ["pyproject.toml"]

    def test_no_json_is_a_failed_discovery(self):
        result = parse_discovery_response("I could not find anything", has_git=False)

        assert not result.success
        assert result.capabilities.source == CapabilitySource.NONE
        assert not result.capabilities.has_tests


class TestDetection:
    def test_detection_is_idempotent_without_changes(self, git_repo):
        agent = FakeAgent([discovery_json()])
        cache = CapabilityCache(ttl=60)

        first = detect_capabilities(git_repo, agent, cache)
        second = detect_capabilities(git_repo, agent, cache)

        assert agent.call_count == 1
        assert first == second
        assert first.test_command == "pytest -q"

    def test_disk_tier_is_used_by_a_fresh_process(self, git_repo):
        agent = FakeAgent([discovery_json()])
        first = detect_capabilities(git_repo, agent, CapabilityCache(ttl=60))

        again = detect_capabilities(git_repo, agent, CapabilityCache(ttl=60))

        assert agent.call_count == 1
        assert again.source == CapabilitySource.CACHE
        assert again.test.source == CapabilitySource.CACHE
        assert again.build.source == CapabilitySource.CACHE
        assert again.test_command == "pytest -q"
        assert again.with_source(CapabilitySource.AI) == first

    def test_disk_cache_records_commit_and_config_files(self, git_repo):
        detect_capabilities(git_repo, FakeAgent([discovery_json()]), CapabilityCache(ttl=60))

        data = json.loads(cache_path(git_repo).read_text(encoding="utf-8"))
        head = git(git_repo, "rev-parse", "HEAD").strip()
        assert data["commitHash"] == head
        assert data["configFiles"] == ["pyproject.toml"]
        assert data["capabilities"]["test"]["command"] == "pytest -q"

    def test_config_change_makes_disk_cache_stale(self, git_repo):
        agent = FakeAgent([discovery_json()])
        detect_capabilities(git_repo, agent, CapabilityCache(ttl=60))
        assert is_stale(git_repo) is False

        (git_repo / "pyproject.toml").write_text("[project]\nname = 'renamed'\n", encoding="utf-8")
        commit_all(git_repo, "change config")

        assert is_stale(git_repo) is True
        detect_capabilities(git_repo, agent, CapabilityCache(ttl=60))
        assert agent.call_count == 2

    def test_any_new_commit_makes_disk_cache_stale(self, git_repo):
        detect_capabilities(git_repo, FakeAgent([discovery_json()]), CapabilityCache(ttl=60))

        (git_repo / "src" / "app.py").write_text("print('bye')\n", encoding="utf-8")
        commit_all(git_repo, "code change")

        assert is_stale(git_repo) is True

    def test_failed_discovery_is_not_persisted(self, git_repo):
        agent = FakeAgent([AgentResponse(success=False, error="agent crashed")])
        cache = CapabilityCache(ttl=60)

        caps = detect_capabilities(git_repo, agent, cache)

        assert not caps.has_tests
        assert caps.has_git is True
        assert not cache_path(git_repo).exists()
        assert cache.get(git_repo) is None

    def test_agent_exception_is_a_failed_discovery(self, project):
        caps = detect_capabilities(project, FakeAgent([RuntimeError("boom")]), CapabilityCache(ttl=60))
        assert caps == ExtendedCapabilities.empty(has_git=False)

    def test_force_rediscovers(self, git_repo):
        agent = FakeAgent([discovery_json(), discovery_json(test={"available": True, "command": "make test"})])
        cache = CapabilityCache(ttl=60)
        detect_capabilities(git_repo, agent, cache)

        forced = detect_capabilities(git_repo, agent, cache, force=True)

        assert agent.call_count == 2
        assert forced.test_command == "make test"
        assert load_cache_file(git_repo).capabilities.test_command == "make test"

    def test_outside_git_the_disk_cache_is_never_trusted(self, project):
        agent = FakeAgent([discovery_json()])
        detect_capabilities(project, agent, CapabilityCache(ttl=60))
        detect_capabilities(project, agent, CapabilityCache(ttl=60))

        assert agent.call_count == 2


def test_capability_round_trip_keeps_templates():
    caps = ExtendedCapabilities(
        test=CapabilityInfo(available=True, command="npx vitest run", framework="vitest",
                            selective_file_template="npx vitest run {files}"),
    )
    restored = ExtendedCapabilities.from_dict(caps.to_dict())
    assert restored.test.selective_file_template == "npx vitest run {files}"
    assert restored.test_command == "npx vitest run"


def test_each_check_kind_records_its_source():
    info = CapabilityInfo(available=True, command="pytest", source=CapabilitySource.AI)
    assert info.to_dict()["source"] == "ai"

    restored = ExtendedCapabilities.from_dict({"source": "cache", "test": {"available": True, "command": "pytest"},
                                               "lint": {"available": False, "source": "ai"}})
    assert restored.test.source == CapabilitySource.CACHE
    assert restored.lint.source == CapabilitySource.AI
    assert ExtendedCapabilities.empty().build.source == CapabilitySource.NONE


class TestDiskWrite:
    def test_write_replaces_the_cache_in_one_step(self, git_repo):
        path = cache_path(git_repo)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{ half-written", encoding="utf-8")

        caps = ExtendedCapabilities(test=CapabilityInfo(available=True, command="pytest -q"))
        assert save_capabilities(git_repo, caps, ["pyproject.toml"]) is True

        assert json.loads(path.read_text(encoding="utf-8"))["capabilities"]["test"]["command"] == "pytest -q"
        assert [p.name for p in path.parent.iterdir()] == ["capabilities.json"]

    def test_failed_replace_keeps_the_previous_cache(self, git_repo):
        caps = ExtendedCapabilities(test=CapabilityInfo(available=True, command="pytest -q"))
        assert save_capabilities(git_repo, caps) is True
        before = cache_path(git_repo).read_text(encoding="utf-8")

        other = ExtendedCapabilities(test=CapabilityInfo(available=True, command="tox"))
        with patch("verdict.capabilities.cache.os.replace", side_effect=OSError("disk full")):
            assert save_capabilities(git_repo, other) is False

        assert cache_path(git_repo).read_text(encoding="utf-8") == before
