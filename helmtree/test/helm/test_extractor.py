"""Tests for helmtree.helm.extractor module."""

from __future__ import annotations

from helmtree.core.result import Err, Ok
from helmtree.helm.extractor import extract_dependencies, extract_from, parse_dependency
from helmtree.helm.models import ChartDefinition, DependencyRef, ReleaseDocument

REPO = "https://charts.example.com"


class TestParseDependency:
    def test_full_entry(self) -> None:
        entry = {"name": "redis", "version": "17.3.2", "repository": REPO, "alias": "cache"}
        assert parse_dependency(entry, 0) == Ok(
            DependencyRef(name="redis", version="17.3.2", repository=REPO, alias="cache")
        )

    def test_version_defaults_to_empty(self) -> None:
        result = parse_dependency({"name": "redis", "repository": REPO}, 0)
        assert isinstance(result, Ok)
        assert result.value.version == ""

    def test_numeric_version(self) -> None:
        result = parse_dependency({"name": "redis", "version": 1.1, "repository": REPO}, 0)
        assert isinstance(result, Ok)
        assert result.value.version == "1.1"

    def test_missing_name(self) -> None:
        result = parse_dependency({"repository": REPO}, 2)
        assert isinstance(result, Err)
        assert str(result.error) == "dependency #3: missing name"

    def test_missing_repository(self) -> None:
        result = parse_dependency({"name": "redis"}, 0)
        assert isinstance(result, Err)
        assert result.error.reason == "redis: missing repository"

    def test_not_a_mapping(self) -> None:
        result = parse_dependency("redis", 0)
        assert isinstance(result, Err)
        assert "not a mapping" in result.error.reason


class TestExtractDependencies:
    def test_lock_wins(self) -> None:
        lock = [{"name": "a", "version": "1.0.1", "repository": REPO}]
        loose = [{"name": "a", "version": "^1.0.0", "repository": REPO}]
        extraction = extract_dependencies(lock, loose)
        assert extraction.source == "lock"
        assert [d.version for d in extraction.dependencies] == ["1.0.1"]

    def test_empty_lock_falls_back(self) -> None:
        loose = [{"name": "a", "version": "^1.0.0", "repository": REPO}]
        extraction = extract_dependencies([], loose)
        assert extraction.source == "metadata"
        assert extraction.dependencies[0].version == "^1.0.0"

    def test_both_absent(self) -> None:
        extraction = extract_dependencies(None, None)
        assert extraction.empty
        assert extraction.source == "none"
        assert extraction.skipped == ()

    def test_order_preserved_and_invalid_skipped(self) -> None:
        entries: list[object] = [
            {"name": "x", "repository": REPO},
            {"repository": REPO},
            {"name": "y", "repository": REPO},
            {"name": "z"},
            {"name": "w", "repository": REPO},
        ]
        extraction = extract_dependencies(entries, None)
        assert [d.name for d in extraction.dependencies] == ["x", "y", "w"]
        assert [e.index for e in extraction.skipped] == [1, 3]

    def test_only_invalid_entries_is_empty(self) -> None:
        extraction = extract_dependencies([{"version": "1"}], None)
        assert extraction.empty
        assert len(extraction.skipped) == 1


def test_extract_from_release_and_chart() -> None:
    deps = ({"name": "a", "version": "1", "repository": REPO},)
    assert extract_from(ReleaseDocument(lock_dependencies=deps)).source == "lock"
    assert extract_from(ChartDefinition(metadata_dependencies=deps)).source == "metadata"
