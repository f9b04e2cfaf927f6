"""Tests for helmtree.services.deptree module."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager

from helmtree.core.config import ResolveConfig
from helmtree.core.result import Err, Ok, Result
from helmtree.helm.codec import encode_payload
from helmtree.helm.errors import ClusterError, FetchError
from helmtree.helm.fetcher import FetchOutcome
from helmtree.helm.models import DependencyRef, NodeKind, ReleaseSummary
from helmtree.output.console import MockConsole
from helmtree.services.deptree import DependencyTreeService, matches_source

OCI = "oci://registry.example.com/charts"


def _summary(name: str) -> ReleaseSummary:
    return ReleaseSummary(
        name=name,
        namespace="apps",
        chart=f"{name}-1.0.0",
        app_version="1.0",
        status="deployed",
    )


def _state(*deps: dict[str, object]) -> str:
    release = {
        "name": "x",
        "chart": {"metadata": {"name": "x", "version": "1.0.0", "dependencies": list(deps)}},
    }
    return encode_payload(json.dumps(release).encode("utf-8")).decode("ascii")


class FakeSource:
    def __init__(self, states: dict[str, Result[str, ClusterError]]) -> None:
        self.states = states
        self.history_failures: set[str] = set()
        self.reads: list[tuple[str, str, int]] = []

    def list_releases(
        self, namespace: str | None = None
    ) -> Result[list[ReleaseSummary], ClusterError]:
        return Ok([_summary(name) for name in self.states])

    def latest_revision(self, name: str, namespace: str) -> Result[int, ClusterError]:
        if name in self.history_failures:
            return Err(ClusterError(kind="history_failed", message=f"no history for {name}"))
        return Ok(2)

    def read_release_state(
        self, name: str, namespace: str, revision: int
    ) -> Result[str, ClusterError]:
        self.reads.append((name, namespace, revision))
        return self.states[name]


class FailingFetcher:
    def __init__(self) -> None:
        self.fetched: list[str] = []

    @contextmanager
    def fetch(self, ref: DependencyRef) -> Iterator[FetchOutcome]:
        self.fetched.append(ref.name)
        yield Err(FetchError(kind="pull_failed", message="download error: offline"))


def _service(
    source: FakeSource,
    *,
    recursive: bool = False,
    console: MockConsole | None = None,
    fetcher: FailingFetcher | None = None,
) -> DependencyTreeService:
    return DependencyTreeService(
        source=source,
        fetcher=fetcher or FailingFetcher(),
        settings=ResolveConfig(recursive=recursive),
        console=console or MockConsole(),
        verbose=console is not None,
    )


def test_reports_follow_listing_order() -> None:
    source = FakeSource(
        {
            "a": Ok(_state({"name": "redis", "version": "1.0.0", "repository": OCI})),
            "b": Ok(_state()),
        }
    )
    service = _service(source)
    releases = service.list_releases(None)
    assert isinstance(releases, Ok)
    reports = list(service.iter_reports(releases.value))
    assert [r.release.name for r in reports] == ["a", "b"]
    assert all(r.ok for r in reports)
    assert source.reads == [("a", "apps", 2), ("b", "apps", 2)]
    first = reports[0].tree
    assert first is not None
    assert first.release.revision == 2
    assert first.root.children[0].kind is NodeKind.LEAF


def test_failures_do_not_stop_other_releases() -> None:
    source = FakeSource(
        {
            "no-history": Ok(_state()),
            "no-secret": Err(ClusterError(kind="not_found", message="secret missing")),
            "garbage": Ok("%%%"),
            "fine": Ok(_state()),
        }
    )
    source.history_failures.add("no-history")
    reports = list(_service(source).iter_reports([_summary(n) for n in source.states]))
    errors = [r.error.stage if r.error else None for r in reports]
    assert errors == ["history", "state", "decode", None]
    garbage = reports[2].error
    assert garbage is not None
    assert garbage.hint is not None
    assert garbage.hint.startswith("outer_decode:")
    assert reports[3].tree is not None
    assert reports[3].tree.root.kind is NodeKind.NO_DEPENDENCIES


def test_recursive_fetch_failure_stays_in_node() -> None:
    fetcher = FailingFetcher()
    source = FakeSource({"a": Ok(_state({"name": "redis", "version": "1", "repository": OCI}))})
    [report] = list(
        _service(source, recursive=True, fetcher=fetcher).iter_reports([_summary("a")])
    )
    assert report.ok
    assert report.tree is not None
    assert report.tree.root.children[0].kind is NodeKind.FETCH_FAILED
    assert fetcher.fetched == ["redis"]


def test_skipped_entries_become_warnings() -> None:
    source = FakeSource(
        {
            "a": Ok(_state({"name": "nameless-repo"}, {"name": "ok", "repository": OCI})),
            "b": Ok(_state()),
        }
    )
    reports = list(_service(source).iter_reports([_summary("a"), _summary("b")]))
    assert reports[0].warnings == (
        "release chart: skipped dependency #1: nameless-repo: missing repository",
    )
    assert reports[1].warnings == ()


def test_verbose_progress_goes_to_console() -> None:
    console = MockConsole()
    source = FakeSource({"a": Ok(_state())})
    list(_service(source, console=console).iter_reports([_summary("a")]))
    assert console.find("resolving release apps/a")


def test_matches_source() -> None:
    source = FakeSource(
        {
            "a": Ok(_state({"name": "redis", "version": "1", "repository": OCI})),
            "b": Err(ClusterError(kind="not_found", message="gone")),
        }
    )
    ok, failed = _service(source).iter_reports([_summary("a"), _summary("b")])
    assert matches_source(ok, "REGISTRY.example")
    assert not matches_source(ok, "bitnami")
    assert matches_source(failed, None)
    assert not matches_source(failed, "registry")
