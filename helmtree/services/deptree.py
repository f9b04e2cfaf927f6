"""Release-by-release dependency tree collection.

For every listed release: latest revision -> stored state -> decoded
document -> resolved tree. A failure at any of these steps becomes the
release's report; the next release is processed regardless.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Literal, Protocol

from helmtree.core.config import ResolveConfig
from helmtree.core.result import Err, Result
from helmtree.helm.codec import decode_release
from helmtree.helm.errors import ClusterError, ExtractionError, ReleaseError
from helmtree.helm.models import DependencyRef, ReleaseRecord, ReleaseReport, ReleaseSummary
from helmtree.helm.resolver import ChartFetcher, DependencyResolver
from helmtree.output.console import ConsoleProtocol, Style

__all__ = ["DependencyTreeService", "ReleaseSource", "matches_source"]


class ReleaseSource(Protocol):
    """Release listing and state access (HelmCluster in production)."""

    def list_releases(
        self, namespace: str | None = None
    ) -> Result[list[ReleaseSummary], ClusterError]: ...

    def latest_revision(self, name: str, namespace: str) -> Result[int, ClusterError]: ...

    def read_release_state(
        self, name: str, namespace: str, revision: int
    ) -> Result[str, ClusterError]: ...


class DependencyTreeService:
    """Builds one ReleaseReport per release, in listing order.

    Usage:
        service = DependencyTreeService(
            source=HelmCluster(),
            fetcher=RepositoryFetcher(),
            settings=config.resolve,
            console=console,
        )
        releases = service.list_releases(namespace=None)
        for report in service.iter_reports(releases.value):
            render_report(report, console)
    """

    def __init__(
        self,
        *,
        source: ReleaseSource,
        fetcher: ChartFetcher,
        settings: ResolveConfig,
        console: ConsoleProtocol,
        verbose: bool = False,
    ) -> None:
        self._source = source
        self._console = console
        self._verbose = verbose
        self._warnings: list[str] = []
        self._resolver = DependencyResolver(
            fetcher,
            recursive=settings.recursive,
            max_depth=settings.max_depth,
            on_warning=self._record_warning,
        )

    def list_releases(self, namespace: str | None) -> Result[list[ReleaseSummary], ClusterError]:
        return self._source.list_releases(namespace)

    def iter_reports(self, releases: Sequence[ReleaseSummary]) -> Iterator[ReleaseReport]:
        """Yield reports lazily; each release is fully resolved before the next starts."""
        for summary in releases:
            yield self.report_for(summary)

    def report_for(self, summary: ReleaseSummary) -> ReleaseReport:
        self._debug(f"resolving release {summary.namespace}/{summary.name}")

        revision = self._source.latest_revision(summary.name, summary.namespace)
        if isinstance(revision, Err):
            return self._failed(summary, "history", revision.error)

        state = self._source.read_release_state(summary.name, summary.namespace, revision.value)
        if isinstance(state, Err):
            return self._failed(summary, "state", state.error)

        document = decode_release(state.value)
        if isinstance(document, Err):
            return ReleaseReport(
                release=summary,
                error=ReleaseError(
                    stage="decode",
                    message=f"Could not decode release data for '{summary.name}'.",
                    hint=f"{document.error.stage}: {document.error.message}",
                ),
            )

        record = ReleaseRecord.from_summary(summary, revision.value)
        self._warnings = []
        tree = self._resolver.build_release_tree(record, document.value)
        return ReleaseReport(release=summary, tree=tree, warnings=tuple(self._warnings))

    def _failed(
        self,
        summary: ReleaseSummary,
        stage: Literal["history", "state"],
        error: ClusterError,
    ) -> ReleaseReport:
        return ReleaseReport(
            release=summary,
            error=ReleaseError(stage=stage, message=error.message, hint=error.hint),
        )

    def _record_warning(self, parent: DependencyRef | None, error: ExtractionError) -> None:
        owner = f"{parent.name}:{parent.version}" if parent else "release chart"
        self._warnings.append(f"{owner}: skipped {error}")

    def _debug(self, message: str) -> None:
        if self._verbose:
            self._console.print(message, Style.DIM)


def matches_source(report: ReleaseReport, pattern: str | None) -> bool:
    """True if the report's tree references a repository containing ``pattern``.

    No pattern matches everything, failed releases included.
    """
    if not pattern:
        return True
    return report.tree is not None and report.tree.root.depends_on(pattern)
