"""Recursive dependency tree construction.

Each dependency edge becomes exactly one TreeNode whose kind is decided
once, in this order:

1. local repository           -> LOCAL_SKIP (no fetch, any recursion setting)
2. recursion off / too deep   -> LEAF (declared edge only)
3. identity already on path   -> CYCLE
4. pull failed                -> FETCH_FAILED
5. chart declares nothing     -> NO_DEPENDENCIES
6. otherwise                  -> INTERNAL, children resolved in declared order

Failures are confined to the node they happen on; siblings and ancestors
keep resolving. The traversal is depth-first and strictly sequential, and a
chart's scratch directory is released before its children are pulled, so
at most one scratch directory exists at a time.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Protocol

from helmtree.core.config import DEFAULT_MAX_DEPTH
from helmtree.core.result import Err
from helmtree.helm.errors import ExtractionError
from helmtree.helm.extractor import Extraction, extract_from
from helmtree.helm.fetcher import FetchOutcome, LocalSkip, RepoScheme, classify_repository
from helmtree.helm.models import (
    DependencyRef,
    NodeKind,
    ReleaseDocument,
    ReleaseRecord,
    ReleaseTree,
    TreeNode,
)

__all__ = ["ChartFetcher", "DependencyResolver", "release_root_ref"]

WarningSink = Callable[[DependencyRef | None, ExtractionError], None]


class ChartFetcher(Protocol):
    """What the resolver needs from a fetcher (RepositoryFetcher in production)."""

    def fetch(self, ref: DependencyRef) -> AbstractContextManager[FetchOutcome]: ...


def release_root_ref(record: ReleaseRecord, document: ReleaseDocument) -> DependencyRef:
    """Reference for the release's own chart, the root of its tree."""
    name = document.chart_name
    version = document.chart_version
    if name is None or version is None:
        # helm list reports "<chart>-<version>"
        head, sep, tail = record.chart_name_version.rpartition("-")
        if sep and name is None:
            name = head
        if sep and version is None:
            version = tail
    return DependencyRef(
        name=name or record.chart_name_version,
        version=version or "",
        repository="",
    )


class DependencyResolver:
    """Expands dependency edges into TreeNodes.

    Args:
        fetcher: Chart fetcher, consulted only when recursion is enabled.
        recursive: Pull charts and expand their dependencies.
        max_depth: Deepest level that is expanded (direct dependencies are
            level 1); nodes below it stay LEAF. None means unlimited.
        on_warning: Receives malformed dependency entries that were skipped.
    """

    def __init__(
        self,
        fetcher: ChartFetcher,
        *,
        recursive: bool = False,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
        on_warning: WarningSink | None = None,
    ) -> None:
        if max_depth is not None and max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self._fetcher = fetcher
        self._recursive = recursive
        self._max_depth = max_depth
        self._on_warning = on_warning

    def build_release_tree(self, record: ReleaseRecord, document: ReleaseDocument) -> ReleaseTree:
        root_ref = release_root_ref(record, document)
        extraction = extract_from(document)
        self._report_skipped(None, extraction)
        root = self._node_from_children(
            root_ref,
            extraction,
            depth=0,
            path=frozenset(),
        )
        return ReleaseTree(release=record, root=root)

    def resolve(self, ref: DependencyRef, depth: int = 1) -> TreeNode:
        """Resolve a single dependency edge found at ``depth``."""
        return self._resolve(ref, depth, frozenset())

    def _expands(self, depth: int) -> bool:
        if not self._recursive:
            return False
        return self._max_depth is None or depth <= self._max_depth

    def _resolve(
        self,
        ref: DependencyRef,
        depth: int,
        path: frozenset[tuple[str, str, str]],
    ) -> TreeNode:
        if classify_repository(ref.repository) is RepoScheme.LOCAL:
            return TreeNode(ref=ref, kind=NodeKind.LOCAL_SKIP)
        if not self._expands(depth):
            detail = "depth limit reached" if self._recursive else None
            return TreeNode(ref=ref, kind=NodeKind.LEAF, detail=detail)
        if ref.identity in path:
            return TreeNode(ref=ref, kind=NodeKind.CYCLE)

        with self._fetcher.fetch(ref) as outcome:
            if isinstance(outcome, LocalSkip):
                return TreeNode(ref=ref, kind=NodeKind.LOCAL_SKIP)
            if isinstance(outcome, Err):
                return TreeNode(ref=ref, kind=NodeKind.FETCH_FAILED, detail=outcome.error.message)
            definition = outcome.value.load_definition()

        # The scratch directory is gone here; only the parsed definition is kept.
        if isinstance(definition, Err):
            return TreeNode(ref=ref, kind=NodeKind.FETCH_FAILED, detail=definition.error.message)

        extraction = extract_from(definition.value)
        self._report_skipped(ref, extraction)
        return self._node_from_children(ref, extraction, depth=depth, path=path | {ref.identity})

    def _node_from_children(
        self,
        ref: DependencyRef,
        extraction: Extraction,
        *,
        depth: int,
        path: frozenset[tuple[str, str, str]],
    ) -> TreeNode:
        if extraction.empty:
            return TreeNode(ref=ref, kind=NodeKind.NO_DEPENDENCIES)
        children = tuple(self._resolve(child, depth + 1, path) for child in extraction.dependencies)
        return TreeNode(ref=ref, kind=NodeKind.INTERNAL, children=children)

    def _report_skipped(self, ref: DependencyRef | None, extraction: Extraction) -> None:
        if self._on_warning is None:
            return
        for error in extraction.skipped:
            self._on_warning(ref, error)

