"""Data model for releases and their dependency trees.

Everything here is immutable: a ReleaseRecord is decoded once per release
and a TreeNode is finalized once its child discovery has completed.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from helmtree.helm.errors import ReleaseError

__all__ = [
    "ChartDefinition",
    "DependencyRef",
    "NodeKind",
    "ReleaseDocument",
    "ReleaseRecord",
    "ReleaseReport",
    "ReleaseSummary",
    "ReleaseTree",
    "TreeNode",
]


@dataclass(frozen=True, slots=True)
class DependencyRef:
    """A declared dependency edge.

    Attributes:
        name: Chart name, always used for pulling.
        version: Declared (or locked) version, verbatim.
        repository: Repository reference (oci://, https://, file://, @alias ...).
        alias: Display-only alias from the parent's declaration.
    """

    name: str
    version: str
    repository: str
    alias: str | None = None

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.name, self.version, self.repository)

    @property
    def label(self) -> str:
        if self.alias and self.alias != self.name:
            return f"{self.name} ({self.alias})"
        return self.name


@dataclass(frozen=True, slots=True)
class ReleaseSummary:
    """One row of `helm list -o json`."""

    name: str
    namespace: str
    chart: str
    app_version: str
    status: str


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    name: str
    namespace: str
    chart_name_version: str
    app_version: str
    status: str
    revision: int

    @classmethod
    def from_summary(cls, summary: ReleaseSummary, revision: int) -> ReleaseRecord:
        return cls(
            name=summary.name,
            namespace=summary.namespace,
            chart_name_version=summary.chart,
            app_version=summary.app_version,
            status=summary.status,
            revision=revision,
        )


@dataclass(frozen=True, slots=True)
class ReleaseDocument:
    """Typed view of a decoded release payload.

    Dependency lists stay untyped until extraction; None means the section
    was absent.
    """

    chart_name: str | None = None
    chart_version: str | None = None
    app_version: str | None = None
    lock_dependencies: tuple[object, ...] | None = None
    metadata_dependencies: tuple[object, ...] | None = None


@dataclass(frozen=True, slots=True)
class ChartDefinition:
    """Chart.lock and Chart.yaml of a fetched chart."""

    name: str | None = None
    version: str | None = None
    lock_dependencies: tuple[object, ...] | None = None
    metadata_dependencies: tuple[object, ...] | None = None


class NodeKind(Enum):
    INTERNAL = "internal"
    LEAF = "leaf"  # declared, not expanded (recursion off or depth bound)
    NO_DEPENDENCIES = "no_dependencies"
    FETCH_FAILED = "fetch_failed"
    LOCAL_SKIP = "local_skip"
    CYCLE = "cycle"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class TreeNode:
    """A node of a dependency tree.

    Children keep the declaration order of the parent's dependency list.
    Only INTERNAL nodes have children, and they always have at least one.
    """

    ref: DependencyRef
    kind: NodeKind
    children: tuple[TreeNode, ...] = ()
    detail: str | None = None

    def __post_init__(self) -> None:
        if self.kind is NodeKind.INTERNAL and not self.children:
            raise ValueError(f"internal node {self.ref.name} needs children")
        if self.kind is not NodeKind.INTERNAL and self.children:
            raise ValueError(f"{self.kind} node {self.ref.name} cannot have children")

    def iter_nodes(self, depth: int = 0) -> Iterator[tuple[int, TreeNode]]:
        """Depth-first pre-order walk yielding (depth, node)."""
        yield depth, self
        for child in self.children:
            yield from child.iter_nodes(depth + 1)

    def depends_on(self, pattern: str) -> bool:
        """True if any node below this one comes from a matching repository."""
        needle = pattern.lower()
        return any(
            needle in node.ref.repository.lower()
            for depth, node in self.iter_nodes()
            if depth > 0
        )

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "name": self.ref.name,
            "version": self.ref.version,
            "repository": self.ref.repository,
            "kind": self.kind.value,
        }
        if self.ref.alias:
            out["alias"] = self.ref.alias
        if self.detail:
            out["detail"] = self.detail
        if self.children:
            out["dependencies"] = [child.to_dict() for child in self.children]
        return out


@dataclass(frozen=True, slots=True)
class ReleaseTree:
    release: ReleaseRecord
    root: TreeNode


@dataclass(frozen=True, slots=True)
class ReleaseReport:
    """Outcome for one release: a tree, or the error that prevented one."""

    release: ReleaseSummary
    tree: ReleaseTree | None = None
    error: ReleaseError | None = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.tree is not None

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "release": self.release.name,
            "namespace": self.release.namespace,
            "chart": self.release.chart,
            "app_version": self.release.app_version,
            "status": self.release.status,
        }
        if self.tree is not None:
            out["revision"] = self.tree.release.revision
            out["tree"] = self.tree.root.to_dict()
        if self.error is not None:
            out["error"] = {"stage": self.error.stage, "message": self.error.message}
        if self.warnings:
            out["warnings"] = list(self.warnings)
        return out
