"""Dependency extraction from release documents and chart definitions.

The lock list (Chart.lock, or `chart.lock` in a release) records what was
actually resolved at build time, so a non-empty lock list always wins over
the author-declared list in Chart.yaml metadata.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from helmtree.core.result import Err, Ok, Result
from helmtree.core.structured import as_str_dict, get_str, get_text
from helmtree.helm.errors import ExtractionError
from helmtree.helm.models import ChartDefinition, DependencyRef, ReleaseDocument

__all__ = [
    "Extraction",
    "extract_dependencies",
    "extract_from",
    "parse_dependency",
]

Source = Literal["lock", "metadata", "none"]


@dataclass(frozen=True, slots=True)
class Extraction:
    """Extracted dependencies plus the entries that had to be skipped.

    Attributes:
        dependencies: Valid entries in declaration order.
        skipped: One error per malformed entry.
        source: Which list the entries came from.
    """

    dependencies: tuple[DependencyRef, ...] = ()
    skipped: tuple[ExtractionError, ...] = ()
    source: Source = "none"

    @property
    def empty(self) -> bool:
        return not self.dependencies


def parse_dependency(entry: object, index: int) -> Result[DependencyRef, ExtractionError]:
    table = as_str_dict(entry)
    if table is None:
        return Err(ExtractionError(index=index, reason="entry is not a mapping"))

    name = get_str(table, "name")
    if name is None:
        return Err(ExtractionError(index=index, reason="missing name"))
    repository = get_str(table, "repository")
    if repository is None:
        return Err(ExtractionError(index=index, reason=f"{name}: missing repository"))

    return Ok(
        DependencyRef(
            name=name,
            version=get_text(table, "version") or "",
            repository=repository,
            alias=get_str(table, "alias"),
        )
    )


def extract_dependencies(
    lock: Sequence[object] | None,
    loose: Sequence[object] | None,
) -> Extraction:
    """Pick the lock list if it has entries, else the loose list, and parse it."""
    source: Source
    if lock:
        source, entries = "lock", lock
    elif loose:
        source, entries = "metadata", loose
    else:
        return Extraction()

    deps: list[DependencyRef] = []
    skipped: list[ExtractionError] = []
    for index, entry in enumerate(entries):
        match parse_dependency(entry, index):
            case Ok(ref):
                deps.append(ref)
            case Err(error):
                skipped.append(error)

    return Extraction(dependencies=tuple(deps), skipped=tuple(skipped), source=source)


def extract_from(doc: ReleaseDocument | ChartDefinition) -> Extraction:
    return extract_dependencies(doc.lock_dependencies, doc.metadata_dependencies)
