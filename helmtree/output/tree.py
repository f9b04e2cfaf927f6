"""Human-readable and JSON rendering of release reports.

Layout per release:

    ================================================================================
    Release:       my-app
    ...
    --------------------------------------------------------------------------------
    Dependency Tree:
      my-app-1.2.3
        NAME                           VERSION              REPOSITORY
        ├── postgresql                   12.1.0               oci://registry-1.docker.io/bitnamicharts
        │   └── common:2.2.1 (oci://registry-1.docker.io/bitnamicharts) [No dependencies]
        └── local-lib                    0.1.0                file://../local-lib [Local chart - skipped]
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence

from helmtree.helm.models import NodeKind, ReleaseReport, TreeNode
from helmtree.output.console import ConsoleProtocol, Style

__all__ = [
    "node_marker",
    "render_report",
    "render_footer",
    "reports_to_json",
    "tree_lines",
]

RULE_HEAVY = "=" * 80
RULE_LIGHT = "-" * 80

BRANCH = "├──"
LAST = "└──"
PIPE = "│   "
SPACE = "    "

_KIND_STYLE = {
    NodeKind.FETCH_FAILED: Style.ERROR,
    NodeKind.CYCLE: Style.WARNING,
    NodeKind.LOCAL_SKIP: Style.DIM,
}


def node_marker(node: TreeNode) -> str:
    """Suffix telling terminal kinds apart; empty for expanded nodes."""
    match node.kind:
        case NodeKind.NO_DEPENDENCIES:
            return "[No dependencies]"
        case NodeKind.LOCAL_SKIP:
            return "[Local chart - skipped]"
        case NodeKind.FETCH_FAILED:
            return f"[Failed: {node.detail or 'download error'}]"
        case NodeKind.CYCLE:
            return "[Cycle - already on path]"
        case NodeKind.LEAF if node.detail:
            return f"[Not expanded: {node.detail}]"
        case _:
            return ""


def _with_marker(text: str, node: TreeNode) -> str:
    marker = node_marker(node)
    return f"{text} {marker}" if marker else text


def tree_lines(node: TreeNode, prefix: str = "") -> Iterator[tuple[str, Style]]:
    """Lines for every descendant of ``node``, depth-first.

    The connector of each child is decided by its position in the
    materialized children tuple.
    """
    children = node.children
    for index, child in enumerate(children):
        is_last = index == len(children) - 1
        ref = child.ref
        connector = LAST if is_last else BRANCH
        text = f"{prefix}{connector} {ref.label}:{ref.version} ({ref.repository})"
        yield _with_marker(text, child), _KIND_STYLE.get(child.kind, Style.DEFAULT)
        yield from tree_lines(child, prefix + (SPACE if is_last else PIPE))


def _print_header(report: ReleaseReport, console: ConsoleProtocol) -> None:
    release = report.release
    console.print(RULE_HEAVY)
    for label, value in (
        ("Release:", release.name),
        ("Namespace:", release.namespace),
        ("Status:", release.status),
        ("Chart:", release.chart),
        ("App Version:", release.app_version),
    ):
        console.print(f"{label:<14} {value}")
    console.print(RULE_LIGHT)
    console.print("Dependency Tree:", Style.BOLD)


def render_report(report: ReleaseReport, console: ConsoleProtocol) -> None:
    _print_header(report, console)

    if report.tree is None:
        error = report.error
        console.print(f"  Error: {error.message if error else 'unknown failure'}", Style.ERROR)
        if error and error.hint:
            for line in error.hint.splitlines():
                console.print(f"    {line}", Style.DIM)
        console.newline()
        return

    root = report.tree.root
    if root.kind is not NodeKind.INTERNAL:
        console.print("  No dependencies found.")
    else:
        console.print(f"  {report.release.chart}")
        console.print(f"    {'NAME':<30} {'VERSION':<20} REPOSITORY", Style.BOLD)
        direct = root.children
        for index, child in enumerate(direct):
            is_last = index == len(direct) - 1
            ref = child.ref
            connector = LAST if is_last else BRANCH
            row = f"    {connector} {ref.label:<28} {ref.version:<20} {ref.repository}"
            console.print(_with_marker(row, child), _KIND_STYLE.get(child.kind, Style.DEFAULT))
            nested_prefix = "    " + (SPACE if is_last else PIPE)
            for line, style in tree_lines(child, nested_prefix):
                console.print(line, style)

    for warning in report.warnings:
        console.warning(warning)
    console.newline()


def render_footer(console: ConsoleProtocol) -> None:
    console.print(RULE_HEAVY)
    console.print("Done.")


def reports_to_json(reports: Sequence[ReleaseReport]) -> str:
    return json.dumps([report.to_dict() for report in reports], indent=2)
