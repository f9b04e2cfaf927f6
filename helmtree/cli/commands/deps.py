from __future__ import annotations

from pathlib import Path

import typer

from helmtree.cli.commands._helpers import exit_on_error
from helmtree.cli.context import build_context
from helmtree.core.errors import ErrorCode
from helmtree.helm.cluster import HelmCluster
from helmtree.helm.fetcher import RepositoryFetcher
from helmtree.helm.models import ReleaseReport
from helmtree.output.tree import render_footer, render_report, reports_to_json
from helmtree.services.deptree import DependencyTreeService, matches_source


def deps(
    namespace: str | None = typer.Option(
        None,
        "--namespace",
        "-n",
        help="Only inspect releases in this namespace (default: all namespaces).",
    ),
    recursive: bool = typer.Option(
        False,
        "--recursive",
        "-r",
        help="Pull dependency charts and expand their own dependencies.",
    ),
    max_depth: int | None = typer.Option(
        None,
        "--max-depth",
        help="Deepest dependency level to expand (direct dependencies are level 1).",
    ),
    unlimited_depth: bool = typer.Option(
        False, "--unlimited-depth", help="Expand dependencies without a depth limit."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds allowed per chart pull attempt."
    ),
    source: str | None = typer.Option(
        None,
        "--source",
        help="Only show releases depending on a repository containing this text.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print reports as JSON."),
    strict: bool = typer.Option(
        False, "--strict", help="Exit non-zero when any release could not be resolved."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show helm commands."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to config.toml."),
) -> None:
    """Show the chart dependency tree of every Helm release."""
    # JSON goes to stdout, so diagnostics move to stderr
    ctx = build_context(config_path, stderr=json_output)

    if max_depth is not None and max_depth < 0:
        ctx.console.error(f"--max-depth must be >= 0, got {max_depth}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if timeout is not None and timeout <= 0:
        ctx.console.error(f"--timeout must be positive, got {timeout}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    config = ctx.config.with_overrides(
        recursive=True if recursive else None,
        max_depth=max_depth,
        unlimited=unlimited_depth,
        fetch_timeout=timeout,
    )
    settings = config.resolve

    cluster = HelmCluster(
        helm=config.tools.helm,
        kubectl=config.tools.kubectl,
        timeout=config.tools.command_timeout,
    )
    exit_on_error(cluster.ensure_tools(), ctx, ErrorCode.ENV_ERROR)

    fetcher = RepositoryFetcher(
        helm=config.tools.helm,
        timeout=settings.fetch_timeout,
        console=ctx.console,
        verbose=verbose,
    )
    service = DependencyTreeService(
        source=cluster,
        fetcher=fetcher,
        settings=settings,
        console=ctx.console,
        verbose=verbose,
    )

    if not json_output:
        if namespace:
            ctx.console.print(f"Fetching Helm releases from namespace '{namespace}'...")
        else:
            ctx.console.print("Fetching Helm releases from all namespaces...")
        if settings.recursive:
            depth = "unlimited" if settings.max_depth is None else str(settings.max_depth)
            ctx.console.print(f"Recursive dependency lookup: enabled (max depth {depth})")
        else:
            ctx.console.print("Recursive dependency lookup: disabled (use -r to enable)")

    releases = service.list_releases(namespace)
    exit_on_error(releases, ctx, ErrorCode.CLUSTER_ERROR)
    summaries = releases.unwrap_or([])

    if not summaries:
        if json_output:
            typer.echo("[]")
        else:
            ctx.console.print("No Helm releases found.")
        return

    if not json_output:
        ctx.console.print(f"Found {len(summaries)} release(s).")
        ctx.console.newline()

    failed = 0
    collected: list[ReleaseReport] = []
    for report in service.iter_reports(summaries):
        if not report.ok:
            failed += 1
        if not matches_source(report, source):
            continue
        if json_output:
            collected.append(report)
        else:
            render_report(report, ctx.console)

    if json_output:
        typer.echo(reports_to_json(collected))
    else:
        render_footer(ctx.console)

    if strict and failed:
        if not json_output:
            ctx.console.error(f"{failed} release(s) could not be resolved")
        raise typer.Exit(code=int(ErrorCode.PARTIAL))
