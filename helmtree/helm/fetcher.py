"""Chart retrieval for dependency inspection.

A dependency's repository reference decides how its chart is pulled:

- LOCAL    file://, absolute or relative paths: never fetched
- OCI      oci://registry/path: `helm pull` with version, then without
- INDEXED  http(s):// chart repositories: register once, then `helm pull --repo`
- ALIAS    @name / alias:name: a repository already configured in helm

Every pull lands in its own scratch directory that only lives for the
duration of the ``fetch`` context.
"""

from __future__ import annotations

import json
import re
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import yaml

from helmtree.core.config import DEFAULT_FETCH_TIMEOUT
from helmtree.core.result import Err, Ok, Result
from helmtree.core.structured import as_obj_list, as_str_dict, get_list, get_str, get_text
from helmtree.helm.errors import FetchError
from helmtree.helm.models import ChartDefinition, DependencyRef
from helmtree.output.console import ConsoleProtocol, Style
from helmtree.platform.process import ProcessError
from helmtree.platform.process import run as run_process

__all__ = [
    "FetchedChart",
    "FetchOutcome",
    "LocalSkip",
    "RepoScheme",
    "RepositoryFetcher",
    "classify_repository",
    "load_chart_definition",
    "repo_name_for",
]


class RepoScheme(Enum):
    LOCAL = "local"
    OCI = "oci"
    INDEXED = "indexed"
    ALIAS = "alias"


_LOCAL_PREFIXES = ("file://", "/", "./", "../")


def classify_repository(repository: str) -> RepoScheme:
    ref = repository.strip()
    if ref.startswith("oci://"):
        return RepoScheme.OCI
    if ref.startswith(_LOCAL_PREFIXES):
        return RepoScheme.LOCAL
    if ref.startswith(("@", "alias:")):
        return RepoScheme.ALIAS
    if "://" in ref:
        # http(s) plus plugin-provided protocols (s3://, gs://, ...)
        return RepoScheme.INDEXED
    return RepoScheme.LOCAL


def repo_name_for(url: str) -> str:
    """Derive a stable helm repo name from its URL.

    https://charts.bitnami.com/bitnami -> charts-bitnami-com-bitnami
    """
    stripped = re.sub(r"^[a-z0-9+.-]+://", "", url.strip(), flags=re.IGNORECASE)
    return re.sub(r"[./]+", "-", stripped).strip("-")


@dataclass(frozen=True, slots=True)
class LocalSkip:
    """Classification for charts that only exist on the author's disk."""

    ref: DependencyRef
    reason: str = "local chart"


@dataclass(frozen=True, slots=True)
class FetchedChart:
    """An untarred chart inside a scratch directory.

    Only valid inside the ``RepositoryFetcher.fetch`` context that produced it.
    """

    ref: DependencyRef
    path: Path

    def load_definition(self) -> Result[ChartDefinition, FetchError]:
        return load_chart_definition(self.path)


FetchOutcome = LocalSkip | Ok[FetchedChart] | Err[FetchError]


def _read_yaml(path: Path) -> Result[dict[str, object] | None, FetchError]:
    """Parse a chart YAML file; Ok(None) when the file does not exist."""
    if not path.is_file():
        return Ok(None)
    try:
        obj: object = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(FetchError(kind="invalid_chart", message=f"cannot read {path.name}: {e}"))
    except yaml.YAMLError as e:
        return Err(FetchError(kind="invalid_chart", message=f"invalid YAML in {path.name}: {e}"))

    if obj is None:
        return Ok({})
    table = as_str_dict(obj)
    if table is None:
        return Err(FetchError(kind="invalid_chart", message=f"{path.name} is not a mapping"))
    return Ok(table)


def load_chart_definition(chart_dir: Path) -> Result[ChartDefinition, FetchError]:
    """Read Chart.lock (preferred) and Chart.yaml of an unpacked chart."""
    chart_yaml = _read_yaml(chart_dir / "Chart.yaml")
    if isinstance(chart_yaml, Err):
        return chart_yaml
    chart_lock = _read_yaml(chart_dir / "Chart.lock")
    if isinstance(chart_lock, Err):
        return chart_lock

    metadata = chart_yaml.value
    if metadata is None:
        return Err(
            FetchError(kind="missing_chart", message=f"no Chart.yaml in {chart_dir.name}")
        )
    lock = chart_lock.value or {}

    lock_deps = get_list(lock, "dependencies")
    meta_deps = get_list(metadata, "dependencies")
    return Ok(
        ChartDefinition(
            name=get_str(metadata, "name"),
            version=get_text(metadata, "version"),
            lock_dependencies=tuple(lock_deps) if lock_deps is not None else None,
            metadata_dependencies=tuple(meta_deps) if meta_deps is not None else None,
        )
    )


def _pull_error(ref: DependencyRef, error: ProcessError) -> FetchError:
    return FetchError(
        kind="timeout" if error.timed_out else "pull_failed",
        message=f"download error: {error.detail}",
        hint=f"{ref.repository} {ref.name}:{ref.version}",
    )


class RepositoryFetcher:
    """Pulls dependency charts with the helm CLI.

    Usage:
        fetcher = RepositoryFetcher(helm="helm", timeout=60)
        with fetcher.fetch(ref) as outcome:
            match outcome:
                case Ok(chart):
                    definition = chart.load_definition()
                case Err(error):
                    ...
                case LocalSkip():
                    ...
    """

    def __init__(
        self,
        *,
        helm: str = "helm",
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        console: ConsoleProtocol | None = None,
        verbose: bool = False,
        scratch_root: Path | None = None,
    ) -> None:
        self._helm = helm
        self._timeout = timeout
        self._console = console
        self._verbose = verbose
        self._scratch_root = scratch_root
        # url (without trailing slash) -> repo name, loaded lazily
        self._repos: dict[str, str] | None = None

    @contextmanager
    def fetch(self, ref: DependencyRef) -> Iterator[FetchOutcome]:
        scheme = classify_repository(ref.repository)
        if scheme is RepoScheme.LOCAL:
            yield LocalSkip(ref)
            return

        try:
            scratch = tempfile.TemporaryDirectory(prefix="helmtree-", dir=self._scratch_root)
        except OSError as e:
            yield Err(FetchError(kind="scratch_failed", message=f"temp directory error: {e}"))
            return

        with scratch as tmp:
            yield self._pull(ref, scheme, Path(tmp))

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _pull(
        self, ref: DependencyRef, scheme: RepoScheme, dest: Path
    ) -> Ok[FetchedChart] | Err[FetchError]:
        match scheme:
            case RepoScheme.OCI:
                result = self._pull_oci(ref, dest)
            case RepoScheme.ALIAS:
                alias = ref.repository.removeprefix("alias:").removeprefix("@")
                result = self._helm_pull(f"{alias}/{ref.name}", ref.version, dest)
            case _:
                self._ensure_repository(ref.repository)
                result = self._helm_pull(
                    ref.name, ref.version, dest, extra=["--repo", ref.repository]
                )

        if isinstance(result, Err):
            return Err(_pull_error(ref, result.error))

        chart_dir = self._locate_chart(ref, dest)
        if chart_dir is None:
            return Err(
                FetchError(
                    kind="missing_chart",
                    message=f"pulled archive has no chart directory for {ref.name}",
                )
            )
        return Ok(FetchedChart(ref=ref, path=chart_dir))

    def _pull_oci(self, ref: DependencyRef, dest: Path) -> Result[str, ProcessError]:
        target = f"{ref.repository.rstrip('/')}/{ref.name}"
        if ref.version:
            versioned = self._helm_pull(target, ref.version, dest)
            if isinstance(versioned, Ok):
                return versioned
            self._debug(f"{target}:{ref.version} pull failed, retrying without version")
        return self._helm_pull(target, None, dest)

    def _helm_pull(
        self,
        chart: str,
        version: str | None,
        dest: Path,
        *,
        extra: list[str] | None = None,
    ) -> Result[str, ProcessError]:
        cmd = [self._helm, "pull", chart]
        if version:
            cmd += ["--version", version]
        cmd += extra or []
        cmd += ["--untar", "-d", str(dest)]
        self._debug(" ".join(cmd))
        return run_process(cmd, timeout=self._timeout)

    def _locate_chart(self, ref: DependencyRef, dest: Path) -> Path | None:
        named = dest / ref.name
        if named.is_dir():
            return named
        dirs = [p for p in dest.iterdir() if p.is_dir()]
        if len(dirs) == 1:
            return dirs[0]
        return None

    # -------------------------------------------------------------------------
    # Repository registration
    # -------------------------------------------------------------------------

    def _known_repositories(self) -> dict[str, str]:
        if self._repos is not None:
            return self._repos

        repos: dict[str, str] = {}
        listed = run_process([self._helm, "repo", "list", "-o", "json"], timeout=self._timeout)
        # helm exits non-zero when no repositories are configured
        if isinstance(listed, Ok):
            for item in self._parse_repo_list(listed.value):
                name = get_str(item, "name")
                url = get_str(item, "url")
                if name and url:
                    repos[url.rstrip("/")] = name
        self._repos = repos
        return repos

    @staticmethod
    def _parse_repo_list(text: str) -> list[dict[str, object]]:
        try:
            obj: object = json.loads(text or "[]")
        except json.JSONDecodeError:
            return []
        items = as_obj_list(obj) or []
        return [t for t in (as_str_dict(i) for i in items) if t is not None]

    def _ensure_repository(self, url: str) -> str | None:
        """Register ``url`` with helm unless an equivalent entry exists.

        Returns the repo name, or None when registration failed; pulling
        with --repo still works in that case.
        """
        repos = self._known_repositories()
        key = url.rstrip("/")
        if key in repos:
            return repos[key]

        name = repo_name_for(url)
        if name in repos.values():
            repos[key] = name
            return name

        added = run_process([self._helm, "repo", "add", name, url], timeout=self._timeout)
        if isinstance(added, Err):
            self._debug(f"helm repo add {name} failed: {added.error.detail}")
            return None
        repos[key] = name
        return name

    def _debug(self, message: str) -> None:
        if self._verbose and self._console is not None:
            self._console.print(message, Style.DIM)
