"""Release listing and release state retrieval.

Thin adapters over `helm list`, `helm history` and `kubectl get secret`.
They only read from the cluster.
"""

from __future__ import annotations

import json

from helmtree.core.config import DEFAULT_COMMAND_TIMEOUT
from helmtree.core.result import Err, Ok, Result
from helmtree.core.structured import StrDict, as_obj_list, as_str_dict, get_int, get_str
from helmtree.helm.errors import ClusterError
from helmtree.helm.models import ReleaseSummary
from helmtree.platform.process import run as run_process
from helmtree.platform.process import which

__all__ = ["HelmCluster"]


def _json_rows(text: str) -> list[StrDict] | None:
    try:
        obj: object = json.loads(text or "[]")
    except json.JSONDecodeError:
        return None
    items = as_obj_list(obj)
    if items is None:
        return None
    return [row for row in (as_str_dict(item) for item in items) if row is not None]


def _is_not_found(stderr: str) -> bool:
    text = stderr.lower()
    return "notfound" in text or "not found" in text


class HelmCluster:
    """Read-only access to the releases of the current kube context."""

    def __init__(
        self,
        *,
        helm: str = "helm",
        kubectl: str = "kubectl",
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self._helm = helm
        self._kubectl = kubectl
        self._timeout = timeout

    def ensure_tools(self) -> Result[None, ClusterError]:
        for tool in (self._helm, self._kubectl):
            if which(tool) is None:
                return Err(
                    ClusterError(
                        kind="tool_missing",
                        message=f"required command '{tool}' not found",
                        hint="Install it or point [tools] in config.toml at it",
                    )
                )
        return Ok(None)

    def list_releases(
        self, namespace: str | None = None
    ) -> Result[list[ReleaseSummary], ClusterError]:
        """List releases in ``namespace``, or in all namespaces when None."""
        cmd = [self._helm, "list", "-o", "json"]
        cmd += ["--namespace", namespace] if namespace else ["--all-namespaces"]

        result = run_process(cmd, timeout=self._timeout)
        if isinstance(result, Err):
            return Err(
                ClusterError(
                    kind="list_failed",
                    message="Failed to list Helm releases.",
                    hint=result.error.detail,
                )
            )

        rows = _json_rows(result.value)
        if rows is None:
            return Err(ClusterError(kind="list_failed", message="helm list returned invalid JSON"))

        return Ok(
            [
                ReleaseSummary(
                    name=get_str(row, "name") or "",
                    namespace=get_str(row, "namespace") or (namespace or ""),
                    chart=get_str(row, "chart") or "",
                    app_version=get_str(row, "app_version") or "",
                    status=get_str(row, "status") or "",
                )
                for row in rows
                if get_str(row, "name")
            ]
        )

    def latest_revision(self, name: str, namespace: str) -> Result[int, ClusterError]:
        result = run_process(
            [self._helm, "history", name, "--namespace", namespace, "-o", "json"],
            timeout=self._timeout,
        )
        if isinstance(result, Err):
            return Err(
                ClusterError(
                    kind="history_failed",
                    message=f"Could not get history for release '{name}'.",
                    hint=result.error.detail,
                )
            )

        rows = _json_rows(result.value)
        revision = get_int(rows[-1], "revision") if rows else None
        if revision is None:
            return Err(
                ClusterError(
                    kind="history_failed",
                    message=f"Could not determine release version for '{name}'.",
                )
            )
        return Ok(revision)

    def read_release_state(
        self, name: str, namespace: str, revision: int
    ) -> Result[str, ClusterError]:
        """Return the encoded `release` field of the revision's Secret."""
        secret = f"sh.helm.release.v1.{name}.v{revision}"
        result = run_process(
            [
                self._kubectl,
                "get",
                "secret",
                secret,
                "--namespace",
                namespace,
                "-o",
                "jsonpath={.data.release}",
            ],
            timeout=self._timeout,
        )
        if isinstance(result, Err):
            kind = "not_found" if _is_not_found(result.error.stderr) else "read_failed"
            return Err(
                ClusterError(
                    kind=kind,
                    message=f"Could not retrieve secret for release '{name}'.",
                    hint=result.error.detail,
                )
            )
        if not result.value.strip():
            return Err(
                ClusterError(kind="not_found", message=f"Secret '{secret}' has no release data.")
            )
        return Ok(result.value.strip())
