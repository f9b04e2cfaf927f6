"""Helm release decoding and chart dependency resolution.

Modules:
    models    -- DependencyRef, ReleaseRecord, TreeNode and friends
    codec     -- release state payload decoding
    extractor -- dependency list selection and parsing
    fetcher   -- chart pulls into scratch directories
    resolver  -- recursive tree construction
    cluster   -- helm/kubectl release listing and state reads
"""

from helmtree.helm.cluster import HelmCluster
from helmtree.helm.codec import decode_release
from helmtree.helm.extractor import Extraction, extract_dependencies
from helmtree.helm.fetcher import LocalSkip, RepositoryFetcher
from helmtree.helm.models import (
    DependencyRef,
    NodeKind,
    ReleaseRecord,
    ReleaseReport,
    ReleaseSummary,
    ReleaseTree,
    TreeNode,
)
from helmtree.helm.resolver import DependencyResolver

__all__ = [
    "DependencyRef",
    "DependencyResolver",
    "Extraction",
    "HelmCluster",
    "LocalSkip",
    "NodeKind",
    "ReleaseRecord",
    "ReleaseReport",
    "ReleaseSummary",
    "ReleaseTree",
    "RepositoryFetcher",
    "TreeNode",
    "decode_release",
    "extract_dependencies",
]
