"""Application services."""

from helmtree.services.deptree import DependencyTreeService, ReleaseSource, matches_source

__all__ = ["DependencyTreeService", "ReleaseSource", "matches_source"]
