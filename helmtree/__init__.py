"""helmtree - dependency trees of deployed Helm releases."""

__version__ = "0.1.0"
