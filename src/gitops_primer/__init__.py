"""Kubernetes operator that exports namespace resources to git via Extract jobs."""

__version__ = "0.1.0"
