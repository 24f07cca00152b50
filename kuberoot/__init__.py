"""Kuberoot: tenant-scoped Kubernetes failure diagnosis."""

__version__ = "0.3.0"
