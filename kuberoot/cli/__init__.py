"""Kuberoot command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kuberoot`` script).
"""

from kuberoot.cli.main import cli

__all__ = ["cli"]
