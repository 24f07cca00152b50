"""REST API layer for Kuberoot.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by kuberoot.app bootstrap).
"""

from kuberoot.api.app import create_app

# The bootstrap in kuberoot.app imports `build_app` from this package.
build_app = create_app

__all__ = ["build_app", "create_app"]
