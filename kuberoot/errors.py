"""Exception hierarchy shared across Kuberoot components.

Lower layers raise these typed errors; the REST layer maps each one to a
status code.  Nothing in the core retries on any of them.
"""

from __future__ import annotations


class KuberootError(Exception):
    """Base class for all Kuberoot errors."""


class StoreError(KuberootError):
    """The persistence layer failed (connection, transaction, or decode error)."""


class InvalidAPIKeyError(KuberootError):
    """No active credential matches the presented key digest.

    Unknown and revoked keys are indistinguishable.
    """


class CollectorError(KuberootError):
    """Reading live cluster state failed."""


class ReportError(KuberootError):
    """A failure report could not be delivered to the backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
