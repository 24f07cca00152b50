"""Failure detection data structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

MAX_EVENTS = 3


class FailureType(StrEnum):
    """Pod failure conditions recognised by the collector."""

    CRASH_LOOP_BACK_OFF = "CrashLoopBackOff"
    IMAGE_PULL_BACK_OFF = "ImagePullBackOff"
    OOM_KILLED = "OOMKilled"
    FAILED_SCHEDULING = "FailedScheduling"


@dataclass(frozen=True)
class FailureRecord:
    """One detected abnormal condition for one pod (or one of its containers).

    Produced by the normalizer on every detection cycle and consumed once by
    the diagnosis engine.  ``types`` may carry strings outside of
    ``FailureType`` when the record arrives from a newer collector.
    """

    namespace: str
    name: str
    types: tuple[str, ...]
    container: str = ""  # empty for pod-level failures
    message: str = ""
    events: tuple[str, ...] = ()  # most recent first

    def __post_init__(self) -> None:
        if not self.types:
            raise ValueError("FailureRecord requires at least one failure type")
        if len(self.events) > MAX_EVENTS:
            raise ValueError(f"FailureRecord carries {len(self.events)} events, limit is {MAX_EVENTS}")
